"""Required-field checks applied between parsing and preview."""

import logging
from collections.abc import Sequence
from typing import Any, Callable

from pydantic import BaseModel

from app.imports.errors import NoValidRecordsError
from app.imports.schemas import ImportKind

logger = logging.getLogger(__name__)


def _filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _collection_is_valid(record: BaseModel) -> bool:
    # Partner, origin address and requested date are jointly required
    return (
        _filled(getattr(record, "parceiro", None))
        and _filled(getattr(record, "endereco_origem", None))
        and _filled(getattr(record, "previsao_coleta", None))
    )


def _field_check(name: str) -> Callable[[BaseModel], bool]:
    def check(record: BaseModel) -> bool:
        return _filled(getattr(record, name, None))

    return check


REQUIRED_CHECKS: dict[ImportKind, Callable[[BaseModel], bool]] = {
    ImportKind.COLLECTIONS: _collection_is_valid,
    ImportKind.PRODUCTS: _field_check("code"),
    ImportKind.CLIENTS: _field_check("name"),
    ImportKind.TECHNICIANS: _field_check("first_name"),
    ImportKind.SUPERVISORS: _field_check("first_name"),
}


def filter_valid_records(records: Sequence[BaseModel], kind: ImportKind) -> list[BaseModel]:
    """Return the records that carry the mandatory fields of ``kind``.

    Surviving records are the same objects, in the same order.
    """
    check = REQUIRED_CHECKS[ImportKind(kind)]
    return [record for record in records if check(record)]


def validate_records(records: Sequence[BaseModel], kind: ImportKind) -> list[BaseModel]:
    """Filter records and fail when none survive.

    Raises:
        NoValidRecordsError: Every record is missing a mandatory field.
    """
    kind = ImportKind(kind)
    valid = filter_valid_records(records, kind)
    dropped = len(records) - len(valid)
    if dropped:
        logger.info(
            "Dropped %d of %d %s records missing required fields",
            dropped,
            len(records),
            kind.value,
        )
    if not valid:
        raise NoValidRecordsError(kind.value)
    return valid
