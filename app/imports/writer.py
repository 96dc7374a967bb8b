"""Reconciliation writer: persists validated records for one kind.

Collections have no natural key and are always inserted as new rows; their
line items follow in a second, best-effort batch. Products, clients and
profiles use insert-if-absent upserts keyed on their natural key within the
owner's rows, so existing rows are never modified by an import.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel

from app.cache import QueryCache
from app.db.models import CollectionStatus, TeamShift
from app.imports.errors import NotAuthenticatedError, PersistenceError
from app.imports.schemas import (
    ClientRecord,
    CollectionRecord,
    ImportKind,
    ImportOutcome,
    ProductRecord,
)
from app.imports.store import RecordStore

logger = logging.getLogger(__name__)

# Conflict keys for insert-if-absent kinds
PRODUCT_CONFLICT_KEYS = ("code", "user_id")
CLIENT_CONFLICT_KEYS = ("name", "user_id")
PROFILE_CONFLICT_KEYS = ("user_id", "first_name", "last_name", "phone_number")

# Query keys refreshed after an import. Every key aggregating over a kind is listed.
PROFILE_QUERY_KEYS = ("allProfiles", "allProfilesForSupervisor")
INVALIDATION_KEYS: dict[ImportKind, tuple[str, ...]] = {
    ImportKind.COLLECTIONS: (
        "coletas",
        "items",
        "coletasAtivas",
        "coletasConcluidas",
        "entregasAtivas",
        "entregasConcluidas",
        "dashboardColetasMetrics",
        "entregasForMetrics",
        "entregasAtivasStatusChart",
        "entregasAtivasStatusDonutChart",
        "allColetasForGeneralDashboard",
        "collectionStatusChart",
        "collectionStatusDonutChart",
        "productStatusChart",
    ),
    ImportKind.PRODUCTS: ("products", "productStatusChart"),
    ImportKind.CLIENTS: ("clients",),
    ImportKind.TECHNICIANS: PROFILE_QUERY_KEYS,
    ImportKind.SUPERVISORS: PROFILE_QUERY_KEYS,
}
# Delivery listings are cached without an owner scope
GLOBAL_INVALIDATION_KEYS: dict[ImportKind, tuple[str, ...]] = {
    ImportKind.COLLECTIONS: ("entregas",),
}

_SUCCESS_MESSAGES = {
    ImportKind.COLLECTIONS: "{count} collection/delivery records were saved.",
    ImportKind.PRODUCTS: "{count} products were saved, duplicates were ignored.",
    ImportKind.CLIENTS: "{count} clients were saved, duplicates were ignored.",
    ImportKind.TECHNICIANS: "{count} technicians were saved.",
    ImportKind.SUPERVISORS: "{count} supervisors were saved.",
}


@dataclass(frozen=True)
class Owner:
    """The account every written row is stamped with."""

    user_id: str


def _require_owner(owner: Optional[Owner]) -> str:
    if owner is None or not str(owner.user_id or "").strip():
        raise NotAuthenticatedError()
    return str(owner.user_id)


def collection_row(record: CollectionRecord, user_id: str) -> dict[str, Any]:
    """Map a collection record onto a ``collections`` row."""
    return {
        "user_id": user_id,
        "unique_number": record.unique_number,
        "client_control": record.client_control,
        "parceiro": record.parceiro,
        "contato": record.contato,
        "telefone": record.telefone,
        "email": record.email,
        "cnpj": record.cnpj,
        "endereco_origem": record.endereco_origem,
        "cep_origem": record.cep_origem,
        "origin_address_number": record.origin_address_number,
        "origin_lat": record.origin_lat,
        "origin_lng": record.origin_lng,
        "endereco_destino": record.endereco_destino,
        "cep_destino": record.cep_destino,
        "destination_address_number": record.destination_address_number,
        "destination_lat": record.destination_lat,
        "destination_lng": record.destination_lng,
        "previsao_coleta": record.previsao_coleta,
        "qtd_aparelhos_solicitado": record.qtd_aparelhos_solicitado,
        "modelo_aparelho": record.modelo_aparelho,
        "freight_value": record.freight_value,
        "observacao": record.observacao,
        "status": CollectionStatus(record.status_coleta),
        "kind": record.type,
        "contrato": record.contrato,
        "nf_glbl": record.nf_glbl,
        "partner_code": record.partner_code,
    }


def item_row(
    record: CollectionRecord, inserted: dict[str, Any], user_id: str
) -> Optional[dict[str, Any]]:
    """Build the line item for an inserted collection, or None.

    Only records with a product code and a positive quantity get an item.
    """
    code = (record.modelo_aparelho or "").strip()
    if not code or record.qtd_aparelhos_solicitado <= 0:
        return None
    return {
        "user_id": user_id,
        "collection_id": inserted["id"],
        "name": code,
        "description": code,
        "quantity": record.qtd_aparelhos_solicitado,
        "status": inserted.get("status") or CollectionStatus.PENDING,
    }


def product_row(record: ProductRecord, user_id: str) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "code": record.code,
        "description": record.description,
        "model": record.model,
        "serial_number": record.serial_number,
    }


def client_row(record: ClientRecord, user_id: str) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "name": record.name,
        "phone": record.phone,
        "email": record.email,
        "address": record.address,
        "address_number": record.address_number,
        "cep": record.cep,
        "cnpj": record.cnpj,
        "contact_person": record.contact_person,
    }


def profile_row(record: BaseModel, user_id: str, is_supervisor: bool) -> dict[str, Any]:
    """Map a technician or supervisor record onto a ``profiles`` row.

    Each row gets a fresh id, so duplicates can only collide on the
    (first name, last name, phone) tuple. Missing last name and phone are
    stored as empty strings to keep that tuple comparable.
    """
    return {
        "id": str(uuid4()),
        "user_id": user_id,
        "first_name": record.first_name,
        "last_name": record.last_name or "",
        "phone_number": record.phone_number or "",
        "role": record.role or "standard",
        "supervisor_id": None if is_supervisor else record.supervisor_id,
        "team_shift": record.team_shift or TeamShift.DAY,
        "address": record.address or None,
        "updated_at": datetime.utcnow(),
    }


class ImportWriter:
    """Writes one kind of validated records for one owner.

    Args:
        store: Persistence collaborator.
        cache: Query cache invalidated after a successful write.
    """

    def __init__(self, store: RecordStore, cache: Optional[QueryCache] = None):
        self.store = store
        self.cache = cache

    def write(
        self,
        kind: ImportKind,
        records: Sequence[BaseModel],
        owner: Optional[Owner],
    ) -> ImportOutcome:
        """Persist ``records`` as ``kind`` for ``owner``.

        Raises:
            NotAuthenticatedError: No owner; raised before any write.
            PersistenceError: The store rejected the main batch.
        """
        kind = ImportKind(kind)
        user_id = _require_owner(owner)

        if not records:
            return ImportOutcome(kind=kind, count=0, message=self._message(kind, 0))

        if kind == ImportKind.COLLECTIONS:
            outcome = self._write_collections(records, user_id)
        elif kind == ImportKind.PRODUCTS:
            rows = [product_row(r, user_id) for r in records]
            self.store.upsert("products", rows, PRODUCT_CONFLICT_KEYS)
            outcome = ImportOutcome(kind=kind, count=len(rows))
        elif kind == ImportKind.CLIENTS:
            rows = [client_row(r, user_id) for r in records]
            self.store.upsert("clients", rows, CLIENT_CONFLICT_KEYS)
            outcome = ImportOutcome(kind=kind, count=len(rows))
        else:
            is_supervisor = kind == ImportKind.SUPERVISORS
            rows = [profile_row(r, user_id, is_supervisor) for r in records]
            self.store.upsert("profiles", rows, PROFILE_CONFLICT_KEYS)
            outcome = ImportOutcome(kind=kind, count=len(rows))

        outcome.message = self._message(kind, outcome.count)
        self._invalidate(kind, user_id)
        logger.info("Imported %d %s for user %s", outcome.count, kind.value, user_id)
        return outcome

    def _write_collections(self, records: Sequence[BaseModel], user_id: str) -> ImportOutcome:
        rows = [collection_row(r, user_id) for r in records]
        inserted = self.store.insert("collections", rows)

        items = []
        for record, stored in zip(records, inserted):
            item = item_row(record, stored, user_id)
            if item is not None:
                items.append(item)

        items_created = 0
        items_failed = 0
        if items:
            # Best effort: a failed item batch leaves the collections in place
            try:
                self.store.insert("items", items)
                items_created = len(items)
            except PersistenceError as e:
                items_failed = len(items)
                logger.error(
                    "Item insert failed after importing %d collections for user %s: %s",
                    len(inserted),
                    user_id,
                    e.message,
                )

        return ImportOutcome(
            kind=ImportKind.COLLECTIONS,
            count=len(inserted),
            items_created=items_created,
            items_failed=items_failed,
        )

    def _invalidate(self, kind: ImportKind, user_id: str) -> None:
        if self.cache is None:
            return
        self.cache.invalidate(INVALIDATION_KEYS[kind], user_id)
        global_keys = GLOBAL_INVALIDATION_KEYS.get(kind)
        if global_keys:
            self.cache.invalidate_all(global_keys)

    @staticmethod
    def _message(kind: ImportKind, count: int) -> str:
        return _SUCCESS_MESSAGES[kind].format(count=count)
