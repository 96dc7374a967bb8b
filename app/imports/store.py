"""Persistence collaborator used by the import writer.

The writer only knows two operations, ``insert`` and ``upsert``, addressed by
table name. ``SqlAlchemyStore`` implements them on a SQLAlchemy session; each
call is one transaction that either commits or rolls back as a whole.
"""

import logging
from collections.abc import Sequence
from typing import Any, Protocol
from uuid import uuid4

from sqlalchemy import Table, insert
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import Base
from app.imports.errors import PersistenceError

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Row-level write operations the import writer depends on."""

    def insert(self, table: str, rows: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert all rows and return them as stored (with generated ids)."""
        ...

    def upsert(
        self,
        table: str,
        rows: Sequence[dict[str, Any]],
        conflict_keys: Sequence[str],
        skip_duplicates: bool = True,
    ) -> None:
        """Insert rows whose conflict key is not present yet."""
        ...


class SqlAlchemyStore:
    """``RecordStore`` backed by a SQLAlchemy session.

    Args:
        db: Database session.
    """

    def __init__(self, db: Session):
        self.db = db

    def _table(self, name: str) -> Table:
        try:
            return Base.metadata.tables[name]
        except KeyError as e:
            raise PersistenceError(f"Unknown table: {name}") from e

    def _prepare(self, table: Table, rows: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        prepared = []
        for row in rows:
            values = dict(row)
            if "id" in table.c and not values.get("id"):
                values["id"] = str(uuid4())
            prepared.append(values)
        return prepared

    def insert(self, table: str, rows: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        target = self._table(table)
        prepared = self._prepare(target, rows)
        if not prepared:
            return []
        try:
            self.db.execute(insert(target), prepared)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Insert into %s rejected: %s", table, e)
            raise PersistenceError(_store_message(e)) from e
        return prepared

    def upsert(
        self,
        table: str,
        rows: Sequence[dict[str, Any]],
        conflict_keys: Sequence[str],
        skip_duplicates: bool = True,
    ) -> None:
        target = self._table(table)
        prepared = self._prepare(target, rows)
        if not prepared:
            return
        if not skip_duplicates:
            raise PersistenceError("Only insert-if-absent upserts are supported")
        try:
            self.db.execute(self._insert_ignore(target, conflict_keys), prepared)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Upsert into %s rejected: %s", table, e)
            raise PersistenceError(_store_message(e)) from e

    def _insert_ignore(self, target: Table, conflict_keys: Sequence[str]):
        """Build the dialect's insert-if-absent statement."""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(target).on_conflict_do_nothing(
                index_elements=list(conflict_keys)
            )
        if dialect == "sqlite":
            return sqlite.insert(target).on_conflict_do_nothing(index_elements=list(conflict_keys))
        if dialect in ("mysql", "mariadb"):
            return mysql.insert(target).prefix_with("IGNORE")
        raise PersistenceError(f"Insert-if-absent is not supported on {dialect}")


def _store_message(error: SQLAlchemyError) -> str:
    """Return the driver's message without SQLAlchemy's statement dump."""
    orig = getattr(error, "orig", None)
    if orig is not None:
        return str(orig)
    return str(error).split("\n", 1)[0]
