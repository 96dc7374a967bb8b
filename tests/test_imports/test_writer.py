"""Tests for the reconciliation writer and the SQLAlchemy store."""

from datetime import date
from decimal import Decimal

import pytest

from app.cache import QueryCache
from app.db.models import (
    Client,
    Collection,
    CollectionKind,
    CollectionStatus,
    Item,
    Product,
    Profile,
    TeamShift,
)
from app.imports.errors import NotAuthenticatedError, PersistenceError
from app.imports.schemas import (
    ClientRecord,
    CollectionRecord,
    ImportKind,
    ProductRecord,
    SupervisorRecord,
    TechnicianRecord,
)
from app.imports.store import SqlAlchemyStore
from app.imports.writer import INVALIDATION_KEYS, ImportWriter, Owner, item_row


class FakeStore:
    """In-memory ``RecordStore`` recording every call."""

    def __init__(self, fail_tables=()):
        self.fail_tables = set(fail_tables)
        self.calls = []
        self._next_id = 0

    def insert(self, table, rows):
        self.calls.append(("insert", table, list(rows)))
        if table in self.fail_tables:
            raise PersistenceError(f"{table} rejected")
        stored = []
        for row in rows:
            self._next_id += 1
            stored.append({"id": f"{table}-{self._next_id}", **row})
        return stored

    def upsert(self, table, rows, conflict_keys, skip_duplicates=True):
        self.calls.append(("upsert", table, list(rows), tuple(conflict_keys)))
        if table in self.fail_tables:
            raise PersistenceError(f"{table} rejected")


def _collection(**overrides):
    values = {
        "unique_number": "IMP-1",
        "parceiro": "Acme",
        "endereco_origem": "Rua A, 1",
        "previsao_coleta": date(2026, 5, 1),
        "qtd_aparelhos_solicitado": 2,
        "modelo_aparelho": "Router X",
        "freight_value": Decimal("50.00"),
    }
    values.update(overrides)
    return CollectionRecord(**values)


OWNER = Owner(user_id="user-1")


class TestWriterWithFakeStore:
    """Tests for writer behaviour against a recording store."""

    def test_missing_owner_raises_before_any_write(self):
        store = FakeStore()
        writer = ImportWriter(store)

        with pytest.raises(NotAuthenticatedError):
            writer.write(ImportKind.CLIENTS, [ClientRecord(name="Acme")], None)
        with pytest.raises(NotAuthenticatedError):
            writer.write(ImportKind.CLIENTS, [ClientRecord(name="Acme")], Owner(user_id=""))

        assert store.calls == []

    def test_empty_records_write_nothing(self):
        store = FakeStore()
        outcome = ImportWriter(store).write(ImportKind.PRODUCTS, [], OWNER)

        assert outcome.count == 0
        assert store.calls == []

    def test_collections_then_items(self):
        store = FakeStore()
        records = [
            _collection(),
            _collection(unique_number="IMP-2", modelo_aparelho=None),
            _collection(unique_number="IMP-3", status_coleta=CollectionStatus.COMPLETED),
        ]

        outcome = ImportWriter(store).write(ImportKind.COLLECTIONS, records, OWNER)

        assert [c[:2] for c in store.calls] == [("insert", "collections"), ("insert", "items")]
        collection_rows = store.calls[0][2]
        assert all(row["user_id"] == "user-1" for row in collection_rows)
        item_rows = store.calls[1][2]
        # Record without a product code gets no item
        assert [row["collection_id"] for row in item_rows] == ["collections-1", "collections-3"]
        assert item_rows[0]["status"] == CollectionStatus.PENDING
        assert item_rows[1]["status"] == CollectionStatus.COMPLETED
        assert item_rows[0]["quantity"] == 2
        assert outcome.count == 3
        assert outcome.items_created == 2
        assert outcome.items_failed == 0

    def test_zero_quantity_creates_collection_without_item(self):
        store = FakeStore()
        outcome = ImportWriter(store).write(
            ImportKind.COLLECTIONS, [_collection(qtd_aparelhos_solicitado=0)], OWNER
        )

        assert [c[:2] for c in store.calls] == [("insert", "collections")]
        assert store.calls[0][2][0]["qtd_aparelhos_solicitado"] == 0
        assert outcome.count == 1
        assert outcome.items_created == 0

    def test_item_failure_keeps_collections(self):
        store = FakeStore(fail_tables={"items"})

        outcome = ImportWriter(store).write(ImportKind.COLLECTIONS, [_collection()], OWNER)

        assert outcome.count == 1
        assert outcome.items_created == 0
        assert outcome.items_failed == 1

    def test_collection_failure_propagates(self):
        store = FakeStore(fail_tables={"collections"})

        with pytest.raises(PersistenceError) as exc_info:
            ImportWriter(store).write(ImportKind.COLLECTIONS, [_collection()], OWNER)

        assert exc_info.value.message == "collections rejected"
        assert len(store.calls) == 1

    def test_upsert_conflict_keys(self):
        store = FakeStore()
        writer = ImportWriter(store)

        writer.write(ImportKind.PRODUCTS, [ProductRecord(code="P-1")], OWNER)
        writer.write(ImportKind.CLIENTS, [ClientRecord(name="Acme")], OWNER)
        writer.write(ImportKind.TECHNICIANS, [TechnicianRecord(first_name="Ana")], OWNER)

        assert store.calls[0][1:2] + store.calls[0][3:] == ("products", ("code", "user_id"))
        assert store.calls[1][1:2] + store.calls[1][3:] == ("clients", ("name", "user_id"))
        assert store.calls[2][3] == ("user_id", "first_name", "last_name", "phone_number")

    def test_upsert_count_is_submitted_count(self):
        store = FakeStore()
        records = [ClientRecord(name="Acme"), ClientRecord(name="Acme")]

        outcome = ImportWriter(store).write(ImportKind.CLIENTS, records, OWNER)

        assert outcome.count == 2
        assert "2 clients" in outcome.message

    def test_supervisor_link_discarded(self):
        store = FakeStore()
        ImportWriter(store).write(
            ImportKind.SUPERVISORS,
            [SupervisorRecord(first_name="Rui", supervisor_id="someone")],
            OWNER,
        )

        row = store.calls[0][2][0]
        assert row["supervisor_id"] is None
        assert row["team_shift"] == TeamShift.DAY
        assert row["role"] == "standard"
        assert row["last_name"] == ""
        assert row["phone_number"] == ""

    def test_technician_link_kept(self):
        store = FakeStore()
        ImportWriter(store).write(
            ImportKind.TECHNICIANS,
            [TechnicianRecord(first_name="Ana", supervisor_id="sup-1", team_shift="night")],
            OWNER,
        )

        row = store.calls[0][2][0]
        assert row["supervisor_id"] == "sup-1"
        assert row["team_shift"] == TeamShift.NIGHT

    def test_success_invalidates_owner_cache(self):
        cache = QueryCache()
        cache.set("dashboardColetasMetrics", "user-1", "stale", 2026)
        cache.set("dashboardColetasMetrics", "user-2", "other", 2026)
        cache.set("entregas", "user-2", "global")
        cache.set("clients", "user-1", "unrelated")

        ImportWriter(FakeStore(), cache).write(ImportKind.COLLECTIONS, [_collection()], OWNER)

        assert not cache.contains("dashboardColetasMetrics", "user-1", 2026)
        assert cache.contains("dashboardColetasMetrics", "user-2", 2026)
        assert not cache.contains("entregas", "user-2")
        assert cache.contains("clients", "user-1")

    def test_failure_leaves_cache_untouched(self):
        cache = QueryCache()
        cache.set("products", "user-1", "cached")

        with pytest.raises(PersistenceError):
            ImportWriter(FakeStore(fail_tables={"products"}), cache).write(
                ImportKind.PRODUCTS, [ProductRecord(code="P-1")], OWNER
            )

        assert cache.contains("products", "user-1")

    def test_invalidation_keys_cover_dashboard(self):
        keys = INVALIDATION_KEYS[ImportKind.COLLECTIONS]
        for name in (
            "collectionStatusChart",
            "collectionStatusDonutChart",
            "dashboardColetasMetrics",
            "entregasForMetrics",
            "entregasAtivasStatusChart",
            "entregasAtivasStatusDonutChart",
        ):
            assert name in keys

    def test_item_row_requires_code_and_quantity(self):
        inserted = {"id": "c-1", "status": CollectionStatus.SCHEDULED}
        assert item_row(_collection(modelo_aparelho="  "), inserted, "u") is None
        assert item_row(_collection(qtd_aparelhos_solicitado=-1), inserted, "u") is None
        assert item_row(_collection(), inserted, "u")["status"] == CollectionStatus.SCHEDULED


class TestWriterWithDatabase:
    """Integration tests against SQLite through ``SqlAlchemyStore``."""

    def _writer(self, db):
        return ImportWriter(SqlAlchemyStore(db))

    def test_products_idempotent(self, db, test_user):
        owner = Owner(user_id=test_user.id)
        records = [ProductRecord(code="P-1", description="Router"), ProductRecord(code="P-2")]

        self._writer(db).write(ImportKind.PRODUCTS, records, owner)
        db.query(Product).filter(Product.code == "P-1").update({"description": "Edited"})
        db.commit()
        outcome = self._writer(db).write(
            ImportKind.PRODUCTS, [ProductRecord(code="P-1", description="Overwrite?")], owner
        )

        assert outcome.count == 1
        products = db.query(Product).order_by(Product.code).all()
        assert [p.code for p in products] == ["P-1", "P-2"]
        # Existing rows are never modified
        assert products[0].description == "Edited"

    def test_clients_idempotent(self, db, test_user):
        owner = Owner(user_id=test_user.id)
        records = [ClientRecord(name="Acme", phone="1199"), ClientRecord(name="Beta")]

        first = self._writer(db).write(ImportKind.CLIENTS, records, owner)
        second = self._writer(db).write(
            ImportKind.CLIENTS, [ClientRecord(name="Acme", phone="0000"), records[1]], owner
        )

        assert first.count == second.count == 2
        clients = db.query(Client).order_by(Client.name).all()
        assert [c.name for c in clients] == ["Acme", "Beta"]
        assert clients[0].phone == "1199"

    def test_duplicates_within_one_batch_collapse(self, db, test_user):
        owner = Owner(user_id=test_user.id)
        records = [ClientRecord(name="Acme"), ClientRecord(name="Acme"), ClientRecord(name="Beta")]

        outcome = self._writer(db).write(ImportKind.CLIENTS, records, owner)

        assert outcome.count == 3
        assert db.query(Client).count() == 2

    def test_same_name_different_owner_allowed(self, db, test_user, other_user):
        writer = self._writer(db)
        writer.write(ImportKind.CLIENTS, [ClientRecord(name="Acme")], Owner(user_id=test_user.id))
        writer.write(ImportKind.CLIENTS, [ClientRecord(name="Acme")], Owner(user_id=other_user.id))

        assert db.query(Client).count() == 2

    def test_profiles_dedupe_on_name_and_phone(self, db, test_user):
        owner = Owner(user_id=test_user.id)
        records = [
            TechnicianRecord(first_name="Ana"),
            TechnicianRecord(first_name="Ana"),
            TechnicianRecord(first_name="Ana", phone_number="119"),
        ]

        self._writer(db).write(ImportKind.TECHNICIANS, records, owner)
        self._writer(db).write(ImportKind.TECHNICIANS, records, owner)

        assert db.query(Profile).count() == 2

    def test_collections_duplicate_on_reimport(self, db, test_user):
        owner = Owner(user_id=test_user.id)
        records = [_collection()]

        self._writer(db).write(ImportKind.COLLECTIONS, records, owner)
        self._writer(db).write(ImportKind.COLLECTIONS, records, owner)

        assert db.query(Collection).count() == 2
        assert db.query(Item).count() == 2

    def test_collection_rows_persisted(self, db, test_user):
        owner = Owner(user_id=test_user.id)
        record = _collection(status_coleta=CollectionStatus.SCHEDULED, type=CollectionKind.DELIVERY)

        self._writer(db).write(ImportKind.COLLECTIONS, [record], owner)

        collection = db.query(Collection).one()
        assert collection.user_id == test_user.id
        assert collection.status == CollectionStatus.SCHEDULED
        assert collection.kind == CollectionKind.DELIVERY
        assert collection.freight_value == Decimal("50.00")
        item = db.query(Item).one()
        assert item.collection_id == collection.id
        assert item.name == "Router X"
        assert item.status == CollectionStatus.SCHEDULED

    def test_unknown_table_is_persistence_error(self, db):
        with pytest.raises(PersistenceError):
            SqlAlchemyStore(db).insert("nope", [{"a": 1}])

    def test_rejected_batch_rolls_back(self, db, test_user):
        store = SqlAlchemyStore(db)
        # quantity and name are NOT NULL on items
        with pytest.raises(PersistenceError):
            store.insert(
                "items",
                [{"user_id": test_user.id, "collection_id": "x", "name": None, "quantity": None}],
            )

        assert db.query(Item).count() == 0
