"""Tests for the dashboard API endpoint."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from app.cache import get_query_cache
from app.dashboard.service import DashboardService
from app.db.models import Collection, CollectionKind, CollectionStatus
from app.imports.schemas import CollectionRecord, ImportKind
from app.imports.store import SqlAlchemyStore
from app.imports.writer import ImportWriter, Owner


def _make_collection(
    db,
    user_id,
    when,
    status=CollectionStatus.PENDING,
    kind=CollectionKind.COLLECTION,
    freight="10.00",
    quantity=1,
):
    """Create a test collection.

    Args:
        db: Database session.
        user_id: Owner account ID.
        when: Requested pickup date.
        status: Collection status.
        kind: Collection or delivery.
        freight: Freight value.
        quantity: Requested quantity.

    Returns:
        Collection: The created row.
    """
    collection = Collection(
        id=str(uuid4()),
        user_id=user_id,
        parceiro="Acme",
        endereco_origem="Rua A, 1",
        previsao_coleta=when,
        status=status,
        kind=kind,
        freight_value=Decimal(freight),
        qtd_aparelhos_solicitado=quantity,
    )
    db.add(collection)
    db.commit()
    return collection


class TestDashboardEndpoint:
    """Tests for GET /api/dashboard."""

    def test_unauthenticated_returns_401(self, client):
        response = client.get("/api/dashboard")
        assert response.status_code == 401

    def test_empty_account_returns_zeroes(self, authenticated_client):
        response = authenticated_client.get("/api/dashboard?year=2026")

        assert response.status_code == 200
        data = response.json()
        assert data["year"] == 2026
        for section in ("collections", "deliveries"):
            assert data[section]["metrics"]["total"] == 0
            assert len(data[section]["status_chart"]) == 12
            assert [s["status"] for s in data[section]["status_donut"]] == [
                "pendente",
                "agendada",
                "concluida",
            ]

    def test_metrics_by_kind(self, authenticated_client, db, test_user):
        _make_collection(db, test_user.id, date(2026, 1, 5), quantity=2)
        _make_collection(db, test_user.id, date(2026, 1, 9), CollectionStatus.COMPLETED)
        _make_collection(
            db, test_user.id, date(2026, 3, 1), CollectionStatus.SCHEDULED, freight="5.50"
        )
        _make_collection(
            db, test_user.id, date(2026, 3, 2), kind=CollectionKind.DELIVERY, freight="99.00"
        )

        data = authenticated_client.get("/api/dashboard?year=2026").json()

        metrics = data["collections"]["metrics"]
        assert metrics["total"] == 3
        assert metrics["pending"] == 1
        assert metrics["scheduled"] == 1
        assert metrics["completed"] == 1
        assert Decimal(str(metrics["total_freight"])) == Decimal("25.50")
        assert metrics["total_quantity"] == 4
        assert data["deliveries"]["metrics"]["total"] == 1

    def test_status_chart_per_month(self, authenticated_client, db, test_user):
        _make_collection(db, test_user.id, date(2026, 1, 5))
        _make_collection(db, test_user.id, date(2026, 1, 20), CollectionStatus.COMPLETED)
        _make_collection(db, test_user.id, date(2026, 4, 2), CollectionStatus.SCHEDULED)
        _make_collection(db, test_user.id, date(2025, 4, 2))

        chart = authenticated_client.get("/api/dashboard?year=2026").json()["collections"][
            "status_chart"
        ]

        assert chart[0]["month"] == "2026-01"
        assert chart[0]["label"] == "Jan"
        assert (chart[0]["pending"], chart[0]["completed"]) == (1, 1)
        assert chart[3]["scheduled"] == 1
        assert sum(m["pending"] for m in chart) == 1

    def test_donut_percentages(self, authenticated_client, db, test_user):
        _make_collection(db, test_user.id, date(2026, 2, 1))
        _make_collection(db, test_user.id, date(2026, 2, 2), CollectionStatus.COMPLETED)
        _make_collection(db, test_user.id, date(2026, 2, 3), CollectionStatus.COMPLETED)
        _make_collection(db, test_user.id, date(2026, 2, 4), CollectionStatus.COMPLETED)

        donut = authenticated_client.get("/api/dashboard?year=2026").json()["collections"][
            "status_donut"
        ]

        shares = {s["status"]: s["percentage"] for s in donut}
        assert shares == {"pendente": 25.0, "agendada": 0.0, "concluida": 75.0}

    def test_other_accounts_excluded(self, authenticated_client, db, other_user):
        _make_collection(db, other_user.id, date(2026, 2, 1))

        data = authenticated_client.get("/api/dashboard?year=2026").json()

        assert data["collections"]["metrics"]["total"] == 0

    def test_invalid_year_rejected(self, authenticated_client):
        response = authenticated_client.get("/api/dashboard?year=1800")
        assert response.status_code == 422


class TestDashboardCache:
    """Tests for memoisation and import-driven invalidation."""

    def test_results_cached_until_import(self, db, test_user):
        cache = get_query_cache()
        service = DashboardService(db, test_user.id, cache)
        _make_collection(db, test_user.id, date(2026, 6, 1))

        assert service.get_dashboard(2026).collections.metrics.total == 1

        # A row added behind the cache's back is not seen yet
        _make_collection(db, test_user.id, date(2026, 6, 2))
        assert service.get_dashboard(2026).collections.metrics.total == 1

        record = CollectionRecord(
            parceiro="Beta", endereco_origem="Rua B", previsao_coleta=date(2026, 6, 3)
        )
        ImportWriter(SqlAlchemyStore(db), cache).write(
            ImportKind.COLLECTIONS, [record], Owner(user_id=test_user.id)
        )

        assert service.get_dashboard(2026).collections.metrics.total == 3

    def test_cache_scoped_by_year(self, db, test_user):
        service = DashboardService(db, test_user.id, get_query_cache())
        _make_collection(db, test_user.id, date(2025, 6, 1))

        assert service.get_dashboard(2026).collections.metrics.total == 0
        assert service.get_dashboard(2025).collections.metrics.total == 1
