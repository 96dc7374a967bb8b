"""Dashboard aggregation service for collections and deliveries."""

import calendar
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, extract, func
from sqlalchemy.orm import Session

from app.cache import QueryCache, get_query_cache
from app.dashboard.schemas import (
    DashboardResponse,
    KindDashboard,
    MonthlyStatusCount,
    StatusMetrics,
    StatusShare,
)
from app.db.models import Collection, CollectionKind, CollectionStatus

# Cache key names per kind: (metrics, status chart, status donut)
CACHE_KEYS: dict[CollectionKind, tuple[str, str, str]] = {
    CollectionKind.COLLECTION: (
        "dashboardColetasMetrics",
        "collectionStatusChart",
        "collectionStatusDonutChart",
    ),
    CollectionKind.DELIVERY: (
        "entregasForMetrics",
        "entregasAtivasStatusChart",
        "entregasAtivasStatusDonutChart",
    ),
}


class DashboardService:
    """Aggregates collections and deliveries into dashboard datasets.

    Results are memoised in the query cache per owner and year; imports
    invalidate them.

    Args:
        db: Database session.
        user_id: Current account ID.
        cache: Query cache.
    """

    def __init__(self, db: Session, user_id: str, cache: QueryCache):
        self.db = db
        self.user_id = user_id
        self.cache = cache

    def get_dashboard(self, year: Optional[int] = None) -> DashboardResponse:
        """Build the complete dashboard response.

        Args:
            year: Reporting year. Defaults to the current year.

        Returns:
            DashboardResponse: Aggregated dashboard data.
        """
        year = year or date.today().year
        return DashboardResponse(
            year=year,
            collections=self.get_kind_dashboard(CollectionKind.COLLECTION, year),
            deliveries=self.get_kind_dashboard(CollectionKind.DELIVERY, year),
        )

    def get_kind_dashboard(self, kind: CollectionKind, year: int) -> KindDashboard:
        metrics_key, chart_key, donut_key = CACHE_KEYS[kind]
        metrics = self.cache.get_or_compute(
            metrics_key, self.user_id, lambda: self._metrics(kind, year), year
        )
        chart = self.cache.get_or_compute(
            chart_key, self.user_id, lambda: self._status_chart(kind, year), year
        )
        donut = self.cache.get_or_compute(
            donut_key, self.user_id, lambda: self._status_donut(metrics), year
        )
        return KindDashboard(metrics=metrics, status_chart=chart, status_donut=donut)

    def _year_filter(self, kind: CollectionKind, year: int):
        return (
            Collection.user_id == self.user_id,
            Collection.kind == kind,
            extract("year", Collection.previsao_coleta) == year,
        )

    def _metrics(self, kind: CollectionKind, year: int) -> StatusMetrics:
        """Totals by status plus freight and requested quantity."""
        row = (
            self.db.query(
                func.count(Collection.id).label("total"),
                func.sum(case((Collection.status == CollectionStatus.PENDING, 1), else_=0)).label(
                    "pending"
                ),
                func.sum(
                    case((Collection.status == CollectionStatus.SCHEDULED, 1), else_=0)
                ).label("scheduled"),
                func.sum(
                    case((Collection.status == CollectionStatus.COMPLETED, 1), else_=0)
                ).label("completed"),
                func.sum(Collection.freight_value).label("freight"),
                func.sum(Collection.qtd_aparelhos_solicitado).label("quantity"),
            )
            .filter(*self._year_filter(kind, year))
            .one()
        )
        return StatusMetrics(
            total=row.total or 0,
            pending=int(row.pending or 0),
            scheduled=int(row.scheduled or 0),
            completed=int(row.completed or 0),
            total_freight=Decimal(str(row.freight or 0)),
            total_quantity=int(row.quantity or 0),
        )

    def _status_chart(self, kind: CollectionKind, year: int) -> list[MonthlyStatusCount]:
        """Count rows per status for each month of the year."""
        month = extract("month", Collection.previsao_coleta)
        rows = (
            self.db.query(
                month.label("m"),
                Collection.status,
                func.count(Collection.id).label("cnt"),
            )
            .filter(*self._year_filter(kind, year))
            .group_by(month, Collection.status)
            .all()
        )

        counts: dict[tuple[int, CollectionStatus], int] = {
            (int(r.m), CollectionStatus(r.status)): int(r.cnt) for r in rows
        }
        return [
            MonthlyStatusCount(
                month=f"{year:04d}-{m:02d}",
                label=calendar.month_abbr[m],
                pending=counts.get((m, CollectionStatus.PENDING), 0),
                scheduled=counts.get((m, CollectionStatus.SCHEDULED), 0),
                completed=counts.get((m, CollectionStatus.COMPLETED), 0),
            )
            for m in range(1, 13)
        ]

    @staticmethod
    def _status_donut(metrics: StatusMetrics) -> list[StatusShare]:
        """Status share derived from the metrics totals."""
        total = max(metrics.total, 1)
        slices = (
            (CollectionStatus.PENDING, metrics.pending),
            (CollectionStatus.SCHEDULED, metrics.scheduled),
            (CollectionStatus.COMPLETED, metrics.completed),
        )
        return [
            StatusShare(
                status=status.value,
                count=count,
                percentage=round(count / total * 100, 1),
            )
            for status, count in slices
        ]


def get_dashboard_service(
    db: Session, user_id: str, cache: Optional[QueryCache] = None
) -> DashboardService:
    """Factory function for DashboardService.

    Args:
        db: Database session.
        user_id: Account ID.
        cache: Query cache, defaults to the process-wide one.

    Returns:
        DashboardService: Service instance.
    """
    return DashboardService(db, user_id, cache or get_query_cache())
