"""Pydantic schemas for the dashboard API."""

from decimal import Decimal

from pydantic import BaseModel


class StatusMetrics(BaseModel):
    """Headline numbers for collections or deliveries."""

    total: int
    pending: int
    scheduled: int
    completed: int
    total_freight: Decimal
    total_quantity: int


class MonthlyStatusCount(BaseModel):
    """Per-status counts for one month."""

    month: str  # "2026-01"
    label: str  # "Jan"
    pending: int
    scheduled: int
    completed: int


class StatusShare(BaseModel):
    """One slice of the status donut."""

    status: str  # pendente, agendada, concluida
    count: int
    percentage: float


class KindDashboard(BaseModel):
    metrics: StatusMetrics
    status_chart: list[MonthlyStatusCount]
    status_donut: list[StatusShare]


class DashboardResponse(BaseModel):
    """Complete dashboard payload returned by GET /api/dashboard."""

    year: int
    collections: KindDashboard
    deliveries: KindDashboard
