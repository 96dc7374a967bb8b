"""Dashboard API routes."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.dashboard.schemas import DashboardResponse
from app.dashboard.service import DashboardService, get_dashboard_service
from app.dependencies import Cache, CurrentUser, get_db

router = APIRouter()


def get_service(
    db: Annotated[Session, Depends(get_db)],
    current_user: CurrentUser,
    cache: Cache,
) -> DashboardService:
    """Get dashboard service dependency."""
    return get_dashboard_service(db, str(current_user.id), cache)


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    service: Annotated[DashboardService, Depends(get_service)],
    year: Optional[int] = Query(None, ge=2000, le=2100),
):
    """Get aggregated collections and deliveries data.

    Returns metrics, the monthly status chart and the status donut for
    collections and for deliveries in a single response.

    Args:
        service: Dashboard service.
        year: Reporting year, defaults to the current one.

    Returns:
        DashboardResponse: Complete dashboard payload.
    """
    return service.get_dashboard(year)
