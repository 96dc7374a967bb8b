"""Dashboard module."""

from app.dashboard.service import DashboardService, get_dashboard_service

__all__ = ["DashboardService", "get_dashboard_service"]
