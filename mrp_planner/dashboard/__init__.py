"""Landing-page statistics over purchase orders and stock."""

from .api import router
from .service import DashboardService, DashboardStats

__all__ = ["router", "DashboardService", "DashboardStats"]
