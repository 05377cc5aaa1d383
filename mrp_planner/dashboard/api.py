"""
MRP Planner - Dashboard API
===========================

Endpoints:
- GET /dashboard/stats - Headline PO and stock figures
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from mrp_planner.database import get_db

from .service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


class DashboardStatsResponse(BaseModel):
    open_po_count: int
    total_open_value: float
    components_at_risk_count: int
    attention_po_count: int
    total_open_work_hours: float
    average_turnaround_days: float


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(db: Session = Depends(get_db)):
    return DashboardService(db).stats().to_dict()
