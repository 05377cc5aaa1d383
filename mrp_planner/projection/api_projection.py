"""
MRP Planner - Projection API
============================

REST endpoints over the inventory projection.

Endpoints:
- GET /mrp/projection                    - Projection per component (filterable)
- GET /mrp/projection/summary            - Health counts and critical components
- GET /mrp/projection/recommendations    - Purchase recommendations
- GET /mrp/projection/export             - Excel / CSV download
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from mrp_planner.settings import PlannerSettings, get_settings

from .adapters import DataSource, make_data_source
from .models import HealthStatus, InventoryProjection
from .orchestrator import MRPProjectionService, ProjectionDataError
from .reporting import (
    filter_projections,
    recommend_purchases,
    summarize,
    to_csv_bytes,
    to_excel_bytes,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mrp/projection", tags=["MRP Projection"])


# ═══════════════════════════════════════════════════════════════════════════════
# RESPONSE MODELS
# ═══════════════════════════════════════════════════════════════════════════════

class ComponentResponse(BaseModel):
    part_code: str
    description: str
    stock: int
    safety_stock: float
    part_type: str


class MonthlyProjectionResponse(BaseModel):
    month: str
    total_demand: float
    coverage_percentage: float
    projected_soh: float
    shortfall: float
    days_of_coverage: int


class InventoryProjectionResponse(BaseModel):
    """Projection of one component."""
    component: ComponentResponse
    skus_used_in: List[str]
    display_part_type: str
    display_description: str
    four_month_demand: float
    net_four_month_demand: float
    total_annual_demand: float
    average_monthly_demand: float
    projections: List[MonthlyProjectionResponse]
    overall_health: str
    priority: str
    recommended_action: str


class ProjectionListResponse(BaseModel):
    total: int
    items: List[InventoryProjectionResponse]


class ProjectionSummaryResponse(BaseModel):
    total_components: int
    healthy_count: int
    risk_count: int
    shortage_count: int
    total_demand_value: float
    critical_components: List[InventoryProjectionResponse]


class PurchaseRecommendationResponse(BaseModel):
    part_code: str
    description: str
    current_stock: float
    recommended_quantity: int
    priority: str
    reason: str


# ═══════════════════════════════════════════════════════════════════════════════
# DEPENDENCIES
# ═══════════════════════════════════════════════════════════════════════════════

def get_data_source(settings: PlannerSettings = Depends(get_settings)) -> DataSource:
    return make_data_source(settings)


def get_projection_service(
    data_source: DataSource = Depends(get_data_source),
    settings: PlannerSettings = Depends(get_settings),
) -> MRPProjectionService:
    return MRPProjectionService(data_source, settings)


async def _run(service: MRPProjectionService) -> List[InventoryProjection]:
    try:
        return await service.run_projection()
    except ProjectionDataError as e:
        logger.error(f"Projection failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))


# ═══════════════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("", response_model=ProjectionListResponse)
async def get_projection(
    health: Optional[HealthStatus] = Query(default=None, description="Healthy, Risk or Shortage"),
    search: Optional[str] = Query(default=None, description="Part code, description or SKU"),
    service: MRPProjectionService = Depends(get_projection_service),
):
    """
    Projection for every component with forecast demand.

    Filters apply after the run; totals refer to the filtered list.
    """
    projections = filter_projections(await _run(service), health=health, search=search)
    return {"total": len(projections), "items": [p.to_dict() for p in projections]}


@router.get("/summary", response_model=ProjectionSummaryResponse)
async def get_projection_summary(
    service: MRPProjectionService = Depends(get_projection_service),
):
    projections = await _run(service)
    return summarize(projections, critical_limit=service.settings.critical_limit).to_dict()


@router.get("/recommendations", response_model=List[PurchaseRecommendationResponse])
async def get_purchase_recommendations(
    service: MRPProjectionService = Depends(get_projection_service),
):
    """Components with positive net demand, High priority first."""
    projections = await _run(service)
    return [r.to_dict() for r in recommend_purchases(projections)]


@router.get("/export")
async def export_projection(
    format: str = Query(default="xlsx", pattern="^(xlsx|csv)$"),
    service: MRPProjectionService = Depends(get_projection_service),
):
    """Download the projection as an Excel workbook or CSV file."""
    projections = await _run(service)

    if format == "csv":
        return Response(
            content=to_csv_bytes(projections),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="mrp_projection.csv"'},
        )

    return Response(
        content=to_excel_bytes(projections),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": 'attachment; filename="mrp_projection.xlsx"'},
    )
