"""
════════════════════════════════════════════════════════════════════════════════
CATALOG API - Products, Stock on Hand and Forecasts
════════════════════════════════════════════════════════════════════════════════

Endpoints:
- GET    /products                  - Products with their BOM lines
- GET    /products/{product_code}   - One product with its BOM lines
- GET    /soh                       - Stock on hand (?search=)
- GET    /forecasts                 - Pivoted forecast table (?months=4|6|9|all&search=)
- DELETE /forecasts/delete-all      - Remove every forecast row
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from mrp_planner.database import get_db

from .service import DEFAULT_FORECAST_WINDOW, CatalogService, ProductNotFound

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Master Data"])


# ═══════════════════════════════════════════════════════════════════════════════
# RESPONSE MODELS
# ═══════════════════════════════════════════════════════════════════════════════

class BomItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    part_code: str
    per_shipper: Optional[float] = None
    part_type: Optional[str] = None
    part_description: Optional[str] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_code: str
    description: Optional[str] = None
    units_per_shipper: Optional[float] = None
    price_per_shipper: Optional[float] = None
    daily_run_rate: Optional[float] = None
    hourly_run_rate: Optional[float] = None
    mins_per_shipper: Optional[float] = None
    bom_items: List[BomItemResponse] = []


class SohResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    part_code: str
    description: Optional[str] = None
    stock: Optional[float] = None
    safety_stock: Optional[float] = None
    part_type: Optional[str] = None
    updated_at: Optional[datetime] = None


class ForecastHeader(BaseModel):
    key: str
    label: str


class ForecastTableResponse(BaseModel):
    success: bool = True
    headers: List[ForecastHeader]
    rows: List[Dict[str, Any]]


class DeleteResponse(BaseModel):
    success: bool
    deleted_count: int
    message: str


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


# ═══════════════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("/products", response_model=List[ProductResponse])
async def list_products(service: CatalogService = Depends(get_catalog_service)):
    return service.list_products()


@router.get("/products/{product_code}", response_model=ProductResponse)
async def get_product(product_code: str, service: CatalogService = Depends(get_catalog_service)):
    try:
        return service.get_product(product_code)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/soh", response_model=List[SohResponse])
async def list_soh(
    search: Optional[str] = Query(default=None, description="Part code or description"),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.list_soh(search=search)


@router.get("/forecasts", response_model=ForecastTableResponse)
async def get_forecast_table(
    months: str = Query(default=DEFAULT_FORECAST_WINDOW, pattern="^(4|6|9|all)$"),
    search: Optional[str] = Query(default=None, description="Product code or description"),
    service: CatalogService = Depends(get_catalog_service),
):
    """Forecasts as a table: one row per product, one column per month."""
    table = service.forecast_table(months=months, search=search)
    return {"success": True, **table.to_dict()}


@router.delete("/forecasts/delete-all", response_model=DeleteResponse)
async def delete_all_forecasts(service: CatalogService = Depends(get_catalog_service)):
    deleted = service.delete_all_forecasts()
    return {
        "success": True,
        "deleted_count": deleted,
        "message": "All forecast data has been successfully deleted.",
    }
