"""
MRP Planner - Purchase Order API
================================

Endpoints:
- GET    /purchase-orders                      - Paged list (?status=&search=&page=&limit=&sort_direction=)
- POST   /purchase-orders                      - Create
- GET    /purchase-orders/{po_id}              - Detail
- POST   /purchase-orders/{po_id}/status       - Toggle a status tag
- POST   /purchase-orders/{po_id}/resolve      - Clear PO Check
- PUT    /purchase-orders/{po_id}              - Correct quantity / amount
- POST   /purchase-orders/{po_id}/despatch     - Mark despatched
- POST   /purchase-orders/{po_id}/reopen       - Undo despatch
- DELETE /purchase-orders/{po_id}              - Delete
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from mrp_planner.database import get_db
from mrp_planner.settings import PlannerSettings, get_settings

from .rules import PoStatus, PurchaseOrderError, PurchaseOrderNotFound
from .service import DEFAULT_PAGE_SIZE, PurchaseOrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/purchase-orders", tags=["Purchase Orders"])


# ═══════════════════════════════════════════════════════════════════════════════
# REQUEST/RESPONSE MODELS
# ═══════════════════════════════════════════════════════════════════════════════

class PurchaseOrderCreate(BaseModel):
    po_number: str = Field(..., min_length=1)
    product_code: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    po_created_date: date
    po_received_date: date
    requested_delivery_date: Optional[date] = None
    ordered_qty_pieces: float = Field(..., gt=0)
    customer_amount: float = Field(..., ge=0)
    notes: Optional[str] = None


class PurchaseOrderAmounts(BaseModel):
    ordered_qty_pieces: float = Field(..., gt=0)
    customer_amount: float = Field(..., ge=0)


class StatusToggle(BaseModel):
    status: PoStatus


class DespatchRequest(BaseModel):
    delivery_date: date
    delivery_docket_number: str = Field(..., min_length=1)


class PurchaseOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    po_number: str
    product_code: str
    customer_name: str
    status: List[str]
    po_created_date: date
    po_received_date: date
    requested_delivery_date: Optional[date] = None
    ordered_qty_pieces: float
    ordered_qty_shippers: float
    customer_amount: float
    system_amount: float
    delivery_date: Optional[date] = None
    delivery_docket_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class PurchaseOrderListResponse(BaseModel):
    data: List[PurchaseOrderResponse]
    pagination: Pagination


# ═══════════════════════════════════════════════════════════════════════════════
# DEPENDENCIES
# ═══════════════════════════════════════════════════════════════════════════════

def get_po_service(
    db: Session = Depends(get_db),
    settings: PlannerSettings = Depends(get_settings),
) -> PurchaseOrderService:
    return PurchaseOrderService(db, settings)


def _raise_http(e: Exception) -> None:
    if isinstance(e, PurchaseOrderNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    logger.warning(f"Purchase order rejected: {e}")
    raise HTTPException(status_code=400, detail=str(e))


# ═══════════════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("", response_model=PurchaseOrderListResponse)
async def list_purchase_orders(
    status: Optional[PoStatus] = Query(default=None, description="Only orders carrying this tag"),
    search: Optional[str] = Query(default=None, description="PO number, customer or product code"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=200),
    sort_direction: str = Query(default="desc", pattern="^(asc|desc)$"),
    service: PurchaseOrderService = Depends(get_po_service),
):
    result = service.list_orders(
        status=status.value if status else None,
        search=search,
        page=page,
        limit=limit,
        sort_direction=sort_direction,
    )
    return {
        "data": result.items,
        "pagination": {
            "total": result.total,
            "page": result.page,
            "limit": result.limit,
            "total_pages": result.total_pages,
        },
    }


@router.post("", response_model=PurchaseOrderResponse, status_code=201)
async def create_purchase_order(
    request: PurchaseOrderCreate,
    service: PurchaseOrderService = Depends(get_po_service),
):
    """
    Create a purchase order.

    The customer amount is checked against the product price; a difference
    above the tolerance flags the order as "PO Check".
    """
    try:
        return service.create(**request.model_dump())
    except PurchaseOrderError as e:
        _raise_http(e)


@router.get("/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(po_id: int, service: PurchaseOrderService = Depends(get_po_service)):
    try:
        return service.get(po_id)
    except PurchaseOrderNotFound as e:
        _raise_http(e)


@router.post("/{po_id}/status", response_model=PurchaseOrderResponse)
async def toggle_purchase_order_status(
    po_id: int,
    request: StatusToggle,
    service: PurchaseOrderService = Depends(get_po_service),
):
    try:
        return service.toggle_status(po_id, request.status)
    except PurchaseOrderNotFound as e:
        _raise_http(e)


@router.post("/{po_id}/resolve", response_model=PurchaseOrderResponse)
async def resolve_po_check(po_id: int, service: PurchaseOrderService = Depends(get_po_service)):
    try:
        return service.resolve_po_check(po_id)
    except (PurchaseOrderError, PurchaseOrderNotFound) as e:
        _raise_http(e)


@router.put("/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    po_id: int,
    request: PurchaseOrderAmounts,
    service: PurchaseOrderService = Depends(get_po_service),
):
    try:
        return service.update_amounts(po_id, request.ordered_qty_pieces, request.customer_amount)
    except (PurchaseOrderError, PurchaseOrderNotFound) as e:
        _raise_http(e)


@router.post("/{po_id}/despatch", response_model=PurchaseOrderResponse)
async def despatch_purchase_order(
    po_id: int,
    request: DespatchRequest,
    service: PurchaseOrderService = Depends(get_po_service),
):
    try:
        return service.despatch(po_id, request.delivery_date, request.delivery_docket_number)
    except PurchaseOrderNotFound as e:
        _raise_http(e)


@router.post("/{po_id}/reopen", response_model=PurchaseOrderResponse)
async def reopen_purchase_order(po_id: int, service: PurchaseOrderService = Depends(get_po_service)):
    try:
        return service.reopen(po_id)
    except PurchaseOrderNotFound as e:
        _raise_http(e)


@router.delete("/{po_id}", status_code=204)
async def delete_purchase_order(po_id: int, service: PurchaseOrderService = Depends(get_po_service)):
    try:
        service.delete(po_id)
    except PurchaseOrderNotFound as e:
        _raise_http(e)
