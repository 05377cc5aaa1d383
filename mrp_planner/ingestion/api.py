"""
════════════════════════════════════════════════════════════════════════════════
INGESTION API - Excel Upload Endpoints
════════════════════════════════════════════════════════════════════════════════

Endpoints:
- POST /ingestion/forecasts/excel
- POST /ingestion/soh/excel
- POST /ingestion/products/excel
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from mrp_planner.database import get_db

from .excel_parser import ImportFileError
from .schemas import ImportResult
from .services import get_ingestion_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingestion", tags=["Data Ingestion"])


def _require_excel(file: UploadFile) -> None:
    if not file.filename or not file.filename.lower().endswith((".xlsx", ".xls")):
        raise HTTPException(status_code=400, detail="File must be an Excel workbook (.xlsx or .xls)")


# ═══════════════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("/forecasts/excel", response_model=ImportResult, status_code=201)
async def import_forecasts_excel(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """
    Replace all forecasts with the uploaded workbook.

    The header row is detected within the first 10 rows; month columns use
    the "Mmm-YY" format (e.g. Aug-25).
    """
    _require_excel(file)
    try:
        return get_ingestion_service().import_forecasts(file, db)
    except ImportFileError as e:
        logger.warning(f"Forecast upload rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/soh/excel", response_model=ImportResult)
async def import_soh_excel(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """
    Merge stock on hand by part code.

    Required columns: "Product ID" and "Stock on Hand".
    """
    _require_excel(file)
    try:
        return get_ingestion_service().import_soh(file, db)
    except ImportFileError as e:
        logger.warning(f"SOH upload rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/products/excel", response_model=ImportResult)
async def import_products_excel(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """
    Upsert products and replace their BOM lines.

    The workbook needs a "products" sheet (id, product_code, ...) and a
    "bom" sheet (product_id, part_code, per_shipper, part_type, ...).
    """
    _require_excel(file)
    try:
        return get_ingestion_service().import_products(file, db)
    except ImportFileError as e:
        logger.warning(f"Product upload rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
