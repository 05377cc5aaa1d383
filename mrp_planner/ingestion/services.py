"""
════════════════════════════════════════════════════════════════════════════════
INGESTION SERVICES - Forecast, SOH and Product Imports
════════════════════════════════════════════════════════════════════════════════

- Forecast upload replaces every stored forecast row.
- SOH upload upserts by part code; parts missing from the file are kept.
- Product upload upserts by product code and replaces the BOM of every
  product in the file.
"""

from __future__ import annotations

import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from mrp_planner.database import BomItemRecord, ForecastRecord, ProductRecord, SohRecord

from .excel_parser import (
    ImportFileError,
    parse_forecast_workbook,
    parse_master_data_workbook,
    parse_soh_workbook,
)
from .schemas import ImportResult

logger = logging.getLogger(__name__)


def _read_upload(file: Any) -> io.BytesIO:
    """Upload contents as an in-memory buffer (UploadFile or file object)."""
    stream = getattr(file, "file", file)
    stream.seek(0)
    content = stream.read()
    if not content:
        raise ImportFileError("Uploaded file is empty.")
    return io.BytesIO(content)


def _filename(file: Any) -> str:
    return getattr(file, "filename", None) or "unknown"


# ═══════════════════════════════════════════════════════════════════════════════
# SERVICE CLASS
# ═══════════════════════════════════════════════════════════════════════════════

class IngestionService:
    """Imports uploaded Excel files into the master-data tables."""

    def import_forecasts(self, file: Any, db: Session) -> ImportResult:
        """
        Replace all forecasts with the uploaded sheet.

        Raises:
            ImportFileError: the sheet has no usable header
        """
        source_file = _filename(file)
        rows = parse_forecast_workbook(_read_upload(file))

        warnings: List[str] = []
        if not rows:
            warnings.append("No forecast entries found; existing forecasts were cleared.")

        deleted = db.query(ForecastRecord).delete()
        for row in rows:
            db.add(ForecastRecord(
                product_code=row.product_code,
                description=row.description,
                forecast_date=row.forecast_date,
                quantity=row.quantity,
            ))
        db.commit()

        logger.info(f"Forecast import from {source_file}: replaced {deleted} rows with {len(rows)}")
        return ImportResult(
            success=True,
            imported_count=len(rows),
            failed_count=0,
            warnings=warnings,
            source_file=source_file,
        )

    def import_soh(self, file: Any, db: Session) -> ImportResult:
        """
        Merge the uploaded stock-on-hand sheet into the soh table.

        Raises:
            ImportFileError: required columns are missing or the sheet is empty
        """
        source_file = _filename(file)
        rows, error_count = parse_soh_workbook(_read_upload(file))

        existing = {
            record.part_code: record
            for record in db.query(SohRecord).filter(
                SohRecord.part_code.in_([row.part_code for row in rows])
            ).all()
        }

        now = datetime.utcnow()
        created = 0
        for row in rows:
            record = existing.get(row.part_code)
            if record is None:
                record = SohRecord(part_code=row.part_code, safety_stock=0)
                db.add(record)
                existing[row.part_code] = record
                created += 1
            record.description = row.description
            record.stock = row.stock
            if row.part_type is not None:
                record.part_type = row.part_type
            if row.safety_stock is not None:
                record.safety_stock = row.safety_stock
            record.updated_at = now
        db.commit()

        errors: List[str] = []
        if error_count:
            errors.append(f"{error_count} rows skipped: missing part code or non-numeric stock")

        logger.info(
            f"SOH import from {source_file}: {len(rows)} rows ({created} new), {error_count} invalid"
        )
        return ImportResult(
            success=True,
            imported_count=len(rows),
            failed_count=error_count,
            errors=errors,
            source_file=source_file,
        )

    def import_products(self, file: Any, db: Session) -> ImportResult:
        """
        Upsert products by product code and replace their BOM lines.

        BOM lines whose product id is not on the products sheet are counted
        as failures.

        Raises:
            ImportFileError: a sheet is missing or holds no products
        """
        source_file = _filename(file)
        products, bom_items = parse_master_data_workbook(_read_upload(file))

        existing = {
            record.product_code: record
            for record in db.query(ProductRecord).filter(
                ProductRecord.product_code.in_([p.product_code for p in products])
            ).all()
        }

        records_by_sheet_id: Dict[str, ProductRecord] = {}
        created = 0
        for product in products:
            record = existing.get(product.product_code)
            if record is None:
                record = ProductRecord(product_code=product.product_code)
                db.add(record)
                existing[product.product_code] = record
                created += 1
            record.description = product.description or None
            record.units_per_shipper = product.units_per_shipper
            record.price_per_shipper = product.price_per_shipper
            record.daily_run_rate = product.daily_run_rate
            record.hourly_run_rate = product.hourly_run_rate
            record.mins_per_shipper = product.mins_per_shipper
            records_by_sheet_id[product.id] = record
        db.flush()

        for record in records_by_sheet_id.values():
            db.query(BomItemRecord).filter(BomItemRecord.product_id == record.id).delete()

        unmatched = 0
        for item in bom_items:
            record = records_by_sheet_id.get(item.product_id)
            if record is None:
                unmatched += 1
                continue
            db.add(BomItemRecord(
                product_id=record.id,
                part_code=item.part_code,
                per_shipper=item.per_shipper,
                part_type=item.part_type or None,
                part_description=item.part_description or None,
            ))
        db.commit()

        errors: List[str] = []
        if unmatched:
            errors.append(f"{unmatched} BOM lines skipped: product id not on the products sheet")

        logger.info(
            f"Product import from {source_file}: {len(products)} products ({created} new), "
            f"{len(bom_items) - unmatched} BOM lines"
        )
        return ImportResult(
            success=True,
            imported_count=len(products),
            failed_count=unmatched,
            errors=errors,
            source_file=source_file,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_service_instance: Optional[IngestionService] = None


def get_ingestion_service() -> IngestionService:
    """Get singleton service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IngestionService()
    return _service_instance
