"""
════════════════════════════════════════════════════════════════════════════════
CATALOG SERVICE - Master Data Reads
════════════════════════════════════════════════════════════════════════════════

Read access to products (with their BOM), stock on hand and forecasts.

The forecast table is pivoted for display: one row per product with a
"YYYY-MM" key per month, plus headers labelled "Mmm-YY".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from mrp_planner.database import ForecastRecord, ProductRecord, SohRecord

logger = logging.getLogger(__name__)

FORECAST_WINDOWS = ("4", "6", "9", "all")
DEFAULT_FORECAST_WINDOW = "4"


class ProductNotFound(LookupError):
    """No product with the requested code."""


@dataclass
class ForecastTable:
    """Pivoted forecasts: headers [{key, label}] and one row per product."""
    headers: List[Dict[str, str]] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"headers": self.headers, "rows": self.rows}


def month_label(month_key: str) -> str:
    """'2025-08' -> 'Aug-25'."""
    year, month = month_key.split("-")
    return date(int(year), int(month), 1).strftime("%b-%y")


def forecast_window(months: str, today: date) -> Optional[tuple[date, date]]:
    """
    First and last day covered by the next `months` months, current month
    included; None for "all".
    """
    if months == "all":
        return None
    count = int(months)
    start = today.replace(day=1)
    last_month_index = start.year * 12 + start.month - 1 + count
    next_after = date(last_month_index // 12, last_month_index % 12 + 1, 1)
    end = date.fromordinal(next_after.toordinal() - 1)
    return start, end


class CatalogService:
    """Queries over the master-data tables."""

    def __init__(self, db: Session):
        self.db = db

    # ───────────────────────────────────────────────────────────────────────
    # Products
    # ───────────────────────────────────────────────────────────────────────

    def list_products(self) -> List[ProductRecord]:
        return (
            self.db.query(ProductRecord)
            .options(selectinload(ProductRecord.bom_items))
            .order_by(ProductRecord.product_code)
            .all()
        )

    def get_product(self, product_code: str) -> ProductRecord:
        product = (
            self.db.query(ProductRecord)
            .options(selectinload(ProductRecord.bom_items))
            .filter(ProductRecord.product_code == product_code)
            .first()
        )
        if product is None:
            raise ProductNotFound(f"Product {product_code} not found")
        return product

    # ───────────────────────────────────────────────────────────────────────
    # Stock on hand
    # ───────────────────────────────────────────────────────────────────────

    def list_soh(self, search: Optional[str] = None) -> List[SohRecord]:
        query = self.db.query(SohRecord)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                SohRecord.part_code.ilike(pattern),
                SohRecord.description.ilike(pattern),
            ))
        return query.order_by(SohRecord.part_code).all()

    # ───────────────────────────────────────────────────────────────────────
    # Forecasts
    # ───────────────────────────────────────────────────────────────────────

    def forecast_table(
        self,
        months: str = DEFAULT_FORECAST_WINDOW,
        search: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ForecastTable:
        """
        Forecasts pivoted to one row per product.

        Args:
            months: "4", "6", "9" or "all"; a window starting this month
            search: substring of product code or description (case-insensitive)
            today: reference date for the window
        """
        if months not in FORECAST_WINDOWS:
            raise ValueError(f"months must be one of {', '.join(FORECAST_WINDOWS)}")

        query = self.db.query(ForecastRecord)
        window = forecast_window(months, today or date.today())
        if window is not None:
            start, end = window
            query = query.filter(ForecastRecord.forecast_date >= start, ForecastRecord.forecast_date <= end)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                ForecastRecord.product_code.ilike(pattern),
                ForecastRecord.description.ilike(pattern),
            ))
        records = query.order_by(ForecastRecord.forecast_date, ForecastRecord.id).all()

        rows: Dict[str, Dict[str, Any]] = {}
        month_keys = set()
        for record in records:
            key = record.forecast_date.strftime("%Y-%m")
            month_keys.add(key)
            row = rows.setdefault(
                record.product_code,
                {"product_code": record.product_code, "description": record.description or ""},
            )
            row[key] = record.quantity

        headers = [
            {"key": "product_code", "label": "Product Code"},
            {"key": "description", "label": "Description"},
        ] + [{"key": key, "label": month_label(key)} for key in sorted(month_keys)]

        logger.info(f"Forecast table: {len(rows)} products, {len(month_keys)} months (window={months})")
        return ForecastTable(headers=headers, rows=list(rows.values()))

    def delete_all_forecasts(self) -> int:
        deleted = self.db.query(ForecastRecord).delete()
        self.db.commit()
        logger.info(f"Deleted all {deleted} forecast rows")
        return deleted
