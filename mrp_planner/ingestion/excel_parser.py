"""
════════════════════════════════════════════════════════════════════════════════
EXCEL PARSER - Forecast and Stock-on-Hand Uploads
════════════════════════════════════════════════════════════════════════════════

Forecast sheets come straight out of the sales team's planning workbook:
title rows on top, a header row somewhere in the first ten rows, one column
per month ("Jul-25", "Aug-25", ...).

SOH sheets have the header on the first row; column names are resolved
through column_aliases.yaml.

Master-data workbooks carry a "products" and a "bom" sheet laid out like
the workbook data source.
"""

from __future__ import annotations

import logging
import math
import re
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd
import yaml
from pydantic import ValidationError

from mrp_planner.data_loader import as_records, read_sheets
from mrp_planner.projection.adapters import (
    normalize_bom_line_item,
    normalize_month_key,
    normalize_product,
)
from mrp_planner.projection.models import BomLineItem, Product

from .schemas import ForecastRowSchema, SohRowSchema

logger = logging.getLogger(__name__)

ExcelSource = Union[str, Path, BinaryIO]


class ImportFileError(ValueError):
    """Uploaded file cannot be interpreted (no header, missing column, empty)."""


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

COLUMN_ALIASES_PATH = Path(__file__).parent / "data" / "column_aliases.yaml"

HEADER_SCAN_ROWS = 10

_column_aliases_cache: Optional[Dict[str, Any]] = None


def _get_default_aliases() -> Dict[str, Any]:
    return {
        "soh": {
            "part_code": ["Product ID"],
            "stock": ["Stock on Hand"],
            "description": ["Description"],
            "part_type": ["Part Type"],
            "safety_stock": ["Safety Stock"],
        },
    }


def load_column_aliases() -> Dict[str, Any]:
    """Column aliases from YAML (defaults when the file is absent)."""
    global _column_aliases_cache

    if _column_aliases_cache is not None:
        return _column_aliases_cache

    if COLUMN_ALIASES_PATH.exists():
        with open(COLUMN_ALIASES_PATH, "r", encoding="utf-8") as f:
            _column_aliases_cache = yaml.safe_load(f) or {}
    else:
        logger.warning(f"Column aliases file not found: {COLUMN_ALIASES_PATH}")
        _column_aliases_cache = _get_default_aliases()

    return _column_aliases_cache


# ═══════════════════════════════════════════════════════════════════════════════
# CELL HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

_ABBREVIATED_HEADER = re.compile(r"^[A-Za-z]{3}-(\d{2}|\d{4})$")
_ISO_HEADER = re.compile(r"^\d{4}-\d{2}$")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value)) or (
        isinstance(value, str) and not value.strip()
    )


def _cell_text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _squash(text: str) -> str:
    return re.sub(r"\s+", "", text).lower()


def parse_month_header(header: Any) -> Optional[str]:
    """
    Month column header -> "YYYY-MM".

    "Jul-25" -> "2025-07", "Jul-2025" -> "2025-07", "2025-07" -> "2025-07".
    Date cells (Excel stores some headers as real dates) are accepted too.
    Returns None for anything else.
    """
    if isinstance(header, (datetime, date)):
        return normalize_month_key(header)
    if not isinstance(header, str):
        return None
    text = header.strip()
    if _ABBREVIATED_HEADER.match(text) or _ISO_HEADER.match(text):
        return normalize_month_key(text)
    return None


def _to_quantity(value: Any) -> float:
    """Numeric cell value; anything non-numeric counts as 0."""
    if _is_blank(value):
        return 0.0
    try:
        number = float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def _read_rows(source: ExcelSource) -> List[List[Any]]:
    """First sheet as a list of row lists (no header interpretation)."""
    try:
        df = pd.read_excel(source, sheet_name=0, header=None)
    except (ValueError, zipfile.BadZipFile) as e:
        raise ImportFileError(f"Could not read Excel file: {e}") from e
    return df.astype(object).where(pd.notna(df), None).values.tolist()


# ═══════════════════════════════════════════════════════════════════════════════
# FORECASTS
# ═══════════════════════════════════════════════════════════════════════════════

def find_header_row(rows: Sequence[Sequence[Any]], max_scan: int = HEADER_SCAN_ROWS) -> int:
    """
    Index of the forecast header row, or -1.

    A header row has a cell containing "product" plus either a cell
    containing "description" or a month-like cell.
    """
    for index, row in enumerate(rows[:max_scan]):
        if not row:
            continue
        texts = [cell.lower() for cell in row if isinstance(cell, str)]
        has_product = any("product" in text for text in texts)
        has_description = any("description" in text for text in texts)
        has_month = any(parse_month_header(cell) for cell in row)
        if has_product and (has_description or has_month):
            return index
    return -1


def parse_forecast_workbook(source: ExcelSource) -> List[ForecastRowSchema]:
    """
    Parse a forecast upload into one row per product per month.

    Raises:
        ImportFileError: no header row or no product column
    """
    rows = _read_rows(source)
    header_index = find_header_row(rows)
    if header_index == -1:
        raise ImportFileError(
            'Could not find a valid header row. Ensure the file contains columns for "Product" '
            'and "Description" or month columns (e.g., Aug-25).'
        )

    headers = rows[header_index]
    logger.info(f"Found forecast headers at row {header_index + 1}")

    header_texts = [h.strip().lower() if isinstance(h, str) else "" for h in headers]
    product_col = next((i for i, h in enumerate(header_texts) if "product" in h), -1)
    description_col = next((i for i, h in enumerate(header_texts) if "description" in h), -1)
    if product_col == -1:
        raise ImportFileError("The identified header row is missing a 'Product' column.")

    month_columns: List[Tuple[int, str]] = []
    for col, header in enumerate(headers):
        month = parse_month_header(header)
        if month is not None:
            month_columns.append((col, month))
    if not month_columns:
        logger.warning("Forecast header row has no month columns")

    parsed: List[ForecastRowSchema] = []
    for row in rows[header_index + 1:]:
        product_code = _cell_text(row[product_col]) if product_col < len(row) else ""
        if not product_code:
            continue
        description = _cell_text(row[description_col]) if 0 <= description_col < len(row) else ""
        for col, month in month_columns:
            value = row[col] if col < len(row) else None
            year, month_number = (int(part) for part in month.split("-"))
            parsed.append(ForecastRowSchema(
                product_code=product_code,
                description=description,
                forecast_date=date(year, month_number, 1),
                quantity=_to_quantity(value),
            ))

    logger.info(f"Found {len(parsed)} forecast entries")
    return parsed


# ═══════════════════════════════════════════════════════════════════════════════
# STOCK ON HAND
# ═══════════════════════════════════════════════════════════════════════════════

def _map_columns(headers: Sequence[Any], data_type: str) -> Dict[str, int]:
    """Field name -> column index, using whitespace/case-insensitive matching."""
    aliases = load_column_aliases().get(data_type, {})
    squashed = [_squash(_cell_text(h)) for h in headers]

    mapping: Dict[str, int] = {}
    for field_name, field_aliases in aliases.items():
        for alias in field_aliases:
            key = _squash(alias)
            if key in squashed:
                mapping[field_name] = squashed.index(key)
                break
    return mapping


def parse_soh_workbook(source: ExcelSource) -> Tuple[List[SohRowSchema], int]:
    """
    Parse a stock-on-hand upload (header on the first row).

    Rows with an empty part code or a non-numeric stock value are counted
    as errors and skipped.

    Returns:
        (rows, error_count)
    """
    rows = _read_rows(source)
    if len(rows) < 2:
        raise ImportFileError("No data found in the Excel file.")

    mapping = _map_columns(rows[0], "soh")
    if "part_code" not in mapping:
        raise ImportFileError("Could not find 'Product ID' column.")
    if "stock" not in mapping:
        raise ImportFileError("Could not find 'Stock on Hand' column.")

    def cell(row: Sequence[Any], field_name: str) -> Any:
        col = mapping.get(field_name)
        return row[col] if col is not None and col < len(row) else None

    parsed: List[SohRowSchema] = []
    error_count = 0
    for row in rows[1:]:
        part_code = _cell_text(cell(row, "part_code"))
        stock = cell(row, "stock")
        if not part_code or _is_blank(stock):
            error_count += 1
            continue
        try:
            stock_value = float(stock)
        except (TypeError, ValueError):
            error_count += 1
            continue

        safety = cell(row, "safety_stock")
        try:
            parsed.append(SohRowSchema(
                part_code=part_code,
                description=_cell_text(cell(row, "description")) or "N/A",
                stock=stock_value,
                part_type=_cell_text(cell(row, "part_type")) or None,
                safety_stock=None if "safety_stock" not in mapping else _to_quantity(safety),
            ))
        except ValidationError as e:
            logger.warning(f"SOH row {part_code} rejected: {e}")
            error_count += 1

    logger.info(f"Parsed {len(parsed)} SOH rows ({error_count} invalid)")
    return parsed, error_count


# ═══════════════════════════════════════════════════════════════════════════════
# MASTER DATA
# ═══════════════════════════════════════════════════════════════════════════════

def parse_master_data_workbook(source: ExcelSource) -> Tuple[List[Product], List[BomLineItem]]:
    """
    Parse a products + BOM upload.

    BOM lines reference products through the "id" column of the products
    sheet. Rows without a code are skipped by the normalizers.
    """
    try:
        sheets = read_sheets(source, ("products", "bom"))
    except (ValueError, zipfile.BadZipFile) as e:
        raise ImportFileError(f"Could not read Excel file: {e}") from e

    products = [
        product for product in (normalize_product(r) for r in as_records(sheets["products"]))
        if product is not None
    ]
    if not products:
        raise ImportFileError("No products found in the 'products' sheet.")

    bom_items = [
        item for item in (normalize_bom_line_item(r) for r in as_records(sheets["bom"]))
        if item is not None
    ]
    logger.info(f"Parsed {len(products)} products and {len(bom_items)} BOM lines")
    return products, bom_items
