"""
Utilities for loading the MRP master-data workbook into pandas DataFrames.

The workbook holds one sheet per dataset:

    soh        part_code, description, stock, safety_stock, part_type
    products   id, product_code, description, units_per_shipper, ...
    bom        product_id, part_code, per_shipper, part_type, part_description
    forecasts  product_code, description, <one column per month>
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List

import pandas as pd

# Sheets that MUST exist in the workbook
REQUIRED_SHEETS = (
    "soh",
    "products",
    "bom",
    "forecasts",
)


# ---------------------------------------------------
# Data container
# ---------------------------------------------------

@dataclass(frozen=True)
class WorkbookBundle:
    """Typed container for all workbook sheets and metadata."""

    soh: pd.DataFrame
    products: pd.DataFrame
    bom: pd.DataFrame
    forecasts: pd.DataFrame

    raw_path: Path
    loaded_at: datetime


# ---------------------------------------------------
# Cleaning utilities
# ---------------------------------------------------

def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(col).strip() for col in df.columns]
    return df


def _code_text(value: Any) -> Any:
    """Trimmed text for a code cell; 1.0 read from a float column becomes "1"."""
    if pd.isna(value):
        return value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _clean_codes(df: pd.DataFrame, columns: tuple[str, ...]) -> pd.DataFrame:
    """Codes are identifiers: read them as trimmed strings."""
    df = df.copy()
    for column in columns:
        if column in df.columns:
            df[column] = df[column].map(_code_text)
    return df


def _clean_soh(df: pd.DataFrame) -> pd.DataFrame:
    return _clean_codes(df, ("part_code",))


def _clean_products(df: pd.DataFrame) -> pd.DataFrame:
    return _clean_codes(df, ("id", "product_code"))


def _clean_bom(df: pd.DataFrame) -> pd.DataFrame:
    return _clean_codes(df, ("product_id", "part_code"))


def _clean_forecasts(df: pd.DataFrame) -> pd.DataFrame:
    return _clean_codes(df, ("product_code",))


_CLEANERS: Dict[str, Callable[[pd.DataFrame], pd.DataFrame]] = {
    "soh": _clean_soh,
    "products": _clean_products,
    "bom": _clean_bom,
    "forecasts": _clean_forecasts,
}


# ---------------------------------------------------
# Sheet reader
# ---------------------------------------------------

def _read_sheet(excel_file: pd.ExcelFile, sheet: str) -> pd.DataFrame:
    """Read a sheet and apply cleaning if needed."""
    frame = _normalize_columns(excel_file.parse(sheet))
    cleaner = _CLEANERS.get(sheet)
    return cleaner(frame) if cleaner else frame


def _check_sheets(excel_file: pd.ExcelFile, sheets: Iterable[str]) -> None:
    for sheet in sheets:
        if sheet not in excel_file.sheet_names:
            raise ValueError(
                f"Missing required sheet '{sheet}'. Available: {excel_file.sheet_names}"
            )


def read_sheets(source: Any, sheets: Iterable[str]) -> Dict[str, pd.DataFrame]:
    """
    Read and clean selected sheets from a path or a file-like object
    (an uploaded workbook).
    """
    sheets = tuple(sheets)
    with pd.ExcelFile(source) as excel:
        _check_sheets(excel, sheets)
        return {sheet: _read_sheet(excel, sheet) for sheet in sheets}


# ---------------------------------------------------
# Main loader
# ---------------------------------------------------

def load_workbook(path: str | Path) -> WorkbookBundle:
    """
    Load all sheets of the MRP workbook.

    Nothing is cached: every call reads the current file contents.
    """
    workbook_path = Path(path)

    if not workbook_path.exists():
        raise FileNotFoundError(f"Excel workbook not found at: {workbook_path}")

    with pd.ExcelFile(workbook_path) as excel:
        _check_sheets(excel, REQUIRED_SHEETS)

        return WorkbookBundle(
            soh=_read_sheet(excel, "soh"),
            products=_read_sheet(excel, "products"),
            bom=_read_sheet(excel, "bom"),
            forecasts=_read_sheet(excel, "forecasts"),
            raw_path=workbook_path,
            loaded_at=datetime.now(),
        )


def as_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Convert a DataFrame into a list of dicts with NaN replaced by None.
    """
    if df.empty:
        return []
    serialisable = df.astype(object).where(pd.notna(df), None)
    return serialisable.to_dict(orient="records")
