"""
MRP Planner - Data Source Adapters
==================================

The projection reads four flat datasets:

    list_components()      -> List[Component]
    list_products()        -> List[Product]      (components not attached)
    list_bom_line_items()  -> List[BomLineItem]
    list_forecasts()       -> List[Forecast]

Every raw row goes through the normalize_* functions below, which are the
only place that knows about alternative source field names, dirty numeric
values and month key formats. The engines only ever see typed records.
"""

from __future__ import annotations

import logging
import math
import re
import threading
from collections import OrderedDict
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from sqlalchemy.orm import Session

from .models import BomLineItem, Component, Forecast, NOT_AVAILABLE, Product

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# FIELD ALIASES
# ═══════════════════════════════════════════════════════════════════════════════

PART_CODE_FIELDS = ("part_code", "partCode", "component_code", "Product ID")
STOCK_FIELDS = ("stock", "soh", "stock_on_hand", "current_stock", "Stock on Hand")
SAFETY_STOCK_FIELDS = ("safety_stock", "safetyStock")
PART_TYPE_FIELDS = ("part_type", "partType")
PRODUCT_CODE_FIELDS = ("product_code", "productCode")
PER_SHIPPER_FIELDS = ("per_shipper", "perShipper", "quantity_per_shipper", "qty_per_shipper")
PART_DESCRIPTION_FIELDS = ("part_description", "partDescription", "description")

FORECAST_META_FIELDS = {"id", "product_code", "productCode", "description", "monthly_forecast", "monthlyForecast"}

_MONTH_ABBREVIATIONS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_ISO_MONTH = re.compile(r"^(\d{4})-(\d{1,2})(?:$|-|T| )")
_ABBREVIATED_MONTH = re.compile(r"^([A-Za-z]{3})[-\s](\d{2}|\d{4})$")


# ═══════════════════════════════════════════════════════════════════════════════
# VALUE NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════════════

def _first_present(record: Mapping[str, Any], fields: Sequence[str]) -> Any:
    for name in fields:
        value = record.get(name)
        if value is not None and not (isinstance(value, float) and math.isnan(value)):
            return value
    return None


def _as_text(value: Any, default: str = "") -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return default
    text = str(value).strip()
    return text or default


def _as_code(value: Any) -> str:
    """Identifier as text; integral floats from spreadsheets lose their '.0'."""
    if isinstance(value, float) and not math.isnan(value) and value.is_integer():
        value = int(value)
    return _as_text(value)


def coerce_number(value: Any, field_name: str, context: str) -> float:
    """
    Numeric value or 0.0.

    Empty values become zero silently; anything that does not parse as a
    number is logged as a warning and treated as zero.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"{context}: non-numeric {field_name} {value!r} treated as 0")
        return 0.0
    if math.isnan(number):
        return 0.0
    if math.isinf(number):
        logger.warning(f"{context}: infinite {field_name} treated as 0")
        return 0.0
    return number


def coerce_quantity(value: Any, field_name: str, context: str) -> float:
    """Non-negative numeric value; negatives are logged and clamped to 0."""
    number = coerce_number(value, field_name, context)
    if number < 0:
        logger.warning(f"{context}: negative {field_name} {number} treated as 0")
        return 0.0
    return number


def normalize_month_key(value: Any) -> Optional[str]:
    """
    Month key as "YYYY-MM".

    Accepts date/datetime values, ISO strings ("2025-07", "2025-07-01",
    "2025-07-01T00:00:00") and abbreviated headers ("Jul-25", "Jul-2025").
    Returns None when the value is not a month.
    """
    if isinstance(value, (datetime, date)):
        return f"{value.year:04d}-{value.month:02d}"
    if not isinstance(value, str):
        return None

    text = value.strip()
    match = _ISO_MONTH.match(text)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        return f"{year:04d}-{month:02d}" if 1 <= month <= 12 else None

    match = _ABBREVIATED_MONTH.match(text)
    if match:
        month = _MONTH_ABBREVIATIONS.get(match.group(1).lower())
        year_text = match.group(2)
        year = int(year_text) + 2000 if len(year_text) == 2 else int(year_text)
        return f"{year:04d}-{month:02d}" if month else None

    return None


# ═══════════════════════════════════════════════════════════════════════════════
# RECORD NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════════════

def normalize_component(record: Mapping[str, Any]) -> Optional[Component]:
    """SOH row -> Component (None when the row has no part code)."""
    part_code = _as_code(_first_present(record, PART_CODE_FIELDS))
    if not part_code:
        logger.warning("SOH record without part code skipped")
        return None

    context = f"Component {part_code}"
    stock = coerce_quantity(_first_present(record, STOCK_FIELDS), "stock", context)

    return Component(
        part_code=part_code,
        description=_as_text(record.get("description"), NOT_AVAILABLE),
        stock=int(round(stock)),
        safety_stock=coerce_quantity(_first_present(record, SAFETY_STOCK_FIELDS), "safety stock", context),
        part_type=_as_text(_first_present(record, PART_TYPE_FIELDS)),
    )


def _optional_number(record: Mapping[str, Any], fields: Sequence[str], context: str) -> Optional[float]:
    value = _first_present(record, fields)
    if value is None:
        return None
    return coerce_number(value, fields[0], context)


def normalize_product(record: Mapping[str, Any]) -> Optional[Product]:
    """Product row -> Product with an empty component list."""
    product_code = _as_code(_first_present(record, PRODUCT_CODE_FIELDS))
    if not product_code:
        logger.warning("Product record without product code skipped")
        return None

    context = f"Product {product_code}"
    product_id = _as_code(record.get("id")) or product_code

    return Product(
        id=product_id,
        product_code=product_code,
        description=_as_text(record.get("description")),
        components=[],
        units_per_shipper=_optional_number(record, ("units_per_shipper", "unitsPerShipper"), context),
        price_per_shipper=_optional_number(record, ("price_per_shipper", "pricePerShipper"), context),
        daily_run_rate=_optional_number(record, ("daily_run_rate", "dailyRunRate"), context),
        hourly_run_rate=_optional_number(record, ("hourly_run_rate", "hourlyRunRate"), context),
        mins_per_shipper=_optional_number(record, ("mins_per_shipper", "minsPerShipper"), context),
    )


def normalize_bom_line_item(record: Mapping[str, Any]) -> Optional[BomLineItem]:
    """BOM row -> BomLineItem (None when product id or part code is missing)."""
    product_id = _as_code(_first_present(record, ("product_id", "productId")))
    part_code = _as_code(_first_present(record, PART_CODE_FIELDS))
    if not product_id or not part_code:
        logger.warning(f"BOM record skipped: product_id={product_id!r} part_code={part_code!r}")
        return None

    context = f"BOM line {product_id} -> {part_code}"
    return BomLineItem(
        product_id=product_id,
        part_code=part_code,
        per_shipper=coerce_quantity(_first_present(record, PER_SHIPPER_FIELDS), "quantity per shipper", context),
        part_type=_as_text(_first_present(record, PART_TYPE_FIELDS)),
        part_description=_as_text(_first_present(record, PART_DESCRIPTION_FIELDS)),
    )


def normalize_monthly_forecast(values: Mapping[Any, Any], context: str) -> Dict[str, float]:
    monthly: Dict[str, float] = {}
    for key, quantity in values.items():
        month = normalize_month_key(key)
        if month is None:
            logger.warning(f"{context}: invalid month key {key!r} dropped")
            continue
        monthly[month] = coerce_quantity(quantity, f"forecast for {month}", context)
    return monthly


def normalize_forecast(record: Mapping[str, Any]) -> Optional[Forecast]:
    """
    Forecast record -> Forecast.

    Months come either from a nested monthly_forecast mapping or, for wide
    spreadsheet rows, from every column whose name is a month.
    """
    product_code = _as_code(_first_present(record, PRODUCT_CODE_FIELDS))
    if not product_code:
        logger.warning("Forecast record without product code skipped")
        return None

    context = f"Forecast {product_code}"
    nested = _first_present(record, ("monthly_forecast", "monthlyForecast"))
    if isinstance(nested, Mapping):
        monthly = normalize_monthly_forecast(nested, context)
    else:
        wide = {
            key: value for key, value in record.items()
            if key not in FORECAST_META_FIELDS and normalize_month_key(key)
        }
        monthly = normalize_monthly_forecast(wide, context)

    return Forecast(
        product_code=product_code,
        monthly_forecast=monthly,
        description=_as_text(record.get("description")),
    )


def group_forecast_rows(rows: Iterable[Mapping[str, Any]]) -> List[Forecast]:
    """
    Long-format rows (product_code, forecast_date, quantity) -> Forecasts.

    Rows are applied in order; a later row for the same product and month
    replaces the earlier value.
    """
    grouped: "OrderedDict[str, Forecast]" = OrderedDict()
    for row in rows:
        product_code = _as_code(_first_present(row, PRODUCT_CODE_FIELDS))
        month = normalize_month_key(row.get("forecast_date"))
        if not product_code or month is None:
            logger.warning(f"Forecast row skipped: product={product_code!r} date={row.get('forecast_date')!r}")
            continue
        forecast = grouped.get(product_code)
        if forecast is None:
            forecast = Forecast(product_code=product_code, description=_as_text(row.get("description")))
            grouped[product_code] = forecast
        forecast.monthly_forecast[month] = coerce_quantity(
            row.get("quantity"), f"forecast for {month}", f"Forecast {product_code}"
        )
    return list(grouped.values())


def _normalize_all(rows: Iterable[Mapping[str, Any]], normalize: Callable[[Mapping[str, Any]], Any]) -> List[Any]:
    return [item for item in (normalize(row) for row in rows) if item is not None]


# ═══════════════════════════════════════════════════════════════════════════════
# DATA SOURCES
# ═══════════════════════════════════════════════════════════════════════════════

class DataSource(Protocol):
    """The four read-only feeds consumed by the projection."""

    def list_components(self) -> List[Component]: ...

    def list_products(self) -> List[Product]: ...

    def list_bom_line_items(self) -> List[BomLineItem]: ...

    def list_forecasts(self) -> List[Forecast]: ...


class InMemoryDataSource:
    """Serves already-built records (tests, callers holding the data)."""

    def __init__(
        self,
        components: Optional[List[Component]] = None,
        products: Optional[List[Product]] = None,
        bom_items: Optional[List[BomLineItem]] = None,
        forecasts: Optional[List[Forecast]] = None,
    ):
        self.components = list(components or [])
        self.products = list(products or [])
        self.bom_items = list(bom_items or [])
        self.forecasts = list(forecasts or [])

    def list_components(self) -> List[Component]:
        return list(self.components)

    def list_products(self) -> List[Product]:
        return list(self.products)

    def list_bom_line_items(self) -> List[BomLineItem]:
        return list(self.bom_items)

    def list_forecasts(self) -> List[Forecast]:
        return list(self.forecasts)


class SqlDataSource:
    """
    Reads the soh/products/bom_items/forecasts tables.

    Each call opens and closes its own session so the four reads can run
    in separate threads.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _rows(self, query: Callable[[Session], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        db = self.session_factory()
        try:
            return query(db)
        finally:
            db.close()

    def list_components(self) -> List[Component]:
        from mrp_planner.database import SohRecord

        rows = self._rows(lambda db: [
            {
                "part_code": r.part_code,
                "description": r.description,
                "stock": r.stock,
                "safety_stock": r.safety_stock,
                "part_type": r.part_type,
            }
            for r in db.query(SohRecord).order_by(SohRecord.part_code).all()
        ])
        return _normalize_all(rows, normalize_component)

    def list_products(self) -> List[Product]:
        from mrp_planner.database import ProductRecord

        rows = self._rows(lambda db: [
            {
                "id": r.id,
                "product_code": r.product_code,
                "description": r.description,
                "units_per_shipper": r.units_per_shipper,
                "price_per_shipper": r.price_per_shipper,
                "daily_run_rate": r.daily_run_rate,
                "hourly_run_rate": r.hourly_run_rate,
                "mins_per_shipper": r.mins_per_shipper,
            }
            for r in db.query(ProductRecord).order_by(ProductRecord.product_code).all()
        ])
        return _normalize_all(rows, normalize_product)

    def list_bom_line_items(self) -> List[BomLineItem]:
        from mrp_planner.database import BomItemRecord

        rows = self._rows(lambda db: [
            {
                "product_id": r.product_id,
                "part_code": r.part_code,
                "per_shipper": r.per_shipper,
                "part_type": r.part_type,
                "part_description": r.part_description,
            }
            for r in db.query(BomItemRecord).order_by(BomItemRecord.id).all()
        ])
        return _normalize_all(rows, normalize_bom_line_item)

    def list_forecasts(self) -> List[Forecast]:
        from mrp_planner.database import ForecastRecord

        rows = self._rows(lambda db: [
            {
                "product_code": r.product_code,
                "description": r.description,
                "forecast_date": r.forecast_date,
                "quantity": r.quantity,
            }
            for r in db.query(ForecastRecord)
            .order_by(ForecastRecord.forecast_date, ForecastRecord.id)
            .all()
        ])
        return group_forecast_rows(rows)


class WorkbookDataSource:
    """
    Reads the four sheets of an Excel workbook.

    The parsed workbook is kept until the file's modification time or size
    changes, so the four fetches of one run parse the file once.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._bundle = None
        self._stamp: Optional[Tuple[int, int]] = None

    def _load(self):
        from mrp_planner.data_loader import load_workbook

        with self._lock:
            stamp = None
            if self.path.exists():
                stat = self.path.stat()
                stamp = (stat.st_mtime_ns, stat.st_size)
            if self._bundle is None or stamp is None or stamp != self._stamp:
                logger.debug(f"Parsing workbook {self.path}")
                self._bundle = load_workbook(self.path)
                self._stamp = stamp
            return self._bundle

    def _sheet(self, name: str) -> List[Dict[str, Any]]:
        from mrp_planner.data_loader import as_records

        return as_records(getattr(self._load(), name))

    def list_components(self) -> List[Component]:
        return _normalize_all(self._sheet("soh"), normalize_component)

    def list_products(self) -> List[Product]:
        return _normalize_all(self._sheet("products"), normalize_product)

    def list_bom_line_items(self) -> List[BomLineItem]:
        return _normalize_all(self._sheet("bom"), normalize_bom_line_item)

    def list_forecasts(self) -> List[Forecast]:
        return _normalize_all(self._sheet("forecasts"), normalize_forecast)


def make_data_source(settings) -> DataSource:
    """Data source selected by PlannerSettings.data_source."""
    from mrp_planner.settings import DataSourceKind

    if settings.data_source == DataSourceKind.WORKBOOK:
        logger.info(f"Using workbook data source: {settings.workbook_path}")
        return WorkbookDataSource(settings.workbook_path)

    from mrp_planner.database import SessionLocal

    return SqlDataSource(SessionLocal)
