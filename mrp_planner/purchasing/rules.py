"""
MRP Planner - Purchase Order Rules
==================================

Pure business rules for customer purchase orders.

Status is a set of tags kept in insertion order, never empty:

    Open, PO Check, In Production, Awaiting Components, Despatched/ Completed

Amount check against the product's price list:

    shippers      = ordered_pieces / bulk_per_shipper
    system_amount = shippers × price_per_shipper
    mismatch      = |customer_amount - system_amount| > tolerance

where bulk_per_shipper is the per-shipper quantity of the product's
"Bulk - Supplied" BOM line.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from mrp_planner.projection.demand_engine import DEFAULT_BULK_PART_TYPE, DemandEngine
from mrp_planner.projection.models import Product

DEFAULT_AMOUNT_TOLERANCE = 5.0


class PurchaseOrderError(ValueError):
    """A purchase order violates a business rule."""


class PurchaseOrderNotFound(LookupError):
    """No purchase order with the requested id."""


class PoStatus(str, Enum):
    OPEN = "Open"
    PO_CHECK = "PO Check"
    IN_PRODUCTION = "In Production"
    AWAITING_COMPONENTS = "Awaiting Components"
    DESPATCHED = "Despatched/ Completed"


@dataclass
class AmountCheck:
    """Outcome of validating a customer amount against the price list."""
    ordered_qty_shippers: float
    system_amount: float
    difference: float
    tolerance: float

    @property
    def matches(self) -> bool:
        return self.difference <= self.tolerance

    @property
    def status(self) -> List[str]:
        return [PoStatus.OPEN.value] if self.matches else [PoStatus.PO_CHECK.value]


def toggle_status(current: Optional[List[str]], tag: PoStatus | str) -> List[str]:
    """Remove the tag when present, append it otherwise; never returns []."""
    value = tag.value if isinstance(tag, PoStatus) else tag
    statuses = list(current or [])
    if value in statuses:
        statuses = [s for s in statuses if s != value]
    else:
        statuses.append(value)
    return statuses or [PoStatus.OPEN.value]


def bulk_per_shipper(product: Product, bulk_part_type: str = DEFAULT_BULK_PART_TYPE) -> float:
    """Pieces per shipper taken from the product's bulk-supplied line."""
    engine = DemandEngine(bulk_part_type=bulk_part_type)
    line = next((c for c in product.components if engine.is_bulk(c.part_type)), None)
    if line is None or not line.per_shipper:
        raise PurchaseOrderError(f"Product is missing '{bulk_part_type}' component details.")
    return line.per_shipper


def check_amounts(
    product: Product,
    ordered_qty_pieces: float,
    customer_amount: float,
    tolerance: float = DEFAULT_AMOUNT_TOLERANCE,
    bulk_part_type: str = DEFAULT_BULK_PART_TYPE,
) -> AmountCheck:
    shippers = ordered_qty_pieces / bulk_per_shipper(product, bulk_part_type)
    system_amount = shippers * (product.price_per_shipper or 0.0)
    return AmountCheck(
        ordered_qty_shippers=shippers,
        system_amount=system_amount,
        difference=abs(customer_amount - system_amount),
        tolerance=tolerance,
    )
