"""
MRP Planner - Projection Data Structures
========================================

Typed records flowing through the projection pipeline:

    Component, Product, BomLineItem, Forecast   (inputs, read-only)
    ComponentDemandAggregate                    (internal, per run)
    MonthlyProjection, InventoryProjection      (outputs)

Months are always "YYYY-MM" strings. The fixed-width, zero-padded format
makes lexicographic order equal to calendar order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

NOT_AVAILABLE = "N/A"


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class HealthStatus(str, Enum):
    """Overall stock health over the planning horizon."""
    HEALTHY = "Healthy"    # stock >= horizon demand
    RISK = "Risk"          # stock >= risk ratio x horizon demand
    SHORTAGE = "Shortage"  # below the risk threshold


class Priority(str, Enum):
    """Purchasing priority derived from health."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}[self]


PRIORITY_BY_HEALTH = {
    HealthStatus.SHORTAGE: Priority.HIGH,
    HealthStatus.RISK: Priority.MEDIUM,
    HealthStatus.HEALTHY: Priority.LOW,
}


# ═══════════════════════════════════════════════════════════════════════════════
# INPUTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class Component:
    """Stock-on-hand record for a purchasable component."""
    part_code: str
    description: str = NOT_AVAILABLE
    stock: int = 0
    safety_stock: float = 0.0
    part_type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "part_code": self.part_code,
            "description": self.description,
            "stock": self.stock,
            "safety_stock": self.safety_stock,
            "part_type": self.part_type,
        }


@dataclass
class BomLineItem:
    """One component line of a product's bill of materials."""
    product_id: str
    part_code: str
    per_shipper: float = 0.0  # component quantity per shipper
    part_type: str = ""
    part_description: str = ""


@dataclass
class Product:
    """Finished product; components are empty until BOM attachment."""
    id: str
    product_code: str
    description: str = ""
    components: List[BomLineItem] = field(default_factory=list)
    units_per_shipper: Optional[float] = None
    price_per_shipper: Optional[float] = None
    daily_run_rate: Optional[float] = None
    hourly_run_rate: Optional[float] = None
    mins_per_shipper: Optional[float] = None


@dataclass
class Forecast:
    """Monthly forecast of shipped units for one product."""
    product_code: str
    monthly_forecast: Dict[str, float] = field(default_factory=dict)
    description: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# INTERNAL
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ComponentDemandAggregate:
    """Demand for one component summed over every consuming product."""
    part_code: str
    demand: Dict[str, float] = field(default_factory=dict)
    skus: List[str] = field(default_factory=list)
    part_type: Optional[str] = None
    description: Optional[str] = None
    _observed: bool = field(default=False, repr=False, compare=False)

    def add_demand(self, month: str, quantity: float) -> None:
        self.demand[month] = self.demand.get(month, 0.0) + quantity

    def add_sku(self, sku: str) -> None:
        if sku not in self.skus:
            self.skus.append(sku)

    def observe(self, part_type: Optional[str], description: Optional[str]) -> None:
        """Record display metadata of the first line seen, even when empty; later lines are ignored."""
        if self._observed:
            return
        self._observed = True
        self.part_type = part_type
        self.description = description

    def sorted_demand(self) -> List[Tuple[str, float]]:
        """(month, quantity) pairs in ascending month order."""
        return sorted(self.demand.items(), key=lambda item: item[0])


# ═══════════════════════════════════════════════════════════════════════════════
# OUTPUTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class MonthlyProjection:
    """Supply/demand position of a component for one month."""
    month: str
    total_demand: float
    coverage_percentage: float
    projected_soh: float
    shortfall: float
    days_of_coverage: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "total_demand": self.total_demand,
            "coverage_percentage": self.coverage_percentage,
            "projected_soh": self.projected_soh,
            "shortfall": self.shortfall,
            "days_of_coverage": self.days_of_coverage,
        }


@dataclass
class InventoryProjection:
    """Multi-month projection and health verdict for one component."""
    component: Component
    skus_used_in: List[str]
    display_part_type: str
    display_description: str
    four_month_demand: float
    net_four_month_demand: float
    total_annual_demand: float
    average_monthly_demand: float
    projections: List[MonthlyProjection]
    overall_health: HealthStatus
    priority: Priority
    recommended_action: str

    @property
    def part_code(self) -> str:
        return self.component.part_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component.to_dict(),
            "skus_used_in": list(self.skus_used_in),
            "display_part_type": self.display_part_type,
            "display_description": self.display_description,
            "four_month_demand": self.four_month_demand,
            "net_four_month_demand": self.net_four_month_demand,
            "total_annual_demand": self.total_annual_demand,
            "average_monthly_demand": self.average_monthly_demand,
            "projections": [p.to_dict() for p in self.projections],
            "overall_health": self.overall_health.value,
            "priority": self.priority.value,
            "recommended_action": self.recommended_action,
        }
