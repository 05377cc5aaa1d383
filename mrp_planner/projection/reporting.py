"""
MRP Planner - Summary & Reporting
=================================

Reductions over a finished projection list:

- summary counts by health and total demand
- top critical (High priority) components by net demand
- purchase recommendations ordered by priority
- flat tabular export (pandas DataFrame, CSV, Excel)
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from .models import HealthStatus, InventoryProjection, Priority

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ProjectionSummary:
    """Aggregate view of a projection run."""
    total_components: int
    healthy_count: int
    risk_count: int
    shortage_count: int
    total_demand_value: float
    critical_components: List[InventoryProjection] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_components": self.total_components,
            "healthy_count": self.healthy_count,
            "risk_count": self.risk_count,
            "shortage_count": self.shortage_count,
            "total_demand_value": self.total_demand_value,
            "critical_components": [p.to_dict() for p in self.critical_components],
        }


@dataclass
class PurchaseRecommendation:
    """Suggested purchase for one component."""
    part_code: str
    description: str
    current_stock: float
    recommended_quantity: int
    priority: Priority
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "part_code": self.part_code,
            "description": self.description,
            "current_stock": self.current_stock,
            "recommended_quantity": self.recommended_quantity,
            "priority": self.priority.value,
            "reason": self.reason,
        }


REASON_BY_HEALTH = {
    HealthStatus.SHORTAGE: "Stock covers less than half of the 4-month demand",
    HealthStatus.RISK: "Stock does not cover the full 4-month demand",
    HealthStatus.HEALTHY: "Stock covers the 4-month demand",
}


# ═══════════════════════════════════════════════════════════════════════════════
# SUMMARY
# ═══════════════════════════════════════════════════════════════════════════════

def critical_components(
    projections: List[InventoryProjection],
    limit: int = 10,
) -> List[InventoryProjection]:
    """High priority components, largest net demand first."""
    critical = [p for p in projections if p.priority == Priority.HIGH]
    critical.sort(key=lambda p: p.net_four_month_demand, reverse=True)
    return critical[:limit]


def summarize(projections: List[InventoryProjection], critical_limit: int = 10) -> ProjectionSummary:
    """Counts by health, total demand and the critical shortlist."""
    counts = {status: 0 for status in HealthStatus}
    for projection in projections:
        counts[projection.overall_health] += 1

    return ProjectionSummary(
        total_components=len(projections),
        healthy_count=counts[HealthStatus.HEALTHY],
        risk_count=counts[HealthStatus.RISK],
        shortage_count=counts[HealthStatus.SHORTAGE],
        total_demand_value=sum(p.total_annual_demand for p in projections),
        critical_components=critical_components(projections, limit=critical_limit),
    )


def recommend_purchases(projections: List[InventoryProjection]) -> List[PurchaseRecommendation]:
    """
    Purchase recommendations for every component with positive net demand.

    Sorted High > Medium > Low; Python's sort is stable so equal
    priorities keep their projection order.
    """
    recommendations = [
        PurchaseRecommendation(
            part_code=p.part_code,
            description=p.display_description,
            current_stock=p.component.stock,
            recommended_quantity=math.ceil(p.net_four_month_demand),
            priority=p.priority,
            reason=REASON_BY_HEALTH[p.overall_health],
        )
        for p in projections
        if p.net_four_month_demand > 0
    ]
    recommendations.sort(key=lambda r: r.priority.rank, reverse=True)
    return recommendations


def filter_projections(
    projections: List[InventoryProjection],
    health: Optional[HealthStatus] = None,
    search: Optional[str] = None,
) -> List[InventoryProjection]:
    """Filter by health and by part code / description / SKU substring."""
    result = projections
    if health is not None:
        result = [p for p in result if p.overall_health == health]
    if search:
        needle = search.lower()
        result = [
            p for p in result
            if needle in p.part_code.lower()
            or needle in p.display_description.lower()
            or any(needle in sku.lower() for sku in p.skus_used_in)
        ]
    return result


# ═══════════════════════════════════════════════════════════════════════════════
# TABULAR EXPORT
# ═══════════════════════════════════════════════════════════════════════════════

def export_rows(projections: List[InventoryProjection]) -> List[Dict[str, Any]]:
    """
    Flatten projections into records keyed by display column names.

    Month columns are numbered by position (Month 1, Month 2, ...) so that
    components with different first months line up.
    """
    rows: List[Dict[str, Any]] = []
    for p in projections:
        row: Dict[str, Any] = {
            "Part Code": p.part_code,
            "Description": p.display_description,
            "Part Type": p.display_part_type,
            "Used In SKUs": ", ".join(p.skus_used_in),
            "Current Stock": p.component.stock,
            "Safety Stock": p.component.safety_stock,
            "4-Month Demand": p.four_month_demand,
            "Net 4-Month Demand": p.net_four_month_demand,
            "Total Demand": p.total_annual_demand,
            "Average Monthly Demand": round(p.average_monthly_demand, 2),
            "Health": p.overall_health.value,
            "Priority": p.priority.value,
            "Recommended Action": p.recommended_action,
        }
        for position, month in enumerate(p.projections, start=1):
            row[f"Month {position} Demand"] = month.total_demand
            row[f"Month {position} Coverage %"] = round(month.coverage_percentage, 1)
            row[f"Month {position} Projected SOH"] = month.projected_soh
        rows.append(row)
    return rows


def to_dataframe(projections: List[InventoryProjection]) -> pd.DataFrame:
    """Export rows as a DataFrame (missing month columns are NaN)."""
    return pd.DataFrame(export_rows(projections))


def to_csv_bytes(projections: List[InventoryProjection]) -> bytes:
    return to_dataframe(projections).to_csv(index=False).encode("utf-8")


def to_excel_bytes(projections: List[InventoryProjection], sheet_name: str = "MRP Projection") -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        to_dataframe(projections).to_excel(writer, sheet_name=sheet_name, index=False)
    logger.debug(f"Exported {len(projections)} projections to Excel")
    return buffer.getvalue()
