"""
MRP Planner - Stock Netting & Health Classification
===================================================

Nets aggregated component demand against stock on hand.

Planning horizon = first N demand months (default 4):

    horizon_demand = Σ demand[m] for m in horizon
    net_demand     = max(0, horizon_demand - stock)

    Healthy   stock >= horizon_demand
    Risk      stock >= risk_ratio × horizon_demand
    Shortage  otherwise

Month-by-month depletion (single running stock, ascending months):

    coverage  = min(100, 100 × running / demand)       (100 when demand = 0)
    shortfall = max(0, demand - running)
    projected = max(0, running - demand)
    days      = floor(running × days_per_month / demand)  (days_per_month when demand = 0)
    running   = projected

Projected stock is clamped at zero; the shortfall column carries the
uncovered quantity instead.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    PRIORITY_BY_HEALTH,
    Component,
    ComponentDemandAggregate,
    HealthStatus,
    InventoryProjection,
    MonthlyProjection,
    NOT_AVAILABLE,
)

logger = logging.getLogger(__name__)


class NettingEngine:
    """
    Produces one InventoryProjection per demand aggregate.

    Args:
        planning_horizon_months: months used for netting and classification
        risk_coverage_ratio: stock/demand ratio separating Risk from Shortage
        days_per_month: fixed month length for days-of-coverage
    """

    def __init__(
        self,
        planning_horizon_months: int = 4,
        risk_coverage_ratio: float = 0.5,
        days_per_month: int = 30,
    ):
        self.planning_horizon_months = planning_horizon_months
        self.risk_coverage_ratio = risk_coverage_ratio
        self.days_per_month = days_per_month

    # ───────────────────────────────────────────────────────────────────────
    # Classification
    # ───────────────────────────────────────────────────────────────────────

    def classify(self, current_stock: float, horizon_demand: float) -> HealthStatus:
        # Ties go to the healthier class.
        if current_stock >= horizon_demand:
            return HealthStatus.HEALTHY
        if current_stock >= self.risk_coverage_ratio * horizon_demand:
            return HealthStatus.RISK
        return HealthStatus.SHORTAGE

    @staticmethod
    def recommended_action(health: HealthStatus, net_demand: float) -> str:
        if health == HealthStatus.HEALTHY:
            return "Monitor stock"
        return f"Order {math.ceil(net_demand)} units"

    # ───────────────────────────────────────────────────────────────────────
    # Depletion simulation
    # ───────────────────────────────────────────────────────────────────────

    def simulate(
        self,
        current_stock: float,
        months: Sequence[Tuple[str, float]],
    ) -> List[MonthlyProjection]:
        """
        Deplete stock month by month.

        Args:
            current_stock: stock at the start of the first month
            months: (month, demand) pairs, already in ascending order
        """
        running = float(current_stock)
        projections: List[MonthlyProjection] = []

        for month, demand in months:
            if demand > 0:
                coverage = min(100.0, 100.0 * running / demand)
                days = math.floor(running * self.days_per_month / demand)
            else:
                coverage = 100.0
                days = self.days_per_month
            shortfall = max(0.0, demand - running)
            projected = max(0.0, running - demand)

            projections.append(MonthlyProjection(
                month=month,
                total_demand=demand,
                coverage_percentage=coverage,
                projected_soh=projected,
                shortfall=shortfall,
                days_of_coverage=days,
            ))
            running = projected

        return projections

    # ───────────────────────────────────────────────────────────────────────
    # Projection
    # ───────────────────────────────────────────────────────────────────────

    @staticmethod
    def placeholder_component(aggregate: ComponentDemandAggregate) -> Component:
        """Zero-stock stand-in for a component with no SOH record."""
        return Component(
            part_code=aggregate.part_code,
            description=aggregate.description or NOT_AVAILABLE,
            stock=0,
            safety_stock=0.0,
            part_type=aggregate.part_type or "",
        )

    def project_component(
        self,
        aggregate: ComponentDemandAggregate,
        component: Optional[Component],
    ) -> InventoryProjection:
        if component is None:
            logger.warning(f"No SOH record for component {aggregate.part_code}; assuming zero stock")
            component = self.placeholder_component(aggregate)

        current_stock = component.stock
        sorted_months = aggregate.sorted_demand()
        horizon = sorted_months[: self.planning_horizon_months]

        four_month_demand = sum(quantity for _, quantity in horizon)
        net_four_month_demand = max(0.0, four_month_demand - current_stock)
        health = self.classify(current_stock, four_month_demand)

        total_annual_demand = sum(quantity for _, quantity in sorted_months)
        average_monthly_demand = four_month_demand / len(horizon) if horizon else 0.0

        return InventoryProjection(
            component=component,
            skus_used_in=list(aggregate.skus),
            display_part_type=aggregate.part_type or NOT_AVAILABLE,
            display_description=aggregate.description or NOT_AVAILABLE,
            four_month_demand=four_month_demand,
            net_four_month_demand=net_four_month_demand,
            total_annual_demand=total_annual_demand,
            average_monthly_demand=average_monthly_demand,
            projections=self.simulate(current_stock, horizon),
            overall_health=health,
            priority=PRIORITY_BY_HEALTH[health],
            recommended_action=self.recommended_action(health, net_four_month_demand),
        )

    def project(
        self,
        aggregates: Dict[str, ComponentDemandAggregate],
        components: Iterable[Component],
    ) -> List[InventoryProjection]:
        """One projection per aggregate, in aggregate insertion order."""
        component_by_code: Dict[str, Component] = {}
        for component in components:
            component_by_code.setdefault(component.part_code, component)

        projections = [
            self.project_component(aggregate, component_by_code.get(part_code))
            for part_code, aggregate in aggregates.items()
        ]

        logger.info(f"Projected {len(projections)} components over {self.planning_horizon_months} months")
        return projections


def build_projections(
    aggregates: Dict[str, ComponentDemandAggregate],
    components: Iterable[Component],
    planning_horizon_months: int = 4,
    risk_coverage_ratio: float = 0.5,
    days_per_month: int = 30,
) -> List[InventoryProjection]:
    """Convenience wrapper around NettingEngine.project."""
    engine = NettingEngine(
        planning_horizon_months=planning_horizon_months,
        risk_coverage_ratio=risk_coverage_ratio,
        days_per_month=days_per_month,
    )
    return engine.project(aggregates, components)
