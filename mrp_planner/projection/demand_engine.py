"""
MRP Planner - Demand Aggregation
================================

Explodes monthly end-item forecasts through single-level BOMs into
component-level monthly demand.

    demand[component][month] = Σ_products forecast[product][month] × per_shipper

Products without a forecast or without BOM lines contribute nothing.
Lines typed as the bulk-supplied shipper are the product itself and are
never planned as components.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .models import ComponentDemandAggregate, Forecast, Product

logger = logging.getLogger(__name__)

DEFAULT_BULK_PART_TYPE = "Bulk - Supplied"


def _normalize_type(part_type: Optional[str]) -> str:
    return (part_type or "").strip().lower()


class DemandEngine:
    """
    Aggregates component demand from products with attached BOMs.

    Args:
        bulk_part_type: part type that marks the finished-shipper line
    """

    def __init__(self, bulk_part_type: str = DEFAULT_BULK_PART_TYPE):
        self.bulk_part_type = bulk_part_type

    def is_bulk(self, part_type: Optional[str]) -> bool:
        return _normalize_type(part_type) == _normalize_type(self.bulk_part_type)

    @staticmethod
    def index_forecasts(forecasts: Iterable[Forecast]) -> Dict[str, Forecast]:
        """Forecast per product code; the first record for a code wins."""
        index: Dict[str, Forecast] = {}
        for forecast in forecasts:
            if forecast.product_code in index:
                logger.warning(f"Duplicate forecast for product {forecast.product_code} ignored")
                continue
            index[forecast.product_code] = forecast
        return index

    def aggregate(
        self,
        products: List[Product],
        forecasts: List[Forecast],
    ) -> Dict[str, ComponentDemandAggregate]:
        """
        Build per-component demand aggregates.

        Returns:
            Mapping part code -> ComponentDemandAggregate
        """
        forecast_by_code = self.index_forecasts(forecasts)
        aggregates: Dict[str, ComponentDemandAggregate] = {}
        skipped_no_forecast = 0
        skipped_no_bom = 0

        for product in products:
            forecast = forecast_by_code.get(product.product_code)
            if forecast is None:
                skipped_no_forecast += 1
                continue
            if not product.components:
                skipped_no_bom += 1
                continue

            for line in product.components:
                if self.is_bulk(line.part_type):
                    continue

                aggregate = aggregates.get(line.part_code)
                if aggregate is None:
                    aggregate = ComponentDemandAggregate(part_code=line.part_code)
                    aggregates[line.part_code] = aggregate
                aggregate.add_sku(product.product_code)
                aggregate.observe(line.part_type, line.part_description)

                per_shipper = line.per_shipper
                if not per_shipper:
                    logger.warning(
                        f"BOM line {product.product_code} -> {line.part_code} has no "
                        f"quantity per shipper; contributes zero demand"
                    )
                    per_shipper = 0.0

                for month, quantity in forecast.monthly_forecast.items():
                    aggregate.add_demand(month, (quantity or 0.0) * per_shipper)

        logger.info(
            f"Aggregated demand for {len(aggregates)} components "
            f"({skipped_no_forecast} products without forecast, {skipped_no_bom} without BOM)"
        )
        return aggregates


def aggregate_demand(
    products: List[Product],
    forecasts: List[Forecast],
    bulk_part_type: str = DEFAULT_BULK_PART_TYPE,
) -> Dict[str, ComponentDemandAggregate]:
    """Convenience wrapper around DemandEngine.aggregate."""
    return DemandEngine(bulk_part_type=bulk_part_type).aggregate(products, forecasts)
