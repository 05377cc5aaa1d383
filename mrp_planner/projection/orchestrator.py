"""
MRP Planner - Projection Orchestrator
=====================================

Single entry point for a projection run:

    1. Fetch components, products, BOM lines and forecasts concurrently
    2. Attach BOM lines to products
    3. Aggregate component demand
    4. Net against stock, simulate depletion, classify

A run either returns the full projection list or raises
ProjectionDataError; partial results are never returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from mrp_planner.settings import PlannerSettings, Settings

from .adapters import DataSource
from .bom_engine import BOMEngine
from .demand_engine import DemandEngine
from .models import InventoryProjection
from .netting_engine import NettingEngine
from .reporting import ProjectionSummary, PurchaseRecommendation, recommend_purchases, summarize

logger = logging.getLogger(__name__)


class ProjectionDataError(RuntimeError):
    """One of the input datasets could not be loaded."""


class MRPProjectionService:
    """
    Runs projections against a data source.

    The service holds no state between runs; each call re-reads the
    inputs and builds fresh engines from the settings.
    """

    def __init__(self, data_source: DataSource, settings: Optional[PlannerSettings] = None):
        self.data_source = data_source
        self.settings = settings or Settings.get()

    async def _fetch_inputs(self):
        source = self.data_source
        return await asyncio.gather(
            asyncio.to_thread(source.list_components),
            asyncio.to_thread(source.list_products),
            asyncio.to_thread(source.list_bom_line_items),
            asyncio.to_thread(source.list_forecasts),
        )

    async def run_projection(self) -> List[InventoryProjection]:
        """
        Compute one projection per component with demand.

        Raises:
            ProjectionDataError: if any fetch fails or times out
        """
        try:
            components, products, bom_items, forecasts = await asyncio.wait_for(
                self._fetch_inputs(),
                timeout=self.settings.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"MRP input fetch timed out after {self.settings.fetch_timeout_seconds}s")
            raise ProjectionDataError(
                f"Failed to load MRP input data: timed out after {self.settings.fetch_timeout_seconds}s"
            ) from e
        except Exception as e:
            logger.error(f"MRP input fetch failed: {e}")
            raise ProjectionDataError(f"Failed to load MRP input data: {e}") from e

        logger.info(
            f"Loaded {len(components)} components, {len(products)} products, "
            f"{len(bom_items)} BOM lines, {len(forecasts)} forecasts"
        )

        products_with_bom = BOMEngine().attach(products, bom_items)
        aggregates = DemandEngine(bulk_part_type=self.settings.bulk_part_type).aggregate(
            products_with_bom, forecasts
        )
        netting = NettingEngine(
            planning_horizon_months=self.settings.planning_horizon_months,
            risk_coverage_ratio=self.settings.risk_coverage_ratio,
            days_per_month=self.settings.days_per_month,
        )
        return netting.project(aggregates, components)

    async def get_summary(self) -> ProjectionSummary:
        projections = await self.run_projection()
        return summarize(projections, critical_limit=self.settings.critical_limit)

    async def get_recommendations(self) -> List[PurchaseRecommendation]:
        projections = await self.run_projection()
        return recommend_purchases(projections)


def run_projection_sync(
    data_source: DataSource,
    settings: Optional[PlannerSettings] = None,
) -> List[InventoryProjection]:
    """Blocking wrapper for scripts and notebooks (no running event loop)."""
    return asyncio.run(MRPProjectionService(data_source, settings).run_projection())
