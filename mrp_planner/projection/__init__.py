"""
MRP inventory projection.

    from mrp_planner.projection import MRPProjectionService, InMemoryDataSource

    service = MRPProjectionService(InMemoryDataSource(components, products, bom, forecasts))
    projections = await service.run_projection()
"""

from .adapters import (
    DataSource,
    InMemoryDataSource,
    SqlDataSource,
    WorkbookDataSource,
    make_data_source,
)
from .bom_engine import BOMEngine, attach_bom
from .demand_engine import DemandEngine, aggregate_demand
from .models import (
    BomLineItem,
    Component,
    ComponentDemandAggregate,
    Forecast,
    HealthStatus,
    InventoryProjection,
    MonthlyProjection,
    Priority,
    Product,
)
from .netting_engine import NettingEngine, build_projections
from .orchestrator import MRPProjectionService, ProjectionDataError, run_projection_sync
from .reporting import (
    ProjectionSummary,
    PurchaseRecommendation,
    critical_components,
    recommend_purchases,
    summarize,
)

__all__ = [
    "DataSource",
    "InMemoryDataSource",
    "SqlDataSource",
    "WorkbookDataSource",
    "make_data_source",
    "BOMEngine",
    "attach_bom",
    "DemandEngine",
    "aggregate_demand",
    "BomLineItem",
    "Component",
    "ComponentDemandAggregate",
    "Forecast",
    "HealthStatus",
    "InventoryProjection",
    "MonthlyProjection",
    "Priority",
    "Product",
    "NettingEngine",
    "build_projections",
    "MRPProjectionService",
    "ProjectionDataError",
    "run_projection_sync",
    "ProjectionSummary",
    "PurchaseRecommendation",
    "critical_components",
    "recommend_purchases",
    "summarize",
]
