"""Read access to products, stock on hand and forecasts."""

from .api import router
from .service import CatalogService, ForecastTable, ProductNotFound

__all__ = [
    "router",
    "CatalogService",
    "ForecastTable",
    "ProductNotFound",
]
