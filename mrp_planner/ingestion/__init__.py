"""Excel upload ingestion for forecasts and stock on hand."""

from .api import router
from .services import ImportFileError, IngestionService, get_ingestion_service

__all__ = ["router", "ImportFileError", "IngestionService", "get_ingestion_service"]
