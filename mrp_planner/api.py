"""
MRP Planner - HTTP application
==============================

Mounts the projection, ingestion, catalog, dashboard and purchase order routers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mrp_planner.catalog.api import router as catalog_router
from mrp_planner.dashboard.api import router as dashboard_router
from mrp_planner.database import init_db
from mrp_planner.ingestion.api import router as ingestion_router
from mrp_planner.projection.api_projection import router as projection_router
from mrp_planner.purchasing.api import router as purchasing_router
from mrp_planner.settings import Settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    settings = Settings.get()
    logger.info(
        f"MRP planner started (data source: {settings.data_source.value}, "
        f"horizon: {settings.planning_horizon_months} months)"
    )
    yield


app = FastAPI(title="MRP Planner", lifespan=lifespan)

app.include_router(projection_router)
app.include_router(ingestion_router)
app.include_router(purchasing_router)
app.include_router(catalog_router)
app.include_router(dashboard_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------
# Endpoints
# -------------------------------

@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/settings")
def get_planner_settings() -> Dict[str, Any]:
    """Active planner configuration (database URL omitted)."""
    data = Settings.get().to_dict()
    data.pop("database_url", None)
    return data
