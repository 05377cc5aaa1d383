"""
MRP Planner - Settings
======================

Runtime configuration for the projection engine, data sources and services.

Usage:
    from mrp_planner.settings import Settings

    settings = Settings.get()
    horizon = settings.planning_horizon_months

Configuration via environment variables (a local .env file is honoured):
    MRP_DATA_SOURCE=workbook
    MRP_WORKBOOK_PATH=data/mrp_data.xlsx
    MRP_PLANNING_HORIZON_MONTHS=4
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class DataSourceKind(str, Enum):
    """
    Where the four input datasets are read from.

    SQL: relational tables (soh, products, bom_items, forecasts)
    WORKBOOK: a single Excel workbook with one sheet per dataset
    """
    SQL = "sql"
    WORKBOOK = "workbook"


# ═══════════════════════════════════════════════════════════════════════════════
# SETTINGS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class PlannerSettings:
    """
    Planner configuration.

    Defaults reproduce the behaviour of the production MRP screens
    (4-month horizon, 50% risk threshold, 30-day months).
    """
    data_source: DataSourceKind = DataSourceKind.SQL
    database_url: str = "sqlite:///mrp_planner.db"
    workbook_path: str = "data/mrp_data.xlsx"

    # Projection engine
    planning_horizon_months: int = 4
    risk_coverage_ratio: float = 0.5
    days_per_month: int = 30
    bulk_part_type: str = "Bulk - Supplied"

    # Reporting
    critical_limit: int = 10

    # Orchestration
    fetch_timeout_seconds: float = 30.0

    # Purchase orders
    po_amount_tolerance: float = 5.0

    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["data_source"] = self.data_source.value
        return data


class Settings:
    """
    Cached access to PlannerSettings loaded from the environment.

    Engines never call this directly; the orchestrator and the routers
    resolve the settings once and pass the values down.
    """

    _instance: Optional[PlannerSettings] = None

    @classmethod
    def _load_from_env(cls) -> PlannerSettings:
        """Build settings from MRP_* environment variables."""
        config = PlannerSettings()

        source = os.environ.get("MRP_DATA_SOURCE")
        if source:
            try:
                config.data_source = DataSourceKind(source.lower())
            except ValueError:
                logger.warning(f"Invalid value for MRP_DATA_SOURCE: {source}")

        str_mapping = {
            "MRP_DATABASE_URL": "database_url",
            "MRP_WORKBOOK_PATH": "workbook_path",
            "MRP_BULK_PART_TYPE": "bulk_part_type",
            "MRP_LOG_LEVEL": "log_level",
        }
        for env_var, attr_name in str_mapping.items():
            value = os.environ.get(env_var)
            if value:
                setattr(config, attr_name, value)

        numeric_mapping = {
            "MRP_PLANNING_HORIZON_MONTHS": ("planning_horizon_months", int),
            "MRP_RISK_COVERAGE_RATIO": ("risk_coverage_ratio", float),
            "MRP_DAYS_PER_MONTH": ("days_per_month", int),
            "MRP_CRITICAL_LIMIT": ("critical_limit", int),
            "MRP_FETCH_TIMEOUT_SECONDS": ("fetch_timeout_seconds", float),
            "MRP_PO_AMOUNT_TOLERANCE": ("po_amount_tolerance", float),
        }
        for env_var, (attr_name, cast) in numeric_mapping.items():
            value = os.environ.get(env_var)
            if not value:
                continue
            try:
                parsed = cast(value)
            except ValueError:
                logger.warning(f"Invalid value for {env_var}: {value}")
                continue
            if parsed <= 0:
                logger.warning(f"{env_var} must be positive, got {value}")
                continue
            setattr(config, attr_name, parsed)
            logger.info(f"Setting {attr_name} = {parsed}")

        return config

    @classmethod
    def get(cls) -> PlannerSettings:
        """Current settings (loaded on first access)."""
        if cls._instance is None:
            cls._instance = cls._load_from_env()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop cached settings so the next get() re-reads the environment."""
        cls._instance = None


def get_settings() -> PlannerSettings:
    """FastAPI dependency returning the current settings."""
    return Settings.get()
