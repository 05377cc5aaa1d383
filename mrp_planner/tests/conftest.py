"""
Shared fixtures for the MRP planner tests.
"""
import io
from datetime import date
from typing import Callable, Generator, List

import pandas as pd
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from mrp_planner.api import app
from mrp_planner.database import (
    Base,
    BomItemRecord,
    ForecastRecord,
    ProductRecord,
    SohRecord,
    get_db,
    make_engine,
)
from mrp_planner.projection.adapters import InMemoryDataSource, SqlDataSource
from mrp_planner.projection.api_projection import get_data_source
from mrp_planner.projection.models import BomLineItem, Component, Forecast, Product
from mrp_planner.settings import PlannerSettings, Settings, get_settings


@pytest.fixture(autouse=True)
def reset_settings():
    """Each test starts from freshly loaded settings."""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def settings() -> PlannerSettings:
    return PlannerSettings()


# ═══════════════════════════════════════════════════════════════════════════════
# DOMAIN RECORDS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sample_components() -> List[Component]:
    return [
        Component(part_code="C100", description="Front label", stock=180),
        Component(part_code="C200", description="Carton 12x", stock=1000),
        Component(part_code="C300", description="Cap", stock=10),
    ]


@pytest.fixture
def sample_products() -> List[Product]:
    return [
        Product(id="1", product_code="SKU-1", description="Sauce 500ml", price_per_shipper=24.0),
        Product(id="2", product_code="SKU-2", description="Sauce 1L", price_per_shipper=30.0),
        Product(id="3", product_code="SKU-3", description="No forecast"),
    ]


@pytest.fixture
def sample_bom_items() -> List[BomLineItem]:
    return [
        BomLineItem(product_id="1", part_code="C100", per_shipper=2, part_type="Label"),
        BomLineItem(product_id="1", part_code="C200", per_shipper=1, part_type="Carton"),
        BomLineItem(product_id="1", part_code="B-SKU-1", per_shipper=12, part_type="Bulk - Supplied"),
        BomLineItem(product_id="2", part_code="C200", per_shipper=1, part_type="Carton"),
        BomLineItem(product_id="2", part_code="C300", per_shipper=6, part_type="Cap"),
        BomLineItem(product_id="3", part_code="C300", per_shipper=6, part_type="Cap"),
    ]


@pytest.fixture
def sample_forecasts() -> List[Forecast]:
    return [
        Forecast(product_code="SKU-1", monthly_forecast={"2025-01": 100, "2025-02": 50}),
        Forecast(product_code="SKU-2", monthly_forecast={"2025-01": 20, "2025-02": 20, "2025-03": 20}),
    ]


@pytest.fixture
def sample_source(sample_components, sample_products, sample_bom_items, sample_forecasts) -> InMemoryDataSource:
    return InMemoryDataSource(
        components=sample_components,
        products=sample_products,
        bom_items=sample_bom_items,
        forecasts=sample_forecasts,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# DATABASE
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def session_factory(tmp_path) -> Generator[sessionmaker, None, None]:
    """Temporary SQLite file; each thread gets its own connection."""
    engine = make_engine(f"sqlite:///{tmp_path / 'mrp_test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def seeded_db(db_session) -> Session:
    """SKU-1 / C100 scenario; SKU-1 also carries the bulk line used by PO checks."""
    sku1 = ProductRecord(product_code="SKU-1", description="Sauce 500ml", price_per_shipper=24.0)
    db_session.add(sku1)
    db_session.flush()
    db_session.add_all([
        BomItemRecord(product_id=sku1.id, part_code="C100", per_shipper=2, part_type="Label",
                      part_description="Front label"),
        BomItemRecord(product_id=sku1.id, part_code="B-SKU-1", per_shipper=12,
                      part_type="Bulk - Supplied", part_description="Sauce bulk"),
        SohRecord(part_code="C100", description="Front label", stock=180, safety_stock=0),
        ForecastRecord(product_code="SKU-1", forecast_date=date(2025, 1, 1), quantity=100),
        ForecastRecord(product_code="SKU-1", forecast_date=date(2025, 2, 1), quantity=50),
    ])
    db_session.commit()
    return db_session


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_client(session_factory, settings) -> Generator[TestClient, None, None]:
    """FastAPI client bound to the temporary database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_data_source] = lambda: SqlDataSource(session_factory)
    yield TestClient(app)
    app.dependency_overrides.clear()


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEL FILES
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_xlsx() -> Callable[..., bytes]:
    """Build an .xlsx file from row lists (first sheet, no implied header)."""

    def _make(rows: list, sheet_name: str = "Sheet1") -> bytes:
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, index=False, header=False)
        return buffer.getvalue()

    return _make
