"""
Tests for the projection endpoints and application wiring.
"""
import io

import pandas as pd

from mrp_planner.api import app
from mrp_planner.projection.adapters import InMemoryDataSource
from mrp_planner.projection.api_projection import get_data_source


class BrokenSource(InMemoryDataSource):
    def list_components(self):
        raise OSError("database is locked")


class TestProjectionEndpoints:

    def test_projection_list(self, test_client, seeded_db):
        response = test_client.get("/mrp/projection")
        assert response.status_code == 200

        body = response.json()
        assert body["total"] == 1
        item = body["items"][0]
        assert item["component"]["part_code"] == "C100"
        assert item["overall_health"] == "Risk"
        assert item["priority"] == "Medium"
        assert item["recommended_action"] == "Order 120 units"
        assert [m["month"] for m in item["projections"]] == ["2025-01", "2025-02"]

    def test_projection_filters(self, test_client, seeded_db):
        assert test_client.get("/mrp/projection", params={"health": "Shortage"}).json()["total"] == 0
        assert test_client.get("/mrp/projection", params={"search": "sku-1"}).json()["total"] == 1
        assert test_client.get("/mrp/projection", params={"health": "Bogus"}).status_code == 422

    def test_summary(self, test_client, seeded_db):
        summary = test_client.get("/mrp/projection/summary").json()
        assert summary["total_components"] == 1
        assert summary["risk_count"] == 1
        assert summary["total_demand_value"] == 300
        assert summary["critical_components"] == []

    def test_recommendations(self, test_client, seeded_db):
        (rec,) = test_client.get("/mrp/projection/recommendations").json()
        assert rec["part_code"] == "C100"
        assert rec["recommended_quantity"] == 120
        assert rec["priority"] == "Medium"

    def test_empty_database(self, test_client):
        assert test_client.get("/mrp/projection").json() == {"total": 0, "items": []}

    def test_export_csv(self, test_client, seeded_db):
        response = test_client.get("/mrp/projection/export", params={"format": "csv"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        frame = pd.read_csv(io.BytesIO(response.content))
        assert frame.loc[0, "Part Code"] == "C100"
        assert frame.loc[0, "Month 1 Coverage %"] == 90.0

    def test_export_xlsx(self, test_client, seeded_db):
        response = test_client.get("/mrp/projection/export")
        assert response.status_code == 200
        frame = pd.read_excel(io.BytesIO(response.content))
        assert frame.loc[0, "Net 4-Month Demand"] == 120

    def test_export_rejects_unknown_format(self, test_client):
        assert test_client.get("/mrp/projection/export", params={"format": "pdf"}).status_code == 422

    def test_data_failure_returns_503(self, test_client):
        app.dependency_overrides[get_data_source] = lambda: BrokenSource()
        response = test_client.get("/mrp/projection")
        assert response.status_code == 503
        assert response.json()["detail"].startswith("Failed to load MRP input data")


class TestApplication:

    def test_health(self, test_client):
        assert test_client.get("/health").json() == {"status": "ok"}

    def test_settings_hide_database_url(self, test_client, monkeypatch):
        monkeypatch.setenv("MRP_PLANNING_HORIZON_MONTHS", "6")
        body = test_client.get("/settings").json()
        assert body["planning_horizon_months"] == 6
        assert "database_url" not in body
