"""
Tests for product, stock-on-hand and forecast reads.
"""
from datetime import date

import pytest

from mrp_planner.catalog.service import (
    CatalogService,
    ProductNotFound,
    forecast_window,
    month_label,
)
from mrp_planner.database import ForecastRecord, SohRecord


class TestForecastWindow:

    @pytest.mark.parametrize("months, today, expected", [
        ("4", date(2025, 1, 15), (date(2025, 1, 1), date(2025, 4, 30))),
        ("6", date(2025, 9, 3), (date(2025, 9, 1), date(2026, 2, 28))),
        ("9", date(2024, 12, 31), (date(2024, 12, 1), date(2025, 8, 31))),
        ("all", date(2025, 1, 1), None),
    ])
    def test_window_bounds(self, months, today, expected):
        assert forecast_window(months, today) == expected

    def test_month_label(self):
        assert month_label("2025-08") == "Aug-25"


class TestCatalogService:

    @pytest.fixture
    def service(self, seeded_db):
        return CatalogService(seeded_db)

    def test_products_carry_bom(self, service):
        (product,) = service.list_products()
        assert product.product_code == "SKU-1"
        assert sorted(item.part_code for item in product.bom_items) == ["B-SKU-1", "C100"]

    def test_unknown_product(self, service):
        with pytest.raises(ProductNotFound):
            service.get_product("NOPE")

    def test_soh_sorted_and_searchable(self, service, seeded_db):
        seeded_db.add(SohRecord(part_code="A050", description="Back label", stock=3))
        seeded_db.commit()

        assert [r.part_code for r in service.list_soh()] == ["A050", "C100"]
        assert [r.part_code for r in service.list_soh(search="FRONT")] == ["C100"]

    def test_forecast_table_pivots_by_month(self, service):
        table = service.forecast_table(months="all")

        assert [h["key"] for h in table.headers] == ["product_code", "description", "2025-01", "2025-02"]
        assert [h["label"] for h in table.headers[2:]] == ["Jan-25", "Feb-25"]
        assert table.rows == [{"product_code": "SKU-1", "description": "", "2025-01": 100, "2025-02": 50}]

    def test_forecast_window_filters_months(self, service):
        table = service.forecast_table(months="4", today=date(2025, 2, 10))
        assert [h["key"] for h in table.headers[2:]] == ["2025-02"]

    def test_forecast_search(self, service, seeded_db):
        seeded_db.add(ForecastRecord(product_code="SKU-9", description="Mustard", forecast_date=date(2025, 1, 1), quantity=4))
        seeded_db.commit()

        table = service.forecast_table(months="all", search="mustard")
        assert [row["product_code"] for row in table.rows] == ["SKU-9"]

    def test_invalid_window(self, service):
        with pytest.raises(ValueError):
            service.forecast_table(months="5")

    def test_delete_all_forecasts(self, service, seeded_db):
        assert service.delete_all_forecasts() == 2
        assert seeded_db.query(ForecastRecord).count() == 0


class TestCatalogAPI:

    def test_products_endpoint(self, test_client, seeded_db):
        body = test_client.get("/products").json()
        assert [p["product_code"] for p in body] == ["SKU-1"]
        assert {item["part_code"] for item in body[0]["bom_items"]} == {"C100", "B-SKU-1"}

        assert test_client.get("/products/SKU-1").json()["price_per_shipper"] == 24
        assert test_client.get("/products/NOPE").status_code == 404

    def test_soh_endpoint(self, test_client, seeded_db):
        (row,) = test_client.get("/soh").json()
        assert row["part_code"] == "C100"
        assert row["stock"] == 180

    def test_forecast_table_endpoint(self, test_client, seeded_db):
        body = test_client.get("/forecasts", params={"months": "all", "search": "sku"}).json()
        assert body["success"] is True
        assert body["rows"][0]["2025-01"] == 100
        assert test_client.get("/forecasts", params={"months": "5"}).status_code == 422

    def test_delete_all_endpoint(self, test_client, seeded_db):
        response = test_client.delete("/forecasts/delete-all")
        assert response.status_code == 200
        assert response.json()["deleted_count"] == 2
        assert test_client.get("/forecasts", params={"months": "all"}).json()["rows"] == []
