"""
Tests for the dashboard statistics.
"""
from datetime import date

import pytest

from mrp_planner.dashboard.service import DashboardService
from mrp_planner.database import ProductRecord, PurchaseOrderRecord, SohRecord


def _po(number, status, shippers=10.0, amount=240.0, received=date(2025, 3, 1), delivered=None):
    return PurchaseOrderRecord(
        po_number=number,
        product_code="SKU-1",
        customer_name="Acme Foods",
        status=status,
        po_created_date=received,
        po_received_date=received,
        ordered_qty_pieces=shippers * 12,
        ordered_qty_shippers=shippers,
        customer_amount=amount,
        system_amount=amount,
        delivery_date=delivered,
    )


@pytest.fixture
def dashboard_db(seeded_db):
    seeded_db.query(ProductRecord).filter_by(product_code="SKU-1").update({"mins_per_shipper": 6.0})
    seeded_db.add_all([
        _po("PO-1", ["Open"], shippers=10, amount=240),
        _po("PO-2", ["PO Check", "In Production"], shippers=20, amount=480),
        _po("PO-3", ["Despatched/ Completed"], delivered=date(2025, 3, 5)),
        _po("PO-4", ["Despatched/ Completed", "PO Check"], delivered=date(2025, 3, 11)),
        _po("PO-5", ["Despatched/ Completed"]),
        SohRecord(part_code="C900", stock=2, safety_stock=5),
        SohRecord(part_code="C901", stock=5, safety_stock=5),
    ])
    seeded_db.commit()
    return seeded_db


class TestDashboardStats:

    def test_open_orders(self, dashboard_db):
        stats = DashboardService(dashboard_db).stats()
        assert stats.open_po_count == 2
        assert stats.total_open_value == 720
        assert stats.total_open_work_hours == pytest.approx((10 + 20) * 6 / 60)

    def test_attention_counts_every_po_check(self, dashboard_db):
        assert DashboardService(dashboard_db).stats().attention_po_count == 2

    def test_components_below_safety_stock(self, dashboard_db):
        """Stock equal to safety stock is not at risk."""
        assert DashboardService(dashboard_db).stats().components_at_risk_count == 1

    def test_turnaround_uses_delivered_orders_only(self, dashboard_db):
        assert DashboardService(dashboard_db).stats().average_turnaround_days == 7

    def test_empty_database(self, db_session):
        stats = DashboardService(db_session).stats()
        assert stats.open_po_count == 0
        assert stats.average_turnaround_days == 0

    def test_stats_endpoint(self, test_client, dashboard_db):
        body = test_client.get("/dashboard/stats").json()
        assert body["open_po_count"] == 2
        assert body["components_at_risk_count"] == 1
