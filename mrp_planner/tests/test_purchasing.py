"""
Tests for purchase order rules, service and API.
"""
from datetime import date

import pytest

from mrp_planner.projection.models import BomLineItem, Product
from mrp_planner.purchasing.rules import (
    PoStatus,
    PurchaseOrderError,
    PurchaseOrderNotFound,
    bulk_per_shipper,
    check_amounts,
    toggle_status,
)
from mrp_planner.purchasing.service import PurchaseOrderService


def _product(bulk_qty=12, price=24.0):
    return Product(
        id="1", product_code="SKU-1", price_per_shipper=price,
        components=[
            BomLineItem(product_id="1", part_code="C100", per_shipper=2, part_type="Label"),
            BomLineItem(product_id="1", part_code="B1", per_shipper=bulk_qty, part_type="Bulk - Supplied"),
        ],
    )


def _new_po(service, po_number="PO-1", pieces=120, amount=240.0):
    return service.create(
        po_number=po_number,
        product_code="SKU-1",
        customer_name="Acme Foods",
        po_created_date=date(2025, 3, 1),
        po_received_date=date(2025, 3, 2),
        ordered_qty_pieces=pieces,
        customer_amount=amount,
    )


class TestStatusToggle:

    def test_adds_missing_tag(self):
        assert toggle_status(["Open"], PoStatus.IN_PRODUCTION) == ["Open", "In Production"]

    def test_removes_present_tag(self):
        assert toggle_status(["Open", "In Production"], "Open") == ["In Production"]

    def test_empty_result_becomes_open(self):
        assert toggle_status(["In Production"], PoStatus.IN_PRODUCTION) == ["Open"]
        assert toggle_status([], PoStatus.OPEN) == ["Open"]


class TestAmountRules:

    def test_bulk_per_shipper(self):
        assert bulk_per_shipper(_product()) == 12

    def test_missing_bulk_line(self):
        product = _product(bulk_qty=0)
        with pytest.raises(PurchaseOrderError, match="Bulk - Supplied"):
            bulk_per_shipper(product)

    def test_system_amount(self):
        check = check_amounts(_product(), ordered_qty_pieces=120, customer_amount=243)
        assert check.ordered_qty_shippers == 10
        assert check.system_amount == 240
        assert check.difference == 3
        assert check.matches
        assert check.status == ["Open"]

    def test_tolerance_boundary(self):
        assert check_amounts(_product(), 120, 245).matches
        assert not check_amounts(_product(), 120, 245.01).matches
        assert check_amounts(_product(), 120, 250, tolerance=10).matches


class TestPurchaseOrderService:

    @pytest.fixture
    def service(self, seeded_db, settings):
        return PurchaseOrderService(seeded_db, settings)

    def test_create_matching_amount_is_open(self, service):
        po = _new_po(service, amount=242)
        assert po.status == ["Open"]
        assert po.ordered_qty_shippers == 10
        assert po.system_amount == 240

    def test_create_mismatch_flags_po_check(self, service):
        po = _new_po(service, amount=260)
        assert po.status == ["PO Check"]

    def test_duplicate_po_number_rejected(self, service):
        _new_po(service)
        with pytest.raises(PurchaseOrderError, match="already exists"):
            _new_po(service)

    def test_unknown_product_rejected(self, service):
        with pytest.raises(PurchaseOrderError, match="Unknown product"):
            service.create(
                po_number="PO-X", product_code="NOPE", customer_name="Acme",
                po_created_date=date(2025, 1, 1), po_received_date=date(2025, 1, 1),
                ordered_qty_pieces=1, customer_amount=1,
            )

    def test_resolve_po_check_requires_matching_amounts(self, service):
        po = _new_po(service, amount=260)
        with pytest.raises(PurchaseOrderError, match=r"Difference is \$20\.00"):
            service.resolve_po_check(po.id)

        service.update_amounts(po.id, ordered_qty_pieces=130, customer_amount=260)
        assert service.get(po.id).status == ["Open"]
        assert service.resolve_po_check(po.id).status == ["Open"]

    def test_update_amounts_recomputes(self, service):
        po = _new_po(service)
        updated = service.update_amounts(po.id, ordered_qty_pieces=24, customer_amount=100)
        assert updated.ordered_qty_shippers == 2
        assert updated.system_amount == 48
        assert updated.status == ["PO Check"]

    def test_despatch_and_reopen(self, service):
        po = _new_po(service)
        despatched = service.despatch(po.id, date(2025, 4, 1), "DK-77")
        assert despatched.status == ["Despatched/ Completed"]
        assert despatched.delivery_docket_number == "DK-77"

        reopened = service.reopen(po.id)
        assert reopened.status == ["Open"]
        assert reopened.delivery_date is None
        assert reopened.delivery_docket_number is None

    def test_toggle_and_filter(self, service):
        first = _new_po(service, "PO-1")
        _new_po(service, "PO-2")
        service.toggle_status(first.id, PoStatus.IN_PRODUCTION)

        assert [po.po_number for po in service.list_orders(status="In Production").items] == ["PO-1"]
        assert service.list_orders().total == 2

    def test_search_and_pagination(self, service):
        for number in ("PO-1", "PO-2", "PO-3", "XY-9"):
            _new_po(service, number)

        newest_first = service.list_orders(limit=2)
        assert [po.po_number for po in newest_first.items] == ["XY-9", "PO-3"]
        assert newest_first.total == 4
        assert newest_first.total_pages == 2

        oldest_first = service.list_orders(page=2, limit=2, sort_direction="asc")
        assert [po.po_number for po in oldest_first.items] == ["PO-3", "XY-9"]

        assert [po.po_number for po in service.list_orders(search="po-", sort_direction="asc").items] == [
            "PO-1", "PO-2", "PO-3",
        ]
        assert service.list_orders(search="acme").total == 4
        assert service.list_orders(page=5, limit=2).items == []

    def test_delete(self, service):
        po = _new_po(service)
        service.delete(po.id)
        with pytest.raises(PurchaseOrderNotFound):
            service.get(po.id)


class TestPurchaseOrderAPI:

    PAYLOAD = {
        "po_number": "PO-100",
        "product_code": "SKU-1",
        "customer_name": "Acme Foods",
        "po_created_date": "2025-03-01",
        "po_received_date": "2025-03-02",
        "ordered_qty_pieces": 120,
        "customer_amount": 300,
    }

    def test_create_and_resolve_flow(self, test_client, seeded_db):
        created = test_client.post("/purchase-orders", json=self.PAYLOAD)
        assert created.status_code == 201
        body = created.json()
        assert body["status"] == ["PO Check"]

        resolve = test_client.post(f"/purchase-orders/{body['id']}/resolve")
        assert resolve.status_code == 400
        assert "Amount mismatch" in resolve.json()["detail"]

        fixed = test_client.put(
            f"/purchase-orders/{body['id']}",
            json={"ordered_qty_pieces": 150, "customer_amount": 300},
        )
        assert fixed.status_code == 200
        assert fixed.json()["status"] == ["Open"]

    def test_duplicate_returns_400(self, test_client, seeded_db):
        assert test_client.post("/purchase-orders", json=self.PAYLOAD).status_code == 201
        assert test_client.post("/purchase-orders", json=self.PAYLOAD).status_code == 400

    def test_status_toggle_and_despatch(self, test_client, seeded_db):
        po_id = test_client.post("/purchase-orders", json={**self.PAYLOAD, "customer_amount": 240}).json()["id"]

        toggled = test_client.post(f"/purchase-orders/{po_id}/status", json={"status": "Awaiting Components"})
        assert toggled.json()["status"] == ["Open", "Awaiting Components"]

        despatched = test_client.post(
            f"/purchase-orders/{po_id}/despatch",
            json={"delivery_date": "2025-04-01", "delivery_docket_number": "DK-1"},
        )
        assert despatched.json()["status"] == ["Despatched/ Completed"]
        assert despatched.json()["delivery_date"] == "2025-04-01"

        listed = test_client.get("/purchase-orders", params={"status": "Despatched/ Completed"}).json()
        assert [po["id"] for po in listed["data"]] == [po_id]
        assert listed["pagination"] == {"total": 1, "page": 1, "limit": 25, "total_pages": 1}

    def test_list_paging_params(self, test_client, seeded_db):
        for number in ("PO-1", "PO-2", "PO-3"):
            test_client.post("/purchase-orders", json={**self.PAYLOAD, "po_number": number})

        page = test_client.get("/purchase-orders", params={"page": 2, "limit": 2, "sort_direction": "asc"}).json()
        assert [po["po_number"] for po in page["data"]] == ["PO-3"]
        assert page["pagination"]["total_pages"] == 2

        assert test_client.get("/purchase-orders", params={"search": "po-2"}).json()["pagination"]["total"] == 1
        assert test_client.get("/purchase-orders", params={"sort_direction": "up"}).status_code == 422

    def test_missing_po_returns_404(self, test_client):
        assert test_client.get("/purchase-orders/999").status_code == 404
        assert test_client.delete("/purchase-orders/999").status_code == 404
