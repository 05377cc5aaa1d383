"""
MRP Planner - Purchase Order Service
====================================

Persistence of purchase orders on top of the rules module.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from mrp_planner.database import BomItemRecord, ProductRecord, PurchaseOrderRecord
from mrp_planner.projection.adapters import normalize_bom_line_item, normalize_product
from mrp_planner.projection.models import Product
from mrp_planner.settings import PlannerSettings, Settings

from .rules import (
    AmountCheck,
    PoStatus,
    PurchaseOrderError,
    PurchaseOrderNotFound,
    check_amounts,
    toggle_status,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25


@dataclass
class PurchaseOrderPage:
    """A page of purchase orders plus the total across all pages."""
    items: List[PurchaseOrderRecord]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class PurchaseOrderService:
    """CRUD and status transitions for purchase orders."""

    def __init__(self, db: Session, settings: Optional[PlannerSettings] = None):
        self.db = db
        self.settings = settings or Settings.get()

    # ───────────────────────────────────────────────────────────────────────
    # Lookups
    # ───────────────────────────────────────────────────────────────────────

    def list_orders(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        sort_direction: str = "desc",
    ) -> PurchaseOrderPage:
        """
        One page of orders in creation order (newest first by default).

        search matches PO number, customer name or product code
        (case-insensitive substring); status keeps orders carrying that tag.
        """
        order = PurchaseOrderRecord.id.asc() if sort_direction == "asc" else PurchaseOrderRecord.id.desc()
        query = self.db.query(PurchaseOrderRecord)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                PurchaseOrderRecord.po_number.ilike(pattern),
                PurchaseOrderRecord.customer_name.ilike(pattern),
                PurchaseOrderRecord.product_code.ilike(pattern),
            ))
        orders = query.order_by(order).all()
        # status is a JSON tag list, filtered after the query
        if status:
            orders = [po for po in orders if status in (po.status or [])]

        page = max(page, 1)
        offset = (page - 1) * limit
        return PurchaseOrderPage(
            items=orders[offset:offset + limit],
            total=len(orders),
            page=page,
            limit=limit,
        )

    def get(self, po_id: int) -> PurchaseOrderRecord:
        po = self.db.get(PurchaseOrderRecord, po_id)
        if po is None:
            raise PurchaseOrderNotFound(f"Purchase order {po_id} not found")
        return po

    def po_number_exists(self, po_number: str) -> bool:
        return (
            self.db.query(PurchaseOrderRecord.id)
            .filter(PurchaseOrderRecord.po_number == po_number)
            .first()
            is not None
        )

    def load_product(self, product_code: str) -> Product:
        """Product with its BOM lines attached."""
        record = (
            self.db.query(ProductRecord)
            .filter(ProductRecord.product_code == product_code)
            .first()
        )
        if record is None:
            raise PurchaseOrderError(f"Unknown product {product_code}")

        product = normalize_product({
            "id": record.id,
            "product_code": record.product_code,
            "description": record.description,
            "price_per_shipper": record.price_per_shipper,
            "units_per_shipper": record.units_per_shipper,
            "mins_per_shipper": record.mins_per_shipper,
        })
        lines = self.db.query(BomItemRecord).filter(BomItemRecord.product_id == record.id).all()
        product.components = [
            item for item in (
                normalize_bom_line_item({
                    "product_id": line.product_id,
                    "part_code": line.part_code,
                    "per_shipper": line.per_shipper,
                    "part_type": line.part_type,
                    "part_description": line.part_description,
                })
                for line in lines
            )
            if item is not None
        ]
        return product

    def _check(self, product_code: str, pieces: float, customer_amount: float) -> AmountCheck:
        return check_amounts(
            self.load_product(product_code),
            pieces,
            customer_amount,
            tolerance=self.settings.po_amount_tolerance,
            bulk_part_type=self.settings.bulk_part_type,
        )

    # ───────────────────────────────────────────────────────────────────────
    # Mutations
    # ───────────────────────────────────────────────────────────────────────

    def create(
        self,
        po_number: str,
        product_code: str,
        customer_name: str,
        po_created_date: date,
        po_received_date: date,
        ordered_qty_pieces: float,
        customer_amount: float,
        requested_delivery_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> PurchaseOrderRecord:
        """
        Create an order; status is PO Check when the amount does not match.

        Raises:
            PurchaseOrderError: duplicate PO number, unknown product or no bulk line
        """
        po_number = po_number.strip()
        if self.po_number_exists(po_number):
            raise PurchaseOrderError(f"PO number {po_number} already exists")

        check = self._check(product_code, ordered_qty_pieces, customer_amount)
        po = PurchaseOrderRecord(
            po_number=po_number,
            product_code=product_code,
            customer_name=customer_name,
            status=check.status,
            po_created_date=po_created_date,
            po_received_date=po_received_date,
            requested_delivery_date=requested_delivery_date,
            ordered_qty_pieces=ordered_qty_pieces,
            ordered_qty_shippers=check.ordered_qty_shippers,
            customer_amount=customer_amount,
            system_amount=check.system_amount,
            notes=notes,
        )
        self.db.add(po)
        self.db.commit()
        self.db.refresh(po)

        if not check.matches:
            logger.warning(f"PO {po_number} amount differs by {check.difference:.2f}; flagged for check")
        logger.info(f"Created PO {po_number} for {product_code}")
        return po

    def toggle_status(self, po_id: int, tag: PoStatus | str) -> PurchaseOrderRecord:
        po = self.get(po_id)
        po.status = toggle_status(po.status, tag)
        self.db.commit()
        self.db.refresh(po)
        return po

    def resolve_po_check(self, po_id: int) -> PurchaseOrderRecord:
        """
        Clear the PO Check flag once amounts agree.

        Raises:
            PurchaseOrderError: the amounts still differ beyond tolerance
        """
        po = self.get(po_id)
        check = self._check(po.product_code, po.ordered_qty_pieces, po.customer_amount)
        if not check.matches:
            raise PurchaseOrderError(
                f"Amount mismatch still exists. Difference is ${check.difference:.2f}. "
                f"Please correct the PO details first."
            )
        po.status = [PoStatus.OPEN.value]
        self.db.commit()
        self.db.refresh(po)
        return po

    def update_amounts(self, po_id: int, ordered_qty_pieces: float, customer_amount: float) -> PurchaseOrderRecord:
        """Store corrected quantities and reset status by the amount check."""
        po = self.get(po_id)
        check = self._check(po.product_code, ordered_qty_pieces, customer_amount)
        po.ordered_qty_pieces = ordered_qty_pieces
        po.customer_amount = customer_amount
        po.ordered_qty_shippers = check.ordered_qty_shippers
        po.system_amount = check.system_amount
        po.status = check.status
        self.db.commit()
        self.db.refresh(po)
        return po

    def despatch(self, po_id: int, delivery_date: date, docket_number: str) -> PurchaseOrderRecord:
        po = self.get(po_id)
        po.status = [PoStatus.DESPATCHED.value]
        po.delivery_date = delivery_date
        po.delivery_docket_number = docket_number
        self.db.commit()
        self.db.refresh(po)
        logger.info(f"PO {po.po_number} despatched (docket {docket_number})")
        return po

    def reopen(self, po_id: int) -> PurchaseOrderRecord:
        po = self.get(po_id)
        po.status = [PoStatus.OPEN.value]
        po.delivery_date = None
        po.delivery_docket_number = None
        self.db.commit()
        self.db.refresh(po)
        return po

    def delete(self, po_id: int) -> None:
        po = self.get(po_id)
        self.db.delete(po)
        self.db.commit()
        logger.info(f"Deleted PO {po.po_number}")
