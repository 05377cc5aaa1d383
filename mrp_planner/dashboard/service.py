"""
MRP Planner - Dashboard Statistics
==================================

Headline numbers for the landing page:

    open POs            orders without the "Despatched/ Completed" tag
    open value          Σ system_amount over open orders
    open work hours     Σ ordered_qty_shippers × mins_per_shipper / 60 over open orders
    attention POs       orders tagged "PO Check"
    components at risk  SOH rows with stock < safety_stock
    turnaround days     mean of ceil(|delivery_date - po_received_date|) in days
                        over despatched orders with a delivery date
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict

from sqlalchemy.orm import Session

from mrp_planner.database import ProductRecord, PurchaseOrderRecord, SohRecord
from mrp_planner.purchasing.rules import PoStatus

logger = logging.getLogger(__name__)


@dataclass
class DashboardStats:
    open_po_count: int = 0
    total_open_value: float = 0.0
    components_at_risk_count: int = 0
    attention_po_count: int = 0
    total_open_work_hours: float = 0.0
    average_turnaround_days: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DashboardService:
    """Computes DashboardStats from the purchase order and SOH tables."""

    def __init__(self, db: Session):
        self.db = db

    def stats(self) -> DashboardStats:
        mins_by_product = {
            code: mins or 0.0
            for code, mins in self.db.query(ProductRecord.product_code, ProductRecord.mins_per_shipper)
        }

        result = DashboardStats()
        turnaround_total = 0
        completed = 0
        for po in self.db.query(PurchaseOrderRecord).all():
            statuses = po.status or []
            if PoStatus.DESPATCHED.value not in statuses:
                result.open_po_count += 1
                result.total_open_value += po.system_amount or 0.0
                result.total_open_work_hours += (
                    (po.ordered_qty_shippers or 0.0) * mins_by_product.get(po.product_code, 0.0) / 60
                )
            elif po.delivery_date is not None:
                turnaround_total += abs((po.delivery_date - po.po_received_date).days)
                completed += 1

            if PoStatus.PO_CHECK.value in statuses:
                result.attention_po_count += 1

        result.components_at_risk_count = sum(
            1 for stock, safety in self.db.query(SohRecord.stock, SohRecord.safety_stock)
            if (stock or 0.0) < (safety or 0.0)
        )
        if completed:
            result.average_turnaround_days = turnaround_total / completed

        logger.debug(f"Dashboard stats: {result}")
        return result
