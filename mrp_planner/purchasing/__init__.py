"""Customer purchase orders: status tags and amount validation."""

from .api import router
from .rules import PoStatus, PurchaseOrderError, PurchaseOrderNotFound, toggle_status
from .service import PurchaseOrderPage, PurchaseOrderService

__all__ = [
    "router",
    "PoStatus",
    "PurchaseOrderError",
    "PurchaseOrderNotFound",
    "PurchaseOrderPage",
    "PurchaseOrderService",
    "toggle_status",
]
