"""
MRP Planner - BOM Attachment
============================

Joins flat BOM line items onto their owning products.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List

from .models import BomLineItem, Product

logger = logging.getLogger(__name__)


class BOMEngine:
    """Groups BOM line items by owning product identifier."""

    def attach(self, products: List[Product], bom_items: List[BomLineItem]) -> List[Product]:
        """
        Return new products whose component list holds their BOM lines.

        Line order within a product follows the input order. Products without
        lines get an empty list; lines whose product id matches no product are
        ignored.
        """
        by_product: Dict[str, List[BomLineItem]] = defaultdict(list)
        for item in bom_items:
            by_product[item.product_id].append(item)

        attached = [
            replace(product, components=list(by_product.get(product.id, [])))
            for product in products
        ]

        known_ids = {product.id for product in products}
        orphans = sum(len(items) for pid, items in by_product.items() if pid not in known_ids)
        if orphans:
            logger.warning(f"{orphans} BOM line items reference unknown products and were ignored")

        logger.debug(f"Attached {len(bom_items) - orphans} BOM lines to {len(products)} products")
        return attached


def attach_bom(products: List[Product], bom_items: List[BomLineItem]) -> List[Product]:
    """Convenience wrapper around BOMEngine.attach."""
    return BOMEngine().attach(products, bom_items)
