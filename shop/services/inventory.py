"""
Inventory ledger: per-product stock counters.
"""
from __future__ import annotations

import logging
from uuid import UUID

from shop.domain.exceptions import InsufficientStock, NotFound, ValidationError
from shop.infra.repositories import ProductRepository

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Availability checks and atomic stock decrements."""

    def __init__(self, product_repo: ProductRepository | None = None):
        self.product_repo = product_repo or ProductRepository()

    def check_availability(self, product_id: UUID, requested_qty: int) -> bool:
        """True iff the product exists and live stock covers the quantity."""
        stock = self.product_repo.get_stock(product_id)
        return stock is not None and stock >= requested_qty

    def decrement(self, product_id: UUID, qty: int) -> None:
        """Decrement stock by ``qty``; never lets stock go below zero."""
        if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
            raise ValidationError("Quantity must be a positive integer")

        if self.product_repo.decrement_stock_if_available(product_id, qty):
            logger.info(
                "stock_decremented",
                extra={"product_id": str(product_id), "quantity": qty},
            )
            return

        product = self.product_repo.get_by_id(product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found")

        logger.warning(
            "stock_decrement_rejected",
            extra={"product_id": str(product_id), "error": f"requested {qty}, available {product.stock}"},
        )
        raise InsufficientStock(product.name, available=product.stock, requested=qty)
