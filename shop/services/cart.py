"""
Cart snapshot: per-customer list of intended purchases.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import IntegrityError, transaction

from shop.domain.exceptions import InsufficientStock, NotFound, ValidationError
from shop.infra.models import CartItemORM, CustomerORM
from shop.infra.repositories import CartRepository, ProductRepository

logger = logging.getLogger(__name__)


def _positive_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    return quantity


class CartService:
    """Cart operations; every stock check reads live product stock."""

    def __init__(
        self,
        cart_repo: CartRepository | None = None,
        product_repo: ProductRepository | None = None,
    ):
        self.cart_repo = cart_repo or CartRepository()
        self.product_repo = product_repo or ProductRepository()

    def get(self, customer: CustomerORM) -> list[CartItemORM]:
        return self.cart_repo.list_for_customer(customer.id)

    def add(self, customer: CustomerORM, product_id: UUID, quantity=1, _retry: bool = True) -> list[CartItemORM]:
        """Add a product, merging into the existing entry for it."""
        quantity = _positive_quantity(quantity)
        product = self.product_repo.get_active(product_id)
        if product is None:
            raise NotFound("Product not found")

        try:
            with transaction.atomic():
                entry = self.cart_repo.get_product_entry_for_update(customer.id, product.id)
                new_quantity = quantity + (entry.quantity if entry else 0)
                if product.stock < new_quantity:
                    raise InsufficientStock(product.name, available=product.stock, requested=new_quantity)

                if entry:
                    self.cart_repo.set_quantity(entry, new_quantity)
                else:
                    self.cart_repo.create_entry(customer.id, product.id, new_quantity)
        except IntegrityError:
            # A concurrent request created the entry first; merge into it.
            if not _retry:
                raise
            return self.add(customer, product_id, quantity, _retry=False)

        logger.info(
            "cart_item_added",
            extra={"user_id": str(customer.id), "product_id": str(product.id), "quantity": new_quantity},
        )
        return self.get(customer)

    def update_quantity(self, customer: CustomerORM, entry_id: UUID, quantity) -> list[CartItemORM]:
        quantity = _positive_quantity(quantity)
        with transaction.atomic():
            entry = self.cart_repo.get_entry_for_update(customer.id, entry_id)
            if entry is None:
                raise NotFound("Cart item not found")

            stock = self.product_repo.get_stock(entry.product_id)
            if stock is None or stock < quantity:
                raise InsufficientStock(entry.product.name, available=stock, requested=quantity)
            self.cart_repo.set_quantity(entry, quantity)

        return self.get(customer)

    def remove(self, customer: CustomerORM, entry_id: UUID) -> list[CartItemORM]:
        if not self.cart_repo.delete_entry(customer.id, entry_id):
            raise NotFound("Cart item not found")
        return self.get(customer)

    def clear(self, customer_id: UUID) -> int:
        removed = self.cart_repo.clear(customer_id)
        logger.info("cart_cleared", extra={"user_id": str(customer_id), "count": removed})
        return removed
