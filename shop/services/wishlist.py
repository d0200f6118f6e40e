"""
Wishlist: products a customer saved for later.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import IntegrityError, transaction

from shop.domain.exceptions import NotFound, ValidationError
from shop.infra.models import CustomerORM, WishlistItemORM
from shop.infra.repositories import ProductRepository, WishlistRepository

logger = logging.getLogger(__name__)


class WishlistService:
    """Wishlist operations. Entries never reserve or check stock."""

    def __init__(
        self,
        wishlist_repo: WishlistRepository | None = None,
        product_repo: ProductRepository | None = None,
    ):
        self.wishlist_repo = wishlist_repo or WishlistRepository()
        self.product_repo = product_repo or ProductRepository()

    def get(self, customer: CustomerORM) -> list[WishlistItemORM]:
        return self.wishlist_repo.list_for_customer(customer.id)

    def add(self, customer: CustomerORM, product_id: UUID) -> list[WishlistItemORM]:
        product = self.product_repo.get_active(product_id)
        if product is None:
            raise NotFound("Product not found")

        if self.wishlist_repo.contains(customer.id, product.id):
            raise ValidationError("Product already in wishlist")
        try:
            with transaction.atomic():
                self.wishlist_repo.add(customer.id, product.id)
        except IntegrityError:
            raise ValidationError("Product already in wishlist") from None

        logger.info(
            "wishlist_item_added",
            extra={"user_id": str(customer.id), "product_id": str(product.id)},
        )
        return self.get(customer)

    def remove(self, customer: CustomerORM, product_id: UUID) -> list[WishlistItemORM]:
        if not self.wishlist_repo.remove(customer.id, product_id):
            raise NotFound("Product not found in wishlist")

        logger.info(
            "wishlist_item_removed",
            extra={"user_id": str(customer.id), "product_id": str(product_id)},
        )
        return self.get(customer)
