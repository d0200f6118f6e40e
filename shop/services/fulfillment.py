"""
Order finalization: the one-time stock decrement and cart clear.
"""
from __future__ import annotations

import logging

from django.db import transaction

from shop.domain.events import OrderFinalized
from shop.domain.order import Order
from shop.infra.event_store import EventStoreRepository
from shop.infra.repositories import CartRepository, OrderRepository
from shop.services.inventory import InventoryLedger

logger = logging.getLogger(__name__)


class OrderFulfillment:
    """Applies an order's side effects on inventory and cart exactly once.

    Non-card orders are finalized at checkout; card orders when the gateway
    confirms payment. The ``finalized_at`` column is claimed with a
    conditional update before any stock moves, so a second call for the
    same order is a no-op. Any failure rolls the claim back together with
    the decrements.
    """

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        cart_repo: CartRepository | None = None,
        ledger: InventoryLedger | None = None,
        event_store_repo: EventStoreRepository | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.ledger = ledger or InventoryLedger()
        self.event_store_repo = event_store_repo or EventStoreRepository()

    @transaction.atomic
    def finalize(self, order: Order) -> bool:
        """Decrement stock for every line and clear the cart; False if already done."""
        finalized_at = self.order_repo.claim_finalization(order.id)
        if finalized_at is None:
            logger.info("order_already_finalized", extra={"order_id": str(order.id)})
            return False

        for item in order.items:
            self.ledger.decrement(item.product_id, item.quantity)

        cleared = self.cart_repo.clear(order.customer_id)
        order.finalized_at = finalized_at

        self.event_store_repo.save_event(
            OrderFinalized.for_order(
                order.id,
                customer_id=order.customer_id,
                items_count=len(order.items),
            )
        )
        logger.info(
            "order_finalized",
            extra={"order_id": str(order.id), "user_id": str(order.customer_id), "count": cleared},
        )
        return True
