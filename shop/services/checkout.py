"""
Checkout orchestrator: turns requested items into a persisted order and, for
card payments, a hosted payment session.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from django.db import transaction

from shop.domain.events import OrderCreated
from shop.domain.exceptions import (
    ExternalServiceFailure,
    InsufficientStock,
    NotFound,
    ValidationError,
)
from shop.domain.order import Order, OrderItem, PaymentMethod, ShippingAddress
from shop.infra.event_store import EventStoreRepository
from shop.infra.models import CustomerORM
from shop.infra.payments import CheckoutSession, get_payment_gateway
from shop.infra.repositories import OrderRepository, ProductRepository
from shop.services.fulfillment import OrderFulfillment
from shop.services.inventory import InventoryLedger

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    order: Order
    checkout_url: str | None = None
    session_id: str | None = None


def parse_order_lines(items) -> list[tuple[UUID, int]]:
    """Validate requested items; repeated products are merged into one line."""
    if not isinstance(items, list) or not items:
        raise ValidationError("Cart is empty")

    lines: dict[UUID, int] = {}
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each item must be an object with productId and quantity")

        raw_id = item.get("productId", item.get("product_id"))
        try:
            product_id = raw_id if isinstance(raw_id, UUID) else UUID(str(raw_id))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid product id: {raw_id}") from None

        quantity = item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Quantity must be a positive integer")

        lines[product_id] = lines.get(product_id, 0) + quantity
    return list(lines.items())


class CheckoutService:
    """Service for order creation."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        product_repo: ProductRepository | None = None,
        fulfillment: OrderFulfillment | None = None,
        ledger: InventoryLedger | None = None,
        event_store_repo: EventStoreRepository | None = None,
        payment_gateway=None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.product_repo = product_repo or ProductRepository()
        self.ledger = ledger or InventoryLedger(product_repo=self.product_repo)
        self.fulfillment = fulfillment or OrderFulfillment(order_repo=self.order_repo)
        self.event_store_repo = event_store_repo or EventStoreRepository()
        self._payment_gateway = payment_gateway

    @property
    def payment_gateway(self):
        if self._payment_gateway is None:
            self._payment_gateway = get_payment_gateway()
        return self._payment_gateway

    def create_order(
        self,
        customer: CustomerORM,
        items,
        shipping_address,
        payment_method,
    ) -> CheckoutResult:
        """Create an order.

        Everything is validated before the first write. Non-card orders are
        finalized in the same transaction that stores them, so a stock
        shortfall detected by the conditional decrement leaves no order
        behind. Card orders are stored first and then get a payment session;
        if that fails the order is deleted again.
        """
        lines = parse_order_lines(items)
        address = ShippingAddress.from_dict(shipping_address)
        method = PaymentMethod.parse(payment_method)

        with transaction.atomic():
            order = self._price_order(customer, lines, address, method)
            self.order_repo.save(order)
            if not order.defers_fulfillment:
                self._record_created(order)
                self.fulfillment.finalize(order)

        session = None
        if order.defers_fulfillment:
            session = self._open_payment_session(order, customer)
            self._record_created(order)

        logger.info(
            "order_created",
            extra={
                "order_id": str(order.id),
                "user_id": str(customer.id),
                "payment_method": method.value,
                "amount": order.total_amount,
            },
        )

        return CheckoutResult(
            order=self.order_repo.get_by_id(order.id),
            checkout_url=session.url if session else None,
            session_id=session.id if session else None,
        )

    def _record_created(self, order: Order) -> None:
        self.event_store_repo.save_event(
            OrderCreated.for_order(
                order.id,
                customer_id=order.customer_id,
                payment_method=order.payment_method.value,
                total_amount=order.total_amount,
                items_count=len(order.items),
                payment_session_id=order.payment_session_id,
            )
        )

    def _price_order(
        self,
        customer: CustomerORM,
        lines: list[tuple[UUID, int]],
        address: ShippingAddress,
        method: PaymentMethod,
    ) -> Order:
        order_items = []
        shipping_fee = Decimal("0.00")

        for product_id, quantity in lines:
            product = self.product_repo.get_active(product_id)
            if product is None:
                raise NotFound(f"Product {product_id} not found")
            if not self.ledger.check_availability(product.id, quantity):
                raise InsufficientStock(product.name, available=product.stock, requested=quantity)

            order_items.append(OrderItem(
                product_id=product.id,
                quantity=quantity,
                price=product.unit_price,
                product_name=product.name,
            ))
            # Shipping is charged per product line, not per unit
            shipping_fee += product.shipping_fee

        return Order.place(
            customer_id=customer.id,
            items=order_items,
            shipping_fee=shipping_fee,
            shipping_address=address,
            payment_method=method,
        )

    def _open_payment_session(self, order: Order, customer: CustomerORM) -> CheckoutSession:
        try:
            session = self.payment_gateway.create_checkout_session(order, customer_email=customer.email or None)
            if not session.url:
                raise ExternalServiceFailure("Payment session created but no checkout URL returned")
            order.attach_payment_session(session.id)
            self.order_repo.save(order)
        except Exception as e:
            self.order_repo.delete(order.id)
            logger.error(
                "payment_session_failed",
                extra={
                    "order_id": str(order.id),
                    "user_id": str(customer.id),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            if isinstance(e, ExternalServiceFailure):
                raise
            raise ExternalServiceFailure(f"Payment processing failed: {e}") from e

        logger.info(
            "payment_session_created",
            extra={"order_id": str(order.id), "session_id": session.id},
        )
        return session
