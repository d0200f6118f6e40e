"""
Payment reconciler: finalizes card orders once the gateway confirms payment.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction

from shop.domain.events import PaymentStatusChanged
from shop.domain.exceptions import (
    InsufficientStock,
    InvalidSession,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from shop.domain.order import Order, OrderStatus, PaymentStatus
from shop.infra.event_store import EventStoreRepository
from shop.infra.payments import CheckoutSession, get_payment_gateway
from shop.infra.repositories import OrderRepository
from shop.services.fulfillment import OrderFulfillment

logger = logging.getLogger(__name__)

GATEWAY_PAID = "paid"

WEBHOOK_EVENTS = frozenset({
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
})


class PaymentReconciler:
    """Service for payment confirmation."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        fulfillment: OrderFulfillment | None = None,
        event_store_repo: EventStoreRepository | None = None,
        payment_gateway=None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.fulfillment = fulfillment or OrderFulfillment(order_repo=self.order_repo)
        self.event_store_repo = event_store_repo or EventStoreRepository()
        self._payment_gateway = payment_gateway

    @property
    def payment_gateway(self):
        if self._payment_gateway is None:
            self._payment_gateway = get_payment_gateway()
        return self._payment_gateway

    def verify_and_finalize(self, session_id: str) -> tuple[Order, str]:
        """Sync an order with its payment session.

        Returns the order and the gateway's own payment status string
        (``paid``, ``unpaid``, ``no_payment_required``).
        """
        if not isinstance(session_id, str) or not session_id.strip():
            raise ValidationError("Session ID is required")

        session = self.payment_gateway.retrieve_session(session_id.strip())
        order_id = self._order_id_from(session)

        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFound("Order not found")

        if session.payment_status == GATEWAY_PAID:
            try:
                self._apply_payment(order_id, session)
            except InsufficientStock as e:
                # Paid at the gateway, but stock ran out after checkout
                logger.error(
                    "paid_order_out_of_stock",
                    extra={"order_id": str(order_id), "session_id": session.id, "error": e.message},
                )
                raise
            order = self.order_repo.get_by_id(order_id)

        return order, session.payment_status

    def handle_webhook(self, payload: bytes, signature: str) -> dict:
        """Process a signed gateway event; unrelated event types are ignored."""
        event = self.payment_gateway.parse_webhook(payload, signature)
        if event["type"] not in WEBHOOK_EVENTS or not event.get("session_id"):
            logger.info("webhook_ignored", extra={"operation": event["type"]})
            return {"received": True}

        order, payment_status = self.verify_and_finalize(event["session_id"])
        return {"received": True, "orderId": str(order.id), "paymentStatus": payment_status}

    def _order_id_from(self, session: CheckoutSession) -> UUID:
        raw_order_id = session.metadata.get("order_id")
        if not raw_order_id:
            raise InvalidSession("Invalid session metadata")
        try:
            return UUID(str(raw_order_id))
        except ValueError:
            raise InvalidSession("Invalid session metadata") from None

    @transaction.atomic
    def _apply_payment(self, order_id: UUID, session: CheckoutSession) -> bool:
        order = self.order_repo.get_for_update(order_id)
        if order is None:
            raise NotFound("Order not found")
        if order.payment_session_id and order.payment_session_id != session.id:
            raise InvalidSession("Payment session does not belong to this order")

        if order.payment_status == PaymentStatus.PAID:
            logger.info("payment_already_applied", extra={"order_id": str(order_id)})
            return False
        if order.order_status == OrderStatus.CANCELLED:
            logger.error("payment_for_cancelled_order", extra={"order_id": str(order_id), "session_id": session.id})
            raise InvalidTransition("Order was cancelled before the payment completed")

        previous = order.payment_status
        order.mark_paid()
        self.fulfillment.finalize(order)
        self.order_repo.save(order)

        self.event_store_repo.save_event(
            PaymentStatusChanged.for_order(
                order.id,
                previous_status=previous.value,
                new_status=order.payment_status.value,
                order_status=order.order_status.value,
                source="gateway",
            )
        )
        logger.info(
            "payment_confirmed",
            extra={"order_id": str(order.id), "session_id": session.id, "status": order.order_status.value},
        )
        return True
