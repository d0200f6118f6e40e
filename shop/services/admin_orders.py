"""
Administrator operations on orders.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction

from shop.domain.events import OrderStatusChanged, PaymentStatusChanged, TrackingUpdated
from shop.domain.exceptions import NotFound, ValidationError
from shop.domain.order import Order, TrackingEntry, parse_order_status, parse_payment_status
from shop.infra.event_store import EventStoreRepository
from shop.infra.repositories import OrderRepository

logger = logging.getLogger(__name__)

UNSET = object()


def _text_or_none(value, label: str) -> None:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{label} must be a string")


class OrderAdminService:
    """Status, payment verification and tracking updates for administrators.

    Payment verification here never touches stock or carts: non-card
    orders were finalized when they were placed.
    """

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        event_store_repo: EventStoreRepository | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.event_store_repo = event_store_repo or EventStoreRepository()

    def list_orders(self) -> list[Order]:
        return self.order_repo.list_all()

    def _locked_order(self, order_id: UUID) -> Order:
        order = self.order_repo.get_for_update(order_id)
        if order is None:
            raise NotFound("Order not found")
        return order

    @transaction.atomic
    def update_order_status(self, order_id: UUID, order_status) -> Order:
        new_status = parse_order_status(order_status)
        order = self._locked_order(order_id)

        previous = order.order_status
        if order.change_status(new_status):
            self.order_repo.save(order)
            self.event_store_repo.save_event(
                OrderStatusChanged.for_order(
                    order.id,
                    previous_status=previous.value,
                    new_status=new_status.value,
                )
            )
            logger.info(
                "order_status_changed",
                extra={"order_id": str(order.id), "status": new_status.value},
            )
        return self.order_repo.get_by_id(order.id)

    @transaction.atomic
    def verify_payment(self, order_id: UUID, payment_status) -> Order:
        new_status = parse_payment_status(payment_status)
        order = self._locked_order(order_id)

        previous = order.payment_status
        if order.verify_payment(new_status):
            self.order_repo.save(order)
            self.event_store_repo.save_event(
                PaymentStatusChanged.for_order(
                    order.id,
                    previous_status=previous.value,
                    new_status=new_status.value,
                    order_status=order.order_status.value,
                    source="admin",
                )
            )
            logger.info(
                "payment_verified",
                extra={"order_id": str(order.id), "status": new_status.value},
            )
        return self.order_repo.get_by_id(order.id)

    @transaction.atomic
    def update_tracking(
        self,
        order_id: UUID,
        tracking_number=UNSET,
        status: str | None = None,
        location: str | None = None,
        description: str | None = None,
    ) -> Order:
        """Set or clear the tracking number and/or append a tracking entry."""
        if tracking_number is UNSET and not status:
            raise ValidationError("Provide a tracking number or a tracking status")
        if tracking_number is not UNSET:
            _text_or_none(tracking_number, "Tracking number")
        for label, value in (("Tracking status", status), ("Location", location), ("Description", description)):
            _text_or_none(value, label)

        order = self._locked_order(order_id)

        if tracking_number is not UNSET:
            order.tracking_number = (tracking_number or "").strip() or None
        if status:
            order.add_tracking_entry(TrackingEntry(
                status=status.strip(),
                location=(location or "").strip(),
                description=(description or "").strip(),
            ))

        self.order_repo.save(order)
        self.event_store_repo.save_event(
            TrackingUpdated.for_order(
                order.id,
                tracking_number=order.tracking_number,
                status=status or "",
                location=location or "",
                description=description or "",
            )
        )
        logger.info("tracking_updated", extra={"order_id": str(order.id), "status": status or ""})
        return self.order_repo.get_by_id(order.id)

    def get_history(self, order_id: UUID) -> list[dict]:
        if self.order_repo.get_by_id(order_id) is None:
            raise NotFound("Order not found")
        return self.event_store_repo.get_events(order_id)
