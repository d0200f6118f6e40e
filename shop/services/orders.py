"""
Customer-facing order access and bank transfer payment slips.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.conf import settings
from django.db import transaction

from shop.domain.events import PaymentSlipUploaded
from shop.domain.exceptions import Forbidden, NotFound, ValidationError
from shop.domain.order import Order, PaymentMethod
from shop.infra.event_store import EventStoreRepository
from shop.infra.media import MediaStorage
from shop.infra.models import CustomerORM
from shop.infra.repositories import OrderRepository

logger = logging.getLogger(__name__)


class OrderService:
    """Service for a customer's own orders."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        event_store_repo: EventStoreRepository | None = None,
        media: MediaStorage | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.event_store_repo = event_store_repo or EventStoreRepository()
        self.media = media or MediaStorage()

    def list_orders(self, customer: CustomerORM) -> list[Order]:
        return self.order_repo.get_by_customer(customer.id)

    def get_order(self, customer: CustomerORM, order_id: UUID) -> Order:
        """Get an order the customer owns (administrators see every order)."""
        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFound("Order not found")
        if order.customer_id != customer.id and not customer.is_admin:
            raise Forbidden("Not authorized")
        return order

    def upload_payment_slip(self, customer: CustomerORM, order_id: UUID, uploaded_file) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFound("Order not found")
        if order.customer_id != customer.id:
            raise Forbidden("Not authorized")
        if order.payment_method != PaymentMethod.BANK_TRANSFER:
            raise ValidationError("Payment method is not bank transfer")
        if uploaded_file is None:
            raise ValidationError("Payment slip image is required")
        if not (getattr(uploaded_file, "content_type", "") or "").startswith("image/"):
            raise ValidationError("Payment slip must be an image")
        if uploaded_file.size > settings.SHOP_PAYMENT_SLIP_MAX_BYTES:
            raise ValidationError("Payment slip is too large")

        url = self.media.upload(uploaded_file, settings.SHOP_PAYMENT_SLIP_FOLDER)
        with transaction.atomic():
            order = self.order_repo.get_for_update(order_id)
            order.attach_payment_slip(url)
            self.order_repo.save(order)
            self.event_store_repo.save_event(PaymentSlipUploaded.for_order(order.id, url=url))

        logger.info("payment_slip_uploaded", extra={"order_id": str(order.id), "user_id": str(customer.id)})
        return self.order_repo.get_by_id(order.id)
