"""
Infrastructure repositories for domain entities.
"""
from __future__ import annotations

from uuid import UUID

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from shop.domain.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ShippingAddress,
    TrackingEntry,
)
from shop.infra.models import (
    CartItemORM,
    CustomerORM,
    OrderItemORM,
    OrderORM,
    ProductORM,
    TrackingEntryORM,
    WishlistItemORM,
)
import logging

logger = logging.getLogger(__name__)


class CustomerRepository:
    """Repository for Customer entities."""

    def get_or_create_for_identity(self, uid: str, name: str = "", email: str = "", phone: str = "") -> CustomerORM:
        """Find the customer for a verified identity, registering it on first sight."""
        customer, created = CustomerORM.objects.get_or_create(
            identity_uid=uid,
            defaults={
                "name": name or email or phone or "User",
                "email": email or "",
                "phone": phone or "",
            },
        )
        if created:
            logger.info("customer_registered", extra={"user_id": str(customer.id)})
        return customer


class ProductRepository:
    """Repository for catalog products and their stock counters."""

    def get_by_id(self, product_id: UUID) -> ProductORM | None:
        return ProductORM.objects.filter(id=product_id).first()

    def get_active(self, product_id: UUID) -> ProductORM | None:
        return ProductORM.objects.filter(id=product_id, is_active=True).first()

    def get_stock(self, product_id: UUID) -> int | None:
        return (
            ProductORM.objects
            .filter(id=product_id)
            .values_list("stock", flat=True)
            .first()
        )

    def decrement_stock_if_available(self, product_id: UUID, quantity: int) -> bool:
        """Decrement stock in one conditional UPDATE; False if it would go negative."""
        updated = (
            ProductORM.objects
            .filter(id=product_id, stock__gte=quantity)
            .update(stock=F("stock") - quantity, updated_at=timezone.now())
        )
        return updated == 1


class CartRepository:
    """Repository for cart entries."""

    def list_for_customer(self, customer_id: UUID) -> list[CartItemORM]:
        return list(
            CartItemORM.objects
            .filter(customer_id=customer_id)
            .select_related("product")
            .order_by("created_at", "id")
        )

    def get_entry_for_update(self, customer_id: UUID, entry_id: UUID) -> CartItemORM | None:
        return (
            CartItemORM.objects
            .select_for_update()
            .select_related("product")
            .filter(id=entry_id, customer_id=customer_id)
            .first()
        )

    def get_product_entry_for_update(self, customer_id: UUID, product_id: UUID) -> CartItemORM | None:
        return (
            CartItemORM.objects
            .select_for_update()
            .filter(customer_id=customer_id, product_id=product_id)
            .first()
        )

    def create_entry(self, customer_id: UUID, product_id: UUID, quantity: int) -> CartItemORM:
        return CartItemORM.objects.create(
            customer_id=customer_id,
            product_id=product_id,
            quantity=quantity,
        )

    def set_quantity(self, entry: CartItemORM, quantity: int) -> None:
        entry.quantity = quantity
        entry.save(update_fields=["quantity", "updated_at"])

    def delete_entry(self, customer_id: UUID, entry_id: UUID) -> int:
        deleted, _ = CartItemORM.objects.filter(id=entry_id, customer_id=customer_id).delete()
        return deleted

    def clear(self, customer_id: UUID) -> int:
        deleted, _ = CartItemORM.objects.filter(customer_id=customer_id).delete()
        return deleted


class WishlistRepository:
    """Repository for saved-for-later products."""

    def list_for_customer(self, customer_id: UUID) -> list[WishlistItemORM]:
        return list(
            WishlistItemORM.objects
            .filter(customer_id=customer_id)
            .select_related("product")
            .order_by("created_at", "id")
        )

    def contains(self, customer_id: UUID, product_id: UUID) -> bool:
        return WishlistItemORM.objects.filter(customer_id=customer_id, product_id=product_id).exists()

    def add(self, customer_id: UUID, product_id: UUID) -> WishlistItemORM:
        return WishlistItemORM.objects.create(customer_id=customer_id, product_id=product_id)

    def remove(self, customer_id: UUID, product_id: UUID) -> int:
        deleted, _ = WishlistItemORM.objects.filter(customer_id=customer_id, product_id=product_id).delete()
        return deleted


class OrderRepository:
    """Repository for Order aggregate."""

    def _queryset(self):
        return (
            OrderORM.objects
            .select_related("customer")
            .prefetch_related("items__product", "tracking_history")
        )

    def get_by_id(self, order_id: UUID) -> Order | None:
        """Get order by ID with items (optimized, no N+1)."""
        try:
            return self._to_domain(self._queryset().get(id=order_id))
        except OrderORM.DoesNotExist:
            return None

    def get_for_update(self, order_id: UUID) -> Order | None:
        """Get order by ID holding a row lock until the transaction ends."""
        locked = OrderORM.objects.select_for_update().filter(id=order_id).values_list("id", flat=True).first()
        if locked is None:
            return None
        return self.get_by_id(order_id)

    def get_by_customer(self, customer_id: UUID) -> list[Order]:
        """Get orders by customer, newest first."""
        orders_orm = self._queryset().filter(customer_id=customer_id).order_by("-created_at")
        return [self._to_domain(order_orm) for order_orm in orders_orm]

    def list_all(self) -> list[Order]:
        orders_orm = self._queryset().order_by("-created_at")
        return [self._to_domain(order_orm) for order_orm in orders_orm]

    def get_awaiting_payment_sessions(self, limit: int = 100) -> list[str]:
        """Session ids of card orders still waiting for gateway confirmation, oldest first."""
        return list(
            OrderORM.objects
            .filter(
                payment_method=PaymentMethod.CARD.value,
                payment_status=PaymentStatus.PENDING.value,
                payment_session_id__isnull=False,
            )
            .exclude(order_status=OrderStatus.CANCELLED.value)
            .order_by("created_at")
            .values_list("payment_session_id", flat=True)[:limit]
        )

    @transaction.atomic
    def save(self, order: Order) -> UUID:
        """Save order aggregate.

        Line items are written once, when the order is created. Tracking
        entries are append-only: only entries not stored yet are inserted.
        ``finalized_at`` is owned by :meth:`claim_finalization`.
        """
        address = order.shipping_address
        order_orm, created = OrderORM.objects.update_or_create(
            id=order.id,
            defaults={
                "customer_id": order.customer_id,
                "shipping_name": address.name,
                "shipping_phone": address.phone,
                "shipping_address": address.address,
                "shipping_city": address.city,
                "shipping_postal_code": address.postal_code,
                "payment_method": order.payment_method.value,
                "payment_status": order.payment_status.value,
                "order_status": order.order_status.value,
                "subtotal": order.subtotal,
                "shipping_fee": order.shipping_fee,
                "total_amount": order.total_amount,
                "payment_slip": order.payment_slip,
                "payment_session_id": order.payment_session_id,
                "tracking_number": order.tracking_number,
            }
        )

        if created:
            for position, item in enumerate(order.items):
                OrderItemORM.objects.create(
                    order=order_orm,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=item.price,
                    position=position,
                )

        existing_entry_ids = set(
            TrackingEntryORM.objects
            .filter(order=order_orm)
            .values_list("id", flat=True)
        )
        for sequence_number, entry in enumerate(order.tracking_history, start=1):
            if entry.id in existing_entry_ids:
                continue
            if entry.timestamp is None:
                entry.timestamp = timezone.now()
            TrackingEntryORM.objects.create(
                id=entry.id,
                order=order_orm,
                status=entry.status,
                location=entry.location,
                description=entry.description,
                timestamp=entry.timestamp,
                sequence_number=sequence_number,
            )

        order.created_at = order_orm.created_at
        order.updated_at = order_orm.updated_at
        return order_orm.id

    def claim_finalization(self, order_id: UUID):
        """Set ``finalized_at`` if it is still empty; returns the timestamp or None."""
        finalized_at = timezone.now()
        updated = (
            OrderORM.objects
            .filter(id=order_id, finalized_at__isnull=True)
            .update(finalized_at=finalized_at)
        )
        return finalized_at if updated == 1 else None

    def delete(self, order_id: UUID) -> None:
        OrderORM.objects.filter(id=order_id).delete()

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        items = [
            OrderItem(
                product_id=item_orm.product_id,
                quantity=item_orm.quantity,
                price=item_orm.price,
                product_name=item_orm.product.name,
            )
            for item_orm in order_orm.items.all()
        ]
        tracking_history = [
            TrackingEntry(
                id=entry_orm.id,
                status=entry_orm.status,
                location=entry_orm.location,
                description=entry_orm.description,
                timestamp=entry_orm.timestamp,
            )
            for entry_orm in order_orm.tracking_history.all()
        ]
        customer = order_orm.customer

        return Order(
            id=order_orm.id,
            customer_id=order_orm.customer_id,
            items=items,
            shipping_address=ShippingAddress(
                name=order_orm.shipping_name,
                phone=order_orm.shipping_phone,
                address=order_orm.shipping_address,
                city=order_orm.shipping_city,
                postal_code=order_orm.shipping_postal_code,
            ),
            payment_method=PaymentMethod(order_orm.payment_method),
            subtotal=order_orm.subtotal,
            shipping_fee=order_orm.shipping_fee,
            total_amount=order_orm.total_amount,
            payment_status=PaymentStatus(order_orm.payment_status),
            order_status=OrderStatus(order_orm.order_status),
            payment_slip=order_orm.payment_slip,
            payment_session_id=order_orm.payment_session_id,
            tracking_number=order_orm.tracking_number,
            tracking_history=tracking_history,
            finalized_at=order_orm.finalized_at,
            created_at=order_orm.created_at,
            updated_at=order_orm.updated_at,
            customer_summary={
                "id": customer.id,
                "name": customer.name,
                "email": customer.email,
                "phone": customer.phone,
            },
        )
