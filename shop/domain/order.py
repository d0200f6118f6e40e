"""
Domain model for Order aggregate.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from shop.domain.exceptions import InvalidTransition, ValidationError


class PaymentMethod(str, Enum):
    """Payment method enumeration."""
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"

    @classmethod
    def parse(cls, value) -> PaymentMethod:
        """Parse payment method, accepting the storefront aliases."""
        if isinstance(value, cls):
            return value
        aliases = {"cod": cls.CASH_ON_DELIVERY, "stripe": cls.CARD}
        if isinstance(value, str):
            if value in aliases:
                return aliases[value]
            try:
                return cls(value)
            except ValueError:
                pass
        accepted = ", ".join([m.value for m in cls] + list(aliases))
        raise ValidationError(f"Invalid payment method. Must be one of: {accepted}")


class PaymentStatus(str, Enum):
    """Payment status enumeration."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderStatus(str, Enum):
    """Order status enumeration."""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_STATUS_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING, PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset(),
}


def parse_order_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError("Invalid order status") from None


def parse_payment_status(value) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise ValidationError("Invalid payment status") from None


@dataclass(frozen=True)
class ShippingAddress:
    """Shipping address value object."""
    name: str
    phone: str
    address: str
    city: str
    postal_code: str

    FIELDS = (
        ("name", "name"),
        ("phone", "phone"),
        ("address", "address"),
        ("city", "city"),
        ("postal_code", "postalCode"),
    )

    @classmethod
    def from_dict(cls, data) -> ShippingAddress:
        """Build from a request payload; every field is a required string."""
        if not isinstance(data, dict):
            raise ValidationError("Shipping address and payment method are required")

        values = {}
        missing = []
        for attr, key in cls.FIELDS:
            value = data.get(key, data.get(attr))
            if not isinstance(value, str) or not value.strip():
                missing.append(key)
            else:
                values[attr] = value.strip()

        if missing:
            raise ValidationError(f"Shipping address is incomplete: missing {', '.join(missing)}")
        return cls(**values)

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for attr, key in self.FIELDS}


class OrderItem:
    """Order line item value object (price frozen at checkout)."""

    def __init__(self, product_id: UUID, quantity: int, price: Decimal, product_name: str = ""):
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")
        if price < 0:
            raise ValidationError("Price must be non-negative")

        self.product_id = product_id
        self.quantity = quantity
        self.price = price
        self.product_name = product_name

    @property
    def subtotal(self) -> Decimal:
        """Calculate item subtotal."""
        return self.price * self.quantity


class TrackingEntry:
    """Tracking history entry; entries are only ever appended."""

    def __init__(
        self,
        status: str,
        location: str = "",
        description: str = "",
        timestamp: datetime | None = None,
        id: UUID | None = None,
    ):
        if not status:
            raise ValidationError("Tracking status is required")
        self.id = id or uuid4()
        self.status = status
        self.location = location
        self.description = description
        self.timestamp = timestamp


class Order:
    """Order aggregate root.

    Totals are computed once by :meth:`place` and stored; loading an order
    from storage passes them back in unchanged. Payment-derived fields are
    only changed through the methods below, which enforce the status
    transition tables.
    """

    def __init__(
        self,
        id: UUID | None = None,
        customer_id: UUID | None = None,
        items: list[OrderItem] | None = None,
        shipping_address: ShippingAddress | None = None,
        payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY,
        subtotal: Decimal = Decimal("0.00"),
        shipping_fee: Decimal = Decimal("0.00"),
        total_amount: Decimal = Decimal("0.00"),
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        order_status: OrderStatus = OrderStatus.PENDING,
        payment_slip: str | None = None,
        payment_session_id: str | None = None,
        tracking_number: str | None = None,
        tracking_history: list[TrackingEntry] | None = None,
        finalized_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        customer_summary: dict | None = None,
    ):
        self.id = id or uuid4()
        self.customer_id = customer_id
        self._items = items or []
        self.shipping_address = shipping_address
        self.payment_method = payment_method
        self._subtotal = subtotal
        self._shipping_fee = shipping_fee
        self._total_amount = total_amount
        self._payment_status = payment_status
        self._order_status = order_status
        self._payment_slip = payment_slip
        self._payment_session_id = payment_session_id
        self.tracking_number = tracking_number
        self._tracking_history = tracking_history or []
        self.finalized_at = finalized_at
        self.created_at = created_at
        self.updated_at = updated_at
        self.customer_summary = customer_summary

    @classmethod
    def place(
        cls,
        customer_id: UUID,
        items: list[OrderItem],
        shipping_fee: Decimal,
        shipping_address: ShippingAddress,
        payment_method: PaymentMethod,
    ) -> Order:
        """Create a new pending order and freeze its totals."""
        if not items:
            raise ValidationError("Cart is empty")
        if shipping_fee < 0:
            raise ValidationError("Shipping fee must be non-negative")

        subtotal = sum((item.subtotal for item in items), Decimal("0.00"))
        return cls(
            customer_id=customer_id,
            items=list(items),
            shipping_address=shipping_address,
            payment_method=payment_method,
            subtotal=subtotal,
            shipping_fee=shipping_fee,
            total_amount=subtotal + shipping_fee,
        )

    @property
    def items(self) -> list[OrderItem]:
        """Get order items (immutable)."""
        return list(self._items)

    @property
    def tracking_history(self) -> list[TrackingEntry]:
        """Tracking entries in append order."""
        return list(self._tracking_history)

    @property
    def subtotal(self) -> Decimal:
        return self._subtotal

    @property
    def shipping_fee(self) -> Decimal:
        return self._shipping_fee

    @property
    def total_amount(self) -> Decimal:
        return self._total_amount

    @property
    def payment_status(self) -> PaymentStatus:
        return self._payment_status

    @property
    def order_status(self) -> OrderStatus:
        return self._order_status

    @property
    def payment_slip(self) -> str | None:
        return self._payment_slip

    @property
    def payment_session_id(self) -> str | None:
        return self._payment_session_id

    @property
    def is_finalized(self) -> bool:
        """Whether stock was decremented and the cart cleared for this order."""
        return self.finalized_at is not None

    @property
    def defers_fulfillment(self) -> bool:
        """Card orders wait for gateway confirmation before touching stock."""
        return self.payment_method == PaymentMethod.CARD

    def change_status(self, new_status: OrderStatus) -> bool:
        """Move the order status; returns False when nothing changed."""
        if new_status == self._order_status:
            return False
        if new_status not in ORDER_STATUS_TRANSITIONS[self._order_status]:
            raise InvalidTransition(
                f"Cannot change order status from {self._order_status.value} to {new_status.value}"
            )
        self._order_status = new_status
        return True

    def change_payment_status(self, new_status: PaymentStatus) -> bool:
        """Move the payment status; paying a pending order starts processing it."""
        if new_status == self._payment_status:
            return False
        if new_status not in PAYMENT_STATUS_TRANSITIONS[self._payment_status]:
            raise InvalidTransition(
                f"Cannot change payment status from {self._payment_status.value} to {new_status.value}"
            )
        self._payment_status = new_status
        if new_status == PaymentStatus.PAID and self._order_status == OrderStatus.PENDING:
            self._order_status = OrderStatus.PROCESSING
        return True

    def verify_payment(self, new_status: PaymentStatus) -> bool:
        """Admin payment confirmation; card orders are only paid by the gateway."""
        if self.payment_method == PaymentMethod.CARD:
            raise ValidationError("Card payments are confirmed by the payment gateway")
        return self.change_payment_status(new_status)

    def mark_paid(self) -> bool:
        """Record a gateway-confirmed payment."""
        return self.change_payment_status(PaymentStatus.PAID)

    def attach_payment_session(self, session_id: str) -> None:
        if self.payment_method != PaymentMethod.CARD:
            raise ValidationError("Payment sessions are only used for card payments")
        if not session_id:
            raise ValidationError("Payment session id is required")
        self._payment_session_id = session_id

    def attach_payment_slip(self, url: str) -> None:
        if self.payment_method != PaymentMethod.BANK_TRANSFER:
            raise ValidationError("Payment method is not bank transfer")
        self._payment_slip = url

    def add_tracking_entry(self, entry: TrackingEntry) -> None:
        self._tracking_history.append(entry)
