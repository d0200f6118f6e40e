"""
Domain events recorded in the order audit log.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


class EventVersion(str, Enum):
    """Event version for upcasting."""
    V1 = "1.0"


@dataclass
class DomainEvent:
    """Base domain event."""
    event_id: UUID
    aggregate_id: UUID
    event_type: str
    # version and occurred_at are set in subclasses to avoid dataclass field ordering issues

    @classmethod
    def for_order(cls, order_id: UUID, **fields) -> DomainEvent:
        """Build an event with a fresh id and the class name as its type."""
        return cls(event_id=uuid4(), aggregate_id=order_id, event_type=cls.__name__, **fields)


@dataclass
class OrderCreated(DomainEvent):
    """Order placed at checkout."""
    customer_id: UUID
    payment_method: str
    total_amount: Decimal
    items_count: int
    payment_session_id: str | None = None
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderFinalized(DomainEvent):
    """Stock decremented and cart cleared for the order."""
    customer_id: UUID
    items_count: int
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class PaymentStatusChanged(DomainEvent):
    """Payment status moved by the gateway or an administrator."""
    previous_status: str
    new_status: str
    order_status: str
    source: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderStatusChanged(DomainEvent):
    """Order status moved by an administrator."""
    previous_status: str
    new_status: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class TrackingUpdated(DomainEvent):
    """Tracking number set or tracking entry appended."""
    tracking_number: str | None
    status: str = ""
    location: str = ""
    description: str = ""
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class PaymentSlipUploaded(DomainEvent):
    """Bank transfer proof of payment attached to the order."""
    url: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""
