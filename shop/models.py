"""
Expose ORM models for Django's auto-discovery while keeping real definitions
under the infrastructure module.
"""

from shop.infra.models import (
    CartItemORM,
    CustomerORM,
    OrderItemORM,
    OrderORM,
    ProductORM,
    TimeStampedModel,
    TrackingEntryORM,
)
from shop.infra.event_store import EventStore

__all__ = [
    "CartItemORM",
    "CustomerORM",
    "EventStore",
    "OrderItemORM",
    "OrderORM",
    "ProductORM",
    "TimeStampedModel",
    "TrackingEntryORM",
]
