"""
Append-only audit log of order domain events.
"""
from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from django.db import models
from django.db.models import Max
from django.utils import timezone

from shop.domain.events import DomainEvent, EventVersion
from shop.infra.models import TimeStampedModel

logger = logging.getLogger(__name__)

# Envelope fields stored in their own columns rather than in event_data
ENVELOPE_FIELDS = ("event_id", "aggregate_id", "event_type", "version")


def _plain(value):
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


class EventStore(TimeStampedModel):
    """One recorded event; ``sequence_number`` orders events per aggregate."""
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    aggregate_id = models.UUIDField()
    aggregate_type = models.CharField(max_length=50, default="Order")
    event_type = models.CharField(max_length=100)
    event_version = models.CharField(max_length=10, default=EventVersion.V1.value)
    event_data = models.JSONField()
    sequence_number = models.PositiveIntegerField()

    class Meta:
        verbose_name = "order event"
        constraints = [
            models.UniqueConstraint(
                fields=("aggregate_id", "aggregate_type", "sequence_number"),
                name="unique_event_sequence",
            ),
        ]
        ordering = ["aggregate_id", "sequence_number"]


class EventStoreRepository:
    """Writes and reads the audit trail of an aggregate."""

    def save_event(self, event: DomainEvent, aggregate_type: str = "Order") -> None:
        if not event.occurred_at:
            event.occurred_at = timezone.now().isoformat()

        stream = EventStore.objects.filter(aggregate_id=event.aggregate_id, aggregate_type=aggregate_type)
        last_sequence = stream.aggregate(last=Max("sequence_number"))["last"] or 0

        EventStore.objects.create(
            id=event.event_id,
            aggregate_id=event.aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event.event_type,
            event_version=event.version.value,
            event_data={
                f.name: _plain(getattr(event, f.name))
                for f in dataclasses.fields(event)
                if f.name not in ENVELOPE_FIELDS
            },
            sequence_number=last_sequence + 1,
        )
        logger.info(
            "event_recorded",
            extra={"operation": event.event_type, "aggregate_id": str(event.aggregate_id)},
        )

    def get_events(self, aggregate_id: UUID, aggregate_type: str = "Order") -> list[dict]:
        """Events of one aggregate, oldest first."""
        stream = (
            EventStore.objects
            .filter(aggregate_id=aggregate_id, aggregate_type=aggregate_type)
            .order_by("sequence_number")
        )
        return [
            {
                "id": str(record.id),
                "event_type": record.event_type,
                "version": record.event_version,
                "sequence_number": record.sequence_number,
                "occurred_at": record.event_data.get("occurred_at") or record.created_at.isoformat(),
                "data": record.event_data,
            }
            for record in stream
        ]
