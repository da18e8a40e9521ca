"""Outbox message envelope and the events this service emits."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .availability import AvailabilityRecord, AvailabilityStatus, utcnow

AVAILABILITY_TOPIC = "Availability"
DEFAULT_DATA_VERSION = "1.0"


class AvailabilityEventTypes:
    """Event types published by the availability service."""
    AVAILABILITY_CHANGED = "Availability.Changed"
    AVAILABILITY_CHECKED = "Availability.Checked"


class OutboundEvent(BaseModel):
    """An event handed to a publisher."""

    topic: str
    event_type: str
    subject: str
    data: Dict[str, Any] = Field(default_factory=dict)
    data_version: str = DEFAULT_DATA_VERSION


class OutboxMessage(BaseModel):
    """
    A queued outbound event plus its delivery bookkeeping.

    A message is pending while ``processed`` is False and terminal once it
    is True. Dead-lettered messages stay pending but are no longer picked
    up by the dispatcher.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    topic: str
    event_type: str
    subject: str
    data: Dict[str, Any] = Field(default_factory=dict)
    data_version: str = DEFAULT_DATA_VERSION
    event_time: datetime = Field(default_factory=utcnow)
    processed: bool = False
    processed_at: Optional[datetime] = None
    error: Optional[str] = None
    retry_count: int = Field(0, ge=0)
    dead_lettered_at: Optional[datetime] = None

    @classmethod
    def from_event(cls, event: OutboundEvent) -> "OutboxMessage":
        return cls(
            topic=event.topic,
            event_type=event.event_type,
            subject=event.subject,
            data=event.data,
            data_version=event.data_version,
        )


def to_iso8601(value: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def availability_changed_event(
    record: AvailabilityRecord,
    previous_status: Optional[AvailabilityStatus],
) -> OutboundEvent:
    """Build the ``Availability.Changed`` event for a persisted record."""
    return OutboundEvent(
        topic=AVAILABILITY_TOPIC,
        event_type=AvailabilityEventTypes.AVAILABILITY_CHANGED,
        subject=record.device_id,
        data={
            "deviceId": record.device_id,
            "previousStatus": previous_status.value if previous_status is not None else None,
            "newStatus": record.status.value,
            "reservationId": record.reservation_id,
            "updatedAt": to_iso8601(record.updated_at),
        },
    )
