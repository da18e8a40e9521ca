"""Domain model: availability records and outbox messages."""

from .availability import (
    UNSET,
    AvailabilityRecord,
    AvailabilityStatus,
    create_availability,
    is_available,
    normalize_device_id,
    normalize_reservation_id,
    parse_status,
    update_availability,
)
from .outbox import (
    AVAILABILITY_TOPIC,
    AvailabilityEventTypes,
    OutboundEvent,
    OutboxMessage,
    availability_changed_event,
)

__all__ = [
    "UNSET",
    "AvailabilityRecord",
    "AvailabilityStatus",
    "create_availability",
    "update_availability",
    "is_available",
    "normalize_device_id",
    "normalize_reservation_id",
    "parse_status",
    "AVAILABILITY_TOPIC",
    "AvailabilityEventTypes",
    "OutboundEvent",
    "OutboxMessage",
    "availability_changed_event",
]
