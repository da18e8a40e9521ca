"""Models module exporting all database models."""

from .availability import DeviceAvailabilityRow
from .outbox import OutboxMessageRow

__all__ = [
    "DeviceAvailabilityRow",
    "OutboxMessageRow",
]
