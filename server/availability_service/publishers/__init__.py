"""Event publishers."""

from .base import EventPublisher
from .event_bus import EventGridPublisher
from .outbox import OutboxEventPublisher

__all__ = [
    "EventPublisher",
    "EventGridPublisher",
    "OutboxEventPublisher",
]
