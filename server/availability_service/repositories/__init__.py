"""Persistence contracts and their SQLAlchemy implementations."""

from .availability_store import SqlAvailabilityStore
from .base import AvailabilityStore, OutboxStore
from .outbox_store import SqlOutboxStore

__all__ = [
    "AvailabilityStore",
    "OutboxStore",
    "SqlAvailabilityStore",
    "SqlOutboxStore",
]
