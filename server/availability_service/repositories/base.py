"""Persistence contracts for availability records and outbox messages."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..domain.availability import AvailabilityRecord
from ..domain.outbox import OutboxMessage


class AvailabilityStore(ABC):
    """Availability records keyed by device id."""

    @abstractmethod
    async def save(self, record: AvailabilityRecord) -> AvailabilityRecord:
        """
        Create or update a record and return it as stored.

        A record with ``version == 0`` is inserted; any other record must
        carry the version currently held by the store.

        Raises:
            ConflictError: If the stored version differs from the record's
        """

    @abstractmethod
    async def get_by_id(self, device_id: str) -> Optional[AvailabilityRecord]:
        """Return the record for a device, or None if it is not tracked."""

    @abstractmethod
    async def get_by_ids(self, device_ids: Sequence[str]) -> list[AvailabilityRecord]:
        """Return the records that exist for the given devices."""

    @abstractmethod
    async def delete(self, device_id: str) -> None:
        """Delete a record. Deleting an absent record succeeds."""


class OutboxStore(ABC):
    """Queued outbound events and their delivery outcome."""

    @abstractmethod
    async def save(self, message: OutboxMessage) -> None:
        """Append a new pending message."""

    @abstractmethod
    async def list_unprocessed(self, limit: int = 20) -> list[OutboxMessage]:
        """Return up to ``limit`` pending messages in insertion order."""

    @abstractmethod
    async def mark_processed(self, message_id: str) -> None:
        """Flag a message as delivered."""

    @abstractmethod
    async def mark_failed(self, message_id: str, error: str) -> None:
        """Record a failed delivery attempt and increment the retry count."""

    @abstractmethod
    async def mark_dead_lettered(self, message_id: str) -> None:
        """Stop retrying a message; it stays unprocessed for operators."""

    @abstractmethod
    async def list_dead_lettered(self, limit: int = 100) -> list[OutboxMessage]:
        """Return dead-lettered messages, oldest first."""

    @abstractmethod
    async def count_pending(self) -> int:
        """Count messages still eligible for delivery."""
