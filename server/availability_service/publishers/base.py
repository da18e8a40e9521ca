"""Event publishing contract shared by the outbox and the bus publisher."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from ..domain.outbox import DEFAULT_DATA_VERSION, OutboundEvent


class EventPublisher(ABC):
    """Publishes events to a topic."""

    @abstractmethod
    async def publish(
        self,
        topic: str,
        event_type: str,
        subject: str,
        data: Dict[str, Any],
        data_version: str = DEFAULT_DATA_VERSION,
        *,
        event_id: Optional[str] = None,
        event_time: Optional[datetime] = None,
    ) -> None:
        """
        Publish a single event.

        ``event_id`` and ``event_time`` pin the envelope identity so that a
        redelivered event carries the same id as the first attempt.
        """

    async def publish_event(self, event: OutboundEvent) -> None:
        await self.publish(event.topic, event.event_type, event.subject, event.data, event.data_version)

    async def publish_batch(self, events: Iterable[OutboundEvent]) -> None:
        """
        Publish events one after another.

        There is no atomicity across the batch: if one publish raises, the
        events before it stay published and the rest are not attempted.
        """
        for event in events:
            await self.publish_event(event)
