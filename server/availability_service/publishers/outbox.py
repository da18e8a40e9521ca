"""Publisher that appends events to the outbox instead of the bus."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..domain.outbox import DEFAULT_DATA_VERSION, OutboundEvent, OutboxMessage
from ..repositories.base import OutboxStore
from .base import EventPublisher

logger = logging.getLogger(__name__)


class OutboxEventPublisher(EventPublisher):
    """Queues events in the outbox; the dispatcher delivers them later."""

    def __init__(self, outbox_store: OutboxStore):
        self.outbox_store = outbox_store

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
        message = OutboxMessage.from_event(
            OutboundEvent(
                topic=topic,
                event_type=event_type,
                subject=subject,
                data=data,
                data_version=data_version,
            )
        )
        pinned = {}
        if event_id is not None:
            pinned["id"] = event_id
        if event_time is not None:
            pinned["event_time"] = event_time
        if pinned:
            message = message.model_copy(update=pinned)

        await self.outbox_store.save(message)

        logger.debug(
            "Queued outbox message",
            extra={
                "message_id": message.id,
                "event_type": event_type,
                "subject": subject,
            }
        )
