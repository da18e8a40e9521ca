"""Outbox-related Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.outbox import OutboxMessage


class DrainResponse(BaseModel):
    """Result of one outbox drain cycle."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    fetched: int
    published: int
    failed: int
    dead_lettered: int
    unconfirmed: int
    error: Optional[str] = None


class DeadLetteredMessage(BaseModel):
    """An outbox message that exhausted its delivery attempts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    topic: str
    event_type: str
    subject: str
    data: Dict[str, Any]
    event_time: datetime
    retry_count: int
    error: Optional[str] = None
    dead_lettered_at: Optional[datetime] = None

    @classmethod
    def from_message(cls, message: OutboxMessage) -> "DeadLetteredMessage":
        return cls(
            id=message.id,
            topic=message.topic,
            event_type=message.event_type,
            subject=message.subject,
            data=message.data,
            event_time=message.event_time,
            retry_count=message.retry_count,
            error=message.error,
            dead_lettered_at=message.dead_lettered_at,
        )


class DeadLetterListResponse(BaseModel):
    messages: List[DeadLetteredMessage] = Field(default_factory=list)
