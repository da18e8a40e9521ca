"""Inbound event envelope schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class InboundEvent(BaseModel):
    """Event Grid style envelope delivered by an upstream service."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = Field(None, description="Upstream event ID")
    event_type: str = Field(..., description="Upstream event type")
    subject: Optional[str] = Field(None, description="Event subject")
    event_time: Optional[str] = Field(None, description="Event time (ISO 8601)")
    data: Optional[Dict[str, Any]] = Field(None, description="Event payload")
    data_version: Optional[str] = Field(None, description="Payload schema version")


class InboundEventResult(BaseModel):
    """Outcome for one inbound event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    event_type: str
    outcome: str


class InboundEventBatchResponse(BaseModel):
    """Outcomes for a batch of inbound events."""

    results: List[InboundEventResult] = Field(default_factory=list)
