"""Shared pieces of the inbound event adapters."""

import logging
from enum import Enum
from typing import Any, Mapping, Optional

from ..services.results import ServiceResult

logger = logging.getLogger(__name__)


class InboundOutcome(str, Enum):
    """What an adapter did with an inbound event."""
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    IGNORED = "ignored"
    DROPPED = "dropped"


class RedeliveryRequested(Exception):
    """
    Raised when an inbound event failed transiently.

    The trigger that delivered the event should deliver it again.
    """

    def __init__(self, source: str, device_id: str, error: Optional[str]):
        self.source = source
        self.device_id = device_id
        self.error = error
        super().__init__(f"Failed to update device {device_id}: {error}")


def required_string(data: Optional[Mapping[str, Any]], key: str) -> Optional[str]:
    """Return a non-blank string field from an event payload, or None."""
    if not isinstance(data, Mapping):
        return None
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def outcome_for(source: str, device_id: str, result: ServiceResult) -> InboundOutcome:
    """
    Translate a reconciliation result into an adapter outcome.

    Transient failures raise RedeliveryRequested; everything else is final.
    """
    if result.ok:
        return InboundOutcome.APPLIED if result.changed else InboundOutcome.UNCHANGED

    if result.retryable:
        logger.error(
            "Failed to update availability from inbound event",
            extra={"source": source, "device_id": device_id, "code": result.code, "error": result.error}
        )
        raise RedeliveryRequested(source, device_id, result.error)

    logger.warning(
        "Inbound event rejected, skipping",
        extra={"source": source, "device_id": device_id, "code": result.code, "error": result.error}
    )
    return InboundOutcome.DROPPED
