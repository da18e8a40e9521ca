"""Direct event bus publisher over HTTP."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

import httpx

from ..core.exceptions import EventBusError, EventBusNotConfiguredError
from ..domain.availability import utcnow
from ..domain.outbox import DEFAULT_DATA_VERSION, to_iso8601
from .base import EventPublisher

logger = logging.getLogger(__name__)


class EventGridPublisher(EventPublisher):
    """
    Posts events to an Event Grid style topic endpoint.

    Each publish sends a one-element JSON array in the Event Grid event
    schema, authenticated with the ``aeg-sas-key`` header. Only the
    outbox dispatcher should call this publisher.
    """

    def __init__(
        self,
        topic_endpoint: Optional[str],
        topic_key: Optional[str],
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.topic_endpoint = topic_endpoint
        self.topic_key = topic_key
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None

    @property
    def configured(self) -> bool:
        return bool(self.topic_endpoint and self.topic_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

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
        if not self.configured:
            raise EventBusNotConfiguredError()

        envelope = {
            "id": event_id or str(uuid4()),
            "eventType": event_type,
            "subject": subject,
            "eventTime": to_iso8601(event_time or utcnow()),
            "data": data,
            "dataVersion": data_version,
        }

        try:
            response = await self._get_client().post(
                self.topic_endpoint,
                json=[envelope],
                headers={"aeg-sas-key": self.topic_key},
            )
        except httpx.HTTPError as e:
            raise EventBusError(f"Failed to reach event bus: {e!s}") from e

        if response.status_code >= 300:
            raise EventBusError(
                f"Event bus rejected {event_type} with status {response.status_code}: "
                f"{response.text[:200]}"
            )

        logger.info(
            "Published event to event bus",
            extra={
                "topic": topic,
                "event_type": event_type,
                "subject": subject,
                "event_id": envelope["id"],
            }
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this publisher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
