"""Webhook router for inbound reservation and catalogue events."""

import logging
from typing import Awaitable, Callable, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..core.dependencies import get_availability_service
from ..core.exceptions import InternalServerError
from ..events import (
    InboundOutcome,
    RedeliveryRequested,
    handle_catalogue_event,
    handle_reservation_event,
)
from ..schemas.events import InboundEvent, InboundEventBatchResponse, InboundEventResult
from ..services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/events", tags=["events"])

EventHandler = Callable[[AvailabilityService, str, Optional[dict]], Awaitable[InboundOutcome]]


async def _apply_events(
    handler: EventHandler,
    events: List[InboundEvent],
    service: AvailabilityService,
    request: Request,
) -> JSONResponse:
    results = []
    for event in events:
        try:
            outcome = await handler(service, event.event_type, event.data)
        except RedeliveryRequested as e:
            logger.warning(
                "Inbound event needs redelivery",
                extra={"event_id": event.id, "event_type": event.event_type, "device_id": e.device_id}
            )
            raise InternalServerError(
                detail="Event could not be applied; redeliver the batch",
                instance=str(request.url.path),
            )
        results.append(InboundEventResult(id=event.id, event_type=event.event_type, outcome=outcome.value))

    response_data = InboundEventBatchResponse(results=results)
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json", by_alias=True)
    )


@router.post("/reservations", response_model=InboundEventBatchResponse)
async def receive_reservation_events(
    events: List[InboundEvent],
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
) -> JSONResponse:
    """
    Apply a batch of reservation lifecycle events.

    A 500 response asks the sender to redeliver; events already applied
    are no-ops the second time.
    """
    return await _apply_events(handle_reservation_event, events, service, request)


@router.post("/catalogue", response_model=InboundEventBatchResponse)
async def receive_catalogue_events(
    events: List[InboundEvent],
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
) -> JSONResponse:
    """Apply a batch of device catalogue events."""
    return await _apply_events(handle_catalogue_event, events, service, request)
