"""Catalogue device events mapped onto device availability."""

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

from ..core.observability import metrics_collector
from ..domain.availability import AvailabilityStatus
from ..services.availability_service import AvailabilityService
from .base import InboundOutcome, outcome_for, required_string

logger = logging.getLogger(__name__)

SOURCE = "catalogue"


class CatalogueEventTypes:
    """Event types published by the catalogue service."""
    DEVICE_UPSERTED = "Catalogue.Device.Upserted"
    DEVICE_DELETED = "Catalogue.Device.Deleted"


# Catalogue device status -> availability status
CATALOGUE_STATUS_MAP: dict[str, AvailabilityStatus] = {
    "Available": AvailabilityStatus.AVAILABLE,
    "Unavailable": AvailabilityStatus.UNAVAILABLE,
    "Maintenance": AvailabilityStatus.MAINTENANCE,
    "Retired": AvailabilityStatus.RETIRED,
    "Lost": AvailabilityStatus.LOST,
}


def map_catalogue_status(status: Any) -> AvailabilityStatus:
    """Map a catalogue status; unknown values default to Available."""
    if isinstance(status, str) and status in CATALOGUE_STATUS_MAP:
        return CATALOGUE_STATUS_MAP[status]
    return AvailabilityStatus.AVAILABLE


async def _handle_device_upserted(
    service: AvailabilityService,
    device_id: str,
    data: Mapping[str, Any],
) -> InboundOutcome:
    status = map_catalogue_status(data.get("status"))
    logger.info(
        "Syncing availability for device",
        extra={"device_id": device_id, "catalogue_status": data.get("status"), "status": status.value}
    )

    result = await service.reconcile(device_id, status)
    return outcome_for(SOURCE, device_id, result)


async def _handle_device_deleted(
    service: AvailabilityService,
    device_id: str,
    data: Mapping[str, Any],
) -> InboundOutcome:
    result = await service.delete_availability(device_id)
    if not result.ok:
        # Not redelivered; a later delete converges
        logger.error(
            "Failed to delete availability",
            extra={"device_id": device_id, "error": result.error}
        )
        return InboundOutcome.DROPPED

    logger.info("Deleted availability for device", extra={"device_id": device_id})
    return InboundOutcome.APPLIED


CatalogueHandler = Callable[[AvailabilityService, str, Mapping[str, Any]], Awaitable[InboundOutcome]]

CATALOGUE_HANDLERS: dict[str, CatalogueHandler] = {
    CatalogueEventTypes.DEVICE_UPSERTED: _handle_device_upserted,
    CatalogueEventTypes.DEVICE_DELETED: _handle_device_deleted,
}


async def handle_catalogue_event(
    service: AvailabilityService,
    event_type: str,
    data: Optional[Mapping[str, Any]],
) -> InboundOutcome:
    """
    Apply one catalogue event.

    Raises:
        RedeliveryRequested: If an upsert failed transiently
    """
    handler = CATALOGUE_HANDLERS.get(event_type)
    if handler is None:
        logger.info("Unhandled catalogue event type, skipping", extra={"event_type": event_type})
        metrics_collector.record_inbound_event(SOURCE, InboundOutcome.IGNORED.value)
        return InboundOutcome.IGNORED

    device_id = required_string(data, "id")
    if device_id is None:
        logger.warning(
            "Missing device id in catalogue event, skipping",
            extra={"event_type": event_type}
        )
        metrics_collector.record_inbound_event(SOURCE, InboundOutcome.DROPPED.value)
        return InboundOutcome.DROPPED

    try:
        outcome = await handler(service, device_id, data)
    except Exception:
        metrics_collector.record_inbound_event(SOURCE, "redelivery")
        raise

    metrics_collector.record_inbound_event(SOURCE, outcome.value)
    return outcome
