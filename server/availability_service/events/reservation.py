"""Reservation lifecycle events mapped onto device availability.

- Created / Collected: the device is held (Unavailable) by the reservation.
- Returned / Cancelled / Expired: the device is released (Available) and
  the reservation reference is cleared.
"""

import logging
from typing import Any, Mapping, NamedTuple, Optional

from ..core.observability import metrics_collector
from ..domain.availability import UNSET, AvailabilityStatus
from ..services.availability_service import AvailabilityService
from .base import InboundOutcome, outcome_for, required_string

logger = logging.getLogger(__name__)

SOURCE = "reservation"


class ReservationEventTypes:
    """Event types published by the reservation service."""
    CREATED = "Reservation.Created"
    COLLECTED = "Reservation.Collected"
    RETURNED = "Reservation.Returned"
    CANCELLED = "Reservation.Cancelled"
    EXPIRED = "Reservation.Expired"


class ReservationTransition(NamedTuple):
    status: AvailabilityStatus
    clear_reservation: bool


RESERVATION_TRANSITIONS: dict[str, ReservationTransition] = {
    ReservationEventTypes.CREATED: ReservationTransition(AvailabilityStatus.UNAVAILABLE, False),
    ReservationEventTypes.COLLECTED: ReservationTransition(AvailabilityStatus.UNAVAILABLE, False),
    ReservationEventTypes.RETURNED: ReservationTransition(AvailabilityStatus.AVAILABLE, True),
    ReservationEventTypes.CANCELLED: ReservationTransition(AvailabilityStatus.AVAILABLE, True),
    ReservationEventTypes.EXPIRED: ReservationTransition(AvailabilityStatus.AVAILABLE, True),
}


async def handle_reservation_event(
    service: AvailabilityService,
    event_type: str,
    data: Optional[Mapping[str, Any]],
) -> InboundOutcome:
    """
    Apply one reservation event to the device it references.

    Raises:
        RedeliveryRequested: If the update failed transiently
    """
    device_id = required_string(data, "deviceId")
    if device_id is None:
        logger.warning(
            "Missing deviceId in reservation event, skipping",
            extra={"event_type": event_type}
        )
        metrics_collector.record_inbound_event(SOURCE, InboundOutcome.DROPPED.value)
        return InboundOutcome.DROPPED

    transition = RESERVATION_TRANSITIONS.get(event_type)
    if transition is None:
        logger.info(
            "Unhandled reservation event type, skipping",
            extra={"event_type": event_type, "device_id": device_id}
        )
        metrics_collector.record_inbound_event(SOURCE, InboundOutcome.IGNORED.value)
        return InboundOutcome.IGNORED

    if transition.clear_reservation:
        reservation_id: Any = None
    else:
        reservation_id = data.get("reservationId", UNSET)

    logger.info(
        "Updating device availability from reservation event",
        extra={
            "event_type": event_type,
            "device_id": device_id,
            "status": transition.status.value,
            "reservation_id": None if reservation_id is UNSET else reservation_id,
        }
    )

    result = await service.reconcile(device_id, transition.status, reservation_id)
    try:
        outcome = outcome_for(SOURCE, device_id, result)
    except Exception:
        metrics_collector.record_inbound_event(SOURCE, "redelivery")
        raise

    metrics_collector.record_inbound_event(SOURCE, outcome.value)
    return outcome
