"""Inbound event adapters for the reservation and catalogue services."""

from .base import InboundOutcome, RedeliveryRequested
from .catalogue import CatalogueEventTypes, handle_catalogue_event
from .reservation import ReservationEventTypes, handle_reservation_event

__all__ = [
    "InboundOutcome",
    "RedeliveryRequested",
    "CatalogueEventTypes",
    "ReservationEventTypes",
    "handle_catalogue_event",
    "handle_reservation_event",
]
