"""Availability-related Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.availability import AvailabilityRecord, AvailabilityStatus


class AvailabilityResponse(BaseModel):
    """Availability record as returned to API callers."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Record ID (the device ID)")
    device_id: str = Field(..., description="Device ID")
    status: AvailabilityStatus = Field(..., description="Availability status")
    reservation_id: Optional[str] = Field(None, description="Reservation holding the device")
    last_checked_at: datetime = Field(..., description="Last check time (ISO 8601)")
    updated_at: datetime = Field(..., description="Last update time (ISO 8601)")

    @classmethod
    def from_record(cls, record: AvailabilityRecord) -> "AvailabilityResponse":
        return cls(
            id=record.id,
            device_id=record.device_id,
            status=record.status,
            reservation_id=record.reservation_id,
            last_checked_at=record.last_checked_at,
            updated_at=record.updated_at,
        )


class UpdateAvailabilityRequest(BaseModel):
    """
    Request schema for updating a device's availability.

    ``status`` is validated by the domain so that a bad value is reported
    with its field name. Omitting ``reservationId`` keeps the current
    reservation; sending null clears it.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: Optional[str] = Field(None, description="New availability status")
    reservation_id: Optional[str] = Field(None, max_length=255, description="Reservation ID, or null to clear")
