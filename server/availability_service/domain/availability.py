"""Device availability record and its status transition functions.

Both transitions are pure: they validate their input, stamp fresh
timestamps and return a new record. Nothing here touches storage.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..core.exceptions import ValidationError


class AvailabilityStatus(str, Enum):
    """Availability status enumeration."""
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"
    MAINTENANCE = "Maintenance"
    RETIRED = "Retired"
    LOST = "Lost"


class _Unset:
    """Marker for an argument that was not supplied."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

StatusInput = Union[AvailabilityStatus, str]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class AvailabilityRecord(BaseModel):
    """Availability of a single device. The record id is the device id."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str = Field(..., description="Record identity, equal to the device id")
    device_id: str = Field(..., description="Device identity")
    status: AvailabilityStatus = Field(..., description="Current availability status")
    reservation_id: Optional[str] = Field(None, description="Reservation currently holding the device")
    last_checked_at: datetime = Field(..., description="Last time the record was written")
    updated_at: datetime = Field(..., description="Version marker, refreshed on every write")
    version: int = Field(0, ge=0, description="Store version; 0 means never persisted")


def normalize_device_id(device_id: Any) -> str:
    """Trim a device id, rejecting blanks and non-strings."""
    if not isinstance(device_id, str) or not device_id.strip():
        raise ValidationError(field="deviceId", detail="Device ID must be a non-empty string.")
    return device_id.strip()


def parse_status(status: Any) -> AvailabilityStatus:
    """
    Coerce a status value into the closed status enumeration.

    Raises:
        ValidationError: If the value is not one of the enumerated statuses
    """
    if isinstance(status, AvailabilityStatus):
        return status
    if isinstance(status, str):
        try:
            return AvailabilityStatus(status)
        except ValueError:
            pass
    valid = ", ".join(s.value for s in AvailabilityStatus)
    raise ValidationError(field="status", detail=f"Status must be one of: {valid}.")


def normalize_reservation_id(reservation_id: Optional[str]) -> Optional[str]:
    """Trim a reservation id; blank values mean no reservation."""
    if reservation_id is None:
        return None
    if not isinstance(reservation_id, str):
        raise ValidationError(field="reservationId", detail="Reservation ID must be a string.")
    stripped = reservation_id.strip()
    return stripped or None


def create_availability(
    device_id: str,
    status: Optional[StatusInput] = None,
    reservation_id: Optional[str] = None,
) -> AvailabilityRecord:
    """
    Build a new availability record.

    Devices default to Available when first tracked.

    Raises:
        ValidationError: For a blank device id or an unknown status
    """
    normalized_id = normalize_device_id(device_id)
    new_status = AvailabilityStatus.AVAILABLE if status is None else parse_status(status)

    now = utcnow()
    return AvailabilityRecord(
        id=normalized_id,
        device_id=normalized_id,
        status=new_status,
        reservation_id=normalize_reservation_id(reservation_id),
        last_checked_at=now,
        updated_at=now,
    )


def update_availability(
    existing: AvailabilityRecord,
    status: Optional[StatusInput] = None,
    reservation_id: Any = UNSET,
) -> AvailabilityRecord:
    """
    Apply a status and reservation change to an existing record.

    ``reservation_id`` is three-way: leave it out to keep the current
    value, pass ``None`` or ``""`` to clear it, or pass a value to replace
    it. Timestamps are refreshed even when nothing else changes.

    Raises:
        ValidationError: For an unknown status
    """
    normalize_device_id(existing.device_id)
    new_status = existing.status if status is None else parse_status(status)

    if reservation_id is UNSET:
        new_reservation_id = existing.reservation_id
    else:
        new_reservation_id = normalize_reservation_id(reservation_id)

    now = utcnow()
    return existing.model_copy(
        update={
            "status": new_status,
            "reservation_id": new_reservation_id,
            "last_checked_at": now,
            "updated_at": now,
        }
    )


def is_available(record: AvailabilityRecord) -> bool:
    """Return True if the device can be reserved."""
    return record.status == AvailabilityStatus.AVAILABLE
