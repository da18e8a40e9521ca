"""Device availability model definition."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base
from ..domain.availability import AvailabilityStatus

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in AvailabilityStatus)


class DeviceAvailabilityRow(Base):
    """Availability record for a device, keyed by the device id."""

    __tablename__ = "device_availability"

    # The device id is the primary key; there is no surrogate key
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    device_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    reservation_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    last_checked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Optimistic concurrency token, incremented on every write
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("length(id) > 0", name="ck_device_availability_id_not_empty"),
        CheckConstraint("id = device_id", name="ck_device_availability_id_is_device_id"),
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_device_availability_status_valid"),
        CheckConstraint("version >= 1", name="ck_device_availability_version_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<DeviceAvailabilityRow(id='{self.id}', status='{self.status}', "
            f"reservation_id={self.reservation_id!r}, version={self.version})>"
        )
