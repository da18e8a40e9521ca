"""SQLAlchemy-backed availability store."""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, StoreError
from ..domain.availability import AvailabilityRecord, AvailabilityStatus
from ..models.availability import DeviceAvailabilityRow
from .base import AvailabilityStore

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes returned by drivers without tz support."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAvailabilityStore(AvailabilityStore):
    """
    Availability store bound to a single session.

    Writes are flushed but never committed; the caller owns the
    transaction so the record and its outbox message commit together.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, record: AvailabilityRecord) -> AvailabilityRecord:
        values = {
            "device_id": record.device_id,
            "status": record.status.value,
            "reservation_id": record.reservation_id,
            "last_checked_at": record.last_checked_at,
            "updated_at": record.updated_at,
        }
        new_version = record.version + 1

        try:
            if record.version == 0:
                await self.db.execute(
                    insert(DeviceAvailabilityRow).values(id=record.id, version=new_version, **values)
                )
            else:
                result = await self.db.execute(
                    update(DeviceAvailabilityRow)
                    .where(
                        DeviceAvailabilityRow.id == record.id,
                        DeviceAvailabilityRow.version == record.version,
                    )
                    .values(version=new_version, **values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise self._conflict(record)
        except IntegrityError as e:
            logger.warning(
                "Device availability insert lost a race",
                extra={"device_id": record.device_id, "error": str(e)}
            )
            raise self._conflict(record) from e
        except SQLAlchemyError as e:
            logger.error(
                "Failed to save device availability",
                exc_info=True,
                extra={"device_id": record.device_id}
            )
            raise StoreError(f"Failed to save device availability: {e}") from e

        logger.debug(
            "Device availability saved",
            extra={
                "device_id": record.device_id,
                "status": record.status.value,
                "version": new_version,
            }
        )
        return record.model_copy(update={"version": new_version})

    async def get_by_id(self, device_id: str) -> Optional[AvailabilityRecord]:
        stmt = (
            select(DeviceAvailabilityRow)
            .where(DeviceAvailabilityRow.id == device_id)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to get device availability by device ID: {e}") from e

        row = result.scalar_one_or_none()
        if row is None:
            return None
        return self._to_domain(row)

    async def get_by_ids(self, device_ids: Sequence[str]) -> list[AvailabilityRecord]:
        if not device_ids:
            return []

        stmt = (
            select(DeviceAvailabilityRow)
            .where(DeviceAvailabilityRow.id.in_(list(device_ids)))
            .order_by(DeviceAvailabilityRow.id)
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to get device availability by device IDs: {e}") from e

        return [self._to_domain(row) for row in result.scalars()]

    async def delete(self, device_id: str) -> None:
        try:
            result = await self.db.execute(
                delete(DeviceAvailabilityRow)
                .where(DeviceAvailabilityRow.id == device_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete device availability: {e}") from e

        if result.rowcount == 0:
            logger.debug(
                "Device availability not found for deletion",
                extra={"device_id": device_id}
            )

    def _conflict(self, record: AvailabilityRecord) -> ConflictError:
        return ConflictError(
            detail=f"Availability for device {record.device_id} was modified concurrently",
            conflicting_resource={
                "device_id": record.device_id,
                "expected_version": record.version,
            },
        )

    def _to_domain(self, row: DeviceAvailabilityRow) -> AvailabilityRecord:
        for field in ("id", "device_id", "status", "last_checked_at", "updated_at"):
            if not getattr(row, field):
                raise StoreError(f"Availability row missing required field: {field}")

        try:
            status = AvailabilityStatus(row.status)
        except ValueError as e:
            raise StoreError(f"Invalid status value in availability row {row.id}: {row.status}") from e

        return AvailabilityRecord(
            id=row.id,
            device_id=row.device_id,
            status=status,
            reservation_id=row.reservation_id,
            last_checked_at=as_utc(row.last_checked_at),
            updated_at=as_utc(row.updated_at),
            version=row.version,
        )
