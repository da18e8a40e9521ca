"""Availability service: reconciliation of device status and record queries."""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import ConflictError, ValidationError
from ..core.observability import metrics_collector
from ..domain.availability import (
    UNSET,
    AvailabilityRecord,
    AvailabilityStatus,
    StatusInput,
    create_availability,
    normalize_device_id,
    normalize_reservation_id,
    parse_status,
    update_availability,
)
from ..domain.outbox import availability_changed_event
from ..publishers.base import EventPublisher
from ..publishers.outbox import OutboxEventPublisher
from ..repositories.availability_store import SqlAvailabilityStore
from ..repositories.base import AvailabilityStore
from ..repositories.outbox_store import SqlOutboxStore
from .results import ResultCode, ServiceResult

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service for availability operations.

    The availability store and the outbox publisher share the service's
    session, so a status change and its ``Availability.Changed`` event are
    committed in the same transaction.
    """

    def __init__(
        self,
        db: AsyncSession,
        availability_store: Optional[AvailabilityStore] = None,
        event_publisher: Optional[EventPublisher] = None,
        max_attempts: Optional[int] = None,
    ):
        self.db = db
        self.availability_store = availability_store or SqlAvailabilityStore(db)
        self.event_publisher = event_publisher or OutboxEventPublisher(SqlOutboxStore(db))
        self.max_attempts = settings.reconcile_max_attempts if max_attempts is None else max_attempts

    async def reconcile(
        self,
        device_id: str,
        desired_status: StatusInput,
        desired_reservation_id: Any = UNSET,
    ) -> ServiceResult[AvailabilityRecord]:
        """
        Converge a device's record on the desired status and reservation.

        Unknown devices are created. A request that matches the stored
        record is a no-op: nothing is written and no event is queued. An
        event is queued only when the status itself changes.

        Args:
            device_id: Device to update
            desired_status: Target availability status
            desired_reservation_id: Omit to keep the current reservation,
                None to clear it, or a value to replace it

        Returns:
            ServiceResult carrying the resulting record, or a coded failure
        """
        try:
            device_id = normalize_device_id(device_id)
            status = parse_status(desired_status)
            if desired_reservation_id is not UNSET:
                desired_reservation_id = normalize_reservation_id(desired_reservation_id)
        except ValidationError as e:
            metrics_collector.record_reconciliation(ResultCode.VALIDATION_ERROR.value)
            return ServiceResult.failure(ResultCode.VALIDATION_ERROR, str(e), field=e.field)

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await self._reconcile_once(device_id, status, desired_reservation_id)
            except ConflictError:
                await self.db.rollback()
                logger.warning(
                    "Concurrent availability write detected, retrying",
                    extra={
                        "device_id": device_id,
                        "attempt": attempt,
                        "max_attempts": self.max_attempts,
                    }
                )
                continue
            except ValidationError as e:
                await self.db.rollback()
                metrics_collector.record_reconciliation(ResultCode.VALIDATION_ERROR.value)
                return ServiceResult.failure(ResultCode.VALIDATION_ERROR, str(e), field=e.field)
            except Exception as e:
                await self.db.rollback()
                logger.error(
                    "Failed to reconcile device availability",
                    exc_info=True,
                    extra={"device_id": device_id, "status": status.value}
                )
                metrics_collector.record_reconciliation(ResultCode.INTERNAL_ERROR.value)
                return ServiceResult.failure(ResultCode.INTERNAL_ERROR, str(e))

            metrics_collector.record_reconciliation("applied" if result.changed else "unchanged")
            return result

        metrics_collector.record_reconciliation(ResultCode.CONFLICT.value)
        return ServiceResult.failure(
            ResultCode.CONFLICT,
            f"Availability for device {device_id} kept changing after {self.max_attempts} attempts",
        )

    async def _reconcile_once(
        self,
        device_id: str,
        status: AvailabilityStatus,
        reservation_id: Any,
    ) -> ServiceResult[AvailabilityRecord]:
        existing = await self.availability_store.get_by_id(device_id)

        previous_status: Optional[AvailabilityStatus] = None
        if existing is None:
            candidate = create_availability(
                device_id,
                status=status,
                reservation_id=None if reservation_id is UNSET else reservation_id,
            )
        else:
            reservation_matches = reservation_id is UNSET or reservation_id == existing.reservation_id
            if existing.status == status and reservation_matches:
                logger.debug(
                    "Availability already up to date",
                    extra={"device_id": device_id, "status": status.value}
                )
                return ServiceResult.success(existing, changed=False)

            previous_status = existing.status
            candidate = update_availability(existing, status=status, reservation_id=reservation_id)

        saved = await self.availability_store.save(candidate)

        status_changed = previous_status != saved.status
        if status_changed:
            await self.event_publisher.publish_event(availability_changed_event(saved, previous_status))

        await self.db.commit()

        if status_changed:
            metrics_collector.record_event_enqueued(saved.status.value)

        logger.info(
            "Device availability reconciled",
            extra={
                "device_id": saved.device_id,
                "previous_status": previous_status.value if previous_status else None,
                "new_status": saved.status.value,
                "reservation_id": saved.reservation_id,
                "event_enqueued": status_changed,
            }
        )

        return ServiceResult.success(saved, changed=True)

    async def get_availability(self, device_id: str) -> ServiceResult[AvailabilityRecord]:
        """Get the availability record for one device."""
        try:
            device_id = normalize_device_id(device_id)
        except ValidationError as e:
            return ServiceResult.failure(ResultCode.VALIDATION_ERROR, str(e), field=e.field)

        try:
            record = await self.availability_store.get_by_id(device_id)
        except Exception as e:
            logger.error(
                "Failed to get device availability",
                exc_info=True,
                extra={"device_id": device_id}
            )
            return ServiceResult.failure(ResultCode.INTERNAL_ERROR, str(e))

        if record is None:
            return ServiceResult.failure(
                ResultCode.NOT_FOUND,
                f"No availability record for device {device_id}",
            )
        return ServiceResult.success(record)

    async def get_availability_many(self, device_ids: Sequence[str]) -> ServiceResult[list[AvailabilityRecord]]:
        """Get availability records for several devices; unknown ids are skipped."""
        unique_ids = list(dict.fromkeys(
            device_id.strip() for device_id in device_ids if device_id and device_id.strip()
        ))
        if not unique_ids:
            return ServiceResult.success([])

        try:
            records = await self.availability_store.get_by_ids(unique_ids)
        except Exception as e:
            logger.error(
                "Failed to get device availability by device IDs",
                exc_info=True,
                extra={"count": len(unique_ids)}
            )
            return ServiceResult.failure(ResultCode.INTERNAL_ERROR, str(e))

        return ServiceResult.success(records)

    async def delete_availability(self, device_id: str) -> ServiceResult[None]:
        """Delete a device's record. Deleting an unknown device succeeds."""
        try:
            device_id = normalize_device_id(device_id)
        except ValidationError as e:
            return ServiceResult.failure(ResultCode.VALIDATION_ERROR, str(e), field=e.field)

        try:
            await self.availability_store.delete(device_id)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to delete device availability",
                exc_info=True,
                extra={"device_id": device_id}
            )
            return ServiceResult.failure(ResultCode.INTERNAL_ERROR, str(e))

        logger.info("Device availability deleted", extra={"device_id": device_id})
        return ServiceResult.success(changed=True)
