"""Unit tests for reconciliation against a real database session."""

import pytest

from availability_service.core.exceptions import StoreError
from availability_service.domain import UNSET, AvailabilityStatus
from availability_service.publishers.outbox import OutboxEventPublisher
from availability_service.repositories.availability_store import SqlAvailabilityStore
from availability_service.repositories.outbox_store import SqlOutboxStore
from availability_service.services.availability_service import AvailabilityService
from availability_service.services.results import ResultCode


@pytest.mark.asyncio
async def test_unknown_device_is_created_with_one_event(availability_service, read_outbox):
    result = await availability_service.reconcile("D1", AvailabilityStatus.UNAVAILABLE, "R1")

    assert result.ok
    assert result.changed
    assert result.data.status == AvailabilityStatus.UNAVAILABLE
    assert result.data.reservation_id == "R1"
    assert result.data.version == 1

    rows = await read_outbox()
    assert len(rows) == 1
    assert rows[0].event_type == "Availability.Changed"
    assert rows[0].topic == "Availability"
    assert rows[0].subject == "D1"
    assert rows[0].data["previousStatus"] is None
    assert rows[0].data["newStatus"] == "Unavailable"
    assert rows[0].data["reservationId"] == "R1"
    assert rows[0].processed is False


@pytest.mark.asyncio
async def test_repeated_reconcile_is_a_no_op(availability_service, read_outbox):
    first = await availability_service.reconcile("D1", "Unavailable", "R1")
    second = await availability_service.reconcile("D1", "Unavailable", "R1")

    assert second.ok
    assert not second.changed
    assert second.data.updated_at == first.data.updated_at
    assert second.data.version == first.data.version
    assert len(await read_outbox()) == 1


@pytest.mark.asyncio
async def test_same_status_with_omitted_reservation_is_a_no_op(availability_service, read_outbox):
    first = await availability_service.reconcile("D1", "Unavailable", "R1")
    second = await availability_service.reconcile("D1", "Unavailable")

    assert not second.changed
    assert second.data.reservation_id == "R1"
    assert second.data.version == first.data.version


@pytest.mark.asyncio
async def test_reservation_only_change_is_written_without_event(availability_service, read_outbox):
    await availability_service.reconcile("D1", "Unavailable", "R1")

    result = await availability_service.reconcile("D1", "Unavailable", "R2")

    assert result.ok
    assert result.changed
    assert result.data.reservation_id == "R2"
    assert result.data.version == 2
    assert len(await read_outbox()) == 1


@pytest.mark.asyncio
async def test_status_change_emits_event_with_previous_status(availability_service, read_outbox):
    await availability_service.reconcile("D1", AvailabilityStatus.AVAILABLE)

    result = await availability_service.reconcile("D1", AvailabilityStatus.MAINTENANCE)

    assert result.data.status == AvailabilityStatus.MAINTENANCE
    rows = await read_outbox()
    assert len(rows) == 2
    assert rows[1].data["previousStatus"] == "Available"
    assert rows[1].data["newStatus"] == "Maintenance"


@pytest.mark.asyncio
async def test_clearing_reservation(availability_service, read_outbox):
    await availability_service.reconcile("D1", "Unavailable", "R1")

    result = await availability_service.reconcile("D1", "Available", None)

    assert result.data.status == AvailabilityStatus.AVAILABLE
    assert result.data.reservation_id is None
    rows = await read_outbox()
    assert rows[-1].data["newStatus"] == "Available"
    assert rows[-1].data["reservationId"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "device_id,status,reservation_id,field",
    [
        ("", "Available", UNSET, "deviceId"),
        ("   ", "Available", UNSET, "deviceId"),
        ("D1", "Reserved", UNSET, "status"),
        ("D1", None, UNSET, "status"),
        ("D1", "Available", 12, "reservationId"),
    ],
)
async def test_invalid_input_is_rejected_without_side_effects(
    availability_service, read_outbox, device_id, status, reservation_id, field
):
    result = await availability_service.reconcile(device_id, status, reservation_id)

    assert not result.ok
    assert result.code == ResultCode.VALIDATION_ERROR
    assert result.field == field
    assert not result.retryable
    assert await read_outbox() == []


@pytest.mark.asyncio
async def test_get_availability(availability_service):
    await availability_service.reconcile(" D1 ", "Lost")

    result = await availability_service.get_availability("D1")

    assert result.ok
    assert result.data.id == "D1"
    assert result.data.status == AvailabilityStatus.LOST


@pytest.mark.asyncio
async def test_get_unknown_device_is_not_found(availability_service):
    result = await availability_service.get_availability("nope")

    assert not result.ok
    assert result.code == ResultCode.NOT_FOUND


@pytest.mark.asyncio
async def test_get_availability_many_skips_unknown_and_duplicates(availability_service):
    await availability_service.reconcile("D1", "Available")
    await availability_service.reconcile("D2", "Retired")

    result = await availability_service.get_availability_many(["D2", "D1", "D2", "missing", " "])

    assert result.ok
    assert sorted(record.device_id for record in result.data) == ["D1", "D2"]


@pytest.mark.asyncio
async def test_get_availability_many_with_no_ids(availability_service):
    result = await availability_service.get_availability_many([])

    assert result.ok
    assert result.data == []


@pytest.mark.asyncio
async def test_delete_is_idempotent(availability_service):
    await availability_service.reconcile("D1", "Available")

    first = await availability_service.delete_availability("D1")
    second = await availability_service.delete_availability("D1")

    assert first.ok
    assert second.ok
    assert (await availability_service.get_availability("D1")).code == ResultCode.NOT_FOUND


@pytest.mark.asyncio
async def test_delete_does_not_emit_events(availability_service, read_outbox):
    await availability_service.reconcile("D1", "Available")

    await availability_service.delete_availability("D1")

    assert len(await read_outbox()) == 1


@pytest.mark.asyncio
async def test_recreated_device_starts_a_new_history(availability_service, read_outbox):
    await availability_service.reconcile("D1", "Maintenance")
    await availability_service.delete_availability("D1")

    result = await availability_service.reconcile("D1", "Maintenance")

    assert result.changed
    assert result.data.version == 1
    rows = await read_outbox()
    assert rows[-1].data["previousStatus"] is None


class FailingOutboxPublisher(OutboxEventPublisher):
    async def publish(self, *args, **kwargs) -> None:
        raise StoreError("outbox insert failed")


class FailingAvailabilityStore(SqlAvailabilityStore):
    async def save(self, record):
        raise StoreError("availability write failed")


@pytest.mark.asyncio
async def test_outbox_failure_rolls_back_the_state_change(test_session, availability_store, read_outbox):
    service = AvailabilityService(
        test_session,
        availability_store=availability_store,
        event_publisher=FailingOutboxPublisher(SqlOutboxStore(test_session)),
        max_attempts=3,
    )

    result = await service.reconcile("D1", AvailabilityStatus.UNAVAILABLE, "R1")

    assert result.code == ResultCode.INTERNAL_ERROR
    assert result.retryable
    assert await availability_store.get_by_id("D1") is None
    assert await read_outbox() == []


@pytest.mark.asyncio
async def test_outbox_failure_keeps_the_previous_state(
    test_session, availability_service, availability_store, read_outbox
):
    await availability_service.reconcile("D1", AvailabilityStatus.AVAILABLE)
    service = AvailabilityService(
        test_session,
        availability_store=availability_store,
        event_publisher=FailingOutboxPublisher(SqlOutboxStore(test_session)),
        max_attempts=3,
    )

    result = await service.reconcile("D1", AvailabilityStatus.UNAVAILABLE, "R1")

    assert result.code == ResultCode.INTERNAL_ERROR
    record = await availability_store.get_by_id("D1")
    assert record.status == AvailabilityStatus.AVAILABLE
    assert record.version == 1
    assert len(await read_outbox()) == 1


@pytest.mark.asyncio
async def test_store_failure_is_an_internal_error(test_session, availability_store, read_outbox):
    service = AvailabilityService(
        test_session,
        availability_store=FailingAvailabilityStore(test_session),
        max_attempts=3,
    )

    result = await service.reconcile("D1", AvailabilityStatus.UNAVAILABLE, "R1")

    assert result.code == ResultCode.INTERNAL_ERROR
    assert await availability_store.get_by_id("D1") is None
    assert await read_outbox() == []


@pytest.mark.asyncio
async def test_explicit_attempt_limit_is_not_replaced_by_settings(test_session, availability_store):
    service = AvailabilityService(test_session, max_attempts=0)

    result = await service.reconcile("D1", AvailabilityStatus.AVAILABLE)

    assert service.max_attempts == 0
    assert result.code == ResultCode.CONFLICT
    assert await availability_store.get_by_id("D1") is None
