"""Unit tests for the availability record transitions."""

from datetime import timedelta

import pytest

from availability_service.core.exceptions import ValidationError
from availability_service.domain import (
    UNSET,
    AvailabilityStatus,
    create_availability,
    is_available,
    parse_status,
    update_availability,
)


class TestCreateAvailability:

    def test_defaults_to_available(self):
        record = create_availability("D1")

        assert record.id == "D1"
        assert record.device_id == "D1"
        assert record.status == AvailabilityStatus.AVAILABLE
        assert record.reservation_id is None
        assert record.last_checked_at == record.updated_at
        assert record.version == 0

    def test_trims_device_id_and_uses_it_as_id(self):
        record = create_availability("  D1 ", AvailabilityStatus.UNAVAILABLE, "R1")

        assert record.id == "D1"
        assert record.device_id == "D1"
        assert record.reservation_id == "R1"

    def test_accepts_status_strings(self):
        assert create_availability("D1", "Maintenance").status == AvailabilityStatus.MAINTENANCE

    @pytest.mark.parametrize("device_id", ["", "   ", None, 42])
    def test_rejects_blank_device_id(self, device_id):
        with pytest.raises(ValidationError) as exc_info:
            create_availability(device_id)

        assert exc_info.value.field == "deviceId"
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("status", ["available", "Broken", "", 3])
    def test_rejects_unknown_status(self, status):
        with pytest.raises(ValidationError) as exc_info:
            create_availability("D1", status)

        assert exc_info.value.field == "status"

    def test_blank_reservation_id_means_none(self):
        assert create_availability("D1", reservation_id="  ").reservation_id is None


class TestUpdateAvailability:

    def test_omitted_reservation_is_kept(self):
        existing = create_availability("D1", AvailabilityStatus.UNAVAILABLE, "R1")

        updated = update_availability(existing, AvailabilityStatus.MAINTENANCE)

        assert updated.status == AvailabilityStatus.MAINTENANCE
        assert updated.reservation_id == "R1"

    @pytest.mark.parametrize("cleared", [None, ""])
    def test_null_or_empty_reservation_is_cleared(self, cleared):
        existing = create_availability("D1", AvailabilityStatus.UNAVAILABLE, "R1")

        updated = update_availability(existing, AvailabilityStatus.AVAILABLE, cleared)

        assert updated.reservation_id is None

    def test_reservation_is_replaced(self):
        existing = create_availability("D1", AvailabilityStatus.UNAVAILABLE, "R1")

        assert update_availability(existing, reservation_id="R2").reservation_id == "R2"

    def test_missing_status_keeps_current_status(self):
        existing = create_availability("D1", AvailabilityStatus.LOST)

        assert update_availability(existing).status == AvailabilityStatus.LOST

    def test_refreshes_timestamps_even_without_changes(self):
        existing = create_availability("D1")
        stale = existing.model_copy(
            update={
                "last_checked_at": existing.last_checked_at - timedelta(hours=1),
                "updated_at": existing.updated_at - timedelta(hours=1),
            }
        )

        updated = update_availability(stale, reservation_id=UNSET)

        assert updated.updated_at > stale.updated_at
        assert updated.last_checked_at > stale.last_checked_at
        assert updated.updated_at == updated.last_checked_at

    def test_keeps_identity_and_version(self):
        existing = create_availability("D1").model_copy(update={"version": 4})

        updated = update_availability(existing, AvailabilityStatus.RETIRED)

        assert updated.id == existing.id
        assert updated.device_id == existing.device_id
        assert updated.version == 4

    def test_rejects_unknown_status(self):
        with pytest.raises(ValidationError) as exc_info:
            update_availability(create_availability("D1"), "Gone")

        assert exc_info.value.field == "status"

    def test_does_not_mutate_existing(self):
        existing = create_availability("D1")

        update_availability(existing, AvailabilityStatus.UNAVAILABLE, "R1")

        assert existing.status == AvailabilityStatus.AVAILABLE
        assert existing.reservation_id is None


def test_is_available():
    assert is_available(create_availability("D1"))
    assert not is_available(create_availability("D1", AvailabilityStatus.MAINTENANCE))


def test_parse_status_round_trips_enum_members():
    for status in AvailabilityStatus:
        assert parse_status(status) is status
        assert parse_status(status.value) is status
