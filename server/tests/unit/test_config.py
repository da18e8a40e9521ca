"""Unit tests for settings validation."""

import pytest
from pydantic import ValidationError

from availability_service.core.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.outbox_dispatch_interval_seconds == 300
    assert settings.outbox_batch_size == 20
    assert settings.outbox_max_retries == 0
    assert settings.reconcile_max_attempts == 3


def test_blank_event_bus_settings_are_unset():
    settings = Settings(_env_file=None, event_bus_topic_endpoint="  ", event_bus_topic_key="")

    assert settings.event_bus_topic_endpoint is None
    assert settings.event_bus_topic_key is None
    assert settings.event_bus_configured is False


def test_event_bus_needs_endpoint_and_key():
    assert Settings(_env_file=None, event_bus_topic_endpoint="https://bus").event_bus_configured is False
    assert Settings(
        _env_file=None,
        event_bus_topic_endpoint="https://bus",
        event_bus_topic_key="k",
    ).event_bus_configured is True


def test_environment_is_normalized():
    settings = Settings(_env_file=None, environment="Production", log_level="debug")

    assert settings.environment == "production"
    assert settings.is_production
    assert not settings.debug
    assert settings.log_level == "DEBUG"


def test_rejects_unknown_environment():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, environment="qa")


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("OUTBOX_BATCH_SIZE", "50")
    monkeypatch.setenv("OUTBOX_MAX_RETRIES", "0")

    settings = Settings(_env_file=None)

    assert settings.outbox_batch_size == 50
    assert settings.outbox_max_retries == 0
