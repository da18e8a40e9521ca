"""Unit tests for the Event Grid style HTTP publisher."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from availability_service.core.exceptions import EventBusError, EventBusNotConfiguredError
from availability_service.publishers.event_bus import EventGridPublisher

ENDPOINT = "https://bus.test/api/events"


def make_publisher(handler) -> EventGridPublisher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EventGridPublisher(ENDPOINT, "secret", client=client)


@pytest.mark.asyncio
async def test_publish_posts_event_grid_envelope():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200)

    publisher = make_publisher(handler)
    await publisher.publish(
        "Availability",
        "Availability.Changed",
        "D1",
        {"deviceId": "D1", "newStatus": "Available"},
    )

    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == ENDPOINT
    assert request.headers["aeg-sas-key"] == "secret"

    body = json.loads(request.content)
    assert isinstance(body, list) and len(body) == 1
    envelope = body[0]
    assert envelope["eventType"] == "Availability.Changed"
    assert envelope["subject"] == "D1"
    assert envelope["data"] == {"deviceId": "D1", "newStatus": "Available"}
    assert envelope["dataVersion"] == "1.0"
    assert envelope["eventTime"].endswith("Z")
    assert envelope["id"]


@pytest.mark.asyncio
async def test_rejected_publish_raises():
    publisher = make_publisher(lambda request: httpx.Response(401, text="bad key"))

    with pytest.raises(EventBusError) as exc_info:
        await publisher.publish("Availability", "Availability.Changed", "D1", {})

    assert "401" in str(exc_info.value)


@pytest.mark.asyncio
async def test_transport_failure_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    publisher = make_publisher(handler)

    with pytest.raises(EventBusError):
        await publisher.publish("Availability", "Availability.Changed", "D1", {})


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint,key", [(None, "secret"), (ENDPOINT, None), (None, None)])
async def test_unconfigured_publisher_raises(endpoint, key):
    publisher = EventGridPublisher(endpoint, key)

    assert not publisher.configured
    with pytest.raises(EventBusNotConfiguredError):
        await publisher.publish("Availability", "Availability.Changed", "D1", {})


@pytest.mark.asyncio
async def test_aclose_keeps_injected_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    publisher = EventGridPublisher(ENDPOINT, "secret", client=client)

    await publisher.aclose()

    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_publish_uses_given_event_identity():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content)[0])
        return httpx.Response(200)

    publisher = make_publisher(handler)
    sent_at = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    for _ in range(2):
        await publisher.publish(
            "Availability", "Availability.Changed", "D1", {}, event_id="msg-1", event_time=sent_at
        )

    assert [body["id"] for body in bodies] == ["msg-1", "msg-1"]
    assert [body["eventTime"] for body in bodies] == ["2026-03-01T09:00:00.000Z"] * 2
