"""Test configuration and fixtures."""

from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from availability_service.core.config import Settings
from availability_service.core.container import ServiceContainer
from availability_service.core.database import Base, build_engine, build_session_factory
from availability_service.core.dependencies import get_db
from availability_service.core.exceptions import EventBusError
from availability_service.models import *  # noqa: F403 - Import all models
from availability_service.models.outbox import OutboxMessageRow
from availability_service.publishers.base import EventPublisher
from availability_service.repositories.availability_store import SqlAvailabilityStore
from availability_service.repositories.outbox_store import SqlOutboxStore
from availability_service.services.availability_service import AvailabilityService

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeBusPublisher(EventPublisher):
    """Event bus stand-in that records publishes and can be told to fail."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.published: List[Dict[str, Any]] = []
        self.fail_subjects: set[str] = set()
        self.fail_all: Optional[str] = None

    async def publish(
        self, topic, event_type, subject, data, data_version="1.0", *, event_id=None, event_time=None
    ) -> None:
        if self.fail_all is not None:
            raise EventBusError(self.fail_all)
        if subject in self.fail_subjects:
            raise EventBusError(f"Event bus rejected {subject}")
        self.published.append(
            {
                "topic": topic,
                "event_type": event_type,
                "subject": subject,
                "data": data,
                "data_version": data_version,
                "event_id": event_id,
                "event_time": event_time,
            }
        )


@pytest.fixture
def test_settings():
    """Settings for an isolated, worker-less test process."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        environment="test",
        workers_enabled=False,
        outbox_batch_size=20,
        outbox_max_retries=3,
        reconcile_max_attempts=3,
        event_bus_topic_endpoint="https://bus.test/api/events",
        event_bus_topic_key="test-key",
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = build_engine(TEST_DATABASE_URL)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_bus():
    return FakeBusPublisher()


@pytest.fixture
def availability_service(test_session):
    return AvailabilityService(test_session, max_attempts=3)


@pytest.fixture
def availability_store(test_session):
    return SqlAvailabilityStore(test_session)


@pytest.fixture
def outbox_store(test_session):
    """Outbox store configured the way the dispatcher uses it."""
    return SqlOutboxStore(test_session, autocommit=True)


@pytest.fixture
def container(test_settings, test_engine, session_factory, fake_bus):
    return ServiceContainer(
        settings=test_settings,
        engine=test_engine,
        session_factory=session_factory,
        bus_publisher=fake_bus,
    )


@pytest_asyncio.fixture(scope="function")
async def test_app(container, test_session):
    """Create a test FastAPI application bound to the test container."""
    from availability_service.main import create_app

    app = create_app(container=container)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def reservation_created_event():
    """Sample reservation-created event in Event Grid shape."""
    return {
        "id": "evt-1",
        "eventType": "Reservation.Created",
        "subject": "reservations/R1",
        "eventTime": "2026-03-01T09:00:00Z",
        "data": {"deviceId": "D1", "reservationId": "R1"},
        "dataVersion": "1.0",
    }


@pytest.fixture
def read_outbox(test_session):
    """Return a coroutine function listing all outbox rows in insertion order."""

    async def _read() -> List[OutboxMessageRow]:
        result = await test_session.execute(
            select(OutboxMessageRow)
            .order_by(OutboxMessageRow.sequence)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    return _read
