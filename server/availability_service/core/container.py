"""Dependency container built once per process."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..publishers.base import EventPublisher
from ..publishers.event_bus import EventGridPublisher
from ..repositories.outbox_store import SqlOutboxStore
from ..services.availability_service import AvailabilityService
from ..services.outbox_dispatcher import OutboxDispatcher
from .config import Settings
from .database import build_engine, build_session_factory, close_db

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Holds the long-lived collaborators of the service.

    Created at startup and passed to routes and workers; per-operation
    objects (stores, services) are built from it around a fresh session.
    """

    def __init__(
        self,
        settings: Settings,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
        bus_publisher: EventPublisher,
    ):
        self.settings = settings
        self.engine = engine
        self.session_factory = session_factory
        self.bus_publisher = bus_publisher

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        bus_publisher: Optional[EventPublisher] = None,
    ) -> "ServiceContainer":
        engine = build_engine(settings.database_url, echo=settings.debug)
        if bus_publisher is None:
            bus_publisher = EventGridPublisher(
                topic_endpoint=settings.event_bus_topic_endpoint,
                topic_key=settings.event_bus_topic_key,
                timeout_seconds=settings.event_bus_timeout_seconds,
            )

        logger.info(
            "Service container created",
            extra={
                "environment": settings.environment,
                "event_bus_configured": settings.event_bus_configured,
            }
        )
        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            bus_publisher=bus_publisher,
        )

    def availability_service(self, db: AsyncSession) -> AvailabilityService:
        return AvailabilityService(db, max_attempts=self.settings.reconcile_max_attempts)

    def outbox_dispatcher(self, db: AsyncSession) -> OutboxDispatcher:
        return OutboxDispatcher(
            outbox_store=SqlOutboxStore(db, autocommit=True),
            bus_publisher=self.bus_publisher,
            max_retries=self.settings.outbox_max_retries,
        )

    async def aclose(self) -> None:
        """Release the HTTP client and database connections."""
        aclose = getattr(self.bus_publisher, "aclose", None)
        if aclose is not None:
            await aclose()
        await close_db(self.engine)
