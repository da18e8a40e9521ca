"""Background worker that drains the transactional outbox."""

import logging
from typing import Optional

from ..core.container import ServiceContainer
from ..core.database import session_scope
from ..services.outbox_dispatcher import DrainReport
from .base import BaseWorker

logger = logging.getLogger(__name__)


class OutboxDispatchWorker(BaseWorker):
    """
    Periodically publishes pending outbox messages to the event bus.

    Each iteration opens its own session, so dispatcher bookkeeping is
    committed message by message and never mixes with request traffic.
    """

    def __init__(self, container: ServiceContainer, interval_seconds: Optional[float] = None):
        super().__init__(
            name="OutboxDispatch",
            interval_seconds=interval_seconds or container.settings.outbox_dispatch_interval_seconds,
        )
        self.container = container
        self.last_report: Optional[DrainReport] = None

    async def process(self) -> None:
        """Drain one batch from the outbox."""
        async with session_scope(self.container.session_factory) as db:
            dispatcher = self.container.outbox_dispatcher(db)
            report = await dispatcher.drain(self.container.settings.outbox_batch_size)

        self.last_report = report
        if report.fetched:
            logger.info(
                f"Outbox drain published {report.published} of {report.fetched} messages",
                extra={
                    "worker": self.name,
                    "published": report.published,
                    "failed": report.failed,
                    "dead_lettered": report.dead_lettered,
                }
            )
