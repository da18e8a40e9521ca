"""Outbox dispatcher: delivers queued events to the event bus."""

from typing import Optional

from pydantic import BaseModel

from ..core.config import settings
from ..core.exceptions import EventBusNotConfiguredError
from ..core.observability import get_logger, metrics_collector
from ..domain.outbox import OutboxMessage
from ..publishers.base import EventPublisher
from ..repositories.base import OutboxStore

logger = get_logger(__name__)


class DrainReport(BaseModel):
    """Counts from one drain cycle."""

    fetched: int = 0
    published: int = 0
    failed: int = 0
    dead_lettered: int = 0
    unconfirmed: int = 0
    error: Optional[str] = None


class OutboxDispatcher:
    """
    Drains pending outbox messages through a direct bus publisher.

    Each message is handled on its own: a failed publish is recorded on
    that message and the batch moves on. Delivery is at-least-once; if the
    processed flag cannot be written after a successful publish, the
    message is published again on a later cycle.
    """

    def __init__(
        self,
        outbox_store: OutboxStore,
        bus_publisher: EventPublisher,
        max_retries: Optional[int] = None,
    ):
        self.outbox_store = outbox_store
        self.bus_publisher = bus_publisher
        self.max_retries = settings.outbox_max_retries if max_retries is None else max_retries

    async def drain(self, batch_size: int = 20) -> DrainReport:
        """
        Publish up to ``batch_size`` pending messages.

        Never raises; failures are reported in the returned DrainReport.
        """
        report = DrainReport()

        if not getattr(self.bus_publisher, "configured", True):
            # Nothing is attempted, so no retry budget is spent
            logger.warning("Event bus not configured - outbox messages will accumulate but not be published")
            await self._refresh_pending_gauge()
            return report

        try:
            messages = await self.outbox_store.list_unprocessed(batch_size)
        except Exception as e:
            logger.error("Failed to list unprocessed outbox messages", error=str(e), exc_info=True)
            report.error = str(e)
            return report

        report.fetched = len(messages)
        if not messages:
            return report

        logger.info("Processing outbox messages", count=len(messages), batch_size=batch_size)

        for message in messages:
            await self._dispatch(message, report)

        await self._refresh_pending_gauge()

        logger.info(
            "Finished processing outbox messages",
            fetched=report.fetched,
            published=report.published,
            failed=report.failed,
            dead_lettered=report.dead_lettered,
            unconfirmed=report.unconfirmed,
        )
        return report

    async def _dispatch(self, message: OutboxMessage, report: DrainReport) -> None:
        log = logger.with_context(message_id=message.id, event_type=message.event_type)

        try:
            await self.bus_publisher.publish(
                message.topic,
                message.event_type,
                message.subject,
                message.data,
                message.data_version,
                event_id=message.id,
                event_time=message.event_time,
            )
        except EventBusNotConfiguredError:
            log.warning("Event bus not configured - message left pending")
            return
        except Exception as e:
            await self._record_failure(message, str(e) or type(e).__name__, report, log)
            return

        try:
            await self.outbox_store.mark_processed(message.id)
        except Exception as e:
            # Already on the bus; the message stays pending and is re-sent later
            report.unconfirmed += 1
            log.error("Published message could not be marked processed", error=str(e))
            return

        report.published += 1
        metrics_collector.record_outbox_published()
        log.info("Successfully processed outbox message")

    async def _record_failure(self, message: OutboxMessage, error: str, report: DrainReport, log) -> None:
        report.failed += 1
        metrics_collector.record_outbox_failed()
        retry_count = message.retry_count + 1
        log.warning("Failed to publish outbox message", error=error, retry_count=retry_count)

        try:
            await self.outbox_store.mark_failed(message.id, error)
        except Exception as e:
            log.error("Failed to record outbox delivery failure", error=str(e))
            return

        if self.max_retries and retry_count >= self.max_retries:
            try:
                await self.outbox_store.mark_dead_lettered(message.id)
            except Exception as e:
                log.error("Failed to dead-letter outbox message", error=str(e))
                return

            report.dead_lettered += 1
            metrics_collector.record_outbox_dead_lettered()
            log.error(
                "Outbox message dead-lettered after exhausting retries",
                retry_count=retry_count,
                max_retries=self.max_retries,
                last_error=error,
            )

    async def _refresh_pending_gauge(self) -> None:
        try:
            metrics_collector.set_outbox_pending(await self.outbox_store.count_pending())
        except Exception as e:
            logger.warning("Failed to count pending outbox messages", error=str(e))
