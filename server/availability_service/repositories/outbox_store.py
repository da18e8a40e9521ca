"""SQLAlchemy-backed outbox store."""

import logging

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import StoreError
from ..domain.availability import utcnow
from ..domain.outbox import OutboxMessage
from ..models.outbox import OutboxMessageRow
from .availability_store import as_utc
from .base import OutboxStore

logger = logging.getLogger(__name__)


class SqlOutboxStore(OutboxStore):
    """
    Outbox store bound to a single session.

    With ``autocommit`` off, writes join the caller's transaction (used when
    enqueuing alongside a domain write). The dispatcher turns it on so each
    delivery outcome is durable on its own.
    """

    def __init__(self, db: AsyncSession, autocommit: bool = False):
        self.db = db
        self.autocommit = autocommit

    async def save(self, message: OutboxMessage) -> None:
        await self._write(
            insert(OutboxMessageRow).values(
                id=message.id,
                topic=message.topic,
                event_type=message.event_type,
                subject=message.subject,
                data=message.data,
                data_version=message.data_version,
                event_time=message.event_time,
                processed=message.processed,
                processed_at=message.processed_at,
                error=message.error,
                retry_count=message.retry_count,
                dead_lettered_at=message.dead_lettered_at,
            ),
            "Failed to save outbox message",
        )

    async def list_unprocessed(self, limit: int = 20) -> list[OutboxMessage]:
        stmt = (
            select(OutboxMessageRow)
            .where(
                OutboxMessageRow.processed.is_(False),
                OutboxMessageRow.dead_lettered_at.is_(None),
            )
            .order_by(OutboxMessageRow.sequence)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return await self._list(stmt, "Failed to list unprocessed outbox messages")

    async def mark_processed(self, message_id: str) -> None:
        await self._write(
            update(OutboxMessageRow)
            .where(OutboxMessageRow.id == message_id)
            .values(processed=True, processed_at=utcnow(), error=None)
            .execution_options(synchronize_session=False),
            "Failed to mark outbox message as processed",
        )

    async def mark_failed(self, message_id: str, error: str) -> None:
        await self._write(
            update(OutboxMessageRow)
            .where(OutboxMessageRow.id == message_id)
            .values(
                processed=False,
                error=error,
                retry_count=OutboxMessageRow.retry_count + 1,
            )
            .execution_options(synchronize_session=False),
            "Failed to mark outbox message as failed",
        )

    async def mark_dead_lettered(self, message_id: str) -> None:
        await self._write(
            update(OutboxMessageRow)
            .where(OutboxMessageRow.id == message_id)
            .values(dead_lettered_at=utcnow())
            .execution_options(synchronize_session=False),
            "Failed to dead-letter outbox message",
        )

    async def list_dead_lettered(self, limit: int = 100) -> list[OutboxMessage]:
        stmt = (
            select(OutboxMessageRow)
            .where(OutboxMessageRow.dead_lettered_at.is_not(None))
            .order_by(OutboxMessageRow.sequence)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return await self._list(stmt, "Failed to list dead-lettered outbox messages")

    async def count_pending(self) -> int:
        stmt = select(func.count(OutboxMessageRow.sequence)).where(
            OutboxMessageRow.processed.is_(False),
            OutboxMessageRow.dead_lettered_at.is_(None),
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count pending outbox messages: {e}") from e
        return result.scalar() or 0

    async def _write(self, stmt, failure_message: str) -> None:
        try:
            await self.db.execute(stmt)
            if self.autocommit:
                await self.db.commit()
        except SQLAlchemyError as e:
            if self.autocommit:
                await self.db.rollback()
            raise StoreError(f"{failure_message}: {e}") from e

    async def _list(self, stmt, failure_message: str) -> list[OutboxMessage]:
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"{failure_message}: {e}") from e
        return [self._to_domain(row) for row in result.scalars()]

    def _to_domain(self, row: OutboxMessageRow) -> OutboxMessage:
        return OutboxMessage(
            id=row.id,
            topic=row.topic,
            event_type=row.event_type,
            subject=row.subject,
            data=row.data or {},
            data_version=row.data_version,
            event_time=as_utc(row.event_time),
            processed=row.processed,
            processed_at=as_utc(row.processed_at) if row.processed_at else None,
            error=row.error,
            retry_count=row.retry_count,
            dead_lettered_at=as_utc(row.dead_lettered_at) if row.dead_lettered_at else None,
        )
