"""Outbox message model definition."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class OutboxMessageRow(Base):
    """Queued outbound event awaiting delivery to the event bus."""

    __tablename__ = "outbox_messages"

    # Insertion order, used to drain the outbox fairly
    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)

    # Event envelope
    topic: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    data_version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")
    event_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Delivery bookkeeping
    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dead_lettered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("retry_count >= 0", name="ck_outbox_retry_count_non_negative"),
        CheckConstraint("length(event_type) > 0", name="ck_outbox_event_type_not_empty"),
        Index("ix_outbox_pending", "processed", "dead_lettered_at", "sequence"),
    )

    def __repr__(self) -> str:
        return (
            f"<OutboxMessageRow(id='{self.id}', event_type='{self.event_type}', "
            f"processed={self.processed}, retry_count={self.retry_count})>"
        )
