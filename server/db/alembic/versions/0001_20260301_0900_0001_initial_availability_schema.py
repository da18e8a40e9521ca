"""Initial availability schema

Revision ID: 0001
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create device_availability table
    op.create_table('device_availability',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('device_id', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('reservation_id', sa.String(length=255), nullable=True),
        sa.Column('last_checked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('length(id) > 0', name='ck_device_availability_id_not_empty'),
        sa.CheckConstraint('id = device_id', name='ck_device_availability_id_is_device_id'),
        sa.CheckConstraint(
            "status IN ('Available', 'Unavailable', 'Maintenance', 'Retired', 'Lost')",
            name='ck_device_availability_status_valid'
        ),
        sa.CheckConstraint('version >= 1', name='ck_device_availability_version_positive'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_device_availability_device_id'), 'device_availability', ['device_id'], unique=False)
    op.create_index(op.f('ix_device_availability_status'), 'device_availability', ['status'], unique=False)

    # Create outbox_messages table
    op.create_table('outbox_messages',
        sa.Column('sequence', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('topic', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=255), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('data_version', sa.String(length=20), nullable=False),
        sa.Column('event_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False),
        sa.Column('dead_lettered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('retry_count >= 0', name='ck_outbox_retry_count_non_negative'),
        sa.CheckConstraint('length(event_type) > 0', name='ck_outbox_event_type_not_empty'),
        sa.PrimaryKeyConstraint('sequence'),
        sa.UniqueConstraint('id')
    )
    op.create_index('ix_outbox_pending', 'outbox_messages', ['processed', 'dead_lettered_at', 'sequence'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('ix_outbox_pending', table_name='outbox_messages')
    op.drop_table('outbox_messages')

    op.drop_index(op.f('ix_device_availability_status'), table_name='device_availability')
    op.drop_index(op.f('ix_device_availability_device_id'), table_name='device_availability')
    op.drop_table('device_availability')
