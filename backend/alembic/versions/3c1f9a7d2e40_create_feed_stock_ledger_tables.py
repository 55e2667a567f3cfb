"""create feed stock ledger tables

Revision ID: 3c1f9a7d2e40
Revises:
Create Date: 2026-10-19 10:12:44.318209

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f9a7d2e40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FEED_TYPES = ('B0', 'B1', 'B2')
FEED_UNITS = ('kg', 'bucket', 'sack')


def upgrade() -> None:
    op.create_table(
        'feed_consumption',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch', sa.String(), nullable=False),
        sa.Column('feed_type', sa.Enum(*FEED_TYPES, name='feed_type', native_enum=False), nullable=False),
        sa.Column('feed_name', sa.String(), nullable=True),
        sa.Column('quantity_used', sa.Numeric(12, 3), nullable=False),
        sa.Column('unit', sa.Enum(*FEED_UNITS, name='feed_unit', native_enum=False), nullable=False),
        sa.Column('consumption_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
        sa.CheckConstraint('quantity_used > 0', name='ck_feed_consumption_quantity_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_feed_consumption_id'), 'feed_consumption', ['id'], unique=False)
    op.create_index(op.f('ix_feed_consumption_batch'), 'feed_consumption', ['batch'], unique=False)
    op.create_index(op.f('ix_feed_consumption_feed_type'), 'feed_consumption', ['feed_type'], unique=False)
    op.create_index(op.f('ix_feed_consumption_consumption_date'), 'feed_consumption', ['consumption_date'], unique=False)

    op.create_table(
        'feed_stock_summary',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('feed_type', sa.Enum(*FEED_TYPES, name='feed_type', native_enum=False), nullable=False),
        sa.Column('quantity_kg', sa.Numeric(12, 3), nullable=False),
        sa.Column('quantity_buckets', sa.Numeric(12, 3), nullable=False),
        sa.Column('quantity_sacks', sa.Numeric(12, 3), nullable=False),
        sa.Column('daily_consumption', sa.Numeric(12, 3), nullable=False),
        sa.Column('estimated_finish_date', sa.Date(), nullable=True),
        sa.Column('days_remaining', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity_kg >= 0', name='ck_feed_stock_summary_quantity_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('feed_type', name='_feed_stock_summary_feed_type_uc'),
    )
    op.create_index(op.f('ix_feed_stock_summary_id'), 'feed_stock_summary', ['id'], unique=False)

    op.create_table(
        'feed_stock_audit',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('feed_type', sa.Enum(*FEED_TYPES, name='feed_type', native_enum=False), nullable=False),
        sa.Column('change_type', sa.String(), nullable=False),
        sa.Column('change_amount', sa.Numeric(12, 3), nullable=False),
        sa.Column('requested_amount', sa.Numeric(12, 3), nullable=False),
        sa.Column('old_quantity', sa.Numeric(12, 3), nullable=False),
        sa.Column('new_quantity', sa.Numeric(12, 3), nullable=False),
        sa.Column('clamped', sa.Boolean(), nullable=False),
        sa.Column('changed_by', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('note', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_feed_stock_audit_id'), 'feed_stock_audit', ['id'], unique=False)
    op.create_index(op.f('ix_feed_stock_audit_feed_type'), 'feed_stock_audit', ['feed_type'], unique=False)
    op.create_index(op.f('ix_feed_stock_audit_timestamp'), 'feed_stock_audit', ['timestamp'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_feed_stock_audit_timestamp'), table_name='feed_stock_audit')
    op.drop_index(op.f('ix_feed_stock_audit_feed_type'), table_name='feed_stock_audit')
    op.drop_index(op.f('ix_feed_stock_audit_id'), table_name='feed_stock_audit')
    op.drop_table('feed_stock_audit')
    op.drop_index(op.f('ix_feed_stock_summary_id'), table_name='feed_stock_summary')
    op.drop_table('feed_stock_summary')
    op.drop_index(op.f('ix_feed_consumption_consumption_date'), table_name='feed_consumption')
    op.drop_index(op.f('ix_feed_consumption_feed_type'), table_name='feed_consumption')
    op.drop_index(op.f('ix_feed_consumption_batch'), table_name='feed_consumption')
    op.drop_index(op.f('ix_feed_consumption_id'), table_name='feed_consumption')
    op.drop_table('feed_consumption')
