"""group and internal price overrides

Revision ID: 0002_price_overrides
Revises: 0001_initial_ledger
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0002_price_overrides'
down_revision = '0001_initial_ledger'
branch_labels = None
depends_on = None

_NOW = sa.text('CURRENT_TIMESTAMP')


def upgrade():
    op.create_table('group_prices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_kind', sa.String(length=8), nullable=False),
        sa.Column('item_type_id', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_NOW),
        sa.UniqueConstraint('group_id', 'item_kind', 'item_type_id', name='uq_group_price_item'),
        sa.CheckConstraint('price >= 0', name='ck_group_price_non_negative'),
    )
    op.create_index('ix_group_prices_group_id', 'group_prices', ['group_id'])

    op.create_table('internal_prices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_kind', sa.String(length=8), nullable=False),
        sa.Column('item_type_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_NOW),
        sa.UniqueConstraint('item_kind', 'item_type_id', 'role', name='uq_internal_price_item_role'),
        sa.CheckConstraint('price >= 0', name='ck_internal_price_non_negative'),
    )


def downgrade():
    op.drop_table('internal_prices')
    op.drop_index('ix_group_prices_group_id', table_name='group_prices')
    op.drop_table('group_prices')
