"""initial ledger schema

Revision ID: 0001_initial_ledger
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_ledger'
down_revision = None
branch_labels = None
depends_on = None

_NOW = sa.text('CURRENT_TIMESTAMP')

RECORD_TABLES = (
    # (table, owner column, owner table, item column, item table)
    ('external_sales', 'group_id', 'groups', 'seed_type_id', 'seed_types'),
    ('external_leaf_purchases', 'group_id', 'groups', 'leaf_type_id', 'leaf_types'),
    ('internal_sales', 'member_id', 'members', 'seed_type_id', 'seed_types'),
    ('internal_leaf_purchases', 'member_id', 'members', 'leaf_type_id', 'leaf_types'),
)


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='Abu'),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_NOW),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table('groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=256), nullable=False, unique=True),
        sa.Column('weekly_seed_limit', sa.Integer(), nullable=False, server_default='400'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_NOW),
    )
    op.create_index('ix_groups_name', 'groups', ['name'])

    op.create_table('members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=256), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_NOW),
    )
    op.create_index('ix_members_name', 'members', ['name'])

    for table in ('seed_types', 'leaf_types'):
        op.create_table(table,
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=100), nullable=False, unique=True),
            sa.Column('description', sa.String(length=500), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_NOW),
        )
        op.create_index(f'ix_{table}_name', table, ['name'])

    op.create_table('weekly_limits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('week_end', sa.Date(), nullable=False),
        sa.Column('total_limit', sa.Integer(), nullable=False),
        sa.Column('used_limit', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('remaining_limit', sa.Integer(), nullable=False),
        sa.Column('carried_over_from_previous', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_NOW),
        sa.UniqueConstraint('group_id', 'week_start', name='uq_weekly_limit_group_week'),
        sa.CheckConstraint('used_limit >= 0', name='ck_weekly_limit_used_non_negative'),
        sa.CheckConstraint('remaining_limit >= 0', name='ck_weekly_limit_remaining_non_negative'),
    )
    op.create_index('ix_weekly_limits_group_id', 'weekly_limits', ['group_id'])

    for table, owner_col, owner_table, item_col, item_table in RECORD_TABLES:
        cols = [
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column(owner_col, sa.Integer(), sa.ForeignKey(f'{owner_table}.id'), nullable=False),
            sa.Column(item_col, sa.Integer(), sa.ForeignKey(f'{item_table}.id'), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.Column('unit_price', sa.Integer(), nullable=False),
            sa.Column('total_price', sa.Integer(), nullable=False),
            sa.Column('created_by_user_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=_NOW),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=_NOW),
        ]
        if table == 'external_sales':
            cols.append(sa.Column('weekly_limit_id', sa.Integer(), sa.ForeignKey('weekly_limits.id', ondelete='SET NULL'), nullable=True))
        op.create_table(table, *cols)
        op.create_index(f'ix_{table}_{owner_col}', table, [owner_col])
        op.create_index(f'ix_{table}_created_by_user_id', table, ['created_by_user_id'])
        op.create_index(f'ix_{table}_created_at', table, ['created_at'])
    op.create_index('ix_external_sales_weekly_limit_id', 'external_sales', ['weekly_limit_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.String(length=64), nullable=False),
        sa.Column('actor_role', sa.String(length=16), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=_NOW),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    op.drop_table('audit_logs')
    for table, *_ in reversed(RECORD_TABLES):
        op.drop_table(table)
    op.drop_table('weekly_limits')
    op.drop_table('leaf_types')
    op.drop_table('seed_types')
    op.drop_table('members')
    op.drop_table('groups')
    op.drop_table('users')
