"""create subtracker tables

Revision ID: 5e1d7c0a9b21
Revises:
Create Date: 2026-10-19 10:12:44.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1d7c0a9b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # 1. subscriptions
    op.create_table(
        'subscriptions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('category_id', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('billing_cycle', sa.String(length=16), nullable=False, server_default='monthly'),
        sa.Column('custom_cycle_days', sa.Integer(), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('tax_amount', sa.Float(), nullable=True),
        sa.Column('has_intro_pricing', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('intro_price', sa.Float(), nullable=True),
        sa.Column('intro_duration_days', sa.Integer(), nullable=True),
        sa.Column('intro_end_date', sa.Date(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('next_renewal_date', sa.Date(), nullable=False),
        sa.Column('renewal_day_rule', sa.String(length=20), nullable=False, server_default='exact'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('auto_renew', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('cancellation_needed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('alert_days_before', sa.JSON(), nullable=False),
        sa.Column('alert_snoozed_until', sa.Date(), nullable=True),
        sa.Column('payer_id', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('owner_id', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('manager_id', sa.String(length=36), nullable=True),
        sa.Column('user_ids', sa.JSON(), nullable=False),
        sa.Column('is_shared', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('seat_count', sa.Integer(), nullable=True),
        sa.Column('cost_per_seat', sa.Float(), nullable=True),
        sa.Column('cancel_url', sa.String(length=500), nullable=True),
        sa.Column('cancel_method', sa.String(length=16), nullable=True),
        sa.Column('cancel_deadline_days', sa.Integer(), nullable=True),
        sa.Column('cancellation_checklist', sa.JSON(), nullable=False),
        sa.Column('last_used', sa.String(length=16), nullable=True),
        sa.Column('value_score', sa.Integer(), nullable=True),
        sa.Column('would_miss', sa.Boolean(), nullable=True),
        sa.Column('add_ons', sa.JSON(), nullable=False),
        sa.Column('price_history', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('sensitive_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subscriptions_name', 'subscriptions', ['name'])
    op.create_index('ix_subscriptions_category_id', 'subscriptions', ['category_id'])
    op.create_index('ix_subscriptions_next_renewal_date', 'subscriptions', ['next_renewal_date'])
    op.create_index('ix_subscriptions_status', 'subscriptions', ['status'])
    op.create_index('ix_subscriptions_payer_id', 'subscriptions', ['payer_id'])
    op.create_index('ix_subscriptions_owner_id', 'subscriptions', ['owner_id'])

    # 2. household_members
    op.create_table(
        'household_members',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='member'),
        sa.Column('avatar_color', sa.String(length=16), nullable=False, server_default='#3B82F6'),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_household_members_name', 'household_members', ['name'])

    # 3. categories
    op.create_table(
        'categories',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('icon', sa.String(length=50), nullable=False, server_default='package'),
        sa.Column('color', sa.String(length=16), nullable=False, server_default='#9CA3AF'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_categories_name', 'categories', ['name'])
    op.create_index('ix_categories_sort_order', 'categories', ['sort_order'])

    # 4. settings (single row, id = 'app')
    op.create_table(
        'settings',
        sa.Column('id', sa.String(length=16), nullable=False),
        sa.Column('default_currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('default_alert_days', sa.JSON(), nullable=False),
        sa.Column('escalation_threshold', sa.Float(), nullable=False, server_default='50'),
        sa.Column('theme', sa.String(length=10), nullable=False, server_default='system'),
        sa.Column('pin_verify_hash', sa.String(length=128), nullable=True),
        sa.Column('pin_verify_salt', sa.String(length=64), nullable=True),
        sa.Column('pin_encrypt_salt', sa.String(length=64), nullable=True),
        sa.Column('last_backup_date', sa.Date(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('settings')
    op.drop_index('ix_categories_sort_order', table_name='categories')
    op.drop_index('ix_categories_name', table_name='categories')
    op.drop_table('categories')
    op.drop_index('ix_household_members_name', table_name='household_members')
    op.drop_table('household_members')
    op.drop_index('ix_subscriptions_owner_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_payer_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_status', table_name='subscriptions')
    op.drop_index('ix_subscriptions_next_renewal_date', table_name='subscriptions')
    op.drop_index('ix_subscriptions_category_id', table_name='subscriptions')
    op.drop_index('ix_subscriptions_name', table_name='subscriptions')
    op.drop_table('subscriptions')
