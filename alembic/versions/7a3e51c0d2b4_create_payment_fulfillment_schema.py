"""create payment fulfillment schema

Revision ID: 7a3e51c0d2b4
Revises:
Create Date: 2026-10-19 10:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '7a3e51c0d2b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'roles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False, unique=True),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('phone_number', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text("timezone('utc', now())"),
                  nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Uuid(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table(
        'payout_accounts',
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('channel_code', sa.Text(), nullable=False),
        sa.Column('account_number', sa.Text(), nullable=False),
        sa.Column('account_holder_name', sa.Text(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='IDR'),
        _created_at(),
    )
    op.create_table(
        'categories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False, unique=True),
    )
    op.create_table(
        'events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('organizer_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False,
                  index=True),
        sa.Column('start_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('end_time', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint('end_time > start_time', name='chk_event_time_range'),
    )
    op.create_table(
        'event_categories',
        sa.Column('event_id', sa.Uuid(), sa.ForeignKey('events.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('category_id', sa.Uuid(), sa.ForeignKey('categories.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table(
        'tickets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_id', sa.Uuid(), sa.ForeignKey('events.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('quantity_limit', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint('price >= 0', name='chk_ticket_price_nonneg'),
        sa.CheckConstraint('quantity_limit IS NULL OR quantity_limit > 0', name='chk_ticket_quantity_limit_pos'),
    )
    op.create_table(
        'coupons',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('code', sa.Text(), nullable=True, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount', sa.Integer(), nullable=False),
        sa.Column('usage_limit', sa.Integer(), nullable=False),
        sa.Column('valid_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('expired_at', sa.TIMESTAMP(timezone=True), nullable=False),
        _created_at(),
        sa.CheckConstraint('discount BETWEEN 0 AND 100', name='chk_coupon_discount_range'),
        sa.CheckConstraint('usage_limit >= 0', name='chk_coupon_usage_limit_nonneg'),
        sa.CheckConstraint('expired_at > valid_at', name='chk_coupon_validity_range'),
    )
    op.create_table(
        'user_coupons',
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('coupon_id', sa.Uuid(), sa.ForeignKey('coupons.id', ondelete='CASCADE'), primary_key=True,
                  index=True),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('claimed_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('method', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('transaction_id', sa.Text(), nullable=False, unique=True),
        sa.Column('gateway_invoice_id', sa.Text(), nullable=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('coupon_id', sa.Uuid(), sa.ForeignKey('coupons.id'), nullable=True, index=True),
        _created_at(),
        sa.CheckConstraint('amount >= 0', name='chk_amount_nonneg'),
    )
    op.create_table(
        'purchases',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('ticket_id', sa.Uuid(), sa.ForeignKey('tickets.id', ondelete='RESTRICT'), nullable=False,
                  index=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('payment_id', sa.Uuid(), sa.ForeignKey('payments.id', ondelete='RESTRICT'), nullable=False,
                  index=True),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('used_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint('total >= 0', name='chk_purchase_total_nonneg'),
    )

    payout_status = postgresql.ENUM('PENDING', 'ACCEPTED', 'FAILED', 'SKIPPED', name='payout_status')
    payout_status.create(op.get_bind(), checkfirst=True)
    op.create_table(
        'payouts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('payment_id', sa.Uuid(), sa.ForeignKey('payments.id', ondelete='RESTRICT'), nullable=False,
                  unique=True),
        sa.Column('reference', sa.Text(), nullable=False, unique=True),
        sa.Column('organizer_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('channel_code', sa.Text(), nullable=True),
        sa.Column('status', postgresql.ENUM(name='payout_status', create_type=False), nullable=False,
                  server_default='PENDING'),
        sa.Column('gateway_payout_id', sa.Text(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    op.execute(
        """
        INSERT INTO roles (id, name)
        VALUES (gen_random_uuid(), 'ATTENDEE'), (gen_random_uuid(), 'ORGANIZER'), (gen_random_uuid(), 'ADMIN')
        ON CONFLICT (name) DO NOTHING
        """
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in ('payouts', 'purchases', 'payments', 'user_coupons', 'coupons', 'tickets', 'event_categories',
                  'events', 'categories', 'payout_accounts', 'user_roles', 'users', 'roles'):
        op.drop_table(table)
    op.execute("DROP TYPE IF EXISTS payout_status")
