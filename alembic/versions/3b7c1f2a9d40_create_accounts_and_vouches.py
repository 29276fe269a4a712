"""create_accounts_and_vouches

Revision ID: 3b7c1f2a9d40
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b7c1f2a9d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the accounts (with embedded license) and vouches tables."""
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('username_key', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_logins', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('hwid', sa.String(), nullable=True),
        sa.Column('hwid_locked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('subscription_status', sa.String(), nullable=False, server_default='none'),
        sa.Column('subscription_package', sa.String(), nullable=True),
        sa.Column('billing_mode', sa.String(), nullable=True),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_hwid_reset', sa.DateTime(timezone=True), nullable=True),
        sa.Column('subscription_event_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_payment_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_payment_amount', sa.Integer(), nullable=True),
        sa.Column('last_payment_currency', sa.String(length=3), nullable=True),
        sa.Column('last_invoice_id', sa.String(), nullable=True),
        sa.Column('payment_failed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payment_failure_reason', sa.String(), nullable=True),
        sa.CheckConstraint(
            "(hwid IS NULL AND hwid_locked_at IS NULL) OR (hwid IS NOT NULL AND hwid_locked_at IS NOT NULL)",
            name='ck_accounts_hwid_lock',
        ),
    )
    op.create_index(op.f('ix_accounts_id'), 'accounts', ['id'], unique=False)
    op.create_index(op.f('ix_accounts_username_key'), 'accounts', ['username_key'], unique=True)
    op.create_index(op.f('ix_accounts_stripe_customer_id'), 'accounts', ['stripe_customer_id'], unique=False)

    op.create_table(
        'vouches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('author_id', sa.String(), nullable=False),
        sa.Column('author_name', sa.String(), nullable=True),
        sa.Column('target_user_id', sa.String(), nullable=False),
        sa.Column('target_name', sa.String(), nullable=True),
        sa.Column('source', sa.String(), nullable=False, server_default='web'),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('rejected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('rejection_reason', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('approved_by', sa.String(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', sa.String(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_vouches_rating'),
        sa.CheckConstraint('NOT featured OR approved', name='ck_vouches_featured_approved'),
    )
    op.create_index(op.f('ix_vouches_id'), 'vouches', ['id'], unique=False)
    op.create_index(op.f('ix_vouches_author_id'), 'vouches', ['author_id'], unique=False)
    op.create_index(op.f('ix_vouches_target_user_id'), 'vouches', ['target_user_id'], unique=False)
    op.create_index('idx_vouches_target_approved', 'vouches', ['target_user_id', 'approved'], unique=False)


def downgrade() -> None:
    """Drop both tables."""
    op.drop_index('idx_vouches_target_approved', table_name='vouches')
    op.drop_index(op.f('ix_vouches_target_user_id'), table_name='vouches')
    op.drop_index(op.f('ix_vouches_author_id'), table_name='vouches')
    op.drop_index(op.f('ix_vouches_id'), table_name='vouches')
    op.drop_table('vouches')
    op.drop_index(op.f('ix_accounts_stripe_customer_id'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_username_key'), table_name='accounts')
    op.drop_index(op.f('ix_accounts_id'), table_name='accounts')
    op.drop_table('accounts')
