"""Create affiliate ledger schema

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MONEY = sa.Numeric(18, 2)
RATE = sa.Numeric(10, 6)


def upgrade() -> None:
    # Accounts with ledger fields and referral edge
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('referral_code', sa.String(length=32), nullable=True),
        sa.Column(
            'role', sa.String(length=20),
            nullable=False, server_default='CUSTOMER'
        ),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='ACTIVE'
        ),
        sa.Column('referred_by_id', sa.Integer(), nullable=True),
        sa.Column('commission_rate', RATE, nullable=True),
        sa.Column(
            'total_commission', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'available_balance', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'total_withdrawn', MONEY, nullable=False, server_default='0'
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'available_balance >= 0',
            name='check_account_available_balance_non_negative'
        ),
        sa.CheckConstraint(
            'total_commission >= 0',
            name='check_account_total_commission_non_negative'
        ),
        sa.CheckConstraint(
            'total_withdrawn >= 0',
            name='check_account_total_withdrawn_non_negative'
        ),
        sa.CheckConstraint(
            'referred_by_id IS NULL OR referred_by_id <> id',
            name='check_account_no_self_referral'
        ),
        sa.ForeignKeyConstraint(
            ['referred_by_id'], ['accounts.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=True)
    op.create_index(
        'ix_accounts_referral_code', 'accounts',
        ['referral_code'], unique=True
    )
    op.create_index('ix_accounts_role', 'accounts', ['role'], unique=False)
    op.create_index(
        'ix_accounts_status', 'accounts', ['status'], unique=False
    )
    op.create_index(
        'ix_accounts_referred_by_id', 'accounts',
        ['referred_by_id'], unique=False
    )

    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('bank_name', sa.String(length=255), nullable=False),
        sa.Column('account_number', sa.String(length=64), nullable=False),
        sa.Column('account_name', sa.String(length=255), nullable=False),
        sa.Column(
            'is_primary', sa.Boolean(),
            nullable=False, server_default=sa.false()
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_bank_accounts_account_id', 'bank_accounts',
        ['account_id'], unique=False
    )

    op.create_table(
        'affiliate_links',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'type', sa.String(length=20),
            nullable=False, server_default='GENERAL'
        ),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='ACTIVE'
        ),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('commission_rate', RATE, nullable=True),
        sa.Column(
            'total_clicks', sa.Integer(), nullable=False, server_default='0'
        ),
        sa.Column(
            'total_conversions', sa.Integer(),
            nullable=False, server_default='0'
        ),
        sa.Column(
            'total_commission', MONEY, nullable=False, server_default='0'
        ),
        sa.Column(
            'last_click_at', sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            'last_conversion_at', sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(type = 'GENERAL' AND product_id IS NULL AND category_id IS NULL) OR "
            "(type = 'PRODUCT' AND product_id IS NOT NULL AND category_id IS NULL) OR "
            "(type = 'CATEGORY' AND category_id IS NOT NULL AND product_id IS NULL)",
            name='check_affiliate_link_target_matches_type'
        ),
        sa.CheckConstraint(
            'commission_rate IS NULL OR '
            '(commission_rate >= 0 AND commission_rate <= 1)',
            name='check_affiliate_link_rate_range'
        ),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_affiliate_links_slug', 'affiliate_links', ['slug'], unique=True
    )
    op.create_index(
        'ix_affiliate_links_account_id', 'affiliate_links',
        ['account_id'], unique=False
    )
    op.create_index(
        'ix_affiliate_links_product_id', 'affiliate_links',
        ['product_id'], unique=False
    )
    op.create_index(
        'ix_affiliate_links_category_id', 'affiliate_links',
        ['category_id'], unique=False
    )
    op.create_index(
        'idx_affiliate_links_owner_status', 'affiliate_links',
        ['account_id', 'status'], unique=False
    )

    op.create_table(
        'affiliate_clicks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('link_id', sa.Integer(), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('referer', sa.Text(), nullable=True),
        sa.Column('clicked_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['link_id'], ['affiliate_links.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'idx_affiliate_clicks_link_time', 'affiliate_clicks',
        ['link_id', 'clicked_at'], unique=False
    )

    op.create_table(
        'affiliate_conversions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('link_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('buyer_account_id', sa.Integer(), nullable=True),
        sa.Column('order_value', MONEY, nullable=False),
        sa.Column('commission_rate', RATE, nullable=False),
        sa.Column('commission_amount', MONEY, nullable=False),
        sa.Column(
            'converted_at', sa.DateTime(timezone=True), nullable=False
        ),
        sa.CheckConstraint(
            'order_value > 0', name='check_conversion_order_value_positive'
        ),
        sa.ForeignKeyConstraint(
            ['link_id'], ['affiliate_links.id'], ondelete='RESTRICT'
        ),
        sa.ForeignKeyConstraint(
            ['buyer_account_id'], ['accounts.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'link_id', 'order_id', name='uq_affiliate_conversion_link_order'
        )
    )
    op.create_index(
        'ix_affiliate_conversions_link_id', 'affiliate_conversions',
        ['link_id'], unique=False
    )
    op.create_index(
        'ix_affiliate_conversions_order_id', 'affiliate_conversions',
        ['order_id'], unique=False
    )

    op.create_table(
        'commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('conversion_id', sa.Integer(), nullable=True),
        sa.Column('referred_account_id', sa.Integer(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('order_amount', MONEY, nullable=False),
        sa.Column('commission_rate', RATE, nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='PENDING'
        ),
        sa.Column('admin_note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('level IN (1, 2)', name='check_commission_level'),
        sa.CheckConstraint(
            'amount >= 0', name='check_commission_amount_non_negative'
        ),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['conversion_id'], ['affiliate_conversions.id'],
            ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['referred_account_id'], ['accounts.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'account_id', 'order_id', 'level',
            name='uq_commission_account_order_level'
        )
    )
    op.create_index(
        'ix_commissions_account_id', 'commissions',
        ['account_id'], unique=False
    )
    op.create_index(
        'ix_commissions_order_id', 'commissions', ['order_id'], unique=False
    )
    op.create_index(
        'ix_commissions_conversion_id', 'commissions',
        ['conversion_id'], unique=False
    )
    op.create_index(
        'ix_commissions_status', 'commissions', ['status'], unique=False
    )
    op.create_index(
        'idx_commissions_account_status', 'commissions',
        ['account_id', 'status'], unique=False
    )

    op.create_table(
        'withdrawals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('bank_account_id', sa.Integer(), nullable=True),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('fee', MONEY, nullable=False, server_default='0'),
        sa.Column(
            'status', sa.String(length=20),
            nullable=False, server_default='PENDING'
        ),
        sa.Column('user_note', sa.Text(), nullable=True),
        sa.Column('admin_note', sa.Text(), nullable=True),
        sa.Column(
            'requested_at', sa.DateTime(timezone=True), nullable=False
        ),
        sa.Column(
            'processed_at', sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            'cancelled_at', sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'amount > 0', name='check_withdrawal_amount_positive'
        ),
        sa.CheckConstraint(
            'fee >= 0', name='check_withdrawal_fee_non_negative'
        ),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['bank_account_id'], ['bank_accounts.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_withdrawals_account_id', 'withdrawals',
        ['account_id'], unique=False
    )
    op.create_index(
        'ix_withdrawals_status', 'withdrawals', ['status'], unique=False
    )
    # At most one PENDING withdrawal per account
    op.create_index(
        'uq_withdrawals_one_pending_per_account', 'withdrawals',
        ['account_id'], unique=True,
        postgresql_where=sa.text("status = 'PENDING'")
    )

    op.create_table(
        'affiliate_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('default_commission_rate', RATE, nullable=False),
        sa.Column('level_two_factor', RATE, nullable=False),
        sa.Column('min_withdrawal', MONEY, nullable=False),
        sa.Column('withdrawal_fee_floor', MONEY, nullable=False),
        sa.Column('withdrawal_fee_rate', RATE, nullable=False),
        sa.Column('max_links_per_account', sa.Integer(), nullable=False),
        sa.Column('link_expiry_days', sa.Integer(), nullable=False),
        sa.Column('tracking_window_days', sa.Integer(), nullable=False),
        sa.Column('commission_hold_days', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_affiliate_settings_version', 'affiliate_settings',
        ['version'], unique=True
    )


def downgrade() -> None:
    op.drop_index(
        'ix_affiliate_settings_version', table_name='affiliate_settings'
    )
    op.drop_table('affiliate_settings')
    op.drop_index(
        'uq_withdrawals_one_pending_per_account', table_name='withdrawals'
    )
    op.drop_index('ix_withdrawals_status', table_name='withdrawals')
    op.drop_index('ix_withdrawals_account_id', table_name='withdrawals')
    op.drop_table('withdrawals')
    op.drop_index('idx_commissions_account_status', table_name='commissions')
    op.drop_index('ix_commissions_status', table_name='commissions')
    op.drop_index('ix_commissions_conversion_id', table_name='commissions')
    op.drop_index('ix_commissions_order_id', table_name='commissions')
    op.drop_index('ix_commissions_account_id', table_name='commissions')
    op.drop_table('commissions')
    op.drop_index(
        'ix_affiliate_conversions_order_id',
        table_name='affiliate_conversions'
    )
    op.drop_index(
        'ix_affiliate_conversions_link_id',
        table_name='affiliate_conversions'
    )
    op.drop_table('affiliate_conversions')
    op.drop_index(
        'idx_affiliate_clicks_link_time', table_name='affiliate_clicks'
    )
    op.drop_table('affiliate_clicks')
    op.drop_index(
        'idx_affiliate_links_owner_status', table_name='affiliate_links'
    )
    op.drop_index(
        'ix_affiliate_links_category_id', table_name='affiliate_links'
    )
    op.drop_index(
        'ix_affiliate_links_product_id', table_name='affiliate_links'
    )
    op.drop_index(
        'ix_affiliate_links_account_id', table_name='affiliate_links'
    )
    op.drop_index('ix_affiliate_links_slug', table_name='affiliate_links')
    op.drop_table('affiliate_links')
    op.drop_index(
        'ix_bank_accounts_account_id', table_name='bank_accounts'
    )
    op.drop_table('bank_accounts')
    op.drop_index('ix_accounts_referred_by_id', table_name='accounts')
    op.drop_index('ix_accounts_status', table_name='accounts')
    op.drop_index('ix_accounts_role', table_name='accounts')
    op.drop_index('ix_accounts_referral_code', table_name='accounts')
    op.drop_index('ix_accounts_email', table_name='accounts')
    op.drop_table('accounts')
