"""Initial ledger schema.

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create accounts, ledger, requests, investments, commissions and notifications."""

    op.create_table(
        'accounts',
        sa.Column('user_id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('available_balance', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('total_deposited', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('total_withdrawn', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('total_earned', sa.DECIMAL(18, 2), nullable=False, server_default='0', comment='Profits and referral commissions'),
        sa.Column('referred_by_user_id', sa.BigInteger(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('available_balance >= 0', name='ck_accounts_balance_non_negative'),
        sa.ForeignKeyConstraint(
            ['referred_by_user_id'], ['accounts.user_id'],
            name='fk_accounts_referred_by_user_id_accounts', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('user_id', name='pk_accounts'),
    )
    op.create_index('ix_accounts_referred_by_user_id', 'accounts', ['referred_by_user_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 2), nullable=False, comment='Signed: credits positive, debits negative'),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('reference_type', sa.String(50), nullable=False),
        sa.Column('reference_id', sa.String(64), nullable=False),
        sa.Column('balance_after', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('amount != 0', name='ck_transactions_amount_non_zero'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['accounts.user_id'],
            name='fk_transactions_user_id_accounts', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_transactions'),
        sa.UniqueConstraint('type', 'reference_type', 'reference_id', name='uq_transactions_reference'),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('idx_transactions_user_history', 'transactions', ['user_id', 'created_at', 'id'])

    op.create_table(
        'deposit_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('payment_method', sa.String(50), nullable=False),
        sa.Column('external_reference', sa.String(255), nullable=True),
        sa.Column('proof_url', sa.String(1024), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('processed_by', sa.BigInteger(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_deposit_requests_amount_positive'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['accounts.user_id'],
            name='fk_deposit_requests_user_id_accounts', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_deposit_requests'),
    )
    op.create_index('ix_deposit_requests_user_id', 'deposit_requests', ['user_id'])
    op.create_index('ix_deposit_requests_status', 'deposit_requests', ['status'])

    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('payout_method', sa.String(50), nullable=False),
        sa.Column('payout_details', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('processed_by', sa.BigInteger(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_withdrawal_requests_amount_positive'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['accounts.user_id'],
            name='fk_withdrawal_requests_user_id_accounts', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_withdrawal_requests'),
    )
    op.create_index('ix_withdrawal_requests_user_id', 'withdrawal_requests', ['user_id'])
    op.create_index('ix_withdrawal_requests_status', 'withdrawal_requests', ['status'])

    op.create_table(
        'investment_plans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('daily_rate', sa.DECIMAL(12, 6), nullable=False, comment='Fraction per day: 0.01 = 1%'),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('minimum_amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('maximum_amount', sa.DECIMAL(18, 2), nullable=True),
        sa.Column('principal_policy', sa.String(20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('daily_rate > 0', name='ck_investment_plans_daily_rate_positive'),
        sa.CheckConstraint('duration_days > 0', name='ck_investment_plans_duration_positive'),
        sa.CheckConstraint('minimum_amount > 0', name='ck_investment_plans_minimum_positive'),
        sa.CheckConstraint(
            'maximum_amount IS NULL OR maximum_amount >= minimum_amount',
            name='ck_investment_plans_maximum_not_below_minimum',
        ),
        sa.CheckConstraint(
            "principal_policy IN ('return', 'retain')",
            name='ck_investment_plans_principal_policy_valid',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_investment_plans'),
    )

    op.create_table(
        'investment_positions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('plan_id', sa.Integer(), nullable=False),
        sa.Column('principal', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('daily_rate', sa.DECIMAL(12, 6), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('principal_policy', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('last_accrual_date', sa.Date(), nullable=True),
        sa.Column('total_profit_earned', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('principal > 0', name='ck_investment_positions_principal_positive'),
        sa.CheckConstraint('end_date > start_date', name='ck_investment_positions_end_after_start'),
        sa.CheckConstraint('total_profit_earned >= 0', name='ck_investment_positions_profit_non_negative'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['accounts.user_id'],
            name='fk_investment_positions_user_id_accounts', ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(
            ['plan_id'], ['investment_plans.id'],
            name='fk_investment_positions_plan_id_investment_plans', ondelete='RESTRICT',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_investment_positions'),
    )
    op.create_index('ix_investment_positions_user_id', 'investment_positions', ['user_id'])
    op.create_index('ix_investment_positions_status', 'investment_positions', ['status'])
    op.create_index('idx_positions_due', 'investment_positions', ['status', 'last_accrual_date'])

    op.create_table(
        'daily_accruals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('position_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('accrual_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(
            ['position_id'], ['investment_positions.id'],
            name='fk_daily_accruals_position_id_investment_positions', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_daily_accruals'),
        sa.UniqueConstraint('position_id', 'accrual_date', name='uq_daily_accruals_position_date'),
    )
    op.create_index('ix_daily_accruals_position_id', 'daily_accruals', ['position_id'])
    op.create_index('ix_daily_accruals_user_id', 'daily_accruals', ['user_id'])

    op.create_table(
        'commission_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_user_id', sa.BigInteger(), nullable=False),
        sa.Column('referred_user_id', sa.BigInteger(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('trigger_type', sa.String(50), nullable=False),
        sa.Column('trigger_reference_id', sa.String(64), nullable=False),
        sa.Column('trigger_amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('commission_percentage', sa.DECIMAL(7, 4), nullable=False),
        sa.Column('commission_amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('level >= 1', name='ck_commission_records_level_positive'),
        sa.CheckConstraint('commission_amount > 0', name='ck_commission_records_amount_positive'),
        sa.ForeignKeyConstraint(
            ['referrer_user_id'], ['accounts.user_id'],
            name='fk_commission_records_referrer_user_id_accounts', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['referred_user_id'], ['accounts.user_id'],
            name='fk_commission_records_referred_user_id_accounts', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_commission_records'),
        sa.UniqueConstraint(
            'referrer_user_id', 'referred_user_id', 'trigger_type',
            'trigger_reference_id', 'level',
            name='uq_commission_records_key',
        ),
    )
    op.create_index('ix_commission_records_referrer_user_id', 'commission_records', ['referrer_user_id'])
    op.create_index('ix_commission_records_referred_user_id', 'commission_records', ['referred_user_id'])

    op.create_table(
        'referral_settings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('setting_key', sa.String(100), nullable=False),
        sa.Column('setting_value', sa.String(255), nullable=False),
        sa.Column('setting_type', sa.String(20), nullable=False, server_default='string'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id', name='pk_referral_settings'),
        sa.UniqueConstraint('setting_key', name='uq_referral_settings_setting_key'),
    )

    op.create_table(
        'game_plays',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('amount_paid', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('prize_won', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('is_winner', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('play_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('amount_paid >= 0', name='ck_game_plays_paid_non_negative'),
        sa.CheckConstraint('prize_won >= 0', name='ck_game_plays_prize_non_negative'),
        sa.ForeignKeyConstraint(
            ['user_id'], ['accounts.user_id'],
            name='fk_game_plays_user_id_accounts', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_game_plays'),
    )
    op.create_index('ix_game_plays_user_id', 'game_plays', ['user_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=True),
        sa.Column('type', sa.String(50), nullable=False, server_default='info'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(20), nullable=False, server_default='normal'),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false', comment='Personal notifications only'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint(
            "(kind = 'broadcast' AND user_id IS NULL) OR "
            "(kind = 'personal' AND user_id IS NOT NULL)",
            name='ck_notifications_kind_matches_audience',
        ),
        sa.ForeignKeyConstraint(
            ['user_id'], ['accounts.user_id'],
            name='fk_notifications_user_id_accounts', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_notifications'),
    )
    op.create_index('ix_notifications_kind', 'notifications', ['kind'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'notification_reads',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('notification_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(
            ['notification_id'], ['notifications.id'],
            name='fk_notification_reads_notification_id_notifications', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_notification_reads'),
        sa.UniqueConstraint('notification_id', 'user_id', name='uq_notification_reads_user'),
    )
    op.create_index('ix_notification_reads_notification_id', 'notification_reads', ['notification_id'])
    op.create_index('ix_notification_reads_user_id', 'notification_reads', ['user_id'])


def downgrade() -> None:
    """Drop all ledger tables."""
    op.drop_table('notification_reads')
    op.drop_table('notifications')
    op.drop_table('game_plays')
    op.drop_table('referral_settings')
    op.drop_table('commission_records')
    op.drop_table('daily_accruals')
    op.drop_table('investment_positions')
    op.drop_table('investment_plans')
    op.drop_table('withdrawal_requests')
    op.drop_table('deposit_requests')
    op.drop_table('transactions')
    op.drop_table('accounts')
