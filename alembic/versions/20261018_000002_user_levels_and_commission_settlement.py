"""Add user levels and deposit commission settlement.

Revision ID: 20261018_000002
Revises: 20261018_000001
Create Date: 2026-10-18

Adds the user_levels table and the level reached by each account, plus
the settlement stamp the commission sweep looks for on deposits.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_000002'
down_revision = '20261018_000001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create user_levels, add accounts.user_level and deposit settlement."""
    op.create_table(
        'user_levels',
        sa.Column('level', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('referrals_required', sa.Integer(), nullable=False, comment='Direct referrals with a deposit'),
        sa.Column('bonus_amount', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('level >= 1', name='ck_user_levels_level_positive'),
        sa.CheckConstraint('referrals_required >= 0', name='ck_user_levels_referrals_non_negative'),
        sa.CheckConstraint('bonus_amount >= 0', name='ck_user_levels_bonus_non_negative'),
        sa.PrimaryKeyConstraint('level', name='pk_user_levels'),
    )

    # Every existing account starts at the first level
    op.add_column(
        'accounts',
        sa.Column(
            'user_level',
            sa.Integer(),
            nullable=False,
            server_default='1',
        )
    )

    # Approved deposits from before this revision already ran their cascade
    op.add_column(
        'deposit_requests',
        sa.Column(
            'commissions_settled_at',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Set once every commission level is paid or skipped'
        )
    )
    op.execute(
        "UPDATE deposit_requests SET commissions_settled_at = processed_at "
        "WHERE status = 'approved'"
    )


def downgrade() -> None:
    """Drop level and settlement columns, then user_levels."""
    op.drop_column('deposit_requests', 'commissions_settled_at')
    op.drop_column('accounts', 'user_level')
    op.drop_table('user_levels')
