"""
Account model.

Holds the spendable balance of a user and the referral link.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class Account(Base):
    """
    Account model - one row per user.

    ``available_balance`` is only ever moved by the ledger store, in the
    same unit of work as the transaction row explaining it.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            'available_balance >= 0', name='balance_non_negative'
        ),
    )

    # User ID comes from the identity provider
    user_id: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )

    available_balance: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 2), nullable=False, default=Decimal("0")
    )
    total_deposited: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 2), nullable=False, default=Decimal("0")
    )
    total_withdrawn: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 2), nullable=False, default=Decimal("0")
    )
    # Profits and referral commissions
    total_earned: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 2), nullable=False, default=Decimal("0")
    )

    referred_by_user_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("accounts.user_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Highest user_levels tier reached; never lowered
    user_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(user_id={self.user_id}, "
            f"available_balance={self.available_balance}, "
            f"referred_by_user_id={self.referred_by_user_id})>"
        )
