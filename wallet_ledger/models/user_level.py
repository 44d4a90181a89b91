"""
User level model.

Admin-defined tiers reached by bringing in active referrals. Reaching a
tier may pay a one-time bonus.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    Boolean,
    CheckConstraint,
    DateTime,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class UserLevel(Base):
    """User level model."""

    __tablename__ = "user_levels"
    __table_args__ = (
        CheckConstraint('level >= 1', name='level_positive'),
        CheckConstraint('referrals_required >= 0', name='referrals_non_negative'),
        CheckConstraint('bonus_amount >= 0', name='bonus_non_negative'),
    )

    level: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Direct referrals with at least one approved deposit
    referrals_required: Mapped[int] = mapped_column(Integer, nullable=False)
    bonus_amount: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 2), nullable=False, default=Decimal("0")
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserLevel(level={self.level}, name={self.name}, "
            f"referrals_required={self.referrals_required}, "
            f"bonus_amount={self.bonus_amount})>"
        )
