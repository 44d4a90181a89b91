"""
Commission record model.

One row per referrer per level per triggering event.
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
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class CommissionRecord(Base):
    """Referral commission record."""

    __tablename__ = "commission_records"
    __table_args__ = (
        # Idempotency key of a cascade payout
        UniqueConstraint(
            'referrer_user_id',
            'referred_user_id',
            'trigger_type',
            'trigger_reference_id',
            'level',
            name='uq_commission_records_key',
        ),
        CheckConstraint('level >= 1', name='level_positive'),
        CheckConstraint('commission_amount > 0', name='amount_positive'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    referrer_user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referred_user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    trigger_type: Mapped[str] = mapped_column(String(50), nullable=False)
    trigger_reference_id: Mapped[str] = mapped_column(String(64), nullable=False)
    trigger_amount: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)
    commission_percentage: Mapped[Decimal] = mapped_column(
        DECIMAL(7, 4), nullable=False
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 2), nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="completed"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionRecord(referrer={self.referrer_user_id}, "
            f"referred={self.referred_user_id}, level={self.level}, "
            f"amount={self.commission_amount})>"
        )
