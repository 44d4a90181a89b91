"""
Investment position model.

A user's subscription to a plan. Plan terms are copied at subscription
time so that later plan edits never change a running position.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class InvestmentPosition(Base):
    """Investment position model."""

    __tablename__ = "investment_positions"
    __table_args__ = (
        CheckConstraint('principal > 0', name='principal_positive'),
        CheckConstraint('end_date > start_date', name='end_after_start'),
        CheckConstraint(
            'total_profit_earned >= 0', name='profit_non_negative'
        ),
        Index('idx_positions_due', 'status', 'last_accrual_date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.user_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    plan_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("investment_plans.id", ondelete="RESTRICT"),
        nullable=False,
    )

    principal: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(DECIMAL(12, 6), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    principal_policy: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", index=True
    )  # active, completed

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    last_accrual_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    total_profit_earned: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 2), nullable=False, default=Decimal("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<InvestmentPosition(id={self.id}, user_id={self.user_id}, "
            f"principal={self.principal}, status={self.status}, "
            f"last_accrual_date={self.last_accrual_date})>"
        )
