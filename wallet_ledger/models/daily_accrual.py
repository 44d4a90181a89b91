"""
Daily accrual model.

One row per position per calendar day of profit.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class DailyAccrual(Base):
    """Daily accrual model."""

    __tablename__ = "daily_accruals"
    __table_args__ = (
        UniqueConstraint(
            'position_id', 'accrual_date', name='uq_daily_accruals_position_date'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    position_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("investment_positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    accrual_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<DailyAccrual(position_id={self.position_id}, "
            f"accrual_date={self.accrual_date}, amount={self.amount})>"
        )
