"""
Investment plan model.

Admin-defined product with a fixed daily rate and duration.
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
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class InvestmentPlan(Base):
    """Investment plan model."""

    __tablename__ = "investment_plans"
    __table_args__ = (
        CheckConstraint('daily_rate > 0', name='daily_rate_positive'),
        CheckConstraint('duration_days > 0', name='duration_positive'),
        CheckConstraint('minimum_amount > 0', name='minimum_positive'),
        CheckConstraint(
            'maximum_amount IS NULL OR maximum_amount >= minimum_amount',
            name='maximum_not_below_minimum',
        ),
        CheckConstraint(
            "principal_policy IN ('return', 'retain')",
            name='principal_policy_valid',
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Fraction per day: 0.01 = 1 %
    daily_rate: Mapped[Decimal] = mapped_column(DECIMAL(12, 6), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    minimum_amount: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)
    maximum_amount: Mapped[Decimal | None] = mapped_column(
        DECIMAL(18, 2), nullable=True
    )
    # No default: every plan states whether the principal comes back
    principal_policy: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<InvestmentPlan(id={self.id}, name={self.name}, "
            f"daily_rate={self.daily_rate}, duration_days={self.duration_days})>"
        )
