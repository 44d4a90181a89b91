"""
Transaction model.

Append-only ledger entries. Corrections are new offsetting entries.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class Transaction(Base):
    """Transaction model - one signed balance movement."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint('amount != 0', name='amount_non_zero'),
        # One business event is posted at most once per type
        UniqueConstraint(
            'type', 'reference_type', 'reference_id',
            name='uq_transactions_reference',
        ),
        Index('idx_transactions_user_history', 'user_id', 'created_at', 'id'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.user_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="completed"
    )

    reference_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reference_id: Mapped[str] = mapped_column(String(64), nullable=False)

    balance_after: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Transaction(id={self.id}, user_id={self.user_id}, "
            f"type={self.type}, amount={self.amount}, "
            f"reference={self.reference_type}:{self.reference_id})>"
        )
