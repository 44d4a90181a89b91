"""
Game play model.

Records a paid game round and its prize.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class GamePlay(Base):
    """Game play model."""

    __tablename__ = "game_plays"
    __table_args__ = (
        CheckConstraint('amount_paid >= 0', name='paid_non_negative'),
        CheckConstraint('prize_won >= 0', name='prize_non_negative'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("accounts.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount_paid: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)
    prize_won: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 2), nullable=False, default=Decimal("0")
    )
    is_winner: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    play_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<GamePlay(id={self.id}, user_id={self.user_id}, "
            f"paid={self.amount_paid}, prize={self.prize_won})>"
        )
