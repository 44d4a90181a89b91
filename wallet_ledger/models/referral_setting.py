"""
Referral setting model.

Key/value rows edited from the admin back office.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class ReferralSetting(Base):
    """Referral program setting."""

    __tablename__ = "referral_settings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    setting_key: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True
    )
    setting_value: Mapped[str] = mapped_column(String(255), nullable=False)
    setting_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="string"
    )  # boolean, number, string
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ReferralSetting({self.setting_key}={self.setting_value})>"
