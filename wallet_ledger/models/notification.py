"""
Notification models.

Broadcast and personal notifications share one table, tagged by ``kind``.
Broadcast read marks are kept per user in ``notification_reads``.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.models.base import Base


class Notification(Base):
    """Notification model."""

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            "(kind = 'broadcast' AND user_id IS NULL) OR "
            "(kind = 'personal' AND user_id IS NOT NULL)",
            name='kind_matches_audience',
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    kind: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("accounts.user_id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False, default="info")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default="normal"
    )
    extra: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Personal notifications only; broadcasts use NotificationRead
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Notification(id={self.id}, kind={self.kind}, "
            f"user_id={self.user_id}, title={self.title})>"
        )


class NotificationRead(Base):
    """Read mark of a broadcast notification for one user."""

    __tablename__ = "notification_reads"
    __table_args__ = (
        UniqueConstraint(
            'notification_id', 'user_id', name='uq_notification_reads_user'
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    notification_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("notifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    read_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
