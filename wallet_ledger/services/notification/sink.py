"""
Notification sinks.

Ledger flows notify users only after their unit of work committed, and a
failing sink never affects the money movement that triggered it.
"""

from typing import Any, Protocol

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wallet_ledger.services.notification.service import NotificationService


class NotificationSink(Protocol):
    """Receiver of user-facing events."""

    async def notify(
        self,
        user_id: int,
        *,
        notification_type: str,
        title: str,
        message: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        ...


class LoggingNotificationSink:
    """Sink that only logs (workers without a delivery channel)."""

    async def notify(
        self,
        user_id: int,
        *,
        notification_type: str,
        title: str,
        message: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        context = {**(extra or {}), "user_id": user_id, "type": notification_type}
        logger.bind(**context).info(f"Notification for user {user_id}: {title}")


class PersistentNotificationSink:
    """
    Sink that stores personal notifications in the database.

    Uses its own session per notification so that a failed insert never
    rolls back (or expires) the caller's session.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def notify(
        self,
        user_id: int,
        *,
        notification_type: str,
        title: str,
        message: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        async with self.session_maker() as session:
            await NotificationService(session).create_personal(
                user_id,
                title,
                message,
                notification_type=notification_type,
                extra=extra,
            )


async def notify_safely(
    sink: NotificationSink | None,
    user_id: int,
    *,
    notification_type: str,
    title: str,
    message: str,
    extra: dict[str, Any] | None = None,
) -> bool:
    """
    Fire-and-forget delivery.

    Returns:
        True if the sink accepted the notification
    """
    if sink is None:
        return False

    try:
        await sink.notify(
            user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            extra=extra,
        )
        return True
    except Exception as e:
        logger.bind(user_id=user_id, type=notification_type).warning(
            f"Notification delivery failed for user {user_id}: {e}",
        )
        return False
