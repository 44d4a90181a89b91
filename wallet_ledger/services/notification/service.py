"""
Notification service.

Broadcast and personal notifications with one read/unread capability.
"""

from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.enums import NotificationKind
from wallet_ledger.models.notification import Notification
from wallet_ledger.repositories.notification_repository import NotificationRepository
from wallet_ledger.utils.db_decorators import with_auto_commit


@dataclass
class NotificationView:
    """A notification as seen by one user."""

    notification: Notification
    is_read: bool

    @property
    def is_broadcast(self) -> bool:
        return self.notification.kind == NotificationKind.BROADCAST.value


class NotificationService:
    """Creates notifications and tracks what each user has read."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize notification service.

        Args:
            session: Async database session
        """
        self.session = session
        self.notification_repo = NotificationRepository(session)

    @with_auto_commit
    async def create_broadcast(
        self,
        title: str,
        message: str,
        notification_type: str = "info",
        priority: str = "normal",
        extra: dict[str, Any] | None = None,
    ) -> Notification:
        """Create a notification visible to every user."""
        notification = await self.notification_repo.create(
            kind=NotificationKind.BROADCAST.value,
            user_id=None,
            type=notification_type,
            title=title,
            message=message,
            priority=priority,
            extra=extra,
        )
        logger.bind(notification_id=notification.id).info(
            f"Broadcast notification created: {title}",
        )
        return notification

    @with_auto_commit
    async def create_personal(
        self,
        user_id: int,
        title: str,
        message: str,
        notification_type: str = "info",
        priority: str = "normal",
        extra: dict[str, Any] | None = None,
    ) -> Notification:
        """Create a notification for one user."""
        return await self.notification_repo.create(
            kind=NotificationKind.PERSONAL.value,
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            priority=priority,
            extra=extra,
        )

    async def list_for_user(
        self, user_id: int, limit: int = 50, unread_only: bool = False
    ) -> list[NotificationView]:
        """Broadcasts and personal notifications of a user, newest first."""
        rows = await self.notification_repo.find_for_user(
            user_id, limit=limit, unread_only=unread_only
        )
        return [NotificationView(notification=n, is_read=read) for n, read in rows]

    async def unread_count(self, user_id: int) -> int:
        """Number of unread notifications of a user."""
        return await self.notification_repo.count_unread(user_id)

    @with_auto_commit
    async def mark_read(self, notification_id: int, user_id: int) -> bool:
        """
        Mark one notification as read for a user.

        Returns:
            True if the notification changed to read, False if it was
            already read or is not visible to the user
        """
        notification = await self.notification_repo.get_by_id(notification_id)
        if notification is None:
            return False

        if notification.kind == NotificationKind.BROADCAST.value:
            if await self.notification_repo.has_broadcast_read(notification_id, user_id):
                return False
            await self.notification_repo.add_broadcast_read(notification_id, user_id)
            return True

        if notification.user_id != user_id:
            return False
        changed = await self.notification_repo.mark_personal_read(
            user_id, notification_id
        )
        return changed > 0

    @with_auto_commit
    async def mark_all_read(self, user_id: int) -> int:
        """
        Mark every notification visible to a user as read.

        Returns:
            Number of notifications marked
        """
        marked = await self.notification_repo.mark_personal_read(user_id)
        for notification_id in await self.notification_repo.find_unread_broadcast_ids(user_id):
            await self.notification_repo.add_broadcast_read(notification_id, user_id)
            marked += 1
        return marked
