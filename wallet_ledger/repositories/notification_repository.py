"""
Notification repository.

Personal notifications carry their own read flag; broadcast read marks
live in ``notification_reads``.
"""

from sqlalchemy import and_, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.enums import NotificationKind
from wallet_ledger.models.notification import Notification, NotificationRead
from wallet_ledger.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Notification repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize notification repository."""
        super().__init__(Notification, session)

    def _broadcast_read_exists(self, user_id: int):
        return exists().where(
            NotificationRead.notification_id == Notification.id,
            NotificationRead.user_id == user_id,
        )

    def _visible_to(self, user_id: int):
        return or_(
            Notification.kind == NotificationKind.BROADCAST.value,
            and_(
                Notification.kind == NotificationKind.PERSONAL.value,
                Notification.user_id == user_id,
            ),
        )

    def _unread_by(self, user_id: int):
        return or_(
            and_(
                Notification.kind == NotificationKind.PERSONAL.value,
                Notification.is_read.is_(False),
            ),
            and_(
                Notification.kind == NotificationKind.BROADCAST.value,
                ~self._broadcast_read_exists(user_id),
            ),
        )

    async def find_for_user(
        self, user_id: int, limit: int = 50, unread_only: bool = False
    ) -> list[tuple[Notification, bool]]:
        """
        Notifications visible to a user, newest first.

        Args:
            user_id: Recipient
            limit: Max number of results
            unread_only: Skip notifications already read

        Returns:
            List of (notification, is_read)
        """
        read_flag = or_(
            and_(
                Notification.kind == NotificationKind.PERSONAL.value,
                Notification.is_read.is_(True),
            ),
            and_(
                Notification.kind == NotificationKind.BROADCAST.value,
                self._broadcast_read_exists(user_id),
            ),
        ).label("read")

        stmt = select(Notification, read_flag).where(self._visible_to(user_id))
        if unread_only:
            stmt = stmt.where(self._unread_by(user_id))
        stmt = stmt.order_by(
            Notification.created_at.desc(), Notification.id.desc()
        ).limit(limit)

        result = await self.session.execute(stmt)
        return [(row[0], bool(row[1])) for row in result.all()]

    async def count_unread(self, user_id: int) -> int:
        """Unread notifications visible to a user."""
        stmt = (
            select(func.count(Notification.id))
            .where(self._visible_to(user_id))
            .where(self._unread_by(user_id))
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def has_broadcast_read(self, notification_id: int, user_id: int) -> bool:
        """Check whether a user already read a broadcast."""
        stmt = select(NotificationRead.id).where(
            NotificationRead.notification_id == notification_id,
            NotificationRead.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def add_broadcast_read(self, notification_id: int, user_id: int) -> None:
        """Store a broadcast read mark."""
        self.session.add(
            NotificationRead(notification_id=notification_id, user_id=user_id)
        )
        await self.session.flush()

    async def mark_personal_read(
        self, user_id: int, notification_id: int | None = None
    ) -> int:
        """
        Set the read flag of personal notifications.

        Args:
            user_id: Recipient
            notification_id: One notification, or all when None

        Returns:
            Number of notifications changed
        """
        stmt = update(Notification).where(
            Notification.kind == NotificationKind.PERSONAL.value,
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        if notification_id is not None:
            stmt = stmt.where(Notification.id == notification_id)
        stmt = stmt.values(is_read=True).execution_options(synchronize_session=False)
        result = await self.session.execute(stmt)
        return result.rowcount

    async def find_unread_broadcast_ids(self, user_id: int) -> list[int]:
        """Broadcasts a user has not read yet."""
        stmt = select(Notification.id).where(
            Notification.kind == NotificationKind.BROADCAST.value,
            ~self._broadcast_read_exists(user_id),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
