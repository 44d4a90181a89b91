"""
User level repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.user_level import UserLevel
from wallet_ledger.repositories.base import BaseRepository


class UserLevelRepository(BaseRepository[UserLevel]):
    """User level repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user level repository."""
        super().__init__(UserLevel, session)

    async def get_qualified_level(self, active_referrals: int) -> UserLevel | None:
        """
        Highest active level whose referral requirement is met.

        Args:
            active_referrals: Referrals that have deposited

        Returns:
            UserLevel or None when no level qualifies
        """
        stmt = (
            select(UserLevel)
            .where(
                UserLevel.is_active.is_(True),
                UserLevel.referrals_required <= active_referrals,
            )
            .order_by(UserLevel.referrals_required.desc(), UserLevel.level.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

