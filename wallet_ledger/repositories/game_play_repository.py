"""
Game play repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.game_play import GamePlay
from wallet_ledger.repositories.base import BaseRepository


class GamePlayRepository(BaseRepository[GamePlay]):
    """Game play repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize game play repository."""
        super().__init__(GamePlay, session)

    async def find_by_user(self, user_id: int, limit: int = 20) -> list[GamePlay]:
        """Latest plays of a user."""
        stmt = (
            select(GamePlay)
            .where(GamePlay.user_id == user_id)
            .order_by(GamePlay.play_date.desc(), GamePlay.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
