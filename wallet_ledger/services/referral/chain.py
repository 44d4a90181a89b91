"""
Referral chain walking.

Ancestors are read one hop at a time from ``referred_by_user_id`` with a
visited set, so a corrupted (circular) chain is detected instead of being
followed forever.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.utils.exceptions import InvalidReferralChain


@dataclass(frozen=True)
class ReferralAncestor:
    """An ancestor of the triggering user."""

    level: int
    user_id: int


class ReferralChainWalker:
    """Bounded, cycle-safe walk up the referral tree."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize chain walker."""
        self.session = session
        self.account_repo = AccountRepository(session)

    async def ancestors(
        self, user_id: int, max_levels: int
    ) -> AsyncIterator[ReferralAncestor]:
        """
        Yield ancestors from the direct referrer upwards.

        Args:
            user_id: Triggering user
            max_levels: Stop after this many ancestors

        Yields:
            ReferralAncestor for levels 1..max_levels

        Raises:
            InvalidReferralChain: If an ancestor repeats (including the
                triggering user referring itself)
        """
        visited = {user_id}
        path = [user_id]

        _, parent_id = await self.account_repo.get_referral_link(user_id)
        level = 1

        while parent_id is not None and level <= max_levels:
            if parent_id in visited:
                path.append(parent_id)
                logger.bind(user_id=user_id, chain=path).error(
                    "Referral cycle detected",
                )
                raise InvalidReferralChain(user_id, path)

            visited.add(parent_id)
            path.append(parent_id)

            exists, next_parent_id = await self.account_repo.get_referral_link(parent_id)
            if not exists:
                logger.bind(user_id=user_id, missing_user_id=parent_id).warning(
                    "Referral chain points at a missing account",
                )
                return

            yield ReferralAncestor(level=level, user_id=parent_id)

            parent_id = next_parent_id
            level += 1

    async def get_chain(self, user_id: int, max_levels: int) -> list[ReferralAncestor]:
        """Collect ``ancestors`` into a list."""
        return [ancestor async for ancestor in self.ancestors(user_id, max_levels)]

    async def would_create_cycle(self, user_id: int, referrer_id: int) -> bool:
        """
        Check whether linking ``user_id`` under ``referrer_id`` closes a loop.

        Args:
            user_id: Account receiving a referrer
            referrer_id: Proposed referrer

        Returns:
            True if ``user_id`` is ``referrer_id`` or one of its ancestors
        """
        if user_id == referrer_id:
            return True

        visited = {referrer_id}
        current = referrer_id
        while True:
            _, parent_id = await self.account_repo.get_referral_link(current)
            if parent_id is None:
                return False
            if parent_id == user_id:
                return True
            if parent_id in visited:
                # Existing data is already circular
                return True
            visited.add(parent_id)
            current = parent_id
