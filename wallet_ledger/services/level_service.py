"""
User level upgrades.

A user's level follows the number of direct referrals that have made a
deposit. Moving up pays the bonus of the level reached, once per user and
level; levels are never lowered.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import REF_USER_LEVEL
from wallet_ledger.models.enums import TransactionType
from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.repositories.transaction_repository import TransactionRepository
from wallet_ledger.repositories.user_level_repository import UserLevelRepository
from wallet_ledger.services.ledger.store import LedgerReference, LedgerStore
from wallet_ledger.services.notification.sink import NotificationSink, notify_safely
from wallet_ledger.utils.db_decorators import with_auto_commit
from wallet_ledger.utils.exceptions import AccountNotFound


@dataclass
class LevelUpResult:
    """A level change made by one check."""

    user_id: int
    old_level: int
    new_level: int
    level_name: str
    active_referrals: int
    bonus_amount: Decimal = Decimal("0")
    transaction_id: int | None = None


def level_up_reference(user_id: int, level: int) -> LedgerReference:
    """Ledger reference of the bonus for reaching ``level``."""
    return LedgerReference(REF_USER_LEVEL, f"{user_id}-{level}")


class LevelService:
    """Checks referral counts against the level table."""

    def __init__(
        self,
        session: AsyncSession,
        notification_sink: NotificationSink | None = None,
    ) -> None:
        self.session = session
        self.notification_sink = notification_sink
        self.account_repo = AccountRepository(session)
        self.level_repo = UserLevelRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.ledger = LedgerStore(session)

    async def check_and_upgrade(self, user_id: int) -> LevelUpResult | None:
        """
        Raise the user's level if their active referrals qualify.

        Args:
            user_id: Account to check

        Returns:
            LevelUpResult, or None when the level stays as it is

        Raises:
            AccountNotFound: No such account
        """
        result = await self._upgrade(user_id)
        if result is None:
            return None

        bonus_text = (
            f" and earned a {result.bonus_amount} bonus"
            if result.bonus_amount > 0
            else ""
        )
        await notify_safely(
            self.notification_sink,
            user_id,
            notification_type="level_up",
            title=f"Level up: welcome to {result.level_name}",
            message=f"You have reached level {result.new_level}{bonus_text}.",
            extra={
                "old_level": result.old_level,
                "new_level": result.new_level,
                "bonus_amount": str(result.bonus_amount),
            },
        )
        return result

    @with_auto_commit
    async def _upgrade(self, user_id: int) -> LevelUpResult | None:
        account = await self.account_repo.get_fresh(user_id)
        if account is None:
            raise AccountNotFound(user_id)
        current_level = account.user_level

        active_referrals = await self.account_repo.count_active_referrals(user_id)
        qualified = await self.level_repo.get_qualified_level(active_referrals)
        if qualified is None or qualified.level <= current_level:
            return None

        if not await self.account_repo.raise_level(
            user_id, current_level, qualified.level
        ):
            logger.bind(user_id=user_id).info(
                f"Level of user {user_id} changed concurrently, upgrade skipped",
            )
            return None

        result = LevelUpResult(
            user_id=user_id,
            old_level=current_level,
            new_level=qualified.level,
            level_name=qualified.name,
            active_referrals=active_referrals,
        )

        reference = level_up_reference(user_id, qualified.level)
        already_paid = await self.transaction_repo.get_by_reference(
            TransactionType.LEVEL_UP_BONUS.value, reference.kind, str(reference.id)
        )
        if qualified.bonus_amount > 0 and already_paid is None:
            transaction = await self.ledger.post_transaction(
                user_id,
                TransactionType.LEVEL_UP_BONUS,
                qualified.bonus_amount,
                reference,
                description=(
                    f"Level up bonus - reached {qualified.name} "
                    f"(level {qualified.level})"
                ),
            )
            result.bonus_amount = transaction.amount
            result.transaction_id = transaction.id

        logger.bind(
            user_id=user_id,
            old_level=current_level,
            new_level=qualified.level,
            bonus=str(result.bonus_amount),
        ).info(f"User {user_id} reached level {qualified.level}")
        return result
