"""
Account service.

Opens accounts (with the signup bonus) and links referrers.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import REF_ACCOUNT
from wallet_ledger.models.enums import TransactionType
from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.services.ledger.store import LedgerReference, LedgerStore
from wallet_ledger.services.referral.chain import ReferralChainWalker
from wallet_ledger.services.settings_provider import SettingsProvider
from wallet_ledger.utils.db_decorators import with_auto_commit
from wallet_ledger.utils.exceptions import (
    AccountNotFound,
    AlreadyProcessed,
    InvalidReferralChain,
)


@dataclass
class AccountOpenResult:
    """Outcome of opening an account."""

    user_id: int
    referred_by_user_id: int | None
    balance: Decimal
    signup_bonus: Decimal = Decimal("0")
    bonus_transaction_id: int | None = None


class AccountService:
    """Account lifecycle."""

    def __init__(
        self, session: AsyncSession, settings_provider: SettingsProvider
    ) -> None:
        self.session = session
        self.settings_provider = settings_provider
        self.account_repo = AccountRepository(session)
        self.chain_walker = ReferralChainWalker(session)
        self.ledger = LedgerStore(session)

    @with_auto_commit
    async def open_account(
        self, user_id: int, referred_by_user_id: int | None = None
    ) -> AccountOpenResult:
        """
        Create an account and credit the signup bonus when enabled.

        Every new account gets the bonus, referred or not.

        Args:
            user_id: Identity provider user ID
            referred_by_user_id: Referrer, must already have an account

        Returns:
            AccountOpenResult

        Raises:
            AlreadyProcessed: Account already exists
            AccountNotFound: Referrer has no account
            InvalidReferralChain: User refers itself
        """
        if await self.account_repo.exists(user_id=user_id):
            raise AlreadyProcessed(f"Account {user_id} already exists")

        if referred_by_user_id is not None:
            if referred_by_user_id == user_id:
                raise InvalidReferralChain(user_id, [user_id, user_id])
            if not await self.account_repo.exists(user_id=referred_by_user_id):
                raise AccountNotFound(referred_by_user_id)

        await self.account_repo.create(
            user_id=user_id,
            referred_by_user_id=referred_by_user_id,
            available_balance=Decimal("0"),
            total_deposited=Decimal("0"),
            total_withdrawn=Decimal("0"),
            total_earned=Decimal("0"),
        )
        result = AccountOpenResult(
            user_id=user_id,
            referred_by_user_id=referred_by_user_id,
            balance=Decimal("0"),
        )

        referral_settings = await self.settings_provider.get_referral_settings()
        if referral_settings.signup_bonus_enabled and referral_settings.signup_bonus > 0:
            description = (
                "Welcome bonus for signing up with a referral"
                if referred_by_user_id is not None
                else "Welcome bonus for new account registration"
            )
            transaction = await self.ledger.post_transaction(
                user_id,
                TransactionType.SIGNUP_BONUS,
                referral_settings.signup_bonus,
                LedgerReference(REF_ACCOUNT, user_id),
                description=description,
            )
            result.signup_bonus = transaction.amount
            result.bonus_transaction_id = transaction.id
            result.balance = transaction.balance_after

        logger.bind(
            user_id=user_id,
            referred_by_user_id=referred_by_user_id,
            signup_bonus=str(result.signup_bonus),
        ).info(f"Account {user_id} opened")
        return result

    @with_auto_commit
    async def assign_referrer(self, user_id: int, referrer_id: int) -> None:
        """
        Link an existing account under a referrer.

        Raises:
            AccountNotFound: Either account missing
            InvalidReferralChain: Link would close a cycle
            AlreadyProcessed: Account already has a referrer
        """
        exists, current = await self.account_repo.get_referral_link(user_id)
        if not exists:
            raise AccountNotFound(user_id)
        if not await self.account_repo.exists(user_id=referrer_id):
            raise AccountNotFound(referrer_id)
        if current is not None:
            raise AlreadyProcessed(
                f"Account {user_id} is already referred by {current}"
            )

        if await self.chain_walker.would_create_cycle(user_id, referrer_id):
            chain = [user_id, referrer_id, user_id]
            logger.bind(user_id=user_id, referrer_id=referrer_id).warning(
                "Referrer link refused: it would create a cycle",
            )
            raise InvalidReferralChain(user_id, chain)

        if not await self.account_repo.set_referrer(user_id, referrer_id):
            raise AlreadyProcessed(f"Account {user_id} was referred concurrently")

        logger.bind(user_id=user_id, referrer_id=referrer_id).info(
            f"Account {user_id} referred by {referrer_id}",
        )

