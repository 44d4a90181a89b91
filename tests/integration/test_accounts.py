"""
Integration tests for account opening and referrer links.
"""

from decimal import Decimal

import pytest

from wallet_ledger.models.enums import TransactionType
from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.repositories.transaction_repository import TransactionRepository
from wallet_ledger.services import AccountService
from wallet_ledger.services.ledger.store import LedgerStore
from wallet_ledger.utils.exceptions import (
    AccountNotFound,
    AlreadyProcessed,
    InvalidReferralChain,
)


@pytest.fixture
def accounts(session, settings_provider):
    return AccountService(session, settings_provider)


class TestOpenAccount:
    """Test account creation."""

    @pytest.mark.asyncio
    async def test_plain_account(self, session, accounts):
        """Without a bonus an account starts at zero."""
        result = await accounts.open_account(1)

        assert result.balance == Decimal("0")
        assert result.bonus_transaction_id is None
        assert await LedgerStore(session).get_balance(1) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_signup_bonus(self, session, accounts, set_referral_setting):
        """An enabled signup bonus is credited through the ledger."""
        await set_referral_setting("enable_signup_bonus", "true")

        result = await accounts.open_account(1)

        assert result.signup_bonus == Decimal("50.00")
        assert result.balance == Decimal("50.00")
        entry = await TransactionRepository(session).get_by_id(result.bonus_transaction_id)
        assert entry.type == TransactionType.SIGNUP_BONUS.value
        assert (await LedgerStore(session).reconcile(1)).is_consistent

    @pytest.mark.asyncio
    async def test_bonus_for_referred_account(self, accounts, set_referral_setting):
        """Referred accounts get the same bonus."""
        await set_referral_setting("enable_signup_bonus", "true")
        await set_referral_setting("referral_signup_bonus", "25")
        await accounts.open_account(1)

        result = await accounts.open_account(2, referred_by_user_id=1)

        assert result.referred_by_user_id == 1
        assert result.signup_bonus == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_zero_bonus_posts_nothing(self, session, accounts, set_referral_setting):
        """An enabled bonus of zero creates no entry."""
        await set_referral_setting("enable_signup_bonus", "true")
        await set_referral_setting("referral_signup_bonus", "0")

        result = await accounts.open_account(1)

        assert result.bonus_transaction_id is None
        assert await TransactionRepository(session).count(user_id=1) == 0

    @pytest.mark.asyncio
    async def test_duplicate_account(self, accounts):
        """An account is opened once."""
        await accounts.open_account(1)

        with pytest.raises(AlreadyProcessed):
            await accounts.open_account(1)

    @pytest.mark.asyncio
    async def test_unknown_referrer(self, session, accounts):
        """The referrer must already have an account."""
        with pytest.raises(AccountNotFound):
            await accounts.open_account(2, referred_by_user_id=1)

        assert await AccountRepository(session).exists(user_id=2) is False

    @pytest.mark.asyncio
    async def test_self_referral(self, accounts):
        """Nobody can refer themselves."""
        with pytest.raises(InvalidReferralChain):
            await accounts.open_account(1, referred_by_user_id=1)


class TestAssignReferrer:
    """Test linking existing accounts."""

    @pytest.mark.asyncio
    async def test_link_once(self, session, accounts, make_account):
        """A referrer can be set once."""
        await make_account(1)
        await make_account(2)
        await make_account(3)

        await accounts.assign_referrer(2, 1)

        assert await AccountRepository(session).get_referral_link(2) == (True, 1)
        with pytest.raises(AlreadyProcessed):
            await accounts.assign_referrer(2, 3)

    @pytest.mark.asyncio
    async def test_cycle_refused(self, session, accounts, make_account):
        """Linking an ancestor under its descendant is refused."""
        await make_account(1)
        await make_account(2, referred_by=1)
        await make_account(3, referred_by=2)

        with pytest.raises(InvalidReferralChain):
            await accounts.assign_referrer(1, 3)

        assert await AccountRepository(session).get_referral_link(1) == (True, None)

    @pytest.mark.asyncio
    async def test_missing_accounts(self, accounts, make_account):
        """Both accounts must exist."""
        await make_account(1)

        with pytest.raises(AccountNotFound):
            await accounts.assign_referrer(2, 1)
        with pytest.raises(AccountNotFound):
            await accounts.assign_referrer(1, 2)
