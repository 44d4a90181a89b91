"""
Integration tests for the back-office operations facade.

Tests cover:
- One session per operation
- Cascade failure reporting and retry
- Default persistent notifications
- History iteration and reconciliation
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import update

from wallet_ledger.models import Account
from wallet_ledger.services import WalletOperations
from wallet_ledger.services.ledger.history import HistoryCursor
from wallet_ledger.services.notification import NotificationService
from wallet_ledger.utils.exceptions import LedgerWriteFailure, PlanNotAvailable


class BrokenSettingsProvider:
    """Settings source that is unreachable."""

    async def get_referral_settings(self):
        raise LedgerWriteFailure("settings store unavailable")

    async def get_investment_plan(self, plan_id):
        raise PlanNotAvailable(f"Investment plan {plan_id} not found")


@pytest.fixture
def operations(session_maker, settings_provider_factory, notification_sink):
    return WalletOperations(
        session_maker,
        settings_provider_factory=settings_provider_factory,
        notification_sink=notification_sink,
        history_page_size=2,
    )


class TestDeposits:
    """Test deposit operations."""

    @pytest.mark.asyncio
    async def test_submit_and_approve(self, operations, make_account):
        """A deposit goes through submission and approval."""
        await make_account(1)
        await make_account(2, referred_by=1)

        deposit = await operations.submit_deposit(2, Decimal("400"), "card")
        result = await operations.approve_deposit(deposit.id, admin_id=1)

        assert result.balance_after == Decimal("400.00")
        assert await operations.get_balance(1) == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_reject(self, operations, make_account):
        """Rejected deposits leave the balance alone."""
        await make_account(1)
        deposit = await operations.submit_deposit(1, Decimal("400"), "card")

        rejected = await operations.reject_deposit(deposit.id, admin_id=1, reason="Fake")

        assert rejected.status == "rejected"
        assert await operations.get_balance(1) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_cascade_failure_reported(
        self, session_maker, settings_provider_factory, make_account
    ):
        """A failed cascade keeps the deposit and hands the ID to the callback."""
        await make_account(1)
        await make_account(2, referred_by=1)
        reported = []
        broken = WalletOperations(
            session_maker,
            settings_provider_factory=lambda session: BrokenSettingsProvider(),
            on_cascade_failure=reported.append,
        )
        deposit = await broken.submit_deposit(2, Decimal("100"), "card")

        result = await broken.approve_deposit(deposit.id, admin_id=1)

        assert result.cascade_error is not None
        assert result.needs_cascade_retry is True
        assert reported == [deposit.id]
        assert await broken.get_balance(2) == Decimal("100.00")
        assert await broken.get_balance(1) == Decimal("0.00")

        healthy = WalletOperations(
            session_maker, settings_provider_factory=settings_provider_factory
        )
        retry = await healthy.retry_commission_cascade(deposit.id)

        assert [item.level for item in retry.paid] == [1]
        assert await healthy.get_balance(1) == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_async_failure_callback(self, session_maker, make_account):
        """Coroutine callbacks are awaited."""
        await make_account(1)
        reported = []

        async def on_failure(deposit_id):
            reported.append(deposit_id)

        broken = WalletOperations(
            session_maker,
            settings_provider_factory=lambda session: BrokenSettingsProvider(),
            on_cascade_failure=on_failure,
        )
        deposit = await broken.submit_deposit(1, Decimal("100"), "card")

        await broken.approve_deposit(deposit.id, admin_id=1)

        assert reported == [deposit.id]

    @pytest.mark.asyncio
    async def test_default_sink_persists(
        self, session, session_maker, settings_provider_factory, make_account
    ):
        """Without a sink, notifications are stored for the user."""
        await make_account(1)
        operations = WalletOperations(
            session_maker, settings_provider_factory=settings_provider_factory
        )
        deposit = await operations.submit_deposit(1, Decimal("100"), "card")

        await operations.approve_deposit(deposit.id, admin_id=1)

        views = await NotificationService(session).list_for_user(1)
        assert [v.notification.type for v in views] == ["deposit_approved"]


class TestWithdrawals:
    """Test withdrawal operations."""

    @pytest.mark.asyncio
    async def test_approve_and_refund(self, operations, make_account):
        """A completed withdrawal can be refunded once."""
        await make_account(1, balance=500)
        withdrawal = await operations.submit_withdrawal(1, Decimal("200"), "bank")

        await operations.approve_withdrawal(withdrawal.id, admin_id=1)
        assert await operations.get_balance(1) == Decimal("300.00")

        await operations.refund_withdrawal(withdrawal.id, admin_id=1, reason="Returned")
        assert await operations.get_balance(1) == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_reject(self, operations, make_account):
        """Rejected withdrawals fail without moving money."""
        await make_account(1, balance=500)
        withdrawal = await operations.submit_withdrawal(1, Decimal("200"), "bank")

        rejected = await operations.reject_withdrawal(withdrawal.id, admin_id=1)

        assert rejected.status == "failed"
        assert await operations.get_balance(1) == Decimal("500.00")


class TestInvestments:
    """Test accounts, subscriptions and accrual through the facade."""

    @pytest.mark.asyncio
    async def test_open_subscribe_accrue(self, operations, make_account, make_plan):
        """A position opened through the facade accrues daily."""
        await make_account(9)
        await operations.open_account(1, referred_by_user_id=9)
        deposit = await operations.submit_deposit(1, Decimal("1000"), "card")
        await operations.approve_deposit(deposit.id, admin_id=1)
        plan_id = await make_plan(daily_rate="0.02", duration_days=5)

        await operations.subscribe_to_plan(1, plan_id, Decimal("500"), date(2026, 10, 1))
        summary = await operations.run_daily_accrual(date(2026, 10, 3))

        assert summary.accruals_posted == 2
        assert await operations.get_balance(1) == Decimal("520.00")


class TestReads:
    """Test history and reconciliation."""

    @pytest.mark.asyncio
    async def test_history_across_pages(self, operations, make_account):
        """History iteration walks every page, newest first."""
        await make_account(1, balance=1000)
        for amount in ("10", "20", "30"):
            withdrawal = await operations.submit_withdrawal(1, Decimal(amount), "bank")
            await operations.approve_withdrawal(withdrawal.id, admin_id=1)

        entries = [t async for t in operations.get_transaction_history(1)]

        assert [t.amount for t in entries] == [
            Decimal("-30.00"),
            Decimal("-20.00"),
            Decimal("-10.00"),
            Decimal("1000.00"),
        ]

    @pytest.mark.asyncio
    async def test_history_restart(self, operations, make_account):
        """History resumes after a given entry."""
        await make_account(1, balance=1000)
        for amount in ("10", "20"):
            withdrawal = await operations.submit_withdrawal(1, Decimal(amount), "bank")
            await operations.approve_withdrawal(withdrawal.id, admin_id=1)

        entries = [t async for t in operations.get_transaction_history(1)]
        rest = [
            t.id
            async for t in operations.get_transaction_history(
                1, cursor=HistoryCursor.after(entries[0])
            )
        ]

        assert rest == [t.id for t in entries[1:]]

    @pytest.mark.asyncio
    async def test_reconcile(self, session, operations, make_account):
        """Reconciliation reports one account or only the broken ones."""
        await make_account(1, balance=100)
        await make_account(2, balance=100)

        assert await operations.reconcile() == []
        single = await operations.reconcile(1)
        assert len(single) == 1 and single[0].is_consistent

        await session.execute(
            update(Account).where(Account.user_id == 2).values(available_balance=Decimal("90"))
        )
        await session.commit()

        broken = await operations.reconcile()
        assert [report.user_id for report in broken] == [2]
        assert broken[0].difference == Decimal("-10.00")
