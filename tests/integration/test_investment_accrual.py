"""
Integration tests for investment subscriptions and daily accrual.

Tests cover:
- Subscription limits and principal debit
- Daily profit entries, one per position per day
- Catch-up of missed days and idempotent re-runs
- Maturity with and without principal return
- Emergency stop
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from wallet_ledger.models.enums import InvestmentStatus, PrincipalPolicy, TransactionType
from wallet_ledger.repositories.investment_repository import (
    DailyAccrualRepository,
    InvestmentPositionRepository,
)
from wallet_ledger.repositories.transaction_repository import TransactionRepository
from wallet_ledger.services.investment import (
    InvestmentAccrualScheduler,
    InvestmentSubscriptionService,
)
from wallet_ledger.services.ledger.store import LedgerStore
from wallet_ledger.utils.exceptions import (
    InsufficientFunds,
    InvalidAmount,
    PlanNotAvailable,
)


START = date(2026, 10, 1)


@pytest.fixture
def subscriptions(session, settings_provider):
    return InvestmentSubscriptionService(session, settings_provider)


@pytest.fixture
def accrual(session, notification_sink):
    return InvestmentAccrualScheduler(session, notification_sink)


class TestSubscribe:
    """Test opening positions."""

    @pytest.mark.asyncio
    async def test_debits_principal(self, session, subscriptions, make_account, make_plan):
        """Subscribing moves the principal out of the balance."""
        await make_account(1, balance=15000)
        plan_id = await make_plan(duration_days=30)

        position = await subscriptions.subscribe(1, plan_id, Decimal("10000"), START)

        assert position.status == InvestmentStatus.ACTIVE.value
        assert position.principal == Decimal("10000.00")
        assert position.end_date == date(2026, 10, 31)
        assert position.last_accrual_date is None
        assert await LedgerStore(session).get_balance(1) == Decimal("5000.00")

        entry = await TransactionRepository(session).get_by_reference(
            TransactionType.INVESTMENT_DEBIT.value, "investment_position", str(position.id)
        )
        assert entry.amount == Decimal("-10000.00")

    @pytest.mark.asyncio
    async def test_terms_copied(self, subscriptions, make_account, make_plan):
        """Positions keep the plan terms of the day they were opened."""
        await make_account(1, balance=1000)
        plan_id = await make_plan(
            daily_rate="0.015", duration_days=10, principal_policy=PrincipalPolicy.RETURN
        )

        position = await subscriptions.subscribe(1, plan_id, Decimal("500"), START)

        assert position.daily_rate == Decimal("0.015000")
        assert position.duration_days == 10
        assert position.principal_policy == PrincipalPolicy.RETURN.value

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, session, subscriptions, make_account, make_plan):
        """A principal above the balance opens nothing."""
        await make_account(1, balance=50)
        plan_id = await make_plan(minimum_amount="10")

        with pytest.raises(InsufficientFunds):
            await subscriptions.subscribe(1, plan_id, Decimal("100"), START)

        assert await InvestmentPositionRepository(session).find_by_user(1) == []
        assert await LedgerStore(session).get_balance(1) == Decimal("50.00")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["99.99", "5000.01"])
    async def test_outside_limits(self, subscriptions, make_account, make_plan, amount):
        """Amounts outside the plan range are refused."""
        await make_account(1, balance=10000)
        plan_id = await make_plan(minimum_amount="100", maximum_amount="5000")

        with pytest.raises(InvalidAmount):
            await subscriptions.subscribe(1, plan_id, Decimal(amount), START)

    @pytest.mark.asyncio
    async def test_inactive_plan(self, subscriptions, make_account, make_plan):
        """Inactive plans take no new positions."""
        await make_account(1, balance=1000)
        plan_id = await make_plan(is_active=False)

        with pytest.raises(PlanNotAvailable):
            await subscriptions.subscribe(1, plan_id, Decimal("500"), START)

    @pytest.mark.asyncio
    async def test_missing_plan(self, subscriptions, make_account):
        """Unknown plans are not available."""
        await make_account(1, balance=1000)

        with pytest.raises(PlanNotAvailable):
            await subscriptions.subscribe(1, 777, Decimal("500"), START)


class TestDailyAccrual:
    """Test daily profit accrual."""

    async def _open(self, subscriptions, make_account, make_plan, **plan):
        await make_account(1, balance=10000)
        plan_id = await make_plan(daily_rate="0.01", duration_days=3, **plan)
        position = await subscriptions.subscribe(1, plan_id, Decimal("10000"), START)
        return position.id

    @pytest.mark.asyncio
    async def test_three_day_position(
        self, session, subscriptions, accrual, make_account, make_plan
    ):
        """10,000 at 1 % for 3 days earns 100 a day and then completes."""
        position_id = await self._open(subscriptions, make_account, make_plan)

        for day in (2, 3, 4):
            summary = await accrual.run_daily_accrual(date(2026, 10, day))
            assert summary.accruals_posted == 1
            assert summary.total_profit == Decimal("100.00")

        position = await InvestmentPositionRepository(session).get_fresh(position_id)
        assert position.status == InvestmentStatus.COMPLETED.value
        assert position.completed_at is not None
        assert position.total_profit_earned == Decimal("300.00")
        assert position.last_accrual_date == date(2026, 10, 4)

        accruals = await DailyAccrualRepository(session).find_by_position(position_id)
        assert [a.accrual_date for a in accruals] == [
            date(2026, 10, 2),
            date(2026, 10, 3),
            date(2026, 10, 4),
        ]
        assert all(a.amount == Decimal("100.00") for a in accruals)

        profits = await TransactionRepository(session).find_all(
            user_id=1, type=TransactionType.DAILY_PROFIT.value
        )
        assert len(profits) == 3
        assert await LedgerStore(session).get_balance(1) == Decimal("300.00")

    @pytest.mark.asyncio
    async def test_same_day_rerun(self, subscriptions, accrual, make_account, make_plan):
        """Running a date twice credits it once."""
        await self._open(subscriptions, make_account, make_plan)

        first = await accrual.run_daily_accrual(date(2026, 10, 2))
        second = await accrual.run_daily_accrual(date(2026, 10, 2))

        assert first.accruals_posted == 1
        assert second.accruals_posted == 0
        assert second.positions_processed == 0

    @pytest.mark.asyncio
    async def test_catch_up(self, session, subscriptions, accrual, make_account, make_plan):
        """Missed days are credited one entry per day."""
        position_id = await self._open(subscriptions, make_account, make_plan)

        summary = await accrual.run_daily_accrual(date(2026, 10, 20))

        assert summary.accruals_posted == 3
        assert summary.positions_completed == 1
        accruals = await DailyAccrualRepository(session).find_by_position(position_id)
        assert len({a.accrual_date for a in accruals}) == 3

    @pytest.mark.asyncio
    async def test_nothing_on_start_day(self, subscriptions, accrual, make_account, make_plan):
        """A position earns nothing on the day it opens."""
        await self._open(subscriptions, make_account, make_plan)

        summary = await accrual.run_daily_accrual(START)

        assert summary.accruals_posted == 0

    @pytest.mark.asyncio
    async def test_retained_principal(
        self, session, subscriptions, accrual, make_account, make_plan
    ):
        """Under the retain policy only profit comes back."""
        await self._open(subscriptions, make_account, make_plan)

        summary = await accrual.run_daily_accrual(date(2026, 10, 4))

        assert summary.principal_returned == Decimal("0")
        assert await LedgerStore(session).get_balance(1) == Decimal("300.00")

    @pytest.mark.asyncio
    async def test_returned_principal(
        self, session, subscriptions, accrual, make_account, make_plan, notification_sink
    ):
        """Under the return policy the principal is credited at maturity."""
        position_id = await self._open(
            subscriptions, make_account, make_plan, principal_policy=PrincipalPolicy.RETURN
        )

        summary = await accrual.run_daily_accrual(date(2026, 10, 4))

        assert summary.principal_returned == Decimal("10000.00")
        assert await LedgerStore(session).get_balance(1) == Decimal("10300.00")
        entry = await TransactionRepository(session).get_by_reference(
            TransactionType.INVESTMENT_RETURN.value, "investment_position", str(position_id)
        )
        assert entry.amount == Decimal("10000.00")
        assert notification_sink.types_for(1) == ["investment_completed"]
        assert (await LedgerStore(session).reconcile(1)).is_consistent

    @pytest.mark.asyncio
    async def test_completed_position_ignored(
        self, subscriptions, accrual, make_account, make_plan
    ):
        """Completed positions accrue nothing more."""
        await self._open(subscriptions, make_account, make_plan)
        await accrual.run_daily_accrual(date(2026, 10, 4))

        summary = await accrual.run_daily_accrual(date(2026, 10, 5))

        assert summary.positions_processed == 0
        assert summary.accruals_posted == 0

    @pytest.mark.asyncio
    async def test_emergency_stop(
        self, session, subscriptions, make_account, make_plan, notification_sink
    ):
        """An emergency stop halts the run without touching positions."""
        position_id = await self._open(subscriptions, make_account, make_plan)
        halted = InvestmentAccrualScheduler(session, notification_sink, emergency_stop=True)

        summary = await halted.run_daily_accrual(date(2026, 10, 4))

        assert summary.halted is True
        assert summary.accruals_posted == 0
        position = await InvestmentPositionRepository(session).get_fresh(position_id)
        assert position.status == InvestmentStatus.ACTIVE.value
        assert position.last_accrual_date is None

    @pytest.mark.asyncio
    async def test_several_positions(
        self, session, subscriptions, accrual, make_account, make_plan
    ):
        """Every due position of every user is processed."""
        await make_account(1, balance=1000)
        await make_account(2, balance=2000)
        plan_id = await make_plan(daily_rate="0.02", duration_days=10)
        await subscriptions.subscribe(1, plan_id, Decimal("1000"), START)
        await subscriptions.subscribe(2, plan_id, Decimal("2000"), START)

        summary = await accrual.run_daily_accrual(date(2026, 10, 2))

        assert summary.positions_processed == 2
        assert summary.total_profit == Decimal("60.00")
        assert await LedgerStore(session).get_balance(2) == Decimal("40.00")

    @pytest.mark.asyncio
    async def test_accrual_day_unique(self, session, subscriptions, make_account, make_plan):
        """A position cannot hold two accruals for the same date."""
        position_id = await self._open(subscriptions, make_account, make_plan)
        repo = DailyAccrualRepository(session)
        await repo.create(
            position_id=position_id,
            user_id=1,
            accrual_date=date(2026, 10, 2),
            amount=Decimal("100"),
        )

        with pytest.raises(IntegrityError):
            await repo.create(
                position_id=position_id,
                user_id=1,
                accrual_date=date(2026, 10, 2),
                amount=Decimal("100"),
            )
        await session.rollback()
