"""
Investment accrual scheduler.

Credits daily profit to active positions. Each position is processed in
its own unit of work with the row locked; a day is recorded at most once
per position (unique (position_id, accrual_date)), so re-running a date
changes nothing and missed days are caught up one entry per day.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import REF_DAILY_ACCRUAL, REF_INVESTMENT_POSITION
from wallet_ledger.models.enums import InvestmentStatus, PrincipalPolicy, TransactionType
from wallet_ledger.repositories.investment_repository import (
    DailyAccrualRepository,
    InvestmentPositionRepository,
)
from wallet_ledger.services.ledger.store import LedgerReference, LedgerStore
from wallet_ledger.services.notification.sink import NotificationSink, notify_safely
from wallet_ledger.utils.datetime_utils import utc_now, utc_today
from wallet_ledger.utils.db_decorators import with_auto_commit
from wallet_ledger.utils.exceptions import DuplicateLedgerEntry, LedgerError
from wallet_ledger.utils.money import quantize_money


@dataclass
class PositionAccrual:
    """What one run did to one position."""

    position_id: int
    user_id: int
    days: list[date] = field(default_factory=list)
    amount: Decimal = Decimal("0")
    completed: bool = False
    principal_returned: Decimal = Decimal("0")


@dataclass
class AccrualRunSummary:
    """Outcome of a daily accrual run."""

    as_of: date
    halted: bool = False
    positions_processed: int = 0
    accruals_posted: int = 0
    total_profit: Decimal = Decimal("0")
    positions_completed: int = 0
    principal_returned: Decimal = Decimal("0")
    skipped: int = 0
    failed: list[int] = field(default_factory=list)


def accrual_dates(
    start_date: date,
    end_date: date,
    last_accrual_date: date | None,
    as_of: date,
) -> list[date]:
    """
    Calendar days still owed to a position.

    Args:
        start_date: Position start (no profit for the start day itself)
        end_date: Last day with profit
        last_accrual_date: Last day already credited
        as_of: Run date

    Returns:
        Consecutive dates from the day after the last accrual up to
        ``min(as_of, end_date)``
    """
    first = max(last_accrual_date or start_date, start_date) + timedelta(days=1)
    last = min(as_of, end_date)
    days = []
    current = first
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


class InvestmentAccrualScheduler:
    """Daily profit accrual over active investment positions."""

    def __init__(
        self,
        session: AsyncSession,
        notification_sink: NotificationSink | None = None,
        emergency_stop: bool = False,
    ) -> None:
        """
        Initialize accrual scheduler.

        Args:
            session: Async database session
            notification_sink: Receiver of maturity notifications
            emergency_stop: Turn runs into logged no-ops
        """
        self.session = session
        self.notification_sink = notification_sink
        self.emergency_stop = emergency_stop
        self.position_repo = InvestmentPositionRepository(session)
        self.accrual_repo = DailyAccrualRepository(session)
        self.ledger = LedgerStore(session)

    async def run_daily_accrual(self, as_of: date | None = None) -> AccrualRunSummary:
        """
        Accrue profit for every position due on or before ``as_of``.

        Args:
            as_of: Run date (today in UTC when omitted)

        Returns:
            AccrualRunSummary
        """
        as_of = as_of or utc_today()
        summary = AccrualRunSummary(as_of=as_of)

        if self.emergency_stop:
            logger.warning(
                f"Daily accrual for {as_of} skipped: emergency stop is active"
            )
            summary.halted = True
            return summary

        position_ids = await self.position_repo.find_due_ids(as_of)
        logger.info(f"Daily accrual for {as_of}: {len(position_ids)} positions due")

        for position_id in position_ids:
            try:
                outcome = await self._accrue_position(position_id, as_of)
            except DuplicateLedgerEntry:
                # Another run got there first
                summary.skipped += 1
                continue
            except LedgerError as e:
                logger.bind(position_id=position_id, as_of=as_of.isoformat()).error(
                    f"Accrual failed for position {position_id}: {e}",
                )
                summary.failed.append(position_id)
                continue

            if outcome is None:
                summary.skipped += 1
                continue

            summary.positions_processed += 1
            summary.accruals_posted += len(outcome.days)
            summary.total_profit += outcome.amount
            if outcome.completed:
                summary.positions_completed += 1
                summary.principal_returned += outcome.principal_returned
                await self._notify_matured(outcome)

        logger.bind(
            positions=summary.positions_processed,
            accruals=summary.accruals_posted,
            total_profit=str(summary.total_profit),
            completed=summary.positions_completed,
            failed=len(summary.failed),
        ).info(f"Daily accrual for {as_of} finished")
        return summary

    @with_auto_commit
    async def _accrue_position(
        self, position_id: int, as_of: date
    ) -> PositionAccrual | None:
        position = await self.position_repo.get_fresh(position_id, for_update=True)
        if position is None or position.status != InvestmentStatus.ACTIVE.value:
            return None

        days = accrual_dates(
            position.start_date, position.end_date, position.last_accrual_date, as_of
        )
        if not days:
            return None

        daily_profit = quantize_money(position.principal * position.daily_rate)
        outcome = PositionAccrual(position_id=position.id, user_id=position.user_id)

        for accrual_date in days:
            accrual = await self.accrual_repo.create(
                position_id=position.id,
                user_id=position.user_id,
                accrual_date=accrual_date,
                amount=daily_profit,
            )
            await self.ledger.post_transaction(
                position.user_id,
                TransactionType.DAILY_PROFIT,
                daily_profit,
                LedgerReference(REF_DAILY_ACCRUAL, accrual.id),
                description=f"Daily profit for {accrual_date.isoformat()}",
            )
            outcome.days.append(accrual_date)
            outcome.amount += daily_profit

        position.total_profit_earned = position.total_profit_earned + outcome.amount
        position.last_accrual_date = days[-1]

        if position.last_accrual_date >= position.end_date:
            position.status = InvestmentStatus.COMPLETED.value
            position.completed_at = utc_now()
            outcome.completed = True

            if position.principal_policy == PrincipalPolicy.RETURN.value:
                await self.ledger.post_transaction(
                    position.user_id,
                    TransactionType.INVESTMENT_RETURN,
                    position.principal,
                    LedgerReference(REF_INVESTMENT_POSITION, position.id),
                    description="Principal returned at maturity",
                )
                outcome.principal_returned = position.principal

        await self.session.flush()

        logger.bind(
            position_id=position.id,
            user_id=position.user_id,
            amount=str(outcome.amount),
            last_accrual_date=position.last_accrual_date.isoformat(),
            completed=outcome.completed,
        ).info(f"Position {position.id} accrued {len(days)} day(s)")
        return outcome

    async def _notify_matured(self, outcome: PositionAccrual) -> None:
        message = "Your investment has matured."
        if outcome.principal_returned:
            message += f" Principal of {outcome.principal_returned} returned to your balance."
        await notify_safely(
            self.notification_sink,
            outcome.user_id,
            notification_type="investment_completed",
            title="Investment completed",
            message=message,
            extra={"position_id": outcome.position_id},
        )
