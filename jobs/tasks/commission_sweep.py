"""
Commission sweep task.

Catches approved deposits whose cascade never settled: the approving
process died before paying, the retry message was lost, or retries ran
out. Each one is retried in place; paid levels are skipped.
"""

from dataclasses import dataclass, field
from datetime import timedelta

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401  (registers the broker)
from jobs.tasks.commission_retry import retry_with
from jobs.utils.database import task_session_maker
from wallet_ledger.config.settings import settings
from wallet_ledger.repositories.request_repository import DepositRequestRepository
from wallet_ledger.utils.datetime_utils import utc_now
from wallet_ledger.utils.exceptions import LedgerError, LedgerWriteFailure


@dataclass
class CommissionSweepSummary:
    """Outcome of one sweep."""

    checked: int = 0
    settled: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


@dramatiq.actor(max_retries=0, time_limit=900_000)  # 15 min timeout
def sweep_unsettled_commissions() -> None:
    """Retry every recent deposit whose commissions are still unsettled."""
    summary = run_async(_sweep_async(), "sweep_unsettled_commissions")

    if summary.failed:
        # Next scheduled sweep picks them up again
        raise LedgerWriteFailure(
            f"Commission sweep left deposits {summary.failed} unsettled"
        )


async def _sweep_async() -> CommissionSweepSummary:
    async with task_session_maker() as session_maker:
        return await sweep_with(session_maker)


async def sweep_with(
    session_maker: async_sessionmaker[AsyncSession],
    lookback: timedelta | None = None,
    grace: timedelta | None = None,
    limit: int | None = None,
) -> CommissionSweepSummary:
    """
    Sweep unsettled deposits against the given database.

    Args:
        session_maker: Session factory
        lookback: Oldest approval age considered
        grace: Approvals younger than this are skipped
        limit: Maximum deposits per sweep

    Returns:
        CommissionSweepSummary
    """
    lookback = lookback or timedelta(hours=settings.commission_sweep_lookback_hours)
    if grace is None:
        grace = timedelta(minutes=settings.commission_sweep_grace_minutes)
    now = utc_now()

    async with session_maker() as session:
        deposits = await DepositRequestRepository(session).find_unsettled_approved(
            processed_after=now - lookback,
            processed_before=now - grace,
            limit=limit or settings.commission_sweep_batch_size,
        )
        deposit_ids = [deposit.id for deposit in deposits]

    summary = CommissionSweepSummary(checked=len(deposit_ids))
    for deposit_id in deposit_ids:
        try:
            await retry_with(session_maker, deposit_id)
        except LedgerError as e:
            logger.bind(deposit_id=deposit_id).warning(
                f"Sweep could not settle deposit {deposit_id}: {e}",
            )
            summary.failed.append(deposit_id)
        else:
            summary.settled.append(deposit_id)

    if deposit_ids:
        logger.info(
            f"Commission sweep: {len(summary.settled)} settled, "
            f"{len(summary.failed)} still failing"
        )
    return summary
