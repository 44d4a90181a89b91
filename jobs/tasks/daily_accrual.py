"""
Daily accrual task.

Credits daily profit to all active investment positions and completes
matured ones. Enqueued once a day by the scheduler; safe to run again for
the same date.
"""

from datetime import date

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401  (registers the broker)
from jobs.operations import create_wallet_operations
from jobs.utils.database import task_session_maker
from wallet_ledger.services.investment.accrual import AccrualRunSummary
from wallet_ledger.utils.exceptions import LedgerWriteFailure


@dramatiq.actor(max_retries=3, time_limit=600_000)  # 10 min timeout
def run_daily_accrual(as_of_iso: str | None = None) -> None:
    """
    Run the daily accrual.

    Args:
        as_of_iso: Run date as ``YYYY-MM-DD`` (today in UTC when omitted)
    """
    as_of = date.fromisoformat(as_of_iso) if as_of_iso else None
    logger.info(f"Starting daily accrual{f' for {as_of}' if as_of else ''}...")

    summary = run_async(_run_daily_accrual_async(as_of), "run_daily_accrual")

    if summary.failed:
        # Retry the whole run; accrued positions are skipped the second time
        raise LedgerWriteFailure(
            f"Daily accrual for {summary.as_of} failed for positions {summary.failed}"
        )


async def _run_daily_accrual_async(as_of: date | None) -> AccrualRunSummary:
    async with task_session_maker() as session_maker:
        return await accrue_with(session_maker, as_of)


async def accrue_with(
    session_maker: async_sessionmaker[AsyncSession],
    as_of: date | None = None,
) -> AccrualRunSummary:
    """
    Run the accrual against the given database.

    Args:
        session_maker: Session factory
        as_of: Run date

    Returns:
        AccrualRunSummary
    """
    operations = create_wallet_operations(session_maker)
    summary = await operations.run_daily_accrual(as_of)

    if summary.halted:
        logger.warning("Daily accrual halted by emergency stop")
    else:
        logger.info(
            f"Daily accrual complete: {summary.accruals_posted} accruals, "
            f"total: {summary.total_profit}, "
            f"{summary.positions_completed} positions completed"
        )
    return summary
