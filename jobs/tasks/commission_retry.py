"""
Commission retry task.

Re-runs the referral cascade of an approved deposit whose payout failed
part-way. Levels already paid are skipped by their idempotency key, so the
actor can run any number of times.
"""

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobs.async_runner import run_async
from jobs.broker import broker  # noqa: F401  (registers the broker)
from jobs.utils.database import task_session_maker
from wallet_ledger.config.settings import settings
from wallet_ledger.services.referral.cascade import CascadeResult
from wallet_ledger.services.wallet_operations import WalletOperations
from wallet_ledger.utils.exceptions import (
    AlreadyProcessed,
    LedgerWriteFailure,
    is_retryable,
)


def should_retry(retries_so_far: int, exception: BaseException) -> bool:
    """Retry only transient failures, up to the configured count."""
    return (
        retries_so_far < settings.commission_retry_max_retries
        and is_retryable(exception)
    )


@dramatiq.actor(
    time_limit=300_000,  # 5 min timeout
    retry_when=should_retry,
    min_backoff=settings.commission_retry_delay_ms,
)
def retry_commission_cascade(deposit_id: int) -> None:
    """
    Pay the commission levels still owed for a deposit.

    Args:
        deposit_id: Approved deposit request ID
    """
    logger.info(f"Retrying commission cascade for deposit {deposit_id}...")
    run_async(
        _retry_commission_cascade_async(deposit_id), "retry_commission_cascade"
    )


def schedule_commission_retry(deposit_id: int) -> None:
    """Enqueue a delayed cascade retry; usable as ``on_cascade_failure``."""
    retry_commission_cascade.send_with_options(
        args=(deposit_id,),
        delay=settings.commission_retry_delay_ms,
    )
    logger.bind(deposit_id=deposit_id, delay_ms=settings.commission_retry_delay_ms).info(
        f"Commission retry scheduled for deposit {deposit_id}",
    )


async def _retry_commission_cascade_async(deposit_id: int) -> CascadeResult | None:
    async with task_session_maker() as session_maker:
        return await retry_with(session_maker, deposit_id)


async def retry_with(
    session_maker: async_sessionmaker[AsyncSession],
    deposit_id: int,
) -> CascadeResult | None:
    """
    Re-run a deposit cascade against the given database.

    Args:
        session_maker: Session factory
        deposit_id: Approved deposit request ID

    Returns:
        CascadeResult, or None when there is nothing to retry

    Raises:
        LedgerWriteFailure: Some levels failed again (retryable)
        LedgerError: Deposit missing (not retryable)
    """
    operations = WalletOperations(session_maker)
    try:
        result = await operations.retry_commission_cascade(deposit_id)
    except AlreadyProcessed as e:
        logger.info(f"Deposit {deposit_id} needs no cascade retry: {e}")
        return None

    if result.failed:
        levels = [item.level for item in result.failed]
        raise LedgerWriteFailure(
            f"Commission levels {levels} of deposit {deposit_id} still failing"
        )

    logger.bind(
        deposit_id=deposit_id,
        paid=len(result.paid),
        skipped=len(result.skipped),
        stop_reason=result.stop_reason.value if result.stop_reason else None,
    ).info(f"Commission cascade for deposit {deposit_id} settled")
    return result
