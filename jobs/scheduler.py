"""
Job scheduler.

Enqueues the daily accrual actor on a UTC cron schedule and the
commission sweep every few minutes. Run as ``python -m jobs.scheduler``;
dramatiq workers do the actual work.
"""

import asyncio

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from jobs.tasks.commission_sweep import sweep_unsettled_commissions
from jobs.tasks.daily_accrual import run_daily_accrual
from wallet_ledger.config.logging import setup_logging
from wallet_ledger.config.settings import Settings, settings
from wallet_ledger.utils.datetime_utils import utc_today

DAILY_ACCRUAL_JOB_ID = "daily_accrual"
COMMISSION_SWEEP_JOB_ID = "commission_sweep"


def enqueue_daily_accrual() -> None:
    """Send today's accrual run to the workers."""
    as_of = utc_today().isoformat()
    run_daily_accrual.send(as_of)
    logger.info(f"Daily accrual for {as_of} enqueued")


def enqueue_commission_sweep() -> None:
    """Send a sweep of unsettled deposit commissions to the workers."""
    sweep_unsettled_commissions.send()
    logger.debug("Commission sweep enqueued")


def create_scheduler(config: Settings | None = None) -> AsyncIOScheduler:
    """
    Build the scheduler with the daily accrual and commission sweep jobs.

    Args:
        config: Settings (module settings when omitted)

    Returns:
        Configured, not yet started scheduler
    """
    config = config or settings
    scheduler = AsyncIOScheduler(
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 3600,
        },
        timezone="UTC",
    )
    scheduler.add_job(
        enqueue_daily_accrual,
        trigger=CronTrigger(
            hour=config.accrual_hour_utc,
            minute=config.accrual_minute_utc,
            timezone="UTC",
        ),
        id=DAILY_ACCRUAL_JOB_ID,
        name="Daily investment accrual",
        replace_existing=True,
    )
    scheduler.add_job(
        enqueue_commission_sweep,
        trigger=IntervalTrigger(
            minutes=config.commission_sweep_interval_minutes, timezone="UTC"
        ),
        id=COMMISSION_SWEEP_JOB_ID,
        name="Commission sweep",
        replace_existing=True,
    )
    return scheduler


async def main() -> None:
    setup_logging()
    scheduler = create_scheduler()
    scheduler.start()
    logger.info(
        f"Scheduler started: daily accrual at "
        f"{settings.accrual_hour_utc:02d}:{settings.accrual_minute_utc:02d} UTC"
        f", commission sweep every {settings.commission_sweep_interval_minutes} min"
    )
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
