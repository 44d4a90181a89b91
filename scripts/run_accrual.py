"""
Run the daily investment accrual in-process.

For catch-up after an outage or a manual run; the scheduled run goes
through the dramatiq worker instead. Re-running a date is harmless.

Usage:
    python scripts/run_accrual.py
    python scripts/run_accrual.py --date 2026-10-17
"""

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from jobs.operations import create_wallet_operations
from wallet_ledger.config.database import async_engine, async_session_maker
from wallet_ledger.config.settings import settings


# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def run_accrual(as_of: date | None, force: bool) -> int:
    operations = create_wallet_operations(
        async_session_maker,
        emergency_stop_accrual=settings.emergency_stop_accrual and not force,
    )
    try:
        summary = await operations.run_daily_accrual(as_of)
    finally:
        await async_engine.dispose()

    if summary.halted:
        logger.warning("Emergency stop is active; use --force to run anyway")
        return 1

    logger.info(
        f"Accrual for {summary.as_of}: {summary.positions_processed} positions, "
        f"{summary.accruals_posted} accruals, total {summary.total_profit}, "
        f"{summary.positions_completed} completed, "
        f"principal returned {summary.principal_returned}"
    )
    if summary.failed:
        logger.error(f"Failed positions: {summary.failed}")
        return 1
    return 0


def main():
    parser = argparse.ArgumentParser(description="Run the daily investment accrual")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Accrual date YYYY-MM-DD (default: today UTC)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Run even when the emergency stop is active",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(run_accrual(args.date, args.force)))


if __name__ == "__main__":
    main()
