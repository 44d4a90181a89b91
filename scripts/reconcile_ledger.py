"""
Ledger reconciliation report.

Compares every account balance with the sum of its completed ledger
entries. Exits with status 1 when any account does not reconcile.

Usage:
    python scripts/reconcile_ledger.py
    python scripts/reconcile_ledger.py --user-id 42
"""

import argparse
import asyncio
import sys
from pathlib import Path


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from wallet_ledger.config.database import async_engine, async_session_maker
from wallet_ledger.services.wallet_operations import WalletOperations
from wallet_ledger.utils.exceptions import AccountNotFound


# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def reconcile(user_id: int | None) -> int:
    operations = WalletOperations(async_session_maker)
    try:
        try:
            reports = await operations.reconcile(user_id)
        except AccountNotFound as e:
            logger.error(str(e))
            return 2
    finally:
        await async_engine.dispose()

    broken = [report for report in reports if not report.is_consistent]
    for report in reports:
        if report.is_consistent:
            logger.info(f"Account {report.user_id}: balance {report.balance} reconciles")
        else:
            logger.error(
                f"Account {report.user_id}: balance {report.balance}, "
                f"ledger {report.ledger_total}, difference {report.difference}"
            )

    if broken:
        logger.error(f"{len(broken)} account(s) do not reconcile")
        return 1

    logger.success("Ledger reconciles")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Check account balances against the ledger"
    )
    parser.add_argument(
        "--user-id",
        type=int,
        default=None,
        help="Check a single account (default: all accounts)",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(reconcile(args.user_id)))


if __name__ == "__main__":
    main()
