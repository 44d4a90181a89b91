"""
Approve or reject a pending deposit request.

Approval credits the balance and pays the referral commissions. When a
commission level cannot be paid, a delayed retry is queued on the worker
broker and the scheduled sweep catches anything the retry misses.

Usage:
    python scripts/review_deposit.py approve 17 --admin-id 1
    python scripts/review_deposit.py reject 17 --admin-id 1 --reason "No proof"
"""

import argparse
import asyncio
import sys
from pathlib import Path


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from jobs.operations import create_wallet_operations
from wallet_ledger.config.database import async_engine, async_session_maker
from wallet_ledger.utils.exceptions import AlreadyProcessed, RequestNotFound


# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def review(action: str, deposit_id: int, admin_id: int, reason: str | None) -> int:
    operations = create_wallet_operations(async_session_maker)
    try:
        if action == "reject":
            await operations.reject_deposit(deposit_id, admin_id, reason)
            logger.info(f"Deposit {deposit_id} rejected")
            return 0
        result = await operations.approve_deposit(deposit_id, admin_id)
    except (RequestNotFound, AlreadyProcessed) as e:
        logger.error(str(e))
        return 2
    finally:
        await async_engine.dispose()

    logger.info(
        f"Deposit {deposit_id} approved: {result.amount} credited to user "
        f"{result.user_id}, balance {result.balance_after}"
    )
    if result.cascade is not None:
        for commission in result.cascade.paid:
            logger.info(
                f"Level {commission.level}: {commission.amount} "
                f"to user {commission.referrer_user_id}"
            )
    if result.needs_cascade_retry:
        logger.warning("Some commission levels are unpaid; a retry has been queued")
        return 1
    return 0


def main():
    parser = argparse.ArgumentParser(description="Review a pending deposit request")
    parser.add_argument("action", choices=["approve", "reject"])
    parser.add_argument("deposit_id", type=int, help="Deposit request ID")
    parser.add_argument("--admin-id", type=int, required=True, help="Reviewing admin")
    parser.add_argument("--reason", default=None, help="Rejection reason")
    args = parser.parse_args()
    sys.exit(
        asyncio.run(review(args.action, args.deposit_id, args.admin_id, args.reason))
    )


if __name__ == "__main__":
    main()
