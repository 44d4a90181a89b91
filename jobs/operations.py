"""
Wallet operations as wired for workers, the scheduler and admin scripts.

Deposits that still owe commissions after approval get a delayed retry
enqueued on the dramatiq broker.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobs.tasks.commission_retry import schedule_commission_retry
from wallet_ledger.config.settings import settings
from wallet_ledger.services.wallet_operations import WalletOperations


def create_wallet_operations(
    session_maker: async_sessionmaker[AsyncSession],
    **overrides: Any,
) -> WalletOperations:
    """
    Build WalletOperations from the application settings.

    Args:
        session_maker: Session factory
        **overrides: Constructor keywords replacing the configured ones

    Returns:
        WalletOperations with cascade retries scheduled on failure
    """
    options: dict[str, Any] = {
        "on_cascade_failure": schedule_commission_retry,
        "emergency_stop_accrual": settings.emergency_stop_accrual,
        "history_page_size": settings.history_page_size,
    }
    options.update(overrides)
    return WalletOperations(session_maker, **options)
