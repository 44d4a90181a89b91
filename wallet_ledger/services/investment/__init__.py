"""
Investment services package.

- subscription: opening positions
- accrual: daily profit and maturity
"""

from wallet_ledger.services.investment.accrual import (
    AccrualRunSummary,
    InvestmentAccrualScheduler,
    PositionAccrual,
    accrual_dates,
)
from wallet_ledger.services.investment.subscription import (
    InvestmentSubscriptionService,
)


__all__ = [
    "InvestmentSubscriptionService",
    "InvestmentAccrualScheduler",
    "AccrualRunSummary",
    "PositionAccrual",
    "accrual_dates",
]
