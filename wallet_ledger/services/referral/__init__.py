"""
Referral services package.

Contains modular services for referral processing:
- chain: bounded, cycle-safe ancestor walk
- cascade: multi-level commission payouts
- statistics: commission listings and dashboard totals
"""

from wallet_ledger.services.referral.cascade import (
    CascadeResult,
    CascadeStopReason,
    CommissionCascadeEngine,
    FailedCommission,
    PaidCommission,
)
from wallet_ledger.services.referral.chain import ReferralAncestor, ReferralChainWalker
from wallet_ledger.services.referral.statistics import (
    BreakdownEntry,
    CommissionQueryService,
    CommissionStats,
)


__all__ = [
    # Chain
    "ReferralAncestor",
    "ReferralChainWalker",
    # Cascade
    "CommissionCascadeEngine",
    "CascadeResult",
    "CascadeStopReason",
    "PaidCommission",
    "FailedCommission",
    # Statistics
    "CommissionQueryService",
    "CommissionStats",
    "BreakdownEntry",
]
