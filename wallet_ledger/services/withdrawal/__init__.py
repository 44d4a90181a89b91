"""
Withdrawal services package.
"""

from wallet_ledger.services.withdrawal.state_machine import (
    WithdrawalApprovalResult,
    WithdrawalRefundResult,
    WithdrawalRequestService,
)


__all__ = [
    "WithdrawalApprovalResult",
    "WithdrawalRefundResult",
    "WithdrawalRequestService",
]
