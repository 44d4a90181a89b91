"""
Deposit services package.
"""

from wallet_ledger.services.deposit.state_machine import (
    DEPOSIT_TRIGGER,
    DepositApprovalResult,
    DepositRequestService,
)


__all__ = [
    "DEPOSIT_TRIGGER",
    "DepositApprovalResult",
    "DepositRequestService",
]
