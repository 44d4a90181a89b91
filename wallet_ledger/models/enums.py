"""
Model enumerations.

Status and type values are stored as plain strings (``.value``).
"""

from enum import StrEnum


class TransactionType(StrEnum):
    """Ledger entry type."""

    DEPOSIT = "deposit"
    WITHDRAWAL_COMPLETED = "withdrawal_completed"
    WITHDRAWAL_REJECTED_REFUND = "withdrawal_rejected_refund"
    INVESTMENT_DEBIT = "investment_debit"
    INVESTMENT_RETURN = "investment_return"
    DAILY_PROFIT = "daily_profit"
    REFERRAL_COMMISSION = "referral_commission"
    SIGNUP_BONUS = "signup_bonus"
    LEVEL_UP_BONUS = "level_up_bonus"
    GAME = "game"


class TransactionStatus(StrEnum):
    """Ledger entry status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DepositStatus(StrEnum):
    """Deposit request status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WithdrawalStatus(StrEnum):
    """Withdrawal request status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class InvestmentStatus(StrEnum):
    """Investment position status."""

    ACTIVE = "active"
    COMPLETED = "completed"


class PrincipalPolicy(StrEnum):
    """What happens to the principal when a position matures."""

    RETURN = "return"
    RETAIN = "retain"


class CommissionStatus(StrEnum):
    """Referral commission status."""

    PENDING = "pending"
    COMPLETED = "completed"


class NotificationKind(StrEnum):
    """Notification audience."""

    BROADCAST = "broadcast"
    PERSONAL = "personal"


# Credits must be positive, debits negative; GAME may be either
CREDIT_TYPES = frozenset({
    TransactionType.DEPOSIT,
    TransactionType.WITHDRAWAL_REJECTED_REFUND,
    TransactionType.INVESTMENT_RETURN,
    TransactionType.DAILY_PROFIT,
    TransactionType.REFERRAL_COMMISSION,
    TransactionType.SIGNUP_BONUS,
    TransactionType.LEVEL_UP_BONUS,
})

DEBIT_TYPES = frozenset({
    TransactionType.WITHDRAWAL_COMPLETED,
    TransactionType.INVESTMENT_DEBIT,
})
