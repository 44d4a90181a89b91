"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from wallet_ledger.models.account import Account
from wallet_ledger.models.base import Base
from wallet_ledger.models.commission_record import CommissionRecord
from wallet_ledger.models.daily_accrual import DailyAccrual
from wallet_ledger.models.deposit_request import DepositRequest
from wallet_ledger.models.enums import (
    CommissionStatus,
    DepositStatus,
    InvestmentStatus,
    NotificationKind,
    PrincipalPolicy,
    TransactionStatus,
    TransactionType,
    WithdrawalStatus,
)
from wallet_ledger.models.game_play import GamePlay
from wallet_ledger.models.investment_plan import InvestmentPlan
from wallet_ledger.models.investment_position import InvestmentPosition
from wallet_ledger.models.notification import Notification, NotificationRead
from wallet_ledger.models.referral_setting import ReferralSetting
from wallet_ledger.models.transaction import Transaction
from wallet_ledger.models.user_level import UserLevel
from wallet_ledger.models.withdrawal_request import WithdrawalRequest


__all__ = [
    "Base",
    # Ledger
    "Account",
    "Transaction",
    # Requests
    "DepositRequest",
    "WithdrawalRequest",
    # Investments
    "InvestmentPlan",
    "InvestmentPosition",
    "DailyAccrual",
    # Referral
    "CommissionRecord",
    "ReferralSetting",
    "UserLevel",
    # Notifications
    "Notification",
    "NotificationRead",
    # Games
    "GamePlay",
    # Enums
    "CommissionStatus",
    "DepositStatus",
    "InvestmentStatus",
    "NotificationKind",
    "PrincipalPolicy",
    "TransactionStatus",
    "TransactionType",
    "WithdrawalStatus",
]
