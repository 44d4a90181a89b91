"""
Repositories package.

Data access layer; services never build queries against models directly
for anything a repository already offers.
"""

from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.repositories.base import BaseRepository
from wallet_ledger.repositories.commission_repository import (
    CommissionRecordRepository,
)
from wallet_ledger.repositories.game_play_repository import GamePlayRepository
from wallet_ledger.repositories.investment_repository import (
    DailyAccrualRepository,
    InvestmentPlanRepository,
    InvestmentPositionRepository,
)
from wallet_ledger.repositories.notification_repository import (
    NotificationRepository,
)
from wallet_ledger.repositories.referral_setting_repository import (
    ReferralSettingRepository,
)
from wallet_ledger.repositories.request_repository import (
    DepositRequestRepository,
    WithdrawalRequestRepository,
)
from wallet_ledger.repositories.transaction_repository import (
    TransactionRepository,
)
from wallet_ledger.repositories.user_level_repository import UserLevelRepository


__all__ = [
    "BaseRepository",
    "AccountRepository",
    "TransactionRepository",
    "DepositRequestRepository",
    "WithdrawalRequestRepository",
    "InvestmentPlanRepository",
    "InvestmentPositionRepository",
    "DailyAccrualRepository",
    "CommissionRecordRepository",
    "ReferralSettingRepository",
    "NotificationRepository",
    "GamePlayRepository",
    "UserLevelRepository",
]
