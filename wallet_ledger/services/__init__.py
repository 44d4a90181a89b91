"""
Services package.

Business logic layer on top of the repositories.
"""

from wallet_ledger.services.account_service import AccountOpenResult, AccountService
from wallet_ledger.services.game_service import GamePlayResult, GameService
from wallet_ledger.services.level_service import LevelService, LevelUpResult
from wallet_ledger.services.wallet_operations import WalletOperations


__all__ = [
    "AccountService",
    "AccountOpenResult",
    "GameService",
    "GamePlayResult",
    "LevelService",
    "LevelUpResult",
    "WalletOperations",
]
