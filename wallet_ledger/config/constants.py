"""
Ledger constants.

Money precision and referral setting keys.
"""

from decimal import Decimal


# Money is kept to the cent
MONEY_QUANT = Decimal("0.01")

# referral_settings keys
SETTING_REFERRAL_ENABLED = "referral_system_enabled"
SETTING_MAX_LEVELS = "max_referral_levels"
SETTING_SIGNUP_BONUS_ENABLED = "enable_signup_bonus"
SETTING_SIGNUP_BONUS = "referral_signup_bonus"
SETTING_LEVEL_PERCENTAGE_TEMPLATE = "level{level}_percentage"

# Ledger reference kinds
REF_DEPOSIT_REQUEST = "deposit_request"
REF_WITHDRAWAL_REQUEST = "withdrawal_request"
REF_INVESTMENT_POSITION = "investment_position"
REF_DAILY_ACCRUAL = "daily_accrual"
REF_COMMISSION = "commission_record"
REF_ACCOUNT = "account"
REF_GAME_PLAY = "game_play"
REF_USER_LEVEL = "user_level"


def level_percentage_key(level: int) -> str:
    """Setting key holding the commission percentage of a referral level."""
    return SETTING_LEVEL_PERCENTAGE_TEMPLATE.format(level=level)
