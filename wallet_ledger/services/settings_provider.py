"""
Settings provider.

Read access to referral program settings and investment plan terms.
The database provider lets admin-edited rows override configured
defaults key by key.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Protocol

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import (
    SETTING_MAX_LEVELS,
    SETTING_REFERRAL_ENABLED,
    SETTING_SIGNUP_BONUS,
    SETTING_SIGNUP_BONUS_ENABLED,
    level_percentage_key,
)
from wallet_ledger.config.settings import Settings
from wallet_ledger.models.enums import PrincipalPolicy
from wallet_ledger.repositories.investment_repository import InvestmentPlanRepository
from wallet_ledger.repositories.referral_setting_repository import (
    ReferralSettingRepository,
)
from wallet_ledger.utils.exceptions import PlanNotAvailable


@dataclass(frozen=True)
class ReferralSettings:
    """Snapshot of the referral program configuration."""

    enabled: bool
    max_levels: int
    # Percent units: Decimal("5") = 5 %
    level_percentages: dict[int, Decimal] = field(default_factory=dict)
    signup_bonus: Decimal = Decimal("0")
    signup_bonus_enabled: bool = False

    def percentage_for(self, level: int) -> Decimal | None:
        """
        Commission percentage of a level.

        Returns:
            Percentage, or None when the level is not configured (missing
            or zero), which ends the cascade
        """
        percentage = self.level_percentages.get(level)
        if percentage is None or percentage <= 0:
            return None
        return percentage

    @classmethod
    def from_config(cls, config: Settings) -> "ReferralSettings":
        """Defaults taken from application settings."""
        return cls(
            enabled=config.default_referral_enabled,
            max_levels=config.default_max_referral_levels,
            level_percentages=config.get_default_level_percentages(),
            signup_bonus=config.default_signup_bonus,
            signup_bonus_enabled=config.default_signup_bonus_enabled,
        )


@dataclass(frozen=True)
class InvestmentPlanTerms:
    """Terms of an investment plan as seen by subscription and accrual."""

    plan_id: int
    name: str
    daily_rate: Decimal
    duration_days: int
    minimum_amount: Decimal
    maximum_amount: Decimal | None
    principal_policy: PrincipalPolicy
    is_active: bool

    def accepts(self, amount: Decimal) -> bool:
        """Check an amount against the plan limits."""
        if amount < self.minimum_amount:
            return False
        if self.maximum_amount is not None and amount > self.maximum_amount:
            return False
        return True


class SettingsProvider(Protocol):
    """Source of referral settings and plan terms."""

    async def get_referral_settings(self) -> ReferralSettings:
        ...

    async def get_investment_plan(self, plan_id: int) -> InvestmentPlanTerms:
        ...


def parse_bool(raw: str) -> bool:
    """Parse a stored boolean (``'true'`` / ``'false'``)."""
    return raw.strip().lower() in {"true", "1", "yes", "on"}


def parse_decimal(raw: str) -> Decimal:
    """Parse a stored number."""
    return Decimal(raw.strip())


def merge_referral_settings(
    rows: dict[str, str], defaults: ReferralSettings
) -> ReferralSettings:
    """
    Overlay stored key/value rows on defaults.

    Unparseable values are logged and the default is kept.

    Args:
        rows: ``{setting_key: setting_value}`` as stored
        defaults: Values used for missing or broken keys

    Returns:
        Merged settings
    """
    enabled = defaults.enabled
    max_levels = defaults.max_levels
    signup_bonus = defaults.signup_bonus
    signup_bonus_enabled = defaults.signup_bonus_enabled

    if SETTING_REFERRAL_ENABLED in rows:
        enabled = parse_bool(rows[SETTING_REFERRAL_ENABLED])
    if SETTING_SIGNUP_BONUS_ENABLED in rows:
        signup_bonus_enabled = parse_bool(rows[SETTING_SIGNUP_BONUS_ENABLED])

    if SETTING_MAX_LEVELS in rows:
        try:
            parsed_levels = int(rows[SETTING_MAX_LEVELS].strip())
            if parsed_levels < 0:
                raise ValueError("negative level count")
            max_levels = parsed_levels
        except ValueError:
            logger.warning(
                f"Invalid {SETTING_MAX_LEVELS}: {rows[SETTING_MAX_LEVELS]!r}"
            )

    if SETTING_SIGNUP_BONUS in rows:
        try:
            signup_bonus = parse_decimal(rows[SETTING_SIGNUP_BONUS])
        except InvalidOperation:
            logger.warning(
                f"Invalid {SETTING_SIGNUP_BONUS}: {rows[SETTING_SIGNUP_BONUS]!r}"
            )

    percentages = dict(defaults.level_percentages)
    for level in range(1, max(max_levels, len(percentages)) + 1):
        key = level_percentage_key(level)
        if key not in rows:
            continue
        try:
            value = parse_decimal(rows[key])
        except InvalidOperation:
            logger.warning(f"Invalid {key}: {rows[key]!r}")
            continue
        if value < 0:
            logger.warning(f"Negative {key} ignored: {value}")
            continue
        percentages[level] = value

    return ReferralSettings(
        enabled=enabled,
        max_levels=max_levels,
        level_percentages=percentages,
        signup_bonus=signup_bonus,
        signup_bonus_enabled=signup_bonus_enabled,
    )


class DatabaseSettingsProvider:
    """Settings provider backed by ``referral_settings`` and ``investment_plans``."""

    def __init__(
        self,
        session: AsyncSession,
        defaults: ReferralSettings | None = None,
    ) -> None:
        """
        Initialize settings provider.

        Args:
            session: Async database session
            defaults: Referral defaults (application settings when omitted)
        """
        self.session = session
        self.setting_repo = ReferralSettingRepository(session)
        self.plan_repo = InvestmentPlanRepository(session)
        if defaults is None:
            from wallet_ledger.config.settings import settings

            defaults = ReferralSettings.from_config(settings)
        self.defaults = defaults

    async def get_referral_settings(self) -> ReferralSettings:
        """Current referral settings (stored rows over defaults)."""
        rows = await self.setting_repo.get_all_as_dict()
        return merge_referral_settings(rows, self.defaults)

    async def get_investment_plan(self, plan_id: int) -> InvestmentPlanTerms:
        """
        Terms of a plan.

        Raises:
            PlanNotAvailable: If the plan does not exist
        """
        plan = await self.plan_repo.get_by_id(plan_id)
        if plan is None:
            raise PlanNotAvailable(f"Investment plan {plan_id} not found")

        return InvestmentPlanTerms(
            plan_id=plan.id,
            name=plan.name,
            daily_rate=plan.daily_rate,
            duration_days=plan.duration_days,
            minimum_amount=plan.minimum_amount,
            maximum_amount=plan.maximum_amount,
            principal_policy=PrincipalPolicy(plan.principal_policy),
            is_active=plan.is_active,
        )
