"""
Unit tests for referral settings parsing and application settings.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from wallet_ledger.config.settings import Settings
from wallet_ledger.models.enums import PrincipalPolicy
from wallet_ledger.services.settings_provider import (
    InvestmentPlanTerms,
    ReferralSettings,
    merge_referral_settings,
    parse_bool,
)


DEFAULTS = ReferralSettings(
    enabled=True,
    max_levels=5,
    level_percentages={
        1: Decimal("5"),
        2: Decimal("3"),
        3: Decimal("2"),
        4: Decimal("1"),
        5: Decimal("0.5"),
    },
    signup_bonus=Decimal("50"),
    signup_bonus_enabled=True,
)


class TestParseBool:
    """Test stored boolean parsing."""

    @pytest.mark.parametrize("raw", ["true", "TRUE", " True ", "1", "yes", "on"])
    def test_truthy(self, raw):
        """Common truthy spellings parse as True."""
        assert parse_bool(raw) is True

    @pytest.mark.parametrize("raw", ["false", "0", "no", "", "maybe"])
    def test_falsy(self, raw):
        """Anything else parses as False."""
        assert parse_bool(raw) is False


class TestMergeReferralSettings:
    """Test overlaying stored rows on defaults."""

    def test_no_rows_keeps_defaults(self):
        """Without rows the defaults are returned."""
        assert merge_referral_settings({}, DEFAULTS) == DEFAULTS

    def test_rows_override_defaults(self):
        """Stored values replace defaults key by key."""
        merged = merge_referral_settings(
            {
                "referral_system_enabled": "false",
                "max_referral_levels": "2",
                "level1_percentage": "7.5",
                "referral_signup_bonus": "25",
                "enable_signup_bonus": "false",
            },
            DEFAULTS,
        )

        assert merged.enabled is False
        assert merged.max_levels == 2
        assert merged.level_percentages[1] == Decimal("7.5")
        assert merged.level_percentages[2] == Decimal("3")
        assert merged.signup_bonus == Decimal("25")
        assert merged.signup_bonus_enabled is False

    def test_invalid_values_keep_defaults(self):
        """Unparseable or negative values are ignored."""
        merged = merge_referral_settings(
            {
                "max_referral_levels": "many",
                "level1_percentage": "abc",
                "level2_percentage": "-1",
                "referral_signup_bonus": "lots",
            },
            DEFAULTS,
        )

        assert merged.max_levels == 5
        assert merged.level_percentages[1] == Decimal("5")
        assert merged.level_percentages[2] == Decimal("3")
        assert merged.signup_bonus == Decimal("50")

    def test_deeper_levels_can_be_configured(self):
        """Raising max levels lets extra level keys take effect."""
        merged = merge_referral_settings(
            {"max_referral_levels": "6", "level6_percentage": "0.25"},
            DEFAULTS,
        )

        assert merged.max_levels == 6
        assert merged.percentage_for(6) == Decimal("0.25")


class TestPercentageFor:
    """Test level percentage lookup."""

    def test_configured_level(self):
        """A configured level returns its percentage."""
        assert DEFAULTS.percentage_for(2) == Decimal("3")

    def test_missing_level(self):
        """A missing level is not configured."""
        assert DEFAULTS.percentage_for(6) is None

    def test_zero_level(self):
        """A zero percentage counts as not configured."""
        settings = ReferralSettings(
            enabled=True, max_levels=2, level_percentages={1: Decimal("5"), 2: Decimal("0")}
        )
        assert settings.percentage_for(2) is None


class TestInvestmentPlanTerms:
    """Test plan limit checks."""

    def _terms(self, maximum):
        return InvestmentPlanTerms(
            plan_id=1,
            name="Starter",
            daily_rate=Decimal("0.01"),
            duration_days=30,
            minimum_amount=Decimal("100"),
            maximum_amount=maximum,
            principal_policy=PrincipalPolicy.RETURN,
            is_active=True,
        )

    def test_within_limits(self):
        """Amounts inside the range are accepted."""
        assert self._terms(Decimal("1000")).accepts(Decimal("500")) is True

    def test_below_minimum(self):
        """Amounts under the minimum are refused."""
        assert self._terms(None).accepts(Decimal("99.99")) is False

    def test_above_maximum(self):
        """Amounts over the maximum are refused."""
        assert self._terms(Decimal("1000")).accepts(Decimal("1000.01")) is False

    def test_no_maximum(self):
        """Without a maximum any amount above the minimum is accepted."""
        assert self._terms(None).accepts(Decimal("1000000")) is True


class TestSettings:
    """Test application settings validation."""

    def test_default_level_percentages(self):
        """Default percentages parse into a level mapping."""
        config = Settings(database_url="sqlite+aiosqlite://")

        assert config.get_default_level_percentages() == {
            1: Decimal("5"),
            2: Decimal("3"),
            3: Decimal("2"),
            4: Decimal("1"),
            5: Decimal("0.5"),
        }

    def test_negative_percentage_rejected(self):
        """Negative level percentages fail validation."""
        with pytest.raises(ValidationError):
            Settings(database_url="sqlite+aiosqlite://", default_level_percentages="5,-1")

    def test_zero_levels_rejected(self):
        """A level count below one fails validation."""
        with pytest.raises(ValidationError):
            Settings(database_url="sqlite+aiosqlite://", default_max_referral_levels=0)

    def test_unknown_database_rejected(self):
        """Only PostgreSQL and SQLite URLs are accepted."""
        with pytest.raises(ValidationError):
            Settings(database_url="mysql://localhost/db")

    def test_sync_postgres_url_made_async(self):
        """A plain postgresql:// URL is switched to asyncpg."""
        config = Settings(database_url="postgresql://u:p@localhost/ledger")

        assert config.database_url == "postgresql+asyncpg://u:p@localhost/ledger"

    def test_log_level_normalized(self):
        """Log level names are upper-cased."""
        config = Settings(database_url="sqlite+aiosqlite://", log_level="warning")

        assert config.log_level == "WARNING"

    def test_from_config(self):
        """Referral defaults come from settings fields."""
        config = Settings(
            database_url="sqlite+aiosqlite://",
            default_max_referral_levels=3,
            default_level_percentages="4,2,1",
            default_signup_bonus=Decimal("10"),
        )

        defaults = ReferralSettings.from_config(config)

        assert defaults.max_levels == 3
        assert defaults.percentage_for(3) == Decimal("1")
        assert defaults.signup_bonus == Decimal("10")
