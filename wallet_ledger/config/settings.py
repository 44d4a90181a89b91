"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal, InvalidOperation

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (for Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "development"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/wallet_ledger.log"
    log_rotation: str = "1 day"
    log_retention: str = "7 days"

    # Investment accrual
    accrual_hour_utc: int = Field(
        default=0, ge=0, le=23, description="UTC hour of the daily accrual run"
    )
    accrual_minute_utc: int = Field(
        default=5, ge=0, le=59, description="UTC minute of the daily accrual run"
    )
    emergency_stop_accrual: bool = Field(
        default=False,
        description="Halt daily profit accrual without touching positions",
    )

    # Commission retries
    commission_retry_delay_ms: int = Field(
        default=60_000, ge=0, description="Delay before a failed cascade is retried"
    )
    commission_retry_max_retries: int = Field(default=5, ge=0)
    commission_sweep_interval_minutes: int = Field(
        default=15, ge=1, description="How often unsettled deposits are swept"
    )
    commission_sweep_lookback_hours: int = Field(
        default=72, ge=1, description="Oldest approval the sweep still retries"
    )
    commission_sweep_grace_minutes: int = Field(
        default=5,
        ge=0,
        description="Approvals younger than this are left to their own cascade",
    )
    commission_sweep_batch_size: int = Field(default=100, ge=1)

    # Referral defaults (used when referral_settings has no row for a key)
    default_referral_enabled: bool = True
    default_max_referral_levels: int = Field(
        default=5, ge=1, description="Maximum referral depth paid by the cascade"
    )
    default_level_percentages: str = Field(
        default="5,3,2,1,0.5",
        description="Comma-separated commission percentages, level 1 first",
    )
    default_signup_bonus: Decimal = Field(default=Decimal("50"), ge=0)
    default_signup_bonus_enabled: bool = True

    # History
    history_page_size: int = Field(default=50, ge=1, le=500)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ('postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://')
        ):
            raise ValueError(
                'DATABASE_URL must start with postgresql://, '
                'postgresql+asyncpg:// or sqlite+aiosqlite://'
            )
        # Engines are always async
        if v.startswith('postgresql://'):
            return 'postgresql+asyncpg://' + v[len('postgresql://'):]
        return v

    @field_validator('default_level_percentages')
    @classmethod
    def validate_level_percentages(cls, v: str) -> str:
        """Reject malformed or negative level percentages."""
        for raw in v.split(","):
            raw = raw.strip()
            if not raw:
                continue
            try:
                value = Decimal(raw)
            except InvalidOperation as e:
                raise ValueError(f'Invalid level percentage: {raw}') from e
            if value < 0:
                raise ValueError(f'Level percentage must not be negative: {raw}')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown log level: {v}')
        return level

    def get_default_level_percentages(self) -> dict[int, Decimal]:
        """Parse level percentages into a {level: percent} mapping."""
        result: dict[int, Decimal] = {}
        level = 0
        for raw in self.default_level_percentages.split(","):
            raw = raw.strip()
            if not raw:
                continue
            level += 1
            try:
                result[level] = Decimal(raw)
            except InvalidOperation:
                logger.warning(f"Invalid level percentage for level {level}: {raw}")
        return result


# Global settings instance
settings = Settings()
