"""
Unit tests for background job wiring.

Tests cover:
- Retry policy of the commission cascade actor
- Delayed enqueueing of cascade retries
- Scheduler job configuration
- Composition of worker-side wallet operations
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from jobs.operations import create_wallet_operations
from jobs.scheduler import (
    COMMISSION_SWEEP_JOB_ID,
    DAILY_ACCRUAL_JOB_ID,
    create_scheduler,
)
from jobs.tasks import commission_retry
from jobs.tasks.commission_retry import schedule_commission_retry, should_retry
from wallet_ledger.config.settings import Settings, settings
from wallet_ledger.utils.exceptions import (
    AlreadyProcessed,
    InsufficientFunds,
    LedgerWriteFailure,
)


class TestShouldRetry:
    """Test the commission retry policy."""

    def test_transient_failure_retried(self):
        """Write failures are retried."""
        assert should_retry(0, LedgerWriteFailure("level 2 failed")) is True

    def test_connection_drop_retried(self):
        """Dropped connections are retried."""
        error = OperationalError("INSERT", {}, Exception("server closed"))

        assert should_retry(1, error) is True

    def test_retry_budget(self, monkeypatch):
        """Retries stop at the configured maximum."""
        monkeypatch.setattr(settings, "commission_retry_max_retries", 2)

        assert should_retry(1, LedgerWriteFailure("x")) is True
        assert should_retry(2, LedgerWriteFailure("x")) is False

    def test_permanent_failure_not_retried(self):
        """Business errors are never retried."""
        assert should_retry(0, InsufficientFunds(1, Decimal("5"))) is False

    def test_already_done_not_retried(self):
        """Work already done is not retried."""
        assert should_retry(0, AlreadyProcessed("deposit 1")) is False


class TestScheduleCommissionRetry:
    """Test delayed cascade retries."""

    def test_sends_delayed_message(self, monkeypatch):
        """The actor is sent with the deposit id and configured delay."""
        sent = []
        monkeypatch.setattr(
            commission_retry.retry_commission_cascade,
            "send_with_options",
            lambda **options: sent.append(options),
        )
        monkeypatch.setattr(settings, "commission_retry_delay_ms", 30_000)

        schedule_commission_retry(17)

        assert sent == [{"args": (17,), "delay": 30_000}]


class TestCreateScheduler:
    """Test scheduler configuration."""

    def test_daily_accrual_job(self):
        """The accrual job runs daily at the configured UTC time."""
        config = Settings(
            database_url="sqlite+aiosqlite://",
            accrual_hour_utc=1,
            accrual_minute_utc=30,
        )

        scheduler = create_scheduler(config)
        job = scheduler.get_job(DAILY_ACCRUAL_JOB_ID)

        assert job is not None
        fields = {field.name: str(field) for field in job.trigger.fields}
        assert fields["hour"] == "1"
        assert fields["minute"] == "30"
        assert str(job.trigger.timezone) == "UTC"

    def test_registered_jobs(self):
        """Accrual and commission sweep are the only jobs."""
        scheduler = create_scheduler()

        assert sorted(job.id for job in scheduler.get_jobs()) == [
            COMMISSION_SWEEP_JOB_ID,
            DAILY_ACCRUAL_JOB_ID,
        ]

    def test_commission_sweep_interval(self):
        """The sweep runs at the configured interval."""
        config = Settings(
            database_url="sqlite+aiosqlite://",
            commission_sweep_interval_minutes=10,
        )

        job = create_scheduler(config).get_job(COMMISSION_SWEEP_JOB_ID)

        assert job is not None
        assert job.trigger.interval == timedelta(minutes=10)

    @pytest.mark.parametrize("hour", [24, -1])
    def test_invalid_hour_rejected(self, hour):
        """Hours outside 0-23 are rejected by settings."""
        with pytest.raises(ValueError):
            Settings(database_url="sqlite+aiosqlite://", accrual_hour_utc=hour)


class TestCreateWalletOperations:
    """Test worker-side composition."""

    def test_failed_cascades_schedule_retries(self):
        """Failed cascades are handed to the delayed retry actor."""
        operations = create_wallet_operations(MagicMock())

        assert operations.on_cascade_failure is schedule_commission_retry

    def test_reads_settings(self, monkeypatch):
        """Accrual stop and page size come from the settings."""
        monkeypatch.setattr(settings, "emergency_stop_accrual", True)
        monkeypatch.setattr(settings, "history_page_size", 20)

        operations = create_wallet_operations(MagicMock())

        assert operations.emergency_stop_accrual is True
        assert operations.history_page_size == 20

    def test_overrides(self):
        """Explicit keywords replace the configured ones."""
        operations = create_wallet_operations(MagicMock(), on_cascade_failure=None)

        assert operations.on_cascade_failure is None
