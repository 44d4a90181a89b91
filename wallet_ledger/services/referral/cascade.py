"""
Commission cascade engine.

Pays referral commissions up the referrer chain after a triggering event
(a deposit approval). Each level is its own unit of work keyed by
(referrer, referred, trigger type, trigger reference, level), so a failed
level never undoes the trigger or other levels, and re-running a cascade
only fills in what is missing.
"""

from contextlib import aclosing
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import REF_COMMISSION
from wallet_ledger.models.commission_record import CommissionRecord
from wallet_ledger.models.enums import CommissionStatus, TransactionType
from wallet_ledger.models.transaction import Transaction
from wallet_ledger.repositories.commission_repository import CommissionRecordRepository
from wallet_ledger.services.ledger.store import LedgerReference, LedgerStore
from wallet_ledger.services.notification.sink import NotificationSink, notify_safely
from wallet_ledger.services.referral.chain import ReferralAncestor, ReferralChainWalker
from wallet_ledger.services.settings_provider import SettingsProvider
from wallet_ledger.utils.db_decorators import with_auto_commit
from wallet_ledger.utils.exceptions import (
    DuplicateLedgerEntry,
    InvalidAmount,
    InvalidReferralChain,
    LedgerError,
)
from wallet_ledger.utils.money import percentage_of, quantize_money


class CascadeStopReason(StrEnum):
    """Why a cascade stopped walking."""

    DISABLED = "disabled"
    CHAIN_EXHAUSTED = "chain_exhausted"
    MAX_LEVELS = "max_levels"
    LEVEL_NOT_CONFIGURED = "level_not_configured"
    CYCLE = "cycle"


@dataclass
class PaidCommission:
    """A commission paid by this run."""

    level: int
    referrer_user_id: int
    percentage: Decimal
    amount: Decimal
    record_id: int
    transaction_id: int


@dataclass
class FailedCommission:
    """A level whose payout failed and can be retried."""

    level: int
    referrer_user_id: int
    amount: Decimal
    error: str


@dataclass
class CascadeResult:
    """Outcome of one cascade run."""

    trigger_user_id: int
    trigger_type: str
    trigger_reference_id: str
    paid: list[PaidCommission] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)  # levels already paid
    failed: list[FailedCommission] = field(default_factory=list)
    stop_reason: CascadeStopReason | None = None
    error: LedgerError | None = None

    @property
    def total_paid(self) -> Decimal:
        return sum((item.amount for item in self.paid), Decimal("0"))

    @property
    def is_complete(self) -> bool:
        """True when nothing is left to retry."""
        return not self.failed and self.stop_reason != CascadeStopReason.CYCLE


class CommissionCascadeEngine:
    """Multi-level referral commission payouts."""

    def __init__(
        self,
        session: AsyncSession,
        settings_provider: SettingsProvider,
        notification_sink: NotificationSink | None = None,
    ) -> None:
        """
        Initialize cascade engine.

        Args:
            session: Async database session
            settings_provider: Source of referral settings
            notification_sink: Receiver of payout notifications
        """
        self.session = session
        self.settings_provider = settings_provider
        self.notification_sink = notification_sink
        self.ledger = LedgerStore(session)
        self.commission_repo = CommissionRecordRepository(session)
        self.chain_walker = ReferralChainWalker(session)

    async def run(
        self,
        trigger_user_id: int,
        trigger_amount: Decimal,
        trigger_type: str,
        trigger_reference_id: int | str,
    ) -> CascadeResult:
        """
        Pay commissions for one triggering event.

        Settings are read once at the start; edits made while the cascade
        runs apply to the next cascade.

        Args:
            trigger_user_id: User whose action triggered the cascade
            trigger_amount: Amount commissions are computed from
            trigger_type: Trigger kind (e.g. ``deposit``)
            trigger_reference_id: ID of the triggering event

        Returns:
            CascadeResult with paid, skipped and failed levels

        Raises:
            InvalidAmount: If the trigger amount is not positive
        """
        trigger_amount = quantize_money(trigger_amount)
        if trigger_amount <= 0:
            raise InvalidAmount(f"Trigger amount must be positive, got {trigger_amount}")

        trigger_reference_id = str(trigger_reference_id)
        result = CascadeResult(
            trigger_user_id=trigger_user_id,
            trigger_type=trigger_type,
            trigger_reference_id=trigger_reference_id,
        )

        snapshot = await self.settings_provider.get_referral_settings()
        if not snapshot.enabled:
            logger.bind(user_id=trigger_user_id, trigger=trigger_reference_id).info(
                "Referral system disabled, cascade skipped",
            )
            result.stop_reason = CascadeStopReason.DISABLED
            return result

        last_level = 0
        try:
            ancestors = self.chain_walker.ancestors(trigger_user_id, snapshot.max_levels)
            async with aclosing(ancestors):
                async for ancestor in ancestors:
                    last_level = ancestor.level
                    percentage = snapshot.percentage_for(ancestor.level)
                    if percentage is None:
                        result.stop_reason = CascadeStopReason.LEVEL_NOT_CONFIGURED
                        break

                    await self._process_level(
                        result, ancestor, percentage, trigger_amount
                    )
        except InvalidReferralChain as e:
            result.stop_reason = CascadeStopReason.CYCLE
            result.error = e

        if result.stop_reason is None:
            if last_level >= snapshot.max_levels:
                result.stop_reason = CascadeStopReason.MAX_LEVELS
            else:
                result.stop_reason = CascadeStopReason.CHAIN_EXHAUSTED

        logger.bind(
            user_id=trigger_user_id,
            trigger_type=trigger_type,
            trigger=trigger_reference_id,
            paid=len(result.paid),
            skipped=len(result.skipped),
            failed=len(result.failed),
            total_paid=str(result.total_paid),
            stop_reason=result.stop_reason.value,
        ).info("Commission cascade finished")
        return result

    async def _process_level(
        self,
        result: CascadeResult,
        ancestor: ReferralAncestor,
        percentage: Decimal,
        trigger_amount: Decimal,
    ) -> None:
        amount = percentage_of(trigger_amount, percentage)
        if amount <= 0:
            logger.bind(
                trigger_amount=str(trigger_amount), percentage=str(percentage)
            ).debug(
                f"Commission for level {ancestor.level} rounds to zero",
            )
            return

        existing = await self.commission_repo.get_by_key(
            ancestor.user_id,
            result.trigger_user_id,
            result.trigger_type,
            result.trigger_reference_id,
            ancestor.level,
        )
        if existing is not None:
            result.skipped.append(ancestor.level)
            return

        try:
            record, transaction = await self._pay_level(
                ancestor, result, percentage, amount, trigger_amount
            )
        except DuplicateLedgerEntry:
            # A concurrent run paid this level first
            result.skipped.append(ancestor.level)
            return
        except LedgerError as e:
            logger.bind(
                referrer_id=ancestor.user_id,
                user_id=result.trigger_user_id,
                trigger=result.trigger_reference_id,
                amount=str(amount),
            ).error(
                f"Commission payout failed at level {ancestor.level}: {e}",
            )
            result.failed.append(
                FailedCommission(
                    level=ancestor.level,
                    referrer_user_id=ancestor.user_id,
                    amount=amount,
                    error=str(e),
                )
            )
            return

        result.paid.append(
            PaidCommission(
                level=ancestor.level,
                referrer_user_id=ancestor.user_id,
                percentage=percentage,
                amount=amount,
                record_id=record.id,
                transaction_id=transaction.id,
            )
        )

        await notify_safely(
            self.notification_sink,
            ancestor.user_id,
            notification_type="referral_commission",
            title="Referral commission received",
            message=(
                f"You earned {amount} ({percentage}%) from a level "
                f"{ancestor.level} referral {result.trigger_type}."
            ),
            extra={"level": ancestor.level, "amount": str(amount)},
        )

    @with_auto_commit
    async def _pay_level(
        self,
        ancestor: ReferralAncestor,
        result: CascadeResult,
        percentage: Decimal,
        amount: Decimal,
        trigger_amount: Decimal,
    ) -> tuple[CommissionRecord, Transaction]:
        """Record and credit one level as a single unit of work."""
        record = await self.commission_repo.create(
            referrer_user_id=ancestor.user_id,
            referred_user_id=result.trigger_user_id,
            level=ancestor.level,
            trigger_type=result.trigger_type,
            trigger_reference_id=result.trigger_reference_id,
            trigger_amount=trigger_amount,
            commission_percentage=percentage,
            commission_amount=amount,
            status=CommissionStatus.COMPLETED.value,
        )
        transaction = await self.ledger.post_transaction(
            ancestor.user_id,
            TransactionType.REFERRAL_COMMISSION,
            amount,
            LedgerReference(REF_COMMISSION, record.id),
            description=(
                f"Level {ancestor.level} commission ({percentage}%) on "
                f"{result.trigger_type} {result.trigger_reference_id}"
            ),
        )
        return record, transaction
