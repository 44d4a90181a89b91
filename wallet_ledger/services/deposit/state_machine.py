"""
Deposit request state machine.

pending -> approved (credits the balance, then runs the commission
cascade) or pending -> rejected (no balance effect). Transitions are
compare-and-swap updates, so concurrent approvals credit exactly once.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import REF_DEPOSIT_REQUEST
from wallet_ledger.models.deposit_request import DepositRequest
from wallet_ledger.models.enums import DepositStatus, TransactionType
from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.repositories.request_repository import DepositRequestRepository
from wallet_ledger.services.ledger.store import LedgerReference, LedgerStore
from wallet_ledger.services.level_service import LevelService, LevelUpResult
from wallet_ledger.services.notification.sink import NotificationSink, notify_safely
from wallet_ledger.services.referral.cascade import CascadeResult, CommissionCascadeEngine
from wallet_ledger.services.settings_provider import SettingsProvider
from wallet_ledger.utils.datetime_utils import utc_now
from wallet_ledger.utils.db_decorators import with_auto_commit
from wallet_ledger.utils.exceptions import (
    AccountNotFound,
    AlreadyProcessed,
    RequestNotFound,
)
from wallet_ledger.utils.money import require_positive


DEPOSIT_TRIGGER = "deposit"


@dataclass
class DepositApprovalResult:
    """Outcome of a deposit approval."""

    deposit_id: int
    user_id: int
    amount: Decimal
    transaction_id: int
    balance_after: Decimal
    processed_at: datetime
    cascade: CascadeResult | None = None
    cascade_error: str | None = None
    level_up: LevelUpResult | None = None
    level_up_error: str | None = None

    @property
    def needs_cascade_retry(self) -> bool:
        """True when some commission levels are still owed."""
        if self.cascade_error is not None:
            return True
        return self.cascade is not None and bool(self.cascade.failed)


class DepositRequestService:
    """Deposit request lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        settings_provider: SettingsProvider,
        notification_sink: NotificationSink | None = None,
    ) -> None:
        """
        Initialize deposit service.

        Args:
            session: Async database session
            settings_provider: Referral settings for the cascade
            notification_sink: Receiver of user notifications
        """
        self.session = session
        self.notification_sink = notification_sink
        self.deposit_repo = DepositRequestRepository(session)
        self.account_repo = AccountRepository(session)
        self.ledger = LedgerStore(session)
        self.cascade_engine = CommissionCascadeEngine(
            session, settings_provider, notification_sink
        )
        self.level_service = LevelService(session, notification_sink)

    @with_auto_commit
    async def submit(
        self,
        user_id: int,
        amount: Decimal,
        payment_method: str,
        external_reference: str | None = None,
        proof_url: str | None = None,
    ) -> DepositRequest:
        """
        Create a pending deposit request.

        Raises:
            InvalidAmount: Amount not positive
            AccountNotFound: No such account
        """
        amount = require_positive(amount, "Deposit amount")
        if not await self.account_repo.exists(user_id=user_id):
            raise AccountNotFound(user_id)

        deposit = await self.deposit_repo.create(
            user_id=user_id,
            amount=amount,
            payment_method=payment_method,
            external_reference=external_reference,
            proof_url=proof_url,
            status=DepositStatus.PENDING.value,
        )
        logger.bind(deposit_id=deposit.id, user_id=user_id, amount=str(amount)).info(
            f"Deposit request {deposit.id} submitted",
        )
        return deposit

    async def approve(self, deposit_id: int, admin_id: int) -> DepositApprovalResult:
        """
        Approve a pending deposit.

        The status change and the credit commit together. Notification, the
        commission cascade and the referrer's level check happen afterwards;
        their failures are reported in the result and never undo the
        deposit.

        Args:
            deposit_id: Deposit request ID
            admin_id: Approving admin

        Returns:
            DepositApprovalResult

        Raises:
            RequestNotFound: No such request
            AlreadyProcessed: Request is not pending
            LedgerWriteFailure: Store failure (request stays pending)
        """
        result = await self._credit_deposit(deposit_id, admin_id)

        logger.bind(
            deposit_id=deposit_id,
            user_id=result.user_id,
            amount=str(result.amount),
            transaction_id=result.transaction_id,
        ).info(f"Deposit {deposit_id} approved by admin {admin_id}")

        await notify_safely(
            self.notification_sink,
            result.user_id,
            notification_type="deposit_approved",
            title="Deposit approved",
            message=f"Your deposit of {result.amount} has been credited.",
            extra={"deposit_id": deposit_id},
        )

        await self._run_cascade(result)
        await self._check_referrer_level(result)
        return result

    async def retry_cascade(self, deposit_id: int) -> CascadeResult:
        """
        Re-run the cascade of an approved deposit.

        Levels already paid are skipped by their idempotency key. Once no
        level fails the deposit is stamped as settled.

        Raises:
            RequestNotFound: No such request
            AlreadyProcessed: Deposit is not approved
        """
        deposit = await self.deposit_repo.get_fresh(deposit_id)
        if deposit is None:
            raise RequestNotFound(f"Deposit request {deposit_id} not found")
        if deposit.status != DepositStatus.APPROVED.value:
            raise AlreadyProcessed(
                f"Deposit {deposit_id} is {deposit.status}, cascade not applicable"
            )
        result = await self.cascade_engine.run(
            deposit.user_id, deposit.amount, DEPOSIT_TRIGGER, deposit.id
        )
        if not result.failed:
            await self._mark_commissions_settled(deposit_id)
        return result

    @with_auto_commit
    async def reject(
        self, deposit_id: int, admin_id: int, reason: str | None = None
    ) -> DepositRequest:
        """
        Reject a pending deposit. No balance effect.

        Raises:
            RequestNotFound: No such request
            AlreadyProcessed: Request is not pending
        """
        changed = await self.deposit_repo.transition(
            deposit_id,
            DepositStatus.PENDING.value,
            DepositStatus.REJECTED.value,
            processed_at=utc_now(),
            processed_by=admin_id,
            admin_notes=reason,
        )
        deposit = await self.deposit_repo.get_fresh(deposit_id)
        if not changed:
            self._raise_not_pending(deposit_id, deposit)

        logger.bind(deposit_id=deposit_id, reason=reason).info(
            f"Deposit {deposit_id} rejected by admin {admin_id}",
        )
        return deposit

    @with_auto_commit
    async def _credit_deposit(
        self, deposit_id: int, admin_id: int
    ) -> DepositApprovalResult:
        processed_at = utc_now()
        changed = await self.deposit_repo.transition(
            deposit_id,
            DepositStatus.PENDING.value,
            DepositStatus.APPROVED.value,
            processed_at=processed_at,
            processed_by=admin_id,
        )
        deposit = await self.deposit_repo.get_fresh(deposit_id)
        if not changed:
            self._raise_not_pending(deposit_id, deposit)

        transaction = await self.ledger.post_transaction(
            deposit.user_id,
            TransactionType.DEPOSIT,
            deposit.amount,
            LedgerReference(REF_DEPOSIT_REQUEST, deposit.id),
            description=f"Deposit via {deposit.payment_method}",
        )

        return DepositApprovalResult(
            deposit_id=deposit.id,
            user_id=deposit.user_id,
            amount=deposit.amount,
            transaction_id=transaction.id,
            balance_after=transaction.balance_after,
            processed_at=processed_at,
        )

    async def _run_cascade(self, result: DepositApprovalResult) -> None:
        try:
            result.cascade = await self.cascade_engine.run(
                result.user_id, result.amount, DEPOSIT_TRIGGER, result.deposit_id
            )
            if not result.cascade.failed:
                await self._mark_commissions_settled(result.deposit_id)
        except Exception as e:
            # Deposit is committed; the cascade is retried separately
            await self.session.rollback()
            logger.bind(deposit_id=result.deposit_id, user_id=result.user_id).exception(
                f"Commission cascade failed for deposit {result.deposit_id}: {e}",
            )
            result.cascade_error = str(e)

    async def _check_referrer_level(self, result: DepositApprovalResult) -> None:
        try:
            _, referrer_id = await self.account_repo.get_referral_link(result.user_id)
            if referrer_id is not None:
                result.level_up = await self.level_service.check_and_upgrade(
                    referrer_id
                )
        except Exception as e:
            # Re-checked on the next deposit of any referral
            await self.session.rollback()
            logger.bind(deposit_id=result.deposit_id, user_id=result.user_id).exception(
                f"Referrer level check failed for deposit {result.deposit_id}: {e}",
            )
            result.level_up_error = str(e)

    @with_auto_commit
    async def _mark_commissions_settled(self, deposit_id: int) -> None:
        if await self.deposit_repo.mark_commissions_settled(deposit_id, utc_now()):
            logger.bind(deposit_id=deposit_id).debug(
                f"Commissions of deposit {deposit_id} settled",
            )

    @staticmethod
    def _raise_not_pending(deposit_id: int, deposit: DepositRequest | None) -> None:
        if deposit is None:
            raise RequestNotFound(f"Deposit request {deposit_id} not found")
        raise AlreadyProcessed(f"Deposit request {deposit_id} is already {deposit.status}")
