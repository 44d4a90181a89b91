"""
Withdrawal request state machine.

Nothing is reserved at submission. Approval re-checks the committed
balance, flips pending -> completed with a compare-and-swap update and
debits the balance in the same unit of work. Rejection is terminal.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import REF_WITHDRAWAL_REQUEST
from wallet_ledger.models.enums import TransactionType, WithdrawalStatus
from wallet_ledger.models.withdrawal_request import WithdrawalRequest
from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.repositories.request_repository import WithdrawalRequestRepository
from wallet_ledger.repositories.transaction_repository import TransactionRepository
from wallet_ledger.services.ledger.store import LedgerReference, LedgerStore
from wallet_ledger.services.notification.sink import NotificationSink, notify_safely
from wallet_ledger.utils.datetime_utils import utc_now
from wallet_ledger.utils.db_decorators import with_auto_commit
from wallet_ledger.utils.exceptions import (
    AccountNotFound,
    AlreadyProcessed,
    InsufficientFunds,
    RequestNotFound,
)
from wallet_ledger.utils.money import require_positive


@dataclass
class WithdrawalApprovalResult:
    """Outcome of a withdrawal approval."""

    withdrawal_id: int
    user_id: int
    amount: Decimal
    transaction_id: int
    balance_after: Decimal
    processed_at: datetime


@dataclass
class WithdrawalRefundResult:
    """Outcome of reversing a completed withdrawal."""

    withdrawal_id: int
    user_id: int
    amount: Decimal
    transaction_id: int
    balance_after: Decimal


class WithdrawalRequestService:
    """Withdrawal request lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        notification_sink: NotificationSink | None = None,
    ) -> None:
        """
        Initialize withdrawal service.

        Args:
            session: Async database session
            notification_sink: Receiver of user notifications
        """
        self.session = session
        self.notification_sink = notification_sink
        self.withdrawal_repo = WithdrawalRequestRepository(session)
        self.account_repo = AccountRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.ledger = LedgerStore(session)

    @with_auto_commit
    async def submit(
        self,
        user_id: int,
        amount: Decimal,
        payout_method: str,
        payout_details: str | None = None,
    ) -> WithdrawalRequest:
        """
        Create a pending withdrawal request.

        The amount may exceed the current balance; it is checked again
        on approval.

        Raises:
            InvalidAmount: Amount not positive
            AccountNotFound: No such account
        """
        amount = require_positive(amount, "Withdrawal amount")
        if not await self.account_repo.exists(user_id=user_id):
            raise AccountNotFound(user_id)

        withdrawal = await self.withdrawal_repo.create(
            user_id=user_id,
            amount=amount,
            payout_method=payout_method,
            payout_details=payout_details,
            status=WithdrawalStatus.PENDING.value,
        )
        logger.bind(withdrawal_id=withdrawal.id, user_id=user_id, amount=str(amount)).info(
            f"Withdrawal request {withdrawal.id} submitted",
        )
        return withdrawal

    async def approve(
        self, withdrawal_id: int, admin_id: int
    ) -> WithdrawalApprovalResult:
        """
        Approve a pending withdrawal and debit the balance.

        Args:
            withdrawal_id: Withdrawal request ID
            admin_id: Approving admin

        Returns:
            WithdrawalApprovalResult

        Raises:
            RequestNotFound: No such request
            AlreadyProcessed: Request is not pending
            InsufficientFunds: Balance below the amount (request stays pending)
            LedgerWriteFailure: Store failure (request stays pending)
        """
        result = await self._debit_withdrawal(withdrawal_id, admin_id)

        logger.bind(
            withdrawal_id=withdrawal_id,
            user_id=result.user_id,
            amount=str(result.amount),
            transaction_id=result.transaction_id,
        ).info(f"Withdrawal {withdrawal_id} approved by admin {admin_id}")

        await notify_safely(
            self.notification_sink,
            result.user_id,
            notification_type="withdrawal_completed",
            title="Withdrawal completed",
            message=f"Your withdrawal of {result.amount} has been processed.",
            extra={"withdrawal_id": withdrawal_id},
        )
        return result

    async def reject(
        self, withdrawal_id: int, admin_id: int, reason: str | None = None
    ) -> WithdrawalRequest:
        """
        Reject a pending withdrawal. No ledger entry; the request is final.

        Raises:
            RequestNotFound: No such request
            AlreadyProcessed: Request is not pending
        """
        withdrawal = await self._mark_failed(withdrawal_id, admin_id, reason)

        await notify_safely(
            self.notification_sink,
            withdrawal.user_id,
            notification_type="withdrawal_rejected",
            title="Withdrawal rejected",
            message=reason or "Your withdrawal request was rejected.",
            extra={"withdrawal_id": withdrawal_id},
        )
        return withdrawal

    @with_auto_commit
    async def refund(
        self, withdrawal_id: int, admin_id: int, reason: str | None = None
    ) -> WithdrawalRefundResult:
        """
        Reverse a completed withdrawal with an offsetting credit.

        The request record keeps its ``completed`` status; the refund is a
        new ledger entry referencing it.

        Raises:
            RequestNotFound: No such request
            AlreadyProcessed: Withdrawal not completed, or already refunded
        """
        withdrawal = await self.withdrawal_repo.get_fresh(withdrawal_id)
        if withdrawal is None:
            raise RequestNotFound(f"Withdrawal request {withdrawal_id} not found")
        if withdrawal.status != WithdrawalStatus.COMPLETED.value:
            raise AlreadyProcessed(
                f"Withdrawal {withdrawal_id} is {withdrawal.status}, nothing to refund"
            )

        reference = LedgerReference(REF_WITHDRAWAL_REQUEST, withdrawal.id)
        existing = await self.transaction_repo.get_by_reference(
            TransactionType.WITHDRAWAL_REJECTED_REFUND.value,
            reference.kind,
            str(reference.id),
        )
        if existing is not None:
            raise AlreadyProcessed(f"Withdrawal {withdrawal_id} already refunded")

        try:
            transaction = await self.ledger.post_transaction(
                withdrawal.user_id,
                TransactionType.WITHDRAWAL_REJECTED_REFUND,
                withdrawal.amount,
                reference,
                description=reason or f"Refund of withdrawal {withdrawal.id}",
            )
        except IntegrityError as e:
            # Concurrent refund won the unique reference
            raise AlreadyProcessed(f"Withdrawal {withdrawal_id} already refunded") from e

        logger.bind(
            withdrawal_id=withdrawal_id,
            user_id=withdrawal.user_id,
            amount=str(withdrawal.amount),
            reason=reason,
        ).warning(f"Withdrawal {withdrawal_id} refunded by admin {admin_id}")
        return WithdrawalRefundResult(
            withdrawal_id=withdrawal.id,
            user_id=withdrawal.user_id,
            amount=withdrawal.amount,
            transaction_id=transaction.id,
            balance_after=transaction.balance_after,
        )

    @with_auto_commit
    async def _debit_withdrawal(
        self, withdrawal_id: int, admin_id: int
    ) -> WithdrawalApprovalResult:
        withdrawal = await self.withdrawal_repo.get_fresh(withdrawal_id)
        if withdrawal is None:
            raise RequestNotFound(f"Withdrawal request {withdrawal_id} not found")
        if withdrawal.status != WithdrawalStatus.PENDING.value:
            raise AlreadyProcessed(
                f"Withdrawal request {withdrawal_id} is already {withdrawal.status}"
            )

        balance = await self.account_repo.get_balance(withdrawal.user_id)
        if balance is None:
            raise AccountNotFound(withdrawal.user_id)
        if balance < withdrawal.amount:
            logger.bind(
                withdrawal_id=withdrawal_id,
                user_id=withdrawal.user_id,
                amount=str(withdrawal.amount),
                balance=str(balance),
            ).warning(
                f"Withdrawal {withdrawal_id} exceeds balance, left pending",
            )
            raise InsufficientFunds(withdrawal.user_id, withdrawal.amount, balance)

        processed_at = utc_now()
        changed = await self.withdrawal_repo.transition(
            withdrawal_id,
            WithdrawalStatus.PENDING.value,
            WithdrawalStatus.COMPLETED.value,
            processed_at=processed_at,
            processed_by=admin_id,
        )
        if not changed:
            # Lost the race against another approval or rejection
            raise AlreadyProcessed(
                f"Withdrawal request {withdrawal_id} was processed concurrently"
            )

        # Balance may have moved since the check; the store re-checks it
        transaction = await self.ledger.post_transaction(
            withdrawal.user_id,
            TransactionType.WITHDRAWAL_COMPLETED,
            -withdrawal.amount,
            LedgerReference(REF_WITHDRAWAL_REQUEST, withdrawal.id),
            allow_negative=True,
            description=f"Withdrawal via {withdrawal.payout_method}",
        )

        return WithdrawalApprovalResult(
            withdrawal_id=withdrawal.id,
            user_id=withdrawal.user_id,
            amount=withdrawal.amount,
            transaction_id=transaction.id,
            balance_after=transaction.balance_after,
            processed_at=processed_at,
        )

    @with_auto_commit
    async def _mark_failed(
        self, withdrawal_id: int, admin_id: int, reason: str | None
    ) -> WithdrawalRequest:
        changed = await self.withdrawal_repo.transition(
            withdrawal_id,
            WithdrawalStatus.PENDING.value,
            WithdrawalStatus.FAILED.value,
            processed_at=utc_now(),
            processed_by=admin_id,
            admin_notes=reason,
        )
        withdrawal = await self.withdrawal_repo.get_fresh(withdrawal_id)
        if withdrawal is None:
            raise RequestNotFound(f"Withdrawal request {withdrawal_id} not found")
        if not changed:
            raise AlreadyProcessed(
                f"Withdrawal request {withdrawal_id} is already {withdrawal.status}"
            )

        logger.bind(withdrawal_id=withdrawal_id, reason=reason).info(
            f"Withdrawal {withdrawal_id} rejected by admin {admin_id}",
        )
        return withdrawal
