"""
Back-office wallet operations.

Entry points for admin actions and scheduled runs. Each call opens its own
session, so one operation is one unit of work (or one per commission
level for the cascade).
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import date
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wallet_ledger.models.deposit_request import DepositRequest
from wallet_ledger.models.investment_position import InvestmentPosition
from wallet_ledger.models.transaction import Transaction
from wallet_ledger.models.withdrawal_request import WithdrawalRequest
from wallet_ledger.services.account_service import AccountOpenResult, AccountService
from wallet_ledger.services.deposit.state_machine import (
    DepositApprovalResult,
    DepositRequestService,
)
from wallet_ledger.services.investment.accrual import (
    AccrualRunSummary,
    InvestmentAccrualScheduler,
)
from wallet_ledger.services.investment.subscription import (
    InvestmentSubscriptionService,
)
from wallet_ledger.services.ledger.history import HistoryCursor, TransactionHistory
from wallet_ledger.services.ledger.store import LedgerStore, ReconciliationReport
from wallet_ledger.services.level_service import LevelService, LevelUpResult
from wallet_ledger.services.notification.sink import (
    NotificationSink,
    PersistentNotificationSink,
)
from wallet_ledger.services.referral.cascade import CascadeResult
from wallet_ledger.services.settings_provider import (
    DatabaseSettingsProvider,
    SettingsProvider,
)
from wallet_ledger.services.withdrawal.state_machine import (
    WithdrawalApprovalResult,
    WithdrawalRefundResult,
    WithdrawalRequestService,
)


SettingsProviderFactory = Callable[[AsyncSession], SettingsProvider]
CascadeFailureHandler = Callable[[int], Awaitable[None] | None]


class WalletOperations:
    """Facade over the ledger services, one session per operation."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        settings_provider_factory: SettingsProviderFactory | None = None,
        notification_sink: NotificationSink | None = None,
        on_cascade_failure: CascadeFailureHandler | None = None,
        emergency_stop_accrual: bool = False,
        history_page_size: int = 50,
    ) -> None:
        """
        Initialize wallet operations.

        Args:
            session_maker: Factory for per-operation sessions
            settings_provider_factory: Builds a settings provider for a
                session (database-backed when omitted)
            notification_sink: Receiver of user notifications (stored as
                personal notifications when omitted)
            on_cascade_failure: Called with the deposit ID when an approved
                deposit still owes commissions, e.g. to enqueue a retry
            emergency_stop_accrual: Turn accrual runs into no-ops
            history_page_size: Rows fetched per history query
        """
        self.session_maker = session_maker
        self.settings_provider_factory = (
            settings_provider_factory or DatabaseSettingsProvider
        )
        self.notification_sink = (
            notification_sink
            if notification_sink is not None
            else PersistentNotificationSink(session_maker)
        )
        self.on_cascade_failure = on_cascade_failure
        self.emergency_stop_accrual = emergency_stop_accrual
        self.history_page_size = history_page_size

    # Deposits

    async def submit_deposit(
        self,
        user_id: int,
        amount: Decimal,
        payment_method: str,
        external_reference: str | None = None,
        proof_url: str | None = None,
    ) -> DepositRequest:
        async with self.session_maker() as session:
            service = DepositRequestService(
                session, self.settings_provider_factory(session)
            )
            return await service.submit(
                user_id, amount, payment_method, external_reference, proof_url
            )

    async def approve_deposit(
        self, deposit_id: int, admin_id: int
    ) -> DepositApprovalResult:
        """Approve a deposit; see ``DepositRequestService.approve``."""
        async with self.session_maker() as session:
            service = DepositRequestService(
                session,
                self.settings_provider_factory(session),
                self.notification_sink,
            )
            result = await service.approve(deposit_id, admin_id)

        if result.needs_cascade_retry:
            await self._report_cascade_failure(deposit_id)
        return result

    async def reject_deposit(
        self, deposit_id: int, admin_id: int, reason: str | None = None
    ) -> DepositRequest:
        async with self.session_maker() as session:
            service = DepositRequestService(
                session,
                self.settings_provider_factory(session),
                self.notification_sink,
            )
            return await service.reject(deposit_id, admin_id, reason)

    async def retry_commission_cascade(self, deposit_id: int) -> CascadeResult:
        """Re-run the cascade of an approved deposit; paid levels are skipped."""
        async with self.session_maker() as session:
            service = DepositRequestService(
                session,
                self.settings_provider_factory(session),
                self.notification_sink,
            )
            return await service.retry_cascade(deposit_id)

    # Withdrawals

    async def submit_withdrawal(
        self,
        user_id: int,
        amount: Decimal,
        payout_method: str,
        payout_details: str | None = None,
    ) -> WithdrawalRequest:
        async with self.session_maker() as session:
            service = WithdrawalRequestService(session)
            return await service.submit(user_id, amount, payout_method, payout_details)

    async def approve_withdrawal(
        self, withdrawal_id: int, admin_id: int
    ) -> WithdrawalApprovalResult:
        async with self.session_maker() as session:
            service = WithdrawalRequestService(session, self.notification_sink)
            return await service.approve(withdrawal_id, admin_id)

    async def reject_withdrawal(
        self, withdrawal_id: int, admin_id: int, reason: str | None = None
    ) -> WithdrawalRequest:
        async with self.session_maker() as session:
            service = WithdrawalRequestService(session, self.notification_sink)
            return await service.reject(withdrawal_id, admin_id, reason)

    async def refund_withdrawal(
        self, withdrawal_id: int, admin_id: int, reason: str | None = None
    ) -> WithdrawalRefundResult:
        async with self.session_maker() as session:
            service = WithdrawalRequestService(session, self.notification_sink)
            return await service.refund(withdrawal_id, admin_id, reason)

    # Accounts and investments

    async def open_account(
        self, user_id: int, referred_by_user_id: int | None = None
    ) -> AccountOpenResult:
        async with self.session_maker() as session:
            service = AccountService(session, self.settings_provider_factory(session))
            return await service.open_account(user_id, referred_by_user_id)

    async def subscribe_to_plan(
        self,
        user_id: int,
        plan_id: int,
        amount: Decimal,
        start_date: date | None = None,
    ) -> InvestmentPosition:
        async with self.session_maker() as session:
            service = InvestmentSubscriptionService(
                session, self.settings_provider_factory(session)
            )
            return await service.subscribe(user_id, plan_id, amount, start_date)

    async def check_user_level(self, user_id: int) -> LevelUpResult | None:
        """Raise a user's level if their active referrals qualify."""
        async with self.session_maker() as session:
            service = LevelService(session, self.notification_sink)
            return await service.check_and_upgrade(user_id)

    async def run_daily_accrual(self, as_of: date | None = None) -> AccrualRunSummary:
        async with self.session_maker() as session:
            scheduler = InvestmentAccrualScheduler(
                session,
                self.notification_sink,
                emergency_stop=self.emergency_stop_accrual,
            )
            return await scheduler.run_daily_accrual(as_of)

    # Reads

    async def get_transaction_history(
        self,
        user_id: int,
        cursor: HistoryCursor | None = None,
        types: list[str] | None = None,
    ) -> AsyncIterator[Transaction]:
        """
        Full history of a user, newest first.

        Each page is read in a fresh session, so a long iteration holds no
        connection between pages. Restart from any yielded entry with
        ``HistoryCursor.after(entry)``.
        """
        while True:
            async with self.session_maker() as session:
                history = TransactionHistory(session, self.history_page_size)
                page = await history.page(user_id, cursor=cursor, types=types)

            for transaction in page.items:
                yield transaction
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    async def get_balance(self, user_id: int) -> Decimal:
        async with self.session_maker() as session:
            return await LedgerStore(session).get_balance(user_id)

    async def reconcile(self, user_id: int | None = None) -> list[ReconciliationReport]:
        """
        Check balances against the ledger.

        Args:
            user_id: One account (its report is returned even when
                consistent); all accounts when omitted (only the
                inconsistent ones are returned)
        """
        async with self.session_maker() as session:
            ledger = LedgerStore(session)
            if user_id is not None:
                return [await ledger.reconcile(user_id)]
            return await ledger.find_discrepancies()

    async def _report_cascade_failure(self, deposit_id: int) -> None:
        logger.bind(deposit_id=deposit_id).warning(
            f"Deposit {deposit_id} has unpaid commission levels",
        )
        if self.on_cascade_failure is None:
            return
        outcome = self.on_cascade_failure(deposit_id)
        if outcome is not None:
            await outcome
