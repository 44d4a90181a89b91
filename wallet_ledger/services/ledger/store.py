"""
Ledger store.

The only writer of account balances. Every balance change is one guarded
SQL update plus one immutable transaction row, inside the caller's unit
of work. Nothing here commits.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.enums import (
    CREDIT_TYPES,
    DEBIT_TYPES,
    TransactionStatus,
    TransactionType,
)
from wallet_ledger.models.transaction import Transaction
from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.repositories.transaction_repository import TransactionRepository
from wallet_ledger.utils.exceptions import (
    AccountNotFound,
    InsufficientFunds,
    InvalidAmount,
)
from wallet_ledger.utils.money import quantize_money


@dataclass(frozen=True)
class LedgerReference:
    """Business event a ledger entry is posted for."""

    kind: str
    id: int | str

    def __str__(self) -> str:
        return f"{self.kind}:{self.id}"


@dataclass
class ReconciliationReport:
    """Balance of one account against the sum of its ledger."""

    user_id: int
    balance: Decimal
    ledger_total: Decimal

    @property
    def difference(self) -> Decimal:
        return self.balance - self.ledger_total

    @property
    def is_consistent(self) -> bool:
        return self.difference == 0


def _counter_deltas(type: TransactionType, amount: Decimal) -> dict[str, Decimal]:
    """Account counters moved together with the balance."""
    if type == TransactionType.DEPOSIT:
        return {"total_deposited": amount}
    if type in (
        TransactionType.WITHDRAWAL_COMPLETED,
        TransactionType.WITHDRAWAL_REJECTED_REFUND,
    ):
        # Debit of a withdrawal adds to the total, its refund takes it back
        return {"total_withdrawn": -amount}
    if type in (TransactionType.DAILY_PROFIT, TransactionType.REFERRAL_COMMISSION):
        return {"total_earned": amount}
    return {}


class LedgerStore:
    """Append-only ledger with atomic balance updates."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize ledger store.

        Args:
            session: Async database session (unit of work owned by caller)
        """
        self.session = session
        self.account_repo = AccountRepository(session)
        self.transaction_repo = TransactionRepository(session)

    async def post_transaction(
        self,
        user_id: int,
        type: TransactionType,
        amount: Decimal,
        reference: LedgerReference,
        *,
        allow_negative: bool = False,
        description: str | None = None,
    ) -> Transaction:
        """
        Append a completed entry and move the balance by ``amount``.

        Args:
            user_id: Account owner
            type: Transaction type
            amount: Signed amount (credits positive, debits negative)
            reference: Business event; (type, reference) is unique
            allow_negative: Apply a debit unguarded and check the result
                afterwards (approval flows that already checked the balance)
            description: Free text shown in history

        Returns:
            Created transaction (flushed, not committed)

        Raises:
            InvalidAmount: Zero amount or sign not matching the type
            AccountNotFound: No such account
            InsufficientFunds: Debit would make the balance negative
            IntegrityError: Reference already posted (surfaces at flush)
        """
        type = TransactionType(type)
        amount = quantize_money(amount)

        if amount == 0:
            raise InvalidAmount(f"{type.value} amount must not be zero")
        if type in CREDIT_TYPES and amount < 0:
            raise InvalidAmount(f"{type.value} must be a credit, got {amount}")
        if type in DEBIT_TYPES and amount > 0:
            raise InvalidAmount(f"{type.value} must be a debit, got {amount}")

        counters = _counter_deltas(type, amount)

        if allow_negative:
            try:
                balance_after = await self.account_repo.apply_delta(
                    user_id, amount, counters, guarded=False
                )
            except IntegrityError as e:
                # balance_non_negative check constraint
                raise InsufficientFunds(user_id, -amount) from e
            if balance_after is None:
                raise AccountNotFound(user_id)
            if balance_after < 0:
                raise InsufficientFunds(user_id, -amount, balance_after - amount)
        else:
            balance_after = await self.account_repo.apply_delta(
                user_id, amount, counters, guarded=True
            )
            if balance_after is None:
                available = await self.account_repo.get_balance(user_id)
                if available is None:
                    raise AccountNotFound(user_id)
                logger.bind(
                    user_id=user_id,
                    type=type.value,
                    amount=str(amount),
                    available=str(available),
                ).warning("Debit rejected by balance guard")
                raise InsufficientFunds(user_id, -amount, available)

        transaction = await self.transaction_repo.create(
            user_id=user_id,
            type=type.value,
            amount=amount,
            status=TransactionStatus.COMPLETED.value,
            reference_type=reference.kind,
            reference_id=str(reference.id),
            balance_after=balance_after,
            description=description,
        )

        logger.bind(
            transaction_id=transaction.id,
            user_id=user_id,
            type=type.value,
            amount=str(amount),
            reference=str(reference),
            balance_after=str(balance_after),
        ).info(f"Ledger entry posted: {type.value} {amount} for user {user_id}")
        return transaction

    async def get_balance(self, user_id: int) -> Decimal:
        """
        Current available balance.

        Raises:
            AccountNotFound: No such account
        """
        balance = await self.account_repo.get_balance(user_id)
        if balance is None:
            raise AccountNotFound(user_id)
        return balance

    async def reconcile(self, user_id: int) -> ReconciliationReport:
        """
        Compare one balance with the sum of its completed entries.

        Raises:
            AccountNotFound: No such account
        """
        rows = await self.account_repo.get_ledger_totals(user_id)
        if not rows:
            raise AccountNotFound(user_id)
        _, balance, ledger_total = rows[0]
        return ReconciliationReport(
            user_id=user_id,
            balance=quantize_money(balance),
            ledger_total=quantize_money(ledger_total),
        )

    async def find_discrepancies(self) -> list[ReconciliationReport]:
        """All accounts whose balance does not match their ledger."""
        reports = [
            ReconciliationReport(
                user_id=user_id,
                balance=quantize_money(balance),
                ledger_total=quantize_money(ledger_total),
            )
            for user_id, balance, ledger_total in await self.account_repo.get_ledger_totals()
        ]
        broken = [report for report in reports if not report.is_consistent]

        if broken:
            logger.bind(user_ids=[report.user_id for report in broken]).error(
                f"Ledger reconciliation found {len(broken)} inconsistent accounts",
            )
        return broken
