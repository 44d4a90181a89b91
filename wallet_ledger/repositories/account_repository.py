"""
Account repository.

Data access layer for Account model. Balance changes are single SQL
statements; no balance is ever computed in Python and written back.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.account import Account
from wallet_ledger.models.enums import TransactionStatus
from wallet_ledger.models.transaction import Transaction
from wallet_ledger.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Account repository with balance-specific operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def get_balance(self, user_id: int) -> Decimal | None:
        """
        Read the committed balance straight from the table.

        Args:
            user_id: Account owner

        Returns:
            Available balance or None if the account does not exist
        """
        stmt = select(Account.available_balance).where(Account.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_referral_link(self, user_id: int) -> tuple[bool, int | None]:
        """
        Read one hop of the referral chain.

        Args:
            user_id: Account to look up

        Returns:
            Tuple of (account_exists, referred_by_user_id)
        """
        stmt = select(Account.referred_by_user_id).where(Account.user_id == user_id)
        result = await self.session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return False, None
        return True, row[0]

    async def apply_delta(
        self,
        user_id: int,
        amount: Decimal,
        counters: dict[str, Decimal] | None = None,
        guarded: bool = True,
    ) -> Decimal | None:
        """
        Atomically move the balance by ``amount``.

        Args:
            user_id: Account owner
            amount: Signed delta
            counters: Extra ``column -> delta`` increments in the same statement
            guarded: Only apply when the resulting balance stays >= 0

        Returns:
            New balance, or None when no row matched (missing account or
            guard failed)
        """
        values: dict[str, Any] = {
            "available_balance": Account.available_balance + amount,
        }
        for column, delta in (counters or {}).items():
            values[column] = getattr(Account, column) + delta

        stmt = update(Account).where(Account.user_id == user_id)
        if guarded and amount < 0:
            stmt = stmt.where(Account.available_balance + amount >= 0)

        stmt = (
            stmt.values(**values)
            .returning(Account.available_balance)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_referrer(self, user_id: int, referrer_id: int) -> bool:
        """
        Set the referrer once; an existing link is never overwritten.

        Returns:
            True if the link was set by this call
        """
        stmt = (
            update(Account)
            .where(
                Account.user_id == user_id,
                Account.referred_by_user_id.is_(None),
            )
            .values(referred_by_user_id=referrer_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def count_active_referrals(self, user_id: int) -> int:
        """Direct referrals that have deposited at least once."""
        stmt = select(func.count()).select_from(Account).where(
            Account.referred_by_user_id == user_id,
            Account.total_deposited > 0,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def raise_level(self, user_id: int, from_level: int, to_level: int) -> bool:
        """
        Move ``user_level`` up from the level the caller read.

        Returns:
            True if this call made the change
        """
        stmt = (
            update(Account)
            .where(Account.user_id == user_id, Account.user_level == from_level)
            .values(user_level=to_level)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get_ledger_totals(
        self, user_id: int | None = None
    ) -> list[tuple[int, Decimal, Decimal]]:
        """
        Balance next to the sum of completed ledger entries, per account.

        Args:
            user_id: Restrict to one account

        Returns:
            List of (user_id, available_balance, ledger_total)
        """
        ledger = (
            select(
                Transaction.user_id.label("user_id"),
                func.sum(Transaction.amount).label("total"),
            )
            .where(Transaction.status == TransactionStatus.COMPLETED.value)
            .group_by(Transaction.user_id)
            .subquery()
        )
        stmt = (
            select(Account.user_id, Account.available_balance, ledger.c.total)
            .outerjoin(ledger, ledger.c.user_id == Account.user_id)
            .order_by(Account.user_id)
        )
        if user_id is not None:
            stmt = stmt.where(Account.user_id == user_id)

        result = await self.session.execute(stmt)
        return [
            (row[0], row[1], Decimal(str(row[2])) if row[2] is not None else Decimal("0"))
            for row in result.all()
        ]
