"""
Transaction repository.

Data access layer for ledger entries. Entries are only ever inserted.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.enums import TransactionStatus
from wallet_ledger.models.transaction import Transaction
from wallet_ledger.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Transaction repository with ledger-specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction repository."""
        super().__init__(Transaction, session)

    async def get_by_reference(
        self, type: str, reference_type: str, reference_id: str
    ) -> Transaction | None:
        """Get the entry posted for a business event, if any."""
        stmt = select(Transaction).where(
            Transaction.type == type,
            Transaction.reference_type == reference_type,
            Transaction.reference_id == reference_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def sum_completed(self, user_id: int) -> Decimal:
        """Sum of completed entries of one account."""
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.user_id == user_id,
            Transaction.status == TransactionStatus.COMPLETED.value,
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def get_history_page(
        self,
        user_id: int,
        limit: int,
        before: tuple[datetime, int] | None = None,
        types: list[str] | None = None,
    ) -> list[Transaction]:
        """
        One page of history, newest first.

        Keyset pagination on (created_at, id) so that pages stay stable
        while new entries are appended.

        Args:
            user_id: Account owner
            limit: Page size
            before: (created_at, id) of the last entry of the previous page
            types: Restrict to these transaction types

        Returns:
            Up to ``limit`` entries
        """
        stmt = select(Transaction).where(Transaction.user_id == user_id)

        if types:
            stmt = stmt.where(Transaction.type.in_(types))

        if before is not None:
            created_at, last_id = before
            stmt = stmt.where(
                or_(
                    Transaction.created_at < created_at,
                    and_(
                        Transaction.created_at == created_at,
                        Transaction.id < last_id,
                    ),
                )
            )

        stmt = stmt.order_by(
            Transaction.created_at.desc(), Transaction.id.desc()
        ).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
