"""
Deposit and withdrawal request repositories.
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.deposit_request import DepositRequest
from wallet_ledger.models.enums import DepositStatus
from wallet_ledger.models.withdrawal_request import WithdrawalRequest
from wallet_ledger.repositories.base import BaseRepository


class DepositRequestRepository(BaseRepository[DepositRequest]):
    """Deposit request repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize deposit request repository."""
        super().__init__(DepositRequest, session)

    async def find_by_status(
        self, status: str, limit: int = 100
    ) -> list[DepositRequest]:
        """Requests in a status, oldest first (admin review queue)."""
        stmt = (
            select(DepositRequest)
            .where(DepositRequest.status == status)
            .order_by(DepositRequest.submitted_at, DepositRequest.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_unsettled_approved(
        self,
        processed_after: datetime,
        processed_before: datetime,
        limit: int = 100,
    ) -> list[DepositRequest]:
        """
        Approved deposits whose commission cascade never finished.

        Args:
            processed_after: Oldest approval time considered
            processed_before: Newest approval time considered, so a cascade
                still running right after approval is left alone
            limit: Maximum rows returned

        Returns:
            Deposits, oldest approval first
        """
        stmt = (
            select(DepositRequest)
            .where(
                DepositRequest.status == DepositStatus.APPROVED.value,
                DepositRequest.commissions_settled_at.is_(None),
                DepositRequest.processed_at >= processed_after,
                DepositRequest.processed_at <= processed_before,
            )
            .order_by(DepositRequest.processed_at, DepositRequest.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_commissions_settled(
        self, deposit_id: int, settled_at: datetime
    ) -> bool:
        """Stamp an approved deposit as owing no further commissions."""
        stmt = (
            update(DepositRequest)
            .where(
                DepositRequest.id == deposit_id,
                DepositRequest.status == DepositStatus.APPROVED.value,
                DepositRequest.commissions_settled_at.is_(None),
            )
            .values(commissions_settled_at=settled_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


class WithdrawalRequestRepository(BaseRepository[WithdrawalRequest]):
    """Withdrawal request repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal request repository."""
        super().__init__(WithdrawalRequest, session)

    async def find_by_status(
        self, status: str, limit: int = 100
    ) -> list[WithdrawalRequest]:
        """Requests in a status, oldest first (admin review queue)."""
        stmt = (
            select(WithdrawalRequest)
            .where(WithdrawalRequest.status == status)
            .order_by(WithdrawalRequest.submitted_at, WithdrawalRequest.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
