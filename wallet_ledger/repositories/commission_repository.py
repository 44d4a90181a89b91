"""
Commission record repository.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.commission_record import CommissionRecord
from wallet_ledger.models.enums import CommissionStatus
from wallet_ledger.repositories.base import BaseRepository


class CommissionRecordRepository(BaseRepository[CommissionRecord]):
    """Commission record repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission record repository."""
        super().__init__(CommissionRecord, session)

    async def get_by_key(
        self,
        referrer_user_id: int,
        referred_user_id: int,
        trigger_type: str,
        trigger_reference_id: str,
        level: int,
    ) -> CommissionRecord | None:
        """Look up a payout by its idempotency key."""
        stmt = select(CommissionRecord).where(
            CommissionRecord.referrer_user_id == referrer_user_id,
            CommissionRecord.referred_user_id == referred_user_id,
            CommissionRecord.trigger_type == trigger_type,
            CommissionRecord.trigger_reference_id == trigger_reference_id,
            CommissionRecord.level == level,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_for_trigger(
        self, trigger_type: str, trigger_reference_id: str
    ) -> list[CommissionRecord]:
        """All payouts caused by one event, by level."""
        stmt = (
            select(CommissionRecord)
            .where(
                CommissionRecord.trigger_type == trigger_type,
                CommissionRecord.trigger_reference_id == trigger_reference_id,
            )
            .order_by(CommissionRecord.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_referrer(
        self, referrer_user_id: int, limit: int = 50, offset: int = 0
    ) -> list[CommissionRecord]:
        """Commissions earned by a referrer, newest first."""
        stmt = (
            select(CommissionRecord)
            .where(CommissionRecord.referrer_user_id == referrer_user_id)
            .order_by(CommissionRecord.created_at.desc(), CommissionRecord.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_breakdown(
        self, referrer_user_id: int, column: str
    ) -> list[tuple[object, Decimal, int]]:
        """
        Completed commissions of a referrer grouped by one column.

        Args:
            referrer_user_id: Referrer
            column: ``level`` or ``trigger_type``

        Returns:
            List of (group value, total amount, count)
        """
        group_column = getattr(CommissionRecord, column)
        stmt = (
            select(
                group_column,
                func.sum(CommissionRecord.commission_amount),
                func.count(CommissionRecord.id),
            )
            .where(
                CommissionRecord.referrer_user_id == referrer_user_id,
                CommissionRecord.status == CommissionStatus.COMPLETED.value,
            )
            .group_by(group_column)
            .order_by(group_column)
        )
        result = await self.session.execute(stmt)
        return [
            (row[0], Decimal(str(row[1] or 0)), int(row[2]))
            for row in result.all()
        ]
