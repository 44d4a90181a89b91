"""
Investment repositories.

Plans, positions and daily accrual rows.
"""

from datetime import date

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.daily_accrual import DailyAccrual
from wallet_ledger.models.enums import InvestmentStatus
from wallet_ledger.models.investment_plan import InvestmentPlan
from wallet_ledger.models.investment_position import InvestmentPosition
from wallet_ledger.repositories.base import BaseRepository


class InvestmentPlanRepository(BaseRepository[InvestmentPlan]):
    """Investment plan repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize investment plan repository."""
        super().__init__(InvestmentPlan, session)

    async def find_active(self) -> list[InvestmentPlan]:
        """Plans open for subscription, cheapest first."""
        stmt = (
            select(InvestmentPlan)
            .where(InvestmentPlan.is_active.is_(True))
            .order_by(InvestmentPlan.minimum_amount, InvestmentPlan.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class InvestmentPositionRepository(BaseRepository[InvestmentPosition]):
    """Investment position repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize investment position repository."""
        super().__init__(InvestmentPosition, session)

    async def find_due_ids(self, as_of: date) -> list[int]:
        """
        IDs of active positions with at least one unaccrued day up to ``as_of``.

        Args:
            as_of: Accrual date of the run

        Returns:
            Position IDs in ascending order
        """
        stmt = (
            select(InvestmentPosition.id)
            .where(
                InvestmentPosition.status == InvestmentStatus.ACTIVE.value,
                InvestmentPosition.start_date < as_of,
                or_(
                    InvestmentPosition.last_accrual_date.is_(None),
                    InvestmentPosition.last_accrual_date < as_of,
                ),
            )
            .order_by(InvestmentPosition.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_by_user(
        self, user_id: int, status: str | None = None
    ) -> list[InvestmentPosition]:
        """Positions of one user, newest first."""
        stmt = select(InvestmentPosition).where(InvestmentPosition.user_id == user_id)
        if status:
            stmt = stmt.where(InvestmentPosition.status == status)
        stmt = stmt.order_by(InvestmentPosition.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class DailyAccrualRepository(BaseRepository[DailyAccrual]):
    """Daily accrual repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize daily accrual repository."""
        super().__init__(DailyAccrual, session)

    async def find_by_position(self, position_id: int) -> list[DailyAccrual]:
        """Accruals of a position in date order."""
        stmt = (
            select(DailyAccrual)
            .where(DailyAccrual.position_id == position_id)
            .order_by(DailyAccrual.accrual_date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
