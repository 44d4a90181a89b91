"""
Referral commission statistics.

Read-only queries over commission records for the referral dashboard.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.commission_record import CommissionRecord
from wallet_ledger.repositories.commission_repository import CommissionRecordRepository


@dataclass
class BreakdownEntry:
    """Total and count of one group."""

    total: Decimal
    count: int


@dataclass
class CommissionStats:
    """Commission totals of a referrer."""

    total_earnings: Decimal
    total_commissions: int
    level_breakdown: dict[int, BreakdownEntry] = field(default_factory=dict)
    type_breakdown: dict[str, BreakdownEntry] = field(default_factory=dict)


class CommissionQueryService:
    """Commission listings and statistics."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission query service."""
        self.session = session
        self.commission_repo = CommissionRecordRepository(session)

    async def list_for_referrer(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> list[CommissionRecord]:
        """Commissions earned by a user, newest first."""
        return await self.commission_repo.find_by_referrer(
            user_id, limit=limit, offset=offset
        )

    async def list_for_trigger(
        self, trigger_type: str, trigger_reference_id: int | str
    ) -> list[CommissionRecord]:
        """Commissions paid for one triggering event."""
        return await self.commission_repo.find_for_trigger(
            trigger_type, str(trigger_reference_id)
        )

    async def get_commission_stats(self, user_id: int) -> CommissionStats:
        """
        Totals of completed commissions, by level and by trigger type.

        Args:
            user_id: Referrer

        Returns:
            CommissionStats (all zero for users without commissions)
        """
        by_level = await self.commission_repo.get_breakdown(user_id, "level")
        by_type = await self.commission_repo.get_breakdown(user_id, "trigger_type")

        level_breakdown = {
            int(level): BreakdownEntry(total=total, count=count)
            for level, total, count in by_level
        }
        type_breakdown = {
            str(trigger_type): BreakdownEntry(total=total, count=count)
            for trigger_type, total, count in by_type
        }

        return CommissionStats(
            total_earnings=sum(
                (entry.total for entry in level_breakdown.values()), Decimal("0")
            ),
            total_commissions=sum(entry.count for entry in level_breakdown.values()),
            level_breakdown=level_breakdown,
            type_breakdown=type_breakdown,
        )
