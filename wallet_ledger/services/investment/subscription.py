"""
Investment subscription.

Moves money from the available balance into a new position. The plan's
rate, duration and principal policy are copied onto the position.
"""

from datetime import date, timedelta
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import REF_INVESTMENT_POSITION
from wallet_ledger.models.enums import InvestmentStatus, TransactionType
from wallet_ledger.models.investment_position import InvestmentPosition
from wallet_ledger.repositories.investment_repository import InvestmentPositionRepository
from wallet_ledger.services.ledger.store import LedgerReference, LedgerStore
from wallet_ledger.services.settings_provider import SettingsProvider
from wallet_ledger.utils.datetime_utils import utc_today
from wallet_ledger.utils.db_decorators import with_auto_commit
from wallet_ledger.utils.exceptions import InvalidAmount, PlanNotAvailable
from wallet_ledger.utils.money import require_positive


class InvestmentSubscriptionService:
    """Opens investment positions."""

    def __init__(
        self, session: AsyncSession, settings_provider: SettingsProvider
    ) -> None:
        """
        Initialize subscription service.

        Args:
            session: Async database session
            settings_provider: Source of plan terms
        """
        self.session = session
        self.settings_provider = settings_provider
        self.position_repo = InvestmentPositionRepository(session)
        self.ledger = LedgerStore(session)

    @with_auto_commit
    async def subscribe(
        self,
        user_id: int,
        plan_id: int,
        amount: Decimal,
        start_date: date | None = None,
    ) -> InvestmentPosition:
        """
        Subscribe a user to a plan, debiting the principal.

        Args:
            user_id: Investor
            plan_id: Investment plan
            amount: Principal
            start_date: Position start (today in UTC when omitted); the
                first profit accrues the day after

        Returns:
            Active position

        Raises:
            PlanNotAvailable: Plan missing or inactive
            InvalidAmount: Amount outside the plan limits
            InsufficientFunds: Balance below the amount
        """
        amount = require_positive(amount, "Investment amount")
        terms = await self.settings_provider.get_investment_plan(plan_id)

        if not terms.is_active:
            raise PlanNotAvailable(f"Investment plan {plan_id} is not active")
        if not terms.accepts(amount):
            raise InvalidAmount(
                f"Amount {amount} outside plan limits "
                f"{terms.minimum_amount}..{terms.maximum_amount or 'unlimited'}"
            )

        start_date = start_date or utc_today()
        position = await self.position_repo.create(
            user_id=user_id,
            plan_id=plan_id,
            principal=amount,
            daily_rate=terms.daily_rate,
            duration_days=terms.duration_days,
            principal_policy=terms.principal_policy.value,
            status=InvestmentStatus.ACTIVE.value,
            start_date=start_date,
            end_date=start_date + timedelta(days=terms.duration_days),
            total_profit_earned=Decimal("0"),
        )

        await self.ledger.post_transaction(
            user_id,
            TransactionType.INVESTMENT_DEBIT,
            -amount,
            LedgerReference(REF_INVESTMENT_POSITION, position.id),
            description=f"Investment in {terms.name}",
        )

        logger.bind(
            position_id=position.id,
            user_id=user_id,
            plan_id=plan_id,
            principal=str(amount),
            end_date=position.end_date.isoformat(),
        ).info(f"Investment position {position.id} opened")
        return position
