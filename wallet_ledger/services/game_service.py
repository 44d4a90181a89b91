"""
Game play recording.

A round is one GamePlay row plus one ``game`` ledger entry for the net
result (prize minus cost). A round that breaks even posts nothing.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.config.constants import REF_GAME_PLAY
from wallet_ledger.models.enums import TransactionType
from wallet_ledger.repositories.account_repository import AccountRepository
from wallet_ledger.repositories.game_play_repository import GamePlayRepository
from wallet_ledger.services.ledger.store import LedgerReference, LedgerStore
from wallet_ledger.utils.db_decorators import with_auto_commit
from wallet_ledger.utils.exceptions import AccountNotFound, InvalidAmount
from wallet_ledger.utils.money import quantize_money


@dataclass
class GamePlayResult:
    """Outcome of a recorded round."""

    play_id: int
    user_id: int
    net_amount: Decimal
    is_winner: bool
    transaction_id: int | None
    balance_after: Decimal


class GameService:
    """Records paid game rounds against the ledger."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.account_repo = AccountRepository(session)
        self.play_repo = GamePlayRepository(session)
        self.ledger = LedgerStore(session)

    @with_auto_commit
    async def record_play(
        self, user_id: int, amount_paid: Decimal, prize_won: Decimal
    ) -> GamePlayResult:
        """
        Record a round and settle its net amount.

        Args:
            user_id: Player
            amount_paid: Cost of the round
            prize_won: Prize (0 for a loss)

        Returns:
            GamePlayResult

        Raises:
            InvalidAmount: Negative cost or prize
            AccountNotFound: No such account
            InsufficientFunds: Net loss larger than the balance
        """
        amount_paid = quantize_money(amount_paid)
        prize_won = quantize_money(prize_won)
        if amount_paid < 0 or prize_won < 0:
            raise InvalidAmount("Game cost and prize must not be negative")

        balance = await self.account_repo.get_balance(user_id)
        if balance is None:
            raise AccountNotFound(user_id)

        play = await self.play_repo.create(
            user_id=user_id,
            amount_paid=amount_paid,
            prize_won=prize_won,
            is_winner=prize_won > 0,
        )

        net_amount = prize_won - amount_paid
        transaction_id = None
        if net_amount != 0:
            transaction = await self.ledger.post_transaction(
                user_id,
                TransactionType.GAME,
                net_amount,
                LedgerReference(REF_GAME_PLAY, play.id),
                description=f"Game round: paid {amount_paid}, won {prize_won}",
            )
            transaction_id = transaction.id
            balance = transaction.balance_after

        logger.bind(play_id=play.id, user_id=user_id, net_amount=str(net_amount)).info(
            f"Game play {play.id} recorded for user {user_id}",
        )
        return GamePlayResult(
            play_id=play.id,
            user_id=user_id,
            net_amount=net_amount,
            is_winner=play.is_winner,
            transaction_id=transaction_id,
            balance_after=balance,
        )
