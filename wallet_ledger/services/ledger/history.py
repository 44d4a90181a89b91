"""
Transaction history.

Reverse-chronological, finite and restartable listing of ledger entries.
"""

import base64
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.transaction import Transaction
from wallet_ledger.repositories.transaction_repository import TransactionRepository


@dataclass(frozen=True)
class HistoryCursor:
    """Position after the last entry returned."""

    created_at: datetime
    transaction_id: int

    def encode(self) -> str:
        """Opaque string form for API clients."""
        payload = json.dumps(
            {"c": self.created_at.isoformat(), "i": self.transaction_id}
        )
        return base64.urlsafe_b64encode(payload.encode()).decode()

    @classmethod
    def decode(cls, token: str) -> "HistoryCursor":
        """
        Parse a cursor produced by ``encode``.

        Raises:
            ValueError: If the token is malformed
        """
        try:
            payload = json.loads(base64.urlsafe_b64decode(token.encode()))
            return cls(
                created_at=datetime.fromisoformat(payload["c"]),
                transaction_id=int(payload["i"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid history cursor: {token!r}") from e

    @classmethod
    def after(cls, transaction: Transaction) -> "HistoryCursor":
        return cls(created_at=transaction.created_at, transaction_id=transaction.id)


@dataclass
class HistoryPage:
    """One page of history."""

    items: list[Transaction]
    next_cursor: HistoryCursor | None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


class TransactionHistory:
    """History queries over the ledger."""

    def __init__(self, session: AsyncSession, page_size: int = 50) -> None:
        self.session = session
        self.page_size = page_size
        self.transaction_repo = TransactionRepository(session)

    async def page(
        self,
        user_id: int,
        limit: int | None = None,
        cursor: HistoryCursor | None = None,
        types: list[str] | None = None,
    ) -> HistoryPage:
        """
        Fetch one page, newest first.

        Args:
            user_id: Account owner
            limit: Page size (default page size when omitted)
            cursor: Continue after this position
            types: Restrict to these transaction types

        Returns:
            Page with a cursor for the next one (None on the last page)
        """
        limit = limit or self.page_size
        before = (cursor.created_at, cursor.transaction_id) if cursor else None

        # One extra row tells whether another page exists
        rows = await self.transaction_repo.get_history_page(
            user_id, limit + 1, before=before, types=types
        )
        items = rows[:limit]
        next_cursor = HistoryCursor.after(items[-1]) if len(rows) > limit else None
        return HistoryPage(items=items, next_cursor=next_cursor)

    async def iterate(
        self,
        user_id: int,
        cursor: HistoryCursor | None = None,
        types: list[str] | None = None,
    ) -> AsyncIterator[Transaction]:
        """
        Iterate over the full history, newest first, page by page.

        Restart from any entry with ``HistoryCursor.after(entry)``.
        """
        while True:
            page = await self.page(user_id, cursor=cursor, types=types)
            for transaction in page.items:
                yield transaction
            if page.next_cursor is None:
                return
            cursor = page.next_cursor
