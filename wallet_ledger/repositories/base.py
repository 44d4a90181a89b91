"""
Base repository.

Shared query helpers for the ledger aggregates. Repositories only flush;
committing is left to the service that owns the unit of work.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import exists, func, inspect, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Async data access for one model.

    Example:
        class DepositRequestRepository(BaseRepository[DepositRequest]):
            def __init__(self, session: AsyncSession):
                super().__init__(DepositRequest, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self.model = model
        self.session = session
        self.pk = inspect(model).primary_key[0]

    async def get_by_id(self, id: int) -> ModelType | None:
        """Entity by primary key; the identity map is consulted first."""
        return await self.session.get(self.model, id)

    async def get_fresh(self, id: int, for_update: bool = False) -> ModelType | None:
        """
        Entity re-read from the database.

        Any copy already in the identity map is overwritten, so status
        checks never run against a stale object.

        Args:
            id: Entity ID
            for_update: Lock the row until the transaction ends
        """
        stmt = (
            select(self.model)
            .where(self.pk == id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def get_by(self, **filters: Any) -> ModelType | None:
        stmt = select(self.model).filter_by(**filters).limit(1)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def find_all(
        self,
        limit: int | None = None,
        offset: int | None = None,
        **filters: Any,
    ) -> list[ModelType]:
        """Entities matching ``filters`` in primary key order."""
        stmt = select(self.model).filter_by(**filters).order_by(self.pk)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        return list((await self.session.execute(stmt)).scalars().all())

    async def count(self, **filters: Any) -> int:
        stmt = select(func.count()).select_from(self.model).filter_by(**filters)
        return (await self.session.execute(stmt)).scalar() or 0

    async def exists(self, **filters: Any) -> bool:
        stmt = select(exists().where(*self._conditions(filters)))
        return bool((await self.session.execute(stmt)).scalar())

    async def create(self, **data: Any) -> ModelType:
        """
        Add an entity and flush it.

        Unique constraint violations surface here as ``IntegrityError``;
        callers that rely on a constraint for idempotency catch it.

        Returns:
            Entity with server defaults loaded
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def transition(
        self,
        id: int,
        expected_status: str,
        new_status: str,
        **values: Any,
    ) -> bool:
        """
        Move ``status`` from ``expected_status`` to ``new_status``.

        A single conditional UPDATE: of two concurrent callers only one
        sees a changed row.

        Args:
            id: Entity ID
            expected_status: Status the row must hold
            new_status: Status to set
            **values: Other columns written by the same statement

        Returns:
            True if this call made the change
        """
        stmt = (
            update(self.model)
            .where(self.pk == id, self.model.status == expected_status)
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    def _conditions(self, filters: dict[str, Any]) -> list[Any]:
        return [getattr(self.model, key) == value for key, value in filters.items()]
