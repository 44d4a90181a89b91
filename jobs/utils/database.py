"""Database access for task workers."""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from wallet_ledger.config.settings import settings


def create_task_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create an engine for one task run.

    NullPool: a pooled connection would outlive the run and be reused from
    another worker thread's loop.
    """
    return create_async_engine(
        database_url or settings.database_url,
        echo=False,
        poolclass=NullPool,
    )


@asynccontextmanager
async def task_session_maker(
    database_url: str | None = None,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """
    Session factory bound to a fresh engine for the duration of a task.

    Usage:
        async with task_session_maker() as session_maker:
            await accrue_with(session_maker)
    """
    engine = create_task_engine(database_url)
    try:
        yield async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    finally:
        await engine.dispose()
