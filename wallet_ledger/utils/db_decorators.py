"""
Database decorators for automatic error handling and rollback.

Each decorator turns a coroutine into one unit of work. Any error rolls
the session back; store errors are re-raised as ledger exceptions so
callers only ever handle ``LedgerError`` subclasses.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wallet_ledger.utils.exceptions import DuplicateLedgerEntry, LedgerWriteFailure


T = TypeVar("T")


def _find_session(args: tuple[Any, ...], kwargs: dict[str, Any]) -> AsyncSession | None:
    """
    Locate the session of a decorated call.

    Looks at the ``session`` keyword, then the first positional argument,
    then ``self.session`` for service methods.
    """
    session = kwargs.get("session")
    if session is not None or not args:
        return session
    first = args[0]
    if isinstance(first, AsyncSession):
        return first
    candidate = getattr(first, "session", None)
    return candidate if isinstance(candidate, AsyncSession) else None


async def _rollback(session: AsyncSession, func_name: str, error: BaseException) -> None:
    try:
        await session.rollback()
        logger.info(f"{func_name} rolled back after {type(error).__name__}")
    except Exception as rollback_error:
        logger.opt(exception=True).error(
            f"Failed to rollback in {func_name}: {rollback_error}"
        )


UNIQUE_VIOLATION_SQLSTATE = "23505"
_UNIQUE_VIOLATION_MARKERS = (
    "unique constraint",  # postgres, sqlite
    "duplicate key",  # postgres
)


def _is_unique_violation(error: IntegrityError) -> bool:
    """Tell unique violations apart from foreign key, not-null and check failures."""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    message = str(orig).lower()
    return any(marker in message for marker in _UNIQUE_VIOLATION_MARKERS)


def _translate(func_name: str, error: Exception) -> Exception:
    """Map store errors onto ledger exceptions."""
    if isinstance(error, IntegrityError) and _is_unique_violation(error):
        return DuplicateLedgerEntry(f"{func_name}: unique key already present ({error.orig})")
    if isinstance(error, SQLAlchemyError):
        return LedgerWriteFailure(f"{func_name}: {type(error).__name__}: {error}")
    return error


def _unit_of_work(func: Callable[..., T], commit: bool) -> Callable[..., T]:
    decorator = "with_auto_commit" if commit else "with_rollback_on_error"

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)
        if session is None:
            logger.warning(
                f"{func.__name__} is decorated with @{decorator} but has no "
                f"session, running it unmanaged"
            )
            return await func(*args, **kwargs)

        try:
            result = await func(*args, **kwargs)
            if commit:
                await session.commit()
            return result
        except Exception as e:
            await _rollback(session, func.__name__, e)
            translated = _translate(func.__name__, e)
            if translated is e:
                raise
            raise translated from e

    return wrapper


def with_rollback_on_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Roll the session back when the wrapped coroutine raises.

    The coroutine commits on its own, possibly several times, e.g. once per
    commission level.

    Usage:
        class Service:
            @with_rollback_on_error
            async def do_work(self, ...):
                ...
                await self.session.commit()
    """
    return _unit_of_work(func, commit=False)


def with_auto_commit(func: Callable[..., T]) -> Callable[..., T]:
    """
    Commit the session after the wrapped coroutine returns.

    A failure anywhere, the commit included, rolls back. Ledger errors are
    re-raised unchanged, a unique-key ``IntegrityError`` becomes
    ``DuplicateLedgerEntry`` and any other ``SQLAlchemyError`` (foreign key,
    not-null and check violations included) becomes ``LedgerWriteFailure``.

    Args:
        func: Coroutine to wrap. The session is taken from a ``session``
              keyword, the first positional argument or ``self.session``.

    Example:
        class LedgerService:
            @with_auto_commit
            async def credit(self, user_id: int, amount: Decimal):
                await self.ledger.post_transaction(...)
    """
    return _unit_of_work(func, commit=True)
