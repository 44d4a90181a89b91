"""
Ledger exceptions.

Defines the error taxonomy of ledger operations and the categories used
by background jobs to decide whether a failure is worth retrying.
"""

from decimal import Decimal

from sqlalchemy.exc import InterfaceError, OperationalError


class LedgerError(Exception):
    """Base class for all ledger errors."""

    pass


class InsufficientFunds(LedgerError):
    """Raised when a debit exceeds the available balance."""

    def __init__(
        self,
        user_id: int,
        requested: Decimal,
        available: Decimal | None = None,
    ) -> None:
        self.user_id = user_id
        self.requested = requested
        self.available = available
        message = f"Insufficient funds for user {user_id}: requested {requested}"
        if available is not None:
            message += f", available {available}"
        super().__init__(message)


class AlreadyProcessed(LedgerError):
    """Raised when a request is no longer pending or an event was already posted."""

    pass


class InvalidReferralChain(LedgerError):
    """Raised when the referrer chain contains a cycle."""

    def __init__(self, user_id: int, chain: list[int]) -> None:
        self.user_id = user_id
        self.chain = chain
        path = " -> ".join(str(uid) for uid in chain)
        super().__init__(f"Referral cycle at user {user_id}: {path}")


class LedgerWriteFailure(LedgerError):
    """Raised when the store rejects a write. Safe to retry with the same key."""

    pass


class DuplicateLedgerEntry(LedgerWriteFailure):
    """Raised when a unique key shows the write was already done."""

    pass


class RequestNotFound(LedgerError):
    """Raised when a deposit or withdrawal request does not exist."""

    pass


class AccountNotFound(LedgerError):
    """Raised when an account does not exist."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Account {user_id} not found")


class InvalidAmount(LedgerError):
    """Raised for zero, negative or wrongly signed amounts."""

    pass


class PlanNotAvailable(LedgerError):
    """Raised when an investment plan is missing or inactive."""

    pass


# Exception categories based on handling strategy

# Already done - treat as success
ALREADY_DONE = (
    AlreadyProcessed,
    DuplicateLedgerEntry,
)

# Transient - retry with the same idempotency key
RETRYABLE = (
    LedgerWriteFailure,
    OperationalError,  # Connection drops, serialization failures
    InterfaceError,  # Connection closed under us
)

# Bad input or broken data - retrying cannot help
MUST_RAISE = (
    InsufficientFunds,
    InvalidReferralChain,
    RequestNotFound,
    AccountNotFound,
    InvalidAmount,
    PlanNotAvailable,
)


def is_already_done(exc: BaseException) -> bool:
    """
    Check if exception means the operation already happened.

    Args:
        exc: Exception to check

    Returns:
        True if the work was already done
    """
    return isinstance(exc, ALREADY_DONE)


def is_retryable(exc: BaseException) -> bool:
    """
    Check if exception is transient.

    Args:
        exc: Exception to check

    Returns:
        True if retrying with the same key may succeed
    """
    if is_already_done(exc):
        return False
    return isinstance(exc, RETRYABLE)


def must_raise(exc: BaseException) -> bool:
    """
    Check if exception must be surfaced to the caller.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be raised
    """
    return isinstance(exc, MUST_RAISE)
