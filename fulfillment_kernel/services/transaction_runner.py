"""
TransactionRunner -- one request-scoped unit of work with bounded retry.

Responsibility:
    Opens a fresh session per attempt, runs a workflow step inside one
    transaction, commits on success and rolls back on any failure.  Transient
    conflicts (serialization failures, deadlocks, a locked SQLite database,
    uniqueness races) are retried with exponential backoff up to the
    configured budget; business errors are never retried.

Architecture position:
    Kernel > Services -- imperative shell.  Used by the WorkflowOrchestrator
    for every write and read operation.

Invariants enforced:
    - All-or-nothing: a step either commits completely or leaves no trace.
    - Bounded retry: at most ``max_attempts`` tries, then
      ``RetriesExhaustedError``.

Failure modes:
    - RetriesExhaustedError when every attempt hit a transient conflict.
    - Any non-transient exception propagates after rollback.
"""

import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from fulfillment_kernel.exceptions import (
    RetriesExhaustedError,
    TransientConflictError,
)
from fulfillment_kernel.logging_config import get_logger

logger = get_logger("services.transaction_runner")

T = TypeVar("T")

# PostgreSQL SQLSTATEs for serialization_failure and deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})

# unique_violation: a concurrent writer inserted the same key first
_UNIQUE_VIOLATION_SQLSTATE = "23505"

_RETRYABLE_MESSAGES = (
    "database is locked",
    "could not serialize access",
    "deadlock detected",
)

_UNIQUE_VIOLATION_MESSAGES = (
    "unique constraint failed",
    "duplicate key value violates unique constraint",
)


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when an IntegrityError came from a unique constraint."""
    if getattr(exc.orig, "pgcode", None) == _UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _UNIQUE_VIOLATION_MESSAGES)


def is_transient_conflict(exc: BaseException) -> bool:
    """
    True for errors a concurrent writer can cause and a retry can clear.

    NOT NULL, foreign key and check violations fail the same way on every
    attempt and are not transient.
    """
    if isinstance(exc, TransientConflictError):
        return True
    if isinstance(exc, IntegrityError):
        return is_unique_violation(exc)
    if isinstance(exc, OperationalError):
        sqlstate = getattr(exc.orig, "pgcode", None)
        if sqlstate in _RETRYABLE_SQLSTATES:
            return True
        message = str(exc.orig).lower()
        return any(fragment in message for fragment in _RETRYABLE_MESSAGES)
    if isinstance(exc, DBAPIError):
        return getattr(exc.orig, "pgcode", None) in _RETRYABLE_SQLSTATES
    return False


class TransactionRunner:
    """
    Runs callables as retried, all-or-nothing units of work.

    Usage:
        runner = TransactionRunner(session_factory, max_attempts=4)
        po_ids = runner.run("convert_order", lambda session: ...)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        max_attempts: int = 4,
        backoff_seconds: float = 0.05,
        backoff_max_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._session_factory = session_factory
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._backoff_max_seconds = backoff_max_seconds
        self._sleep = sleep

    def backoff_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return min(
            self._backoff_seconds * (2 ** (attempt - 1)),
            self._backoff_max_seconds,
        )

    def run(self, operation: str, work: Callable[[Session], T]) -> T:
        """
        Execute ``work(session)`` in its own transaction, retrying conflicts.

        Args:
            operation: Name used in logs and in RetriesExhaustedError.
            work: Callable receiving an open session; its return value is
                returned after commit.

        Raises:
            RetriesExhaustedError: every attempt hit a transient conflict.
        """
        for attempt in range(1, self._max_attempts + 1):
            session = self._session_factory()
            try:
                result = work(session)
                session.commit()
                if attempt > 1:
                    logger.info(
                        "transaction_succeeded_after_retry",
                        extra={"operation": operation, "attempt": attempt},
                    )
                return result
            except Exception as exc:
                session.rollback()
                if not is_transient_conflict(exc):
                    raise
                if attempt == self._max_attempts:
                    logger.warning(
                        "transaction_retries_exhausted",
                        extra={
                            "operation": operation,
                            "attempts": attempt,
                            "error_type": type(exc).__name__,
                        },
                    )
                    raise RetriesExhaustedError(operation, attempt) from exc
                delay = self.backoff_for(attempt)
                logger.info(
                    "transaction_conflict_retry",
                    extra={
                        "operation": operation,
                        "attempt": attempt,
                        "delay_seconds": delay,
                        "error_type": type(exc).__name__,
                    },
                )
                self._sleep(delay)
            finally:
                session.close()

        raise AssertionError("unreachable")
