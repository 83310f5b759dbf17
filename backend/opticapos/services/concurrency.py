# Overview: Retry and timeout helpers for units of work that touch contended rows.

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


def run_with_retry(session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before each
    retry, so func must rebuild all of its state from scratch.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Retrying unit of work after %s (attempt %d/%d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


class Deadline:
    """Wall-clock budget for one unit of work."""

    def __init__(self, seconds: float | None):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds if seconds else None

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return self._expires_at - time.monotonic()

    def check(self, what: str = "operation") -> None:
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise PersistenceError(f"{what} timed out", details={"timeout_seconds": self.seconds})


def apply_statement_timeout(session, seconds: float | None) -> None:
    """
    Bound server-side statement time for the current transaction.

    PostgreSQL honours SET LOCAL statement_timeout; SQLite relies on the
    connection busy timeout configured in create_app.
    """
    if not seconds:
        return
    if session.get_bind().dialect.name == "postgresql":
        session.execute(text(f"SET LOCAL statement_timeout = {int(seconds * 1000)}"))


def begin_write_transaction(session) -> None:
    """
    Take the write lock up front on SQLite.

    A deferred SQLite transaction that reads before writing can be refused
    the lock upgrade without waiting; BEGIN IMMEDIATE makes concurrent
    writers queue on the busy timeout instead. Other databases rely on the
    conditional UPDATE and row locks.
    """
    if session.get_bind().dialect.name == "sqlite":
        session.execute(text("BEGIN IMMEDIATE"))
