"""Row-lock helpers shared by the ledger repositories."""

from sqlalchemy import Table, text, update
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from app.config import settings

_LOCK_ERROR_MARKERS = ("lock timeout", "database is locked", "deadlock detected", "could not obtain lock")


def bound_lock_wait(session: Session, timeout_ms: int | None = None) -> None:
    """
    Cap how long the next row lock in this transaction may wait.

    Only PostgreSQL supports a per-transaction lock timeout; SQLite
    serialises writers itself and is bounded by its busy timeout.
    """
    connection = session.connection()
    if connection.dialect.name != "postgresql":
        return
    timeout = int(timeout_ms if timeout_ms is not None else settings.lock_timeout_ms)
    connection.execute(text(f"SET LOCAL lock_timeout = '{timeout}ms'"))


def reserve_sqlite_writer(session: Session, table: Table, row_id: object) -> None:
    """
    Take SQLite's write lock before a row is read for change.

    SQLite ignores FOR UPDATE. A no-op UPDATE opens the transaction and
    holds the database write lock, so other writers queue behind this one
    until it commits and then read what it wrote.
    """
    connection = session.connection()
    if connection.dialect.name != "sqlite":
        return
    connection.execute(update(table).where(table.c.id == row_id).values(id=table.c.id))


def is_lock_contention(error: OperationalError) -> bool:
    """True when the driver error means another transaction holds the lock."""
    message = str(error).lower()
    return any(marker in message for marker in _LOCK_ERROR_MARKERS)
