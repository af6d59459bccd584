"""Transaction boundary and conflict retry for ledger mutations."""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar
from uuid import UUID

from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from app.config import settings
from app.domain.exceptions import ConcurrencyConflictError
from app.repositories.locking import is_lock_contention

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def atomic(session: Session, entity: str, entity_id: UUID | None = None) -> Iterator[None]:
    """
    Commit everything staged inside the block, or nothing.

    Any exception rolls the session back before propagating. Lock timeouts
    and busy-database errors are reported as ConcurrencyConflictError.
    """
    try:
        yield
        session.commit()
    except OperationalError as e:
        session.rollback()
        if is_lock_contention(e):
            raise ConcurrencyConflictError(entity, entity_id, "lock not acquired in time") from e
        raise
    except Exception:
        session.rollback()
        raise


def run_with_retry(
    operation: Callable[[], T],
    attempts: int | None = None,
    backoff_ms: int | None = None,
) -> T:
    """
    Run a transactional operation, retrying it on ConcurrencyConflictError.

    The operation must open its own ``atomic`` block so each attempt
    re-reads current state. After the final attempt the conflict propagates.
    """
    max_attempts = max(1, attempts if attempts is not None else settings.conflict_retry_attempts)
    backoff = (backoff_ms if backoff_ms is not None else settings.conflict_retry_backoff_ms) / 1000

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except ConcurrencyConflictError as e:
            if attempt == max_attempts:
                raise
            logger.warning(
                "Ledger conflict, retrying (attempt %d of %d): %s",
                attempt,
                max_attempts,
                e,
            )
            time.sleep(backoff * attempt)

    raise AssertionError("unreachable")
