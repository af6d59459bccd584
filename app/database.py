"""Database engine construction and session management."""

from typing import Any, Generator

from sqlalchemy.engine import Engine, make_url
from sqlmodel import Session, create_engine

from app.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the ledger store.

    Pool sizing only applies to server databases; SQLite URLs get
    ``check_same_thread`` disabled so worker threads can share the file.
    """
    options: dict[str, Any] = {"echo": settings.debug}

    if make_url(database_url).get_backend_name() == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,  # Verify connections before use
        )

    return create_engine(database_url, **options)


engine = build_engine(settings.database_url)


def get_session() -> Generator[Session, None, None]:
    """Dependency to provide database session to endpoints."""
    with Session(engine) as session:
        yield session
