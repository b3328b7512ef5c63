"""SQLAlchemy engine and sessions for the monitor database.

Scraped transfers, rewards/slashes, nominations and report checkpoints all
live in one database. Fetcher and report worker threads share a single
engine; each unit of work opens its own session through ``get_session``.
"""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from polkadot_monitor.config import get_settings

# Seconds a SQLite writer waits on a locked database before failing
SQLITE_BUSY_TIMEOUT = 30


class Base(DeclarativeBase):
    """Declarative base of the storage models."""


def _connect_args(db_url: str) -> dict[str, Any]:
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return {}

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}


def get_engine(db_url: str | None = None) -> Engine:
    """Create an engine for ``db_url`` or the configured database.

    For SQLite files the parent directory is created on demand.
    """
    if db_url is None:
        db_url = get_settings().db_url
    return create_engine(db_url, connect_args=_connect_args(db_url))


def get_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``.

    Objects stay usable after commit, since fetchers and report generators
    hand them on once their session has closed.
    """
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


@contextmanager
def get_session(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Open a session that commits on success and rolls back on error.

    Args:
        session_factory: Factory to open the session with; the configured
            database is used when omitted.

    Yields:
        SQLAlchemy Session instance.
    """
    factory = session_factory if session_factory is not None else get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping(session: Session) -> bool:
    """Check that the database answers a trivial query."""
    return session.execute(text("SELECT 1")).scalar() == 1


def create_all_tables(engine: Engine | None = None) -> None:
    """Create the storage tables that do not exist yet."""
    # Importing the models registers their tables on Base.metadata
    from polkadot_monitor.storage import models  # noqa: F401

    Base.metadata.create_all(bind=engine if engine is not None else get_engine())


__all__ = [
    "Base",
    "create_all_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "ping",
]
