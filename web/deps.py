"""Dependencies for the status API route handlers.

The session factory and the started services are handed to
``create_app`` by ``polkadot-monitor run`` and kept on ``app.state``.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.orm import Session, sessionmaker


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Return the session factory shared with the workers."""
    factory: sessionmaker[Session] = request.app.state.session_factory
    return factory


def get_services(request: Request) -> list[Any]:
    """Return the started scraping/reporting services."""
    return list(getattr(request.app.state, "services", []))


def get_db(
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Generator[Session, None, None]:
    """Provide a read-only database session for a request.

    Status endpoints never write, so the session is rolled back instead of
    committed before it is closed.

    Yields:
        Database session.
    """
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
