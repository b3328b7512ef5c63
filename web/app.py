"""FastAPI application factory and main app.

The status API runs next to the scraping and reporting workers started by
``polkadot-monitor run``. It exposes liveness, readiness and the effective
settings; it never changes monitor state.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from polkadot_monitor import __version__
from polkadot_monitor.db import create_all_tables, get_engine, get_session_factory
from web.routers import config, health


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager.

    Initializes database tables on startup unless a session factory was
    handed in by the caller.
    """
    if getattr(app.state, "session_factory", None) is None:
        engine = get_engine()
        create_all_tables(engine)
        app.state.session_factory = get_session_factory(engine)
    yield


def create_app(
    session_factory: sessionmaker[Session] | None = None,
    services: Sequence[Any] = (),
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session_factory: Database session factory shared with the workers.
        services: Started scraping/reporting services checked by ``/ready``.

    Returns:
        Configured FastAPI application.
    """
    application = FastAPI(
        title="Polkadot Account Monitor",
        description="Status API of the Polkadot/Kusama account monitor",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.session_factory = session_factory
    application.state.services = list(services)

    application.include_router(health.router, tags=["health"])
    application.include_router(config.router, prefix="/config", tags=["config"])

    return application


# Create the default application instance
app = create_app()
