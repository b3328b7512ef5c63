"""Health and readiness endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from polkadot_monitor import __version__
from polkadot_monitor.db import ping
from web.deps import get_db, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Liveness endpoint.

    Returns:
        Health status with version.
    """
    return {"status": "ok", "version": __version__}


def _service_started(service: Any) -> bool:
    return bool(service.running) and not service.runner.stopped


@router.get("/ready")
def ready(
    db: Session = Depends(get_db),
    services: list[Any] = Depends(get_services),
) -> JSONResponse:
    """Readiness endpoint.

    Ready once the database answers and every service has started its
    workers. Responds with 503 otherwise.
    """
    try:
        database_ok = ping(db)
    except SQLAlchemyError as e:
        logger.warning("Database readiness check failed: %s", e)
        database_ok = False

    services_ok = bool(services) and all(_service_started(s) for s in services)
    is_ready = database_ok and services_ok

    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "status": "ready" if is_ready else "not ready",
            "database": database_ok,
            "services": services_ok,
        },
    )
