"""Configuration endpoints."""

from typing import Any

from fastapi import APIRouter

from polkadot_monitor.config import get_settings

router = APIRouter()


@router.get("")
def get_config() -> dict[str, Any]:
    """Get effective configuration.

    The Subscan API key is never returned; only whether one is set.

    Returns:
        Current configuration as JSON.
    """
    settings = get_settings()
    return {
        "db_url": settings.db_url,
        "config_file": str(settings.config_file),
        "accounts_file": str(settings.accounts_file),
        "log_level": settings.log_level,
        "subscan_api_key_set": settings.subscan_api_key is not None,
        "request_timeout": settings.request_timeout,
        "request_interval": settings.request_interval,
        "row_amount": settings.row_amount,
        "loop_interval": settings.loop_interval,
        "failed_task_sleep": settings.failed_task_sleep,
        "publisher_interval": settings.publisher_interval,
        "http_host": settings.http_host,
        "http_port": settings.http_port,
    }
