"""Configuration settings for polkadot_monitor.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.

The monitored accounts and the enabled modules live in YAML files
(see polkadot_monitor.accounts); this module only covers process-level
settings.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_db_url() -> str:
    """Return the default database URL (SQLite)."""
    db_path = Path.home() / ".local" / "share" / "polkadot-monitor" / "db.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the
    POLKADOT_MONITOR_ prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="POLKADOT_MONITOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    db_url: str = Field(
        default_factory=_default_db_url,
        description="Database connection URL",
    )
    config_file: Path = Field(
        default=Path("config/config.yml"),
        description="Module configuration file",
    )
    accounts_file: Path = Field(
        default=Path("config/accounts.yml"),
        description="Monitored accounts file",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Chain API
    subscan_api_key: SecretStr | None = Field(
        default=None,
        description="Subscan API key (sent as X-API-Key)",
    )
    request_timeout: int = Field(
        default=30,
        ge=1,
        description="Timeout for chain API requests (seconds)",
    )
    request_interval: float = Field(
        default=1.0,
        ge=0,
        description="Minimum gap between chain API requests (seconds)",
    )

    # Scraping/reporting loop
    row_amount: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Entries requested per page",
    )
    loop_interval: int = Field(
        default=300,
        ge=0,
        description="Pause after a full pass over all accounts (seconds)",
    )
    failed_task_sleep: int = Field(
        default=30,
        ge=0,
        description="Pause before restarting a failed task (seconds)",
    )
    publisher_interval: float = Field(
        default=1.0,
        ge=0,
        description="Minimum gap between report uploads (seconds)",
    )

    # Status API
    http_host: str = Field(default="0.0.0.0", description="Status API bind host")
    http_port: int = Field(default=8080, ge=1, le=65535, description="Status API port")


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The Subscan API key is masked.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
