"""Loading of accounts.yml and config.yml.

Both files are YAML. Validation errors are wrapped into ConfigError so
callers (CLI, service startup) only need to handle one exception type.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from polkadot_monitor.accounts.schema import AccountsFileSchema, MonitorConfigSchema


class ConfigError(Exception):
    """Raised when a configuration file is missing or invalid."""

    def __init__(self, message: str, code: str = "config_error") -> None:
        """Initialize ConfigError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


def load_yaml(path: Path) -> Any:
    """Load a YAML file and return its contents.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content (None for an empty file).

    Raises:
        ConfigError: If the file is missing or not valid YAML.
    """
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"File not found: {path}", code="not_found") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}", code="invalid_yaml") from e


def _format_validation_error(path: Path, error: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
        for err in error.errors()
    )
    return f"Invalid configuration in {path}: {details}"


def parse_accounts_data(data: Any) -> AccountsFileSchema:
    """Validate accounts data.

    Accepts either a bare list of accounts or a mapping with an
    ``accounts`` key.

    Args:
        data: Parsed YAML content.

    Returns:
        Validated AccountsFileSchema.

    Raises:
        pydantic.ValidationError: If data does not match schema.
        ValueError: If data is neither a list nor a mapping.
    """
    if data is None:
        data = []
    if isinstance(data, list):
        data = {"accounts": data}
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML list or mapping, got {type(data).__name__}"
        )
    return AccountsFileSchema.model_validate(data)


def load_accounts(path: Path) -> AccountsFileSchema:
    """Load and validate accounts.yml.

    Args:
        path: Path to the accounts file.

    Returns:
        Validated AccountsFileSchema.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    data = load_yaml(path)
    try:
        return parse_accounts_data(data)
    except ValidationError as e:
        raise ConfigError(
            _format_validation_error(path, e), code="validation_error"
        ) from e
    except ValueError as e:
        raise ConfigError(f"{path}: {e}", code="validation_error") from e


def load_monitor_config(path: Path) -> MonitorConfigSchema:
    """Load and validate config.yml.

    Args:
        path: Path to the module configuration file.

    Returns:
        Validated MonitorConfigSchema.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    data = load_yaml(path)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"{path}: Expected a YAML mapping, got {type(data).__name__}",
            code="validation_error",
        )
    try:
        return MonitorConfigSchema.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            _format_validation_error(path, e), code="validation_error"
        ) from e


__all__ = [
    "ConfigError",
    "load_accounts",
    "load_monitor_config",
    "load_yaml",
    "parse_accounts_data",
]
