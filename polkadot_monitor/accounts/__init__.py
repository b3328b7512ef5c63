"""Monitored accounts and module configuration.

This module handles:
- Schemas for accounts.yml and config.yml
- Loading and validating both files
"""

from polkadot_monitor.accounts.io import (
    ConfigError,
    load_accounts,
    load_monitor_config,
    parse_accounts_data,
)
from polkadot_monitor.accounts.schema import (
    AccountSchema,
    AccountsFileSchema,
    DirectoryPublisherSchema,
    GoogleStoragePublisherSchema,
    MonitorConfigSchema,
    ReportingSchema,
    ReportJobSchema,
    ScrapingSchema,
)

__all__ = [
    # Schemas
    "AccountSchema",
    "AccountsFileSchema",
    "DirectoryPublisherSchema",
    "GoogleStoragePublisherSchema",
    "MonitorConfigSchema",
    "ReportJobSchema",
    "ReportingSchema",
    "ScrapingSchema",
    # IO
    "ConfigError",
    "load_accounts",
    "load_monitor_config",
    "parse_accounts_data",
]
