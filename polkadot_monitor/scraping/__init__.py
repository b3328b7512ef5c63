"""Scraping of chain data for monitored accounts."""

from polkadot_monitor.scraping.fetchers import (
    FETCHERS,
    Fetcher,
    NominationsFetcher,
    RewardsSlashesFetcher,
    TransferFetcher,
)
from polkadot_monitor.scraping.service import DuplicateModuleError, ScrapingService

__all__ = [
    "DuplicateModuleError",
    "FETCHERS",
    "Fetcher",
    "NominationsFetcher",
    "RewardsSlashesFetcher",
    "ScrapingService",
    "TransferFetcher",
]
