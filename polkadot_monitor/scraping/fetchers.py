"""Per-module fetchers pairing a chain API request with a storage call."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.orm import Session

from polkadot_monitor.chain.api import ChainApi
from polkadot_monitor.chain.schema import Response
from polkadot_monitor.storage.service import (
    store_nomination_event,
    store_reward_slash_event,
    store_transfer_event,
)
from polkadot_monitor.types import Context, Module


class Fetcher(ABC):
    """Fetch one module's data for an account and store it."""

    name: str = "Fetcher"
    module: Module

    def __init__(self, api: ChainApi) -> None:
        self.api = api

    @abstractmethod
    def fetch_data(self, context: Context, row: int, page: int) -> Response[Any]:
        """Request one page of entries for an account."""

    @abstractmethod
    def store_data(
        self, session: Session, context: Context, data: Response[Any]
    ) -> int:
        """Store a page and return how many entries were new."""


class TransferFetcher(Fetcher):
    name = "TransferFetcher"
    module = Module.TRANSFER

    def fetch_data(self, context: Context, row: int, page: int) -> Response[Any]:
        return self.api.request_transfer(context, row, page)

    def store_data(
        self, session: Session, context: Context, data: Response[Any]
    ) -> int:
        return store_transfer_event(session, context, data)


class RewardsSlashesFetcher(Fetcher):
    name = "RewardsSlashesFetcher"
    module = Module.REWARDS_SLASHES

    def fetch_data(self, context: Context, row: int, page: int) -> Response[Any]:
        return self.api.request_reward_slash(context, row, page)

    def store_data(
        self, session: Session, context: Context, data: Response[Any]
    ) -> int:
        return store_reward_slash_event(session, context, data)


class NominationsFetcher(Fetcher):
    """Nominations are not paginated; row and page are ignored."""

    name = "NominationsFetcher"
    module = Module.NOMINATIONS

    def fetch_data(self, context: Context, row: int, page: int) -> Response[Any]:
        return self.api.request_nominations(context)

    def store_data(
        self, session: Session, context: Context, data: Response[Any]
    ) -> int:
        return store_nomination_event(session, context, data)


FETCHERS: dict[Module, type[Fetcher]] = {
    Module.TRANSFER: TransferFetcher,
    Module.REWARDS_SLASHES: RewardsSlashesFetcher,
    Module.NOMINATIONS: NominationsFetcher,
}


__all__ = [
    "FETCHERS",
    "Fetcher",
    "NominationsFetcher",
    "RewardsSlashesFetcher",
    "TransferFetcher",
]
