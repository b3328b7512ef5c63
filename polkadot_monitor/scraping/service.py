"""Scraping service.

Runs one background fetcher per enabled module. A fetcher walks over all
monitored accounts, pages through the Subscan data of each one until no
new entries show up, then pauses before the next pass.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session, sessionmaker

from polkadot_monitor.chain.api import ChainApi
from polkadot_monitor.db import get_session
from polkadot_monitor.scraping.fetchers import FETCHERS, Fetcher
from polkadot_monitor.tasks import TaskRunner
from polkadot_monitor.types import Context, Module

if TYPE_CHECKING:
    from polkadot_monitor.config import Settings

logger = logging.getLogger(__name__)


class DuplicateModuleError(Exception):
    """Raised when the same module is started twice."""

    def __init__(
        self,
        module: Module,
        code: str = "duplicate_module",
    ) -> None:
        """Initialize DuplicateModuleError.

        Args:
            module: The module that is already running.
            code: Error code for structured error handling.
        """
        super().__init__("configuration contains the same module multiple times")
        self.module = module
        self.code = code


class ScrapingService:
    """Run fetchers for a set of monitored accounts.

    Args:
        session_factory: Factory for database sessions.
        api: Chain API client shared by all fetchers.
        settings: Application settings (row amount, loop timing).
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        api: ChainApi,
        settings: Settings,
    ) -> None:
        self.session_factory = session_factory
        self.api = api
        self.row_amount = settings.row_amount
        self.loop_interval = settings.loop_interval
        self.failed_task_sleep = settings.failed_task_sleep
        self.runner = TaskRunner(kind="fetcher")
        self._contexts: list[Context] = []
        self._contexts_lock = threading.Lock()
        self._running: set[Module] = set()

    def add_contexts(self, contexts: Iterable[Context]) -> None:
        """Add accounts to monitor."""
        with self._contexts_lock:
            self._contexts.extend(contexts)

    def contexts(self) -> list[Context]:
        """Return a snapshot of the monitored accounts."""
        with self._contexts_lock:
            return list(self._contexts)

    @property
    def running(self) -> set[Module]:
        return set(self._running)

    def fetcher_for(self, module: Module) -> Fetcher:
        """Create the fetcher of a module."""
        return FETCHERS[module](self.api)

    def scrape_context(self, fetcher: Fetcher, context: Context) -> int:
        """Page through one account's data until nothing new shows up.

        Args:
            fetcher: Module fetcher.
            context: Account to scrape.

        Returns:
            Total number of newly stored entries.
        """
        total = 0
        page = 1

        while True:
            resp = fetcher.fetch_data(context, self.row_amount, page)

            if resp.is_empty():
                logger.debug(
                    "%s: No new entries were found for %s, moving on...",
                    fetcher.name,
                    context.stash,
                )
                break

            # The database reports how many entries were *newly* inserted;
            # 0 means everything on this page was already known.
            with get_session(self.session_factory) as session:
                newly_inserted = fetcher.store_data(session, context, resp)

            if newly_inserted == 0:
                logger.debug(
                    "%s: No new entries were found for %s, moving on...",
                    fetcher.name,
                    context.stash,
                )
                break

            total += newly_inserted
            logger.info(
                "%s: %d new entries found for %s",
                fetcher.name,
                newly_inserted,
                context.stash,
            )

            # All new entries fit on this page
            if newly_inserted < self.row_amount:
                logger.debug(
                    "%s: All new entries have been fetched for %s, "
                    "continuing with the next accounts.",
                    fetcher.name,
                    context.stash,
                )
                break

            page += 1

        return total

    def run_pass(self, fetcher: Fetcher) -> int:
        """Scrape every monitored account once.

        Returns:
            Total number of newly stored entries.

        Raises:
            ChainApiError: If a request fails.
            StorageError: If storing fails.
        """
        total = 0
        for context in self.contexts():
            total += self.scrape_context(fetcher, context)
        return total

    def run(self, module: Module) -> None:
        """Start the fetcher of a module in the background.

        Args:
            module: Module to start.

        Raises:
            DuplicateModuleError: If the module is already running.
        """
        if module in self._running:
            raise DuplicateModuleError(module)

        self._running.add(module)
        fetcher = self.fetcher_for(module)
        self.runner.spawn(
            fetcher.name,
            lambda: self.run_pass(fetcher),
            interval=self.loop_interval,
            failed_sleep=self.failed_task_sleep,
        )

    def stop(self) -> None:
        """Stop all fetchers and close the chain API client."""
        self.runner.stop()
        self.api.close()

    def wait_blocking(self) -> None:
        """Block until the service is stopped."""
        self.runner.wait_blocking()


__all__ = ["DuplicateModuleError", "ScrapingService"]
