"""Reporting service.

Runs one background worker per configured report job. A job only
generates reports once at least one full period (day, week or 31-day
month) has passed since its checkpoint; afterwards the checkpoint moves
to the reference day (yesterday).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session, sessionmaker

from polkadot_monitor.accounts.schema import ReportJobSchema
from polkadot_monitor.db import get_session
from polkadot_monitor.publishing.base import Publisher
from polkadot_monitor.reporting.generators import GENERATORS, ReportGenerator
from polkadot_monitor.scraping.service import DuplicateModuleError
from polkadot_monitor.storage.service import (
    fetch_checkpoint_offset,
    reference_day,
    update_checkpoint,
)
from polkadot_monitor.tasks import TaskRunner
from polkadot_monitor.types import Context, Module

if TYPE_CHECKING:
    from polkadot_monitor.config import Settings

logger = logging.getLogger(__name__)


class ReportService:
    """Generate and publish reports for a set of monitored accounts.

    Args:
        session_factory: Factory for database sessions.
        publisher: Destination of generated reports.
        info: Destination-specific upload info.
        settings: Application settings (loop timing).
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        publisher: Publisher,
        info: Any,
        settings: Settings,
    ) -> None:
        self.session_factory = session_factory
        self.publisher = publisher
        self.info = info
        self.loop_interval = settings.loop_interval
        self.failed_task_sleep = settings.failed_task_sleep
        self.runner = TaskRunner(kind="report generator")
        self._contexts: list[Context] = []
        self._contexts_lock = threading.Lock()
        self._running: set[tuple[Module, str]] = set()

    def add_contexts(self, contexts: Iterable[Context]) -> None:
        """Add accounts to report on."""
        with self._contexts_lock:
            self._contexts.extend(contexts)

    def contexts(self) -> list[Context]:
        """Return a snapshot of the monitored accounts."""
        with self._contexts_lock:
            return list(self._contexts)

    @property
    def running(self) -> set[tuple[Module, str]]:
        return set(self._running)

    def generator_for(self, module: Module) -> ReportGenerator:
        """Create the report generator of a module."""
        return GENERATORS[module]()

    def run_job_once(
        self,
        generator: ReportGenerator,
        job: ReportJobSchema,
        today: date | None = None,
    ) -> int:
        """Run a report job if its period has elapsed.

        Args:
            generator: Module report generator.
            job: Report job (module and occurrence).
            today: Override of the current day (tests).

        Returns:
            Number of published reports (0 if the job was not due).

        Raises:
            StorageError: If the checkpoint cannot be read or written.
            ReportError: If a report cannot be generated.
            PublishError: If a report cannot be uploaded.
        """
        contexts = self.contexts()

        with get_session(self.session_factory) as session:
            offset = fetch_checkpoint_offset(
                session, job.module, job.occurrence, today=today
            )
            if offset == 0:
                logger.debug(
                    "%s: Report (%s) is not due yet, skipping",
                    generator.name,
                    job.occurrence.value,
                )
                return 0

            data = generator.fetch_data(session, contexts)

        published = 0
        if data is None:
            logger.debug("%s: No data to report", generator.name)
        else:
            for report in generator.generate(data, contexts):
                generator.publish(self.publisher, self.info, report)
                published += 1

        # The checkpoint only moves once every report has been published
        with get_session(self.session_factory) as session:
            update_checkpoint(
                session, job.module, job.occurrence, reference_day(today)
            )

        logger.info(
            "%s: Published %d %s report(s)",
            generator.name,
            published,
            job.occurrence.value,
        )
        return published

    def run(self, job: ReportJobSchema) -> None:
        """Start a report job in the background.

        Args:
            job: Report job to start.

        Raises:
            DuplicateModuleError: If the same job is already running.
        """
        key = (job.module, job.occurrence.value)
        if key in self._running:
            raise DuplicateModuleError(job.module)

        self._running.add(key)
        generator = self.generator_for(job.module)
        self.runner.spawn(
            f"{generator.name}:{job.occurrence.value}",
            lambda: self.run_job_once(generator, job),
            interval=self.loop_interval,
            failed_sleep=self.failed_task_sleep,
        )

    def stop(self) -> None:
        """Stop all report jobs."""
        self.runner.stop()

    def wait_blocking(self) -> None:
        """Block until the service is stopped."""
        self.runner.wait_blocking()


__all__ = ["ReportService"]
