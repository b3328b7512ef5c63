"""Background task runner shared by the scraping and reporting services.

Each task runs in its own daemon thread and repeats forever:
- after a successful run it waits ``interval`` seconds
- after a failed run it logs the error and waits ``failed_sleep`` seconds

All waits observe a shared stop event, so ``stop()`` ends every task
promptly.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class TaskState:
    """Bookkeeping for a running task."""

    name: str
    thread: threading.Thread
    runs: int = 0
    failures: int = 0
    last_error: str | None = None


class TaskRunner:
    """Run named callables repeatedly in background threads."""

    def __init__(self, kind: str = "task") -> None:
        self.kind = kind
        self._stop = threading.Event()
        self._tasks: dict[str, TaskState] = {}
        self._lock = threading.Lock()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def tasks(self) -> list[TaskState]:
        with self._lock:
            return list(self._tasks.values())

    def spawn(
        self,
        name: str,
        func: Callable[[], object],
        interval: float,
        failed_sleep: float,
    ) -> TaskState:
        """Start ``func`` in a background thread.

        Args:
            name: Task name used in logs.
            func: Callable run once per iteration.
            interval: Pause after a successful run (seconds).
            failed_sleep: Pause after a failed run (seconds).

        Returns:
            State of the started task.

        Raises:
            ValueError: If a task with the same name is already running.
        """
        with self._lock:
            if name in self._tasks:
                raise ValueError(f"{self.kind} '{name}' is already running")

            thread = threading.Thread(
                target=self._loop,
                args=(name, func, interval, failed_sleep),
                name=name,
                daemon=True,
            )
            state = TaskState(name=name, thread=thread)
            self._tasks[name] = state

        thread.start()
        logger.info("Started %s '%s'", self.kind, name)
        return state

    def _loop(
        self,
        name: str,
        func: Callable[[], object],
        interval: float,
        failed_sleep: float,
    ) -> None:
        state = self._tasks[name]
        while not self._stop.is_set():
            try:
                func()
            except Exception as e:
                state.failures += 1
                state.last_error = str(e)
                logger.exception(
                    "Failed task while running %s '%s'", self.kind, name
                )
                self._stop.wait(failed_sleep)
            else:
                state.runs += 1
                state.last_error = None
                self._stop.wait(interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal all tasks to stop and wait for their threads."""
        self._stop.set()
        for state in self.tasks():
            state.thread.join(timeout)

    def wait_blocking(self) -> None:
        """Block until ``stop()`` is called."""
        self._stop.wait()


class TimeGuard:
    """Keep consecutive calls at least ``interval`` seconds apart.

    Shared between threads; callers block in ``wait()`` until their slot.
    """

    def __init__(self, interval: float) -> None:
        self.interval = interval
        self._lock = threading.Lock()
        self._last: float | None = None

    def wait(self) -> None:
        with self._lock:
            if self._last is not None:
                remaining = self._last + self.interval - time.monotonic()
                if remaining > 0:
                    time.sleep(remaining)
            self._last = time.monotonic()


__all__ = ["TaskRunner", "TaskState", "TimeGuard"]
