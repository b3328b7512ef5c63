"""Integration test harness for a Kubernetes deployment.

Deploys the monitor with the external helmfile script, waits until its pod
reports ready and removes the Helm release afterwards unless
``KEEP_POLKADOT_MONITOR`` is set to a non-empty value.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import FrameType

logger = logging.getLogger(__name__)

RELEASE_NAME = "polkadot-account-monitor"
POD_NAME = "polkadot-account-monitor"
DEPLOY_SCRIPT = Path("/scripts/build-helmfile.sh")
KEEP_ENV_VAR = "KEEP_POLKADOT_MONITOR"

# Timeout for the pod to become ready (seconds)
DEFAULT_READY_TIMEOUT = 300

# Signals that end the run through the teardown path
TEARDOWN_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


class HarnessError(Exception):
    """Raised when a harness command fails."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        exit_code: int | None = None,
        code: str = "harness_error",
    ) -> None:
        """Initialize HarnessError.

        Args:
            message: Error description.
            command: The failing command.
            exit_code: Exit status of the failing command, if it ran.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.code = code


def _run(command: list[str], timeout: float | None = None) -> None:
    """Run a command, streaming its output to the console.

    Raises:
        HarnessError: If the command cannot be started, times out or fails.
    """
    logger.debug("Running %s", " ".join(command))
    try:
        subprocess.run(command, check=True, timeout=timeout)
    except subprocess.CalledProcessError as e:
        raise HarnessError(
            f"{command[0]} exited with status {e.returncode}",
            command=command,
            exit_code=e.returncode,
            code="command_failed",
        ) from e
    except subprocess.TimeoutExpired as e:
        raise HarnessError(
            f"{command[0]} timed out after {timeout}s",
            command=command,
            exit_code=-1,
            code="timeout",
        ) from e
    except OSError as e:
        raise HarnessError(
            f"Failed to run {command[0]}: {e}",
            command=command,
            code="execution_error",
        ) from e


def keep_deployment() -> bool:
    """Return True if the deployment must survive the test run."""
    return bool(os.environ.get(KEEP_ENV_VAR))


def deploy(script: Path = DEPLOY_SCRIPT) -> None:
    """Deploy the monitor with the external helmfile script."""
    _run([str(script)])


def wait_pod_ready(
    name: str = POD_NAME, timeout: int = DEFAULT_READY_TIMEOUT
) -> None:
    """Block until the pods of ``name`` report the Ready condition.

    Args:
        name: Value of the pod's ``app`` label.
        timeout: Maximum wait (seconds).

    Raises:
        HarnessError: If the pod does not become ready in time.
    """
    _run(
        [
            "kubectl",
            "wait",
            "--for=condition=ready",
            "pod",
            "-l",
            f"app={name}",
            f"--timeout={timeout}s",
        ],
        # kubectl enforces the timeout itself; leave it some slack
        timeout=timeout + 30,
    )


def run_tests(
    pod_name: str = POD_NAME, timeout: int = DEFAULT_READY_TIMEOUT
) -> None:
    """Run the integration checks against the deployment."""
    logger.info("Running tests...")
    wait_pod_ready(pod_name, timeout)


def teardown(release: str = RELEASE_NAME) -> None:
    """Delete the Helm release."""
    _run(["helm", "delete", release])


def _exit_on_signal(signum: int, frame: FrameType | None) -> None:
    logger.warning("Received %s, stopping", signal.Signals(signum).name)
    raise SystemExit(128 + signum)


@contextmanager
def exit_on_signals() -> Iterator[None]:
    """Turn SIGTERM and SIGHUP into ``SystemExit(128 + signum)``.

    The exception unwinds the caller's ``finally`` blocks, so teardown also
    runs when a CI job is cancelled. Previous handlers are restored on exit.
    Handlers can only be installed from the main thread; elsewhere this is a
    no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {
        signum: signal.signal(signum, _exit_on_signal) for signum in TEARDOWN_SIGNALS
    }
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def run_integration_tests(
    script: Path = DEPLOY_SCRIPT,
    release: str = RELEASE_NAME,
    pod_name: str = POD_NAME,
    timeout: int = DEFAULT_READY_TIMEOUT,
) -> None:
    """Deploy, wait for readiness and tear down.

    Teardown runs on every exit, successful or not, unless
    ``KEEP_POLKADOT_MONITOR`` is set. That includes SIGTERM and SIGHUP, which
    end the run with exit status ``128 + signum``. A failing teardown is
    logged; it never replaces the error that ended the run.

    Args:
        script: Deployment script.
        release: Helm release to delete on teardown.
        pod_name: Pod to wait for.
        timeout: Readiness timeout (seconds).

    Raises:
        HarnessError: If deploying or waiting fails, or if teardown fails
            after an otherwise successful run.
        SystemExit: If SIGTERM or SIGHUP arrives before teardown.
    """
    if keep_deployment():
        logger.info("%s is set, the deployment will be kept", KEEP_ENV_VAR)
        deploy(script)
        run_tests(pod_name, timeout)
        return

    succeeded = False
    with exit_on_signals():
        try:
            deploy(script)
            run_tests(pod_name, timeout)
            succeeded = True
        finally:
            try:
                teardown(release)
            except HarnessError:
                if succeeded:
                    raise
                logger.exception("Teardown of release '%s' failed", release)


__all__ = [
    "DEPLOY_SCRIPT",
    "HarnessError",
    "KEEP_ENV_VAR",
    "POD_NAME",
    "RELEASE_NAME",
    "deploy",
    "exit_on_signals",
    "keep_deployment",
    "run_integration_tests",
    "run_tests",
    "teardown",
    "wait_pod_ready",
]
