"""Deployment and integration test harness."""

from polkadot_monitor.deploy.harness import (
    HarnessError,
    run_integration_tests,
    teardown,
    wait_pod_ready,
)

__all__ = [
    "HarnessError",
    "run_integration_tests",
    "teardown",
    "wait_pod_ready",
]
