"""Allow running the monitor with ``python -m polkadot_monitor``."""

from polkadot_monitor.cli import app

app()
