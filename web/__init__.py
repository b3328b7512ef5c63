"""FastAPI status API for the Polkadot account monitor.

Serves liveness, readiness and the effective configuration next to the
background workers. All monitor logic lives in polkadot_monitor/.
"""

from web.app import app, create_app

__all__ = ["app", "create_app"]
