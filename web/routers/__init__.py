"""Router modules for FastAPI web API."""

from web.routers import config, health

__all__ = ["config", "health"]
