"""Subscan API client.

This module handles:
- Requesting transfers, rewards/slashes and nominations per account
- Spacing requests to respect the Subscan rate limit
- Mapping transport and API failures to ChainApiError
"""

from __future__ import annotations

import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from polkadot_monitor.chain.schema import (
    NominationsPage,
    Response,
    RewardsSlashesPage,
    TransfersPage,
)
from polkadot_monitor.tasks import TimeGuard
from polkadot_monitor.types import Context, Network

logger = logging.getLogger(__name__)

TRANSFERS_PATH = "/api/scan/transfers"
REWARD_SLASH_PATH = "/api/scan/account/reward_slash"
NOMINATIONS_PATH = "/api/scan/staking/voted"

# Timeout for API requests (seconds)
REQUEST_TIMEOUT = 30

PageT = TypeVar("PageT", bound=BaseModel)


class ChainApiError(Exception):
    """Raised when a Subscan request fails."""

    def __init__(self, message: str, code: str = "chain_api_error") -> None:
        """Initialize ChainApiError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class ChainApi:
    """Synchronous Subscan client shared by all fetchers.

    Args:
        client: HTTPX client instance. One is created if not provided.
        api_key: Optional Subscan API key.
        base_urls: Override of the API host per network (mirrors, tests).
        timeout: Request timeout in seconds.
        request_interval: Minimum gap between two requests (seconds).
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        api_key: str | None = None,
        base_urls: dict[Network, str] | None = None,
        timeout: float = REQUEST_TIMEOUT,
        request_interval: float = 1.0,
    ) -> None:
        self.client = client if client is not None else httpx.Client()
        self.api_key = api_key
        self.base_urls = base_urls or {}
        self.timeout = timeout
        self.guard = TimeGuard(request_interval)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def url_for(self, network: Network, path: str) -> str:
        """Return the full URL of an API path on a network."""
        base = self.base_urls.get(network, network.api_base_url)
        return f"{base.rstrip('/')}{path}"

    def _post(
        self,
        network: Network,
        path: str,
        body: dict[str, object],
        page_type: type[PageT],
    ) -> Response[PageT]:
        url = self.url_for(network, path)
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key

        self.guard.wait()
        logger.debug("POST %s %s", url, body)

        try:
            response = self.client.post(
                url, json=body, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise ChainApiError(
                f"HTTP error requesting {url}: {e.response.status_code} {e.response.reason_phrase}",
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise ChainApiError(f"Timeout requesting {url}", code="timeout") from e
        except httpx.RequestError as e:
            raise ChainApiError(
                f"Network error requesting {url}: {e}", code="network_error"
            ) from e
        except ValueError as e:
            raise ChainApiError(
                f"Invalid JSON from {url}: {e}", code="invalid_response"
            ) from e

        if isinstance(payload, dict) and payload.get("code", 0) != 0:
            raise ChainApiError(
                f"Subscan returned code {payload.get('code')} for {url}: "
                f"{payload.get('message', '')}",
                code="api_error",
            )

        try:
            parsed = Response[page_type].model_validate(payload)  # type: ignore[valid-type]
        except ValidationError as e:
            raise ChainApiError(
                f"Unexpected response body from {url}: {e}", code="invalid_response"
            ) from e

        return parsed

    def request_transfer(
        self, context: Context, row: int, page: int
    ) -> Response[TransfersPage]:
        """Request a page of transfers for an account.

        Args:
            context: Account to query.
            row: Entries per page.
            page: Page number, starting at 1.

        Returns:
            Parsed response.

        Raises:
            ChainApiError: If the request fails.
        """
        return self._post(
            context.network,
            TRANSFERS_PATH,
            # Subscan pages are zero-based
            {"address": context.as_str(), "row": row, "page": page - 1},
            TransfersPage,
        )

    def request_reward_slash(
        self, context: Context, row: int, page: int
    ) -> Response[RewardsSlashesPage]:
        """Request a page of rewards/slashes for an account.

        Args:
            context: Account to query.
            row: Entries per page.
            page: Page number, starting at 1.

        Returns:
            Parsed response.

        Raises:
            ChainApiError: If the request fails.
        """
        return self._post(
            context.network,
            REWARD_SLASH_PATH,
            {"address": context.as_str(), "row": row, "page": page - 1},
            RewardsSlashesPage,
        )

    def request_nominations(self, context: Context) -> Response[NominationsPage]:
        """Request the validators an account currently nominates.

        Args:
            context: Account to query.

        Returns:
            Parsed response.

        Raises:
            ChainApiError: If the request fails.
        """
        return self._post(
            context.network,
            NOMINATIONS_PATH,
            {"address": context.as_str()},
            NominationsPage,
        )


__all__ = [
    "ChainApi",
    "ChainApiError",
    "NOMINATIONS_PATH",
    "REWARD_SLASH_PATH",
    "TRANSFERS_PATH",
]
