"""Google Cloud Storage publisher.

Authenticates with a service account key through google-auth and uploads
reports through the Cloud Storage JSON API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as AuthRequest
from google.oauth2 import service_account

from polkadot_monitor.publishing.base import PublishError
from polkadot_monitor.tasks import TimeGuard
from polkadot_monitor.types import StoragePayload

logger = logging.getLogger(__name__)

UPLOAD_BASE_URL = "https://storage.googleapis.com/upload/storage/v1"

SCOPES = [
    "https://www.googleapis.com/auth/devstorage.read_write",
    "https://www.googleapis.com/auth/drive",
]

# Timeout for uploads (seconds)
UPLOAD_TIMEOUT = 120


@dataclass
class GoogleStorageUploadInfo:
    """Where reports are uploaded to."""

    bucket_name: str


class GoogleStorage:
    """Upload reports into a Cloud Storage bucket.

    Args:
        credentials: google-auth credentials (service account).
        client: HTTPX client instance. One is created if not provided.
        upload_interval: Minimum gap between two uploads (seconds).
        base_url: Upload API base URL.
    """

    def __init__(
        self,
        credentials: Any,
        client: httpx.Client | None = None,
        upload_interval: float = 1.0,
        base_url: str = UPLOAD_BASE_URL,
    ) -> None:
        self.credentials = credentials
        self.client = client if client is not None else httpx.Client()
        self.guard = TimeGuard(upload_interval)
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_service_account_file(
        cls, path: Path, upload_interval: float = 1.0
    ) -> GoogleStorage:
        """Create a publisher from a service account key file.

        Raises:
            PublishError: If the key cannot be read.
        """
        try:
            credentials = service_account.Credentials.from_service_account_file(
                str(path), scopes=SCOPES
            )
        except (OSError, ValueError) as e:
            raise PublishError(
                f"Failed to read service account key {path}: {e}",
                code="invalid_credentials",
            ) from e
        return cls(credentials, upload_interval=upload_interval)

    def token(self) -> str:
        """Return a valid access token, refreshing it if needed.

        Raises:
            PublishError: If authentication fails or returns an empty token.
        """
        if not self.credentials.valid:
            try:
                self.credentials.refresh(AuthRequest())
            except GoogleAuthError as e:
                raise PublishError(
                    f"Google authentication failed: {e}", code="auth_error"
                ) from e

        token = self.credentials.token
        if not token:
            raise PublishError(
                "returned Google auth token is invalid", code="auth_error"
            )
        return str(token)

    def upload_data(
        self, info: GoogleStorageUploadInfo, data: StoragePayload
    ) -> None:
        """Upload a report as an object named ``data.name``.

        Raises:
            PublishError: If the upload fails.
        """
        self.guard.wait()

        url = f"{self.base_url}/b/{info.bucket_name}/o"
        params = {"uploadType": "media", "name": data.name}
        if data.is_public:
            params["predefinedAcl"] = "publicRead"

        headers = {
            "Authorization": f"Bearer {self.token()}",
            "Content-Type": data.mime_type,
        }

        try:
            response = self.client.post(
                url,
                params=params,
                content=data.body,
                headers=headers,
                timeout=UPLOAD_TIMEOUT,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PublishError(
                f"HTTP error uploading {data.name}: {e.response.status_code} {e.response.reason_phrase}",
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise PublishError(
                f"Timeout uploading {data.name}", code="timeout"
            ) from e
        except httpx.RequestError as e:
            raise PublishError(
                f"Network error uploading {data.name}: {e}", code="network_error"
            ) from e

        logger.info(
            "Uploaded %s to gs://%s (%d bytes)",
            data.name,
            info.bucket_name,
            len(data.body),
        )


__all__ = ["GoogleStorage", "GoogleStorageUploadInfo", "SCOPES"]
