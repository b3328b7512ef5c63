"""Report publishing destinations.

This module handles:
- The Publisher interface
- Uploading to Google Cloud Storage with a service account
- Writing reports to a local directory
- Building a publisher from the reporting section of config.yml
"""

from __future__ import annotations

from typing import Any

from polkadot_monitor.accounts.schema import (
    DirectoryPublisherSchema,
    GoogleStoragePublisherSchema,
)
from polkadot_monitor.publishing.base import PublishError, Publisher
from polkadot_monitor.publishing.directory import (
    DirectoryPublisher,
    DirectoryUploadInfo,
)
from polkadot_monitor.publishing.google_storage import (
    GoogleStorage,
    GoogleStorageUploadInfo,
)


def publisher_from_config(
    config: GoogleStoragePublisherSchema | DirectoryPublisherSchema,
    upload_interval: float = 1.0,
) -> tuple[Publisher, Any]:
    """Create a publisher and its upload info from config.yml.

    Returns:
        Tuple of (publisher, upload info).

    Raises:
        PublishError: If the publisher cannot be set up.
    """
    if isinstance(config, GoogleStoragePublisherSchema):
        publisher = GoogleStorage.from_service_account_file(
            config.service_account, upload_interval=upload_interval
        )
        return publisher, GoogleStorageUploadInfo(bucket_name=config.bucket_name)
    return DirectoryPublisher(config.path), DirectoryUploadInfo()


__all__ = [
    "DirectoryPublisher",
    "DirectoryUploadInfo",
    "GoogleStorage",
    "GoogleStorageUploadInfo",
    "PublishError",
    "Publisher",
    "publisher_from_config",
]
