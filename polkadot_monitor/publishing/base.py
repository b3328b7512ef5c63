"""Publisher interface shared by all report destinations."""

from typing import Any, Protocol

from polkadot_monitor.types import StoragePayload


class PublishError(Exception):
    """Raised when a report cannot be published."""

    def __init__(self, message: str, code: str = "publish_error") -> None:
        """Initialize PublishError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class Publisher(Protocol):
    """Destination for generated reports.

    ``info`` carries destination-specific options (e.g. the bucket name).
    """

    def upload_data(self, info: Any, data: StoragePayload) -> None: ...


__all__ = ["PublishError", "Publisher"]
