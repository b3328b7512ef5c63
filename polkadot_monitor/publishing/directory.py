"""Publisher writing reports into a local directory."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from polkadot_monitor.publishing.base import PublishError
from polkadot_monitor.types import StoragePayload

logger = logging.getLogger(__name__)


@dataclass
class DirectoryUploadInfo:
    """Optional subdirectory below the publisher root."""

    subdir: str = ""


class DirectoryPublisher:
    """Write each report to ``root/<subdir>/<name>``.

    Files are written to a temporary file first and renamed into place, so
    readers never see a partial report.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def upload_data(self, info: DirectoryUploadInfo, data: StoragePayload) -> None:
        """Write a report file.

        Raises:
            PublishError: If the name escapes the root or writing fails.
        """
        dest_dir = self.root / info.subdir if info.subdir else self.root
        dest = dest_dir / data.name

        # Report names contain timestamps but never path separators
        if Path(data.name).name != data.name or ".." in Path(info.subdir).parts:
            raise PublishError(
                f"Refusing to write {data.name}: invalid path", code="path_error"
            )

        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=dest_dir, suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data.body)
            os.replace(tmp_name, dest)
        except OSError as e:
            raise PublishError(
                f"OS error writing {dest}: {e}", code="os_error"
            ) from e

        logger.info("Wrote report %s (%d bytes)", dest, len(data.body))


__all__ = ["DirectoryPublisher", "DirectoryUploadInfo"]
