"""Local filesystem storage for extracted attachments and raw message backups."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from gmail_unattach.core.exceptions import FilesystemError

logger = logging.getLogger(__name__)


class LocalStore:
    """Write attachments and ``.eml`` backups under a target directory.

    The directory is created on first write, so runs that never write leave
    no trace on disk.
    """

    def __init__(self, target_dir: Path) -> None:
        self._target_dir = target_dir.absolute()

    @property
    def target_dir(self) -> Path:
        return self._target_dir

    def write_attachment(self, filename: str, data: bytes, timestamp_ms: int) -> Path:
        """Save attachment bytes, overwriting any previous file of that name.

        The file's modification time is set to ``timestamp_ms`` so it matches
        the email rather than the download.

        Args:
            filename: Normalized filename, relative to the target directory.
            data: Decoded attachment content.
            timestamp_ms: Email timestamp in milliseconds since the epoch.

        Returns:
            Path of the written file.
        """
        path = self._target_dir / filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            mtime_ns = timestamp_ms * 1_000_000
            os.utime(path, ns=(path.stat().st_atime_ns, mtime_ns))
        except OSError as e:
            raise FilesystemError(f"Failed to write attachment {path}: {e}") from e
        logger.debug("Saved attachment: %s (%d bytes)", path, len(data))
        return path

    def write_backup(self, remote_id: str, raw: bytes) -> Path:
        """Save the untouched raw message as ``{remote_id}.eml``."""
        path = self._target_dir / f"{remote_id}.eml"
        try:
            self._target_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(raw)
        except OSError as e:
            raise FilesystemError(f"Failed to write backup {path}: {e}") from e
        logger.debug("Saved backup: %s", path)
        return path
