"""Tests for LocalStore: attachment files and .eml backups."""

from __future__ import annotations

from pathlib import Path

import pytest

from gmail_unattach.core.exceptions import FilesystemError
from gmail_unattach.storage.local_store import LocalStore

TIMESTAMP_MS = 1705314600000


class TestWriteAttachment:
    def test_creates_directory_lazily(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"
        store = LocalStore(target)
        assert not target.exists()

        path = store.write_attachment("file.bin", b"\x00\x01", TIMESTAMP_MS)

        assert path == target / "file.bin"
        assert path.read_bytes() == b"\x00\x01"

    def test_sets_modification_time_to_email_timestamp(self, tmp_path: Path) -> None:
        path = LocalStore(tmp_path).write_attachment("file.bin", b"x", TIMESTAMP_MS)
        assert path.stat().st_mtime_ns == TIMESTAMP_MS * 1_000_000

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        store = LocalStore(tmp_path)
        store.write_attachment("file.bin", b"old content", TIMESTAMP_MS)
        path = store.write_attachment("file.bin", b"new", TIMESTAMP_MS)
        assert path.read_bytes() == b"new"

    def test_schema_subdirectories_are_created(self, tmp_path: Path) -> None:
        path = LocalStore(tmp_path).write_attachment("2024/01/file.bin", b"x", TIMESTAMP_MS)
        assert path == tmp_path / "2024" / "01" / "file.bin"
        assert path.exists()

    def test_write_failure_raises_filesystem_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = LocalStore(blocker)
        with pytest.raises(FilesystemError, match="Failed to write attachment"):
            store.write_attachment("file.bin", b"x", TIMESTAMP_MS)

    def test_target_dir_is_absolute(self) -> None:
        assert LocalStore(Path("relative")).target_dir.is_absolute()


class TestWriteBackup:
    def test_named_after_remote_id(self, tmp_path: Path) -> None:
        path = LocalStore(tmp_path / "backup").write_backup("msg001", b"raw message")
        assert path.name == "msg001.eml"
        assert path.read_bytes() == b"raw message"

    def test_overwrites_previous_backup(self, tmp_path: Path) -> None:
        store = LocalStore(tmp_path)
        store.write_backup("msg001", b"first")
        assert store.write_backup("msg001", b"second").read_bytes() == b"second"
