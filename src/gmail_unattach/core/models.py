"""Frozen dataclasses and enums for the Gmail Unattach domain model."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

DEFAULT_FILENAME_SCHEMA = "${YEAR}-${MONTH}-${DAY}_${ID}_${COUNTER}_${RAW_ATTACHMENT_NAME}"
DEFAULT_REFERENCE_URL = "https://unattach.appspot.com/get_file/"


@dataclass(frozen=True)
class Email:
    """Metadata snapshot of a Gmail message, built from a metadata fetch.

    ``remote_id`` is the Gmail-assigned id and changes whenever the message is
    re-inserted. ``stable_message_id`` is the Message-Id header.
    """

    remote_id: str
    stable_message_id: str | None = None
    label_ids: frozenset[str] = field(default_factory=frozenset)
    sender: str = ""
    to: str = ""
    subject: str = ""
    timestamp_ms: int = 0
    size_estimate: int = 0
    attachment_filenames: tuple[str, ...] = field(default_factory=tuple)

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=UTC)

    def __str__(self) -> str:
        return f"email {self.remote_id} ({self.subject!r} from {self.sender})"


class ProcessOption(enum.Enum):
    """What to do with the attachments of each selected email."""

    DOWNLOAD = (False, True, False)
    REMOVE = (False, False, True)
    DOWNLOAD_AND_REMOVE = (False, True, True)
    BACKUP = (True, False, False)
    BACKUP_AND_DOWNLOAD = (True, True, False)
    BACKUP_AND_REMOVE = (True, False, True)
    BACKUP_DOWNLOAD_AND_REMOVE = (True, True, True)

    def __init__(self, backup: bool, download: bool, remove: bool) -> None:
        self.backup = backup
        self.download = download
        self.remove = remove


@dataclass(frozen=True)
class ProcessSettings:
    """Immutable per-run processing settings."""

    process_option: ProcessOption
    target_directory: Path
    filename_schema: str = DEFAULT_FILENAME_SCHEMA
    add_metadata: bool = True
    delete_original: bool = False
    downloaded_label_id: str | None = None
    removed_label_id: str | None = None
    reference_url: str = DEFAULT_REFERENCE_URL

    def should_backup(self) -> bool:
        return self.process_option.backup

    def should_download(self) -> bool:
        return self.process_option.download

    def should_remove(self) -> bool:
        return self.process_option.remove

    def should_delete_original(self) -> bool:
        return self.delete_original


@dataclass(frozen=True)
class ExtractionRecord:
    """One extracted attachment: original name, normalized name, and where it was saved."""

    original_filename: str
    normalized_filename: str
    path: Path | None = None


@dataclass(frozen=True)
class ProcessEmailResult:
    """Outcome of processing one email.

    ``new_stable_message_id`` is only set when a slim copy was inserted.
    """

    new_stable_message_id: str | None = None
    filenames: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ProcessFailure:
    """An email whose processing was aborted, with the cause."""

    email: Email
    error: Exception


@dataclass
class ProcessProgress:
    """Mutable progress tracker for multi-email processing runs."""

    total: int = 0
    processed: int = 0
    failed: int = 0
    current_email: str = ""


@dataclass
class ProcessReport:
    """Results of a multi-email run, keyed by the original remote id."""

    results: dict[str, ProcessEmailResult] = field(default_factory=dict)
    failures: list[ProcessFailure] = field(default_factory=list)
    cancelled: bool = False
