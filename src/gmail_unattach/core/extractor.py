"""Extracts attachment parts: saves their bytes and schedules them for removal."""

from __future__ import annotations

import logging
from email.message import Message

from gmail_unattach.core.classifier import has_disposition
from gmail_unattach.core.filenames import FilenameNormalizer, decode_filename
from gmail_unattach.core.models import Email, ExtractionRecord, ProcessSettings
from gmail_unattach.storage.local_store import LocalStore

logger = logging.getLogger(__name__)


def part_bytes(part: Message) -> bytes:
    """Decoded content of a body part (transfer encoding removed)."""
    payload = part.get_payload()
    if isinstance(payload, list):
        if part.get_content_type() == "message/rfc822" and payload:
            return payload[0].as_bytes()
        return part.as_bytes()
    return part.get_payload(decode=True) or b""


class AttachmentExtractor:
    """Per-email extraction state: the ordinal counter, the removal list and the filename map.

    Nothing here mutates the message tree until ``remove_extracted()`` runs
    after the walk is complete.
    """

    def __init__(
        self,
        email: Email,
        settings: ProcessSettings,
        store: LocalStore | None = None,
    ) -> None:
        self._email = email
        self._settings = settings
        self._normalizer = FilenameNormalizer(settings.filename_schema)
        self._store = store or LocalStore(settings.target_directory)
        self._counter = 0
        self._extracted: list[tuple[Message, Message]] = []
        self._filenames: dict[str, str] = {}

    @property
    def filenames(self) -> dict[str, str]:
        """Original to normalized filename, ordered by original filename."""
        return dict(sorted(self._filenames.items()))

    def extract(self, parent: Message, part: Message) -> ExtractionRecord | None:
        """Extract one body part if it is a named attachment.

        Returns:
            The extraction record, or None if the part has no disposition or no filename.
        """
        if not has_disposition(part):
            return None
        original_filename = decode_filename(part)
        if original_filename is None:
            return None

        normalized_filename = self._normalizer.normalize(
            self._email, self._counter, original_filename
        )
        self._counter += 1

        path = None
        if self._settings.should_download():
            path = self._store.write_attachment(
                normalized_filename, part_bytes(part), self._email.timestamp_ms
            )

        self._extracted.append((parent, part))
        self._filenames[original_filename] = normalized_filename
        logger.info(
            "Saved attachment %s from %s as %s.",
            original_filename, self._email, normalized_filename,
        )
        return ExtractionRecord(original_filename, normalized_filename, path)

    def remove_extracted(self) -> int:
        """Detach every extracted part from its parent container.

        Returns:
            The number of parts removed.
        """
        for parent, part in self._extracted:
            payload = parent.get_payload()
            payload[:] = [p for p in payload if p is not part]
        return len(self._extracted)
