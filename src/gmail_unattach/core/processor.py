"""Per-email MIME rewrite: extract attachments, strip them, annotate the body."""

from __future__ import annotations

import logging
import socket
from datetime import datetime
from email.message import Message

from gmail_unattach.core.annotator import ContentAnnotator
from gmail_unattach.core.classifier import ContentClaims, PartRole, classify
from gmail_unattach.core.exceptions import ContentDecodeError, UnattachError
from gmail_unattach.core.extractor import AttachmentExtractor
from gmail_unattach.core.mime_walker import walk
from gmail_unattach.core.models import Email, ExtractionRecord, ProcessSettings
from gmail_unattach.storage.local_store import LocalStore

logger = logging.getLogger(__name__)


def get_hostname() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "(unknown)"


class EmailProcessor:
    """Rewrites one parsed message in place.

    Usage:
        filenames = EmailProcessor.process(email, message, settings)
    """

    def __init__(
        self,
        email: Email,
        settings: ProcessSettings,
        store: LocalStore | None = None,
    ) -> None:
        self._email = email
        self._settings = settings
        self._extractor = AttachmentExtractor(email, settings, store)
        self._annotator = ContentAnnotator(settings)
        self._claims = ContentClaims()
        self._records: list[ExtractionRecord] = []

    @classmethod
    def process(
        cls,
        email: Email,
        message: Message,
        settings: ProcessSettings,
        store: LocalStore | None = None,
        *,
        hostname: str | None = None,
        timestamp: str | None = None,
    ) -> dict[str, str]:
        """Extract, strip and annotate ``message``.

        Args:
            email: Metadata of the message being processed.
            message: Parsed message; modified in place.
            settings: Processing settings.
            store: Where attachments go; defaults to the settings' target directory.
            hostname: Override for the hostname written into the trailer.
            timestamp: Override for the date/time written into the trailer.

        Returns:
            Original to normalized filename of every extracted attachment,
            sorted by original filename.

        Raises:
            ContentDecodeError: If the MIME structure cannot be processed.
            FilesystemError: If an attachment cannot be written.
        """
        processor = cls(email, settings, store)
        try:
            processor._explore(message)
            removed = processor._extractor.remove_extracted()
            filenames = processor._extractor.filenames
            if settings.add_metadata:
                processor._annotator.annotate(
                    processor._claims.text,
                    processor._claims.html,
                    filenames,
                    timestamp or datetime.now().astimezone().isoformat(),
                    hostname or get_hostname(),
                )
        except UnattachError:
            raise
        except Exception as e:
            raise ContentDecodeError(f"Failed to process MIME content of {email}: {e}") from e

        written = [record.path for record in processor._records if record.path is not None]
        logger.debug(
            "Removed %d body parts from %s; %d written to disk", removed, email, len(written)
        )
        return filenames

    def _explore(self, message: Message) -> None:
        for parent, part in walk(message):
            role = classify(part, self._claims)
            if role is PartRole.ATTACHMENT:
                record = self._extractor.extract(parent, part)
                if record is not None:
                    self._records.append(record)
            else:
                self._claims.claim(role, part)
