"""Gmail metadata parser: turns partial ``messages.get`` responses into Email snapshots."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from gmail_unattach.core.exceptions import ContentDecodeError
from gmail_unattach.core.models import Email

logger = logging.getLogger(__name__)


def header_map(message: dict[str, Any]) -> dict[str, str]:
    """Map lowercase header names to values for a Gmail message resource.

    Later duplicates win, matching how the headers are read back after insert.
    """
    headers = message.get("payload", {}).get("headers", [])
    return {h.get("name", "").lower(): h.get("value", "") for h in headers}


class MetadataParser:
    """Parses metadata-only Gmail API message dicts into Email objects."""

    def parse(self, message: dict[str, Any]) -> Email | None:
        """Parse a Gmail API message dict fetched with the metadata field mask.

        Args:
            message: Message dict with id, labelIds, internalDate, sizeEstimate,
                payload/headers and payload/parts/filename.

        Returns:
            Parsed Email, or None when Gmail returned no parts for the message.

        Raises:
            ContentDecodeError: If the message structure is invalid.
        """
        try:
            headers = header_map(message)
            remote_id = message["id"]
            stable_message_id = headers.get("message-id")
            sender = headers.get("from", "")
            to = headers.get("to", "")
            subject = headers.get("subject", "")
            timestamp_ms = int(message.get("internalDate", 0))

            parts = message.get("payload", {}).get("parts")
            if parts is None:
                logger.warning(
                    "Skipping message as Gmail returned no parts:\n"
                    "\tGmail-ID: %s\n\tMessage-ID: %s\n\tFrom: %s\n\tTo: %s\n"
                    "\tSubject: %s\n\tDate: %s",
                    remote_id, stable_message_id, sender, to, subject,
                    datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).isoformat(),
                )
                return None

            attachment_filenames = tuple(
                part["filename"] for part in parts if part.get("filename", "").strip()
            )
            return Email(
                remote_id=remote_id,
                stable_message_id=stable_message_id,
                label_ids=frozenset(message.get("labelIds", [])),
                sender=sender,
                to=to,
                subject=subject,
                timestamp_ms=timestamp_ms,
                size_estimate=int(message.get("sizeEstimate", 0)),
                attachment_filenames=attachment_filenames,
            )
        except Exception as e:
            raise ContentDecodeError(
                f"Failed to parse metadata of message {message.get('id', '?')}: {e}"
            ) from e
