"""Attachment filename decoding and schema-driven normalization."""

from __future__ import annotations

import logging
import os
import re
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from email.message import Message
from email.utils import parseaddr

from gmail_unattach.core.exceptions import ConfigurationError, ContentDecodeError
from gmail_unattach.core.models import DEFAULT_FILENAME_SCHEMA, Email

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Z_]+)(?::(\d+))?\}")
PLACEHOLDERS = frozenset({
    "ID",
    "MESSAGE_ID",
    "COUNTER",
    "FROM_EMAIL",
    "SUBJECT",
    "TIMESTAMP",
    "YEAR",
    "MONTH",
    "DAY",
    "HOUR",
    "MINUTE",
    "SECOND",
    "RAW_ATTACHMENT_NAME",
    "ATTACHMENT_NAME",
    "ATTACHMENT_EXTENSION",
    "LABEL_IDS",
})

_UNSAFE_CHARS = re.compile(r'[\x00-\x1f\x7f<>:"/\\|?*]')


def decode_filename(part: Message) -> str | None:
    """Return the part's filename with RFC 2231/2047 encodings decoded and whitespace trimmed.

    Returns:
        The decoded filename, or None when the part has none.

    Raises:
        ContentDecodeError: If an encoded word names an unknown charset or is malformed.
    """
    raw_filename = part.get_filename()
    if raw_filename is None:
        return None
    try:
        decoded = str(make_header(decode_header(raw_filename)))
    except (HeaderParseError, LookupError, UnicodeDecodeError) as e:
        raise ContentDecodeError(f"Cannot decode attachment filename {raw_filename!r}: {e}") from e
    # compat32 keeps raw 8-bit header bytes as surrogate escapes; those are UTF-8 in practice.
    decoded = decoded.encode("utf-8", "surrogateescape").decode("utf-8", "replace").strip()
    return decoded or None


def sanitize(value: str) -> str:
    """Replace characters that are not allowed in filenames on common filesystems."""
    value = _UNSAFE_CHARS.sub("_", value).strip()
    if value and not value.strip("."):
        return "_" * len(value)
    return value


class FilenameNormalizer:
    """Builds target filenames for extracted attachments from a ``${NAME}`` schema.

    Example schema: ``${YEAR}-${MONTH}-${DAY}_${ID}_${COUNTER}_${SUBJECT:20}_${RAW_ATTACHMENT_NAME}``.
    An optional ``:N`` suffix truncates the value to N characters.
    """

    def __init__(self, schema: str = DEFAULT_FILENAME_SCHEMA) -> None:
        unknown = {
            match.group(1)
            for match in PLACEHOLDER_PATTERN.finditer(schema)
            if match.group(1) not in PLACEHOLDERS
        }
        if unknown:
            raise ConfigurationError(
                f"Unknown placeholder(s) in filename schema {schema!r}: {', '.join(sorted(unknown))}"
            )
        if "${COUNTER" not in schema:
            logger.warning(
                "Filename schema %r has no ${COUNTER}; attachments may overwrite each other",
                schema,
            )
        self._schema = schema

    @property
    def schema(self) -> str:
        return self._schema

    def normalize(self, email: Email, counter: int, raw_filename: str) -> str:
        """Apply the schema to one attachment of ``email``.

        Args:
            email: Email the attachment belongs to.
            counter: Per-email ordinal of this attachment, starting at 0.
            raw_filename: Decoded original filename.

        Returns:
            The normalized filename, relative to the target directory.
        """
        values = self._values(email, counter, raw_filename)

        def _substitute(match: re.Match[str]) -> str:
            value = values[match.group(1)]
            limit = match.group(2)
            return value[: int(limit)] if limit else value

        return PLACEHOLDER_PATTERN.sub(_substitute, self._schema)

    @staticmethod
    def _values(email: Email, counter: int, raw_filename: str) -> dict[str, str]:
        date = email.date
        name, extension = os.path.splitext(raw_filename)
        message_id = (email.stable_message_id or "").strip().strip("<>")
        return {
            "ID": sanitize(email.remote_id),
            "MESSAGE_ID": sanitize(message_id),
            "COUNTER": str(counter),
            "FROM_EMAIL": sanitize(parseaddr(email.sender)[1]),
            "SUBJECT": sanitize(email.subject),
            "TIMESTAMP": str(email.timestamp_ms),
            "YEAR": f"{date.year:04d}",
            "MONTH": f"{date.month:02d}",
            "DAY": f"{date.day:02d}",
            "HOUR": f"{date.hour:02d}",
            "MINUTE": f"{date.minute:02d}",
            "SECOND": f"{date.second:02d}",
            "RAW_ATTACHMENT_NAME": sanitize(raw_filename),
            "ATTACHMENT_NAME": sanitize(name),
            "ATTACHMENT_EXTENSION": sanitize(extension.lstrip(".")),
            "LABEL_IDS": sanitize("-".join(sorted(email.label_ids))),
        }
