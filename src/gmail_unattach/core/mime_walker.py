"""Depth-first traversal of a MIME message tree."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from email.message import Message

from gmail_unattach.core.exceptions import ContentDecodeError

logger = logging.getLogger(__name__)

# Charset aliases Python's codecs don't know, mapped to the codec they mean.
CHARSET_FIXES = {
    "iso-8859-8-i": "iso-8859-8",
}


def fix_content_type(part: Message) -> None:
    """Rewrite known-bad charset names in a part's Content-Type header."""
    content_types = part.get_all("Content-Type")
    if not content_types:
        logger.warning("No Content-Type header found.")
        return
    if len(content_types) != 1:
        return

    content_type = str(content_types[0])
    fixed = content_type
    for bad, good in CHARSET_FIXES.items():
        fixed = re.sub(re.escape(bad), good, fixed, flags=re.IGNORECASE)
    if fixed != content_type:
        part.replace_header("Content-Type", fixed)


def is_container(part: Message) -> bool:
    """True for multipart parts. message/rfc822 parts are leaves."""
    return part.get_content_maintype() == "multipart"


def walk(content: Message) -> Iterator[tuple[Message, Message]]:
    """Yield ``(parent, part)`` for every body part below ``content``.

    Parts are visited depth-first in the order they appear in the message; a
    part is yielded before its own children. The Content-Type fix-up runs after
    a part is yielded and before descending into it.

    Raises:
        ContentDecodeError: If a multipart container has no parseable parts.
    """
    if not is_container(content):
        return

    payload = content.get_payload()
    if not isinstance(payload, list):
        raise ContentDecodeError(
            f"Malformed {content.get_content_type()} container: no body parts found"
        )

    for part in list(payload):
        yield content, part
        fix_content_type(part)
        yield from walk(part)
