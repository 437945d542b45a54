"""Decides whether a body part is an attachment or the message's primary text/HTML."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from email.message import Message


class PartRole(enum.Enum):
    ATTACHMENT = "attachment"
    PRIMARY_TEXT = "primary_text"
    PRIMARY_HTML = "primary_html"
    IGNORED = "ignored"


@dataclass
class ContentClaims:
    """Primary content slots for one processing run. Each slot is set at most once."""

    text: Message | None = None
    html: Message | None = None

    def claim(self, role: PartRole, part: Message) -> None:
        if role is PartRole.PRIMARY_TEXT and self.text is None:
            self.text = part
        elif role is PartRole.PRIMARY_HTML and self.html is None:
            self.html = part


def has_disposition(part: Message) -> bool:
    """True when the part carries an inline or attachment Content-Disposition."""
    return bool(part.get_content_disposition())


def classify(part: Message, claims: ContentClaims) -> PartRole:
    """Classify a body part given the primary content already claimed in this run."""
    if has_disposition(part):
        return PartRole.ATTACHMENT
    content_type = part.get_content_type()
    if content_type == "text/plain" and claims.text is None:
        return PartRole.PRIMARY_TEXT
    if content_type == "text/html" and claims.html is None:
        return PartRole.PRIMARY_HTML
    return PartRole.IGNORED
