"""Appends a "Previous attachments" trailer to the primary text and HTML parts."""

from __future__ import annotations

import html
import logging
from collections.abc import Mapping
from email.message import Message
from urllib.parse import quote

from bs4 import BeautifulSoup, Doctype

from gmail_unattach.core.exceptions import ContentDecodeError
from gmail_unattach.core.models import ProcessSettings

logger = logging.getLogger(__name__)

PRODUCT_NAME = "Gmail Unattach"
VERSION = "0.1.0"
HOMEPAGE = "https://github.com/gmail-unattach/gmail-unattach"


def read_text(part: Message) -> str:
    """Decode a text part's payload using its declared charset."""
    data = part.get_payload(decode=True) or b""
    charset = part.get_content_charset("utf-8")
    try:
        return data.decode(charset, errors="replace")
    except LookupError as e:
        raise ContentDecodeError(f"Unknown charset {charset!r} in {part.get_content_type()} part") from e


def replace_text(part: Message, text: str) -> None:
    """Replace a text part's content with UTF-8 encoded ``text``, keeping its MIME subtype."""
    had_mime_version = "MIME-Version" in part
    del part["Content-Transfer-Encoding"]
    part.set_payload(text, charset="utf-8")
    if not had_mime_version:
        del part["MIME-Version"]


def _ensure_document(soup: BeautifulSoup) -> None:
    """Give a parsed document an ``<html>`` with ``<head>`` and ``<body>``."""
    if soup.html is None:
        root = soup.new_tag("html")
        for child in list(soup.contents):
            if not isinstance(child, Doctype):
                root.append(child.extract())
        soup.append(root)

    root = soup.html
    if soup.body is None:
        body = soup.new_tag("body")
        for child in list(root.contents):
            if getattr(child, "name", None) != "head":
                body.append(child.extract())
        root.append(body)
    if soup.head is None:
        root.insert(0, soup.new_tag("head"))


class ContentAnnotator:
    """Builds and applies the trailer that replaces extracted attachments.

    Both trailers list the mapping in the order given, which callers keep
    sorted by original filename.
    """

    def __init__(self, settings: ProcessSettings) -> None:
        self._settings = settings

    def reference(self, normalized_filename: str) -> str:
        """Stable retrieval link for an extracted attachment."""
        return self._settings.reference_url + quote(normalized_filename)

    def annotate(
        self,
        text_part: Message | None,
        html_part: Message | None,
        filenames: Mapping[str, str],
        timestamp: str,
        hostname: str,
    ) -> None:
        """Append the trailer to the primary parts. No-op when nothing was extracted."""
        if not filenames:
            return
        if text_part is not None:
            new_text = self.text_suffix(read_text(text_part), filenames, timestamp, hostname)
            replace_text(text_part, new_text)
        if html_part is not None:
            new_html = self.html_suffix(read_text(html_part), filenames, timestamp, hostname)
            replace_text(html_part, new_html)

    def text_suffix(
        self,
        text: str,
        filenames: Mapping[str, str],
        timestamp: str,
        hostname: str,
    ) -> str:
        lines = [
            text,
            "\n\n\n",
            "=" * 41 + "\n",
            "Previous attachments:\n",
        ]
        for original, normalized in filenames.items():
            lines.append(f" - {original} - {self.reference(normalized)}\n")
        lines.append("\nInformation about the change:\n")
        lines.append(f" - Made with:                 {PRODUCT_NAME} {VERSION}\n")
        lines.append(f" - Date and time:             {timestamp}\n")
        if self._settings.should_download():
            lines.append(f" - Download target hostname:  {hostname}\n")
            lines.append(f" - Download target directory: {self._settings.target_directory.absolute()}\n")
        return "".join(lines)

    def html_suffix(
        self,
        document: str,
        filenames: Mapping[str, str],
        timestamp: str,
        hostname: str,
    ) -> str:
        items = "".join(
            f"<li><a href=\"{html.escape(self.reference(normalized))}\">{html.escape(original)}</a></li>\n"
            for original, normalized in filenames.items()
        )
        info = [
            f"<li>Made with: <a href=\"{HOMEPAGE}\">{PRODUCT_NAME}</a> {VERSION}</li>\n",
            f"<li>Date and time: {html.escape(timestamp)}</li>\n",
        ]
        if self._settings.should_download():
            info.append(f"<li>Download target hostname: {html.escape(hostname)}</li>\n")
            target = str(self._settings.target_directory.absolute())
            info.append(f"<li>Download target directory: {html.escape(target)}</li>\n")
        suffix = (
            "<hr/>\n<p>Previous attachments:</p>\n<ul>\n" + items + "</ul>\n"
            "<p>Information about the change:</p>\n<ul>\n" + "".join(info) + "</ul>\n"
        )

        soup = BeautifulSoup(document, "html.parser")
        _ensure_document(soup)
        fragment = BeautifulSoup(suffix, "html.parser")
        for node in list(fragment.contents):
            soup.body.append(node.extract())
        return str(soup)
