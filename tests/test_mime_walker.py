"""Tests for the depth-first MIME tree walker."""

from __future__ import annotations

import pytest
from conftest import MIXED_RAW, MULTI_ATTACHMENT_RAW, PLAIN_RAW, parse

from gmail_unattach.core.exceptions import ContentDecodeError
from gmail_unattach.core.mime_walker import fix_content_type, walk


def _types(raw: bytes) -> list[str]:
    return [part.get_content_type() for _, part in walk(parse(raw))]


class TestWalkOrder:
    """walk() visits every part once, parents before children, in message order."""

    def test_nested_alternative_inside_mixed(self) -> None:
        assert _types(MIXED_RAW) == [
            "multipart/alternative",
            "text/plain",
            "text/html",
            "application/pdf",
        ]

    def test_deeply_nested_order(self) -> None:
        assert _types(MULTI_ATTACHMENT_RAW) == [
            "text/plain",
            "multipart/related",
            "text/html",
            "image/png",
            "image/gif",
            "text/plain",
            "application/octet-stream",
        ]

    def test_each_part_visited_once(self) -> None:
        parts = [part for _, part in walk(parse(MULTI_ATTACHMENT_RAW))]
        assert len({id(p) for p in parts}) == len(parts)

    def test_parent_is_enclosing_container(self) -> None:
        message = parse(MIXED_RAW)
        pairs = list(walk(message))
        alternative = pairs[0][1]
        assert pairs[0][0] is message
        assert pairs[1][0] is alternative
        assert pairs[3][0] is message

    def test_single_part_message_yields_nothing(self) -> None:
        message = parse(b"Content-Type: text/plain\n\nhello\n")
        assert list(walk(message)) == []

    def test_walk_is_repeatable(self) -> None:
        message = parse(PLAIN_RAW)
        first = [id(p) for _, p in walk(message)]
        second = [id(p) for _, p in walk(message)]
        assert first == second

    def test_message_rfc822_not_expanded(self) -> None:
        raw = b"""Content-Type: multipart/mixed; boundary="b"

--b
Content-Type: text/plain

body
--b
Content-Type: message/rfc822

Content-Type: multipart/mixed; boundary="c"

--c
Content-Type: text/plain

inner
--c--
--b--
"""
        assert _types(raw) == ["text/plain", "message/rfc822"]


class TestMalformedTree:
    def test_multipart_without_parts_raises(self) -> None:
        raw = b'Content-Type: multipart/mixed; boundary="missing"\n\nno boundary here\n'
        with pytest.raises(ContentDecodeError, match="Malformed multipart/mixed"):
            list(walk(parse(raw)))


class TestFixContentType:
    """fix_content_type() rewrites the iso-8859-8-i alias."""

    def test_rewrites_buggy_charset(self) -> None:
        part = parse(b'Content-Type: text/plain; charset="iso-8859-8-i"\n\nshalom\n')
        fix_content_type(part)
        assert part.get_content_charset() == "iso-8859-8"

    def test_rewrite_is_case_insensitive(self) -> None:
        part = parse(b"Content-Type: text/html; charset=ISO-8859-8-I\n\n<p/>\n")
        fix_content_type(part)
        assert part.get_content_charset() == "iso-8859-8"
        assert part.get_content_type() == "text/html"

    def test_leaves_other_charsets_alone(self) -> None:
        part = parse(b'Content-Type: text/plain; charset="utf-8"\n\nhi\n')
        fix_content_type(part)
        assert part["Content-Type"] == 'text/plain; charset="utf-8"'

    def test_missing_header_logs_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        part = parse(b"Subject: x\n\nbody\n")
        fix_content_type(part)
        assert "No Content-Type header found." in caplog.text

    def test_walk_fixes_parts_before_descending(self) -> None:
        raw = b"""Content-Type: multipart/mixed; boundary="b"

--b
Content-Type: text/plain; charset=iso-8859-8-i

shalom
--b--
"""
        message = parse(raw)
        list(walk(message))
        assert message.get_payload(0).get_content_charset() == "iso-8859-8"
