"""Tests for attachment/primary-content classification."""

from __future__ import annotations

from email.message import Message

from conftest import MULTI_ATTACHMENT_RAW, parse

from gmail_unattach.core.classifier import ContentClaims, PartRole, classify, has_disposition
from gmail_unattach.core.mime_walker import walk


def _part(headers: str) -> Message:
    return parse(f"{headers}\n\nbody\n".encode())


def _classify_all(raw: bytes) -> list[PartRole]:
    claims = ContentClaims()
    roles = []
    for _, part in walk(parse(raw)):
        role = classify(part, claims)
        claims.claim(role, part)
        roles.append(role)
    return roles


class TestClassify:
    def test_attachment_disposition(self) -> None:
        part = _part('Content-Type: application/pdf\nContent-Disposition: attachment; filename="a.pdf"')
        assert classify(part, ContentClaims()) is PartRole.ATTACHMENT

    def test_inline_disposition_is_attachment_even_for_text(self) -> None:
        part = _part("Content-Type: text/plain\nContent-Disposition: inline")
        assert classify(part, ContentClaims()) is PartRole.ATTACHMENT

    def test_first_plain_text_is_primary(self) -> None:
        assert classify(_part("Content-Type: text/plain"), ContentClaims()) is PartRole.PRIMARY_TEXT

    def test_first_html_is_primary(self) -> None:
        assert classify(_part("Content-Type: text/html"), ContentClaims()) is PartRole.PRIMARY_HTML

    def test_second_plain_text_is_ignored(self) -> None:
        claims = ContentClaims(text=_part("Content-Type: text/plain"))
        assert classify(_part("Content-Type: text/plain"), claims) is PartRole.IGNORED

    def test_other_types_are_ignored(self) -> None:
        assert classify(_part("Content-Type: image/png"), ContentClaims()) is PartRole.IGNORED

    def test_classify_does_not_claim(self) -> None:
        claims = ContentClaims()
        classify(_part("Content-Type: text/plain"), claims)
        assert claims.text is None


class TestContentClaims:
    def test_first_claim_wins(self) -> None:
        first = _part("Content-Type: text/html")
        second = _part("Content-Type: text/html")
        claims = ContentClaims()
        claims.claim(PartRole.PRIMARY_HTML, first)
        claims.claim(PartRole.PRIMARY_HTML, second)
        assert claims.html is first

    def test_ignored_and_attachment_roles_claim_nothing(self) -> None:
        claims = ContentClaims()
        claims.claim(PartRole.IGNORED, _part("Content-Type: text/plain"))
        claims.claim(PartRole.ATTACHMENT, _part("Content-Type: text/plain"))
        assert claims.text is None and claims.html is None


class TestWholeTree:
    def test_roles_for_nested_message(self) -> None:
        assert _classify_all(MULTI_ATTACHMENT_RAW) == [
            PartRole.PRIMARY_TEXT,
            PartRole.IGNORED,
            PartRole.PRIMARY_HTML,
            PartRole.ATTACHMENT,
            PartRole.ATTACHMENT,
            PartRole.IGNORED,
            PartRole.ATTACHMENT,
        ]

    def test_classification_is_idempotent(self) -> None:
        assert _classify_all(MULTI_ATTACHMENT_RAW) == _classify_all(MULTI_ATTACHMENT_RAW)


def test_has_disposition() -> None:
    assert has_disposition(_part("Content-Disposition: attachment"))
    assert not has_disposition(_part("Content-Type: text/plain"))
