"""Shared fixtures for Gmail Unattach tests."""

from __future__ import annotations

from email import message_from_bytes
from email.message import Message
from pathlib import Path

import pytest

from gmail_unattach.core.models import Email, ProcessOption, ProcessSettings

# 2024-01-15 10:30:00 UTC
TIMESTAMP_MS = 1705314600000

PDF_BASE64 = "JVBERi0xLjQKJcOkw7zDtsOfCg=="

MIXED_RAW = f"""From: Alice <alice@example.com>
To: Bob <bob@example.com>
Subject: Invoice
Date: Mon, 15 Jan 2024 10:30:00 +0000
Message-ID: <orig@example.com>
MIME-Version: 1.0
Content-Type: multipart/mixed; boundary="mixed"

--mixed
Content-Type: multipart/alternative; boundary="alt"

--alt
Content-Type: text/plain; charset="utf-8"
Content-Transfer-Encoding: 7bit

Hello Bob,
please find the invoice attached.

--alt
Content-Type: text/html; charset="utf-8"
Content-Transfer-Encoding: 7bit

<html><head><title>Invoice</title></head><body><p>Hello Bob</p></body></html>

--alt--

--mixed
Content-Type: application/pdf; name="invoice.pdf"
Content-Disposition: attachment; filename="invoice.pdf"
Content-Transfer-Encoding: base64

{PDF_BASE64}

--mixed--
""".encode()

PLAIN_RAW = b"""From: Alice <alice@example.com>
To: Bob <bob@example.com>
Subject: No attachments here
Date: Mon, 15 Jan 2024 10:30:00 +0000
Message-ID: <plain@example.com>
MIME-Version: 1.0
Content-Type: multipart/alternative; boundary="alt"

--alt
Content-Type: text/plain; charset="utf-8"

Just text.

--alt
Content-Type: text/html; charset="utf-8"

<p>Just text.</p>

--alt--
"""

MULTI_ATTACHMENT_RAW = b"""From: Alice <alice@example.com>
To: Bob <bob@example.com>
Subject: Photos
Date: Mon, 15 Jan 2024 10:30:00 +0000
MIME-Version: 1.0
Content-Type: multipart/mixed; boundary="outer"

--outer
Content-Type: text/plain; charset="us-ascii"

First text part.

--outer
Content-Type: multipart/related; boundary="inner"

--inner
Content-Type: text/html; charset="us-ascii"

<p>Photos below</p>

--inner
Content-Type: image/png; name="zebra.png"
Content-Disposition: inline; filename="zebra.png"
Content-Transfer-Encoding: base64

iVBORw0KGgo=

--inner
Content-Type: image/gif
Content-Disposition: inline
Content-Transfer-Encoding: base64

R0lGODlh

--inner--

--outer
Content-Type: text/plain; charset="us-ascii"

Second text part.

--outer
Content-Type: application/octet-stream; name="apple.bin"
Content-Disposition: attachment; filename="apple.bin"
Content-Transfer-Encoding: base64

AAECAw==

--outer--
"""


def parse(raw: bytes) -> Message:
    return message_from_bytes(raw)


@pytest.fixture
def sample_email() -> Email:
    """Metadata of the MIXED_RAW message."""
    return Email(
        remote_id="msg001",
        stable_message_id="<orig@example.com>",
        label_ids=frozenset({"INBOX"}),
        sender="Alice <alice@example.com>",
        to="Bob <bob@example.com>",
        subject="Invoice",
        timestamp_ms=TIMESTAMP_MS,
        size_estimate=2048,
        attachment_filenames=("invoice.pdf",),
    )


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    """Attachment target directory (not created yet)."""
    return tmp_path / "attachments"


@pytest.fixture
def make_settings(target_dir: Path):
    """Factory for ProcessSettings rooted at the temporary target directory."""

    def _make(option: ProcessOption = ProcessOption.DOWNLOAD_AND_REMOVE, **overrides) -> ProcessSettings:
        values = {
            "process_option": option,
            "target_directory": target_dir,
            "downloaded_label_id": "Label_downloaded",
            "removed_label_id": "Label_removed",
        }
        values.update(overrides)
        return ProcessSettings(**values)

    return _make
