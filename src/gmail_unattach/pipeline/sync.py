"""Remote side of processing one email: fetch, back up, strip, reinsert, label, dispose."""

from __future__ import annotations

import logging
from email import message_from_bytes
from email.message import Message
from email.utils import make_msgid
from typing import Any

from gmail_unattach.core.exceptions import ContentDecodeError
from gmail_unattach.core.gmail_client import GmailClient, decode_raw
from gmail_unattach.core.models import Email, ProcessEmailResult, ProcessSettings
from gmail_unattach.core.parser import header_map
from gmail_unattach.core.processor import EmailProcessor
from gmail_unattach.storage.local_store import LocalStore

logger = logging.getLogger(__name__)

STARRED_LABEL_ID = "STARRED"


class MessageSyncProtocol:
    """Processes one email against Gmail.

    Steps run strictly in order and the original message is only trashed or
    deleted after its replacement has been inserted and labeled. Nothing is
    written remotely when no attachment was extracted. Errors are not retried.

    Quota: about 5 units without removal, 40-45 with removal.
    """

    def __init__(
        self,
        client: GmailClient,
        *,
        hostname: str | None = None,
    ) -> None:
        self._client = client
        self._hostname = hostname

    def process_email(self, email: Email, settings: ProcessSettings) -> ProcessEmailResult:
        """Run the full protocol for one email.

        Returns:
            The new Message-Id (only when a slim copy was inserted) and the
            extracted original filenames.

        Raises:
            TransportError: A Gmail API call failed.
            ContentDecodeError: The raw message is missing or cannot be processed.
            FilesystemError: A backup or attachment could not be written.
        """
        resource = self._client.get_raw_message(email.remote_id)
        raw = self._raw_bytes(email, resource)
        store = LocalStore(settings.target_directory)

        if settings.should_backup():
            store.write_backup(email.remote_id, raw)

        message = message_from_bytes(raw)
        filenames = tuple(
            EmailProcessor.process(email, message, settings, store, hostname=self._hostname)
        )

        if not filenames:
            logger.info("No attachments extracted from %s; leaving it untouched", email)
            return ProcessEmailResult(None, ())

        if not settings.should_remove():
            if settings.should_download():
                self._add_labels(email.remote_id, [settings.downloaded_label_id])
            return ProcessEmailResult(None, filenames)

        new_id = self._insert_slim_message(resource, message)
        new_stable_id = header_map(self._client.get_message_headers(new_id)).get("message-id")

        label_ids: list[str | None] = []
        if settings.should_download():
            label_ids.append(settings.downloaded_label_id)
        label_ids.extend([settings.removed_label_id, STARRED_LABEL_ID])
        self._add_labels(new_id, label_ids)

        self._dispose_original(email, settings.should_delete_original())
        logger.info("Replaced %s with slim message %s", email, new_id)
        return ProcessEmailResult(new_stable_id, filenames)

    @staticmethod
    def _raw_bytes(email: Email, resource: dict[str, Any]) -> bytes:
        data = resource.get("raw")
        if not data:
            raise ContentDecodeError(f"Unable to extract the contents of {email}")
        try:
            return decode_raw(data)
        except ValueError as e:
            raise ContentDecodeError(f"Invalid raw content for {email}: {e}") from e

    def _insert_slim_message(self, resource: dict[str, Any], message: Message) -> str:
        # The slim copy is a new message; Gmail would merge it with the original on a shared Message-Id.
        if "Message-ID" in message:
            message.replace_header("Message-ID", make_msgid())
        else:
            message["Message-ID"] = make_msgid()
        inserted = self._client.insert_message(
            message.as_bytes(),
            thread_id=resource.get("threadId"),
            label_ids=resource.get("labelIds", []),
        )
        return inserted["id"]

    def _add_labels(self, message_id: str, label_ids: list[str | None]) -> None:
        present = [label_id for label_id in label_ids if label_id]
        if len(present) < len(label_ids):
            logger.warning(
                "Cannot add %d label(s) to %s, because they were not specified.",
                len(label_ids) - len(present), message_id,
            )
        if present:
            self._client.add_labels(message_id, present)

    def _dispose_original(self, email: Email, delete: bool) -> None:
        if delete:
            self._client.delete_message(email.remote_id)
            logger.info("Deleted original %s", email)
        else:
            self._client.trash_message(email.remote_id)
            logger.info("Moved original %s to trash", email)