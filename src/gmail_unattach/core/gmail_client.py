"""Gmail API client for searching, fetching, inserting, labeling and disposing of messages.

Quota costs (per user, 250 units/second): messages.list 5, messages.get 5,
messages.insert 25, messages.modify 5, messages.trash 5, messages.delete 10,
labels.list 1, labels.create 5.
"""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Generator, Sequence
from typing import Any

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError
from googleapiclient.http import BatchHttpRequest

from gmail_unattach.core.exceptions import RateLimitError, TransportError

logger = logging.getLogger(__name__)

METADATA_FIELDS = "id,labelIds,internalDate,payload/parts/filename,payload/headers,sizeEstimate"
NEW_MESSAGE_FIELDS = "id,payload/headers"
MAX_BATCH_SIZE = 100
MAX_PAGE_SIZE = 500


def _is_rate_limit_error(exc: Exception) -> bool:
    """Check whether an exception represents a Gmail API 429 rate limit."""
    if isinstance(exc, HttpError) and exc.status_code == 429:
        return True
    error_str = str(exc)
    return "429" in error_str or "rateLimitExceeded" in error_str


def _wrap_error(exc: Exception, context: str) -> TransportError:
    if _is_rate_limit_error(exc):
        return RateLimitError(f"Rate limited during {context}: {exc}")
    return TransportError(f"Failed to {context}: {exc}")


def encode_raw(raw: bytes) -> str:
    """Encode raw RFC 822 bytes the way the Gmail API expects (base64url, unpadded)."""
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_raw(data: str) -> bytes:
    """Decode a base64url ``raw`` field, tolerating missing padding."""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded)


class GmailClient:
    """Thin wrapper around the Gmail API covering every remote call Unattach makes.

    Errors are wrapped in TransportError (RateLimitError for 429s) and never
    retried here; callers own the retry policy.
    """

    def __init__(
        self,
        service: Resource,
        user_id: str = "me",
        *,
        inter_page_delay_seconds: float = 0.025,
        num_retries: int = 0,
    ) -> None:
        self._service = service
        self._user_id = user_id
        self._inter_page_delay = inter_page_delay_seconds
        self._num_retries = num_retries

    def _execute(self, request: Any, context: str) -> Any:
        """Execute a single API request, wrapping failures in TransportError."""
        try:
            return request.execute(num_retries=self._num_retries)
        except Exception as e:
            raise _wrap_error(e, context) from e

    def get_email_address(self) -> str:
        """Return the address of the authenticated mailbox."""
        request = self._service.users().getProfile(userId=self._user_id, fields="emailAddress")
        return self._execute(request, "get profile")["emailAddress"]

    def list_message_ids(
        self,
        query: str,
        page_size: int = MAX_PAGE_SIZE,
    ) -> Generator[list[str], None, None]:
        """Paginate through message IDs matching a Gmail search query.

        A fixed delay separates consecutive page requests. Stops when the
        response carries no messages or no continuation token.

        Yields:
            Lists of Gmail message IDs, one list per API page.
        """
        page_token: str | None = None
        first_page = True

        while True:
            if not first_page and self._inter_page_delay > 0:
                time.sleep(self._inter_page_delay)
            first_page = False

            kwargs: dict[str, Any] = {
                "userId": self._user_id,
                "q": query,
                "maxResults": page_size,
                "fields": "messages/id,nextPageToken",
            }
            if page_token:
                kwargs["pageToken"] = page_token

            request = self._service.users().messages().list(**kwargs)
            response = self._execute(request, "list messages")
            if not response:
                return

            messages = response.get("messages", [])
            if not messages:
                return

            ids = [msg["id"] for msg in messages]
            logger.debug("Listed %d message IDs (page)", len(ids))
            yield ids

            page_token = response.get("nextPageToken")
            if not page_token:
                return

    def fetch_metadata_batch(
        self,
        message_ids: Sequence[str],
        fields: str = METADATA_FIELDS,
    ) -> list[dict[str, Any]]:
        """Fetch metadata for many messages in a single batch request.

        Any per-message failure aborts the whole batch.

        Args:
            message_ids: At most MAX_BATCH_SIZE Gmail message IDs.
            fields: Partial-response field mask applied to every get.

        Returns:
            Message dicts, in the order of ``message_ids``.

        Raises:
            TransportError: On the first per-message failure, with the API's message.
        """
        if len(message_ids) > MAX_BATCH_SIZE:
            raise ValueError(
                f"Batch of {len(message_ids)} exceeds the limit of {MAX_BATCH_SIZE}"
            )

        responses: dict[str, dict[str, Any]] = {}
        errors: list[tuple[str, Exception]] = []

        def _callback(
            request_id: str,
            response: dict[str, Any] | None,
            exception: Exception | None,
        ) -> None:
            if exception:
                errors.append((request_id, exception))
            elif response:
                responses[request_id] = response

        batch: BatchHttpRequest = self._service.new_batch_http_request(callback=_callback)
        for index, msg_id in enumerate(message_ids):
            batch.add(
                self._service.users()
                .messages()
                .get(userId=self._user_id, id=msg_id, fields=fields),
                request_id=str(index),
            )

        try:
            batch.execute()
        except Exception as e:
            raise _wrap_error(e, "execute metadata batch") from e

        if errors:
            request_id, exc = errors[0]
            msg_id = message_ids[int(request_id)]
            raise _wrap_error(exc, f"get metadata of {msg_id}") from exc

        results = [responses[str(i)] for i in range(len(message_ids)) if str(i) in responses]
        logger.debug("Batch fetched metadata of %d messages", len(results))
        return results

    def get_raw_message(self, message_id: str) -> dict[str, Any]:
        """Fetch a message in raw format (id, threadId, labelIds, raw, ...)."""
        request = (
            self._service.users()
            .messages()
            .get(userId=self._user_id, id=message_id, format="raw")
        )
        return self._execute(request, f"get raw message {message_id}")

    def insert_message(
        self,
        raw: bytes,
        *,
        thread_id: str | None = None,
        label_ids: Sequence[str] = (),
        internal_date_source: str = "dateHeader",
    ) -> dict[str, Any]:
        """Insert a message into the mailbox without sending it.

        Returns:
            The new message resource (``id``, ``threadId``).
        """
        body: dict[str, Any] = {"raw": encode_raw(raw)}
        if thread_id:
            body["threadId"] = thread_id
        if label_ids:
            body["labelIds"] = list(label_ids)
        request = (
            self._service.users()
            .messages()
            .insert(userId=self._user_id, body=body, internalDateSource=internal_date_source)
        )
        return self._execute(request, "insert message")

    def get_message_headers(self, message_id: str) -> dict[str, Any]:
        """Fetch only the id and headers of a message."""
        request = (
            self._service.users()
            .messages()
            .get(userId=self._user_id, id=message_id, fields=NEW_MESSAGE_FIELDS)
        )
        return self._execute(request, f"get headers of {message_id}")

    def add_labels(self, message_id: str, label_ids: Sequence[str]) -> None:
        request = (
            self._service.users()
            .messages()
            .modify(userId=self._user_id, id=message_id, body={"addLabelIds": list(label_ids)})
        )
        self._execute(request, f"label message {message_id}")

    def trash_message(self, message_id: str) -> None:
        request = self._service.users().messages().trash(userId=self._user_id, id=message_id)
        self._execute(request, f"trash message {message_id}")

    def delete_message(self, message_id: str) -> None:
        request = self._service.users().messages().delete(userId=self._user_id, id=message_id)
        self._execute(request, f"delete message {message_id}")

    def list_labels(self) -> list[dict[str, str]]:
        """List all Gmail labels.

        Returns:
            List of dicts with 'id' and 'name' keys.
        """
        request = self._service.users().labels().list(
            userId=self._user_id, fields="labels/id,labels/name"
        )
        results = self._execute(request, "list labels")
        labels = results.get("labels", [])
        return [{"id": lbl["id"], "name": lbl["name"]} for lbl in labels]

    def create_label(
        self,
        name: str,
        *,
        background_color: str = "#ffffff",
        text_color: str = "#fb4c2f",
    ) -> str:
        """Create a user label shown in both the label and message lists.

        Returns:
            The new label's ID.
        """
        body = {
            "name": name,
            "labelListVisibility": "labelShow",
            "messageListVisibility": "show",
            "color": {"backgroundColor": background_color, "textColor": text_color},
        }
        request = self._service.users().labels().create(userId=self._user_id, body=body)
        return self._execute(request, f"create label {name!r}")["id"]
