"""Two-phase email search: paginated id listing, then batched metadata fetch."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

from gmail_unattach.core.gmail_client import MAX_BATCH_SIZE, MAX_PAGE_SIZE, GmailClient
from gmail_unattach.core.models import Email
from gmail_unattach.core.parser import MetadataParser

logger = logging.getLogger(__name__)


class BatchMetadataFetcher:
    """Builds the searchable email index for a Gmail query.

    At most one batch of metadata requests is in flight at a time.
    """

    def __init__(
        self,
        client: GmailClient,
        parser: MetadataParser | None = None,
        *,
        page_size: int = MAX_PAGE_SIZE,
        batch_size: int = MAX_BATCH_SIZE,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> None:
        if not 0 < batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        self._client = client
        self._parser = parser or MetadataParser()
        self._page_size = page_size
        self._batch_size = batch_size
        self._on_batch = on_batch

    def list_ids(self, query: str) -> list[str]:
        """Phase 1: collect every message id matching ``query``."""
        ids: list[str] = []
        for page in self._client.list_message_ids(query, self._page_size):
            ids.extend(page)
        logger.info("Query %r matched %d messages", query, len(ids))
        return ids

    def search(self, query: str) -> Iterator[Email]:
        """Yield an Email for every message matching ``query``.

        Messages Gmail reports without parts are skipped. A failed item aborts
        the whole search with TransportError.
        """
        ids = self.list_ids(query)
        total = len(ids)
        for start in range(0, total, self._batch_size):
            chunk = ids[start : start + self._batch_size]
            for message in self._client.fetch_metadata_batch(chunk):
                email = self._parser.parse(message)
                if email is not None:
                    yield email
            done = min(start + self._batch_size, total)
            logger.debug("Fetched metadata batch %d/%d", done, total)
            if self._on_batch:
                self._on_batch(done, total)
