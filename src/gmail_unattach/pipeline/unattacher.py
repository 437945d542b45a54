"""Orchestrator: sign in, search, and process selected emails one at a time."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from gmail_unattach.config.settings import UnattachSettings
from gmail_unattach.core.auth import authenticate, build_gmail_service, sign_out
from gmail_unattach.core.gmail_client import GmailClient
from gmail_unattach.core.models import (
    Email,
    ProcessEmailResult,
    ProcessFailure,
    ProcessOption,
    ProcessProgress,
    ProcessReport,
    ProcessSettings,
)
from gmail_unattach.pipeline.search import BatchMetadataFetcher
from gmail_unattach.pipeline.sync import MessageSyncProtocol

logger = logging.getLogger(__name__)


class Unattacher:
    """Entry point tying search and per-email processing together.

    A multi-email run processes emails sequentially, can be cancelled between
    emails (never in the middle of one), and keeps going when a single email
    fails; failures are collected in the returned ProcessReport.
    """

    def __init__(
        self,
        settings: UnattachSettings | None = None,
        on_progress: Callable[[ProcessProgress], None] | None = None,
    ) -> None:
        self._settings = settings or UnattachSettings()
        self._on_progress = on_progress
        self._progress = ProcessProgress()
        self._emails: list[Email] = []

        # Components initialized lazily
        self._client: GmailClient | None = None
        self._sync: MessageSyncProtocol | None = None

    @property
    def on_progress(self) -> Callable[[ProcessProgress], None] | None:
        return self._on_progress

    @on_progress.setter
    def on_progress(self, callback: Callable[[ProcessProgress], None] | None) -> None:
        self._on_progress = callback

    @property
    def emails(self) -> list[Email]:
        """Emails found by the most recent search."""
        return self._emails

    def _ensure_initialized(self) -> tuple[GmailClient, MessageSyncProtocol]:
        """Authenticate and build the Gmail client if not already done."""
        if self._client is None:
            self._settings.ensure_directories()
            creds = authenticate(
                self._settings.credentials_path,
                self._settings.token_path,
            )
            service = build_gmail_service(creds)
            self._client = GmailClient(
                service,
                self._settings.user_id,
                inter_page_delay_seconds=self._settings.inter_page_delay_seconds,
                num_retries=self._settings.num_retries,
            )

        if self._sync is None:
            self._sync = MessageSyncProtocol(self._client)

        return self._client, self._sync

    def get_email_address(self) -> str:
        client, _ = self._ensure_initialized()
        return client.get_email_address()

    def sign_out(self) -> bool:
        """Drop the cached token and all session state.

        Returns:
            True if a cached token was removed.
        """
        removed = sign_out(self._settings.token_path)
        self._client = None
        self._sync = None
        self.clear_previous_search()
        return removed

    def clear_previous_search(self) -> None:
        self._emails = []

    def search(
        self,
        query: str,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> list[Email]:
        """Replace the current email list with the emails matching ``query``."""
        client, _ = self._ensure_initialized()
        fetcher = BatchMetadataFetcher(
            client,
            page_size=self._settings.max_results_per_page,
            batch_size=self._settings.batch_size,
            on_batch=on_batch,
        )
        self.clear_previous_search()
        self._emails.extend(fetcher.search(query))
        return self._emails

    def list_labels(self) -> list[dict[str, str]]:
        """List available Gmail labels."""
        client, _ = self._ensure_initialized()
        return client.list_labels()

    def ensure_label(self, name: str) -> str:
        """Return the ID of the label called ``name``, creating it if needed."""
        client, _ = self._ensure_initialized()
        for label in client.list_labels():
            if label["name"] == name:
                return label["id"]
        label_id = client.create_label(name)
        logger.info("Created label %r (%s)", name, label_id)
        return label_id

    def build_process_settings(self, process_option: ProcessOption) -> ProcessSettings:
        """ProcessSettings for ``process_option`` with the configured labels resolved to IDs."""
        downloaded_label_id = None
        removed_label_id = None
        if process_option.download and self._settings.downloaded_label_name:
            downloaded_label_id = self.ensure_label(self._settings.downloaded_label_name)
        if process_option.remove and self._settings.removed_label_name:
            removed_label_id = self.ensure_label(self._settings.removed_label_name)
        return self._settings.to_process_settings(
            process_option,
            downloaded_label_id=downloaded_label_id,
            removed_label_id=removed_label_id,
        )

    def process_email(self, email: Email, process_settings: ProcessSettings) -> ProcessEmailResult:
        """Process a single email. Errors propagate to the caller."""
        _, sync = self._ensure_initialized()
        return sync.process_email(email, process_settings)

    def process_all(
        self,
        emails: Iterable[Email],
        process_settings: ProcessSettings,
        *,
        should_cancel: Callable[[], bool] | None = None,
    ) -> ProcessReport:
        """Process emails one after another.

        Args:
            emails: Emails to process.
            process_settings: Settings applied to every email.
            should_cancel: Polled before each email; returning True stops the run.

        Returns:
            ProcessReport with per-email results and failures.
        """
        selected = list(emails)
        report = ProcessReport()
        self._progress = ProcessProgress(total=len(selected))
        self._notify()

        for email in selected:
            if should_cancel and should_cancel():
                logger.info(
                    "Processing cancelled after %d of %d emails",
                    self._progress.processed + self._progress.failed, len(selected),
                )
                report.cancelled = True
                break

            self._progress.current_email = email.remote_id
            try:
                report.results[email.remote_id] = self.process_email(email, process_settings)
                self._progress.processed += 1
            except Exception as e:
                logger.error("Failed to process %s: %s", email, e)
                report.failures.append(ProcessFailure(email, e))
                self._progress.failed += 1
            self._notify()

        self._progress.current_email = ""
        self._notify()
        return report

    def _notify(self) -> None:
        """Send progress update to callback if registered."""
        if self._on_progress:
            self._on_progress(self._progress)
