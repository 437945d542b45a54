"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from gmail_unattach.core.models import (
    DEFAULT_FILENAME_SCHEMA,
    DEFAULT_REFERENCE_URL,
    ProcessOption,
    ProcessSettings,
)


class UnattachSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="UNATTACH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OAuth credentials
    credentials_path: Path = Path("credentials/client_secret.json")
    token_path: Path = Path("credentials/token.json")

    # Gmail API settings
    user_id: str = "me"
    max_results_per_page: int = 500
    batch_size: int = 100
    inter_page_delay_seconds: float = 0.025
    num_retries: int = 0

    # Processing
    target_directory: Path = Path("attachments")
    filename_schema: str = DEFAULT_FILENAME_SCHEMA
    add_metadata: bool = True
    delete_original: bool = False
    downloaded_label_name: str = "unattach: downloaded"
    removed_label_name: str = "unattach: removed"
    reference_url: str = DEFAULT_REFERENCE_URL

    # Logging
    log_level: str = "INFO"

    def ensure_directories(self) -> None:
        """Create the target and credentials directories if they don't exist."""
        self.target_directory.mkdir(parents=True, exist_ok=True)
        self.credentials_path.parent.mkdir(parents=True, exist_ok=True)

    def to_process_settings(
        self,
        process_option: ProcessOption,
        *,
        downloaded_label_id: str | None = None,
        removed_label_id: str | None = None,
    ) -> ProcessSettings:
        """Freeze the processing-related fields into a ProcessSettings value."""
        return ProcessSettings(
            process_option=process_option,
            target_directory=self.target_directory.absolute(),
            filename_schema=self.filename_schema,
            add_metadata=self.add_metadata,
            delete_original=self.delete_original,
            downloaded_label_id=downloaded_label_id,
            removed_label_id=removed_label_id,
            reference_url=self.reference_url,
        )
