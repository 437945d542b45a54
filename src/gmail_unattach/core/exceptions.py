"""Custom exceptions for Gmail Unattach."""


class UnattachError(Exception):
    """Base exception for all Gmail Unattach errors."""


class AuthenticationError(UnattachError):
    """Failed to authenticate with Gmail API."""


class TransportError(UnattachError):
    """A Gmail API call failed."""


class RateLimitError(TransportError):
    """Gmail API rate limit or per-user quota exceeded."""


class ContentDecodeError(UnattachError):
    """Malformed MIME structure, undecodable content, or missing raw message."""


class FilesystemError(UnattachError):
    """Failed to write an attachment or backup to the local filesystem."""


class ConfigurationError(UnattachError):
    """Invalid or incomplete processing configuration."""
