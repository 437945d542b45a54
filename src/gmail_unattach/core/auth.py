"""Gmail sign-in: installed-app OAuth flow with a cached token file."""

from __future__ import annotations

import logging
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build

from gmail_unattach.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Full mailbox scope: permanent deletion of the original is not covered by gmail.modify.
SCOPES = ["https://mail.google.com/"]


def authenticate(credentials_path: Path, token_path: Path) -> Credentials:
    """Return credentials for the full-mailbox scope.

    A cached token is reused (refreshed if expired) unless it was granted for
    narrower scopes, e.g. a read-only token left by another tool; in that case
    the OAuth consent flow runs again.

    Args:
        credentials_path: OAuth 2.0 client secrets JSON from Google Cloud Console.
        token_path: Where the authorized token is cached.

    Raises:
        AuthenticationError: If no usable token exists and the OAuth flow fails
            or the client secrets file is missing.
    """
    creds = _load_cached_token(token_path)
    if creds is not None:
        if creds.valid:
            return creds
        if creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
                _save_token(creds, token_path)
                return creds
            except Exception as e:
                logger.warning("Token refresh failed, signing in again: %s", e)

    if not credentials_path.exists():
        raise AuthenticationError(
            f"Client secrets not found at {credentials_path}; "
            "create a desktop OAuth client in Google Cloud Console and save it there."
        )

    try:
        flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
        creds = flow.run_local_server(port=0)
    except Exception as e:
        raise AuthenticationError(f"OAuth flow failed: {e}") from e
    _save_token(creds, token_path)
    logger.info("Signed in, token cached at %s", token_path)
    return creds


def sign_out(token_path: Path) -> bool:
    """Delete the cached token.

    Returns:
        True if a token was removed, False if there was none.
    """
    try:
        token_path.unlink()
    except FileNotFoundError:
        return False
    logger.info("Removed cached token %s", token_path)
    return True


def build_gmail_service(creds: Credentials) -> Resource:
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def _load_cached_token(token_path: Path) -> Credentials | None:
    if not token_path.exists():
        return None
    try:
        creds = Credentials.from_authorized_user_file(str(token_path))
    except Exception as e:
        logger.warning("Ignoring unreadable token %s: %s", token_path, e)
        return None
    if not creds.has_scopes(SCOPES):
        logger.warning("Cached token %s lacks the full mailbox scope; signing in again", token_path)
        return None
    return creds


def _save_token(creds: Credentials, token_path: Path) -> None:
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
