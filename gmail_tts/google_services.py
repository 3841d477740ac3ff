"""Authorized Google API clients built from a saved OAuth token file."""

import logging
import os
from typing import Any

import google.auth.exceptions
import google.oauth2.credentials
import google_auth_httplib2
import httplib2
from google.auth.transport.requests import Request
from googleapiclient.discovery import build

from gmail_tts.constants import DRIVE_FILE_SCOPE, GMAIL_READONLY_SCOPE, GOOGLE_HTTP_TIMEOUT
from gmail_tts.errors import AuthorizationError, TransportError

logger = logging.getLogger(__name__)

SCOPES = [GMAIL_READONLY_SCOPE, DRIVE_FILE_SCOPE]


def load_credentials(token_path: str, scopes: list[str] | None = None) -> Any:
    """
    Load stored user credentials, refreshing them if they have expired.

    The refreshed token is written back to token_path so the next run
    starts from a valid access token.

    Args:
        token_path: Path to an authorized-user JSON file.
        scopes: Scopes the token must carry. Defaults to Gmail read and Drive file.

    Returns:
        Valid google.oauth2.credentials.Credentials.

    Raises:
        AuthorizationError: If the file is missing or the token cannot be refreshed.
        TransportError: If the refresh request cannot reach Google.
    """
    if not os.path.exists(token_path):
        raise AuthorizationError(
            f"No OAuth token at {token_path}. Authorize the account and save the token first."
        )

    try:
        creds = google.oauth2.credentials.Credentials.from_authorized_user_file(
            token_path, scopes or SCOPES
        )
    except (ValueError, OSError) as e:
        raise AuthorizationError(f"Unreadable OAuth token {token_path}: {e}") from e

    if creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
        except google.auth.exceptions.RefreshError as e:
            raise AuthorizationError(f"Token refresh failed: {e}") from e
        except google.auth.exceptions.TransportError as e:
            raise TransportError(f"Token refresh could not reach Google: {e}") from e
        with open(token_path, "w") as token_file:
            token_file.write(creds.to_json())
        logger.info("Refreshed OAuth token %s", token_path)

    if not creds.valid:
        raise AuthorizationError(f"OAuth token {token_path} is not valid")
    return creds


def _authorized_http(credentials: Any, timeout: float) -> google_auth_httplib2.AuthorizedHttp:
    return google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))


def build_gmail_service(credentials: Any, timeout: float = GOOGLE_HTTP_TIMEOUT) -> Any:
    """Gmail v1 client whose every request carries a socket timeout."""
    return build("gmail", "v1", http=_authorized_http(credentials, timeout), cache_discovery=False)


def build_drive_service(credentials: Any, timeout: float = GOOGLE_HTTP_TIMEOUT) -> Any:
    """Drive v3 client whose every request carries a socket timeout."""
    return build("drive", "v3", http=_authorized_http(credentials, timeout), cache_discovery=False)
