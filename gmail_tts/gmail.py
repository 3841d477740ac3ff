"""Gmail message source and body text extraction."""

import base64
import html
import logging
import re
from abc import ABC, abstractmethod

import google.auth.exceptions
import httplib2
from googleapiclient.errors import HttpError

from gmail_tts.constants import GMAIL_INBOX_LABEL, GMAIL_USER, PLAIN_TEXT_MIN_RUNES
from gmail_tts.errors import (
    AuthorizationError,
    FetchTimeoutError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from gmail_tts.models import EmailMessage

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_BLOCK_RE = re.compile(r"<(script|style)\b.*?</\1\s*>", re.IGNORECASE | re.DOTALL)


class MessageSource(ABC):
    """Abstract mailbox reader."""

    @abstractmethod
    def get_by_id(self, message_id: str) -> EmailMessage:
        """
        Fetches one message with its aggregated plain-text body.

        Raises:
            NotFoundError: If the message does not exist.
            FetchTimeoutError: If the fetch exceeds its deadline.
            TransportError: If the mailbox cannot be reached.
            AuthorizationError: If the OAuth token is rejected.
        """
        pass

    @abstractmethod
    def latest_id(self, query: str = "") -> str:
        """
        Returns the id of the newest inbox message matching query.

        Raises:
            NotFoundError: If no message matches.
        """
        pass


def _decode_part(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def _walk(part: dict):
    yield part
    for child in part.get("parts") or []:
        yield from _walk(child)


def strip_html(markup: str) -> str:
    """Naive tag removal; script and style blocks are dropped entirely."""
    text = _BLOCK_RE.sub("", markup)
    text = _TAG_RE.sub("", text)
    return html.unescape(text).strip()


def collect_message_text(payload: dict, snippet: str = "") -> str:
    """Aggregate the readable text of a Gmail message payload.

    All text/plain parts are joined with newlines. When that text is shorter
    than 300 code points, the first text/html part is stripped of tags and
    used instead if it is longer. The snippet is the last resort.
    """
    plain_parts = []
    html_part = ""
    for part in _walk(payload):
        mime_type = part.get("mimeType", "")
        data = (part.get("body") or {}).get("data")
        if not data:
            continue
        if mime_type == "text/plain":
            plain_parts.append(_decode_part(data))
        elif mime_type == "text/html" and not html_part:
            html_part = _decode_part(data)

    plain = "\n".join(plain_parts).strip()
    if len(plain) >= PLAIN_TEXT_MIN_RUNES:
        return plain
    if html_part:
        stripped = strip_html(html_part)
        if len(stripped) > len(plain):
            return stripped
    return plain or snippet.strip()


def header_value(payload: dict, name: str) -> str:
    for header in payload.get("headers") or []:
        if header.get("name", "").lower() == name.lower():
            return header.get("value", "")
    return ""


class GmailMessageSource(MessageSource):
    """Reads messages through a Gmail API v1 service object.

    The service's HTTP transport carries the socket timeout (see
    google_services.build_gmail_service).
    """

    def __init__(self, service, user_id: str = GMAIL_USER):
        self.service = service
        self.user_id = user_id

    def _execute(self, request, what: str):
        try:
            return request.execute()
        except HttpError as e:
            if e.resp.status == 404:
                raise NotFoundError(f"{what} not found") from e
            raise TransportError(f"Gmail API error {e.resp.status} for {what}") from e
        except TimeoutError as e:
            raise FetchTimeoutError(f"Gmail request timed out for {what}") from e
        except google.auth.exceptions.RefreshError as e:
            raise AuthorizationError(f"Gmail token rejected for {what}: {e}") from e
        except (OSError, httplib2.HttpLib2Error, google.auth.exceptions.GoogleAuthError) as e:
            raise TransportError(f"Gmail unreachable for {what}: {e}") from e

    def get_by_id(self, message_id: str) -> EmailMessage:
        if not message_id:
            raise ValidationError("message_id is required")

        raw = self._execute(
            self.service.users().messages().get(userId=self.user_id, id=message_id, format="full"),
            f"message {message_id}",
        )
        payload = raw.get("payload") or {}
        body = collect_message_text(payload, raw.get("snippet", ""))
        logger.debug("Fetched message %s (%d chars)", message_id, len(body))
        return EmailMessage(
            id=raw.get("id", message_id),
            subject=header_value(payload, "Subject"),
            body=body,
        )

    def latest_id(self, query: str = "") -> str:
        kwargs = {"userId": self.user_id, "labelIds": [GMAIL_INBOX_LABEL], "maxResults": 1}
        if query:
            kwargs["q"] = query
        response = self._execute(self.service.users().messages().list(**kwargs), "inbox listing")
        messages = response.get("messages") or []
        if not messages:
            raise NotFoundError(f"No inbox message matches query {query!r}")
        return messages[0]["id"]
