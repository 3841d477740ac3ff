"""Filesystem-safe artifact names derived from untrusted subject lines."""

import os
import re
import unicodedata
from dataclasses import dataclass

from gmail_tts.constants import (
    ARTIFACT_NAME_MAX_LENGTH,
    ARTIFACT_NAME_REPLACEMENT,
    UNTITLED_NAME,
)

# Path separators, reserved characters, and C0/DEL control characters
_INVALID_CHARS_RE = re.compile(r'[/\\:*?"<>|\x00-\x1f\x7f]')
_REPLACEMENT_RUN_RE = re.compile(re.escape(ARTIFACT_NAME_REPLACEMENT) + "{2,}")
_EDGE_RE = re.compile(r"^[\s_]+|[\s_]+$")
_TRAILING_RE = re.compile(r"[\s_.]+$")
_PART_RE = re.compile(r"_part(\d+)(?:\.[A-Za-z0-9]+)?$")

_ZWJ = "\u200d"


def _clean_encoding(raw: str | bytes) -> str:
    """Drop undecodable bytes, lone surrogates, and U+FFFD."""
    if isinstance(raw, bytes):
        text = raw.decode("utf-8", errors="ignore")
    else:
        text = raw.encode("utf-8", errors="ignore").decode("utf-8")
    return text.replace("\ufffd", "")


def _extends_cluster(ch: str) -> bool:
    """True for code points that attach to the preceding character."""
    if ch == _ZWJ or "\U0001f3fb" <= ch <= "\U0001f3ff":
        return True
    return unicodedata.category(ch) in ("Mn", "Mc", "Me")


def _truncate(name: str, limit: int) -> str:
    """Cut to at most limit code points without orphaning combining marks."""
    if len(name) <= limit:
        return name
    end = limit
    while end > 0 and (_extends_cluster(name[end]) or name[end - 1] == _ZWJ):
        end -= 1
    return name[:end] if end > 0 else name[:limit]


def _sanitize(raw: str | bytes | None) -> str:
    if not raw:
        return ""
    name = _clean_encoding(raw)
    name = _INVALID_CHARS_RE.sub(ARTIFACT_NAME_REPLACEMENT, name)
    name = _REPLACEMENT_RUN_RE.sub(ARTIFACT_NAME_REPLACEMENT, name)
    name = _EDGE_RE.sub("", name)
    name = _truncate(name, ARTIFACT_NAME_MAX_LENGTH)
    # No trailing dot or space (Windows compatibility)
    return _TRAILING_RE.sub("", name)


def sanitize_name(raw: str | bytes | None, fallback: str = "") -> str:
    """Convert an email subject into a safe file name.

    Invalid characters become "_", runs of "_" collapse, the edges are
    trimmed, and the result is capped at 100 code points. An empty result
    falls back to ``fallback`` (usually the message id), then to
    "untitled". Never raises on malformed input.

    "Report: Q3/Q4 <final>" → "Report_ Q3_Q4 _final"
    """
    name = _sanitize(raw)
    if name:
        return name
    return _sanitize(fallback) or UNTITLED_NAME


@dataclass(frozen=True)
class ArtifactNames:
    """Logical names for one message's chunk and merged artifacts."""

    message_id: str
    base: str

    @classmethod
    def for_message(cls, message_id: str, subject: str = "") -> "ArtifactNames":
        namespace = sanitize_name(message_id)
        return cls(message_id=namespace, base=sanitize_name(subject, fallback=namespace))

    def part(self, index: int) -> str:
        return f"parts/{self.message_id}/{self.base}_part{index}"

    @property
    def merged(self) -> str:
        return f"merged/{self.message_id}/{self.base}"


def part_index(name: str) -> int | None:
    """Parse N from a "..._partN[.ext]" name. None when there is no suffix."""
    match = _PART_RE.search(os.path.basename(name))
    if not match:
        return None
    return int(match.group(1))


def order_by_part_index(names: list[str]) -> list[str]:
    """Stable sort by part index; names without an index go last."""

    def key(name: str) -> tuple[bool, int]:
        index = part_index(name)
        return (index is None, index or 0)

    return sorted(names, key=key)
