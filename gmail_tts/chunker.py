"""Split long text into provider-sized segments at sentence boundaries."""

from gmail_tts.constants import DEFAULT_BREAK_CHAIN
from gmail_tts.models import TextSegment

UNITS = ("runes", "bytes")


def truncate_runes(text: str, limit: int | None) -> str:
    """Keep the first ``limit`` code points. ``None`` or ``<= 0`` means no limit."""
    if not limit or limit <= 0:
        return text
    return text[:limit]


def _measure(text: str, unit: str) -> int:
    if unit == "bytes":
        return len(text.encode("utf-8"))
    return len(text)


def _fitting_prefix(text: str, max_size: int, unit: str) -> str:
    """Longest prefix of text within max_size, ending on a code-point boundary."""
    if unit == "bytes":
        # max_size chars always cover at least max_size bytes
        prefix = text[:max_size].encode("utf-8")[:max_size].decode("utf-8", errors="ignore")
    else:
        prefix = text[:max_size]
    # A character wider than max_size bytes is emitted alone
    return prefix or text[:1]


def _break_point(candidate: str, break_chain) -> int:
    """Offset just past the last marker of the first chain entry found in candidate."""
    for marker in break_chain:
        if not marker:
            continue
        pos = candidate.rfind(marker)
        if pos != -1:
            return pos + len(marker)
    return len(candidate)


def split_text(
    text: str,
    max_size: int,
    unit: str = "runes",
    break_chain: tuple[str, ...] = DEFAULT_BREAK_CHAIN,
) -> list[TextSegment]:
    """Split text into ordered, 1-indexed segments of at most max_size.

    Size is measured in code points (unit="runes") or UTF-8 bytes
    (unit="bytes"). Each cut lands just after the last occurrence of the
    first break marker found in the candidate window; with no marker the
    window is hard-cut. Segments concatenate back to the original text.
    """
    if unit not in UNITS:
        raise ValueError(f"unit must be one of {UNITS}, got {unit!r}")
    if not text:
        return []
    if max_size <= 0:
        return [TextSegment(index=1, content=text)]

    pieces = []
    remaining = text
    while _measure(remaining, unit) > max_size:
        candidate = _fitting_prefix(remaining, max_size, unit)
        cut = _break_point(candidate, break_chain)
        pieces.append(remaining[:cut])
        remaining = remaining[cut:]
    if remaining:
        pieces.append(remaining)

    return [TextSegment(index=i, content=piece) for i, piece in enumerate(pieces, start=1)]


def split_by_runes(text: str, max_runes: int, break_chain=DEFAULT_BREAK_CHAIN) -> list[TextSegment]:
    return split_text(text, max_runes, unit="runes", break_chain=break_chain)


def split_by_bytes(text: str, max_bytes: int, break_chain=DEFAULT_BREAK_CHAIN) -> list[TextSegment]:
    return split_text(text, max_bytes, unit="bytes", break_chain=break_chain)
