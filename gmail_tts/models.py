"""Data models for message-to-speech runs."""

import base64
from dataclasses import dataclass, field

from gmail_tts.constants import AUDIO_FORMAT


@dataclass(frozen=True)
class TextSegment:
    index: int         # 1-based position in the source text
    content: str

    @property
    def rune_length(self) -> int:
        return len(self.content)

    @property
    def byte_length(self) -> int:
        return len(self.content.encode("utf-8"))


@dataclass
class AudioChunk:
    index: int
    data: bytes
    format: str = AUDIO_FORMAT


@dataclass
class MergedAudio:
    data: bytes
    path: str
    chunk_paths: list[str] = field(default_factory=list)
    format: str = AUDIO_FORMAT

    @property
    def chunk_count(self) -> int:
        return len(self.chunk_paths)


@dataclass(frozen=True)
class EmailMessage:
    id: str
    subject: str
    body: str          # plain text, extracted and aggregated


@dataclass(frozen=True)
class RunRequest:
    message_id: str
    limit_chars: int | None = None   # None or 0 means no limit


@dataclass
class RunResult:
    message_id: str
    merged_path: str | None = None
    audio: bytes = b""
    chunk_count: int = 0
    skipped: bool = False

    @property
    def audio_base64(self) -> str:
        return base64.b64encode(self.audio).decode("ascii")

    @classmethod
    def skipped_run(cls, message_id: str) -> "RunResult":
        return cls(message_id=message_id, skipped=True)
