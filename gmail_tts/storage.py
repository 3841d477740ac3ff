"""Local persistence for audio artifacts, text artifacts, and JSON manifests."""

import json
import logging
import os
from abc import ABC, abstractmethod

from gmail_tts.constants import AUDIO_DIR, AUDIO_EXTENSION, RAW_TEXT_SUBDIR, TEXT_DIR
from gmail_tts.errors import StorageError
from gmail_tts.models import EmailMessage
from gmail_tts.naming import sanitize_name

logger = logging.getLogger(__name__)


class AudioStore(ABC):
    """Abstract persistence sink for synthesized audio."""

    @abstractmethod
    def save(self, data: bytes, logical_name: str) -> str:
        """
        Persists data under logical_name (no extension) and returns its path.

        Raises:
            StorageError: If the bytes cannot be written.
        """
        pass


class FileStore(AudioStore):
    """Writes audio to {root}/{logical_name}.mp3, creating directories."""

    def __init__(self, root: str = AUDIO_DIR, extension: str = AUDIO_EXTENSION):
        self.root = root or AUDIO_DIR
        self.extension = extension

    def path_for(self, logical_name: str) -> str:
        return os.path.join(self.root, f"{logical_name}{self.extension}")

    def save(self, data: bytes, logical_name: str) -> str:
        path = self.path_for(logical_name)
        _write_bytes(path, data)
        logger.info("Saved %d bytes to %s", len(data), path)
        return path


def _write_bytes(path: str, data: bytes) -> None:
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise StorageError(path, e) from e


def write_text(path: str, text: str) -> str:
    """Write UTF-8 text to path, creating parent directories."""
    _write_bytes(path, text.encode("utf-8"))
    return path


def write_artifact(directory: str, filename: str, data: dict) -> str:
    """Write JSON artifact to directory/filename.

    Returns path to the written file.
    """
    path = os.path.join(directory, filename)
    write_text(path, json.dumps(data, indent=2, ensure_ascii=False))
    return path


def raw_text_path(message: EmailMessage, text_dir: str = TEXT_DIR) -> str:
    """text/raw_txt/<id>/<subject>_<id>.txt

    The id is the last "_" field of the file stem, which the rewrite step
    relies on to recover it.
    """
    message_id = sanitize_name(message.id)
    name = sanitize_name(message.subject, fallback=message_id)
    return os.path.join(text_dir, RAW_TEXT_SUBDIR, message_id, f"{name}_{message_id}.txt")


def save_message_text(message: EmailMessage, text_dir: str = TEXT_DIR) -> str:
    """Save the message body as a raw text artifact. Returns its path."""
    path = write_text(raw_text_path(message, text_dir), message.body)
    logger.info("Saved message text to %s", path)
    return path
