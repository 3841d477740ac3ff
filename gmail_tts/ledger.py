"""Append-only record of message ids that have already been processed."""

import logging
import os
import threading
from contextlib import contextmanager

from gmail_tts.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_path_states: dict[str, "_PathState"] = {}


class _PathState:
    """Lock and in-flight ids shared by every Ledger on one file."""

    def __init__(self):
        self.lock = threading.Lock()
        self.claimed: set[str] = set()


def _state_for(path: str) -> _PathState:
    key = os.path.abspath(path)
    with _registry_lock:
        state = _path_states.get(key)
        if state is None:
            state = _path_states[key] = _PathState()
        return state


class Ledger:
    """Newline-delimited set of processed ids backed by a single text file.

    All Ledger objects on the same path in one process share a lock, so
    threads never interleave writes. Separate processes must not write the
    same file concurrently.
    """

    def __init__(self, path: str):
        self.path = path
        self._state = _state_for(path)

    def ids(self) -> list[str]:
        """Recorded ids in the order they were appended. Missing file → []."""
        with self._state.lock:
            return self._read()

    def contains(self, message_id: str) -> bool:
        message_id = message_id.strip()
        if not message_id:
            return False
        with self._state.lock:
            return message_id in self._read()

    @contextmanager
    def claim(self, message_id: str):
        """Reserve message_id for one run.

        Yields True when the caller owns the id: it is neither recorded nor
        claimed by another thread. The reservation ends when the block exits.
        Blank ids are never recorded, so they are always owned.
        """
        message_id = message_id.strip()
        with self._state.lock:
            owned = not message_id or (
                message_id not in self._state.claimed and message_id not in self._read()
            )
            if owned and message_id:
                self._state.claimed.add(message_id)
        try:
            yield owned
        finally:
            if owned and message_id:
                with self._state.lock:
                    self._state.claimed.discard(message_id)

    def append(self, message_id: str) -> None:
        """Record message_id. The line is flushed before returning."""
        message_id = message_id.strip()
        if not message_id or "\n" in message_id or "\r" in message_id:
            raise ValidationError(f"Invalid ledger id: {message_id!r}", stage="ledger")

        with self._state.lock:
            try:
                parent = os.path.dirname(self.path)
                if parent:
                    os.makedirs(parent, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(f"{message_id}\n")
                    f.flush()
            except OSError as e:
                raise StorageError(self.path, e, stage="ledger") from e
        logger.info("Recorded %s in %s", message_id, self.path)

    def _read(self) -> list[str]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, encoding="utf-8", errors="replace") as f:
                return [line.strip() for line in f if line.strip()]
        except OSError as e:
            raise StorageError(self.path, e, action="read", stage="ledger") from e
