"""Shared fixtures for gmail_tts tests."""

import pytest

from gmail_tts.errors import NotFoundError, ProviderError
from gmail_tts.gmail import MessageSource
from gmail_tts.ledger import Ledger
from gmail_tts.models import EmailMessage
from gmail_tts.pipeline import Services
from gmail_tts.storage import FileStore
from gmail_tts.tts import Synthesizer


class FakeSource(MessageSource):
    """In-memory mailbox keyed by id; the last message added is the latest."""

    def __init__(self, messages=()):
        self.messages = {m.id: m for m in messages}
        self.fetched = []

    def get_by_id(self, message_id):
        self.fetched.append(message_id)
        if message_id not in self.messages:
            raise NotFoundError(f"message {message_id} not found")
        return self.messages[message_id]

    def latest_id(self, query=""):
        if not self.messages:
            raise NotFoundError("inbox is empty")
        return list(self.messages)[-1]


class FakeSynthesizer(Synthesizer):
    """Returns the UTF-8 text as "audio"; fails on the call numbered fail_on."""

    def __init__(self, fail_on=None, error=None):
        self.fail_on = fail_on
        self.error = error or ProviderError("synthesis failed", status_code=500)
        self.calls = []

    def synthesize(self, text, timeout=None):
        self.calls.append((text, timeout))
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise self.error
        return text.encode("utf-8")


@pytest.fixture
def message():
    return EmailMessage(id="18c0ffee", subject="Weekly: News/Update", body="chunk1chunk2chunk3")


@pytest.fixture
def source(message):
    return FakeSource([message])


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def store(tmp_path):
    return FileStore(str(tmp_path / "audio"))


@pytest.fixture
def services(source, synthesizer, store):
    return Services(source=source, synthesizer=synthesizer, store=store)


@pytest.fixture
def ledger(tmp_path):
    return Ledger(str(tmp_path / "log" / "downloaded_ids.txt"))


@pytest.fixture
def make_synthesizer():
    """Factory for FakeSynthesizer with an optional failing call."""
    return FakeSynthesizer


@pytest.fixture
def make_source():
    return FakeSource
