"""Tests for assembly module."""

import os
import time
from unittest.mock import MagicMock

import pytest

from gmail_tts.assembly import synthesize_ordered
from gmail_tts.errors import RateLimitError, StorageError, SynthesisTimeoutError
from gmail_tts.models import TextSegment
from gmail_tts.naming import ArtifactNames


def _segments(*texts):
    return [TextSegment(index=i, content=t) for i, t in enumerate(texts, start=1)]


NAMES = ArtifactNames(message_id="m1", base="Subject")


def test_merge_preserves_order(store, make_synthesizer):
    """Merged bytes are the chunk bytes concatenated in index order."""
    synth = make_synthesizer()
    merged = synthesize_ordered(_segments("chunk1", "chunk2", "chunk3"), synth, store, NAMES, timeout=30)
    assert merged.data == b"chunk1chunk2chunk3"
    assert [text for text, _ in synth.calls] == ["chunk1", "chunk2", "chunk3"]
    with open(merged.path, "rb") as f:
        assert f.read() == b"chunk1chunk2chunk3"


def test_every_chunk_persisted(store, make_synthesizer):
    merged = synthesize_ordered(_segments("a", "b"), make_synthesizer(), store, NAMES, timeout=30)
    assert merged.chunk_count == 2
    assert merged.chunk_paths == [store.path_for("parts/m1/Subject_part1"), store.path_for("parts/m1/Subject_part2")]
    with open(merged.chunk_paths[1], "rb") as f:
        assert f.read() == b"b"
    assert merged.path == store.path_for("merged/m1/Subject")


def test_timeout_passed_to_each_call(store, make_synthesizer):
    synth = make_synthesizer()
    synthesize_ordered(_segments("a", "b"), synth, store, NAMES, timeout=42)
    assert [timeout for _, timeout in synth.calls] == [42, 42]


def test_abort_on_second_chunk(store, make_synthesizer):
    """Failure on chunk 2 of 3: chunk 1 kept, chunk 3 never requested, no merge."""
    synth = make_synthesizer(fail_on=2, error=RateLimitError("slow down", status_code=429))
    with pytest.raises(RateLimitError) as exc_info:
        synthesize_ordered(_segments("chunk1", "chunk2", "chunk3"), synth, store, NAMES, timeout=30)

    assert exc_info.value.stage == "synthesize-chunk-2"
    assert exc_info.value.chunk_index == 2
    assert exc_info.value.status_code == 429
    assert len(synth.calls) == 2
    assert os.path.exists(store.path_for(NAMES.part(1)))
    assert not os.path.exists(store.path_for(NAMES.part(3)))
    assert not os.path.exists(store.path_for(NAMES.merged))


def test_store_failure_tagged_with_chunk(make_synthesizer):
    store = MagicMock()
    store.save.side_effect = StorageError("audio/parts/m1/Subject_part1.mp3", OSError("disk full"))
    with pytest.raises(StorageError) as exc_info:
        synthesize_ordered(_segments("a", "b"), make_synthesizer(), store, NAMES, timeout=30)
    assert exc_info.value.stage == "persist-chunk-1"
    assert exc_info.value.chunk_index == 1


def test_merged_store_failure_tagged_persist(make_synthesizer):
    store = MagicMock()
    store.save.side_effect = ["p1", StorageError("merged", OSError("disk full"))]
    with pytest.raises(StorageError) as exc_info:
        synthesize_ordered(_segments("a"), make_synthesizer(), store, NAMES, timeout=30)
    assert exc_info.value.stage == "persist"


def test_deadline_shortens_call_timeout(store, make_synthesizer):
    synth = make_synthesizer()
    synthesize_ordered(_segments("a"), synth, store, NAMES, timeout=300, deadline=time.monotonic() + 5)
    (_, timeout), = synth.calls
    assert 0 < timeout <= 5


def test_expired_deadline_raises_before_calling(store, make_synthesizer):
    synth = make_synthesizer()
    with pytest.raises(SynthesisTimeoutError) as exc_info:
        synthesize_ordered(_segments("a", "b"), synth, store, NAMES, timeout=30, deadline=time.monotonic() - 1)
    assert exc_info.value.stage == "synthesize-chunk-1"
    assert synth.calls == []
    assert not os.path.exists(store.path_for(NAMES.merged))


def test_no_segments_writes_empty_merge(store, make_synthesizer):
    merged = synthesize_ordered([], make_synthesizer(), store, NAMES, timeout=30)
    assert merged.data == b""
    assert merged.chunk_count == 0
