"""Sequential chunk synthesis and byte-exact merge."""

import logging
import time

from gmail_tts.errors import GmailTTSError, StorageError, SynthesisTimeoutError
from gmail_tts.models import AudioChunk, MergedAudio, TextSegment
from gmail_tts.naming import ArtifactNames
from gmail_tts.storage import AudioStore
from gmail_tts.tts import Synthesizer

logger = logging.getLogger(__name__)


def _call_timeout(timeout: float, deadline: float | None, index: int) -> float:
    """Per-call timeout, shortened to what is left of the run deadline."""
    if deadline is None:
        return timeout
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise SynthesisTimeoutError(
            f"Run deadline passed before chunk {index}",
            stage=f"synthesize-chunk-{index}",
            chunk_index=index,
        )
    return min(timeout, remaining)


def synthesize_ordered(
    segments: list[TextSegment],
    synthesizer: Synthesizer,
    store: AudioStore,
    names: ArtifactNames,
    timeout: float,
    deadline: float | None = None,
) -> MergedAudio:
    """Synthesize segments one at a time and merge their audio in order.

    Each chunk is persisted as soon as it arrives so a failed run still
    leaves the earlier parts on disk for inspection. The first failure
    aborts the run: later chunks are never requested and no merged
    artifact is written.

    Args:
        segments: Ordered, 1-indexed text segments.
        synthesizer: Speech backend, called once per segment.
        store: Sink for part and merged artifacts.
        names: Logical names for this message's artifacts.
        timeout: Seconds allowed for each synthesis call.
        deadline: Optional time.monotonic() value bounding the whole run.

    Returns:
        MergedAudio holding the concatenated bytes and artifact paths.
    """
    merged = bytearray()
    chunk_paths = []

    for segment in segments:
        index = segment.index
        call_timeout = _call_timeout(timeout, deadline, index)

        try:
            data = synthesizer.synthesize(segment.content, timeout=call_timeout)
        except GmailTTSError as e:
            if chunk_paths:
                logger.warning("Aborting after chunk %d; %d part files left on disk", index, len(chunk_paths))
            raise e.at_stage(f"synthesize-chunk-{index}", chunk_index=index)

        chunk = AudioChunk(index=index, data=data)
        try:
            path = store.save(chunk.data, names.part(index))
        except StorageError as e:
            raise e.at_stage(f"persist-chunk-{index}", chunk_index=index)

        chunk_paths.append(path)
        merged.extend(chunk.data)
        logger.info("Chunk %d/%d: %d bytes", index, len(segments), len(chunk.data))

    data = bytes(merged)
    try:
        merged_path = store.save(data, names.merged)
    except StorageError as e:
        raise e.at_stage("persist")

    logger.info("Merged %d chunks into %s", len(chunk_paths), merged_path)
    return MergedAudio(data=data, path=merged_path, chunk_paths=chunk_paths)
