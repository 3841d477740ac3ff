"""Provenance manifest written next to the merged audio."""

import logging
import os
from datetime import datetime, timezone

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from gmail_tts.constants import AUDIO_FORMAT, MANIFEST_FILENAME, VERSION
from gmail_tts.models import RunResult
from gmail_tts.storage import write_artifact

logger = logging.getLogger(__name__)


def probe_duration(path: str) -> float | None:
    """Duration in seconds, or None when the file cannot be decoded."""
    try:
        audio = AudioSegment.from_file(path, format=AUDIO_FORMAT)
    except (CouldntDecodeError, OSError) as e:
        logger.warning("Could not probe duration of %s: %s", path, e)
        return None
    return round(len(audio) / 1000, 1)


def write_manifest(result: RunResult, subject: str = "", settings: dict | None = None) -> str:
    """Write merged/<id>/output.json for a finished run.

    Returns path to the manifest.
    """
    if not result.merged_path:
        raise ValueError(f"Run for {result.message_id} has no merged artifact")

    manifest = {
        "message_id": result.message_id,
        "subject": subject,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "gmail_tts_version": VERSION,
        "audio": os.path.basename(result.merged_path),
        "settings": settings or {},
        "stats": {
            "chunks": result.chunk_count,
            "bytes": len(result.audio),
            "duration_seconds": probe_duration(result.merged_path),
        },
    }
    path = write_artifact(os.path.dirname(result.merged_path), MANIFEST_FILENAME, manifest)
    logger.info("Wrote manifest %s", path)
    return path
