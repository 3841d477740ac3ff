"""Run-one-message pipeline, ledger gating, and background execution."""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from gmail_tts.assembly import synthesize_ordered
from gmail_tts.chunker import split_by_runes, truncate_runes
from gmail_tts.constants import CHUNK_RUNE_LIMIT, CHUNK_SYNTH_TIMEOUT
from gmail_tts.errors import AuthorizationError, GmailTTSError, NotFoundError, ValidationError
from gmail_tts.gmail import MessageSource
from gmail_tts.ledger import Ledger
from gmail_tts.models import RunRequest, RunResult
from gmail_tts.naming import ArtifactNames
from gmail_tts.storage import AudioStore
from gmail_tts.tts import Synthesizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    """Collaborators for one run. Replace the whole bundle, never a field."""

    source: MessageSource
    synthesizer: Synthesizer
    store: AudioStore


class ServiceRegistry:
    """Holds the current Services bundle behind a lock."""

    def __init__(self, services: Services | None = None):
        self._services = services
        self._lock = threading.Lock()

    def current(self) -> Services:
        with self._lock:
            services = self._services
        if services is None:
            raise AuthorizationError("No services configured; authorize the account first")
        return services

    def swap(self, services: Services) -> Services | None:
        """Install a new bundle and return the previous one."""
        with self._lock:
            previous, self._services = self._services, services
        logger.info("Service bundle replaced")
        return previous


def run_message(
    services: Services,
    request: RunRequest,
    chunk_size: int = CHUNK_RUNE_LIMIT,
    timeout: float = CHUNK_SYNTH_TIMEOUT,
    run_timeout: float | None = None,
) -> RunResult:
    """Fetch one message, synthesize its text chunk by chunk, and merge.

    Errors propagate tagged with the stage that failed: "validate",
    "fetch", "synthesize-chunk-N", "persist-chunk-N" or "persist".
    """
    message_id = (request.message_id or "").strip()
    if not message_id:
        raise ValidationError("message_id is required", stage="validate")

    deadline = time.monotonic() + run_timeout if run_timeout else None

    try:
        message = services.source.get_by_id(message_id)
    except GmailTTSError as e:
        raise e.at_stage("fetch")

    text = truncate_runes(message.body, request.limit_chars)
    if not text.strip():
        raise NotFoundError(f"Message {message_id} has no readable text", stage="fetch")

    names = ArtifactNames.for_message(message_id, message.subject)
    segments = split_by_runes(text, chunk_size)
    logger.info("Message %s: %d chars in %d chunks", message_id, len(text), len(segments))

    merged = synthesize_ordered(
        segments, services.synthesizer, services.store, names, timeout=timeout, deadline=deadline
    )
    return RunResult(
        message_id=message_id,
        merged_path=merged.path,
        audio=merged.data,
        chunk_count=merged.chunk_count,
    )


def process_if_new(services: Services, ledger: Ledger, request: RunRequest, **kwargs) -> RunResult:
    """Run the message unless the ledger already records it.

    The id is appended only after the merged artifact exists, so a failed
    run can be retried from scratch. The id stays claimed from the check to
    the append, so a concurrent call for the same id is skipped instead of
    synthesizing it twice.
    """
    with ledger.claim(request.message_id or "") as owned:
        if not owned:
            logger.info("Message %s already processed or in progress; skipping", request.message_id)
            return RunResult.skipped_run(request.message_id)

        result = run_message(services, request, **kwargs)
        ledger.append(result.message_id)
    return result


def process_latest(services: Services, ledger: Ledger, query: str = "", limit_chars: int | None = None, **kwargs) -> RunResult:
    """Resolve the newest inbox message matching query and process it if new."""
    try:
        message_id = services.source.latest_id(query)
    except GmailTTSError as e:
        raise e.at_stage("fetch")
    return process_if_new(services, ledger, RunRequest(message_id=message_id, limit_chars=limit_chars), **kwargs)


class BackgroundRunner:
    """Single-worker executor for whole-message runs.

    Each job is bound to the Services bundle current at submission time, so
    a later swap never changes a run in flight.
    """

    def __init__(self, registry: ServiceRegistry, ledger: Ledger, **run_kwargs):
        self.registry = registry
        self.ledger = ledger
        self.run_kwargs = run_kwargs
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gmail-tts")

    def submit(self, request: RunRequest | None = None, query: str = "") -> Future:
        """Queue process_if_new (or process_latest when request is None)."""
        services = self.registry.current()
        if request is None:
            future = self._executor.submit(process_latest, services, self.ledger, query, **self.run_kwargs)
        else:
            future = self._executor.submit(process_if_new, services, self.ledger, request, **self.run_kwargs)
        future.add_done_callback(_log_outcome)
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "BackgroundRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()


def _log_outcome(future: Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("Background run failed: %s", error)
        return
    result = future.result()
    if result.skipped:
        logger.info("Background run skipped %s", result.message_id)
    else:
        logger.info("Background run finished %s -> %s", result.message_id, result.merged_path)


def on_authorized(registry: ServiceRegistry, runner: BackgroundRunner, services: Services, query: str = "") -> Future:
    """Install freshly built collaborators and queue the latest message."""
    registry.swap(services)
    return runner.submit(query=query)
