"""Exception taxonomy shared by the pipeline and its collaborators."""


class GmailTTSError(Exception):
    """Base class for every error raised by gmail_tts.

    ``stage`` names where a run failed ("fetch", "synthesize-chunk-2",
    "persist", ...). ``chunk_index`` is set for chunk-level failures.
    """

    def __init__(self, message: str, stage: str | None = None, chunk_index: int | None = None):
        super().__init__(message)
        self.stage = stage
        self.chunk_index = chunk_index

    def at_stage(self, stage: str, chunk_index: int | None = None) -> "GmailTTSError":
        """Tag the error with the stage it surfaced from and return it."""
        self.stage = stage
        if chunk_index is not None:
            self.chunk_index = chunk_index
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class ValidationError(GmailTTSError):
    """Raised on malformed input such as a missing message id."""


class AuthorizationError(ValidationError):
    """Raised when no usable OAuth token is available."""


class NotFoundError(GmailTTSError):
    """Raised when the source message (or its text) does not exist."""


class TransportError(GmailTTSError):
    """Raised on network or connectivity failure to a remote collaborator."""


class ProviderError(GmailTTSError):
    """Raised when a remote API answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class RateLimitError(ProviderError):
    """Raised when the provider rejects a call for rate limiting."""


class OperationTimeoutError(GmailTTSError):
    """Raised when a deadline expires before a remote call completes."""


class FetchTimeoutError(OperationTimeoutError):
    """Raised when fetching a message exceeds its deadline."""


class SynthesisTimeoutError(OperationTimeoutError):
    """Raised when a synthesis call exceeds its deadline."""


class StorageError(GmailTTSError):
    """Raised when a local artifact cannot be written or read."""

    def __init__(self, path: str, cause: Exception | None = None, action: str = "write", **kwargs):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to {action} '{path}'{detail}", **kwargs)
