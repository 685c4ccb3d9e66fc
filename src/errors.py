"""
src/errors.py
==============
Error Taxonomy — VoiceBridge

Responsibility:
    - Define every failure the pipeline can raise
    - Carry structured detail (operation, HTTP status, raw provider body)
      so the API layer can report it without re-parsing messages

Recoverable signals:
    - DurationExceededError → orchestrator downgrades to the batch path
    - SameLanguageError     → translation passes the transcript through
                              with an advisory warning

Everything else propagates to the API boundary as a user-visible failure.
"""


class VoiceBridgeError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ConfigurationError(VoiceBridgeError):
    """Raised when required configuration (e.g. the API key) is missing."""


# ---------------------------------------------------------------------------
# Remote service failures
# ---------------------------------------------------------------------------


class RemoteServiceError(VoiceBridgeError):
    """Raised when a remote call returns a non-success response or fails in transit."""

    def __init__(
        self,
        operation: str,
        status_code: int | None,
        body: str = "",
        message: str | None = None,
    ):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        if message is None:
            status = status_code if status_code is not None else "no response"
            message = f"{operation} failed: {status}"
            if body:
                message = f"{message} - {body}"
        super().__init__(message, detail=body or None)


class DurationExceededError(RemoteServiceError):
    """The clip is longer than the synchronous transcription ceiling."""


class SameLanguageError(RemoteServiceError):
    """Source and target language of a translation request are identical."""


class MalformedResponseError(VoiceBridgeError):
    """A success response did not contain any of the expected fields."""

    def __init__(self, operation: str, body: object):
        self.operation = operation
        self.body = body
        super().__init__(
            f"{operation} returned an unrecognised response structure",
            detail=str(body),
        )


# ---------------------------------------------------------------------------
# Pipeline integrity failures
# ---------------------------------------------------------------------------


class EmptyTranscriptError(VoiceBridgeError):
    """Transcription produced no text."""

    def __init__(self, detail: str | None = None):
        super().__init__("Could not transcribe audio. Result was empty.", detail)


class EmptySynthesisError(VoiceBridgeError):
    """Speech synthesis produced no audio."""

    def __init__(self, detail: str | None = None):
        super().__init__("Text-to-Speech failed. Result was empty.", detail)


class NoDownloadTargetsError(VoiceBridgeError):
    """Every candidate result file of a completed job yielded no download URL."""

    def __init__(self, job_id: str, candidates: list[str]):
        self.job_id = job_id
        self.candidates = list(candidates)
        super().__init__(
            f"Job {job_id} completed but no download URLs were found",
            detail=f"Tried file names: {', '.join(self.candidates) or '(none)'}",
        )


class BatchJobFailedError(VoiceBridgeError):
    """The provider reported the batch job as failed."""

    def __init__(self, job_id: str, detail: str | None = None):
        self.job_id = job_id
        super().__init__(f"Batch job {job_id} failed", detail)
