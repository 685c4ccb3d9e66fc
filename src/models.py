"""
src/models.py
==============
Domain types — VoiceBridge

Responsibility:
    - Define the records that flow between the Sarvam client, the text
      chunker, the WAV merger, the orchestrator and the job poller
    - Provide the JSON shapes returned to the front-end (camelCase keys)

This module does NOT:
    - Perform I/O or validation of audio content
    - Hold any state that outlives a single pipeline run
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Inputs and intermediate results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AudioInput:
    """A captured clip: raw bytes plus its declared container type."""

    data: bytes = field(repr=False)
    mime_type: str = "audio/wav"
    file_name: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def upload_name(self) -> str:
        return self.file_name or "audio.wav"


@dataclass(frozen=True)
class TranscriptionResult:
    """Speech-to-text output (source text + detected language)."""

    text: str
    language_code: str


@dataclass(frozen=True)
class SpeakerProfile:
    """A synthetic voice identity, fixed for every chunk of one run."""

    name: str
    gender: str  # "Female" | "Male"
    pace: float


@dataclass(frozen=True)
class TextChunk:
    index: int
    text: str


@dataclass(frozen=True)
class AudioChunk:
    index: int
    data: bytes = field(repr=False)


# ---------------------------------------------------------------------------
# Batch jobs
# ---------------------------------------------------------------------------


class JobState(str, Enum):
    """Lifecycle of a Sarvam batch transcription job."""

    QUEUED = "Queued"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)

    @classmethod
    def from_provider(cls, raw_state: str | None) -> "JobState":
        """Map a provider job_state string onto the four lifecycle states."""
        normalized = (raw_state or "").strip().lower()
        if normalized in ("completed", "complete", "succeeded", "success"):
            return cls.COMPLETED
        if normalized in ("failed", "failure", "error"):
            return cls.FAILED
        if normalized in ("running", "processing", "inprogress", "in_progress"):
            return cls.RUNNING
        # Accepted / Pending / Queued / anything unknown is non-terminal
        return cls.QUEUED


@dataclass(frozen=True)
class JobStatus:
    """One observation of a batch job's remote state."""

    job_id: str
    state: JobState
    raw_state: str | None = None
    details: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    def successful_output_files(self) -> list[str]:
        """File names of every output listed under a 'Success' job detail."""
        names: list[str] = []
        for detail in self.details:
            if not isinstance(detail, dict) or detail.get("state") != "Success":
                continue
            outputs = detail.get("outputs")
            if not isinstance(outputs, list):
                continue
            for output in outputs:
                if isinstance(output, dict) and output.get("file_name"):
                    names.append(output["file_name"])
        return names


@dataclass(frozen=True)
class BatchJob:
    """Handle returned to the caller when a run is routed to the batch path."""

    job_id: str
    file_name: str
    upload_url: str | None = field(default=None, repr=False)
    state: JobState = JobState.QUEUED

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "fileName": self.file_name,
            "status": "processing",
            "message": "Long audio detected. Processing started...",
        }


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PipelineResult:
    """Terminal output of a successful run (fast path or batch path)."""

    original_text: str
    translated_text: str
    audio: bytes = field(repr=False)
    warning: str | None = None
    source_language: str | None = None
    speaker: SpeakerProfile | None = None

    @property
    def audio_base64(self) -> str:
        return base64.b64encode(self.audio).decode("ascii")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "originalText": self.original_text,
            "translatedText": self.translated_text,
            "audioBase64": self.audio_base64,
        }
        if self.warning:
            payload["warning"] = self.warning
        return payload


class PollStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PollResult:
    """Outcome of one status check of a batch job."""

    status: PollStatus
    job_state: str | None = None
    result: PipelineResult | None = None
    error: str | None = None
    details: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not PollStatus.PROCESSING

    def to_dict(self) -> dict[str, Any]:
        if self.status is PollStatus.COMPLETED and self.result is not None:
            return {"status": self.status.value, **self.result.to_dict()}
        if self.status is PollStatus.FAILED:
            payload: dict[str, Any] = {
                "status": self.status.value,
                "error": self.error or "Batch job failed",
            }
            if self.details:
                payload["details"] = self.details
            return payload
        return {"status": self.status.value, "job_state": self.job_state}
