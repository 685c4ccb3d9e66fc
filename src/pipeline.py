"""
src/pipeline.py
================
Pipeline Orchestrator — VoiceBridge

Responsibility:
    1. Route each clip to the fast path or the batch path
    2. Fast path: transcribe → translate → synthesize → merge → result
    3. Batch path: create job → upload audio → start job → return a handle
       (the job poller in src.job_poller finishes the run)
    4. Support the direct-upload bypass where the caller uploads the audio
       to blob storage itself and only asks us to initiate/start the job

Routing (evaluated once, in order):
    - Payload larger than ``batch_threshold_bytes`` → batch path; the
      synchronous transcribe call is never made
    - Otherwise try synchronous transcription; a DurationExceededError
      from the provider downgrades the run to the batch path, reusing the
      already-buffered bytes

Payload size is a cheap proxy for duration but is unreliable for
compressed codecs, so the provider's own rejection is the authoritative
second check.

This layer MUST NOT:
    - Parse provider responses (src.sarvam owns that)
    - Hold state across runs — every run is independent
"""

import logging

from src.audio.wav_merge import merge_wav
from src.config import PipelineSettings
from src.errors import DurationExceededError, EmptyTranscriptError
from src.models import AudioInput, BatchJob, JobState, PipelineResult, TranscriptionResult
from src.sarvam.client import SarvamClient
from src.sarvam.speakers import SpeakerSelector
from src.stages import (
    PipelineStage,
    StageListener,
    notify_stage,
    synthesize_text,
    translate_and_voice,
)

logger = logging.getLogger("voicebridge.pipeline")


class PipelineOrchestrator:
    """Entry point for one speech-to-speech translation run."""

    def __init__(
        self,
        client: SarvamClient,
        settings: PipelineSettings,
        speaker_selector: SpeakerSelector | None = None,
    ):
        self._client = client
        self._settings = settings
        self._speakers = speaker_selector or SpeakerSelector()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        audio: AudioInput,
        target_language: str,
        on_stage: StageListener | None = None,
    ) -> PipelineResult | BatchJob:
        """
        Translate one spoken clip into *target_language*.

        Args:
            audio:           Captured clip.
            target_language: Target locale (e.g. "ta-IN").
            on_stage:        Optional callback notified on every stage entry.

        Returns:
            PipelineResult for the fast path, or a BatchJob handle to be
            polled when the clip was routed to the batch path.

        Raises:
            EmptyTranscriptError, EmptySynthesisError, RemoteServiceError,
            MalformedResponseError: Fatal failures of the fast path.
        """
        notify_stage(on_stage, PipelineStage.ROUTING)
        logger.info(
            "Routing %s (%.2f KB, %s) → %s",
            audio.upload_name,
            audio.size / 1024,
            audio.mime_type,
            target_language,
        )

        if audio.size > self._settings.batch_threshold_bytes:
            logger.info(
                "Payload exceeds %d bytes — using the batch path.",
                self._settings.batch_threshold_bytes,
            )
            return self._run_batch(audio, on_stage)

        notify_stage(on_stage, PipelineStage.FAST_PATH)
        notify_stage(on_stage, PipelineStage.TRANSCRIBING)
        try:
            transcript = self._client.transcribe(audio)
        except DurationExceededError:
            logger.info(
                "Speech-to-text rejected the clip as too long — falling back to the batch path."
            )
            return self._run_batch(audio, on_stage)

        return self._finish_fast_path(transcript, target_language, on_stage)

    def initiate_upload(self, file_name: str) -> BatchJob:
        """
        Create a batch job and return its upload URL without uploading.

        Used when the caller uploads oversized audio to blob storage
        directly and later calls start_uploaded_job().
        """
        job_id = self._client.create_batch_job(file_name)
        upload_url = self._client.get_upload_target(job_id, file_name)
        return BatchJob(job_id=job_id, file_name=file_name, upload_url=upload_url)

    def start_uploaded_job(self, job_id: str, file_name: str = "") -> BatchJob:
        """Start a job whose audio the caller has already uploaded."""
        self._client.start_batch_job(job_id)
        return BatchJob(job_id=job_id, file_name=file_name, state=JobState.QUEUED)

    def synthesize_text(self, text: str, target_language: str) -> bytes:
        """
        Voice arbitrary text in *target_language* with a random speaker.

        Long text is chunked under the synthesis ceiling and merged.
        """
        speaker = self._speakers.choose()
        chunks = synthesize_text(self._client, text, target_language, speaker, self._settings)
        return merge_wav([chunk.data for chunk in chunks])

    # ------------------------------------------------------------------
    # Fast path
    # ------------------------------------------------------------------

    def _finish_fast_path(
        self,
        transcript: TranscriptionResult,
        target_language: str,
        on_stage: StageListener | None,
    ) -> PipelineResult:
        if not transcript.text.strip():
            raise EmptyTranscriptError()

        logger.info(
            "Transcribed %d chars (detected %s).",
            len(transcript.text),
            transcript.language_code,
        )

        # One voice per run: every chunk below is synthesized with it
        speaker = self._speakers.choose()

        result = translate_and_voice(
            self._client,
            transcript,
            target_language,
            speaker,
            self._settings,
            on_stage=on_stage,
        )
        notify_stage(on_stage, PipelineStage.DONE)
        return result

    # ------------------------------------------------------------------
    # Batch path
    # ------------------------------------------------------------------

    def _run_batch(self, audio: AudioInput, on_stage: StageListener | None) -> BatchJob:
        notify_stage(on_stage, PipelineStage.BATCH_PATH)
        file_name = audio.upload_name

        notify_stage(on_stage, PipelineStage.INITIATING)
        job = self.initiate_upload(file_name)

        notify_stage(on_stage, PipelineStage.AWAITING_UPLOAD)
        if audio.size > self._settings.block_upload_threshold_bytes:
            self._client.upload_blob_in_blocks(
                job.upload_url, audio.data, audio.mime_type, self._settings.block_size_bytes
            )
        else:
            self._client.upload_blob(job.upload_url, audio.data, audio.mime_type)

        notify_stage(on_stage, PipelineStage.STARTED)
        self._client.start_batch_job(job.job_id)
        logger.info("Batch job %s started for %s.", job.job_id, file_name)

        return BatchJob(job_id=job.job_id, file_name=file_name, state=JobState.QUEUED)
