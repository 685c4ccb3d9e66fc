"""
src/job_poller.py
==================
Job Poller — VoiceBridge (batch path completion)

Responsibility:
    - Observe the state of a batch speech-to-text job (never mutate it)
    - On Completed: locate the result file, download the transcript and run
      the same translate → synthesize → merge stages as the fast path
    - On Failed: report the provider's failure detail
    - Otherwise: report "processing"
    - Offer a cooperative wait loop (asyncio) that re-checks at a fixed
      interval until a terminal state is reached

Result file lookup:
    1. Output file names listed under the job's 'Success' details
    2. Otherwise guessed names: "<stem>.json", then the original file name
    Each candidate is tried in order; a candidate that errors or yields no
    URLs is skipped. Only when all are exhausted does the check fail.

This module does NOT:
    - Create, upload or start jobs (src.pipeline does)
    - Cancel remote jobs — abandoning a poll leaves the job to finish
    - Enforce a retry cap or overall timeout
"""

import asyncio
import logging
from pathlib import PurePosixPath
from typing import Any, Awaitable, Callable

from src.config import PipelineSettings
from src.errors import (
    BatchJobFailedError,
    EmptyTranscriptError,
    NoDownloadTargetsError,
    VoiceBridgeError,
)
from src.languages import DEFAULT_SOURCE_LANGUAGE
from src.models import JobState, JobStatus, PollResult, PollStatus, TranscriptionResult
from src.sarvam.client import SarvamClient
from src.sarvam.extractors import LANGUAGE_CODE_EXTRACTORS, TRANSCRIPT_EXTRACTORS, first_match
from src.sarvam.speakers import SpeakerSelector
from src.stages import translate_and_voice

logger = logging.getLogger("voicebridge.job_poller")


class JobPoller:
    """Checks batch jobs and finishes the pipeline once they complete."""

    def __init__(
        self,
        client: SarvamClient,
        settings: PipelineSettings,
        speaker_selector: SpeakerSelector | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._client = client
        self._settings = settings
        self._speakers = speaker_selector or SpeakerSelector()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check(self, job_id: str, file_name: str, target_language: str) -> PollResult:
        """
        Query the job once and, if it has completed, finish the pipeline.

        Args:
            job_id:          Batch job identifier.
            file_name:       Name the audio was uploaded under.
            target_language: Target locale for translation and speech.

        Returns:
            PollResult — processing, completed (with the PipelineResult) or
            failed (with error detail). Failures while finishing a
            completed job are reported as failed, never as processing.

        Raises:
            VoiceBridgeError: If the status query itself fails.
        """
        status = self._client.poll_job_status(job_id)

        if status.state is JobState.FAILED:
            error = BatchJobFailedError(job_id, status.error)
            logger.error("%s: %s", error.message, status.error)
            return PollResult(
                status=PollStatus.FAILED,
                job_state=status.raw_state,
                error=error.message,
                details=status.error,
            )

        if status.state is not JobState.COMPLETED:
            return PollResult(status=PollStatus.PROCESSING, job_state=status.raw_state)

        try:
            transcript = self._download_transcript(status, file_name)
            speaker = self._speakers.choose()
            result = translate_and_voice(
                self._client, transcript, target_language, speaker, self._settings
            )
        except VoiceBridgeError as exc:
            logger.error("Completing batch job %s failed: %s", job_id, exc)
            return PollResult(
                status=PollStatus.FAILED,
                job_state=status.raw_state,
                error=exc.message,
                details=exc.detail,
            )

        logger.info("Batch job %s finished — result ready.", job_id)
        return PollResult(
            status=PollStatus.COMPLETED,
            job_state=status.raw_state,
            result=result,
        )

    async def wait(self, job_id: str, file_name: str, target_language: str) -> PollResult:
        """
        Re-check the job every ``poll_interval_seconds`` until it is terminal.

        Blocking HTTP calls run in a worker thread so the event loop stays
        free. Cancel the awaiting task to abandon polling; the remote job is
        not cancelled.
        """
        attempt = 0
        while True:
            attempt += 1
            outcome = await asyncio.to_thread(self.check, job_id, file_name, target_language)
            if outcome.is_terminal:
                logger.info(
                    "Job %s reached %s after %d check(s).",
                    job_id,
                    outcome.status.value,
                    attempt,
                )
                return outcome
            logger.debug(
                "Job %s still %s — checking again in %.0fs.",
                job_id,
                outcome.job_state,
                self._settings.poll_interval_seconds,
            )
            await self._sleep(self._settings.poll_interval_seconds)

    # ------------------------------------------------------------------
    # Result retrieval
    # ------------------------------------------------------------------

    def _download_transcript(self, status: JobStatus, file_name: str) -> TranscriptionResult:
        candidates = candidate_result_files(status, file_name)
        logger.info("Attempting to download result files: %s", candidates)

        urls = self._find_download_targets(status.job_id, candidates)
        body = self._fetch_first(urls)

        text = first_match(body, TRANSCRIPT_EXTRACTORS)
        if not text or not str(text).strip():
            raise EmptyTranscriptError("Transcript not found in job results.")
        language = first_match(body, LANGUAGE_CODE_EXTRACTORS) or DEFAULT_SOURCE_LANGUAGE
        return TranscriptionResult(text=str(text).strip(), language_code=str(language))

    def _find_download_targets(self, job_id: str, candidates: list[str]) -> list[str]:
        for candidate in candidates:
            try:
                urls = self._client.get_result_download_targets(job_id, candidate)
            except VoiceBridgeError as exc:
                logger.warning("File name '%s' failed: %s", candidate, exc)
                continue
            if urls:
                return urls
        raise NoDownloadTargetsError(job_id, candidates)

    def _fetch_first(self, urls: list[str]) -> Any:
        last_error: VoiceBridgeError | None = None
        for url in urls:
            try:
                return self._client.fetch_result(url)
            except VoiceBridgeError as exc:
                logger.warning("Fetching job result failed: %s", exc)
                last_error = exc
        # urls is never empty here, so last_error is set
        raise last_error  # type: ignore[misc]


def candidate_result_files(status: JobStatus, file_name: str) -> list[str]:
    """Explicit successful outputs first; otherwise names guessed from *file_name*."""
    explicit = status.successful_output_files()
    if explicit:
        return explicit
    stem = PurePosixPath(file_name).stem or file_name
    guesses = [f"{stem}.json", file_name]
    return list(dict.fromkeys(guesses))
