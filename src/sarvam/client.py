"""
src/sarvam/client.py
=====================
Sarvam AI Client — VoiceBridge

Responsibility:
    - Transcribe short clips (Sarvam speech-to-text, saaras model)
    - Translate text between Indian languages (Sarvam Translate)
    - Synthesize speech (Sarvam text-to-speech, bulbul model)
    - Drive the batch speech-to-text job API for long clips:
      create job → upload target → start → status → download targets
    - Upload audio to the pre-signed blob URL of a batch job
    - Normalize every response through the ordered extractors in
      src.sarvam.extractors

This module does NOT:
    - Decide between the fast path and the batch path
    - Chunk text or merge audio
    - Retry failed requests
"""

import base64
import binascii
import logging
from typing import Any

import requests

from src.config import SarvamSettings
from src.errors import MalformedResponseError, RemoteServiceError
from src.languages import DEFAULT_SOURCE_LANGUAGE
from src.models import AudioInput, JobState, JobStatus, SpeakerProfile, TranscriptionResult
from src.sarvam import blob_storage
from src.sarvam.extractors import (
    AUDIO_EXTRACTORS,
    LANGUAGE_CODE_EXTRACTORS,
    TRANSCRIPT_EXTRACTORS,
    TRANSLATION_EXTRACTORS,
    STT_OPERATION,
    TRANSLATE_OPERATION,
    classify_provider_error,
    extract_urls,
    first_match,
    has_field,
    require_match,
    upload_url_extractors,
)

logger = logging.getLogger("voicebridge.sarvam.client")


# ---------------------------------------------------------------------------
# Endpoints (relative to SarvamSettings.api_base)
# ---------------------------------------------------------------------------

STT_PATH = "/speech-to-text"
TRANSLATE_PATH = "/translate"
TTS_PATH = "/text-to-speech"
JOB_PATH = "/speech-to-text/job/v1"
JOB_UPLOAD_PATH = f"{JOB_PATH}/upload-files"
JOB_DOWNLOAD_PATH = f"{JOB_PATH}/download-files"

AUTH_HEADER = "api-subscription-key"


class SarvamClient:
    """Typed wrappers around the Sarvam REST endpoints."""

    def __init__(
        self,
        settings: SarvamSettings,
        session: requests.Session | None = None,
    ):
        self._settings = settings
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # Synchronous capabilities
    # ------------------------------------------------------------------

    def transcribe(self, audio: AudioInput) -> TranscriptionResult:
        """
        Transcribe a short clip with the synchronous speech-to-text API.

        Args:
            audio: Captured clip (bytes + declared MIME type).

        Returns:
            TranscriptionResult with the source text and detected language
            (defaults to hi-IN when the response omits it).

        Raises:
            DurationExceededError: The clip exceeds the synchronous ceiling.
            RemoteServiceError:    Any other non-success response.
            MalformedResponseError: A success response without any transcript field.
                A present but blank transcript yields empty text instead.
        """
        files = {"file": (audio.upload_name, audio.data, audio.mime_type)}
        data = {"model": self._settings.stt_model}

        logger.info(
            "Sending %.2f KB (%s) to Sarvam speech-to-text.",
            audio.size / 1024,
            audio.mime_type,
        )
        body = self._post(STT_OPERATION, STT_PATH, files=files, data=data)

        text = first_match(body, TRANSCRIPT_EXTRACTORS)
        if text is None:
            # Blank transcript field: a silent clip, not a malformed response
            if not has_field(body, TRANSCRIPT_EXTRACTORS):
                raise MalformedResponseError(STT_OPERATION, body)
            text = ""
        language = first_match(body, LANGUAGE_CODE_EXTRACTORS) or DEFAULT_SOURCE_LANGUAGE
        return TranscriptionResult(text=str(text).strip(), language_code=str(language))

    def translate(
        self,
        text: str,
        target_language: str,
        source_language: str = DEFAULT_SOURCE_LANGUAGE,
        speaker_gender: str = "Male",
    ) -> str:
        """
        Translate *text* into *target_language*.

        Raises:
            SameLanguageError:      Source and target are identical.
            RemoteServiceError:     Any other non-success response.
            MalformedResponseError: No translated text in the response.
        """
        payload = {
            "input": text,
            "source_language_code": source_language,
            "target_language_code": target_language,
            "speaker_gender": speaker_gender,
            "mode": "formal",
            "model": self._settings.translate_model,
        }
        logger.debug(
            "Translating %d chars %s → %s.", len(text), source_language, target_language
        )
        body = self._post(TRANSLATE_OPERATION, TRANSLATE_PATH, json=payload)
        return str(require_match(TRANSLATE_OPERATION, body, TRANSLATION_EXTRACTORS))

    def synthesize(
        self,
        text: str,
        target_language: str,
        speaker: SpeakerProfile,
    ) -> bytes:
        """
        Synthesize *text* with the given voice and pace.

        Returns:
            One WAV container buffer (decoded from the base64 payload).

        Raises:
            RemoteServiceError: On a non-success response, or when the
                response carries no (decodable) audio payload.
        """
        payload = {
            "inputs": [text],
            "target_language_code": target_language,
            "speaker": speaker.name,
            "pace": speaker.pace,
            "speech_sample_rate": self._settings.tts_sample_rate,
            "enable_preprocessing": True,
            "model": self._settings.tts_model,
        }
        body = self._post("Text-to-Speech", TTS_PATH, json=payload)

        encoded = first_match(body, AUDIO_EXTRACTORS)
        if not isinstance(encoded, str):
            raise RemoteServiceError(
                "Text-to-Speech", 200, str(body), message="Text-to-Speech returned no audio"
            )
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise RemoteServiceError(
                "Text-to-Speech", 200, str(exc), message="Text-to-Speech returned invalid base64"
            ) from exc

    # ------------------------------------------------------------------
    # Batch job capabilities
    # ------------------------------------------------------------------

    def create_batch_job(self, file_name: str) -> str:
        """Create a batch speech-to-text job for one file and return its id."""
        payload = {
            "job_parameters": {
                "model": self._settings.stt_model,
                "files": [file_name],
                "config": {
                    "language_code": self._settings.batch_language_code,
                    "mode": "transcribe",
                },
            }
        }
        body = self._post("Initiate batch job", JOB_PATH, json=payload)
        job_id = body.get("job_id") if isinstance(body, dict) else None
        if not job_id:
            raise MalformedResponseError("Initiate batch job", body)
        logger.info("Batch job created: %s", job_id)
        return str(job_id)

    def get_upload_target(self, job_id: str, file_name: str) -> str:
        """Return the pre-signed URL the audio must be uploaded to."""
        body = self._post(
            "Get upload URL",
            JOB_UPLOAD_PATH,
            json={"job_id": job_id, "files": [file_name]},
        )
        return str(require_match("Get upload URL", body, upload_url_extractors(file_name)))

    def start_batch_job(self, job_id: str) -> None:
        self._post("Start batch job", f"{JOB_PATH}/{job_id}/start")
        logger.info("Batch job started: %s", job_id)

    def poll_job_status(self, job_id: str) -> JobStatus:
        """Query the remote job state once."""
        body = self._request("GET", "Job status", f"{JOB_PATH}/{job_id}/status")
        if not isinstance(body, dict):
            raise MalformedResponseError("Job status", body)

        raw_state = body.get("job_state")
        details = body.get("job_details")
        error = body.get("error") or body.get("error_message")
        status = JobStatus(
            job_id=job_id,
            state=JobState.from_provider(raw_state),
            raw_state=raw_state,
            details=details if isinstance(details, list) else [],
            error=str(error) if error else None,
        )
        logger.info("Job %s state: %s", job_id, raw_state)
        return status

    def get_result_download_targets(self, job_id: str, file_name: str) -> list[str]:
        """
        Return download URLs for one output file of a completed job.

        An empty list means the file name is not known to the job; callers
        should try the next candidate name.
        """
        body = self._post(
            "Get download URLs",
            JOB_DOWNLOAD_PATH,
            json={"job_id": job_id, "files": [file_name]},
        )
        urls = extract_urls(body)
        logger.info("Download URLs for %s/%s: %d", job_id, file_name, len(urls))
        return urls

    def fetch_result(self, download_url: str) -> Any:
        """Fetch a job result document from a pre-signed download URL."""
        try:
            resp = self._session.get(download_url, timeout=self._settings.timeout)
        except requests.RequestException as exc:
            raise RemoteServiceError("Fetch job result", None, str(exc)) from exc
        if not resp.ok:
            raise RemoteServiceError("Fetch job result", resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedResponseError("Fetch job result", resp.text) from exc

    # ------------------------------------------------------------------
    # Blob storage
    # ------------------------------------------------------------------

    def upload_blob(self, upload_url: str, data: bytes, mime_type: str) -> None:
        blob_storage.upload_blob(
            self._session, upload_url, data, mime_type, self._settings.timeout
        )

    def upload_blob_in_blocks(
        self,
        upload_url: str,
        data: bytes,
        mime_type: str,
        block_size: int,
    ) -> list[str]:
        return blob_storage.upload_blob_in_blocks(
            self._session,
            upload_url,
            data,
            mime_type,
            self._settings.timeout,
            block_size,
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _post(self, operation: str, path: str, **kwargs: Any) -> Any:
        return self._request("POST", operation, path, **kwargs)

    def _request(self, method: str, operation: str, path: str, **kwargs: Any) -> Any:
        headers = {AUTH_HEADER: self._settings.api_key}
        url = f"{self._settings.api_base}{path}"

        try:
            resp = self._session.request(
                method,
                url,
                headers=headers,
                timeout=self._settings.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise RemoteServiceError(operation, None, str(exc)) from exc

        if not resp.ok:
            logger.error("%s error response (%d): %s", operation, resp.status_code, resp.text)
            raise classify_provider_error(operation, resp.status_code, resp.text)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise MalformedResponseError(operation, resp.text) from exc
