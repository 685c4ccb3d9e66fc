"""
src/api/routes.py
==================
HTTP API — VoiceBridge

Responsibility:
    - POST /api/translate-audio
        * multipart/form-data (audio + targetLanguage): run the pipeline and
          return either the finished result or a batch job handle
        * application/json {"action": "initiate" | "start"}: direct-upload
          bypass for clips too large to send through this API
    - GET  /api/check-job:      one status check of a batch job
    - GET  /api/check-job/wait: wait (cooperatively) until the job is terminal
    - POST /api/tts:            voice arbitrary text
    - GET  /api/languages:      supported target languages
    - Map pipeline failures to 4xx/5xx JSON responses

Blocking pipeline work runs in a worker thread so the event loop stays free.

This module does NOT:
    - Parse provider responses or make routing decisions
    - Store jobs or results between requests
"""

import asyncio
import base64
import logging
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config import Settings, load_settings
from src.errors import ConfigurationError, VoiceBridgeError
from src.job_poller import JobPoller
from src.languages import SUPPORTED_LANGUAGES, is_supported
from src.models import AudioInput
from src.pipeline import PipelineOrchestrator
from src.sarvam.client import SarvamClient

logger = logging.getLogger("voicebridge.api")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="VoiceBridge",
    description="Speech-to-speech translation across Indian languages.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc.message)
    return JSONResponse(
        status_code=500,
        content={"error": exc.message, "details": exc.detail},
    )


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def get_client(settings: Settings = Depends(get_settings)) -> SarvamClient:
    return SarvamClient(settings.sarvam)


def get_orchestrator(
    settings: Settings = Depends(get_settings),
    client: SarvamClient = Depends(get_client),
) -> PipelineOrchestrator:
    return PipelineOrchestrator(client, settings.pipeline)


def get_poller(
    settings: Settings = Depends(get_settings),
    client: SarvamClient = Depends(get_client),
) -> JobPoller:
    return JobPoller(client, settings.pipeline)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/languages")
async def languages():
    return {
        "languages": [
            {"code": code, "name": name} for code, name in SUPPORTED_LANGUAGES.items()
        ]
    }


@app.post("/api/translate-audio")
async def translate_audio(
    request: Request,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    """
    Translate an uploaded clip, or drive the direct-upload bypass.

    Returns:
        {originalText, translatedText, audioBase64, warning?} on the fast
        path, {jobId, fileName, status: "processing", message} on the batch
        path, or the bypass responses for "initiate" / "start".
    """
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body.")
        return await _handle_upload_action(body, orchestrator)

    try:
        form = await request.form()
    except Exception:
        raise HTTPException(status_code=400, detail="No audio file provided")

    audio_file = form.get("audio")
    target_language = form.get("targetLanguage")

    if audio_file is None or isinstance(audio_file, str):
        raise HTTPException(status_code=400, detail="No audio file provided")
    if not target_language or not isinstance(target_language, str):
        raise HTTPException(status_code=400, detail="No target language provided")
    _require_supported(target_language)

    try:
        audio_bytes = await audio_file.read()
    except Exception:
        raise HTTPException(status_code=400, detail="Failed to read uploaded file.")

    audio = AudioInput(
        data=audio_bytes,
        mime_type=audio_file.content_type or "audio/wav",
        file_name=audio_file.filename or None,
    )
    logger.info("Audio received: %s (%.2f KB)", audio.upload_name, audio.size / 1024)

    try:
        outcome = await asyncio.to_thread(orchestrator.run, audio, target_language)
    except VoiceBridgeError as exc:
        logger.error("Pipeline error: %s", exc)
        return _error_response("Translation failed", exc)
    except Exception as exc:
        logger.error("Pipeline unexpected error: %s", exc, exc_info=True)
        return _error_response("Translation failed", exc)

    return JSONResponse(status_code=200, content=outcome.to_dict())


@app.get("/api/check-job")
async def check_job(
    jobId: str | None = None,
    targetLanguage: str | None = None,
    fileName: str | None = None,
    poller: JobPoller = Depends(get_poller),
):
    """One status check; finishes the pipeline when the job has completed."""
    job_id, target_language, file_name = _require_job_params(jobId, targetLanguage, fileName)

    try:
        outcome = await asyncio.to_thread(poller.check, job_id, file_name, target_language)
    except VoiceBridgeError as exc:
        logger.error("Status check failed for job %s: %s", job_id, exc)
        return _error_response("Status check failed", exc)

    return JSONResponse(status_code=200, content=outcome.to_dict())


@app.get("/api/check-job/wait")
async def wait_for_job(
    jobId: str | None = None,
    targetLanguage: str | None = None,
    fileName: str | None = None,
    poller: JobPoller = Depends(get_poller),
):
    """Hold the request open, re-checking until the job is terminal."""
    job_id, target_language, file_name = _require_job_params(jobId, targetLanguage, fileName)

    try:
        outcome = await poller.wait(job_id, file_name, target_language)
    except VoiceBridgeError as exc:
        logger.error("Waiting for job %s failed: %s", job_id, exc)
        return _error_response("Status check failed", exc)

    return JSONResponse(status_code=200, content=outcome.to_dict())


@app.post("/api/tts")
async def text_to_speech(
    request: Request,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body.")

    text = body.get("text") if isinstance(body, dict) else None
    target_language = body.get("targetLanguage") if isinstance(body, dict) else None
    if not text or not target_language:
        raise HTTPException(status_code=400, detail="Missing text or targetLanguage")
    _require_supported(target_language)

    try:
        audio = await asyncio.to_thread(orchestrator.synthesize_text, text, target_language)
    except VoiceBridgeError as exc:
        logger.error("TTS route error: %s", exc)
        return _error_response("Failed to generate TTS audio", exc)

    return {"audioBase64": base64.b64encode(audio).decode("ascii")}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _handle_upload_action(
    body: Any,
    orchestrator: PipelineOrchestrator,
) -> JSONResponse:
    action = body.get("action") if isinstance(body, dict) else None

    try:
        if action == "initiate":
            file_name = body.get("fileName")
            if not file_name:
                raise HTTPException(status_code=400, detail="Missing fileName")
            job = await asyncio.to_thread(orchestrator.initiate_upload, file_name)
            return JSONResponse(content={"jobId": job.job_id, "uploadUrl": job.upload_url})

        if action == "start":
            job_id = body.get("jobId")
            if not job_id:
                raise HTTPException(status_code=400, detail="Missing jobId")
            job = await asyncio.to_thread(
                orchestrator.start_uploaded_job, job_id, body.get("fileName") or ""
            )
            return JSONResponse(
                content={
                    "success": True,
                    "status": "processing",
                    "jobId": job.job_id,
                    "message": "Batch processing started",
                }
            )
    except VoiceBridgeError as exc:
        logger.error("Upload action '%s' failed: %s", action, exc)
        return _error_response("Translation failed", exc)

    raise HTTPException(status_code=400, detail=f"Unknown action: {action!r}")


def _require_supported(target_language: str) -> None:
    if not is_supported(target_language):
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported target language '{target_language}'. "
            f"Allowed: {', '.join(SUPPORTED_LANGUAGES)}",
        )


def _require_job_params(
    job_id: str | None,
    target_language: str | None,
    file_name: str | None,
) -> tuple[str, str, str]:
    if not job_id or not target_language or not file_name:
        raise HTTPException(
            status_code=400, detail="Missing jobId, targetLanguage, or fileName"
        )
    _require_supported(target_language)
    return job_id, target_language, file_name


def _error_response(error: str, exc: Exception) -> JSONResponse:
    details = str(exc)
    if isinstance(exc, VoiceBridgeError) and exc.detail and exc.detail not in details:
        details = f"{details} ({exc.detail})"
    return JSONResponse(status_code=500, content={"error": error, "details": details})
