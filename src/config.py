"""
src/config.py
==============
Configuration — VoiceBridge

Responsibility:
    - Load .env once and read every tunable from the environment
    - Collect the values into immutable settings objects that are passed
      explicitly to the Sarvam client, the orchestrator and the poller
    - Fail with ConfigurationError (never a crash) when the API key is absent

This module does NOT:
    - Perform any network I/O
    - Cache settings globally (callers decide how long settings live)
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from src.errors import ConfigurationError


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

SARVAM_API_BASE = "https://api.sarvam.ai"
SARVAM_STT_MODEL = "saaras:v3"
SARVAM_TRANSLATE_MODEL = "sarvam-translate:v1"
SARVAM_TTS_MODEL = "bulbul:v3"
SARVAM_TTS_SAMPLE_RATE = 8000
SARVAM_BATCH_LANGUAGE = "hi-IN"
REQUEST_TIMEOUT_SECONDS = 120.0

BATCH_THRESHOLD_BYTES = 1 * 1024 * 1024            # > 1 MB → batch path
BLOCK_UPLOAD_THRESHOLD_BYTES = 32 * 1024 * 1024    # > 32 MB → block upload
BLOCK_SIZE_BYTES = 4 * 1024 * 1024

TRANSLATE_MAX_CHARS = 1900   # Sarvam Translate accepts 2000 characters per request
TTS_MAX_CHARS = 490          # Bulbul accepts 500 characters per input
CHUNK_MAX_WORKERS = 4
JOB_POLL_INTERVAL_SECONDS = 10.0


# ---------------------------------------------------------------------------
# Settings objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SarvamSettings:
    """Everything the Sarvam client needs to talk to the remote services."""

    api_key: str = field(repr=False)
    api_base: str = SARVAM_API_BASE
    stt_model: str = SARVAM_STT_MODEL
    translate_model: str = SARVAM_TRANSLATE_MODEL
    tts_model: str = SARVAM_TTS_MODEL
    tts_sample_rate: int = SARVAM_TTS_SAMPLE_RATE
    batch_language_code: str = SARVAM_BATCH_LANGUAGE
    timeout: float = REQUEST_TIMEOUT_SECONDS


@dataclass(frozen=True)
class PipelineSettings:
    """Routing thresholds, chunk ceilings and polling cadence."""

    batch_threshold_bytes: int = BATCH_THRESHOLD_BYTES
    block_upload_threshold_bytes: int = BLOCK_UPLOAD_THRESHOLD_BYTES
    block_size_bytes: int = BLOCK_SIZE_BYTES
    translate_max_chars: int = TRANSLATE_MAX_CHARS
    tts_max_chars: int = TTS_MAX_CHARS
    max_workers: int = CHUNK_MAX_WORKERS
    poll_interval_seconds: float = JOB_POLL_INTERVAL_SECONDS


@dataclass(frozen=True)
class Settings:
    sarvam: SarvamSettings
    pipeline: PipelineSettings


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_settings() -> Settings:
    """
    Build Settings from the environment (after loading .env).

    Returns:
        Fully populated Settings.

    Raises:
        ConfigurationError: If SARVAM_API_KEY is not set or a numeric
            variable cannot be parsed.
    """
    load_dotenv()

    api_key = os.environ.get("SARVAM_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError(
            "SARVAM_API_KEY is not configured",
            detail="Set SARVAM_API_KEY in the environment or in .env.",
        )

    sarvam = SarvamSettings(
        api_key=api_key,
        api_base=os.environ.get("SARVAM_API_BASE", SARVAM_API_BASE).rstrip("/"),
        stt_model=os.environ.get("SARVAM_STT_MODEL", SARVAM_STT_MODEL),
        translate_model=os.environ.get("SARVAM_TRANSLATE_MODEL", SARVAM_TRANSLATE_MODEL),
        tts_model=os.environ.get("SARVAM_TTS_MODEL", SARVAM_TTS_MODEL),
        tts_sample_rate=_env_int("SARVAM_TTS_SAMPLE_RATE", SARVAM_TTS_SAMPLE_RATE),
        batch_language_code=os.environ.get("SARVAM_BATCH_LANGUAGE", SARVAM_BATCH_LANGUAGE),
        timeout=_env_float("SARVAM_TIMEOUT_SECONDS", REQUEST_TIMEOUT_SECONDS),
    )

    pipeline = PipelineSettings(
        batch_threshold_bytes=_env_int("BATCH_THRESHOLD_BYTES", BATCH_THRESHOLD_BYTES),
        block_upload_threshold_bytes=_env_int(
            "BLOCK_UPLOAD_THRESHOLD_BYTES", BLOCK_UPLOAD_THRESHOLD_BYTES
        ),
        block_size_bytes=_env_int("BLOCK_SIZE_BYTES", BLOCK_SIZE_BYTES),
        translate_max_chars=_env_int("TRANSLATE_MAX_CHARS", TRANSLATE_MAX_CHARS),
        tts_max_chars=_env_int("TTS_MAX_CHARS", TTS_MAX_CHARS),
        max_workers=_env_int("CHUNK_MAX_WORKERS", CHUNK_MAX_WORKERS),
        poll_interval_seconds=_env_float(
            "JOB_POLL_INTERVAL_SECONDS", JOB_POLL_INTERVAL_SECONDS
        ),
    )

    return Settings(sarvam=sarvam, pipeline=pipeline)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from exc
