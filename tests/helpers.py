"""
tests/helpers.py
=================
Shared offline fixtures for the VoiceBridge tests.

    - make_wav():        build a real WAV buffer with the stdlib wave module
    - make_client():     MagicMock standing in for SarvamClient
    - pipeline_settings(): PipelineSettings with test-friendly defaults
"""

import io
import wave
from unittest.mock import MagicMock

from src.config import PipelineSettings
from src.models import TranscriptionResult
from src.sarvam.client import SarvamClient


def make_wav(payload: bytes = b"\x01\x02" * 40, sample_rate: int = 8000) -> bytes:
    """Return a mono 16-bit PCM WAV file (canonical 44-byte header)."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(payload)
    return buf.getvalue()


def pipeline_settings(**overrides) -> PipelineSettings:
    values = {
        "batch_threshold_bytes": 1024 * 1024,
        "block_upload_threshold_bytes": 32 * 1024 * 1024,
        "block_size_bytes": 4 * 1024 * 1024,
        "translate_max_chars": 1900,
        "tts_max_chars": 490,
        "max_workers": 4,
        "poll_interval_seconds": 10.0,
    }
    values.update(overrides)
    return PipelineSettings(**values)


def make_client(
    transcript: str = "नमस्ते",
    language_code: str = "hi-IN",
    translation: str = "வணக்கம்",
) -> MagicMock:
    """A SarvamClient mock that succeeds on every call."""
    client = MagicMock(spec=SarvamClient)
    client.transcribe.return_value = TranscriptionResult(
        text=transcript, language_code=language_code
    )
    client.translate.return_value = translation
    client.synthesize.side_effect = lambda text, target, speaker: make_wav(
        text.encode("utf-8")[:16].ljust(16, b"\x00")
    )
    client.create_batch_job.return_value = "job-123"
    client.get_upload_target.return_value = "https://blob.example.net/in/audio.wav?sig=abc"
    return client
