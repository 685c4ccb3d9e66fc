"""
src/stages.py
==============
Translate → Synthesize → Merge stages — VoiceBridge

Responsibility:
    - Translate a transcript, chunking it under the translation ceiling and
      translating chunks in parallel; tolerate identical source/target
      languages by passing the transcript through with a warning
    - Synthesize the translation, chunking it under the (lower) synthesis
      ceiling and synthesizing chunks in parallel with ONE speaker profile
    - Merge the per-chunk WAV buffers into one file

Shared by the fast path (src.pipeline) and the batch completion handler
(src.job_poller), so both paths behave identically after transcription.

This module does NOT:
    - Transcribe audio or manage batch jobs
    - Retry failed remote calls
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Callable, TypeVar

from src.audio.wav_merge import merge_wav
from src.config import PipelineSettings
from src.errors import EmptySynthesisError, SameLanguageError
from src.models import AudioChunk, PipelineResult, SpeakerProfile, TextChunk, TranscriptionResult
from src.nlp.text_chunker import chunk_text
from src.sarvam.client import SarvamClient

logger = logging.getLogger("voicebridge.stages")

T = TypeVar("T")

SAME_LANGUAGE_WARNING = (
    "Source and target languages are the same; the original transcript was "
    "used without translation."
)


class PipelineStage(str, Enum):
    """States a pipeline run moves through."""

    ROUTING = "routing"
    FAST_PATH = "fast_path"
    BATCH_PATH = "batch_path"
    # Fast path
    TRANSCRIBING = "transcribing"
    TRANSLATING = "translating"
    SYNTHESIZING = "synthesizing"
    MERGING = "merging"
    DONE = "done"
    # Batch path
    INITIATING = "initiating"
    AWAITING_UPLOAD = "awaiting_upload"
    STARTED = "started"


StageListener = Callable[[PipelineStage], None]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def translate_and_voice(
    client: SarvamClient,
    transcript: TranscriptionResult,
    target_language: str,
    speaker: SpeakerProfile,
    settings: PipelineSettings,
    on_stage: StageListener | None = None,
) -> PipelineResult:
    """
    Run Translating → Synthesizing → Merging for one transcript.

    Args:
        client:          Sarvam client.
        transcript:      Source text + detected language.
        target_language: Target locale (e.g. "ta-IN").
        speaker:         Voice profile used for EVERY synthesized chunk.
        settings:        Chunk ceilings and fan-out width.
        on_stage:        Optional callback notified on each stage entry.

    Returns:
        PipelineResult with the merged audio.

    Raises:
        EmptySynthesisError: If synthesis yields no audio.
        VoiceBridgeError:    Any non-recoverable remote failure.
    """
    notify_stage(on_stage, PipelineStage.TRANSLATING)
    translated, warning = translate_text(
        client,
        transcript.text,
        target_language,
        transcript.language_code,
        speaker,
        settings,
    )

    notify_stage(on_stage, PipelineStage.SYNTHESIZING)
    audio_chunks = synthesize_text(client, translated, target_language, speaker, settings)

    notify_stage(on_stage, PipelineStage.MERGING)
    audio = merge_wav([chunk.data for chunk in audio_chunks])
    if not audio:
        raise EmptySynthesisError()

    return PipelineResult(
        original_text=transcript.text,
        translated_text=translated,
        audio=audio,
        warning=warning,
        source_language=transcript.language_code,
        speaker=speaker,
    )


def translate_text(
    client: SarvamClient,
    text: str,
    target_language: str,
    source_language: str,
    speaker: SpeakerProfile,
    settings: PipelineSettings,
) -> tuple[str, str | None]:
    """
    Translate *text*, chunking above ``settings.translate_max_chars``.

    Returns:
        (translated_text, warning). When the provider reports identical
        source and target languages the original text is returned with a
        warning instead of failing.
    """
    try:
        if len(text) <= settings.translate_max_chars:
            translated = client.translate(text, target_language, source_language, speaker.gender)
        else:
            chunks = chunk_text(text, settings.translate_max_chars)
            logger.info(
                "Transcript (%d chars) split into %d translation chunk(s).",
                len(text),
                len(chunks),
            )
            pieces = _run_parallel(
                lambda chunk: client.translate(
                    chunk.text, target_language, source_language, speaker.gender
                ),
                chunks,
                settings.max_workers,
            )
            translated = " ".join(piece.strip() for piece in pieces if piece.strip())
    except SameLanguageError as exc:
        logger.warning(
            "Source and target language identical (%s) — passing transcript through: %s",
            target_language,
            exc.body,
        )
        return text, SAME_LANGUAGE_WARNING

    return translated, None


def synthesize_text(
    client: SarvamClient,
    text: str,
    target_language: str,
    speaker: SpeakerProfile,
    settings: PipelineSettings,
) -> list[AudioChunk]:
    """
    Synthesize *text*, chunking above ``settings.tts_max_chars``.

    Every chunk is voiced with the same *speaker* so the merged audio has
    no voice or pace discontinuities.

    Returns:
        AudioChunks in text order.

    Raises:
        EmptySynthesisError: If there is nothing to synthesize or any chunk
            comes back empty.
    """
    if len(text) <= settings.tts_max_chars:
        chunks = [TextChunk(index=0, text=text.strip())] if text.strip() else []
    else:
        chunks = chunk_text(text, settings.tts_max_chars)
        logger.info(
            "Translation (%d chars) split into %d synthesis chunk(s).", len(text), len(chunks)
        )

    if not chunks:
        raise EmptySynthesisError("No text to synthesize.")

    buffers = _run_parallel(
        lambda chunk: client.synthesize(chunk.text, target_language, speaker),
        chunks,
        settings.max_workers,
    )

    audio_chunks = [AudioChunk(index=chunk.index, data=buf) for chunk, buf in zip(chunks, buffers)]
    empty = [c.index for c in audio_chunks if not c.data]
    if empty:
        raise EmptySynthesisError(f"Empty audio for chunk(s): {empty}")
    return audio_chunks


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_parallel(
    func: Callable[[TextChunk], T],
    chunks: list[TextChunk],
    max_workers: int,
) -> list[T]:
    """
    Apply *func* to every chunk concurrently; results come back in chunk
    order. The first failure is re-raised once all submitted calls settle.
    """
    if len(chunks) == 1:
        return [func(chunks[0])]

    results: list[T] = [None] * len(chunks)  # type: ignore[list-item]
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(chunks)))) as executor:
        futures = {executor.submit(func, chunk): position for position, chunk in enumerate(chunks)}
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    return results


def notify_stage(listener: StageListener | None, stage: PipelineStage) -> None:
    logger.info("Stage → %s", stage.value)
    if listener is not None:
        listener(stage)
