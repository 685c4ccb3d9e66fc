"""
src/sarvam/extractors.py
=========================
Response Normalization — VoiceBridge Sarvam layer

Responsibility:
    - Pull the authoritative value out of a Sarvam response whose shape
      varies between API versions, using ordered lists of extractor
      functions (first non-empty match wins)
    - Collect pre-signed download URLs from arbitrarily nested payloads
    - Classify provider error bodies into the recoverable error kinds
      (duration ceiling, same source/target language)

This module does NOT:
    - Perform HTTP requests
    - Decide what to do with a classified error (orchestrator's job)
"""

import json
import logging
import re
from typing import Any, Callable, Iterable

from src.errors import (
    DurationExceededError,
    MalformedResponseError,
    RemoteServiceError,
    SameLanguageError,
)

logger = logging.getLogger("voicebridge.sarvam.extractors")

Extractor = Callable[[Any], Any]


# ---------------------------------------------------------------------------
# Generic helpers
# ---------------------------------------------------------------------------


def _path(*keys: str) -> Extractor:
    """Build an extractor that walks nested dict keys, returning None on a miss."""

    def extract(body: Any) -> Any:
        node = body
        for key in keys:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    extract.__name__ = "path:" + ".".join(keys)
    return extract


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return bool(value)
    return True


def first_match(body: Any, extractors: Iterable[Extractor]) -> Any:
    """
    Return the first non-empty value produced by *extractors*, in order.

    Extractors that raise on an unexpected shape are treated as misses.
    Returns None when nothing matches.
    """
    for extractor in extractors:
        try:
            value = extractor(body)
        except (KeyError, IndexError, TypeError, AttributeError):
            continue
        if _is_present(value):
            return value
    return None


def has_field(body: Any, extractors: Iterable[Extractor]) -> bool:
    """True when any extractor finds a value at all, blank strings included."""
    for extractor in extractors:
        try:
            value = extractor(body)
        except (KeyError, IndexError, TypeError, AttributeError):
            continue
        if value is not None:
            return True
    return False


def require_match(operation: str, body: Any, extractors: Iterable[Extractor]) -> Any:
    """Like first_match, but raise MalformedResponseError when nothing matches."""
    value = first_match(body, extractors)
    if value is None:
        raise MalformedResponseError(operation, body)
    return value


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------


def _joined_list_transcripts(body: Any) -> str | None:
    """Batch results are sometimes a list of per-file transcripts."""
    if not isinstance(body, list):
        return None
    parts = []
    for entry in body:
        if isinstance(entry, dict):
            parts.append(entry.get("transcript") or entry.get("text") or "")
    return " ".join(p.strip() for p in parts if p and p.strip()) or None


TRANSCRIPT_EXTRACTORS: tuple[Extractor, ...] = (
    _path("transcript"),
    _path("text"),
    _path("data", "text"),
    _path("result", "text"),
    _joined_list_transcripts,
)

LANGUAGE_CODE_EXTRACTORS: tuple[Extractor, ...] = (
    _path("language_code"),
    _path("data", "language_code"),
)


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

TRANSLATION_EXTRACTORS: tuple[Extractor, ...] = (
    _path("translated_text"),
    _path("text"),
    _path("data", "translated_text"),
)


# ---------------------------------------------------------------------------
# Text-to-speech
# ---------------------------------------------------------------------------


def _first_audio(body: Any) -> Any:
    audios = body.get("audios") if isinstance(body, dict) else None
    if isinstance(audios, list) and audios:
        return audios[0]
    return None


AUDIO_EXTRACTORS: tuple[Extractor, ...] = (
    _first_audio,
    _path("audio"),
    _path("base64"),
)


# ---------------------------------------------------------------------------
# Batch job upload target
# ---------------------------------------------------------------------------


def upload_url_extractors(file_name: str) -> tuple[Extractor, ...]:
    """
    Extractors for the three upload-files response shapes:
        { "upload_urls": { "<file>": { "file_url": "..." } } }
        { "files": [ { "upload_url": "..." } ] }
        [ { "upload_url": "..." } ]
    """

    def from_upload_urls(body: Any) -> Any:
        return body["upload_urls"][file_name]["file_url"]

    def from_files(body: Any) -> Any:
        files = body if isinstance(body, list) else body.get("files")
        return files[0]["upload_url"]

    return (from_upload_urls, from_files)


# ---------------------------------------------------------------------------
# Download URLs
# ---------------------------------------------------------------------------

_NESTED_URL_KEYS = ("download_url", "file_url", "url", "sas_url")


def extract_urls(node: Any) -> list[str]:
    """
    Recursively collect http(s) URLs from a download-files response.

    Nested objects contribute their direct URL field (download_url,
    file_url, url, sas_url) when present; otherwise they are searched
    recursively. Order follows the payload's key order.
    """
    urls: list[str] = []
    if isinstance(node, dict):
        values: Iterable[Any] = node.values()
    elif isinstance(node, list):
        values = node
    else:
        return urls

    for value in values:
        if isinstance(value, str) and value.startswith("http"):
            urls.append(value)
        elif isinstance(value, (dict, list)):
            direct = None
            if isinstance(value, dict):
                direct = next(
                    (
                        value[key]
                        for key in _NESTED_URL_KEYS
                        if isinstance(value.get(key), str)
                    ),
                    None,
                )
            if direct and direct.startswith("http"):
                urls.append(direct)
            else:
                urls.extend(extract_urls(value))
    return urls


# ---------------------------------------------------------------------------
# Provider error classification
# ---------------------------------------------------------------------------

# Operation names whose errors can carry a recoverable signal.
STT_OPERATION = "Speech-to-Text"
TRANSLATE_OPERATION = "Translation"

# Structured error codes checked before falling back to message text.
_DURATION_CODES = {"audio_duration_exceeded", "duration_exceeded"}
_SAME_LANGUAGE_CODES = {"same_language", "source_target_same"}

_DURATION_PATTERN = re.compile(
    r"duration greater than \d+ seconds|too long|exceeds? (?:the )?maximum duration",
    re.IGNORECASE,
)
_SAME_LANGUAGE_PATTERN = re.compile(
    r"source and target languages? (?:are|is|cannot be|can ?not be|must not be) "
    r"(?:the )?same|same (?:source and target )?language",
    re.IGNORECASE,
)


def _error_code_and_message(body: str) -> tuple[str, str]:
    try:
        parsed = json.loads(body)
    except (TypeError, ValueError):
        return "", body or ""
    error = parsed.get("error") if isinstance(parsed, dict) else None
    if isinstance(error, dict):
        return str(error.get("code") or "").lower(), str(error.get("message") or body)
    if isinstance(error, str):
        return "", error
    return "", body


def classify_provider_error(
    operation: str,
    status_code: int | None,
    body: str,
) -> RemoteServiceError:
    """
    Turn a non-success provider response into the matching error instance.

    A structured ``error.code`` is preferred; the human-readable message is
    pattern-matched only when no known code is present. The duration
    ceiling is only recognised for synchronous speech-to-text and identical
    languages only for translation; other operations always get a plain
    RemoteServiceError.

    Returns:
        DurationExceededError, SameLanguageError or a plain RemoteServiceError.
    """
    code, message = _error_code_and_message(body)
    haystack = f"{message} {body}"

    if operation == STT_OPERATION and (
        code in _DURATION_CODES or _DURATION_PATTERN.search(haystack)
    ):
        logger.info("%s: provider reported the duration ceiling.", operation)
        return DurationExceededError(operation, status_code, body)

    if operation == TRANSLATE_OPERATION and (
        code in _SAME_LANGUAGE_CODES or _SAME_LANGUAGE_PATTERN.search(haystack)
    ):
        logger.info("%s: provider reported identical source and target.", operation)
        return SameLanguageError(operation, status_code, body)

    return RemoteServiceError(operation, status_code, body)
