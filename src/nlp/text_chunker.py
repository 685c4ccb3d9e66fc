"""
src/nlp/text_chunker.py
========================
Text Chunker — VoiceBridge

Responsibility:
    - Split long text into ordered pieces no longer than a per-provider
      character ceiling (translation and synthesis have different ceilings)
    - Prefer to cut after a sentence terminator, then at whitespace, and
      only hard-cut mid-word when a window holds no boundary at all

Guarantees:
    - Every chunk is at most ``max_length`` characters
    - Chunks are stripped; joining them with single spaces keeps every
      non-whitespace character of the input, in order, exactly once
    - Text that already fits yields exactly one chunk

This module does NOT:
    - Call any remote service
    - Decide when chunking is needed (the pipeline stages do)
"""

import logging
import re

from src.models import TextChunk

logger = logging.getLogger("voicebridge.nlp.text_chunker")

# Sentence terminators (Latin + Devanagari danda / double danda) followed by
# whitespace or end of text, or a bare newline.
_SENTENCE_END = re.compile(r"[.!?।॥](?=\s|$)|\n")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def chunk_text(text: str, max_length: int) -> list[TextChunk]:
    """
    Split *text* into TextChunks of at most *max_length* characters.

    Args:
        text:       Input text (any script).
        max_length: Maximum characters per chunk (>= 1).

    Returns:
        Ordered chunks with indices 0..n-1. Blank input yields [].

    Raises:
        ValueError: If max_length < 1.
    """
    if max_length < 1:
        raise ValueError(f"max_length must be >= 1, got {max_length}")

    stripped = text.strip()
    if not stripped:
        return []
    if len(stripped) <= max_length:
        return [TextChunk(index=0, text=stripped)]

    chunks: list[TextChunk] = []
    pos = 0
    n = len(stripped)

    while pos < n:
        # Skip whitespace left over from the previous cut
        while pos < n and stripped[pos].isspace():
            pos += 1
        if pos >= n:
            break

        if n - pos <= max_length:
            end = n
        else:
            end = _find_split(stripped, pos, max_length)

        piece = stripped[pos:end].strip()
        if piece:
            chunks.append(TextChunk(index=len(chunks), text=piece))
        pos = end

    logger.debug(
        "Chunked %d chars into %d piece(s) (max %d).", len(stripped), len(chunks), max_length
    )
    return chunks


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _find_split(text: str, start: int, max_length: int) -> int:
    """
    Return the exclusive end index of the chunk starting at *start*.

    Always returns a value in (start, start + max_length].
    """
    limit = start + max_length

    # The window ends exactly on a word boundary
    if text[limit].isspace():
        return limit

    # Last sentence end inside the window; search two chars past the window so
    # the lookahead never hits an artificial end of string.
    sentence_end = -1
    for match in _SENTENCE_END.finditer(text, start, min(limit + 2, len(text))):
        if match.end() <= limit:
            sentence_end = match.end()

    if sentence_end - start >= max_length // 2:
        return sentence_end

    space_cut = _last_whitespace(text, start, limit)
    if space_cut > start:
        return space_cut

    if sentence_end > start:
        return sentence_end

    return limit


def _last_whitespace(text: str, start: int, limit: int) -> int:
    for i in range(limit - 1, start, -1):
        if text[i].isspace():
            return i
    return -1
