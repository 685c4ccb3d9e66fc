# src/nlp/__init__.py
# ====================
# Text Processing Layer — VoiceBridge
#
#   - text_chunker.py: split transcripts / translations under per-provider
#                      character ceilings at sentence or word boundaries
#
# Public API:
#   chunk_text(text, max_length) → list[TextChunk]

from src.nlp.text_chunker import chunk_text  # noqa: F401

__all__ = ["chunk_text"]
