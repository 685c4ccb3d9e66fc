# src/sarvam/__init__.py
# =======================
# Sarvam AI Layer — VoiceBridge
#
#   - client.py:       speech-to-text, translation, text-to-speech and the
#                      batch speech-to-text job API
#   - blob_storage.py: single-PUT and block-list uploads to pre-signed URLs
#   - extractors.py:   ordered response extractors + error classification
#   - speakers.py:     Bulbul voice roster and per-run speaker selection
#
# Public API:
#   SarvamClient, SpeakerSelector

from src.sarvam.client import SarvamClient  # noqa: F401
from src.sarvam.speakers import SpeakerSelector  # noqa: F401

__all__ = [
    "SarvamClient",
    "SpeakerSelector",
]
