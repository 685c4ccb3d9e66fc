# src/audio/__init__.py
# ======================
# Audio Processing Layer — VoiceBridge
#
#   - wav_merge.py: join per-chunk WAV buffers from text-to-speech into one
#                   playable file by rewriting the RIFF/WAVE size fields
#
# No decoding or transcoding happens here.

from src.audio.wav_merge import merge_wav  # noqa: F401

__all__ = ["merge_wav"]
