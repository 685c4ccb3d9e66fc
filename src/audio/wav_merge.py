"""
src/audio/wav_merge.py
=======================
WAV Merger — VoiceBridge

Responsibility:
    - Join the per-chunk WAV buffers returned by text-to-speech into one
      playable WAV file
    - Keep the first buffer's canonical 44-byte RIFF/WAVE header and rewrite
      its two size fields; append every buffer's PCM payload in order

Header fields rewritten (little-endian uint32):
    - offset 4:  RIFF chunk size  = data size + 36
    - offset 40: data chunk size  = sum of payload sizes

All buffers come from the same synthesis configuration, so they share
sample rate, width and channel count. No re-encoding is done.

This module does NOT:
    - Decode, resample or transcode audio
    - Raise on bad input (merge is cosmetic; it falls back to the first buffer)
"""

import logging
import struct
from typing import Sequence

logger = logging.getLogger("voicebridge.audio.wav_merge")

WAV_HEADER_SIZE = 44
RIFF_SIZE_OFFSET = 4
DATA_SIZE_OFFSET = 40
_RIFF_REMAINDER = WAV_HEADER_SIZE - 8  # header bytes counted by the RIFF size field
_UINT32_MAX = 0xFFFFFFFF


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def merge_wav(buffers: Sequence[bytes]) -> bytes:
    """
    Merge ordered WAV buffers into one.

    Args:
        buffers: WAV files with canonical 44-byte headers, in playback order.

    Returns:
        b"" for no buffers, the buffer itself for one, otherwise the merged
        file. If any buffer is shorter than a header (or the merged size does
        not fit the 32-bit size fields), the first buffer is returned.
    """
    if not buffers:
        return b""
    if len(buffers) == 1:
        return buffers[0]

    if any(len(buf) < WAV_HEADER_SIZE for buf in buffers):
        logger.error(
            "One or more audio chunks are too short to be standard WAV files — "
            "returning the first chunk only."
        )
        return buffers[0]

    data_size = sum(len(buf) - WAV_HEADER_SIZE for buf in buffers)
    if data_size + _RIFF_REMAINDER > _UINT32_MAX:
        logger.error("Merged audio exceeds the WAV size limit — returning the first chunk only.")
        return buffers[0]

    header = bytearray(buffers[0][:WAV_HEADER_SIZE])
    struct.pack_into("<I", header, DATA_SIZE_OFFSET, data_size)
    struct.pack_into("<I", header, RIFF_SIZE_OFFSET, data_size + _RIFF_REMAINDER)

    merged = b"".join([bytes(header), *(buf[WAV_HEADER_SIZE:] for buf in buffers)])
    logger.info(
        "Merged %d WAV chunks into %.2f KB.", len(buffers), len(merged) / 1024
    )
    return merged
