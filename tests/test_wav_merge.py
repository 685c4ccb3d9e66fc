"""
tests/test_wav_merge.py
========================
WAV Merger Tests — VoiceBridge

Tests verify:
    1. Merged length = 44 + sum of payloads
    2. Size fields are rewritten and the result parses as a WAV file
    3. Payloads are concatenated in input order
    4. Fallbacks: empty input, single buffer, truncated buffers
    5. Nested merges produce the same bytes as one flat merge
"""

import io
import os
import struct
import sys
import unittest
import wave

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.audio.wav_merge import WAV_HEADER_SIZE, merge_wav
from tests.helpers import make_wav


class TestMergeWav(unittest.TestCase):

    def setUp(self):
        self.first = make_wav(b"\x01\x00" * 100)
        self.second = make_wav(b"\x02\x00" * 50)
        self.third = make_wav(b"\x03\x00" * 25)

    def test_canonical_header_size(self):
        self.assertEqual(len(self.first), WAV_HEADER_SIZE + 200)

    def test_merged_length(self):
        merged = merge_wav([self.first, self.second, self.third])
        self.assertEqual(len(merged), WAV_HEADER_SIZE + 200 + 100 + 50)

    def test_size_fields_rewritten(self):
        merged = merge_wav([self.first, self.second])
        data_size = struct.unpack_from("<I", merged, 40)[0]
        riff_size = struct.unpack_from("<I", merged, 4)[0]
        self.assertEqual(data_size, 300)
        self.assertEqual(riff_size, 300 + 36)

    def test_merged_file_is_readable(self):
        merged = merge_wav([self.first, self.second, self.third])
        with wave.open(io.BytesIO(merged), "rb") as wf:
            self.assertEqual(wf.getnframes(), 100 + 50 + 25)
            self.assertEqual(wf.getframerate(), 8000)

    def test_payload_order_preserved(self):
        merged = merge_wav([self.first, self.second, self.third])
        payload = merged[WAV_HEADER_SIZE:]
        self.assertEqual(payload, b"\x01\x00" * 100 + b"\x02\x00" * 50 + b"\x03\x00" * 25)

    def test_first_header_kept_apart_from_sizes(self):
        merged = merge_wav([self.first, self.second])
        self.assertEqual(merged[:4], self.first[:4])
        self.assertEqual(merged[8:40], self.first[8:40])

    def test_empty_input(self):
        self.assertEqual(merge_wav([]), b"")

    def test_single_buffer_returned_unchanged(self):
        self.assertIs(merge_wav([self.first]), self.first)

    def test_truncated_buffer_falls_back_to_first(self):
        merged = merge_wav([self.first, b"RIFF"])
        self.assertEqual(merged, self.first)


class TestMergeComposition(unittest.TestCase):

    def test_nested_merge_equals_flat_merge(self):
        a = make_wav(b"\x01\x00" * 30)
        b = make_wav(b"\x02\x00" * 20)
        c = make_wav(b"\x03\x00" * 10)

        nested = merge_wav([merge_wav([a, b]), c])
        flat = merge_wav([a, b, c])

        self.assertEqual(nested, flat)
        self.assertEqual(struct.unpack_from("<I", nested, 40)[0], 120)
        self.assertEqual(struct.unpack_from("<I", nested, 4)[0], 120 + 36)

    def test_merge_into_tail(self):
        a = make_wav(b"\x01\x00" * 30)
        b = make_wav(b"\x02\x00" * 20)
        c = make_wav(b"\x03\x00" * 10)
        self.assertEqual(merge_wav([a, merge_wav([b, c])]), merge_wav([a, b, c]))


if __name__ == "__main__":
    unittest.main()
