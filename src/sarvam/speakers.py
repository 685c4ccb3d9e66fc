"""
src/sarvam/speakers.py
=======================
Speaker Selection — VoiceBridge Sarvam layer

Responsibility:
    - Hold the Bulbul voice roster, split into natural-sounding female and
      male subsets
    - Pick one SpeakerProfile (voice + pace) per pipeline run

The random source is injectable so tests can seed it and assert that the
same profile is used for every chunk of a run.
"""

import logging
import random

from src.models import SpeakerProfile

logger = logging.getLogger("voicebridge.sarvam.speakers")


FEMALE_SPEAKERS: tuple[str, ...] = (
    "priya",
    "shreya",
    "sophia",
    "amelia",
    "ritu",
    "neha",
    "ishita",
    "kavya",
)

MALE_SPEAKERS: tuple[str, ...] = ("aditya", "rahul", "kabir")

# Pace ranges (inclusive): female voices slightly quicker, male voices
# slightly slower for deeper emphasis.
FEMALE_PACE_RANGE: tuple[float, float] = (1.00, 1.15)
MALE_PACE_RANGE: tuple[float, float] = (0.95, 1.05)


class SpeakerSelector:
    """Chooses a random voice and pace; seed the rng for determinism."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def choose(self) -> SpeakerProfile:
        if self._rng.random() > 0.5:
            name = self._rng.choice(FEMALE_SPEAKERS)
            low, high = FEMALE_PACE_RANGE
            gender = "Female"
        else:
            name = self._rng.choice(MALE_SPEAKERS)
            low, high = MALE_PACE_RANGE
            gender = "Male"

        pace = round(low + self._rng.random() * (high - low), 2)
        profile = SpeakerProfile(name=name, gender=gender, pace=pace)
        logger.info("Selected speaker: %s (%s), pace %.2f", name, gender, pace)
        return profile
