"""
Phrase sets for spoken / on-screen coaching feedback.

This module contains the correction phrases per muscle group, the
motivational phrases spoken after a completed repetition, the instruction
templates used at session boundaries, and the strategies that pick one
phrase from a set.
"""

from typing import Optional, Sequence

import numpy as np


# Correction phrases keyed by muscle group
CORRECTION_PHRASES: dict[str, list[str]] = {
    "shoulders": [
        "Keep your shoulders relaxed and down",
        "Square your shoulders",
        "Don't hunch your shoulders",
    ],
    "arms": [
        "Straighten your arms",
        "Bend your arms more",
        "Keep your arms at shoulder level",
    ],
    "core": [
        "Engage your core",
        "Keep your back straight",
        "Don't arch your back",
    ],
    "legs": [
        "Bend your knees slightly",
        "Keep your legs straight",
        "Don't lock your knees",
    ],
    "back": [
        "Keep your back straight",
        "Don't round your back",
        "Engage your back muscles",
    ],
    "neck": [
        "Keep your neck neutral",
        "Don't tilt your head",
        "Look straight ahead",
    ],
}

DEFAULT_CORRECTION_PHRASES: list[str] = ["Adjust your position"]

# Spoken when a repetition completes (return → rest)
MOTIVATIONAL_PHRASES: list[str] = [
    "Great job!",
    "Keep it up!",
    "You're doing amazing!",
    "Stay strong!",
    "Excellent form!",
    "You've got this!",
    "Keep pushing!",
    "Fantastic work!",
]

START_INSTRUCTION = "Let's do {exercise_name}. Ready? Let's begin!"
SET_COMPLETE_INSTRUCTION = "That's {count} reps. Set complete, great work!"


def correction_phrases_for(muscle_group: str) -> list[str]:
    """Phrase set for *muscle_group*, falling back to a generic prompt."""
    return CORRECTION_PHRASES.get(muscle_group, DEFAULT_CORRECTION_PHRASES)


def format_start_instruction(exercise_name: str) -> str:
    return START_INSTRUCTION.format(exercise_name=exercise_name)


def format_set_complete(count: int) -> str:
    return SET_COMPLETE_INSTRUCTION.format(count=count)


# ============================================================================
# Phrase selection strategies
# ============================================================================

class PhraseSelector:
    """Strategy for choosing one phrase out of a set."""

    def select(self, key: str, phrases: Sequence[str]) -> str:
        raise NotImplementedError

    def reset(self) -> None:
        """Forget any selection state (called when a session starts)."""


class RotatingPhraseSelector(PhraseSelector):
    """Cycle through each phrase set in order, one cursor per key."""

    def __init__(self):
        self._cursors: dict[str, int] = {}

    def select(self, key: str, phrases: Sequence[str]) -> str:
        if not phrases:
            raise ValueError(f"Empty phrase set for '{key}'")
        cursor = self._cursors.get(key, 0)
        self._cursors[key] = cursor + 1
        return phrases[cursor % len(phrases)]

    def reset(self) -> None:
        self._cursors.clear()


class SeededPhraseSelector(PhraseSelector):
    """Uniform random choice from a seeded generator (reproducible)."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def select(self, key: str, phrases: Sequence[str]) -> str:
        if not phrases:
            raise ValueError(f"Empty phrase set for '{key}'")
        return phrases[int(self._rng.integers(len(phrases)))]

    def reset(self) -> None:
        self._rng = np.random.default_rng(self.seed)
