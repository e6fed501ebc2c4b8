"""
Adaptive difficulty with hysteresis.

Confidence is a short momentum counter in [-2, 2]. Stepping up needs
confidence to reach +2 *and* a live streak of at least 2; stepping down
only needs confidence to reach -2. Either step resets confidence to 0 so
a single answer can never flip the level back.
"""
from typing import NamedTuple

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 10

MIN_CONFIDENCE = -2
MAX_CONFIDENCE = 2

CONFIDENCE_UP_THRESHOLD = 2
CONFIDENCE_DOWN_THRESHOLD = -2
MIN_STREAK_FOR_INCREASE = 2


class DifficultyStep(NamedTuple):
    difficulty: int
    confidence: int


def clamp_difficulty(value: int) -> int:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(value)))


def clamp_confidence(value: int) -> int:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, int(value)))


def compute_next_difficulty(difficulty: int, correct: bool, confidence: int, streak: int) -> DifficultyStep:
    """*streak* is the post-answer streak."""
    next_confidence = confidence + 1 if correct else confidence - 1
    next_difficulty = difficulty

    if next_confidence >= CONFIDENCE_UP_THRESHOLD and streak >= MIN_STREAK_FOR_INCREASE:
        next_difficulty += 1
        next_confidence = 0
    elif next_confidence <= CONFIDENCE_DOWN_THRESHOLD:
        next_difficulty -= 1
        next_confidence = 0

    return DifficultyStep(clamp_difficulty(next_difficulty), clamp_confidence(next_confidence))
