MAX_MULTIPLIER = 2.0
STREAK_BONUS = 0.1
WRONG_PENALTY = -5


def calculate_score(difficulty: int, streak: int, correct: bool) -> int:
    """
    Score delta for one answer.

    *streak* is the streak after this answer was counted, so the first
    correct answer already earns a 1.1x multiplier. Wrong answers cost a
    flat penalty; the store keeps total_score from going below zero.
    """
    if not correct:
        return WRONG_PENALTY

    base = difficulty * 10
    multiplier = min(1 + streak * STREAK_BONUS, MAX_MULTIPLIER)
    return int(round(base * multiplier))
