from brainbolt.progression.adaptive import compute_next_difficulty


def test_two_correct_answers_step_up_once_and_reset_confidence():
    first = compute_next_difficulty(3, True, 0, streak=1)
    assert first == (3, 1)

    second = compute_next_difficulty(first.difficulty, True, first.confidence, streak=2)
    assert second == (4, 0)


def test_two_wrong_answers_step_down_once_and_reset_confidence():
    first = compute_next_difficulty(5, False, 0, streak=0)
    assert first == (5, -1)

    second = compute_next_difficulty(first.difficulty, False, first.confidence, streak=0)
    assert second == (4, 0)


def test_single_answer_never_changes_difficulty_from_neutral():
    assert compute_next_difficulty(5, True, 0, streak=9).difficulty == 5
    assert compute_next_difficulty(5, False, 0, streak=0).difficulty == 5


def test_promotion_needs_a_live_streak():
    # confidence reaches +2 but the streak is only 1: hold
    step = compute_next_difficulty(4, True, 1, streak=1)
    assert step == (4, 2)

    # next correct answer with streak 2 promotes
    assert compute_next_difficulty(step.difficulty, True, step.confidence, streak=2) == (5, 0)


def test_bounds_are_clamped():
    assert compute_next_difficulty(10, True, 1, streak=5) == (10, 0)
    assert compute_next_difficulty(1, False, -1, streak=0) == (1, 0)


def test_every_transition_stays_in_range():
    for difficulty in range(1, 11):
        for confidence in range(-2, 3):
            for correct in (True, False):
                for streak in range(0, 6):
                    step = compute_next_difficulty(difficulty, correct, confidence, streak)
                    assert 1 <= step.difficulty <= 10
                    assert -2 <= step.confidence <= 2
