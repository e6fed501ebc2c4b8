"""
Answer submission pipeline.

    rate limit -> idempotent replay -> question lookup
        -> one State Store transaction (lock, decay, version check, score,
           difficulty step, answer log, leaderboard)
        -> cache refresh -> store idempotent response

Everything before the transaction is read-only; everything after it only
touches the cache. A failure anywhere inside the transaction leaves
user_state, answer_log and the leaderboard rows as they were, apart from
a decay the version check committed (see store.mutate).
"""
import logging
from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from brainbolt.answers.log import append_answer
from brainbolt.cache import projections
from brainbolt.core.errors import QuestionNotFound, ValidationError, VersionConflict
from brainbolt.db.session import transaction
from brainbolt.leaderboard.service import upsert_leaderboard
from brainbolt.progression import store
from brainbolt.progression.adaptive import compute_next_difficulty
from brainbolt.progression.decay import is_decay_due, utcnow
from brainbolt.progression.scoring import calculate_score
from brainbolt.progression.state import StateSnapshot, as_utc
from brainbolt.questions.bank import fetch_question, get_question, is_correct_answer, to_public_dict
from brainbolt.quiz.idempotency import check_idempotency, store_idempotency
from brainbolt.quiz.rate_limit import check_rate_limit

logger = logging.getLogger(__name__)

MAX_TOKEN_LENGTH = 255


class AnswerOutcome(NamedTuple):
    correct: bool
    score_delta: int
    rank_by_score: int
    rank_by_streak: int
    answered_at: datetime


def _require_text(value, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value


def _validate_submission(user_id, question_id, answer, expected_state_version, idempotency_token) -> None:
    _require_text(user_id, "user_id")
    _require_text(question_id, "question_id")
    _require_text(answer, "answer")

    # bool is an int subclass; a JSON true must not pass as version 1
    if isinstance(expected_state_version, bool) or not isinstance(expected_state_version, int):
        raise ValidationError("Invalid state_version")
    if expected_state_version < 1:
        raise ValidationError("Invalid state_version")

    if idempotency_token is not None:
        if not isinstance(idempotency_token, str) or not idempotency_token.strip():
            raise ValidationError("idempotency_token must be a non-empty string")
        if len(idempotency_token) > MAX_TOKEN_LENGTH:
            raise ValidationError("idempotency_token is too long")


# ---------------------------------------------------------------------------
# SUBMIT ANSWER
# ---------------------------------------------------------------------------

def submit_answer(
    db: Session,
    cache,
    user_id: str,
    question_id: str,
    answer: str,
    expected_state_version: int,
    idempotency_token: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    _validate_submission(user_id, question_id, answer, expected_state_version, idempotency_token)
    check_rate_limit(cache, user_id, now or utcnow())

    if idempotency_token:
        stored = check_idempotency(cache, idempotency_token)
        if stored is not None:
            return stored

    with transaction(db):
        question = get_question(db, question_id)
        if question is None:
            raise QuestionNotFound("Question not found")
        question_difficulty = int(question.difficulty)
        correct = is_correct_answer(answer, question.correct_answer_hash)

    def apply_answer(db: Session, row, now: datetime) -> AnswerOutcome:
        # last_answer_at never moves backwards, even under a lagging clock
        last_answer_at = as_utc(row.last_answer_at)
        answered_at = max(now, last_answer_at) if last_answer_at else now

        new_streak = row.streak + 1 if correct else 0
        new_max_streak = max(row.max_streak, new_streak)

        score_delta = calculate_score(question_difficulty, new_streak, correct)
        new_total = max(0, int(row.total_score) + score_delta)

        step = compute_next_difficulty(row.current_difficulty, correct, row.confidence, new_streak)

        row.streak = new_streak
        row.max_streak = new_max_streak
        row.total_score = new_total
        row.current_difficulty = step.difficulty
        row.confidence = step.confidence
        row.last_question_id = question_id
        row.last_answer_at = answered_at
        if correct:
            row.correct_count = (row.correct_count or 0) + 1
        else:
            row.wrong_count = (row.wrong_count or 0) + 1

        append_answer(
            db,
            user_id=user_id,
            question_id=question_id,
            difficulty=question_difficulty,
            correct=correct,
            score_delta=score_delta,
            streak_at_answer=new_streak,
            confidence_after=step.confidence,
            answered_at=answered_at,
        )
        rank_by_score, rank_by_streak = upsert_leaderboard(db, user_id, new_total, new_max_streak, answered_at)
        return AnswerOutcome(correct, score_delta, rank_by_score, rank_by_streak, answered_at)

    try:
        snapshot, outcome = store.mutate(db, user_id, expected_state_version, apply_answer, now=now)
    except VersionConflict as exc:
        if exc.state is not None:
            projections.on_state_drifted(cache, exc.state)
        raise

    response = {
        "correct": outcome.correct,
        "new_difficulty": snapshot.current_difficulty,
        "new_confidence": snapshot.confidence,
        "new_streak": snapshot.streak,
        "score_delta": outcome.score_delta,
        "total_score": snapshot.total_score,
        "new_state_version": snapshot.state_version,
        "leaderboard_rank_score": outcome.rank_by_score,
        "leaderboard_rank_streak": outcome.rank_by_streak,
        "max_streak": snapshot.max_streak,
        "answered_at": outcome.answered_at.isoformat(),
    }
    logger.info(
        "[ANSWER] user=%s question=%s correct=%s delta=%s total=%s difficulty=%s version=%s",
        user_id, question_id, outcome.correct, outcome.score_delta,
        snapshot.total_score, snapshot.current_difficulty, snapshot.state_version,
    )

    projections.on_answer_committed(cache, snapshot)

    if idempotency_token:
        store_idempotency(cache, idempotency_token, response)

    return response


# ---------------------------------------------------------------------------
# READ PATH
# ---------------------------------------------------------------------------

def get_user_state(db: Session, cache, user_id: str, now: Optional[datetime] = None) -> StateSnapshot:
    """
    Read-through user state. Persists decay when it is due, so the
    version a client sees here is the one it must echo back.
    """
    _require_text(user_id, "user_id")
    now = now or utcnow()

    snapshot = projections.get_user_state(cache, user_id)
    if snapshot is None:
        snapshot = store.load(db, user_id)
        projections.put_user_state(cache, snapshot)

    if is_decay_due(snapshot, now):
        snapshot, _ = store.refresh_decay(db, user_id, now)
        projections.on_state_drifted(cache, snapshot)

    return snapshot


def next_question(db: Session, cache, user_id: str, now: Optional[datetime] = None) -> dict:
    state = get_user_state(db, cache, user_id, now=now)

    with transaction(db):
        question = fetch_question(db, state.current_difficulty, exclude_id=state.last_question_id)
        if question is None:
            raise QuestionNotFound("No question found")
        payload = to_public_dict(question)

    payload.update({
        "current_difficulty": state.current_difficulty,
        "current_score": state.total_score,
        "current_streak": state.streak,
        "state_version": state.state_version,
    })
    return payload
