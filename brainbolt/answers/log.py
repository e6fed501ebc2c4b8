from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from brainbolt.answers.models import AnswerLog
from brainbolt.progression.state import as_utc


def append_answer(
    db: Session,
    user_id: str,
    question_id: str,
    difficulty: int,
    correct: bool,
    score_delta: int,
    streak_at_answer: int,
    confidence_after: int,
    answered_at: datetime,
) -> AnswerLog:
    """Stage one audit row on *db*; the caller's transaction commits it."""
    entry = AnswerLog(
        user_id=user_id,
        question_id=question_id,
        difficulty=difficulty,
        correct=correct,
        score_delta=score_delta,
        streak_at_answer=streak_at_answer,
        confidence_after=confidence_after,
        answered_at=answered_at,
    )
    db.add(entry)
    return entry


def count_answers(db: Session, user_id: str) -> tuple[int, int]:
    """(correct, total) for a user."""
    total = db.query(func.count(AnswerLog.id)).filter(AnswerLog.user_id == user_id).scalar() or 0
    correct = (
        db.query(func.count(AnswerLog.id))
        .filter(AnswerLog.user_id == user_id, AnswerLog.correct.is_(True))
        .scalar()
    ) or 0
    return int(correct), int(total)


def difficulty_histogram(db: Session, user_id: str) -> list[dict]:
    rows = (
        db.query(AnswerLog.difficulty, func.count(AnswerLog.id))
        .filter(AnswerLog.user_id == user_id)
        .group_by(AnswerLog.difficulty)
        .order_by(AnswerLog.difficulty)
        .all()
    )
    return [{"difficulty": d, "count": int(c)} for d, c in rows]


def recent_answers(db: Session, user_id: str, limit: int) -> list[dict]:
    rows = (
        db.query(AnswerLog)
        .filter(AnswerLog.user_id == user_id)
        .order_by(AnswerLog.answered_at.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "correct": bool(r.correct),
            "difficulty": r.difficulty,
            "answered_at": as_utc(r.answered_at).isoformat(),
        }
        for r in rows
    ]
