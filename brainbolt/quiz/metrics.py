from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from brainbolt.answers.log import count_answers, difficulty_histogram, recent_answers
from brainbolt.cache import projections
from brainbolt.core.config import RECENT_PERFORMANCE_LIMIT
from brainbolt.db.session import transaction
from brainbolt.quiz.service import get_user_state


def get_user_metrics(db: Session, cache, user_id: str, now: Optional[datetime] = None) -> dict:
    """Aggregate performance for one user, cached until their next answer."""
    cached = projections.get_metrics(cache, user_id)
    if cached is not None:
        return cached

    state = get_user_state(db, cache, user_id, now=now)

    with transaction(db):
        correct, total = count_answers(db, user_id)
        histogram = difficulty_histogram(db, user_id)
        recent = recent_answers(db, user_id, RECENT_PERFORMANCE_LIMIT)

    payload = {
        "current_difficulty": state.current_difficulty,
        "streak": state.streak,
        "max_streak": state.max_streak,
        "total_score": state.total_score,
        "confidence": state.confidence,
        "last_question_id": state.last_question_id,
        "accuracy": 0.0 if total == 0 else correct / total,
        "difficulty_histogram": histogram,
        "recent_performance": recent,
    }
    projections.put_metrics(cache, user_id, payload)
    return payload
