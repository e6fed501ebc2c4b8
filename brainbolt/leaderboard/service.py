"""
Leaderboard rankings over two dimensions: total score and max streak.

The durable rows are the truth. A rank is never stored; it is always
count(rows with a strictly greater value) + 1, so tied users share a rank.

Ranks returned from upsert_leaderboard are computed inside the answer
transaction and are authoritative for that commit. get_rank and get_top
read committed rows outside any transaction and may trail a concurrent
commit (get_top by up to LEADERBOARD_TOP_TTL_SECONDS, since it is cached).
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from brainbolt.cache import projections
from brainbolt.core.config import LEADERBOARD_TOP_MAX
from brainbolt.core.errors import ValidationError
from brainbolt.leaderboard.models import LeaderboardScore, LeaderboardStreak

logger = logging.getLogger(__name__)

SCORE = "score"
STREAK = "streak"
DIMENSIONS = (SCORE, STREAK)

_TABLES = {
    SCORE: (LeaderboardScore, LeaderboardScore.total_score),
    STREAK: (LeaderboardStreak, LeaderboardStreak.max_streak),
}


def _rank_for_value(db: Session, dimension: str, value: int) -> int:
    model, column = _TABLES[dimension]
    greater = db.query(func.count()).select_from(model).filter(column > value).scalar() or 0
    return int(greater) + 1


def upsert_leaderboard(
    db: Session, user_id: str, total_score: int, max_streak: int, now: datetime
) -> tuple[int, int]:
    """
    Write both durable rows for *user_id* and return (rank_by_score, rank_by_streak).
    Must run inside the caller's answer transaction.
    """
    score_row = db.query(LeaderboardScore).filter(LeaderboardScore.user_id == user_id).first()
    if score_row is None:
        db.add(LeaderboardScore(user_id=user_id, total_score=total_score, updated_at=now))
    else:
        score_row.total_score = total_score
        score_row.updated_at = now

    streak_row = db.query(LeaderboardStreak).filter(LeaderboardStreak.user_id == user_id).first()
    if streak_row is None:
        db.add(LeaderboardStreak(user_id=user_id, max_streak=max_streak, updated_at=now))
    else:
        streak_row.max_streak = max_streak
        streak_row.updated_at = now

    db.flush()

    return _rank_for_value(db, SCORE, total_score), _rank_for_value(db, STREAK, max_streak)


def get_rank(db: Session, user_id: str) -> dict:
    """Per-dimension rank from the durable rows; None where the user has no entry yet."""
    ranks: dict[str, Optional[int]] = {}
    for dimension in DIMENSIONS:
        model, column = _TABLES[dimension]
        value = db.query(column).filter(model.user_id == user_id).scalar()
        ranks[f"rank_by_{dimension}"] = None if value is None else _rank_for_value(db, dimension, value)
    return ranks


def _load_top(db: Session, dimension: str) -> list[dict]:
    model, column = _TABLES[dimension]
    rows = (
        db.query(model.user_id, column)
        .order_by(column.desc(), model.user_id.asc())
        .limit(LEADERBOARD_TOP_MAX)
        .all()
    )

    entries = []
    rank = 0
    previous = None
    for index, (user_id, value) in enumerate(rows):
        # Rows are sorted, so the first index of a value counts every strictly greater row
        if value != previous:
            rank = index + 1
            previous = value
        entries.append({"user_id": user_id, "value": int(value), "rank": rank})
    return entries


def get_top(db: Session, cache, dimension: str, limit: int = 10) -> list[dict]:
    if dimension not in DIMENSIONS:
        raise ValidationError(f"Unknown leaderboard dimension: {dimension}")
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer")
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    limit = min(limit, LEADERBOARD_TOP_MAX)

    entries = projections.get_leaderboard_top(cache, dimension)
    if entries is None:
        entries = _load_top(db, dimension)
        projections.put_leaderboard_top(cache, dimension, entries)
        logger.debug("[LEADERBOARD] rebuilt top %s (%d rows)", dimension, len(entries))

    return entries[:limit]
