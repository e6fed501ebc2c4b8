from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from brainbolt.core.deps import get_cache
from brainbolt.db.session import get_db, transaction
from brainbolt.leaderboard.service import SCORE, STREAK, get_rank, get_top

router = APIRouter(prefix="/v1/leaderboard", tags=["leaderboard"])


@router.get("/score")
def top_by_score(
    limit: int = Query(10),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
):
    with transaction(db):
        return get_top(db, cache, SCORE, limit)


@router.get("/streak")
def top_by_streak(
    limit: int = Query(10),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
):
    with transaction(db):
        return get_top(db, cache, STREAK, limit)


@router.get("/rank")
def rank_for_user(
    user_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    """Always computed from the durable rows, never from cache."""
    with transaction(db):
        return get_rank(db, user_id)
