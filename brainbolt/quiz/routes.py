from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from brainbolt.core.deps import get_cache, get_clock
from brainbolt.db.session import get_db
from brainbolt.quiz.metrics import get_user_metrics
from brainbolt.quiz.schemas import AnswerSubmission
from brainbolt.quiz.service import get_user_state, next_question, submit_answer

router = APIRouter(prefix="/v1/quiz", tags=["quiz"])


# ======================================================
# NEXT QUESTION
# ======================================================
@router.get("/next")
def get_next_question(
    user_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
    clock=Depends(get_clock),
):
    return next_question(db, cache, user_id, now=clock())


# ======================================================
# SUBMIT ANSWER
# ======================================================
@router.post("/answer")
def post_answer(
    body: AnswerSubmission,
    idempotency_key: str | None = Header(default=None),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
    clock=Depends(get_clock),
):
    """The token may come in the body or as an Idempotency-Key header; the body wins."""
    return submit_answer(
        db,
        cache,
        user_id=body.user_id,
        question_id=body.question_id,
        answer=body.answer,
        expected_state_version=body.state_version,
        idempotency_token=body.idempotency_token or idempotency_key,
        now=clock(),
    )


@router.get("/state")
def get_state(
    user_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
    clock=Depends(get_clock),
):
    return get_user_state(db, cache, user_id, now=clock()).to_dict()


@router.get("/metrics")
def get_metrics(
    user_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
    clock=Depends(get_clock),
):
    return get_user_metrics(db, cache, user_id, now=clock())
