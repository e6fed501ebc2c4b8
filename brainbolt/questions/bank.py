"""
Question bank lookups.

The engine only ever needs three things from the bank: a question near a
target difficulty, a question by id, and the digest used to check answers.
"""
import hashlib
import hmac
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from brainbolt.questions.models import Question


def hash_answer(answer: str) -> str:
    return hashlib.sha256(answer.encode("utf-8")).hexdigest()


def is_correct_answer(answer: str, correct_answer_hash: str) -> bool:
    return hmac.compare_digest(hash_answer(answer), correct_answer_hash or "")


def get_question(db: Session, question_id: str) -> Optional[Question]:
    return db.query(Question).filter(Question.id == question_id).first()


def fetch_question(db: Session, target_difficulty: int, exclude_id: Optional[str] = None) -> Optional[Question]:
    """
    Random question at *target_difficulty*, never *exclude_id*.
    Falls back to the nearest difficulty when the target level is empty.
    """
    query = db.query(Question)
    if exclude_id:
        query = query.filter(Question.id != exclude_id)

    primary = (
        query.filter(Question.difficulty == target_difficulty)
        .order_by(func.random())
        .first()
    )
    if primary:
        return primary

    return (
        query.order_by(func.abs(Question.difficulty - target_difficulty), func.random())
        .first()
    )


def to_public_dict(question: Question) -> dict:
    """Question as served to a player (no answer digest)."""
    return {
        "question_id": question.id,
        "difficulty": question.difficulty,
        "prompt": question.prompt,
        "choices": question.choices or [],
    }
