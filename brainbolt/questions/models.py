import uuid

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, CheckConstraint
from sqlalchemy.sql import func

from brainbolt.db.base import Base


class Question(Base):
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    difficulty = Column(Integer, nullable=False, index=True)
    prompt = Column(Text, nullable=False)

    # [{"id": "a", "text": "..."}, ...]
    choices = Column(JSON, nullable=False, default=list)

    # sha256 hex of the correct answer; the plaintext is never stored
    correct_answer_hash = Column(String(64), nullable=False)

    tags = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("difficulty BETWEEN 1 AND 10", name="ck_question_difficulty"),
    )
