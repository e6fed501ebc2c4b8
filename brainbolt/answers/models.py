import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index

from brainbolt.db.base import Base


class AnswerLog(Base):
    """
    Append-only audit trail. Rows are written in the same transaction as
    the user_state update and are never modified afterwards.
    """
    __tablename__ = "answer_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False)

    # Difficulty of the question, not of the user
    difficulty = Column(Integer, nullable=False)
    correct = Column(Boolean, nullable=False)
    score_delta = Column(Integer, nullable=False)
    streak_at_answer = Column(Integer, nullable=False)
    confidence_after = Column(Integer, nullable=False, default=0)

    answered_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_answer_user_time", "user_id", "answered_at"),
        Index("idx_answer_user_difficulty", "user_id", "difficulty"),
    )
