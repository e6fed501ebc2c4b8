from sqlalchemy import Column, Integer, BigInteger, String, DateTime, ForeignKey
from sqlalchemy.sql import func

from brainbolt.db.base import Base


class UserState(Base):
    """
    Durable, versioned progression record. One row per user.

    Mutated only by brainbolt.progression.store, inside the same transaction
    that appends to answer_log and upserts the leaderboard rows.
    """
    __tablename__ = "user_state"

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    current_difficulty = Column(Integer, nullable=False, default=1)
    streak = Column(Integer, nullable=False, default=0)
    max_streak = Column(Integer, nullable=False, default=0)
    total_score = Column(BigInteger, nullable=False, default=0)

    correct_count = Column(Integer, nullable=False, default=0)
    wrong_count = Column(Integer, nullable=False, default=0)

    # Momentum for difficulty transitions, bounded to [-2, 2]
    confidence = Column(Integer, nullable=False, default=0)

    last_question_id = Column(String(36), nullable=True)
    last_answer_at = Column(DateTime(timezone=True), nullable=True)
    last_decay_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency token: bumped on every mutation, decay included
    state_version = Column(Integer, nullable=False, default=1)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
