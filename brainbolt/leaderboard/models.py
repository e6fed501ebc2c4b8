from sqlalchemy import Column, Integer, BigInteger, String, DateTime, ForeignKey, Index

from brainbolt.db.base import Base


class LeaderboardScore(Base):
    __tablename__ = "leaderboard_score"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    total_score = Column(BigInteger, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_leaderboard_score_score", "total_score"),
    )


class LeaderboardStreak(Base):
    __tablename__ = "leaderboard_streak"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    max_streak = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_leaderboard_streak_streak", "max_streak"),
    )
