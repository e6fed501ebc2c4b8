"""
Detached copy of a user_state row.

Snapshots are what leaves the store: they are handed to the cache layer,
returned to callers and serialized into JSON. They never write back.
"""
from dataclasses import dataclass, asdict, replace
from datetime import datetime, timezone
from typing import Optional


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_ts(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(value))


@dataclass(frozen=True)
class StateSnapshot:
    user_id: str
    current_difficulty: int = 1
    streak: int = 0
    max_streak: int = 0
    total_score: int = 0
    confidence: int = 0
    state_version: int = 1
    correct_count: int = 0
    wrong_count: int = 0
    last_answer_at: Optional[datetime] = None
    last_question_id: Optional[str] = None
    last_decay_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "StateSnapshot":
        return cls(
            user_id=row.user_id,
            current_difficulty=int(row.current_difficulty),
            streak=int(row.streak),
            max_streak=int(row.max_streak),
            total_score=int(row.total_score),
            confidence=int(row.confidence or 0),
            state_version=int(row.state_version),
            correct_count=int(row.correct_count or 0),
            wrong_count=int(row.wrong_count or 0),
            last_answer_at=as_utc(row.last_answer_at),
            last_question_id=row.last_question_id,
            last_decay_at=as_utc(row.last_decay_at),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "StateSnapshot":
        return cls(
            user_id=data["user_id"],
            current_difficulty=int(data.get("current_difficulty", 1)),
            streak=int(data.get("streak", 0)),
            max_streak=int(data.get("max_streak", 0)),
            total_score=int(data.get("total_score", 0)),
            confidence=int(data.get("confidence", 0)),
            state_version=int(data.get("state_version", 1)),
            correct_count=int(data.get("correct_count", 0)),
            wrong_count=int(data.get("wrong_count", 0)),
            last_answer_at=_parse_ts(data.get("last_answer_at")),
            last_question_id=data.get("last_question_id"),
            last_decay_at=_parse_ts(data.get("last_decay_at")),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("last_answer_at", "last_decay_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data

    def evolve(self, **changes) -> "StateSnapshot":
        return replace(self, **changes)
