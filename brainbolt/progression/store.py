"""
State Store: the only writer of user_state.

Every mutation is one transaction that locks the user's row
(SELECT ... FOR UPDATE), re-reads it, applies inactivity decay, checks
the caller's state_version and then runs the supplied mutation together
with its answer-log and leaderboard writes. Other users' rows are never
touched, so different users proceed in parallel.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from brainbolt.core.errors import StateNotFound, VersionConflict
from brainbolt.db.session import transaction
from brainbolt.progression.decay import apply_decay, utcnow
from brainbolt.progression.models import UserState
from brainbolt.progression.state import StateSnapshot, as_utc
from brainbolt.users.models import User

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CREATE / LOAD
# ---------------------------------------------------------------------------

def create_user(db: Session, user_id: Optional[str] = None) -> StateSnapshot:
    """Onboard a user with default progression (difficulty 1, version 1)."""
    with transaction(db):
        user = User(id=user_id) if user_id else User()
        db.add(user)
        db.flush()
        row = UserState(
            user_id=user.id,
            current_difficulty=1,
            streak=0,
            max_streak=0,
            total_score=0,
            correct_count=0,
            wrong_count=0,
            confidence=0,
            state_version=1,
        )
        db.add(row)
        db.flush()
        snapshot = StateSnapshot.from_row(row)
    logger.info("[STATE] onboarded user=%s", snapshot.user_id)
    return snapshot


def load(db: Session, user_id: str) -> StateSnapshot:
    """Authoritative read, no lock and no decay."""
    with transaction(db):
        row = db.query(UserState).filter(UserState.user_id == user_id).first()
        if row is None:
            raise StateNotFound("User state not found")
        return StateSnapshot.from_row(row)


def _lock_row(db: Session, user_id: str) -> UserState:
    row = (
        db.query(UserState)
        .filter(UserState.user_id == user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if row is None:
        raise StateNotFound("User state not found")
    return row


def _decay_row(row: UserState, now: datetime) -> bool:
    outcome = apply_decay(
        as_utc(row.last_answer_at),
        now,
        row.streak,
        row.confidence,
        row.state_version,
        last_decay_at=as_utc(row.last_decay_at),
    )
    if not outcome.applied:
        return False

    logger.info(
        "[DECAY] user=%s streak %s -> %s confidence %s -> %s version %s -> %s",
        row.user_id, row.streak, outcome.streak, row.confidence, outcome.confidence,
        row.state_version, outcome.state_version,
    )
    row.streak = outcome.streak
    row.confidence = outcome.confidence
    row.state_version = outcome.state_version
    row.last_decay_at = now
    return True


# ---------------------------------------------------------------------------
# DECAY ON READ
# ---------------------------------------------------------------------------

def refresh_decay(db: Session, user_id: str, now: Optional[datetime] = None) -> tuple[StateSnapshot, bool]:
    """
    Lock the row and persist decay if it is due.
    Returns (authoritative snapshot, whether decay was applied).
    """
    now = now or utcnow()
    with transaction(db):
        row = _lock_row(db, user_id)
        applied = _decay_row(row, now)
        db.flush()
        snapshot = StateSnapshot.from_row(row)
    return snapshot, applied


# ---------------------------------------------------------------------------
# MUTATE
# ---------------------------------------------------------------------------

def mutate(
    db: Session,
    user_id: str,
    expected_version: int,
    fn: Callable[[Session, UserState, datetime], Any],
    now: Optional[datetime] = None,
) -> tuple[StateSnapshot, Any]:
    """
    Apply *fn* to the locked row of *user_id* if its version (after decay)
    equals *expected_version*, then bump state_version. *fn* receives the
    session, the row and the unit's timestamp, and stages every other
    write of the unit on the same session. Without an explicit *now* the
    timestamp is read once the row lock is held.
    Returns (committed snapshot, fn's return value).

    On a version mismatch nothing from *fn* is written, but a decay that
    fired while checking is still committed so the version reflects the
    drift; VersionConflict carries that post-decay snapshot.
    """
    conflict = None

    with transaction(db):
        row = _lock_row(db, user_id)
        now = now or utcnow()
        _decay_row(row, now)

        if row.state_version != expected_version:
            db.flush()
            conflict = VersionConflict(
                expected_version,
                row.state_version,
                state=StateSnapshot.from_row(row),
            )
        else:
            result = fn(db, row, now)
            row.state_version = row.state_version + 1
            db.flush()
            snapshot = StateSnapshot.from_row(row)

    if conflict is not None:
        logger.info(
            "[STATE] version conflict user=%s expected=%s current=%s",
            user_id, conflict.expected_version, conflict.current_version,
        )
        raise conflict

    return snapshot, result
