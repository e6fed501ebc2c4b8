"""
Inactivity decay for streak and confidence.

After INACTIVITY_DECAY_SECONDS without an answer, a live streak is halved
and confidence drops one step. Every decay bumps state_version, so a
client holding a pre-decay snapshot is rejected on its next write.
"""
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

from brainbolt.core.config import INACTIVITY_DECAY_SECONDS
from brainbolt.progression.adaptive import MIN_CONFIDENCE


class DecayOutcome(NamedTuple):
    streak: int
    confidence: int
    state_version: int
    applied: bool


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def decay_reference(last_answer_at: Optional[datetime], last_decay_at: Optional[datetime]) -> Optional[datetime]:
    """Inactivity is measured from the later of the last answer and the last decay."""
    if last_answer_at is None:
        return None
    if last_decay_at is not None and last_decay_at > last_answer_at:
        return last_decay_at
    return last_answer_at


def apply_decay(
    last_answer_at: Optional[datetime],
    now: datetime,
    streak: int,
    confidence: int,
    state_version: int,
    last_decay_at: Optional[datetime] = None,
    threshold_seconds: int = INACTIVITY_DECAY_SECONDS,
) -> DecayOutcome:
    """
    Return the (possibly) decayed streak, confidence and version.

    Pure: the caller persists the outcome and stamps last_decay_at = now,
    which is what keeps the same idle period from decaying twice.
    """
    reference = decay_reference(last_answer_at, last_decay_at)
    if reference is None or streak <= 0:
        return DecayOutcome(streak, confidence, state_version, False)

    if now - reference <= timedelta(seconds=threshold_seconds):
        return DecayOutcome(streak, confidence, state_version, False)

    return DecayOutcome(
        streak=streak // 2,
        confidence=max(confidence - 1, MIN_CONFIDENCE),
        state_version=state_version + 1,
        applied=True,
    )


def is_decay_due(snapshot, now: datetime, threshold_seconds: int = INACTIVITY_DECAY_SECONDS) -> bool:
    outcome = apply_decay(
        snapshot.last_answer_at,
        now,
        snapshot.streak,
        snapshot.confidence,
        snapshot.state_version,
        last_decay_at=snapshot.last_decay_at,
        threshold_seconds=threshold_seconds,
    )
    return outcome.applied
