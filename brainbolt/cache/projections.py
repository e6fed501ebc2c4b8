"""
Derived, disposable views kept in the fast cache:

- user_state:{user_id}      write-through on commit, read-through on miss
- metrics:{user_id}         read-through on miss, deleted on commit
- leaderboard:top:{dim}     read-through on miss, deleted on commit

Nothing here is consulted for conflict detection; state_version is always
checked against the durable row on the write path.
"""
import logging
from typing import Optional

from brainbolt.core.config import (
    LEADERBOARD_TOP_TTL_SECONDS,
    METRICS_TTL_SECONDS,
    USER_STATE_TTL_SECONDS,
)
from brainbolt.progression.state import StateSnapshot

logger = logging.getLogger(__name__)

LEADERBOARD_DIMENSIONS = ("score", "streak")


def user_state_key(user_id: str) -> str:
    return f"user_state:{user_id}"


def metrics_key(user_id: str) -> str:
    return f"metrics:{user_id}"


def leaderboard_top_key(dimension: str) -> str:
    return f"leaderboard:top:{dimension}"


# ---------------------------------------------------------------------------
# USER STATE
# ---------------------------------------------------------------------------

def get_user_state(cache, user_id: str) -> Optional[StateSnapshot]:
    data = cache.get_json(user_state_key(user_id))
    if not data:
        return None
    try:
        return StateSnapshot.from_dict(data)
    except (KeyError, TypeError, ValueError):
        cache.delete(user_state_key(user_id))
        return None


def put_user_state(cache, snapshot: StateSnapshot) -> None:
    cache.set_json_if_newer(
        user_state_key(snapshot.user_id),
        snapshot.to_dict(),
        snapshot.state_version,
        USER_STATE_TTL_SECONDS,
    )


# ---------------------------------------------------------------------------
# METRICS
# ---------------------------------------------------------------------------

def get_metrics(cache, user_id: str) -> Optional[dict]:
    return cache.get_json(metrics_key(user_id))


def put_metrics(cache, user_id: str, payload: dict) -> None:
    cache.set_json(metrics_key(user_id), payload, METRICS_TTL_SECONDS)


# ---------------------------------------------------------------------------
# LEADERBOARD TOPS
# ---------------------------------------------------------------------------

def get_leaderboard_top(cache, dimension: str) -> Optional[list]:
    return cache.get_json(leaderboard_top_key(dimension))


def put_leaderboard_top(cache, dimension: str, entries: list) -> None:
    cache.set_json(leaderboard_top_key(dimension), entries, LEADERBOARD_TOP_TTL_SECONDS)


# ---------------------------------------------------------------------------
# COMMIT HOOK
# ---------------------------------------------------------------------------

def on_answer_committed(cache, snapshot: StateSnapshot) -> None:
    """
    Run after an answer transaction commits: refresh the user's state,
    drop their metrics, drop both leaderboard tops.
    """
    put_user_state(cache, snapshot)
    cache.delete(
        metrics_key(snapshot.user_id),
        *(leaderboard_top_key(d) for d in LEADERBOARD_DIMENSIONS),
    )
    logger.debug("[CACHE] refreshed user=%s version=%s", snapshot.user_id, snapshot.state_version)


def on_state_drifted(cache, snapshot: StateSnapshot) -> None:
    """A decay committed without an answer: only the state view changes."""
    put_user_state(cache, snapshot)
    cache.delete(metrics_key(snapshot.user_id))
