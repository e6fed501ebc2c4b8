import pytest

from brainbolt.cache import projections
from brainbolt.core.errors import ValidationError
from brainbolt.db.session import transaction
from brainbolt.leaderboard.service import get_rank, get_top, upsert_leaderboard
from brainbolt.progression.store import create_user


def _users(db, count):
    return [create_user(db).user_id for _ in range(count)]


def _upsert(db, user_id, score, streak, now):
    with transaction(db):
        return upsert_leaderboard(db, user_id, score, streak, now)


def test_rank_counts_strictly_greater_scores(db, now):
    target, *others = _users(db, 5)
    for user_id, score in zip(others, (150, 200, 300, 50)):
        _upsert(db, user_id, score, 0, now)

    rank_by_score, _ = _upsert(db, target, 100, 0, now)

    assert rank_by_score == 4


def test_tied_users_share_a_rank(db, now):
    a, b, c = _users(db, 3)
    _upsert(db, a, 100, 3, now)
    _upsert(db, b, 100, 1, now)
    _upsert(db, c, 40, 3, now)

    with transaction(db):
        assert get_rank(db, a) == {"rank_by_score": 1, "rank_by_streak": 1}
        assert get_rank(db, b) == {"rank_by_score": 1, "rank_by_streak": 3}
        assert get_rank(db, c) == {"rank_by_score": 3, "rank_by_streak": 1}


def test_rank_is_none_without_an_entry(db):
    (user_id,) = _users(db, 1)
    with transaction(db):
        assert get_rank(db, user_id) == {"rank_by_score": None, "rank_by_streak": None}


def test_upsert_overwrites_previous_values(db, now):
    a, b = _users(db, 2)
    _upsert(db, a, 10, 1, now)
    _upsert(db, b, 20, 2, now)
    assert _upsert(db, a, 30, 5, now) == (1, 1)


def test_top_is_sorted_with_competition_ranks(db, cache, now):
    a, b, c, d = _users(db, 4)
    _upsert(db, a, 50, 1, now)
    _upsert(db, b, 90, 4, now)
    _upsert(db, c, 50, 2, now)
    _upsert(db, d, 10, 9, now)

    with transaction(db):
        top = get_top(db, cache, "score", 10)

    assert [e["value"] for e in top] == [90, 50, 50, 10]
    assert [e["rank"] for e in top] == [1, 2, 2, 4]
    assert top[0]["user_id"] == b

    with transaction(db):
        assert len(get_top(db, cache, "streak", 2)) == 2


def test_top_served_from_cache_until_invalidated(db, cache, now):
    a, b = _users(db, 2)
    _upsert(db, a, 10, 0, now)

    with transaction(db):
        assert [e["user_id"] for e in get_top(db, cache, "score", 5)] == [a]

    # durable change without invalidation: cached projection still served
    _upsert(db, b, 99, 0, now)
    with transaction(db):
        assert [e["user_id"] for e in get_top(db, cache, "score", 5)] == [a]

    cache.delete(projections.leaderboard_top_key("score"))
    with transaction(db):
        assert [e["user_id"] for e in get_top(db, cache, "score", 5)] == [b, a]


def test_top_without_cache_reads_durable_rows(db, no_cache, now):
    a, b = _users(db, 2)
    _upsert(db, a, 10, 0, now)
    _upsert(db, b, 20, 0, now)

    with transaction(db):
        top = get_top(db, no_cache, "score", 10)
    assert [e["user_id"] for e in top] == [b, a]


def test_top_rejects_unknown_dimension(db, cache):
    with pytest.raises(ValidationError):
        get_top(db, cache, "elo", 10)


@pytest.mark.parametrize("limit", [0, -3, "ten"])
def test_top_rejects_non_positive_or_bad_limit(db, cache, limit):
    with pytest.raises(ValidationError):
        get_top(db, cache, "score", limit)
