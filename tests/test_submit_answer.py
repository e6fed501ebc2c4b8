from datetime import timedelta

import fakeredis
import pytest
from sqlalchemy.exc import OperationalError

from brainbolt.answers.models import AnswerLog
from brainbolt.cache import projections
from brainbolt.cache.client import CacheClient
from brainbolt.core.errors import (
    QuestionNotFound,
    RateLimited,
    StateNotFound,
    TransientStoreError,
    ValidationError,
    VersionConflict,
)
from brainbolt.progression import store
from brainbolt.progression.state import as_utc
from brainbolt.quiz import service
from brainbolt.quiz.idempotency import idempotency_key
from brainbolt.quiz.rate_limit import rate_key
from brainbolt.quiz.service import get_user_state, submit_answer


def _log_count(db, user_id):
    count = db.query(AnswerLog).filter(AnswerLog.user_id == user_id).count()
    db.rollback()
    return count


def test_correct_answer_scores_and_records(db, cache, user, make_question, now):
    question_id = make_question(difficulty=3, answer="paris")

    result = submit_answer(db, cache, user.user_id, question_id, "paris", 1, now=now)

    assert result["correct"] is True
    assert result["score_delta"] == 33
    assert result["total_score"] == 33
    assert result["new_streak"] == 1
    assert result["max_streak"] == 1
    assert result["new_confidence"] == 1
    assert result["new_difficulty"] == 1
    assert result["new_state_version"] == 2
    assert result["leaderboard_rank_score"] == 1
    assert result["leaderboard_rank_streak"] == 1
    assert result["answered_at"] == now.isoformat()

    entry = db.query(AnswerLog).filter(AnswerLog.user_id == user.user_id).one()
    assert entry.difficulty == 3
    assert entry.correct is True
    assert entry.score_delta == 33
    assert entry.streak_at_answer == 1
    assert entry.confidence_after == 1
    db.rollback()

    state = store.load(db, user.user_id)
    assert state.last_question_id == question_id
    assert state.correct_count == 1


def test_wrong_answer_penalty_never_goes_below_zero(db, cache, user, make_question, now):
    question_id = make_question(difficulty=5, answer="yes")

    result = submit_answer(db, cache, user.user_id, question_id, "no", 1, now=now)

    assert result["correct"] is False
    assert result["score_delta"] == -5
    assert result["total_score"] == 0
    assert result["new_streak"] == 0
    assert store.load(db, user.user_id).wrong_count == 1


def test_two_correct_answers_raise_difficulty(db, cache, user, make_question, now):
    question_id = make_question(difficulty=1, answer="a")

    first = submit_answer(db, cache, user.user_id, question_id, "a", 1, now=now)
    second = submit_answer(db, cache, user.user_id, question_id, "a", first["new_state_version"], now=now)

    assert second["new_difficulty"] == 2
    assert second["new_confidence"] == 0
    assert second["new_streak"] == 2
    assert second["total_score"] == 11 + 12


def test_two_wrong_answers_lower_difficulty(db, cache, user, make_question, set_state, now):
    set_state(user.user_id, current_difficulty=6)
    question_id = make_question(difficulty=6, answer="a")

    first = submit_answer(db, cache, user.user_id, question_id, "x", 1, now=now)
    second = submit_answer(db, cache, user.user_id, question_id, "x", first["new_state_version"], now=now)

    assert first["new_difficulty"] == 6
    assert second["new_difficulty"] == 5
    assert second["new_confidence"] == 0


def test_replayed_token_returns_first_response(db, cache, user, make_question, now):
    question_id = make_question(difficulty=2, answer="right")

    first = submit_answer(db, cache, user.user_id, question_id, "right", 1, idempotency_token="tok-1", now=now)
    again = submit_answer(db, cache, user.user_id, question_id, "wrong", 1, idempotency_token="tok-1", now=now)

    assert again == first
    state = store.load(db, user.user_id)
    assert state.total_score == first["total_score"]
    assert state.streak == 1
    assert state.state_version == 2
    assert _log_count(db, user.user_id) == 1


def test_replay_skips_version_validation(db, cache, user, make_question, now):
    question_id = make_question()
    first = submit_answer(db, cache, user.user_id, question_id, "42", 1, idempotency_token="tok-2", now=now)

    # version 1 is stale now, but the token short-circuits the pipeline
    assert submit_answer(db, cache, user.user_id, question_id, "42", 1, idempotency_token="tok-2", now=now) == first


def test_requests_without_token_are_applied_each_time(db, cache, user, make_question, now):
    question_id = make_question()

    first = submit_answer(db, cache, user.user_id, question_id, "42", 1, now=now)
    second = submit_answer(db, cache, user.user_id, question_id, "42", first["new_state_version"], now=now)

    assert second["new_state_version"] == 3
    assert _log_count(db, user.user_id) == 2


def test_stale_version_is_rejected_without_side_effects(db, cache, user, make_question, now):
    question_id = make_question()
    first = submit_answer(db, cache, user.user_id, question_id, "42", 1, now=now)

    with pytest.raises(VersionConflict) as excinfo:
        submit_answer(db, cache, user.user_id, question_id, "42", first["new_state_version"] - 1, now=now)

    assert excinfo.value.current_version == 2
    state = store.load(db, user.user_id)
    assert state.total_score == first["total_score"]
    assert state.state_version == 2
    assert _log_count(db, user.user_id) == 1


def test_unknown_user_and_question(db, cache, user, make_question, now):
    question_id = make_question()

    with pytest.raises(StateNotFound):
        submit_answer(db, cache, "ghost", question_id, "42", 1, now=now)

    with pytest.raises(QuestionNotFound):
        submit_answer(db, cache, user.user_id, "missing-question", "42", 1, now=now)

    assert store.load(db, user.user_id).state_version == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"answer": ""},
        {"answer": None},
        {"question_id": "  "},
        {"expected_state_version": True},
        {"expected_state_version": "1"},
        {"expected_state_version": 0},
        {"idempotency_token": ""},
        {"idempotency_token": "x" * 300},
    ],
)
def test_malformed_input_is_rejected_before_store_access(no_cache, kwargs):
    params = {
        "user_id": "someone",
        "question_id": "q",
        "answer": "a",
        "expected_state_version": 1,
        "idempotency_token": None,
    }
    params.update(kwargs)

    # db=None proves nothing touched the store
    with pytest.raises(ValidationError):
        submit_answer(None, no_cache, **params)


def test_rate_limit_after_twenty_submissions_per_window(db, cache, user, make_question, now):
    question_id = make_question()
    version = 1
    for _ in range(20):
        version = submit_answer(db, cache, user.user_id, question_id, "42", version, now=now)["new_state_version"]

    with pytest.raises(RateLimited):
        submit_answer(db, cache, user.user_id, question_id, "42", version, now=now)
    assert store.load(db, user.user_id).state_version == version

    next_window = now + timedelta(seconds=60)
    result = submit_answer(db, cache, user.user_id, question_id, "42", version, now=next_window)
    assert result["new_state_version"] == version + 1



def test_rate_window_expiry_is_set_on_first_increment_only(db, cache, user, make_question, now):
    question_id = make_question()
    key = rate_key(user.user_id, int(now.timestamp()) // 60)

    first = submit_answer(db, cache, user.user_id, question_id, "42", 1, now=now)
    assert 55 < cache.redis.ttl(key) <= 60

    # Same window, 30s later: re-arming the expiry would leave about 30s
    half_way = now + timedelta(seconds=30)
    submit_answer(db, cache, user.user_id, question_id, "42", first["new_state_version"], now=half_way)
    assert cache.redis.get(key) == "2"
    assert cache.redis.ttl(key) > 30

def test_commit_refreshes_state_and_drops_derived_caches(db, cache, user, make_question, now):
    question_id = make_question()
    cache.set_json(projections.metrics_key(user.user_id), {"stale": True}, 30)
    cache.set_json(projections.leaderboard_top_key("score"), [], 30)
    cache.set_json(projections.leaderboard_top_key("streak"), [], 30)

    result = submit_answer(db, cache, user.user_id, question_id, "42", 1, now=now)

    cached = projections.get_user_state(cache, user.user_id)
    assert cached == store.load(db, user.user_id)
    assert cached.state_version == result["new_state_version"]
    assert cache.get_json(projections.metrics_key(user.user_id)) is None
    assert cache.get_json(projections.leaderboard_top_key("score")) is None
    assert cache.get_json(projections.leaderboard_top_key("streak")) is None


def test_disabled_cache_gives_identical_results(db, no_cache, user, make_question, now):
    question_id = make_question(difficulty=4, answer="ok")

    first = submit_answer(db, no_cache, user.user_id, question_id, "ok", 1, idempotency_token="t", now=now)
    second = submit_answer(db, no_cache, user.user_id, question_id, "ok", 2, now=now)

    assert first["score_delta"] == 44
    assert second["total_score"] == 44 + 48
    assert second["new_state_version"] == 3
    assert get_user_state(db, no_cache, user.user_id, now=now).total_score == 92


def test_unreachable_cache_degrades_to_durable_store(db, user, make_question, now):
    server = fakeredis.FakeServer()
    server.connected = False
    broken = CacheClient(fakeredis.FakeRedis(server=server, decode_responses=True))
    question_id = make_question()

    result = submit_answer(db, broken, user.user_id, question_id, "42", 1, idempotency_token="t", now=now)

    assert result["new_state_version"] == 2
    assert get_user_state(db, broken, user.user_id, now=now).state_version == 2


def test_read_path_persists_decay(db, cache, user, make_question, now):
    question_id = make_question()
    version = 1
    for _ in range(5):
        version = submit_answer(db, cache, user.user_id, question_id, "42", version, now=now)["new_state_version"]

    later = now + timedelta(minutes=6)
    state = get_user_state(db, cache, user.user_id, now=later)

    assert state.streak == 2
    assert state.state_version == version + 1
    assert store.load(db, user.user_id) == state

    result = submit_answer(db, cache, user.user_id, question_id, "42", state.state_version, now=later + timedelta(seconds=5))
    assert result["new_streak"] == 3


def test_stale_client_after_decay_gets_conflict_and_fresh_cache(db, cache, user, make_question, now):
    question_id = make_question()
    first = submit_answer(db, cache, user.user_id, question_id, "42", 1, now=now)
    second = submit_answer(db, cache, user.user_id, question_id, "42", first["new_state_version"], now=now)

    later = now + timedelta(minutes=6)
    with pytest.raises(VersionConflict) as excinfo:
        submit_answer(db, cache, user.user_id, question_id, "42", second["new_state_version"], now=later)

    assert excinfo.value.current_version == second["new_state_version"] + 1
    cached = projections.get_user_state(cache, user.user_id)
    assert cached.state_version == excinfo.value.current_version
    assert cached.streak == 1
    assert _log_count(db, user.user_id) == 2


def test_store_failure_inside_the_unit_writes_nothing(db, cache, user, make_question, now, monkeypatch):
    question_id = make_question()

    def locked(*args, **kwargs):
        raise OperationalError("UPDATE leaderboard_score", {}, Exception("database is locked"))

    monkeypatch.setattr(service, "upsert_leaderboard", locked)

    with pytest.raises(TransientStoreError):
        submit_answer(db, cache, user.user_id, question_id, "42", 1, idempotency_token="t-1", now=now)

    state = store.load(db, user.user_id)
    assert state.state_version == 1
    assert state.total_score == 0
    assert state.last_answer_at is None
    assert _log_count(db, user.user_id) == 0
    assert cache.get_json(idempotency_key("t-1")) is None


def test_last_answer_at_never_moves_backwards(db, cache, user, make_question, now):
    question_id = make_question()
    later = now + timedelta(seconds=10)

    first = submit_answer(db, cache, user.user_id, question_id, "42", 1, now=later)
    # A request that read its clock earlier but got the lock second
    second = submit_answer(db, cache, user.user_id, question_id, "42", first["new_state_version"], now=now)

    assert second["answered_at"] == later.isoformat()
    assert store.load(db, user.user_id).last_answer_at == later

    stamps = [row.answered_at for row in db.query(AnswerLog).filter(AnswerLog.user_id == user.user_id)]
    db.rollback()
    assert [as_utc(stamp) for stamp in stamps] == [later, later]


def test_timestamp_is_read_after_the_row_lock(db, cache, user, make_question, now, monkeypatch):
    question_id = make_question()
    locked_at = now + timedelta(seconds=5)
    monkeypatch.setattr(store, "utcnow", lambda: locked_at)

    result = submit_answer(db, cache, user.user_id, question_id, "42", 1)

    assert result["answered_at"] == locked_at.isoformat()
    assert store.load(db, user.user_id).last_answer_at == locked_at
