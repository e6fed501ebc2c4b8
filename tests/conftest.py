import os
import tempfile
from datetime import datetime, timezone

# Point the app's default engine at a throwaway file before anything imports it.
_TMP_DIR = tempfile.mkdtemp(prefix="brainbolt-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP_DIR}/app.db")
os.environ.setdefault("CACHE_ENABLED", "0")

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from brainbolt.cache.client import CacheClient  # noqa: E402
from brainbolt.db.base import Base, make_engine  # noqa: E402
from brainbolt.progression.models import UserState  # noqa: E402
from brainbolt.progression.store import create_user  # noqa: E402
from brainbolt.questions.bank import hash_answer  # noqa: E402
from brainbolt.questions.models import Question  # noqa: E402
from brainbolt.users.models import User  # noqa: E402,F401
from brainbolt.answers.models import AnswerLog  # noqa: E402,F401
from brainbolt.leaderboard.models import LeaderboardScore, LeaderboardStreak  # noqa: E402,F401


NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path}/quiz.db")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def cache(redis_server):
    return CacheClient(fakeredis.FakeRedis(server=redis_server, decode_responses=True))


@pytest.fixture
def no_cache():
    return CacheClient(None)


@pytest.fixture
def user(db):
    return create_user(db)


@pytest.fixture
def make_question(db):
    def _make(difficulty=1, answer="42", prompt=None):
        question = Question(
            difficulty=difficulty,
            prompt=prompt or f"Level {difficulty} question",
            choices=[{"id": "a", "text": answer}, {"id": "b", "text": "nope"}],
            correct_answer_hash=hash_answer(answer),
        )
        db.add(question)
        db.flush()
        question_id = question.id
        db.commit()
        return question_id
    return _make


@pytest.fixture
def set_state(db):
    """Overwrite user_state columns directly, bypassing the store."""
    def _set(user_id, **fields):
        row = db.query(UserState).filter(UserState.user_id == user_id).first()
        for key, value in fields.items():
            setattr(row, key, value)
        db.commit()
    return _set
