import os
from logging.config import fileConfig

from sqlalchemy import create_engine
from sqlalchemy import pool

from alembic import context

from brainbolt.db.base import Base, DATABASE_URL

# Register every table on Base.metadata for autogenerate
from brainbolt.users.models import User  # noqa: F401
from brainbolt.progression.models import UserState  # noqa: F401
from brainbolt.questions.models import Question  # noqa: F401
from brainbolt.answers.models import AnswerLog  # noqa: F401
from brainbolt.leaderboard.models import LeaderboardScore, LeaderboardStreak  # noqa: F401

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    """
    Single source of truth for Alembic DB URL.

    Prefer DATABASE_URL env var (used by brainbolt.db.base) and fall back
    to that module's DATABASE_URL constant.
    """
    return os.getenv("DATABASE_URL", DATABASE_URL)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
