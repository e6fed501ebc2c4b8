import os
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker


def _build_database_url() -> str:
    """
    Determine the database URL.

    - Prefer DATABASE_URL from the environment (production).
    - Fallback to a local SQLite file for development.
    - Normalize legacy postgres:// URLs to SQLAlchemy's postgresql+psycopg2://.
    """
    url = os.getenv("DATABASE_URL", "sqlite:///./local.db").strip()

    if url.startswith("postgres://"):
        # SQLAlchemy 2.x expects a driver-qualified URL
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)

    return url


def _enable_sqlite_write_lock(engine: Engine) -> None:
    """
    SQLite has no row locks and ignores FOR UPDATE. Starting every
    transaction with BEGIN IMMEDIATE takes the database write lock up front,
    so concurrent read-modify-write units are serialized just like a
    row-locked transaction on PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy (not pysqlite) emit BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # Shared across request threads; wait for the writer lock instead of failing fast
        connect_args = {"check_same_thread": False, "timeout": 30}

    engine = create_engine(url, connect_args=connect_args, future=True)
    if url.startswith("sqlite"):
        _enable_sqlite_write_lock(engine)
    return engine


DATABASE_URL = _build_database_url()

engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def log_startup():
    """Print one-time DB diagnostics."""
    try:
        url_safe = engine.url.render_as_string(hide_password=True)
        backend = engine.url.get_backend_name()
        print(f"[DB] Using database backend={backend} url={url_safe}", flush=True)

        if backend == "sqlite":
            db_path = Path(engine.url.database or "").resolve()
            exists = db_path.exists()
            size = db_path.stat().st_size if exists else 0
            print(f"[DB] SQLite path={db_path} exists={exists} size_bytes={size}", flush=True)
    except Exception as exc:
        # Never crash app on logging
        print("[DB] Failed to log DB diagnostics:", repr(exc), flush=True)
