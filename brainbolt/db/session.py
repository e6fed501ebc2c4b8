import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from brainbolt.core.errors import TransientStoreError
from brainbolt.db.base import SessionLocal

logger = logging.getLogger(__name__)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    One all-or-nothing unit on *db*.

    Commits when the block exits normally, rolls back on any exception.
    Store connectivity failures surface as TransientStoreError; they are
    never retried here.
    """
    try:
        yield db
        db.commit()
    except (OperationalError, InterfaceError) as exc:
        db.rollback()
        logger.error("[DB] transaction aborted: %s", exc.__class__.__name__)
        raise TransientStoreError("Durable store unavailable") from exc
    except Exception:
        db.rollback()
        raise
