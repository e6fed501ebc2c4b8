import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from brainbolt.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Progression row goes away with the user (cascading delete)
    state = relationship(
        "UserState",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
