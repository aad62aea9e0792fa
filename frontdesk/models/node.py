from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from frontdesk.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Node(Base):
    """One record of the key-addressed tree, e.g. ``rooms/<key>``."""

    __tablename__ = "nodes"

    path = Column(String, primary_key=True)
    collection = Column(String, index=True, nullable=False)
    value = Column(JSON, nullable=False)
    # Bumped on every write; conditional updates compare against it
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
