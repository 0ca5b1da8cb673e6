# tracker/models/audit.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from tracker.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class AuditEntry(Base):
    """One logical change to a story: {field: {"old": ..., "new": ...}}.

    Rows are written once and only disappear together with their story.
    """

    __tablename__ = "audit_entries"

    id = Column(Integer, primary_key=True, index=True)

    story_id = Column(Integer, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    changes = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    story = relationship("Story", back_populates="audit_entries")
    user = relationship("User")
