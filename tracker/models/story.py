# tracker/models/story.py
from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from tracker.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class StoryStatus(enum.IntEnum):
    NEW = 1
    STARTED = 2
    FINISHED = 3
    DELIVERED = 4
    ACCEPTED = 5
    REJECTED = 6


class StoryValue(enum.IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3


class StoryRisk(enum.IntEnum):
    LOW = 1
    NORMAL = 2
    HIGH = 3


class Story(Base):
    __tablename__ = "stories"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # 1..N inside the project, kept dense by tracker.story.ordering
    position = Column(Integer, nullable=False, index=True)

    status = Column(Enum(StoryStatus), default=StoryStatus.NEW, nullable=False)
    value = Column(Enum(StoryValue), nullable=True)
    risk = Column(Enum(StoryRisk), nullable=True)

    owner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # NULL -> unscheduled backlog
    iteration_id = Column(Integer, ForeignKey("iterations.id", ondelete="SET NULL"), nullable=True, index=True)

    creator_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updater_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    project = relationship("Project", back_populates="stories")
    iteration = relationship("Iteration", back_populates="stories")

    owner = relationship("User", foreign_keys=[owner_id])
    creator = relationship("User", foreign_keys=[creator_id])
    updater = relationship("User", foreign_keys=[updater_id])

    audit_entries = relationship(
        "AuditEntry",
        back_populates="story",
        cascade="all, delete-orphan",
        order_by="[AuditEntry.created_at.desc(), AuditEntry.id.desc()]",
    )
