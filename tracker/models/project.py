# tracker/models/project.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship
from tracker.database import Base

# every model a Project cascades into has to be mapped before the first query
from tracker.models.audit import AuditEntry  # noqa: F401
from tracker.models.iteration import Iteration  # noqa: F401
from tracker.models.milestone import Milestone  # noqa: F401
from tracker.models.story import Story  # noqa: F401
from tracker.models.user import User


def _utcnow():
    return datetime.now(timezone.utc)


project_users = Table(
    "project_users",
    Base.metadata,
    Column("project_id", Integer, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Project(Base):
    """Hub connecting users, milestones, iterations and stories.

    Apart from users, everything hangs off a project and is destroyed with it.
    """

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)

    parent_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    parent = relationship("Project", remote_side=[id], back_populates="sub_projects")
    sub_projects = relationship(
        "Project",
        back_populates="parent",
        order_by="Project.name",
        cascade="all, delete-orphan",
    )

    iterations = relationship(
        "Iteration",
        back_populates="project",
        order_by="Iteration.start_date",
        cascade="all, delete-orphan",
    )
    milestones = relationship(
        "Milestone",
        back_populates="project",
        order_by="Milestone.date",
        cascade="all, delete-orphan",
    )
    stories = relationship(
        "Story",
        back_populates="project",
        order_by="Story.position",
        cascade="all, delete-orphan",
    )

    users = relationship(
        User,
        secondary=project_users,
        order_by=[User.last_name, User.first_name],
    )
