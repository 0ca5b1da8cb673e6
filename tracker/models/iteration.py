# tracker/models/iteration.py
from __future__ import annotations

from sqlalchemy import Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from tracker.database import Base


class Iteration(Base):
    __tablename__ = "iterations"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    project = relationship("Project", back_populates="iterations")

    # deleting an iteration sends its stories back to the backlog
    stories = relationship("Story", back_populates="iteration", order_by="Story.position")
