# tracker/schemas/project_schema.py
from __future__ import annotations

import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --------- Projects ---------
class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    parent_id: Optional[int] = None


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    created_at: datetime.datetime


# --------- Iterations ---------
class IterationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: datetime.date
    end_date: datetime.date

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class IterationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    name: str
    start_date: datetime.date
    end_date: datetime.date


class IterationTimelineRead(BaseModel):
    now: datetime.date
    past: List[IterationRead]
    current: Optional[IterationRead] = None
    future: List[IterationRead]
    previous: Optional[IterationRead] = None
    next: Optional[IterationRead] = None


# --------- Milestones ---------
class MilestoneCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    date: datetime.date


class MilestoneRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    name: str
    date: datetime.date


class MilestoneTimelineRead(BaseModel):
    now: datetime.date
    future: List[MilestoneRead]
    recent: List[MilestoneRead]
    past: List[MilestoneRead]
