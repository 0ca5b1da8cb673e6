# tracker/schemas/story_schema.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tracker.models.story import StoryRisk, StoryStatus, StoryValue


def _clean_title(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValueError("Title can't be blank")
    return value.strip()


# --------- Base schema (common fields) ---------
class StoryBase(BaseModel):
    title: str = Field(max_length=255)
    description: Optional[str] = None
    status: StoryStatus = StoryStatus.NEW
    value: Optional[StoryValue] = None
    risk: Optional[StoryRisk] = None
    owner_id: Optional[int] = None
    iteration_id: Optional[int] = None

    @field_validator("title")
    @classmethod
    def title_present(cls, value):
        return _clean_title(value)


# --------- For creating a story (POST) ---------
class StoryCreate(StoryBase):
    pass


# --------- For updating a story (PATCH) ---------
# only the keys that were sent are applied; explicit null clears
# owner/iteration/value/risk but is rejected for title and status
class StoryUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    status: Optional[StoryStatus] = None
    value: Optional[StoryValue] = None
    risk: Optional[StoryRisk] = None
    owner_id: Optional[int] = None
    iteration_id: Optional[int] = None
    # raw JSON value, parsed by the ordering engine
    position: Any = None

    @field_validator("title")
    @classmethod
    def title_present(cls, value):
        return _clean_title(value)

    @field_validator("status", "position")
    @classmethod
    def not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} can't be null")
        return value


# --------- For reading a story (GET responses) ---------
class StoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    title: str
    description: Optional[str] = None
    position: int
    status: StoryStatus
    value: Optional[StoryValue] = None
    risk: Optional[StoryRisk] = None
    owner_id: Optional[int] = None
    iteration_id: Optional[int] = None
    creator_id: Optional[int] = None
    updater_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class PositionUpdate(BaseModel):
    # passed through untouched: the ordering engine accepts ints and digit
    # strings only, so true or 2.0 must not be coerced here
    position: Any


class BulkCreate(BaseModel):
    titles: str


class IterationAssignment(BaseModel):
    iteration_id: Optional[int] = None


class OwnerAssignment(BaseModel):
    owner_id: Optional[int] = None


class AuditEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    story_id: int
    user_id: Optional[int] = None
    changes: Dict[str, Dict[str, Any]]
    created_at: datetime
