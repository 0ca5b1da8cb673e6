# tracker/story/story_router.py

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.schemas.story_schema import (
    AuditEntryRead,
    BulkCreate,
    IterationAssignment,
    OwnerAssignment,
    PositionUpdate,
    StoryCreate,
    StoryRead,
    StoryUpdate,
)
from tracker.story.backlog_service import BacklogService

router = APIRouter(tags=["stories"])


def get_backlog_service(db: Session = Depends(get_db)) -> BacklogService:
    return BacklogService(db)


# no auth here: whoever sits in front of the API passes the acting user along
def get_acting_user_id(x_user_id: Optional[int] = Header(default=None)) -> int:
    if x_user_id is None:
        raise HTTPException(status_code=400, detail="X-User-Id header is required")
    return x_user_id


# ==========================
#  PROJECT STORIES
# ==========================
@router.get("/projects/{project_id}/stories", response_model=list[StoryRead])
def list_stories(project_id: int, service: BacklogService = Depends(get_backlog_service)):
    return service.list_stories(project_id)


@router.get("/projects/{project_id}/stories/backlog", response_model=list[StoryRead])
def list_backlog(project_id: int, service: BacklogService = Depends(get_backlog_service)):
    return service.backlog(project_id)


@router.post("/projects/{project_id}/stories", response_model=StoryRead, status_code=201)
def create_story(
    project_id: int,
    data: StoryCreate,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.create_story(project_id, data.model_dump(), user_id)


@router.post("/projects/{project_id}/stories/bulk", response_model=list[StoryRead], status_code=201)
def bulk_create_stories(
    project_id: int,
    data: BulkCreate,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.bulk_create(project_id, data.titles, user_id)


# ==========================
#  SINGLE STORY
# ==========================
@router.get("/stories/{story_id}", response_model=StoryRead)
def get_story(story_id: int, service: BacklogService = Depends(get_backlog_service)):
    return service.get_story(story_id)


@router.patch("/stories/{story_id}", response_model=StoryRead)
def update_story(
    story_id: int,
    data: StoryUpdate,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.update_story(story_id, data.model_dump(exclude_unset=True), user_id)


@router.delete("/stories/{story_id}", status_code=204)
def delete_story(
    story_id: int,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    service.delete_story(story_id)
    return


@router.post("/stories/{story_id}/clone", response_model=StoryRead, status_code=201)
def clone_story(
    story_id: int,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.clone_story(story_id, user_id)


@router.put("/stories/{story_id}/iteration", response_model=StoryRead)
def assign_iteration(
    story_id: int,
    data: IterationAssignment,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.assign_iteration(story_id, data.iteration_id, user_id)


@router.put("/stories/{story_id}/owner", response_model=StoryRead)
def assign_owner(
    story_id: int,
    data: OwnerAssignment,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.assign_owner(story_id, data.owner_id, user_id)


@router.get("/stories/{story_id}/audit", response_model=list[AuditEntryRead])
def story_audit(story_id: int, service: BacklogService = Depends(get_backlog_service)):
    return service.audit_log(story_id)


# ==========================
#  PRIORITY
# ==========================
@router.post("/stories/{story_id}/move-up", response_model=StoryRead)
def move_up(
    story_id: int,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.move_up(story_id)


@router.post("/stories/{story_id}/move-down", response_model=StoryRead)
def move_down(
    story_id: int,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.move_down(story_id)


@router.put("/stories/{story_id}/position", response_model=StoryRead)
def set_position(
    story_id: int,
    data: PositionUpdate,
    user_id: int = Depends(get_acting_user_id),
    service: BacklogService = Depends(get_backlog_service),
):
    return service.reprioritize(story_id, data.position)
