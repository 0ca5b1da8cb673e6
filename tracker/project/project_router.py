# tracker/project/project_router.py

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.models.iteration import Iteration
from tracker.models.milestone import Milestone
from tracker.models.project import Project
from tracker.project.timeline import IterationTimeline, MilestoneTimeline
from tracker.schemas.project_schema import (
    IterationCreate,
    IterationRead,
    IterationTimelineRead,
    MilestoneCreate,
    MilestoneRead,
    MilestoneTimelineRead,
    ProjectCreate,
    ProjectRead,
)

logger = logging.getLogger("tracker.project")

router = APIRouter(prefix="/projects", tags=["projects"])


def _get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _iteration(iteration):
    return IterationRead.model_validate(iteration) if iteration is not None else None


def _iterations(iterations):
    return [IterationRead.model_validate(i) for i in iterations]


# ==========================
#  PROJECTS
# ==========================
@router.post("/", response_model=ProjectRead, status_code=201)
def create_project(data: ProjectCreate, db: Session = Depends(get_db)):
    exists = db.query(Project).filter(Project.name == data.name).first()
    if exists:
        raise HTTPException(400, "Project name already taken")
    if data.parent_id is not None:
        _get_project_or_404(db, data.parent_id)

    project = Project(name=data.name, description=data.description, parent_id=data.parent_id)
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(project_id: int, db: Session = Depends(get_db)):
    return _get_project_or_404(db, project_id)


@router.delete("/{project_id}", status_code=204)
def delete_project(project_id: int, db: Session = Depends(get_db)):
    project = _get_project_or_404(db, project_id)

    # iterations, milestones, stories, audit entries and sub-projects go too;
    # users are only unlinked
    db.delete(project)
    db.commit()
    logger.info("project_deleted", extra={"project_id": project_id})
    return


# ==========================
#  ITERATIONS
# ==========================
@router.post("/{project_id}/iterations", response_model=IterationRead, status_code=201)
def create_iteration(project_id: int, data: IterationCreate, db: Session = Depends(get_db)):
    _get_project_or_404(db, project_id)

    iteration = Iteration(project_id=project_id, **data.model_dump())
    db.add(iteration)
    db.commit()
    db.refresh(iteration)
    return iteration


@router.delete("/{project_id}/iterations/{iteration_id}", status_code=204)
def delete_iteration(project_id: int, iteration_id: int, db: Session = Depends(get_db)):
    iteration = db.get(Iteration, iteration_id)
    if not iteration or iteration.project_id != project_id:
        raise HTTPException(status_code=404, detail="Iteration not found")

    # its stories drop back into the backlog
    db.delete(iteration)
    db.commit()
    return


@router.get("/{project_id}/iterations/timeline", response_model=IterationTimelineRead)
def iteration_timeline(project_id: int, now: Optional[date] = None, db: Session = Depends(get_db)):
    project = _get_project_or_404(db, project_id)
    now = now or date.today()

    timeline = IterationTimeline(project.iterations, now)
    return IterationTimelineRead(
        now=now,
        past=_iterations(timeline.past()),
        current=_iteration(timeline.current()),
        future=_iterations(timeline.future()),
        previous=_iteration(timeline.previous()),
        next=_iteration(timeline.next()),
    )


# ==========================
#  MILESTONES
# ==========================
@router.post("/{project_id}/milestones", response_model=MilestoneRead, status_code=201)
def create_milestone(project_id: int, data: MilestoneCreate, db: Session = Depends(get_db)):
    _get_project_or_404(db, project_id)

    milestone = Milestone(project_id=project_id, **data.model_dump())
    db.add(milestone)
    db.commit()
    db.refresh(milestone)
    return milestone


@router.get("/{project_id}/milestones/timeline", response_model=MilestoneTimelineRead)
def milestone_timeline(project_id: int, now: Optional[date] = None, db: Session = Depends(get_db)):
    project = _get_project_or_404(db, project_id)
    now = now or date.today()

    timeline = MilestoneTimeline(project.milestones, now)
    return MilestoneTimelineRead(
        now=now,
        future=[MilestoneRead.model_validate(m) for m in timeline.future()],
        recent=[MilestoneRead.model_validate(m) for m in timeline.recent()],
        past=[MilestoneRead.model_validate(m) for m in timeline.past()],
    )
