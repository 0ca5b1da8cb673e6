"""
Backlog service: the single entry point for changing story cards.

Routers (or any other caller) go through here so that ordering, auditing and
the per-project transaction scope are applied the same way everywhere.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from tracker.errors import ConcurrencyConflictError, EmptyBulkInputError, NotFoundError, ValidationError
from tracker.models.audit import AuditEntry
from tracker.models.iteration import Iteration
from tracker.models.project import Project
from tracker.models.story import Story
from tracker.models.user import User
from tracker.schemas.story_schema import StoryCreate, StoryUpdate
from tracker.story.audit import AuditRecorder
from tracker.story.locking import ProjectLocks, project_locks
from tracker.story.ordering import OrderingEngine

logger = logging.getLogger("tracker.story")

CLONE_PREFIX = "Clone:"


def _validation_error(exc: SchemaValidationError) -> ValidationError:
    fields = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        fields.setdefault(field, error["msg"])
    return ValidationError("Story attributes are invalid", fields)


class BacklogService:
    def __init__(self, db: Session, locks: Optional[ProjectLocks] = None):
        self.db = db
        self.locks = locks or project_locks
        self.ordering = OrderingEngine(db)
        self.recorder = AuditRecorder(db)

    # -------------------------
    # Transaction scope
    # -------------------------

    @contextmanager
    def _project_scope(self, project_id: int):
        """
        Exclusive, all-or-nothing unit of work over one project's stories.

        Holds the in-process project lock and the project row lock until the
        transaction is committed or rolled back.
        """
        with self.locks.hold(project_id):
            try:
                project = (
                    self.db.query(Project)
                    .filter(Project.id == project_id)
                    .with_for_update()
                    .one_or_none()
                )
                if project is None:
                    raise NotFoundError("Project", project_id)
                yield project
                self.db.commit()
            except StaleDataError as exc:
                self.db.rollback()
                logger.warning("story_write_conflict", extra={"project_id": project_id})
                raise ConcurrencyConflictError(f"Stories of project {project_id} changed concurrently") from exc
            except Exception:
                self.db.rollback()
                raise

    # -------------------------
    # Lookups
    # -------------------------

    def get_story(self, story_id: int) -> Story:
        story = self.db.get(Story, story_id)
        if story is None:
            raise NotFoundError("Story", story_id)
        return story

    def _locked_story(self, story_id: int) -> Story:
        """Re-read a story once the project scope is held; it may have been deleted meanwhile."""
        story = self.db.get(Story, story_id, populate_existing=True)
        if story is None:
            raise NotFoundError("Story", story_id)
        return story

    def get_project(self, project_id: int) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def list_stories(self, project_id: int) -> List[Story]:
        self.get_project(project_id)
        return self.ordering.sequence(project_id)

    def backlog(self, project_id: int) -> List[Story]:
        """Stories not scheduled into any iteration, in position order."""
        return [s for s in self.list_stories(project_id) if s.iteration_id is None]

    def audit_log(self, story_id: int) -> List[AuditEntry]:
        self.get_story(story_id)
        return self.recorder.history(story_id)

    def _check_references(self, project_id: int, values: Dict[str, Any]) -> None:
        iteration_id = values.get("iteration_id")
        if iteration_id is not None:
            iteration = self.db.get(Iteration, iteration_id)
            if iteration is None:
                raise NotFoundError("Iteration", iteration_id)
            if iteration.project_id != project_id:
                raise ValidationError(
                    "Iteration belongs to another project",
                    {"iteration_id": f"iteration {iteration_id} is not part of project {project_id}"},
                )

        owner_id = values.get("owner_id")
        if owner_id is not None:
            self._check_user(owner_id)

    def _check_user(self, user_id: Optional[int]) -> None:
        if user_id is not None and self.db.get(User, user_id) is None:
            raise NotFoundError("User", user_id)

    # -------------------------
    # Create
    # -------------------------

    def create_story(self, project_id: int, attributes: Dict[str, Any], creator_id: Optional[int]) -> Story:
        try:
            data = StoryCreate.model_validate(attributes)
        except SchemaValidationError as exc:
            raise _validation_error(exc) from exc

        with self._project_scope(project_id):
            values = data.model_dump()
            self._check_user(creator_id)
            self._check_references(project_id, values)

            story = Story(project_id=project_id, creator_id=creator_id, **values)
            self.ordering.append(story)
            self.db.add(story)

        logger.info(
            "story_created",
            extra={"story_id": story.id, "project_id": project_id, "position": story.position},
        )
        return story

    def bulk_create(self, project_id: int, text: Optional[str], creator_id: Optional[int]) -> List[Story]:
        """One story per non-blank line of `text`, appended in the given order."""
        titles = [line.strip() for line in (text or "").splitlines() if line.strip()]
        if not titles:
            raise EmptyBulkInputError("Enter at least one story card title")

        try:
            validated = [StoryCreate(title=title) for title in titles]
        except SchemaValidationError as exc:
            raise _validation_error(exc) from exc

        created = []
        with self._project_scope(project_id):
            self._check_user(creator_id)
            next_position = self.ordering.last_position(project_id)
            for data in validated:
                next_position += 1
                story = Story(project_id=project_id, creator_id=creator_id, position=next_position, **data.model_dump())
                self.db.add(story)
                created.append(story)

        logger.info("stories_bulk_created", extra={"project_id": project_id, "count": len(created)})
        return created

    def clone_story(self, story_id: int, creator_id: Optional[int]) -> Story:
        """Copy of the story titled "Clone:<title>"; a title that would get too long is rejected."""
        project_id = self.get_story(story_id).project_id
        with self._project_scope(project_id):
            source = self._locked_story(story_id)
            self._check_user(creator_id)
            try:
                title = StoryCreate(title=CLONE_PREFIX + source.title).title
            except SchemaValidationError as exc:
                raise _validation_error(exc) from exc

            clone = Story(
                project_id=source.project_id,
                title=title,
                description=source.description,
                status=source.status,
                value=source.value,
                risk=source.risk,
                owner_id=source.owner_id,
                iteration_id=source.iteration_id,
                creator_id=creator_id,
            )
            self.ordering.append(clone)
            self.db.add(clone)

        logger.info("story_cloned", extra={"story_id": clone.id, "source_id": story_id})
        return clone

    # -------------------------
    # Update
    # -------------------------

    def update_story(self, story_id: int, attributes: Dict[str, Any], updater_id: Optional[int]) -> Story:
        """
        Apply `attributes` (only the keys present) and audit the change.

        Story and audit entry are committed together; any failure leaves
        both untouched.
        """
        try:
            data = StoryUpdate.model_validate(attributes)
        except SchemaValidationError as exc:
            raise _validation_error(exc) from exc

        values = data.model_dump(exclude_unset=True)
        position = values.pop("position", None)

        project_id = self.get_story(story_id).project_id
        with self._project_scope(project_id):
            story = self._locked_story(story_id)
            self._check_user(updater_id)
            self._check_references(project_id, values)

            if position is not None:
                self.ordering.insert_at(story, position)

            changes = self.recorder.diff(story, values)
            for field, value in values.items():
                setattr(story, field, value)

            if changes:
                story.updater_id = updater_id
                self.recorder.record(story, changes, updater_id)

        logger.info(
            "story_updated",
            extra={"story_id": story_id, "fields": sorted(changes), "repositioned": position is not None},
        )
        return story

    def assign_iteration(self, story_id: int, iteration_id: Optional[int], user_id: Optional[int]) -> Story:
        """Schedule a story into an iteration, or back to the backlog with None."""
        return self.update_story(story_id, {"iteration_id": iteration_id}, user_id)

    def assign_owner(self, story_id: int, owner_id: Optional[int], user_id: Optional[int]) -> Story:
        return self.update_story(story_id, {"owner_id": owner_id}, user_id)

    # -------------------------
    # Ordering
    # -------------------------

    def reprioritize(self, story_id: int, position) -> Story:
        project_id = self.get_story(story_id).project_id
        with self._project_scope(project_id):
            story = self.ordering.insert_at(self._locked_story(story_id), position)
        return story

    def move_up(self, story_id: int) -> Story:
        project_id = self.get_story(story_id).project_id
        with self._project_scope(project_id):
            story = self._locked_story(story_id)
            moved = self.ordering.move_up(story)
        logger.info("story_moved_up", extra={"story_id": story_id, "moved": moved})
        return story

    def move_down(self, story_id: int) -> Story:
        project_id = self.get_story(story_id).project_id
        with self._project_scope(project_id):
            story = self._locked_story(story_id)
            moved = self.ordering.move_down(story)
        logger.info("story_moved_down", extra={"story_id": story_id, "moved": moved})
        return story

    # -------------------------
    # Delete
    # -------------------------

    def delete_story(self, story_id: int) -> None:
        project_id = self.get_story(story_id).project_id
        with self._project_scope(project_id):
            # audit entries go with the story (relationship cascade)
            self.ordering.remove(self._locked_story(story_id))

        logger.info("story_deleted", extra={"story_id": story_id, "project_id": project_id})
