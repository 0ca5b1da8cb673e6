"""
Story ordering.

Every story of a project holds a position in 1..N with no gaps and no
duplicates. All structural changes load the project's stories in order,
edit that list, then write back only the positions that moved.

The caller is responsible for holding the project scope (lock + transaction)
around every call that writes; see BacklogService.
"""

from __future__ import annotations

import logging
import re
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.errors import InvalidPositionError, NotFoundError
from tracker.models.story import Story

logger = logging.getLogger("tracker.ordering")

_NUMERIC = re.compile(r"[0-9]+")


class OrderingEngine:
    def __init__(self, db: Session):
        self.db = db

    # -------------------------
    # Reads
    # -------------------------

    def sequence(self, project_id: int) -> List[Story]:
        """Stories of the project in position order, re-read from the database."""
        self.db.flush()
        return (
            self.db.query(Story)
            .filter(Story.project_id == project_id)
            .order_by(Story.position, Story.id)
            .populate_existing()
            .all()
        )

    def last_position(self, project_id: int) -> int:
        last = (
            self.db.query(func.max(Story.position))
            .filter(Story.project_id == project_id)
            .scalar()
        )
        return last or 0

    # -------------------------
    # Writes
    # -------------------------

    def append(self, story: Story) -> Story:
        """Give a new (not yet flushed) story the slot after the last one."""
        story.position = self.last_position(story.project_id) + 1
        return story

    def move_up(self, story: Story) -> bool:
        stories = self.sequence(story.project_id)
        index = self._index_of(stories, story)
        if index == 0:
            return False
        stories[index - 1], stories[index] = stories[index], stories[index - 1]
        self._renumber(stories)
        return True

    def move_down(self, story: Story) -> bool:
        stories = self.sequence(story.project_id)
        index = self._index_of(stories, story)
        if index == len(stories) - 1:
            return False
        stories[index + 1], stories[index] = stories[index], stories[index + 1]
        self._renumber(stories)
        return True

    def insert_at(self, story: Story, target) -> Story:
        """
        Move a story to `target` (1-based), shifting the stories in between.

        `target` may be an int or a string of digits. Anything else, zero,
        or a value past the last position raises InvalidPositionError before
        any position is touched.
        """
        stories = self.sequence(story.project_id)
        position = self.parse_position(target, len(stories))

        stories.pop(self._index_of(stories, story))
        stories.insert(position - 1, story)
        changed = self._renumber(stories)

        logger.info(
            "story_inserted_at",
            extra={"story_id": story.id, "project_id": story.project_id, "position": position, "rows_changed": changed},
        )
        return story

    def remove(self, story: Story) -> None:
        """Delete the story and close the gap it leaves."""
        stories = self.sequence(story.project_id)
        stories.pop(self._index_of(stories, story))
        self.db.delete(story)
        self._renumber(stories)

    # -------------------------
    # Helpers
    # -------------------------

    @staticmethod
    def parse_position(target, last_position: int) -> int:
        if isinstance(target, bool):
            raise InvalidPositionError(target, last_position)

        if isinstance(target, int):
            position = target
        elif isinstance(target, str) and _NUMERIC.fullmatch(target.strip()):
            position = int(target.strip())
        else:
            raise InvalidPositionError(target, last_position)

        if position < 1 or position > last_position:
            raise InvalidPositionError(target, last_position)
        return position

    @staticmethod
    def _renumber(stories: List[Story]) -> int:
        changed = 0
        for index, story in enumerate(stories, start=1):
            if story.position != index:
                story.position = index
                changed += 1
        return changed

    @staticmethod
    def _index_of(stories: List[Story], story: Story) -> int:
        try:
            return stories.index(story)
        except ValueError:
            raise NotFoundError("Story", story.id) from None
