"""
Story audit trail.

One AuditEntry per logical update, holding every tracked field that changed
in that update. Updates that change nothing leave no trace.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from tracker.models.audit import AuditEntry
from tracker.models.story import Story

logger = logging.getLogger("tracker.audit")

TRACKED_FIELDS = (
    "title",
    "description",
    "status",
    "value",
    "risk",
    "owner_id",
    "iteration_id",
)


def _plain(value: Any) -> Any:
    # enums are stored by name so old entries stay readable if numbering changes
    if isinstance(value, enum.Enum):
        return value.name
    return value


class AuditRecorder:
    def __init__(self, db: Session):
        self.db = db

    def diff(self, story: Story, attributes: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Compare `attributes` against the story before they are applied."""
        changes = {}
        for field in TRACKED_FIELDS:
            if field not in attributes:
                continue
            old = getattr(story, field)
            new = attributes[field]
            if old != new:
                changes[field] = {"old": _plain(old), "new": _plain(new)}
        return changes

    def record(self, story: Story, changes: Dict[str, Dict[str, Any]], user_id: Optional[int]) -> Optional[AuditEntry]:
        if not changes:
            return None

        entry = AuditEntry(story=story, user_id=user_id, changes=changes)
        self.db.add(entry)

        logger.info(
            "story_audited",
            extra={"story_id": story.id, "user_id": user_id, "fields": sorted(changes)},
        )
        return entry

    def history(self, story_id: int) -> List[AuditEntry]:
        return (
            self.db.query(AuditEntry)
            .filter(AuditEntry.story_id == story_id)
            .order_by(AuditEntry.created_at.desc(), AuditEntry.id.desc())
            .all()
        )
