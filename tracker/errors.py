from __future__ import annotations

from typing import Dict, Optional


class BacklogError(Exception):
    """Recoverable failure of a backlog operation. Nothing was written."""


class ValidationError(BacklogError):
    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = fields or {}


class InvalidPositionError(BacklogError):
    def __init__(self, position, last_position: int):
        super().__init__(f"Invalid position {position!r}; valid range is 1..{last_position}")
        self.position = position
        self.last_position = last_position


class EmptyBulkInputError(BacklogError):
    pass


class NotFoundError(BacklogError):
    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConcurrencyConflictError(BacklogError):
    """Another request holds the project or changed the rows first; retry."""
