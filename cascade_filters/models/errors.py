"""
Exception taxonomy for the cascade engine.

Only ReferenceLookupError and QueryExecutionError are user-facing, and even
those are converted into notifications at the point of occurrence.
"""

from typing import Optional


class ReferenceLookupError(Exception):
    """A reference-data fetch failed (transport or server failure)."""

    def __init__(self, message: str, level_id: Optional[str] = None, parent_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.level_id = level_id
        self.parent_id = parent_id


class QueryExecutionError(Exception):
    """The screen's primary list query failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SelectionValidationError(ValueError):
    """select() was given a value that is not among the current options."""

    def __init__(self, level_id: str, value: str, available: Optional[list] = None):
        super().__init__(f"Value {value!r} is not a current option of level {level_id!r}")
        self.level_id = level_id
        self.value = value
        self.available = available or []


class StaleResponseDiscarded(Exception):
    """A response arrived for a superseded request tag. Never surfaced to users."""

    def __init__(self, slot: str, tag: int, latest: int):
        super().__init__(f"Discarded response for {slot} (tag {tag}, latest {latest})")
        self.slot = slot
        self.tag = tag
        self.latest = latest
