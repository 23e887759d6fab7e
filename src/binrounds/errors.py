"""Error taxonomy shared by the scheduling engine and its HTTP surface.

Every failure carries a short human-readable message plus a machine-readable
``kind`` so callers can tell a user typo (``invalid_input``) from bad
historical data (``corrupt_data``).
"""

from __future__ import annotations

from typing import Optional


class SchedulingError(Exception):
    """Base class for all engine failures."""

    kind = "error"

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        payload = {"kind": self.kind, "message": self.message}
        if self.field:
            payload["field"] = self.field
        return payload


class InvalidInput(SchedulingError, ValueError):
    """Rejected before any state change; ``field`` names the offending input."""

    kind = "invalid_input"


class InvalidFrequency(InvalidInput):
    kind = "invalid_frequency"

    def __init__(self, message: str, *, field: Optional[str] = "frequency") -> None:
        super().__init__(message, field=field)


class NotFound(SchedulingError, LookupError):
    kind = "not_found"


class Conflict(SchedulingError):
    """A normal, expected refusal (e.g. nothing to undo, issue already closed)."""

    kind = "conflict"


class NoCollectionToUndo(Conflict):
    kind = "no_collection_to_undo"


class DuplicateRun(Conflict):
    """Raised by stores when the daily-run uniqueness constraint fires."""

    kind = "duplicate_run"


class CorruptData(SchedulingError):
    """Stored data violates an invariant; surfaced distinctly from user input errors."""

    kind = "corrupt_data"


class RecurrenceOverflow(CorruptData):
    kind = "recurrence_overflow"


class StorageError(SchedulingError):
    """The persistence backend failed or returned something unusable."""

    kind = "storage_error"
