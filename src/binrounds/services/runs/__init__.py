"""Daily run services."""

from .service import assign_staff, assign_vehicle, ensure_run, get_run, list_runs, update_notes
from .summary import DueSummary, due_count, due_subscriptions

__all__ = [
    "assign_staff",
    "assign_vehicle",
    "ensure_run",
    "get_run",
    "list_runs",
    "update_notes",
    "DueSummary",
    "due_count",
    "due_subscriptions",
]
