"""Driver-raised stop issues and their one-time resolution by ops."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from ...errors import Conflict, InvalidInput, NotFound
from ...models.domain import Issue
from ...persistence.store import Store
from ..scheduling.calendar import utc_now_iso

logger = logging.getLogger(__name__)

STOP_TYPES = ("subscription", "booking")


def raise_issue(
    store: Store,
    run_id: str,
    stop_type: str,
    stop_id: str,
    reason: str,
    details: str = "",
    *,
    staff_id: Optional[str] = None,
) -> Issue:
    """Record an issue against a stop. Raising it again for the same stop replaces and reopens it."""
    kind = (stop_type or "").strip().lower()
    if kind not in STOP_TYPES:
        raise InvalidInput("Invalid stop_type (subscription|booking)", field="stop_type")
    stop = (stop_id or "").strip()
    if not stop:
        raise InvalidInput("Missing stop_id", field="stop_id")
    text = (reason or "").strip()
    if not text:
        raise InvalidInput("Missing reason", field="reason")
    if store.get_run(run_id) is None:
        raise NotFound(f"Run {run_id} not found", field="run_id")

    issue = store.upsert_issue(
        Issue(
            id=uuid.uuid4().hex,
            run_id=run_id,
            stop_type=kind,
            stop_id=stop,
            reason=text,
            details=(details or "").strip(),
            created_by=staff_id,
            created_at=utc_now_iso(),
        )
    )
    logger.info(f"Issue {issue.id} raised on run {run_id} for {kind} {stop}: {text}")
    return issue


def close_issue(
    store: Store,
    issue_id: str,
    resolution_action: str,
    resolution_outcome: str = "",
    *,
    staff_id: Optional[str] = None,
) -> Issue:
    action = (resolution_action or "").strip()
    if not action:
        raise InvalidInput("Add an action note before closing.", field="resolution_action")
    issue = store.get_issue(issue_id)
    if issue is None:
        raise NotFound(f"Issue {issue_id} not found", field="issue_id")
    if not issue.is_open:
        raise Conflict(f"Issue {issue_id} was already closed at {issue.resolved_at}")

    closed = store.update_issue(
        issue_id,
        {
            "resolution_action": action,
            "resolution_outcome": (resolution_outcome or "").strip(),
            "resolved_at": utc_now_iso(),
            "resolved_by": staff_id,
        },
        require_open=True,
    )
    logger.info(f"Issue {issue_id} closed: {action}")
    return closed


def list_issues(store: Store, *, run_id: Optional[str] = None, open_only: bool = False) -> list[Issue]:
    return store.list_issues(run_id=run_id, open_only=open_only)


def count_open(store: Store) -> int:
    return len(store.list_issues(open_only=True))
