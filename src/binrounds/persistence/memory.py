"""Process-local store used when no database is configured, and in tests."""

from __future__ import annotations

import copy
import threading
from typing import Iterable, Optional, Sequence

from ..errors import Conflict, DuplicateRun, NoCollectionToUndo, NotFound
from ..models.domain import (
    Booking,
    CollectionLogEntry,
    DailyRun,
    Issue,
    NotificationEvent,
    RouteArea,
    RunKey,
    Subscription,
    SubscriptionStatus,
    SCHEDULABLE_STATUSES,
)
from ..services.scheduling.calendar import utc_now_iso

_SUBSCRIPTION_FIELDS = frozenset(Subscription.__slots__)
_RUN_FIELDS = frozenset({"vehicle_id", "notes"})
_ISSUE_FIELDS = frozenset(Issue.__slots__) - {"id", "run_id", "stop_type", "stop_id"}


class MemoryStore:
    """Every compound write runs under a single lock, which is what makes
    ledger appends atomic and daily-run creation unique."""

    backend = "memory"

    def __init__(
        self,
        route_areas: Iterable[RouteArea] = (),
        bookings: Iterable[Booking] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._route_areas: list[RouteArea] = list(route_areas)
        self._subscriptions: dict[str, Subscription] = {}
        self._collections: dict[str, list[CollectionLogEntry]] = {}
        self._runs: dict[str, DailyRun] = {}
        self._run_keys: dict[RunKey, str] = {}
        self._bookings: list[Booking] = list(bookings)
        self._issues: dict[str, Issue] = {}
        self._notifications: list[NotificationEvent] = []

    # route areas ---------------------------------------------------------

    def add_route_area(self, area: RouteArea) -> RouteArea:
        with self._lock:
            self._route_areas.append(area)
        return area

    def list_route_areas(self, *, active_only: bool = True) -> list[RouteArea]:
        with self._lock:
            areas = [copy.copy(area) for area in self._route_areas if area.active or not active_only]
        return sorted(areas, key=lambda area: (area.sort_order, area.name))

    # subscriptions -------------------------------------------------------

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        with self._lock:
            found = self._subscriptions.get(subscription_id)
            return copy.copy(found) if found else None

    def list_subscriptions(
        self,
        *,
        statuses: Optional[Iterable[SubscriptionStatus]] = None,
        limit: Optional[int] = None,
    ) -> list[Subscription]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            rows = [
                copy.copy(sub)
                for sub in self._subscriptions.values()
                if wanted is None or sub.status in wanted
            ]
        rows.sort(key=lambda sub: (sub.created_at or "", sub.id))
        return rows[:limit] if limit is not None else rows

    def subscriptions_due_on(self, day: str) -> list[Subscription]:
        with self._lock:
            return [
                copy.copy(sub)
                for sub in self._subscriptions.values()
                if sub.next_collection_date == day and sub.status in SCHEDULABLE_STATUSES
            ]

    def insert_subscription(self, subscription: Subscription) -> Subscription:
        with self._lock:
            if subscription.id in self._subscriptions:
                raise ValueError(f"Subscription {subscription.id} already exists")
            now = utc_now_iso()
            subscription.created_at = subscription.created_at or now
            subscription.updated_at = now
            self._subscriptions[subscription.id] = copy.copy(subscription)
            return copy.copy(subscription)

    def update_subscription(self, subscription_id: str, changes: dict) -> Subscription:
        unknown = set(changes) - _SUBSCRIPTION_FIELDS
        if unknown:
            raise ValueError(f"Unknown subscription fields: {sorted(unknown)}")
        with self._lock:
            current = self._require_subscription(subscription_id)
            for name, value in changes.items():
                setattr(current, name, value)
            current.updated_at = utc_now_iso()
            return copy.copy(current)

    def _require_subscription(self, subscription_id: str) -> Subscription:
        current = self._subscriptions.get(subscription_id)
        if current is None:
            raise NotFound(f"Subscription {subscription_id} not found", field="subscription_id")
        return current

    # collection ledger ---------------------------------------------------

    def append_collection(
        self, entry: CollectionLogEntry, *, anchor_date: str
    ) -> tuple[CollectionLogEntry, Subscription]:
        with self._lock:
            current = self._require_subscription(entry.subscription_id)
            entry.previous_next_collection_date = current.next_collection_date
            entry.previous_anchor_date = current.anchor_date
            entry.created_at = entry.created_at or utc_now_iso()
            self._collections.setdefault(entry.subscription_id, []).append(copy.copy(entry))
            current.next_collection_date = entry.next_collection_date
            current.anchor_date = anchor_date
            current.updated_at = utc_now_iso()
            return copy.copy(entry), copy.copy(current)

    def pop_last_collection(self, subscription_id: str) -> tuple[CollectionLogEntry, Subscription]:
        with self._lock:
            current = self._require_subscription(subscription_id)
            history = self._collections.get(subscription_id) or []
            if not history:
                raise NoCollectionToUndo(f"No collection to undo for subscription {subscription_id}")
            entry = history.pop()
            current.next_collection_date = entry.previous_next_collection_date
            current.anchor_date = entry.previous_anchor_date
            current.updated_at = utc_now_iso()
            return entry, copy.copy(current)

    def list_collections(self, subscription_id: str) -> list[CollectionLogEntry]:
        with self._lock:
            history = list(self._collections.get(subscription_id) or [])
        return [copy.copy(entry) for entry in reversed(history)]

    # daily runs ----------------------------------------------------------

    def _copy_run(self, run: DailyRun) -> DailyRun:
        duplicate = copy.copy(run)
        duplicate.staff_ids = list(run.staff_ids)
        return duplicate

    def find_run(self, key: RunKey) -> Optional[DailyRun]:
        with self._lock:
            run_id = self._run_keys.get(key)
            return self._copy_run(self._runs[run_id]) if run_id else None

    def insert_run(self, run: DailyRun) -> DailyRun:
        with self._lock:
            if run.key in self._run_keys:
                raise DuplicateRun(f"Daily run already exists for {run.key}")
            run.created_at = run.created_at or utc_now_iso()
            self._runs[run.id] = self._copy_run(run)
            self._run_keys[run.key] = run.id
            return self._copy_run(run)

    def get_run(self, run_id: str) -> Optional[DailyRun]:
        with self._lock:
            found = self._runs.get(run_id)
            return self._copy_run(found) if found else None

    def list_runs(self, run_date: Optional[str] = None) -> list[DailyRun]:
        with self._lock:
            runs = [
                self._copy_run(run)
                for run in self._runs.values()
                if run_date is None or run.run_date == run_date
            ]
        return sorted(runs, key=lambda run: (run.run_date, run.route_area, run.route_slot))

    def _require_run(self, run_id: str) -> DailyRun:
        current = self._runs.get(run_id)
        if current is None:
            raise NotFound(f"Run {run_id} not found", field="run_id")
        return current

    def update_run(self, run_id: str, changes: dict) -> DailyRun:
        unknown = set(changes) - _RUN_FIELDS
        if unknown:
            raise ValueError(f"Unsupported run fields: {sorted(unknown)}")
        with self._lock:
            current = self._require_run(run_id)
            for name, value in changes.items():
                setattr(current, name, value)
            return self._copy_run(current)

    def set_run_staff(self, run_id: str, staff_ids: Sequence[str]) -> DailyRun:
        with self._lock:
            current = self._require_run(run_id)
            current.staff_ids = list(staff_ids)
            return self._copy_run(current)

    # bookings ------------------------------------------------------------

    def add_booking(self, booking: Booking) -> Booking:
        with self._lock:
            self._bookings.append(booking)
        return booking

    def bookings_due_on(self, day: str) -> list[Booking]:
        with self._lock:
            return [copy.copy(booking) for booking in self._bookings if booking.due_date == day]

    # issues --------------------------------------------------------------

    def upsert_issue(self, issue: Issue) -> Issue:
        with self._lock:
            for existing in self._issues.values():
                if (existing.run_id, existing.stop_type, existing.stop_id) == (
                    issue.run_id,
                    issue.stop_type,
                    issue.stop_id,
                ):
                    issue.id = existing.id
                    break
            issue.created_at = issue.created_at or utc_now_iso()
            self._issues[issue.id] = copy.copy(issue)
            return copy.copy(issue)

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        with self._lock:
            found = self._issues.get(issue_id)
            return copy.copy(found) if found else None

    def update_issue(self, issue_id: str, changes: dict, *, require_open: bool = False) -> Issue:
        unknown = set(changes) - _ISSUE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported issue fields: {sorted(unknown)}")
        with self._lock:
            current = self._issues.get(issue_id)
            if current is None:
                raise NotFound(f"Issue {issue_id} not found", field="issue_id")
            if require_open and current.resolved_at is not None:
                raise Conflict(f"Issue {issue_id} is already closed")
            for name, value in changes.items():
                setattr(current, name, value)
            return copy.copy(current)

    def list_issues(self, *, run_id: Optional[str] = None, open_only: bool = False) -> list[Issue]:
        with self._lock:
            rows = [
                copy.copy(issue)
                for issue in self._issues.values()
                if (run_id is None or issue.run_id == run_id) and (not open_only or issue.is_open)
            ]
        return sorted(rows, key=lambda issue: issue.created_at or "", reverse=True)

    # notification outbox -------------------------------------------------

    def enqueue_notification(self, event: NotificationEvent) -> NotificationEvent:
        with self._lock:
            self._notifications.append(copy.copy(event))
        return event

    def cancel_pending_notifications(self, event_type: str, target_prefix: str, cancelled_at: str) -> int:
        cancelled = 0
        with self._lock:
            for event in self._notifications:
                if (
                    event.event_type == event_type
                    and event.status == "pending"
                    and event.target_id.startswith(target_prefix)
                ):
                    event.status = "cancelled"
                    event.cancelled_at = cancelled_at
                    cancelled += 1
        return cancelled

    def list_notifications(self) -> list[NotificationEvent]:
        with self._lock:
            return [copy.copy(event) for event in self._notifications]
