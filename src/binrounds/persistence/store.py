"""Storage contract consumed by the scheduling services.

Implementations must provide two atomic compound writes (ledger append plus
subscription update, and its undo) and must enforce daily-run uniqueness
themselves, raising ``DuplicateRun`` when a second insert for the same key
loses the race.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

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
)


class Store(Protocol):
    backend: str

    # route areas
    def list_route_areas(self, *, active_only: bool = True) -> list[RouteArea]: ...

    # subscriptions
    def get_subscription(self, subscription_id: str) -> Optional[Subscription]: ...

    def list_subscriptions(
        self,
        *,
        statuses: Optional[Iterable[SubscriptionStatus]] = None,
        limit: Optional[int] = None,
    ) -> list[Subscription]: ...

    def subscriptions_due_on(self, day: str) -> list[Subscription]: ...

    def insert_subscription(self, subscription: Subscription) -> Subscription: ...

    def update_subscription(self, subscription_id: str, changes: dict) -> Subscription: ...

    # collection ledger
    def append_collection(
        self, entry: CollectionLogEntry, *, anchor_date: str
    ) -> tuple[CollectionLogEntry, Subscription]: ...

    def pop_last_collection(self, subscription_id: str) -> tuple[CollectionLogEntry, Subscription]: ...

    def list_collections(self, subscription_id: str) -> list[CollectionLogEntry]: ...

    # daily runs
    def find_run(self, key: RunKey) -> Optional[DailyRun]: ...

    def insert_run(self, run: DailyRun) -> DailyRun: ...

    def get_run(self, run_id: str) -> Optional[DailyRun]: ...

    def list_runs(self, run_date: Optional[str] = None) -> list[DailyRun]: ...

    def update_run(self, run_id: str, changes: dict) -> DailyRun: ...

    def set_run_staff(self, run_id: str, staff_ids: Sequence[str]) -> DailyRun: ...

    # bookings
    def bookings_due_on(self, day: str) -> list[Booking]: ...

    # issues
    def upsert_issue(self, issue: Issue) -> Issue: ...

    def get_issue(self, issue_id: str) -> Optional[Issue]: ...

    def update_issue(self, issue_id: str, changes: dict, *, require_open: bool = False) -> Issue: ...

    def list_issues(self, *, run_id: Optional[str] = None, open_only: bool = False) -> list[Issue]: ...

    # notification outbox
    def enqueue_notification(self, event: NotificationEvent) -> NotificationEvent: ...

    def cancel_pending_notifications(self, event_type: str, target_prefix: str, cancelled_at: str) -> int: ...
