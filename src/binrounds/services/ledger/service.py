"""Collection ledger: record a collection, undo the most recent one.

Recording re-anchors the cycle on the actual collection date. A bin emptied
two weeks late on a weekly plan is next due seven days after it was emptied,
not on the date it originally should have been.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from ...errors import Conflict, NotFound
from ...models.domain import CollectionLogEntry, Subscription, SubscriptionStatus
from ...persistence.store import Store
from ..notifications.outbox import cancel_collected_notifications, queue_collected_notification
from ..scheduling.calendar import add_days, normalize_ymd, today_in_zone, utc_now_iso
from ..scheduling.recurrence import frequency_days, next_due

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CollectionOutcome:
    subscription_id: str
    collected_date: str
    previous_next_collection_date: Optional[str]
    next_collection_date: Optional[str]
    notification: str


def _require_subscription(store: Store, subscription_id: str) -> Subscription:
    subscription = store.get_subscription(subscription_id)
    if subscription is None:
        raise NotFound(f"Subscription {subscription_id} not found", field="subscription_id")
    return subscription


def record_collection(
    store: Store,
    subscription_id: str,
    collected_date: Optional[str] = None,
    *,
    completed_by: Optional[str] = None,
) -> CollectionOutcome:
    """Append a ledger entry and advance ``next_collection_date`` in one atomic write."""
    subscription = _require_subscription(store, subscription_id)
    if subscription.status is SubscriptionStatus.CANCELED:
        raise Conflict(f"Subscription {subscription_id} is canceled")

    collected = normalize_ymd(collected_date, "collected_date") if collected_date else today_in_zone()
    period = frequency_days(subscription.frequency)
    next_date = next_due(collected, period, add_days(collected, 1))

    entry = CollectionLogEntry(
        id=uuid.uuid4().hex,
        subscription_id=subscription.id,
        collected_date=collected,
        previous_next_collection_date=None,
        next_collection_date=next_date,
        created_at=utc_now_iso(),
    )
    # previous dates are filled in by the store under its write lock
    recorded, updated = store.append_collection(entry, anchor_date=collected)
    logger.info(
        f"Collection recorded for {subscription.id} on {collected}: "
        f"next {recorded.previous_next_collection_date} -> {updated.next_collection_date}"
    )

    notification = queue_collected_notification(store, updated, collected, completed_by=completed_by)
    return CollectionOutcome(
        subscription_id=subscription.id,
        collected_date=collected,
        previous_next_collection_date=recorded.previous_next_collection_date,
        next_collection_date=updated.next_collection_date,
        notification=notification,
    )


def undo_last_collection(store: Store, subscription_id: str) -> CollectionOutcome:
    """Remove the newest ledger entry and restore the dates it snapshotted.

    Raises:
        NotFound: the subscription does not exist.
        NoCollectionToUndo: the ledger is empty for this subscription.
    """
    _require_subscription(store, subscription_id)
    entry, restored = store.pop_last_collection(subscription_id)
    cancelled = cancel_collected_notifications(store, subscription_id)
    logger.info(
        f"Collection of {entry.collected_date} undone for {subscription_id}: "
        f"next restored to {restored.next_collection_date} ({cancelled} notification(s) cancelled)"
    )
    return CollectionOutcome(
        subscription_id=subscription_id,
        collected_date=entry.collected_date,
        previous_next_collection_date=entry.next_collection_date,
        next_collection_date=restored.next_collection_date,
        notification="cancelled_if_pending",
    )


def list_collections(store: Store, subscription_id: str) -> list[CollectionLogEntry]:
    _require_subscription(store, subscription_id)
    return store.list_collections(subscription_id)
