"""Outbound 'subscription collected' events.

The engine only writes to the queue; delivery happens elsewhere. Queue
failures never undo a recorded collection, they are logged and reported.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from ...config import settings
from ...errors import SchedulingError
from ...models.domain import NotificationEvent, Subscription
from ...persistence.store import Store
from ..scheduling.calendar import utc_now_iso

logger = logging.getLogger(__name__)

COLLECTED_EVENT = "subscription_collected"
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_email(value: object) -> bool:
    return bool(_EMAIL_RE.match(str(value or "").strip()))


def queue_collected_notification(
    store: Store,
    subscription: Subscription,
    collected_date: str,
    *,
    completed_by: Optional[str] = None,
) -> str:
    """Queue the delayed 'bin emptied' notice. Returns ``queued``, ``skipped_no_valid_email`` or ``failed``."""
    recipient = (subscription.email or "").strip()
    if not is_email(recipient):
        return "skipped_no_valid_email"

    scheduled_at = datetime.now(timezone.utc) + timedelta(hours=settings.notification_delay_hours)
    event = NotificationEvent(
        id=uuid.uuid4().hex,
        event_type=COLLECTED_EVENT,
        target_type="subscription",
        target_id=f"{subscription.id}:{collected_date}",
        recipient_email=recipient,
        scheduled_at=scheduled_at.isoformat(),
        payload={
            "subscription_id": subscription.id,
            "collected_date": collected_date,
            "postcode": subscription.postcode,
            "address": subscription.address,
            "name": subscription.name or "",
            "completed_by": completed_by or "ops",
        },
    )
    try:
        store.enqueue_notification(event)
    except SchedulingError as exc:
        logger.warning(f"Failed to queue collected notification for {subscription.id}: {exc}")
        return "failed"
    return "queued"


def cancel_collected_notifications(store: Store, subscription_id: str) -> int:
    """Cancel every pending collected notice for the subscription; returns how many."""
    try:
        return store.cancel_pending_notifications(COLLECTED_EVENT, f"{subscription_id}:", utc_now_iso())
    except SchedulingError as exc:
        logger.warning(f"Failed to cancel collected notifications for {subscription_id}: {exc}")
        return 0
