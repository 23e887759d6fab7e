"""Domain models for subscriptions, routes, runs and collection history.

Dates are plain ``YYYY-MM-DD`` strings throughout; timestamps are ISO-8601
UTC strings. ``YYYY-MM-DD`` strings order the same way as the dates they
name, so comparisons are done on the strings directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAUSED = "paused"
    HOLD = "hold"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    CANCELED = "canceled"

    def is_schedulable(self) -> bool:
        return self in SCHEDULABLE_STATUSES


SCHEDULABLE_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})


class RouteSlot(str, Enum):
    AM = "AM"
    PM = "PM"
    ANY = "ANY"


# Sort position of each slot inside a day.
SLOT_ORDER = {RouteSlot.AM.value: 1, RouteSlot.PM.value: 2, RouteSlot.ANY.value: 3}


@dataclass(slots=True)
class RouteArea:
    """A named operational route as configured by ops."""

    id: str
    name: str
    route_day: str
    slot: str = RouteSlot.ANY.value
    postcode_prefixes: tuple[str, ...] = ()
    active: bool = True
    sort_order: int = 0


@dataclass(slots=True)
class Subscription:
    """One customer's recurring collection service."""

    id: str
    postcode: str
    address: str
    frequency: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    extra_bags: int = 0
    use_own_bin: bool = False
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    route_area: Optional[str] = None
    route_day: Optional[str] = None
    route_slot: Optional[str] = None
    anchor_date: Optional[str] = None
    next_collection_date: Optional[str] = None
    pause_from: Optional[str] = None
    pause_to: Optional[str] = None
    ops_notes: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def has_route(self) -> bool:
        return all((value or "").strip() for value in (self.route_area, self.route_day, self.route_slot))

    def is_paused_on(self, day: str) -> bool:
        # Only a fully specified window pauses the subscription.
        if not self.pause_from or not self.pause_to:
            return False
        return self.pause_from <= day <= self.pause_to

    def is_schedulable(self) -> bool:
        return self.status.is_schedulable()


@dataclass(slots=True)
class CollectionLogEntry:
    """A completed collection; the newest entry per subscription is the undo target."""

    id: str
    subscription_id: str
    collected_date: str
    previous_next_collection_date: Optional[str]
    next_collection_date: str
    previous_anchor_date: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RunKey:
    run_date: str
    route_area: str
    route_day: str
    route_slot: str


@dataclass(slots=True)
class DailyRun:
    """The unit of dispatch a driver is assigned to."""

    id: str
    run_date: str
    route_day: str
    route_area: str
    route_slot: str = RouteSlot.ANY.value
    vehicle_id: Optional[str] = None
    staff_ids: list[str] = field(default_factory=list)
    notes: str = ""
    created_at: Optional[str] = None

    @property
    def key(self) -> RunKey:
        return RunKey(self.run_date, self.route_area, self.route_day, self.route_slot)


@dataclass(slots=True)
class Issue:
    """A driver-raised exception against a stop within a run."""

    id: str
    run_id: str
    stop_type: str
    stop_id: str
    reason: str
    details: str = ""
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    resolution_action: Optional[str] = None
    resolution_outcome: Optional[str] = None
    resolved_at: Optional[str] = None
    resolved_by: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None


@dataclass(slots=True)
class Booking:
    """One-off booking or quote visit; only read for due-count breakdowns."""

    id: str
    route_area: Optional[str]
    route_day: Optional[str]
    route_slot: Optional[str]
    service_date: Optional[str] = None
    collection_date: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    title: Optional[str] = None
    payload: dict = field(default_factory=dict)

    @property
    def due_date(self) -> Optional[str]:
        return (self.service_date or "")[:10] or (self.collection_date or "")[:10] or None


@dataclass(slots=True)
class NotificationEvent:
    """Outbound informational event. Written by the engine, consumed elsewhere."""

    id: str
    event_type: str
    target_type: str
    target_id: str
    recipient_email: str
    scheduled_at: str
    status: str = "pending"
    payload: dict = field(default_factory=dict)
    cancelled_at: Optional[str] = None
