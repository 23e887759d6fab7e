"""Due counts for the ops day planner."""

from __future__ import annotations

from dataclasses import dataclass, field

from ...models.domain import Booking, Subscription
from ...persistence.store import Store
from ..routing.matcher import normalize_slot
from ..scheduling.calendar import normalize_ymd, weekday_of

CATEGORIES = ("subscriptions", "bookings", "quotes")


@dataclass(slots=True)
class DueSummary:
    date: str
    route_day: str
    due_counts: dict[str, int] = field(default_factory=dict)
    breakdown: dict[str, dict[str, int]] = field(default_factory=dict)


def count_key(route_area: object, route_slot: object) -> str:
    return f"{str(route_area or '').strip()}|{normalize_slot(route_slot, strict=False)}"


def is_quote_visit(booking: Booking) -> bool:
    status = (booking.status or "").lower()
    payment = (booking.payment_status or "").lower()
    if status == "quote_requested" or payment == "quote":
        return True
    if "quote visit" in (booking.title or "").lower():
        return True
    return str((booking.payload or {}).get("mode") or "").lower() == "manvan_quote"


def _is_cancelled(booking: Booking) -> bool:
    return (booking.status or "").lower() in {"cancelled", "canceled"}


def due_subscriptions(store: Store, run_date: str) -> list[Subscription]:
    """Schedulable, unpaused subscriptions due on ``run_date``, in driver-friendly order."""
    day = normalize_ymd(run_date, "run_date")
    due = [sub for sub in store.subscriptions_due_on(day) if sub.is_schedulable() and not sub.is_paused_on(day)]
    due.sort(key=lambda sub: f"{sub.route_area or ''} {sub.postcode or ''} {sub.address or ''}".lower())
    return due


def due_count(store: Store, run_date: str) -> DueSummary:
    """Count what is due on ``run_date`` per ``"area|slot"``.

    Every active area configured for that weekday gets a key, zero when
    nothing is due. The breakdown splits the due set into recurring
    subscriptions, one-off bookings and quote visits; the three never overlap.
    """
    day = normalize_ymd(run_date, "run_date")
    route_day = weekday_of(day)

    breakdown: dict[str, dict[str, int]] = {category: {} for category in CATEGORIES}
    for area in store.list_route_areas(active_only=True):
        if area.route_day != route_day:
            continue
        key = count_key(area.name, area.slot)
        for category in CATEGORIES:
            breakdown[category].setdefault(key, 0)

    def bump(category: str, key: str) -> None:
        for name in CATEGORIES:
            breakdown[name].setdefault(key, 0)
        breakdown[category][key] += 1

    for subscription in due_subscriptions(store, day):
        bump("subscriptions", count_key(subscription.route_area, subscription.route_slot))

    for booking in store.bookings_due_on(day):
        if _is_cancelled(booking):
            continue
        category = "quotes" if is_quote_visit(booking) else "bookings"
        bump(category, count_key(booking.route_area, booking.route_slot))

    totals = {
        key: sum(breakdown[category][key] for category in CATEGORIES)
        for key in breakdown["subscriptions"]
    }
    return DueSummary(date=day, route_day=route_day, due_counts=totals, breakdown=breakdown)
