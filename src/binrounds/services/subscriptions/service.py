"""Subscription creation, lookup and ops overrides."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Iterable, Optional

from ...data.route_catalogue import get_route_catalogue
from ...errors import InvalidInput, NotFound
from ...models.domain import SCHEDULABLE_STATUSES, Subscription, SubscriptionStatus
from ...persistence.store import Store
from ...schemas.subscriptions import SubscriptionCreate, SubscriptionUpdate
from ..routing.assignment import rebase_schedule
from ..routing.matcher import find_area, match, normalize_postcode, normalize_slot
from ..routing.models import RouteMatchResult
from ..scheduling.calendar import is_valid_ymd, normalize_weekday, normalize_ymd, today_in_zone
from ..scheduling.recurrence import frequency_days, next_due, normalize_frequency

logger = logging.getLogger(__name__)

MAX_EXTRA_BAGS = 10


def parse_status(value: object) -> SubscriptionStatus:
    text = str(value or "").strip().lower()
    if text == "cancelled":
        text = SubscriptionStatus.CANCELED.value
    try:
        return SubscriptionStatus(text)
    except ValueError as exc:
        allowed = ", ".join(status.value for status in SubscriptionStatus)
        raise InvalidInput(f"Invalid status {value!r} (expected one of: {allowed})", field="status") from exc


def parse_statuses(values: Optional[Iterable[object]]) -> frozenset[SubscriptionStatus]:
    if not values:
        return SCHEDULABLE_STATUSES
    return frozenset(parse_status(value) for value in values)


def _check_extra_bags(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_EXTRA_BAGS:
        raise InvalidInput(f"extra_bags must be an integer between 0 and {MAX_EXTRA_BAGS}", field="extra_bags")
    return value


def check_postcode(store: Store, postcode: object, reference: Optional[str] = None) -> RouteMatchResult:
    reference_ymd = normalize_ymd(reference, "reference_date") if reference else today_in_zone()
    return match(postcode, get_route_catalogue(store), reference_ymd)


def create_subscription(
    store: Store,
    payload: SubscriptionCreate,
    *,
    reference: Optional[str] = None,
) -> Subscription:
    """Create a subscription with route fields and first collection date filled in.

    The default route match supplies area, day and slot; the cycle is anchored
    on that route's first date on or after ``reference``. An out-of-area
    postcode still creates the subscription, with no route and no date, for
    ops to place by hand.
    """
    postcode = normalize_postcode(payload.postcode)
    if not postcode:
        raise InvalidInput("Missing postcode", field="postcode")
    address = (payload.address or "").strip()
    if not address:
        raise InvalidInput("Missing address", field="address")
    frequency = normalize_frequency(payload.frequency)
    extra_bags = _check_extra_bags(payload.extra_bags)
    status = parse_status(payload.status)
    reference_ymd = normalize_ymd(reference, "reference_date") if reference else today_in_zone()

    result = match(postcode, get_route_catalogue(store), reference_ymd)
    subscription = Subscription(
        id=(payload.id or "").strip() or uuid.uuid4().hex,
        postcode=result.postcode,
        address=address,
        frequency=frequency,
        status=status,
        extra_bags=extra_bags,
        use_own_bin=payload.use_own_bin,
        name=(payload.name or "").strip() or None,
        email=(payload.email or "").strip() or None,
        phone=(payload.phone or "").strip() or None,
    )
    if result.default is not None:
        chosen = result.default
        subscription.route_area = chosen.route_area
        subscription.route_day = chosen.route_day
        subscription.route_slot = chosen.slot
        subscription.anchor_date = chosen.next_date
        subscription.next_collection_date = next_due(chosen.next_date, frequency_days(frequency), reference_ymd)
    else:
        logger.info(f"Postcode {result.postcode} is not covered; subscription created without a route")

    created = store.insert_subscription(subscription)
    logger.info(
        f"Subscription {created.id} created for {created.postcode}: "
        f"{created.route_area or 'no route'} next {created.next_collection_date}"
    )
    return created


def get_subscription(store: Store, subscription_id: str) -> Subscription:
    subscription = store.get_subscription(subscription_id)
    if subscription is None:
        raise NotFound(f"Subscription {subscription_id} not found", field="subscription_id")
    return subscription


def list_subscriptions(
    store: Store,
    *,
    statuses: Optional[Iterable[object]] = None,
    limit: Optional[int] = None,
) -> list[Subscription]:
    wanted = frozenset(parse_status(value) for value in statuses) if statuses else None
    return store.list_subscriptions(statuses=wanted, limit=limit)


def update_subscription(
    store: Store,
    subscription_id: str,
    payload: SubscriptionUpdate,
    *,
    reference: Optional[str] = None,
) -> Subscription:
    """Apply an ops override.

    ``route_day`` is never taken on trust: it is read from the chosen route
    area, and a conflicting value in the request is rejected. A route moved
    to another weekday re-anchors the cycle. A new frequency rolls the next
    date forward from the anchor on the new period. An explicit
    ``next_collection_date`` becomes the new anchor.
    """
    current = get_subscription(store, subscription_id)
    requested = payload.model_dump(exclude_unset=True)
    changes: dict = {}

    if "status" in requested:
        changes["status"] = parse_status(requested["status"])
    if "frequency" in requested:
        changes["frequency"] = normalize_frequency(requested["frequency"])
    if "extra_bags" in requested:
        changes["extra_bags"] = _check_extra_bags(requested["extra_bags"])
    if "use_own_bin" in requested:
        changes["use_own_bin"] = bool(requested["use_own_bin"])
    if "ops_notes" in requested:
        changes["ops_notes"] = (requested["ops_notes"] or "").strip()

    for name in ("pause_from", "pause_to"):
        if name in requested:
            changes[name] = normalize_ymd(requested[name], name) if requested[name] else None
    pause_from = changes.get("pause_from", current.pause_from)
    pause_to = changes.get("pause_to", current.pause_to)
    if pause_from and pause_to and pause_from > pause_to:
        raise InvalidInput("pause_from must be on or before pause_to", field="pause_from")

    reference_ymd = normalize_ymd(reference, "reference_date") if reference else today_in_zone()
    frequency_changed = changes.get("frequency", current.frequency) != current.frequency
    if "route_area" in requested:
        area_name = (requested["route_area"] or "").strip()
        if not area_name:
            changes.update(route_area=None, route_day=None, route_slot=None)
        else:
            slot = requested.get("route_slot")
            area = find_area(
                get_route_catalogue(store),
                area_name,
                slot=normalize_slot(slot) if slot is not None else None,
            )
            if requested.get("route_day") and normalize_weekday(requested["route_day"]) != area.route_day:
                raise InvalidInput(
                    f"route_day {requested['route_day']} does not match {area.name} ({area.route_day})",
                    field="route_day",
                )
            changes.update(
                route_area=area.name,
                route_day=area.route_day,
                route_slot=normalize_slot(area.slot, strict=False),
            )
            if "next_collection_date" not in requested:
                planned = replace(current, frequency=changes.get("frequency", current.frequency))
                anchor, next_date = rebase_schedule(planned, area.route_day, reference_ymd, recompute=frequency_changed)
                changes.update(anchor_date=anchor, next_collection_date=next_date)
    elif "route_day" in requested or "route_slot" in requested:
        raise InvalidInput("route_day and route_slot follow route_area; set route_area instead", field="route_area")
    elif frequency_changed and "next_collection_date" not in requested:
        # the next date must stay on the new cycle from the anchor
        planned = replace(current, frequency=changes["frequency"])
        if current.has_route():
            anchor, next_date = rebase_schedule(planned, current.route_day, reference_ymd, recompute=True)
            changes.update(anchor_date=anchor, next_collection_date=next_date)
        elif is_valid_ymd(current.anchor_date):
            changes["next_collection_date"] = next_due(
                current.anchor_date, frequency_days(planned.frequency), reference_ymd
            )

    if "next_collection_date" in requested:
        value = requested["next_collection_date"]
        override = normalize_ymd(value, "next_collection_date") if value else None
        changes.update(next_collection_date=override, anchor_date=override)

    if not changes:
        return current
    updated = store.update_subscription(subscription_id, changes)
    logger.info(f"Subscription {subscription_id} updated by ops: {sorted(changes)}")
    return updated
