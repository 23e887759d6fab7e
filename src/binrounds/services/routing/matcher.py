"""Postcode to route-area matching.

Several active areas may cover the same postcode (for example an AM and a PM
round on the same day). All of them are returned, ordered by weekday, then
slot, then area name, and the first one is the default written onto new
subscriptions.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from ...errors import InvalidInput, NotFound
from ...models.domain import SLOT_ORDER, RouteArea, RouteSlot
from ..scheduling.calendar import WEEKDAYS, next_occurrence_of_weekday, normalize_ymd
from .models import RouteMatch, RouteMatchResult

_WHITESPACE = re.compile(r"\s+")


def normalize_postcode(value: object) -> str:
    """Uppercase, collapse internal whitespace to single spaces, trim."""
    return _WHITESPACE.sub(" ", str(value or "")).strip().upper()


def display_postcode(normalized: str) -> str:
    """Re-space an unspaced UK postcode before its three-character inward code."""
    if normalized and " " not in normalized and len(normalized) > 3:
        return f"{normalized[:-3]} {normalized[-3:]}"
    return normalized


def normalize_slot(value: object, *, strict: bool = True) -> str:
    """Blank slots mean ``ANY``; with ``strict=False`` unknown values also collapse to ``ANY``."""
    text = str(value or "").strip().upper()
    if not text:
        return RouteSlot.ANY.value
    if text in SLOT_ORDER:
        return text
    if strict:
        raise InvalidInput(f"Invalid route_slot {value!r} (expected AM, PM or ANY)", field="route_slot")
    return RouteSlot.ANY.value


def _prefix_matches(postcode: str, prefix: str) -> bool:
    spaced = display_postcode(postcode)
    wanted = normalize_postcode(prefix)
    if not wanted:
        return False
    return spaced.startswith(wanted) or postcode.replace(" ", "").startswith(wanted.replace(" ", ""))


def _best_prefix(postcode: str, prefixes: Iterable[str]) -> Optional[str]:
    best: Optional[str] = None
    for prefix in prefixes:
        if _prefix_matches(postcode, prefix):
            if best is None or len(prefix.replace(" ", "")) > len(best.replace(" ", "")):
                best = prefix
    return best


def _day_rank(day: str) -> int:
    try:
        return WEEKDAYS.index(day) + 1
    except ValueError:
        return 99


def sort_key(match: RouteMatch) -> tuple[int, int, str]:
    return (_day_rank(match.route_day), SLOT_ORDER.get(match.slot, 99), match.route_area)


def match(postcode: object, catalogue: Sequence[RouteArea], reference: object) -> RouteMatchResult:
    """Match ``postcode`` against the active areas of ``catalogue``.

    Each match carries the first date on or after ``reference`` that falls on
    the area's weekday. An uncovered postcode is a normal ``in_area=False``
    result, never an error.
    """
    normalized = normalize_postcode(postcode)
    if not normalized:
        raise InvalidInput("Missing postcode", field="postcode")
    reference_ymd = normalize_ymd(reference, "reference_date")

    matches: list[RouteMatch] = []
    for area in catalogue:
        if not area.active:
            continue
        prefix = _best_prefix(normalized, area.postcode_prefixes)
        if prefix is None:
            continue
        matches.append(
            RouteMatch(
                route_area_id=area.id,
                route_area=area.name,
                route_day=area.route_day,
                slot=normalize_slot(area.slot, strict=False),
                matched_prefix=prefix,
                next_date=next_occurrence_of_weekday(reference_ymd, area.route_day),
            )
        )

    matches.sort(key=sort_key)
    return RouteMatchResult(
        postcode=display_postcode(normalized),
        in_area=bool(matches),
        matches=matches,
        default=matches[0] if matches else None,
    )


def find_area(
    catalogue: Sequence[RouteArea],
    name: str,
    *,
    slot: Optional[str] = None,
    route_day: Optional[str] = None,
) -> RouteArea:
    """Resolve an ops-chosen route to its catalogue row."""
    wanted = (name or "").strip().lower()
    candidates = [area for area in catalogue if area.active and area.name.strip().lower() == wanted]
    if slot is not None:
        wanted_slot = normalize_slot(slot)
        candidates = [area for area in candidates if normalize_slot(area.slot, strict=False) == wanted_slot]
    if route_day is not None:
        candidates = [area for area in candidates if area.route_day == route_day]
    if not candidates:
        raise NotFound(f"No active route area named '{name}'", field="route_area")
    candidates.sort(key=lambda area: (_day_rank(area.route_day), SLOT_ORDER.get(area.slot, 99), area.sort_order))
    return candidates[0]
