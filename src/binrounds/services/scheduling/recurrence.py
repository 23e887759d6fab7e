"""Next-due computation for fixed-period recurring collections."""

from __future__ import annotations

from typing import Optional

from ...config import settings
from ...errors import InvalidFrequency, RecurrenceOverflow
from .calendar import add_days, normalize_ymd

FREQUENCY_DAYS: dict[str, int] = {
    "weekly": 7,
    "fortnightly": 14,
    "threeweekly": 21,
}

_FREQUENCY_ALIASES = {
    "three-weekly": "threeweekly",
    "three_weekly": "threeweekly",
    "3-weekly": "threeweekly",
    "3weekly": "threeweekly",
    "two-weekly": "fortnightly",
}

ALLOWED_PERIODS = frozenset(FREQUENCY_DAYS.values())


def normalize_frequency(value: object) -> str:
    text = str(value or "").strip().lower()
    text = _FREQUENCY_ALIASES.get(text, text)
    if text not in FREQUENCY_DAYS:
        raise InvalidFrequency(
            f"Invalid frequency {value!r} (expected one of: {', '.join(FREQUENCY_DAYS)})"
        )
    return text


def frequency_days(value: object) -> int:
    return FREQUENCY_DAYS[normalize_frequency(value)]


def _check_period(period: object) -> int:
    if isinstance(period, bool) or not isinstance(period, int) or period not in ALLOWED_PERIODS:
        raise InvalidFrequency(
            f"Invalid frequency period {period!r} days (expected one of {sorted(ALLOWED_PERIODS)})",
            field="frequency_days",
        )
    return period


def next_due(
    anchor: object,
    period_days: int,
    reference: object,
    *,
    max_iterations: Optional[int] = None,
) -> str:
    """Smallest ``anchor + k * period_days`` (k >= 0) that is on or after ``reference``.

    An anchor already on or after the reference is returned unchanged, so a
    collection due today stays due today.

    Raises:
        InvalidFrequency: ``period_days`` is not 7, 14 or 21.
        InvalidInput: either date is malformed.
        RecurrenceOverflow: the anchor is so far behind the reference that
            more than ``max_iterations`` cycles would be needed.
    """
    period = _check_period(period_days)
    anchor_ymd = normalize_ymd(anchor, "anchor_date")
    reference_ymd = normalize_ymd(reference, "reference_date")
    cap = max_iterations if max_iterations is not None else settings.recurrence_max_iterations

    candidate = anchor_ymd
    cycles = 0
    while candidate < reference_ymd:
        cycles += 1
        if cycles > cap:
            raise RecurrenceOverflow(
                f"Anchor {anchor_ymd} needs more than {cap} cycles of {period} days "
                f"to reach {reference_ymd}; treating it as corrupt",
                field="anchor_date",
            )
        candidate = add_days(candidate, period)
    return candidate


def is_due_on(anchor: object, period_days: int, day: object) -> bool:
    day_ymd = normalize_ymd(day, "date")
    return next_due(anchor, period_days, day_ymd) == day_ymd
