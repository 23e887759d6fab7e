"""Calendar arithmetic on ``YYYY-MM-DD`` dates.

All day arithmetic is done on a UTC datetime pinned to midday, so a
daylight-saving transition can never push a date across a day boundary.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytz

from ...config import settings
from ...errors import InvalidInput

WEEKDAYS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NEUTRAL_HOUR = 12


def is_valid_ymd(value: object) -> bool:
    if not isinstance(value, str) or not _YMD_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_ymd(value: object, field: str = "date") -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass a ``date`` through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not _YMD_RE.match(text):
        raise InvalidInput(f"Invalid {field} (expected YYYY-MM-DD): {value!r}", field=field)
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidInput(f"Invalid {field}: {text} is not a calendar date", field=field) from exc


def to_ymd(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%Y-%m-%d")


def normalize_ymd(value: object, field: str = "date") -> str:
    return to_ymd(parse_ymd(value, field))


def _at_midday(value: object, field: str = "date") -> datetime:
    day = parse_ymd(value, field)
    return datetime(day.year, day.month, day.day, _NEUTRAL_HOUR, tzinfo=timezone.utc)


def add_days(ymd: object, days: int) -> str:
    return to_ymd(_at_midday(ymd) + timedelta(days=days))


def days_between(start: object, end: object) -> int:
    """Whole days from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    delta = _at_midday(end) - _at_midday(start)
    return round(delta.total_seconds() / 86400)


def weekday_of(ymd: object) -> str:
    return WEEKDAYS[_at_midday(ymd).weekday()]


def weekday_index(name: str) -> int:
    """Monday=1 ... Sunday=7."""
    return WEEKDAYS.index(normalize_weekday(name)) + 1


def normalize_weekday(value: object, field: str = "route_day") -> str:
    text = str(value or "").strip().lower()
    for name in WEEKDAYS:
        if name.lower() == text:
            return name
    raise InvalidInput(f"Invalid {field}: {value!r} (expected Monday..Sunday)", field=field)


def today_in_zone(zone: Optional[str] = None) -> str:
    """Today's date in the operational timezone, regardless of server locale."""
    zone_name = zone or settings.operational_timezone
    try:
        tz = pytz.timezone(zone_name)
    except pytz.UnknownTimeZoneError as exc:
        raise InvalidInput(f"Unknown timezone '{zone_name}'", field="timezone") from exc
    return to_ymd(datetime.now(timezone.utc).astimezone(tz))


def next_occurrence_of_weekday(from_ymd: object, weekday: str) -> str:
    """First date on or after ``from_ymd`` falling on ``weekday`` (zero offset if already there)."""
    current = _at_midday(from_ymd).weekday()
    target = weekday_index(weekday) - 1
    return add_days(from_ymd, (target - current) % 7)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
