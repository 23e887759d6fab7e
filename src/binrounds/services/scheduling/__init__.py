"""Calendar and recurrence helpers."""

from .calendar import (
    WEEKDAYS,
    add_days,
    days_between,
    is_valid_ymd,
    next_occurrence_of_weekday,
    normalize_weekday,
    parse_ymd,
    to_ymd,
    today_in_zone,
    weekday_of,
)
from .recurrence import FREQUENCY_DAYS, frequency_days, is_due_on, next_due, normalize_frequency

__all__ = [
    "WEEKDAYS",
    "add_days",
    "days_between",
    "is_valid_ymd",
    "next_occurrence_of_weekday",
    "normalize_weekday",
    "parse_ymd",
    "to_ymd",
    "today_in_zone",
    "weekday_of",
    "FREQUENCY_DAYS",
    "frequency_days",
    "is_due_on",
    "next_due",
    "normalize_frequency",
]
