import pytest

from binrounds.errors import InvalidInput
from binrounds.services.scheduling.calendar import (
    add_days,
    days_between,
    is_valid_ymd,
    next_occurrence_of_weekday,
    normalize_weekday,
    normalize_ymd,
    today_in_zone,
    weekday_index,
    weekday_of,
)


def test_add_days_handles_leap_and_year_boundaries() -> None:
    assert add_days("2024-02-28", 1) == "2024-02-29"
    assert add_days("2024-12-31", 1) == "2025-01-01"
    assert add_days("2024-03-01", -1) == "2024-02-29"


def test_day_arithmetic_ignores_daylight_saving_transitions() -> None:
    # UK clocks change on 2024-03-31 and 2024-10-27
    assert add_days("2024-03-30", 2) == "2024-04-01"
    assert days_between("2024-03-30", "2024-04-01") == 2
    assert add_days("2024-10-26", 7) == "2024-11-02"
    assert days_between("2024-11-02", "2024-10-26") == -7


def test_weekday_helpers() -> None:
    assert weekday_of("2024-01-01") == "Monday"
    assert weekday_of("2024-03-04") == "Monday"
    assert weekday_index("sunday") == 7
    assert normalize_weekday("  tuesday ") == "Tuesday"


def test_next_occurrence_is_zero_offset_on_the_same_weekday() -> None:
    assert next_occurrence_of_weekday("2024-01-01", "Monday") == "2024-01-01"
    assert next_occurrence_of_weekday("2024-01-02", "Monday") == "2024-01-08"
    assert next_occurrence_of_weekday("2024-01-01", "Sunday") == "2024-01-07"


def test_invalid_dates_and_days_raise_invalid_input() -> None:
    assert not is_valid_ymd("2024-02-30")
    assert not is_valid_ymd("2024-1-5")
    assert is_valid_ymd("2024-02-29")

    with pytest.raises(InvalidInput) as excinfo:
        normalize_ymd("2024-13-01", "run_date")
    assert excinfo.value.field == "run_date"

    with pytest.raises(InvalidInput):
        normalize_weekday("Funday")


def test_today_in_zone_returns_a_date_and_rejects_unknown_zones() -> None:
    assert is_valid_ymd(today_in_zone("Europe/London"))
    with pytest.raises(InvalidInput):
        today_in_zone("Mars/Olympus_Mons")
