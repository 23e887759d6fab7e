import pytest

from binrounds.errors import CorruptData, InvalidFrequency, InvalidInput, RecurrenceOverflow
from binrounds.services.scheduling.calendar import add_days, days_between
from binrounds.services.scheduling.recurrence import frequency_days, is_due_on, next_due, normalize_frequency


@pytest.mark.parametrize("period", [7, 14, 21])
def test_next_due_lands_on_cycle_at_or_after_reference(period: int) -> None:
    anchor = "2024-01-01"
    for offset in (0, 1, 6, 7, 13, 20, 45, 365):
        reference = add_days(anchor, offset)
        result = next_due(anchor, period, reference)

        assert days_between(anchor, result) % period == 0
        assert result >= reference
        assert add_days(result, -period) < reference


@pytest.mark.parametrize("period", [7, 14, 21])
def test_due_today_is_returned_unchanged(period: int) -> None:
    assert next_due("2024-05-13", period, "2024-05-13") == "2024-05-13"


def test_next_due_examples() -> None:
    assert next_due("2024-01-01", 7, "2024-01-02") == "2024-01-08"
    assert next_due("2024-01-01", 14, "2024-01-09") == "2024-01-15"
    assert next_due("2024-01-01", 21, "2024-01-22") == "2024-01-22"
    # anchor in the future is already the next due date
    assert next_due("2024-02-05", 7, "2024-01-01") == "2024-02-05"


def test_next_due_across_clock_change_keeps_weekday() -> None:
    assert next_due("2024-03-25", 7, "2024-03-26") == "2024-04-01"
    assert next_due("2024-10-21", 7, "2024-10-22") == "2024-10-28"


def test_is_due_on() -> None:
    assert is_due_on("2024-01-01", 14, "2024-01-15")
    assert not is_due_on("2024-01-01", 14, "2024-01-08")


@pytest.mark.parametrize("period", [0, 10, 28, -7, True, "7"])
def test_unsupported_periods_are_rejected(period) -> None:
    with pytest.raises(InvalidFrequency):
        next_due("2024-01-01", period, "2024-01-02")


def test_malformed_dates_are_invalid_input() -> None:
    with pytest.raises(InvalidInput) as excinfo:
        next_due("01/01/2024", 7, "2024-01-02")
    assert excinfo.value.field == "anchor_date"


def test_runaway_anchor_is_reported_as_corrupt_data() -> None:
    with pytest.raises(RecurrenceOverflow) as excinfo:
        next_due("1990-01-01", 7, "2024-01-01", max_iterations=100)
    assert isinstance(excinfo.value, CorruptData)
    assert excinfo.value.kind == "recurrence_overflow"


def test_frequency_names_and_aliases() -> None:
    assert normalize_frequency(" Fortnightly ") == "fortnightly"
    assert normalize_frequency("three-weekly") == "threeweekly"
    assert frequency_days("weekly") == 7
    assert frequency_days("3weekly") == 21

    with pytest.raises(InvalidFrequency) as excinfo:
        normalize_frequency("monthly")
    assert excinfo.value.field == "frequency"
