import pytest

from binrounds.errors import InvalidInput, NotFound
from binrounds.models.domain import RouteArea
from binrounds.services.routing.matcher import (
    display_postcode,
    find_area,
    match,
    normalize_postcode,
    normalize_slot,
)

from conftest import catalogue


def test_postcode_is_normalized_and_matched() -> None:
    result = match("cf36 5aa", catalogue(), "2024-01-03")

    assert result.postcode == "CF36 5AA"
    assert result.in_area is True
    assert {m.route_area for m in result.matches} == {"Porthcawl"}


def test_am_sorts_before_pm_on_the_same_day() -> None:
    result = match("CF36 5AA", catalogue(), "2024-01-03")

    assert [m.slot for m in result.matches] == ["AM", "PM"]
    assert result.default.slot == "AM"
    assert result.default.route_area_id == "porthcawl-am"
    # Wednesday reference, Monday route
    assert result.default.next_date == "2024-01-08"


def test_next_date_is_reference_when_already_on_route_day() -> None:
    result = match("CF36 5AA", catalogue(), "2024-01-08")
    assert result.default.next_date == "2024-01-08"


def test_unspaced_and_messy_postcodes() -> None:
    assert normalize_postcode("  cf31   4ab ") == "CF31 4AB"
    assert display_postcode("CF314AB") == "CF31 4AB"

    result = match("cf314ab", catalogue(), "2024-01-01")
    assert result.postcode == "CF31 4AB"
    assert result.default.route_area == "Bridgend"
    assert result.default.slot == "ANY"
    assert result.default.next_date == "2024-01-02"


def test_inactive_and_uncovered_areas_do_not_match() -> None:
    inactive = match("CF33 4AA", catalogue(), "2024-01-01")
    assert inactive.in_area is False
    assert inactive.default is None

    outside = match("SW1A 1AA", catalogue(), "2024-01-01")
    assert outside.in_area is False
    assert outside.to_dict()["matches"] == []


def test_longest_prefix_is_reported() -> None:
    areas = [RouteArea(id="x", name="Town", route_day="Friday", postcode_prefixes=("CF3", "CF31 4"))]
    result = match("CF31 4AB", areas, "2024-01-01")
    assert result.default.matched_prefix == "CF31 4"


def test_empty_postcode_is_invalid() -> None:
    with pytest.raises(InvalidInput) as excinfo:
        match("   ", catalogue(), "2024-01-01")
    assert excinfo.value.field == "postcode"


def test_slot_normalization() -> None:
    assert normalize_slot(None) == "ANY"
    assert normalize_slot(" am ") == "AM"
    assert normalize_slot("evening", strict=False) == "ANY"
    with pytest.raises(InvalidInput):
        normalize_slot("evening")


def test_find_area_by_name_and_slot() -> None:
    assert find_area(catalogue(), "porthcawl").slot == "AM"
    assert find_area(catalogue(), "Porthcawl", slot="pm").id == "porthcawl-pm"

    with pytest.raises(NotFound):
        find_area(catalogue(), "Pyle")
    with pytest.raises(NotFound):
        find_area(catalogue(), "Porthcawl", route_day="Friday")
