import pytest

from binrounds.errors import InvalidFrequency, InvalidInput, NotFound
from binrounds.models.domain import SubscriptionStatus
from binrounds.services.scheduling.calendar import days_between
from binrounds.persistence.memory import MemoryStore
from binrounds.schemas.subscriptions import SubscriptionCreate, SubscriptionUpdate
from binrounds.services.subscriptions.service import (
    check_postcode,
    create_subscription,
    get_subscription,
    list_subscriptions,
    parse_statuses,
    update_subscription,
)

from conftest import make_subscription

REFERENCE = "2024-01-03"


def _create(store: MemoryStore, **fields):
    values = {"postcode": "cf36 5aa", "address": "1 Esplanade"}
    values.update(fields)
    return create_subscription(store, SubscriptionCreate(**values), reference=REFERENCE)


def test_new_subscription_takes_the_default_route(store: MemoryStore) -> None:
    created = _create(store, frequency="Fortnightly", email="jo@example.com")

    assert created.postcode == "CF36 5AA"
    assert created.frequency == "fortnightly"
    assert (created.route_area, created.route_day, created.route_slot) == ("Porthcawl", "Monday", "AM")
    assert created.anchor_date == "2024-01-08"
    assert created.next_collection_date == "2024-01-08"
    assert get_subscription(store, created.id).email == "jo@example.com"


def test_out_of_area_subscription_has_no_route(store: MemoryStore) -> None:
    created = _create(store, postcode="SW1A 1AA")

    assert created.route_area is None
    assert created.next_collection_date is None
    assert created.status is SubscriptionStatus.ACTIVE


def test_creation_rejects_bad_input(store: MemoryStore) -> None:
    with pytest.raises(InvalidFrequency):
        _create(store, frequency="monthly")
    with pytest.raises(InvalidInput) as excinfo:
        _create(store, extra_bags=11)
    assert excinfo.value.field == "extra_bags"
    with pytest.raises(InvalidInput) as excinfo:
        _create(store, address="  ")
    assert excinfo.value.field == "address"
    with pytest.raises(InvalidInput):
        _create(store, status="lapsed")
    assert store.list_subscriptions() == []


def test_route_override_derives_the_day_and_reanchors(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    updated = update_subscription(store, "sub-1", SubscriptionUpdate(route_area="bridgend"), reference=REFERENCE)

    assert (updated.route_area, updated.route_day, updated.route_slot) == ("Bridgend", "Tuesday", "ANY")
    assert updated.anchor_date == "2024-01-09"
    assert updated.next_collection_date == "2024-01-09"


def test_slot_change_on_the_same_day_keeps_the_cycle(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    updated = update_subscription(
        store, "sub-1", SubscriptionUpdate(route_area="Porthcawl", route_slot="PM"), reference=REFERENCE
    )

    assert updated.route_slot == "PM"
    assert updated.anchor_date == "2024-01-01"
    assert updated.next_collection_date == "2024-01-08"


def test_conflicting_or_orphan_route_day_is_rejected(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    with pytest.raises(InvalidInput) as excinfo:
        update_subscription(store, "sub-1", SubscriptionUpdate(route_area="Porthcawl", route_day="Tuesday"))
    assert excinfo.value.field == "route_day"

    with pytest.raises(InvalidInput):
        update_subscription(store, "sub-1", SubscriptionUpdate(route_day="Tuesday"))

    with pytest.raises(NotFound):
        update_subscription(store, "sub-1", SubscriptionUpdate(route_area="Atlantis"))

    assert store.get_subscription("sub-1").route_day == "Monday"


def test_explicit_next_date_becomes_the_anchor(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    updated = update_subscription(store, "sub-1", SubscriptionUpdate(next_collection_date="2024-02-05"))

    assert updated.next_collection_date == "2024-02-05"
    assert updated.anchor_date == "2024-02-05"


def test_frequency_change_keeps_next_date_on_the_new_cycle(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    updated = update_subscription(store, "sub-1", SubscriptionUpdate(frequency="fortnightly"), reference=REFERENCE)

    assert updated.frequency == "fortnightly"
    assert updated.anchor_date == "2024-01-01"
    assert updated.next_collection_date == "2024-01-15"
    assert days_between(updated.anchor_date, updated.next_collection_date) % 14 == 0


def test_frequency_change_without_a_route_rolls_from_the_anchor(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1", route_area=None, route_day=None, route_slot=None))

    updated = update_subscription(store, "sub-1", SubscriptionUpdate(frequency="fortnightly"), reference="2024-01-16")

    assert updated.anchor_date == "2024-01-01"
    assert updated.next_collection_date == "2024-01-29"


def test_clearing_the_route(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    updated = update_subscription(store, "sub-1", SubscriptionUpdate(route_area=""))

    assert updated.route_area is None
    assert updated.route_day is None
    assert updated.route_slot is None


def test_pause_window_and_status(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    with pytest.raises(InvalidInput):
        update_subscription(store, "sub-1", SubscriptionUpdate(pause_from="2024-03-10", pause_to="2024-03-01"))

    updated = update_subscription(
        store,
        "sub-1",
        SubscriptionUpdate(pause_from="2024-03-01", pause_to="2024-03-10", status="Cancelled"),
    )
    assert updated.is_paused_on("2024-03-04")
    assert updated.status is SubscriptionStatus.CANCELED

    cleared = update_subscription(store, "sub-1", SubscriptionUpdate(pause_to=None))
    assert not cleared.is_paused_on("2024-03-04")


def test_empty_update_changes_nothing(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))
    before = store.get_subscription("sub-1")

    assert update_subscription(store, "sub-1", SubscriptionUpdate()) == before


def test_listing_and_status_parsing(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("a"))
    store.insert_subscription(make_subscription("b", status=SubscriptionStatus.PAST_DUE))

    assert [sub.id for sub in list_subscriptions(store, statuses=["active"])] == ["a"]
    assert len(list_subscriptions(store)) == 2
    assert parse_statuses(None) == {SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING}


def test_check_postcode_uses_reference(store: MemoryStore) -> None:
    result = check_postcode(store, "CF34 9ZZ", "2024-01-01")

    assert result.in_area is True
    assert result.default.route_area == "Maesteg"
    assert result.default.next_date == "2024-01-04"
