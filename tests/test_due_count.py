from binrounds.models.domain import Booking, SubscriptionStatus
from binrounds.persistence.memory import MemoryStore
from binrounds.services.runs import due_count, due_subscriptions

from conftest import make_subscription

RUN_DATE = "2024-03-04"


def _seed(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("a1", next_collection_date=RUN_DATE, address="1 Main St"))
    store.insert_subscription(make_subscription("a2", next_collection_date=RUN_DATE, address="2 Main St"))
    store.insert_subscription(
        make_subscription("p1", next_collection_date=RUN_DATE, route_slot="PM", status=SubscriptionStatus.TRIALING)
    )
    store.insert_subscription(
        make_subscription("paused", next_collection_date=RUN_DATE, pause_from="2024-03-01", pause_to="2024-03-10")
    )
    store.insert_subscription(
        make_subscription("hold", next_collection_date=RUN_DATE, status=SubscriptionStatus.HOLD)
    )
    store.insert_subscription(make_subscription("later", next_collection_date="2024-03-11"))


def test_paused_and_non_schedulable_subscriptions_are_not_counted(store: MemoryStore) -> None:
    _seed(store)

    summary = due_count(store, RUN_DATE)

    assert summary.route_day == "Monday"
    assert summary.due_counts == {"Porthcawl|AM": 2, "Porthcawl|PM": 1}
    assert sum(summary.due_counts.values()) == 3


def test_half_open_pause_window_does_not_pause(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("s1", next_collection_date=RUN_DATE, pause_from="2024-03-01"))
    assert due_count(store, RUN_DATE).due_counts["Porthcawl|AM"] == 1


def test_areas_for_the_weekday_are_reported_with_zero(store: MemoryStore) -> None:
    summary = due_count(store, RUN_DATE)
    assert summary.due_counts == {"Porthcawl|AM": 0, "Porthcawl|PM": 0}

    tuesday = due_count(store, "2024-03-05")
    assert tuesday.due_counts == {"Bridgend|ANY": 0}


def test_breakdown_partitions_the_total(store: MemoryStore) -> None:
    _seed(store)
    store.add_booking(
        Booking(id="b1", route_area="Porthcawl", route_day="Monday", route_slot="AM", service_date=RUN_DATE)
    )
    store.add_booking(
        Booking(
            id="q1",
            route_area="Porthcawl",
            route_day="Monday",
            route_slot="PM",
            collection_date=f"{RUN_DATE}T09:00:00Z",
            status="quote_requested",
        )
    )
    store.add_booking(
        Booking(
            id="x1",
            route_area="Porthcawl",
            route_day="Monday",
            route_slot="AM",
            service_date=RUN_DATE,
            status="cancelled",
        )
    )

    summary = due_count(store, RUN_DATE)

    assert summary.breakdown["subscriptions"] == {"Porthcawl|AM": 2, "Porthcawl|PM": 1}
    assert summary.breakdown["bookings"] == {"Porthcawl|AM": 1, "Porthcawl|PM": 0}
    assert summary.breakdown["quotes"] == {"Porthcawl|AM": 0, "Porthcawl|PM": 1}
    assert summary.due_counts == {"Porthcawl|AM": 3, "Porthcawl|PM": 2}


def test_due_subscriptions_are_in_route_order(store: MemoryStore) -> None:
    _seed(store)
    store.insert_subscription(
        make_subscription("b1", next_collection_date=RUN_DATE, route_area="Bridgend", postcode="CF31 1AA")
    )

    rows = due_subscriptions(store, RUN_DATE)

    assert [row.id for row in rows][0] == "b1"
    assert {row.id for row in rows} == {"a1", "a2", "p1", "b1"}
