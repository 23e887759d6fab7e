import threading

import pytest

from binrounds.errors import Conflict, NoCollectionToUndo, NotFound
from binrounds.models.domain import SubscriptionStatus
from binrounds.persistence.memory import MemoryStore
from binrounds.services.ledger.service import list_collections, record_collection, undo_last_collection
from binrounds.services.notifications.outbox import COLLECTED_EVENT

from conftest import make_subscription


def test_late_collection_reanchors_on_actual_date(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    outcome = record_collection(store, "sub-1", "2024-01-15")

    assert outcome.previous_next_collection_date == "2024-01-08"
    assert outcome.next_collection_date == "2024-01-22"
    saved = store.get_subscription("sub-1")
    assert saved.next_collection_date == "2024-01-22"
    assert saved.anchor_date == "2024-01-15"


def test_fortnightly_collection_advances_fourteen_days(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1", frequency="fortnightly"))
    assert record_collection(store, "sub-1", "2024-01-08").next_collection_date == "2024-01-22"


def test_record_then_undo_round_trips_exactly(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))
    before = store.get_subscription("sub-1")

    record_collection(store, "sub-1", "2024-01-08")
    outcome = undo_last_collection(store, "sub-1")

    after = store.get_subscription("sub-1")
    assert after.next_collection_date == before.next_collection_date
    assert after.anchor_date == before.anchor_date
    assert outcome.next_collection_date == "2024-01-08"
    assert list_collections(store, "sub-1") == []


def test_round_trip_restores_a_missing_next_date(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1", next_collection_date=None, anchor_date=None))

    record_collection(store, "sub-1", "2024-01-08")
    undo_last_collection(store, "sub-1")

    assert store.get_subscription("sub-1").next_collection_date is None


def test_undo_only_removes_the_newest_entry(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))
    record_collection(store, "sub-1", "2024-01-08")
    record_collection(store, "sub-1", "2024-01-15")

    undo_last_collection(store, "sub-1")

    history = list_collections(store, "sub-1")
    assert [entry.collected_date for entry in history] == ["2024-01-08"]
    assert store.get_subscription("sub-1").next_collection_date == "2024-01-15"


def test_overlapping_records_undo_one_step_at_a_time(store: MemoryStore, monkeypatch: pytest.MonkeyPatch) -> None:
    store.insert_subscription(make_subscription("sub-1"))
    barrier = threading.Barrier(2)
    seen = threading.local()
    read = store.get_subscription

    def read_then_wait(subscription_id):
        found = read(subscription_id)
        # both workers hold the same stale read before either writes
        if not getattr(seen, "waited", False):
            seen.waited = True
            barrier.wait(timeout=5)
        return found

    monkeypatch.setattr(store, "get_subscription", read_then_wait)

    def worker(collected: str) -> None:
        record_collection(store, "sub-1", collected)

    threads = [threading.Thread(target=worker, args=(day,)) for day in ("2024-01-08", "2024-01-09")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    monkeypatch.undo()

    newest, oldest = list_collections(store, "sub-1")
    assert newest.previous_next_collection_date == oldest.next_collection_date
    assert newest.previous_anchor_date == oldest.collected_date

    undo_last_collection(store, "sub-1")
    assert store.get_subscription("sub-1").next_collection_date == oldest.next_collection_date

    undo_last_collection(store, "sub-1")
    restored = store.get_subscription("sub-1")
    assert restored.next_collection_date == "2024-01-08"
    assert restored.anchor_date == "2024-01-01"


def test_undo_with_empty_ledger_is_a_reported_conflict(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1"))

    with pytest.raises(NoCollectionToUndo) as excinfo:
        undo_last_collection(store, "sub-1")
    assert excinfo.value.to_dict()["kind"] == "no_collection_to_undo"
    assert store.get_subscription("sub-1").next_collection_date == "2024-01-08"


def test_unknown_and_canceled_subscriptions(store: MemoryStore) -> None:
    with pytest.raises(NotFound):
        record_collection(store, "missing", "2024-01-08")

    store.insert_subscription(make_subscription("sub-1", status=SubscriptionStatus.CANCELED))
    with pytest.raises(Conflict):
        record_collection(store, "sub-1", "2024-01-08")
    assert list_collections(store, "sub-1") == []


def test_collected_notice_is_queued_and_cancelled_on_undo(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1", email="jo@example.com"))

    outcome = record_collection(store, "sub-1", "2024-01-08", completed_by="driver-7")
    assert outcome.notification == "queued"
    [event] = store.list_notifications()
    assert event.event_type == COLLECTED_EVENT
    assert event.target_id == "sub-1:2024-01-08"
    assert event.payload["completed_by"] == "driver-7"

    undo_last_collection(store, "sub-1")
    [event] = store.list_notifications()
    assert event.status == "cancelled"
    assert event.cancelled_at is not None


def test_no_notice_without_a_valid_email(store: MemoryStore) -> None:
    store.insert_subscription(make_subscription("sub-1", email="not-an-email"))

    outcome = record_collection(store, "sub-1", "2024-01-08")

    assert outcome.notification == "skipped_no_valid_email"
    assert store.list_notifications() == []
    assert store.get_subscription("sub-1").next_collection_date == "2024-01-15"
