import threading

import pytest

from binrounds.errors import DuplicateRun, InvalidInput, NotFound
from binrounds.models.domain import DailyRun
from binrounds.persistence.memory import MemoryStore
from binrounds.services.runs import assign_staff, assign_vehicle, ensure_run, get_run, list_runs, update_notes


def test_ensure_run_is_idempotent(store: MemoryStore) -> None:
    first, created = ensure_run(store, "2024-03-04", "Monday", "Porthcawl", "AM")
    second, created_again = ensure_run(store, "2024-03-04", "monday", "Porthcawl", "am")

    assert created is True
    assert created_again is False
    assert first.id == second.id
    assert len(list_runs(store, "2024-03-04")) == 1


def test_new_run_has_no_staff_vehicle_or_notes(store: MemoryStore) -> None:
    run, _ = ensure_run(store, "2024-03-04", "Monday", "Porthcawl")

    assert run.route_slot == "ANY"
    assert run.staff_ids == []
    assert run.vehicle_id is None
    assert run.notes == ""


def test_slots_are_part_of_the_key(store: MemoryStore) -> None:
    am, _ = ensure_run(store, "2024-03-04", "Monday", "Porthcawl", "AM")
    pm, _ = ensure_run(store, "2024-03-04", "Monday", "Porthcawl", "PM")
    assert am.id != pm.id


def test_concurrent_ensure_creates_one_row(store: MemoryStore) -> None:
    barrier = threading.Barrier(8)
    ids: list[str] = []

    def worker() -> None:
        barrier.wait()
        run, _ = ensure_run(store, "2024-03-04", "Monday", "Porthcawl", "AM")
        ids.append(run.id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(set(ids)) == 1
    assert len(list_runs(store)) == 1


def test_losing_insert_race_returns_the_winner(store: MemoryStore, monkeypatch: pytest.MonkeyPatch) -> None:
    winner = DailyRun(id="winner", run_date="2024-03-04", route_day="Monday", route_area="Porthcawl", route_slot="AM")
    lookups = iter([None, winner])

    def racing_insert(run):
        raise DuplicateRun("key taken")

    monkeypatch.setattr(store, "find_run", lambda key: next(lookups))
    monkeypatch.setattr(store, "insert_run", racing_insert)

    run, created = ensure_run(store, "2024-03-04", "Monday", "Porthcawl", "AM")
    assert created is False
    assert run.id == "winner"


def test_ensure_does_not_touch_existing_assignment(store: MemoryStore) -> None:
    run, _ = ensure_run(store, "2024-03-04", "Monday", "Porthcawl", "AM")
    assign_staff(store, run.id, ["driver-1", " driver-2 ", "driver-1", ""])
    assign_vehicle(store, run.id, "VAN-3")
    update_notes(store, run.id, "  gate code 1234 ")

    again, _ = ensure_run(store, "2024-03-04", "Monday", "Porthcawl", "AM")
    assert again.staff_ids == ["driver-1", "driver-2"]
    assert again.vehicle_id == "VAN-3"
    assert again.notes == "gate code 1234"


def test_ensure_validates_its_key(store: MemoryStore) -> None:
    with pytest.raises(InvalidInput):
        ensure_run(store, "2024-03-04", "Monday", "  ")
    with pytest.raises(InvalidInput):
        ensure_run(store, "04/03/2024", "Monday", "Porthcawl")
    with pytest.raises(InvalidInput):
        ensure_run(store, "2024-03-04", "Someday", "Porthcawl")
    with pytest.raises(InvalidInput):
        ensure_run(store, "2024-03-04", "Monday", "Porthcawl", "NIGHT")


def test_unknown_run(store: MemoryStore) -> None:
    with pytest.raises(NotFound):
        get_run(store, "nope")
    with pytest.raises(NotFound):
        assign_staff(store, "nope", ["driver-1"])
