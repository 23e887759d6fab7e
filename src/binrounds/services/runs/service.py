"""Daily run orchestration: idempotent creation and explicit staff/vehicle assignment."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional

from ...errors import DuplicateRun, InvalidInput, NotFound, StorageError
from ...models.domain import DailyRun, RunKey
from ...persistence.store import Store
from ..routing.matcher import normalize_slot
from ..scheduling.calendar import normalize_weekday, normalize_ymd, utc_now_iso

logger = logging.getLogger(__name__)


def build_run_key(run_date: str, route_day: str, route_area: str, route_slot: Optional[str]) -> RunKey:
    area = (route_area or "").strip()
    if not area:
        raise InvalidInput("Missing route_area", field="route_area")
    return RunKey(
        run_date=normalize_ymd(run_date, "run_date"),
        route_area=area,
        route_day=normalize_weekday(route_day),
        route_slot=normalize_slot(route_slot),
    )


def ensure_run(
    store: Store,
    run_date: str,
    route_day: str,
    route_area: str,
    route_slot: Optional[str] = None,
) -> tuple[DailyRun, bool]:
    """Get or create the run for the composite key. Returns ``(run, created)``.

    An existing run comes back untouched. If a concurrent caller inserts the
    same key first, the store's uniqueness constraint fires and the winner's
    row is returned instead.
    """
    key = build_run_key(run_date, route_day, route_area, route_slot)
    existing = store.find_run(key)
    if existing is not None:
        return existing, False

    candidate = DailyRun(
        id=uuid.uuid4().hex,
        run_date=key.run_date,
        route_day=key.route_day,
        route_area=key.route_area,
        route_slot=key.route_slot,
        created_at=utc_now_iso(),
    )
    try:
        created = store.insert_run(candidate)
    except DuplicateRun:
        winner = store.find_run(key)
        if winner is None:
            raise StorageError(f"Daily run for {key} reported as duplicate but could not be read back")
        logger.info(f"Lost creation race for run {key}; returning existing run {winner.id}")
        return winner, False

    logger.info(f"Created daily run {created.id} for {key.route_area} {key.route_slot} on {key.run_date}")
    return created, True


def get_run(store: Store, run_id: str) -> DailyRun:
    run = store.get_run(run_id)
    if run is None:
        raise NotFound(f"Run {run_id} not found", field="run_id")
    return run


def list_runs(store: Store, run_date: Optional[str] = None) -> list[DailyRun]:
    day = normalize_ymd(run_date, "run_date") if run_date else None
    return store.list_runs(day)


def assign_staff(store: Store, run_id: str, staff_ids: Iterable[str]) -> DailyRun:
    """Replace the run's staff set; blanks are dropped and order of first appearance kept."""
    cleaned: list[str] = []
    for staff_id in staff_ids:
        value = str(staff_id or "").strip()
        if value and value not in cleaned:
            cleaned.append(value)
    get_run(store, run_id)
    run = store.set_run_staff(run_id, cleaned)
    logger.info(f"Run {run_id} staff set to {cleaned}")
    return run


def assign_vehicle(store: Store, run_id: str, vehicle_id: Optional[str]) -> DailyRun:
    value = (vehicle_id or "").strip() or None
    get_run(store, run_id)
    return store.update_run(run_id, {"vehicle_id": value})


def update_notes(store: Store, run_id: str, notes: Optional[str]) -> DailyRun:
    get_run(store, run_id)
    return store.update_run(run_id, {"notes": (notes or "").strip()})
