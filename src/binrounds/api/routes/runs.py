"""Daily run endpoints for the ops day planner and driver app."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Path, Query, status

from ...models.domain import DailyRun
from ...persistence.store import Store
from ...schemas.runs import (
    AssignStaffRequest,
    DailyRunModel,
    DueCountResponse,
    EnsureRunRequest,
    EnsureRunResponse,
    IssueCreateRequest,
    IssueModel,
    RunUpdateRequest,
)
from ...schemas.subscriptions import SubscriptionModel
from ...services.issues.service import raise_issue
from ...services.runs import (
    assign_staff,
    assign_vehicle,
    due_count,
    due_subscriptions,
    ensure_run,
    get_run,
    list_runs,
    update_notes,
)
from ...services.scheduling.calendar import today_in_zone
from ..deps import raise_http, require_ops_key, store_dependency
from .subscriptions import to_model

router = APIRouter(prefix="/runs", tags=["runs"])


def _run_model(run: DailyRun) -> DailyRunModel:
    return DailyRunModel.model_validate(asdict(run))


@router.post(
    "/ensure",
    response_model=EnsureRunResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_ops_key)],
)
def ensure(payload: EnsureRunRequest, store: Store = Depends(store_dependency)) -> EnsureRunResponse:
    try:
        run, created = ensure_run(store, payload.run_date, payload.route_day, payload.route_area, payload.route_slot)
    except Exception as exc:
        raise_http(exc, "ensure daily run")
    return EnsureRunResponse(created=created, run=_run_model(run))


@router.get("", response_model=list[DailyRunModel])
def list_for_date(
    date: str | None = Query(default=None, description="YYYY-MM-DD; omit for all runs"),
    store: Store = Depends(store_dependency),
) -> list[DailyRunModel]:
    try:
        runs = list_runs(store, date)
    except Exception as exc:
        raise_http(exc, "list daily runs")
    return [_run_model(run) for run in runs]


@router.get("/due-count", response_model=DueCountResponse)
def due_count_for_date(
    date: str | None = Query(default=None, description="YYYY-MM-DD; defaults to today (Europe/London)"),
    store: Store = Depends(store_dependency),
) -> DueCountResponse:
    try:
        summary = due_count(store, date or today_in_zone())
    except Exception as exc:
        raise_http(exc, "load due counts")
    return DueCountResponse.model_validate(asdict(summary))


@router.get("/due", response_model=list[SubscriptionModel])
def due_for_date(
    date: str | None = Query(default=None, description="YYYY-MM-DD; defaults to today (Europe/London)"),
    store: Store = Depends(store_dependency),
) -> list[SubscriptionModel]:
    try:
        rows = due_subscriptions(store, date or today_in_zone())
    except Exception as exc:
        raise_http(exc, "load due subscriptions")
    return [to_model(row) for row in rows]


@router.get("/{run_id}", response_model=DailyRunModel)
def get_one(
    run_id: str = Path(..., description="Run identifier"),
    store: Store = Depends(store_dependency),
) -> DailyRunModel:
    try:
        run = get_run(store, run_id)
    except Exception as exc:
        raise_http(exc, "load daily run")
    return _run_model(run)


@router.post("/{run_id}/staff", response_model=DailyRunModel, dependencies=[Depends(require_ops_key)])
def set_staff(
    payload: AssignStaffRequest,
    run_id: str = Path(..., description="Run identifier"),
    store: Store = Depends(store_dependency),
) -> DailyRunModel:
    try:
        run = assign_staff(store, run_id, payload.staff_ids)
    except Exception as exc:
        raise_http(exc, "assign staff")
    return _run_model(run)


@router.patch("/{run_id}", response_model=DailyRunModel, dependencies=[Depends(require_ops_key)])
def update(
    payload: RunUpdateRequest,
    run_id: str = Path(..., description="Run identifier"),
    store: Store = Depends(store_dependency),
) -> DailyRunModel:
    requested = payload.model_dump(exclude_unset=True)
    try:
        run = get_run(store, run_id)
        if "vehicle_id" in requested:
            run = assign_vehicle(store, run_id, requested["vehicle_id"])
        if "notes" in requested:
            run = update_notes(store, run_id, requested["notes"])
    except Exception as exc:
        raise_http(exc, "update daily run")
    return _run_model(run)


@router.post("/{run_id}/issues", response_model=IssueModel, status_code=status.HTTP_201_CREATED)
def report_issue(
    payload: IssueCreateRequest,
    run_id: str = Path(..., description="Run identifier"),
    store: Store = Depends(store_dependency),
) -> IssueModel:
    try:
        issue = raise_issue(
            store,
            run_id,
            payload.stop_type,
            payload.stop_id,
            payload.reason,
            payload.details,
            staff_id=payload.staff_id,
        )
    except Exception as exc:
        raise_http(exc, "raise issue")
    return IssueModel.model_validate(asdict(issue))
