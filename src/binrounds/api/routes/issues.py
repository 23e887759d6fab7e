"""Ops issue queue endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Path, Query

from ...persistence.store import Store
from ...schemas.runs import IssueCloseRequest, IssueModel
from ...services.issues.service import close_issue, count_open, list_issues
from ..deps import raise_http, require_ops_key, store_dependency

router = APIRouter(prefix="/issues", tags=["issues"], dependencies=[Depends(require_ops_key)])


@router.get("", response_model=list[IssueModel])
def list_all(
    run_id: str | None = Query(default=None, description="Only issues raised on this run"),
    open_only: bool = Query(default=False, description="Hide resolved issues"),
    store: Store = Depends(store_dependency),
) -> list[IssueModel]:
    try:
        issues = list_issues(store, run_id=run_id, open_only=open_only)
    except Exception as exc:
        raise_http(exc, "list issues")
    return [IssueModel.model_validate(asdict(issue)) for issue in issues]


@router.get("/open-count")
def open_count(store: Store = Depends(store_dependency)) -> dict:
    try:
        return {"open": count_open(store)}
    except Exception as exc:
        raise_http(exc, "count open issues")


@router.post("/{issue_id}/close", response_model=IssueModel)
def close(
    payload: IssueCloseRequest,
    issue_id: str = Path(..., description="Issue identifier"),
    store: Store = Depends(store_dependency),
) -> IssueModel:
    try:
        issue = close_issue(
            store,
            issue_id,
            payload.resolution_action,
            payload.resolution_outcome,
            staff_id=payload.staff_id,
        )
    except Exception as exc:
        raise_http(exc, "close issue")
    return IssueModel.model_validate(asdict(issue))
