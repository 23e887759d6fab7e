"""Route reassignment endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from ...persistence.store import Store
from ...schemas.routing import ReassignmentRequest, ReassignmentResponse
from ...services.routing.reassignment import bulk_reassign, options_from_values
from ...services.subscriptions.service import parse_statuses
from ..deps import raise_http, require_ops_key, store_dependency

router = APIRouter(prefix="/routes", tags=["routes"], dependencies=[Depends(require_ops_key)])


@router.post("/reassign", response_model=ReassignmentResponse, status_code=status.HTTP_200_OK)
def reassign(payload: ReassignmentRequest, store: Store = Depends(store_dependency)) -> ReassignmentResponse:
    try:
        options = options_from_values(
            limit=payload.limit,
            dry_run=payload.dry_run,
            force=payload.force,
            recompute_next=payload.recompute_next,
            statuses=parse_statuses(payload.statuses),
            reference_date=payload.reference_date,
            persist_report=payload.persist_report,
        )
        summary = bulk_reassign(store, options)
    except Exception as exc:
        raise_http(exc, "reassign routes")
    return ReassignmentResponse.model_validate(asdict(summary))
