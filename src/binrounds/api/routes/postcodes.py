"""Customer-facing postcode coverage check."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ...persistence.store import Store
from ...schemas.routing import RouteMatchResponse
from ...services.subscriptions.service import check_postcode
from ..deps import raise_http, store_dependency

router = APIRouter(prefix="/postcodes", tags=["postcodes"])


@router.get("/check", response_model=RouteMatchResponse, status_code=status.HTTP_200_OK)
def check(
    postcode: str = Query(..., description="Postcode to check, any spacing or case"),
    date: str | None = Query(default=None, description="Reference date for next_date (defaults to today)"),
    store: Store = Depends(store_dependency),
) -> RouteMatchResponse:
    try:
        result = check_postcode(store, postcode, date)
    except Exception as exc:
        raise_http(exc, "check postcode")
    return RouteMatchResponse.model_validate(result.to_dict())
