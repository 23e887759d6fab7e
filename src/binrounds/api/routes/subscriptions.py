"""Subscription and collection endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Path, Query, status

from ...models.domain import Subscription
from ...persistence.store import Store
from ...schemas.subscriptions import (
    CollectionHistoryResponse,
    CollectionLogEntryModel,
    CollectionOutcomeModel,
    CollectionRequest,
    SubscriptionCreate,
    SubscriptionModel,
    SubscriptionUpdate,
)
from ...services.ledger.service import list_collections, record_collection, undo_last_collection
from ...services.subscriptions.service import (
    create_subscription,
    get_subscription,
    list_subscriptions,
    update_subscription,
)
from ..deps import raise_http, require_ops_key, store_dependency

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def to_model(subscription: Subscription) -> SubscriptionModel:
    payload = asdict(subscription)
    payload["status"] = subscription.status.value
    return SubscriptionModel.model_validate(payload)


@router.post("", response_model=SubscriptionModel, status_code=status.HTTP_201_CREATED)
def create(payload: SubscriptionCreate, store: Store = Depends(store_dependency)) -> SubscriptionModel:
    try:
        subscription = create_subscription(store, payload)
    except Exception as exc:
        raise_http(exc, "create subscription")
    return to_model(subscription)


@router.get("", response_model=list[SubscriptionModel], dependencies=[Depends(require_ops_key)])
def list_all(
    status_filter: list[str] | None = Query(default=None, alias="status", description="Repeatable status filter"),
    limit: int | None = Query(default=None, gt=0, le=1000, description="Maximum rows to return"),
    store: Store = Depends(store_dependency),
) -> list[SubscriptionModel]:
    try:
        rows = list_subscriptions(store, statuses=status_filter, limit=limit)
    except Exception as exc:
        raise_http(exc, "list subscriptions")
    return [to_model(row) for row in rows]


@router.get("/{subscription_id}", response_model=SubscriptionModel)
def get_one(
    subscription_id: str = Path(..., description="Subscription identifier"),
    store: Store = Depends(store_dependency),
) -> SubscriptionModel:
    try:
        subscription = get_subscription(store, subscription_id)
    except Exception as exc:
        raise_http(exc, "load subscription")
    return to_model(subscription)


@router.patch("/{subscription_id}", response_model=SubscriptionModel, dependencies=[Depends(require_ops_key)])
def update(
    payload: SubscriptionUpdate,
    subscription_id: str = Path(..., description="Subscription identifier"),
    store: Store = Depends(store_dependency),
) -> SubscriptionModel:
    try:
        subscription = update_subscription(store, subscription_id, payload)
    except Exception as exc:
        raise_http(exc, "update subscription")
    return to_model(subscription)


@router.post(
    "/{subscription_id}/collections",
    response_model=CollectionOutcomeModel,
    dependencies=[Depends(require_ops_key)],
)
def mark_collected(
    payload: CollectionRequest,
    subscription_id: str = Path(..., description="Subscription identifier"),
    store: Store = Depends(store_dependency),
) -> CollectionOutcomeModel:
    try:
        outcome = record_collection(
            store, subscription_id, payload.collected_date, completed_by=payload.completed_by
        )
    except Exception as exc:
        raise_http(exc, "record collection")
    return CollectionOutcomeModel.model_validate(asdict(outcome))


@router.post(
    "/{subscription_id}/collections/undo",
    response_model=CollectionOutcomeModel,
    dependencies=[Depends(require_ops_key)],
)
def undo_collected(
    subscription_id: str = Path(..., description="Subscription identifier"),
    store: Store = Depends(store_dependency),
) -> CollectionOutcomeModel:
    try:
        outcome = undo_last_collection(store, subscription_id)
    except Exception as exc:
        raise_http(exc, "undo collection")
    return CollectionOutcomeModel.model_validate(asdict(outcome))


@router.get("/{subscription_id}/collections", response_model=CollectionHistoryResponse)
def collection_history(
    subscription_id: str = Path(..., description="Subscription identifier"),
    store: Store = Depends(store_dependency),
) -> CollectionHistoryResponse:
    try:
        entries = list_collections(store, subscription_id)
    except Exception as exc:
        raise_http(exc, "load collection history")
    return CollectionHistoryResponse(
        subscription_id=subscription_id,
        entries=[CollectionLogEntryModel.model_validate(asdict(entry)) for entry in entries],
    )
