"""Subscription and collection request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class SubscriptionCreate(BaseModel):
    postcode: str
    address: str
    frequency: str = Field(default="weekly", description="weekly, fortnightly or threeweekly.")
    extra_bags: int = Field(default=0, description="Extra bags per collection (0-10).")
    use_own_bin: bool = False
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str = Field(default="active", description="Initial status, normally set by checkout.")
    id: Optional[str] = Field(default=None, description="Externally assigned identifier (e.g. checkout subscription id).")


class SubscriptionUpdate(BaseModel):
    """Ops override. Only fields present in the request are applied.

    An explicit null clears ``route_area``, ``next_collection_date``,
    ``pause_from`` or ``pause_to``; it is not a way to clear any other field.
    """

    status: Optional[str] = None
    route_area: Optional[str] = None
    route_slot: Optional[str] = None
    route_day: Optional[str] = Field(default=None, description="Optional; must agree with the area's configured day.")
    next_collection_date: Optional[str] = Field(default=None, description="Explicit override; re-anchors the cycle.")
    pause_from: Optional[str] = None
    pause_to: Optional[str] = None
    frequency: Optional[str] = None
    extra_bags: Optional[int] = None
    use_own_bin: Optional[bool] = None
    ops_notes: Optional[str] = None


class SubscriptionModel(BaseModel):
    id: str
    status: str
    postcode: str
    address: str
    frequency: str
    extra_bags: int
    use_own_bin: bool
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    route_area: Optional[str] = None
    route_day: Optional[str] = None
    route_slot: Optional[str] = None
    anchor_date: Optional[str] = None
    next_collection_date: Optional[str] = None
    pause_from: Optional[str] = None
    pause_to: Optional[str] = None
    ops_notes: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CollectionRequest(BaseModel):
    collected_date: Optional[str] = Field(default=None, description="YYYY-MM-DD; defaults to today (Europe/London).")
    completed_by: Optional[str] = None


class CollectionOutcomeModel(BaseModel):
    subscription_id: str
    collected_date: str
    previous_next_collection_date: Optional[str] = None
    next_collection_date: Optional[str] = None
    notification: str


class CollectionLogEntryModel(BaseModel):
    id: str
    subscription_id: str
    collected_date: str
    previous_next_collection_date: Optional[str] = None
    next_collection_date: str
    created_at: Optional[str] = None


class CollectionHistoryResponse(BaseModel):
    subscription_id: str
    entries: List[CollectionLogEntryModel]
