"""Route matching and bulk reassignment schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class RouteMatchModel(BaseModel):
    route_area_id: str
    route_area: str
    route_day: str
    slot: str
    matched_prefix: str
    next_date: str


class RouteMatchResponse(BaseModel):
    postcode: str
    in_area: bool
    matches: List[RouteMatchModel]
    default: Optional[RouteMatchModel] = None


class ReassignmentRequest(BaseModel):
    limit: int = Field(default=100, description="Rows scanned in one invocation (1-500).")
    dry_run: bool = Field(default=False, description="Report what would change without writing.")
    force: bool = Field(default=False, description="Overwrite subscriptions that already have a route.")
    recompute_next: bool = Field(default=False, description="Recompute next_collection_date even when the route is unchanged.")
    statuses: Optional[List[str]] = Field(default=None, description="Statuses to scan; defaults to active and trialing.")
    reference_date: Optional[str] = Field(default=None, description="YYYY-MM-DD used as 'today' for new dates.")
    persist_report: bool = Field(default=False, description="Write summary.json and results.csv under the data root.")


class ReassignmentRowModel(BaseModel):
    subscription_id: str
    postcode: str
    outcome: str
    reason: str = ""
    before: dict
    after: Optional[dict] = None


class ReassignmentResponse(BaseModel):
    scanned: int
    updated: int
    no_match: int
    skipped: int
    failed: int
    dry_run: bool
    reference_date: str
    results: List[ReassignmentRowModel]
    report_dir: Optional[str] = None
