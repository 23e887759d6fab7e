"""Daily run, due-count and issue schemas."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class EnsureRunRequest(BaseModel):
    run_date: str = Field(..., description="YYYY-MM-DD")
    route_day: str = Field(..., description="Monday..Sunday")
    route_area: str
    route_slot: Optional[str] = Field(default="ANY", description="AM, PM or ANY; blank means ANY.")


class DailyRunModel(BaseModel):
    id: str
    run_date: str
    route_day: str
    route_area: str
    route_slot: str
    vehicle_id: Optional[str] = None
    staff_ids: List[str] = Field(default_factory=list)
    notes: str = ""
    created_at: Optional[str] = None


class EnsureRunResponse(BaseModel):
    created: bool
    run: DailyRunModel


class AssignStaffRequest(BaseModel):
    staff_ids: List[str] = Field(default_factory=list)


class RunUpdateRequest(BaseModel):
    vehicle_id: Optional[str] = None
    notes: Optional[str] = None


class DueCountResponse(BaseModel):
    date: str
    route_day: str
    due_counts: Dict[str, int]
    breakdown: Dict[str, Dict[str, int]]


class IssueCreateRequest(BaseModel):
    stop_type: str = Field(..., description="subscription or booking")
    stop_id: str
    reason: str
    details: str = ""
    staff_id: Optional[str] = None


class IssueCloseRequest(BaseModel):
    resolution_action: str = ""
    resolution_outcome: str = ""
    staff_id: Optional[str] = None


class IssueModel(BaseModel):
    id: str
    run_id: str
    stop_type: str
    stop_id: str
    reason: str
    details: str = ""
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    resolution_action: Optional[str] = None
    resolution_outcome: Optional[str] = None
    resolved_at: Optional[str] = None
    resolved_by: Optional[str] = None
