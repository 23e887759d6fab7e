"""Route matching result models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import List, Optional


@dataclass(slots=True)
class RouteMatch:
    route_area_id: str
    route_area: str
    route_day: str
    slot: str
    matched_prefix: str
    next_date: str


@dataclass(slots=True)
class RouteMatchResult:
    postcode: str
    in_area: bool
    matches: List[RouteMatch] = field(default_factory=list)
    default: Optional[RouteMatch] = None

    def to_dict(self) -> dict:
        return {
            "postcode": self.postcode,
            "in_area": self.in_area,
            "matches": [asdict(match) for match in self.matches],
            "default": asdict(self.default) if self.default else None,
        }
