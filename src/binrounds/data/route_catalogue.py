"""Route catalogue loading: store first, falling back to a JSON seed file."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

from ..config import settings
from ..models.domain import RouteArea
from ..services.routing.matcher import normalize_slot
from ..services.scheduling.calendar import normalize_weekday

if TYPE_CHECKING:
    from ..persistence.store import Store


@lru_cache()
def load_route_catalogue_file(source: Path | None = None) -> tuple[RouteArea, ...]:
    """Load route areas from a JSON list of objects.

    Each object needs ``name``, ``route_day`` and ``postcode_prefixes``;
    ``id``, ``slot``, ``active`` and ``sort_order`` are optional.
    """
    path = source or settings.route_catalogue_file
    if path is None:
        return tuple()
    if not path.exists():
        raise FileNotFoundError(f"Route catalogue file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        rows = json.load(handle)
    if not isinstance(rows, list):
        raise ValueError(f"Route catalogue '{path}' must contain a JSON list.")

    areas: list[RouteArea] = []
    for index, row in enumerate(rows):
        try:
            areas.append(
                RouteArea(
                    id=str(row.get("id") or f"area-{index + 1}"),
                    name=str(row["name"]).strip(),
                    route_day=normalize_weekday(row["route_day"]),
                    slot=normalize_slot(row.get("slot")),
                    postcode_prefixes=tuple(str(prefix) for prefix in row.get("postcode_prefixes") or ()),
                    active=bool(row.get("active", True)),
                    sort_order=int(row.get("sort_order") or 0),
                )
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logging.warning(f"Skipping invalid route catalogue row {index}: {e}")
            continue
    return tuple(areas)


def get_route_catalogue(store: "Store") -> list[RouteArea]:
    """Active route areas known to ``store``."""
    return store.list_route_areas(active_only=True)
