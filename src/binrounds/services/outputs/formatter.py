"""Utilities to serialize bulk reassignment results into JSON/CSV artifacts."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ..routing.reassignment import ReassignmentRow, ReassignmentSummary

_ROUTE_FIELDS = ("route_area", "route_day", "route_slot", "next_collection_date")


def reassignment_summary_to_json(summary: "ReassignmentSummary") -> dict:
    return asdict(summary)


def reassignment_results_to_csv(rows: Sequence["ReassignmentRow"]) -> str:
    buffer = io.StringIO()
    fieldnames = ["subscription_id", "postcode", "outcome", "reason"]
    fieldnames += [f"before_{name}" for name in _ROUTE_FIELDS]
    fieldnames += [f"after_{name}" for name in _ROUTE_FIELDS]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        after = row.after or {}
        writer.writerow(
            {
                "subscription_id": row.subscription_id,
                "postcode": row.postcode,
                "outcome": row.outcome,
                "reason": row.reason,
                **{f"before_{name}": row.before.get(name) or "" for name in _ROUTE_FIELDS},
                **{f"after_{name}": after.get(name) or "" for name in _ROUTE_FIELDS},
            }
        )
    return buffer.getvalue()
