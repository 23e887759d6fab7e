"""Bulk route reassignment over existing subscriptions.

Rows are written one at a time and never rolled back, so a batch that dies
halfway leaves every row it reached in a consistent state. Re-running with
the same filter picks up whatever is left. ``limit`` caps how many rows a
single call can touch, because ``force`` overwrites routes ops chose by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from ...config import settings
from ...errors import InvalidInput, SchedulingError
from ...models.domain import Subscription, SubscriptionStatus, SCHEDULABLE_STATUSES
from ...persistence.filesystem import FileStorage
from ...persistence.store import Store
from ..outputs.formatter import reassignment_results_to_csv, reassignment_summary_to_json
from ..scheduling.calendar import normalize_ymd, today_in_zone
from .assignment import rebase_schedule
from .matcher import match, normalize_postcode

logger = logging.getLogger(__name__)

UPDATED = "updated"
NO_MATCH = "no_match"
SKIPPED = "skipped"
FAILED = "failed"

_ROUTE_FIELDS = ("route_area", "route_day", "route_slot", "anchor_date", "next_collection_date")


@dataclass(slots=True)
class ReassignmentOptions:
    limit: int = 100
    dry_run: bool = False
    force: bool = False
    recompute_next: bool = False
    statuses: frozenset[SubscriptionStatus] = SCHEDULABLE_STATUSES
    reference_date: Optional[str] = None
    persist_report: bool = False


@dataclass(slots=True)
class ReassignmentRow:
    subscription_id: str
    postcode: str
    outcome: str
    reason: str = ""
    before: dict = field(default_factory=dict)
    after: Optional[dict] = None


@dataclass(slots=True)
class ReassignmentSummary:
    scanned: int
    updated: int
    no_match: int
    skipped: int
    failed: int
    dry_run: bool
    reference_date: str
    results: list[ReassignmentRow]
    report_dir: Optional[str] = None


def _route_snapshot(subscription: Subscription) -> dict:
    return {name: getattr(subscription, name) for name in _ROUTE_FIELDS}


def _validate(options: ReassignmentOptions) -> None:
    cap = settings.bulk_reassign_max_limit
    if isinstance(options.limit, bool) or not isinstance(options.limit, int) or not 1 <= options.limit <= cap:
        raise InvalidInput(f"limit must be between 1 and {cap}", field="limit")
    if not options.statuses:
        raise InvalidInput("At least one status is required", field="statuses")


def _reassign_one(
    store: Store,
    subscription: Subscription,
    catalogue,
    options: ReassignmentOptions,
    reference: str,
) -> ReassignmentRow:
    before = _route_snapshot(subscription)
    postcode = normalize_postcode(subscription.postcode)
    row = ReassignmentRow(subscription_id=subscription.id, postcode=postcode, outcome=NO_MATCH, before=before)
    if not postcode:
        row.reason = "Missing postcode"
        return row

    result = match(postcode, catalogue, reference)
    if result.default is None:
        row.reason = "No route covers this postcode"
        return row

    if subscription.has_route() and not options.force:
        row.outcome = SKIPPED
        row.reason = f"Already assigned to {subscription.route_area}"
        return row

    chosen = result.default
    anchor, next_date = rebase_schedule(
        subscription, chosen.route_day, reference, recompute=options.recompute_next
    )
    after = {
        "route_area": chosen.route_area,
        "route_day": chosen.route_day,
        "route_slot": chosen.slot,
        "anchor_date": anchor,
        "next_collection_date": next_date,
    }
    row.outcome = UPDATED
    row.after = after
    row.reason = "unchanged" if after == before else "route assigned"
    if not options.dry_run and after != before:
        store.update_subscription(subscription.id, after)
    return row


def bulk_reassign(
    store: Store,
    options: ReassignmentOptions,
    *,
    storage: Optional[FileStorage] = None,
) -> ReassignmentSummary:
    """Scan up to ``options.limit`` subscriptions and (re)assign their routes.

    Each row ends up ``updated``, ``no_match``, ``skipped`` or ``failed``; a
    failing row is reported and the batch carries on. A dry run computes the
    same outcomes and would-be values without writing anything.
    """
    _validate(options)
    reference = (
        normalize_ymd(options.reference_date, "reference_date") if options.reference_date else today_in_zone()
    )
    catalogue = store.list_route_areas(active_only=True)
    subscriptions = store.list_subscriptions(statuses=options.statuses, limit=options.limit)

    results: list[ReassignmentRow] = []
    for subscription in subscriptions:
        try:
            results.append(_reassign_one(store, subscription, catalogue, options, reference))
        except SchedulingError as exc:
            logger.warning(f"Reassignment failed for {subscription.id}: {exc}")
            results.append(
                ReassignmentRow(
                    subscription_id=subscription.id,
                    postcode=subscription.postcode,
                    outcome=FAILED,
                    reason=f"{exc.kind}: {exc.message}",
                    before=_route_snapshot(subscription),
                )
            )

    counts = {outcome: 0 for outcome in (UPDATED, NO_MATCH, SKIPPED, FAILED)}
    for row in results:
        counts[row.outcome] += 1

    summary = ReassignmentSummary(
        scanned=len(subscriptions),
        updated=counts[UPDATED],
        no_match=counts[NO_MATCH],
        skipped=counts[SKIPPED],
        failed=counts[FAILED],
        dry_run=options.dry_run,
        reference_date=reference,
        results=results,
    )
    logger.info(
        f"Bulk reassignment{' (dry run)' if options.dry_run else ''}: scanned={summary.scanned} "
        f"updated={summary.updated} no_match={summary.no_match} skipped={summary.skipped} failed={summary.failed}"
    )

    if options.persist_report:
        summary.report_dir = str(_write_report(summary, storage or FileStorage()))
    return summary


def _write_report(summary: ReassignmentSummary, storage: FileStorage) -> Path:
    prefix = "reassign_dryrun" if summary.dry_run else "reassign"
    run_dir = storage.make_run_directory(prefix=prefix)
    storage.write_json(run_dir / "summary.json", reassignment_summary_to_json(summary))
    storage.write_csv(run_dir / "results.csv", reassignment_results_to_csv(summary.results))
    return run_dir


def options_from_values(
    *,
    limit: Optional[int] = None,
    dry_run: bool = False,
    force: bool = False,
    recompute_next: bool = False,
    statuses: Optional[Iterable[SubscriptionStatus]] = None,
    reference_date: Optional[str] = None,
    persist_report: bool = False,
) -> ReassignmentOptions:
    return ReassignmentOptions(
        limit=settings.bulk_reassign_default_limit if limit is None else limit,
        dry_run=dry_run,
        force=force,
        recompute_next=recompute_next,
        statuses=frozenset(statuses) if statuses else SCHEDULABLE_STATUSES,
        reference_date=reference_date,
        persist_report=persist_report,
    )
