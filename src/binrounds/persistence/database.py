"""Supabase-backed store.

Atomic compound writes go through Postgres functions (see ``sql/schema.sql``)
so the ledger append and the subscription update commit together. Daily-run
uniqueness relies on the ``daily_runs_key_unique`` index; a losing insert
surfaces as ``DuplicateRun``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence

from postgrest.exceptions import APIError
from supabase import Client

from ..errors import Conflict, DuplicateRun, NoCollectionToUndo, NotFound, StorageError
from ..models.domain import (
    Booking,
    CollectionLogEntry,
    DailyRun,
    Issue,
    NotificationEvent,
    RouteArea,
    RunKey,
    Subscription,
    SubscriptionStatus,
    SCHEDULABLE_STATUSES,
)
from ..services.routing.matcher import normalize_slot
from ..services.scheduling.calendar import normalize_weekday

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
NO_COLLECTION_MARKER = "no_collection_to_undo"

_SUBSCRIPTION_COLUMNS = (
    "id,status,name,email,phone,postcode,address,frequency,extra_bags,use_own_bin,"
    "route_area,route_day,route_slot,anchor_date,next_collection_date,pause_from,pause_to,"
    "ops_notes,created_at,updated_at"
)
_RUN_COLUMNS = "id,run_date,route_day,route_area,route_slot,vehicle_id,notes,created_at"


def _ymd(value: Any) -> Optional[str]:
    if not value:
        return None
    return str(value)[:10]


def _status(value: Any) -> SubscriptionStatus:
    try:
        return SubscriptionStatus(str(value or "").strip().lower())
    except ValueError:
        logger.warning(f"Unknown subscription status {value!r}; treating as hold")
        return SubscriptionStatus.HOLD


def _row_to_subscription(row: dict) -> Subscription:
    return Subscription(
        id=str(row["id"]),
        postcode=row.get("postcode") or "",
        address=row.get("address") or "",
        frequency=row.get("frequency") or "weekly",
        status=_status(row.get("status")),
        extra_bags=int(row.get("extra_bags") or 0),
        use_own_bin=bool(row.get("use_own_bin")),
        name=row.get("name"),
        email=row.get("email"),
        phone=row.get("phone"),
        route_area=row.get("route_area"),
        route_day=row.get("route_day"),
        route_slot=row.get("route_slot"),
        anchor_date=_ymd(row.get("anchor_date")),
        next_collection_date=_ymd(row.get("next_collection_date")),
        pause_from=_ymd(row.get("pause_from")),
        pause_to=_ymd(row.get("pause_to")),
        ops_notes=row.get("ops_notes") or "",
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _subscription_to_row(subscription: Subscription) -> dict:
    return {
        "id": subscription.id,
        "status": subscription.status.value,
        "name": subscription.name,
        "email": subscription.email,
        "phone": subscription.phone,
        "postcode": subscription.postcode,
        "address": subscription.address,
        "frequency": subscription.frequency,
        "extra_bags": subscription.extra_bags,
        "use_own_bin": subscription.use_own_bin,
        "route_area": subscription.route_area,
        "route_day": subscription.route_day,
        "route_slot": subscription.route_slot,
        "anchor_date": subscription.anchor_date,
        "next_collection_date": subscription.next_collection_date,
        "pause_from": subscription.pause_from,
        "pause_to": subscription.pause_to,
        "ops_notes": subscription.ops_notes,
    }


def _row_to_entry(row: dict) -> CollectionLogEntry:
    return CollectionLogEntry(
        id=str(row["id"]),
        subscription_id=str(row["subscription_id"]),
        collected_date=_ymd(row["collected_date"]) or "",
        previous_next_collection_date=_ymd(row.get("previous_next_collection_date")),
        next_collection_date=_ymd(row.get("next_collection_date")) or "",
        previous_anchor_date=_ymd(row.get("previous_anchor_date")),
        created_at=row.get("created_at"),
    )


def _row_to_run(row: dict, staff_ids: Sequence[str] = ()) -> DailyRun:
    return DailyRun(
        id=str(row["id"]),
        run_date=_ymd(row["run_date"]) or "",
        route_day=row.get("route_day") or "",
        route_area=row.get("route_area") or "",
        route_slot=row.get("route_slot") or "ANY",
        vehicle_id=row.get("vehicle_id"),
        staff_ids=list(staff_ids),
        notes=row.get("notes") or "",
        created_at=row.get("created_at"),
    )


def _row_to_issue(row: dict) -> Issue:
    return Issue(
        id=str(row["id"]),
        run_id=str(row["run_id"]),
        stop_type=row.get("stop_type") or "",
        stop_id=str(row.get("stop_id") or ""),
        reason=row.get("reason") or "",
        details=row.get("details") or "",
        created_by=row.get("created_by_staff_id"),
        created_at=row.get("created_at"),
        resolution_action=row.get("resolution_action"),
        resolution_outcome=row.get("resolution_outcome"),
        resolved_at=row.get("resolved_at"),
        resolved_by=row.get("resolved_by_staff_id"),
    )


class SupabaseStore:
    backend = "supabase"

    def __init__(self, client: Client) -> None:
        self.client = client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except APIError as exc:
            raise StorageError(f"Failed to {action}: {exc.message}") from exc

    def _first(self, response) -> Optional[dict]:
        data = response.data or []
        return data[0] if data else None

    # route areas ---------------------------------------------------------

    def list_route_areas(self, *, active_only: bool = True) -> list[RouteArea]:
        query = self.client.table("route_areas").select(
            "id,name,route_day,slot,postcode_prefixes,active,sort_order"
        )
        if active_only:
            query = query.eq("active", True)
        response = self._execute(query.order("sort_order").order("name"), "load route areas")

        areas: list[RouteArea] = []
        for row in response.data or []:
            try:
                areas.append(
                    RouteArea(
                        id=str(row["id"]),
                        name=str(row["name"]).strip(),
                        route_day=normalize_weekday(row["route_day"]),
                        slot=normalize_slot(row.get("slot")),
                        postcode_prefixes=tuple(row.get("postcode_prefixes") or ()),
                        active=bool(row.get("active", True)),
                        sort_order=int(row.get("sort_order") or 0),
                    )
                )
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid route area row: {e}")
                continue
        return areas

    # subscriptions -------------------------------------------------------

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        response = self._execute(
            self.client.table("subscriptions").select(_SUBSCRIPTION_COLUMNS).eq("id", subscription_id).limit(1),
            "load subscription",
        )
        row = self._first(response)
        return _row_to_subscription(row) if row else None

    def list_subscriptions(
        self,
        *,
        statuses: Optional[Iterable[SubscriptionStatus]] = None,
        limit: Optional[int] = None,
    ) -> list[Subscription]:
        query = self.client.table("subscriptions").select(_SUBSCRIPTION_COLUMNS)
        if statuses is not None:
            query = query.in_("status", [status.value for status in statuses])
        query = query.order("created_at").order("id")
        if limit is not None:
            query = query.limit(limit)
        response = self._execute(query, "list subscriptions")
        return [_row_to_subscription(row) for row in response.data or []]

    def subscriptions_due_on(self, day: str) -> list[Subscription]:
        response = self._execute(
            self.client.table("subscriptions")
            .select(_SUBSCRIPTION_COLUMNS)
            .eq("next_collection_date", day)
            .in_("status", [status.value for status in SCHEDULABLE_STATUSES]),
            "load due subscriptions",
        )
        return [_row_to_subscription(row) for row in response.data or []]

    def insert_subscription(self, subscription: Subscription) -> Subscription:
        response = self._execute(
            self.client.table("subscriptions").insert(_subscription_to_row(subscription)),
            "create subscription",
        )
        row = self._first(response)
        if not row:
            raise StorageError("Subscription insert returned no row")
        return _row_to_subscription(row)

    def update_subscription(self, subscription_id: str, changes: dict) -> Subscription:
        payload = {
            name: (value.value if isinstance(value, SubscriptionStatus) else value)
            for name, value in changes.items()
        }
        response = self._execute(
            self.client.table("subscriptions").update(payload).eq("id", subscription_id),
            "update subscription",
        )
        row = self._first(response)
        if not row:
            raise NotFound(f"Subscription {subscription_id} not found", field="subscription_id")
        return _row_to_subscription(row)

    # collection ledger ---------------------------------------------------

    def append_collection(
        self, entry: CollectionLogEntry, *, anchor_date: str
    ) -> tuple[CollectionLogEntry, Subscription]:
        query = self.client.rpc(
            "record_subscription_collection",
            {
                "p_entry_id": entry.id,
                "p_subscription_id": entry.subscription_id,
                "p_collected_date": entry.collected_date,
                "p_next_collection_date": entry.next_collection_date,
                "p_anchor_date": anchor_date,
            },
        )
        response = self._execute(query, "record collection")
        row = self._first(response)
        if not row:
            raise NotFound(f"Subscription {entry.subscription_id} not found", field="subscription_id")

        # The previous dates are snapshotted by the database under the row lock.
        saved = self._first(
            self._execute(
                self.client.table("subscription_collections").select("*").eq("id", entry.id).limit(1),
                "load recorded collection",
            )
        )
        if not saved:
            raise StorageError(f"Collection {entry.id} was recorded but could not be read back")
        return _row_to_entry(saved), _row_to_subscription(row)

    def pop_last_collection(self, subscription_id: str) -> tuple[CollectionLogEntry, Subscription]:
        try:
            response = self.client.rpc(
                "undo_last_subscription_collection", {"p_subscription_id": subscription_id}
            ).execute()
        except APIError as exc:
            if NO_COLLECTION_MARKER in (exc.message or ""):
                raise NoCollectionToUndo(
                    f"No collection to undo for subscription {subscription_id}"
                ) from exc
            raise StorageError(f"Failed to undo collection: {exc.message}") from exc

        row = self._first(response)
        if not row:
            raise NotFound(f"Subscription {subscription_id} not found", field="subscription_id")
        entry = _row_to_entry(
            {
                "id": row["entry_id"],
                "subscription_id": subscription_id,
                "collected_date": row["collected_date"],
                "previous_next_collection_date": row.get("previous_next_collection_date"),
                "next_collection_date": row.get("undone_next_collection_date"),
                "previous_anchor_date": row.get("previous_anchor_date"),
                "created_at": row.get("entry_created_at"),
            }
        )
        subscription = self.get_subscription(subscription_id)
        if subscription is None:
            raise NotFound(f"Subscription {subscription_id} not found", field="subscription_id")
        return entry, subscription

    def list_collections(self, subscription_id: str) -> list[CollectionLogEntry]:
        response = self._execute(
            self.client.table("subscription_collections")
            .select("*")
            .eq("subscription_id", subscription_id)
            .order("created_at", desc=True),
            "load collection history",
        )
        return [_row_to_entry(row) for row in response.data or []]

    # daily runs ----------------------------------------------------------

    def _staff_for(self, run_ids: Sequence[str]) -> dict[str, list[str]]:
        if not run_ids:
            return {}
        response = self._execute(
            self.client.table("daily_run_staff").select("run_id,staff_id").in_("run_id", list(run_ids)),
            "load run staff",
        )
        staff: dict[str, list[str]] = {}
        for row in response.data or []:
            staff.setdefault(str(row["run_id"]), []).append(str(row["staff_id"]))
        return staff

    def _hydrate(self, rows: Sequence[dict]) -> list[DailyRun]:
        staff = self._staff_for([str(row["id"]) for row in rows])
        return [_row_to_run(row, staff.get(str(row["id"]), ())) for row in rows]

    def find_run(self, key: RunKey) -> Optional[DailyRun]:
        response = self._execute(
            self.client.table("daily_runs")
            .select(_RUN_COLUMNS)
            .eq("run_date", key.run_date)
            .eq("route_area", key.route_area)
            .eq("route_day", key.route_day)
            .eq("route_slot", key.route_slot)
            .limit(1),
            "find daily run",
        )
        row = self._first(response)
        return self._hydrate([row])[0] if row else None

    def insert_run(self, run: DailyRun) -> DailyRun:
        try:
            response = self.client.table("daily_runs").insert(
                {
                    "id": run.id,
                    "run_date": run.run_date,
                    "route_day": run.route_day,
                    "route_area": run.route_area,
                    "route_slot": run.route_slot,
                }
            ).execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise DuplicateRun(f"Daily run already exists for {run.key}") from exc
            raise StorageError(f"Failed to create daily run: {exc.message}") from exc
        row = self._first(response)
        if not row:
            raise StorageError("Daily run insert returned no row")
        return _row_to_run(row)

    def get_run(self, run_id: str) -> Optional[DailyRun]:
        response = self._execute(
            self.client.table("daily_runs").select(_RUN_COLUMNS).eq("id", run_id).limit(1),
            "load daily run",
        )
        row = self._first(response)
        return self._hydrate([row])[0] if row else None

    def list_runs(self, run_date: Optional[str] = None) -> list[DailyRun]:
        query = self.client.table("daily_runs").select(_RUN_COLUMNS)
        if run_date is not None:
            query = query.eq("run_date", run_date)
        response = self._execute(
            query.order("run_date").order("route_area").order("route_slot"), "list daily runs"
        )
        return self._hydrate(response.data or [])

    def update_run(self, run_id: str, changes: dict) -> DailyRun:
        response = self._execute(
            self.client.table("daily_runs").update(changes).eq("id", run_id), "update daily run"
        )
        row = self._first(response)
        if not row:
            raise NotFound(f"Run {run_id} not found", field="run_id")
        return self._hydrate([row])[0]

    def set_run_staff(self, run_id: str, staff_ids: Sequence[str]) -> DailyRun:
        if self.get_run(run_id) is None:
            raise NotFound(f"Run {run_id} not found", field="run_id")
        self._execute(
            self.client.table("daily_run_staff").delete().eq("run_id", run_id), "clear run staff"
        )
        if staff_ids:
            self._execute(
                self.client.table("daily_run_staff").insert(
                    [{"run_id": run_id, "staff_id": staff_id} for staff_id in staff_ids]
                ),
                "assign run staff",
            )
        run = self.get_run(run_id)
        if run is None:
            raise NotFound(f"Run {run_id} not found", field="run_id")
        return run

    # bookings ------------------------------------------------------------

    def bookings_due_on(self, day: str) -> list[Booking]:
        response = self._execute(
            self.client.table("bookings")
            .select("id,route_area,route_day,route_slot,service_date,collection_date,status,payment_status,title,payload")
            .or_(f"service_date.eq.{day},collection_date.eq.{day}"),
            "load bookings",
        )
        bookings = [
            Booking(
                id=str(row["id"]),
                route_area=row.get("route_area"),
                route_day=row.get("route_day"),
                route_slot=row.get("route_slot"),
                service_date=_ymd(row.get("service_date")),
                collection_date=_ymd(row.get("collection_date")),
                status=row.get("status"),
                payment_status=row.get("payment_status"),
                title=row.get("title"),
                payload=row.get("payload") or {},
            )
            for row in response.data or []
        ]
        return [booking for booking in bookings if booking.due_date == day]

    # issues --------------------------------------------------------------

    def upsert_issue(self, issue: Issue) -> Issue:
        # id is left to the table default so a replaced issue keeps its original id
        response = self._execute(
            self.client.table("run_stop_issues").upsert(
                {
                    "run_id": issue.run_id,
                    "stop_type": issue.stop_type,
                    "stop_id": issue.stop_id,
                    "reason": issue.reason,
                    "details": issue.details,
                    "created_by_staff_id": issue.created_by,
                    "resolved_at": None,
                    "resolved_by_staff_id": None,
                    "resolution_action": None,
                    "resolution_outcome": None,
                },
                on_conflict="run_id,stop_type,stop_id",
            ),
            "save issue",
        )
        row = self._first(response)
        if not row:
            raise StorageError("Issue upsert returned no row")
        return _row_to_issue(row)

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        response = self._execute(
            self.client.table("run_stop_issues").select("*").eq("id", issue_id).limit(1), "load issue"
        )
        row = self._first(response)
        return _row_to_issue(row) if row else None

    def update_issue(self, issue_id: str, changes: dict, *, require_open: bool = False) -> Issue:
        column_names = {"resolved_by": "resolved_by_staff_id", "created_by": "created_by_staff_id"}
        payload = {column_names.get(name, name): value for name, value in changes.items()}
        query = self.client.table("run_stop_issues").update(payload).eq("id", issue_id)
        if require_open:
            query = query.is_("resolved_at", "null")
        row = self._first(self._execute(query, "update issue"))
        if not row:
            if require_open and self.get_issue(issue_id) is not None:
                raise Conflict(f"Issue {issue_id} is already closed")
            raise NotFound(f"Issue {issue_id} not found", field="issue_id")
        return _row_to_issue(row)

    def list_issues(self, *, run_id: Optional[str] = None, open_only: bool = False) -> list[Issue]:
        query = self.client.table("run_stop_issues").select("*")
        if run_id is not None:
            query = query.eq("run_id", run_id)
        if open_only:
            query = query.is_("resolved_at", "null")
        response = self._execute(query.order("created_at", desc=True), "list issues")
        return [_row_to_issue(row) for row in response.data or []]

    # notification outbox -------------------------------------------------

    def enqueue_notification(self, event: NotificationEvent) -> NotificationEvent:
        self._execute(
            self.client.table("notification_queue").insert(
                {
                    "id": event.id,
                    "event_type": event.event_type,
                    "target_type": event.target_type,
                    "target_id": event.target_id,
                    "recipient_email": event.recipient_email,
                    "scheduled_at": event.scheduled_at,
                    "status": event.status,
                    "payload": event.payload,
                }
            ),
            "queue notification",
        )
        return event

    def cancel_pending_notifications(self, event_type: str, target_prefix: str, cancelled_at: str) -> int:
        response = self._execute(
            self.client.table("notification_queue")
            .update({"status": "cancelled", "cancelled_at": cancelled_at})
            .eq("event_type", event_type)
            .like("target_id", f"{target_prefix}%")
            .eq("status", "pending"),
            "cancel notifications",
        )
        return len(response.data or [])
