"""Schedule changes that follow a route (re)assignment."""

from __future__ import annotations

from typing import Optional

from ...models.domain import Subscription
from ..scheduling.calendar import is_valid_ymd, next_occurrence_of_weekday, weekday_of
from ..scheduling.recurrence import frequency_days, next_due


def rebase_schedule(
    subscription: Subscription,
    route_day: str,
    reference: str,
    *,
    recompute: bool = False,
) -> tuple[str, Optional[str]]:
    """Return ``(anchor_date, next_collection_date)`` for ``subscription`` on ``route_day``.

    The existing anchor is kept while it still falls on the route's weekday;
    with ``recompute`` the next date is then rolled forward from it. Otherwise
    the cycle is re-anchored on the first ``route_day`` on or after
    ``reference``.
    """
    period = frequency_days(subscription.frequency)
    anchor = subscription.anchor_date
    keeps_anchor = (
        is_valid_ymd(anchor)
        and subscription.route_day == route_day
        and weekday_of(anchor) == route_day
    )
    if keeps_anchor:
        if not recompute and subscription.next_collection_date:
            return anchor, subscription.next_collection_date
        return anchor, next_due(anchor, period, reference)

    new_anchor = next_occurrence_of_weekday(reference, route_day)
    return new_anchor, next_due(new_anchor, period, reference)
