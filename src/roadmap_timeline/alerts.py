from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable

from .phase_colors import effective_color
from .roadmap_models import AlertCounts, AlertFeed, DateAlert, Delivery, Milestone, Urgency

logger = logging.getLogger(__name__)

OVERDUE_WINDOW_DAYS = 3
"""Items overdue by more than this many days drop out of the feed."""

URGENCY_ORDER: dict[Urgency, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def compute_alerts(
    deliveries: Iterable[Delivery],
    milestones: Iterable[Milestone],
    now: dt.date | dt.datetime,
) -> AlertFeed:
    """
    Build the deadline feed for every open delivery, sub-delivery and milestone.

    - Completed deliveries and sub-deliveries are skipped.
    - Sub-deliveries are checked even when their parent is completed.
    - Period milestones are evaluated on their start date only.
    - Result is sorted by urgency tier, then by days until the deadline.
    """

    alerts: list[DateAlert] = []

    for milestone in milestones:
        days_until = days_between(milestone.date, now)
        if _in_window(days_until):
            alerts.append(
                DateAlert(
                    id=milestone.id,
                    title=milestone.title,
                    type="milestone",
                    date=milestone.date,
                    days_until=days_until,
                    urgency=urgency_for(days_until),
                    color=milestone.color,
                )
            )

    for delivery in deliveries:
        if delivery.status != "completed":
            days_until = days_between(delivery.end_date, now)
            if _in_window(days_until):
                alerts.append(
                    DateAlert(
                        id=delivery.id,
                        title=delivery.title,
                        type="delivery",
                        date=delivery.end_date,
                        days_until=days_until,
                        urgency=urgency_for(days_until),
                        color=effective_color(delivery),
                        status=delivery.status,
                    )
                )

        for sub in delivery.sub_deliveries:
            if sub.completed or sub.status == "completed":
                continue
            days_until = days_between(sub.end_date, now)
            if _in_window(days_until):
                alerts.append(
                    DateAlert(
                        id=sub.id,
                        title=sub.title,
                        type="sub-delivery",
                        date=sub.end_date,
                        days_until=days_until,
                        urgency=urgency_for(days_until),
                        parent_delivery=delivery.title,
                        status=sub.status,
                    )
                )

    alerts.sort(key=lambda alert: (URGENCY_ORDER[alert.urgency], alert.days_until))
    counts = _tally(alerts)
    logger.debug("computed %d alerts (%d critical)", counts.total, counts.critical)
    return AlertFeed(alerts=alerts, counts=counts)


def urgency_for(days_until: int) -> Urgency:
    if days_until <= 3:
        return "critical"
    if days_until <= 7:
        return "high"
    if days_until <= 14:
        return "medium"
    return "low"


def days_between(later: dt.date | dt.datetime, earlier: dt.date | dt.datetime) -> int:
    """Whole calendar days from `earlier` to `later`, both truncated to start of day."""
    return (_start_of_day(later) - _start_of_day(earlier)).days


def alerts_by_urgency(feed: AlertFeed, urgency: Urgency | None = None) -> list[DateAlert]:
    """Alerts of one tier, or all of them when no tier is given."""
    if urgency is None:
        return list(feed.alerts)
    return [alert for alert in feed.alerts if alert.urgency == urgency]


def describe_days_until(days_until: int) -> str:
    if days_until == 0:
        return "Today"
    if days_until == 1:
        return "Tomorrow"
    if days_until == -1:
        return "Overdue by 1 day"
    if days_until < 0:
        return f"Overdue by {abs(days_until)} days"
    return f"In {days_until} days"


def _in_window(days_until: int) -> bool:
    return days_until >= -OVERDUE_WINDOW_DAYS


def _start_of_day(value: dt.date | dt.datetime) -> dt.date:
    # datetime is a subclass of date, so check it first.
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def _tally(alerts: list[DateAlert]) -> AlertCounts:
    per_tier = {tier: 0 for tier in URGENCY_ORDER}
    for alert in alerts:
        per_tier[alert.urgency] += 1
    return AlertCounts(
        critical=per_tier["critical"],
        high=per_tier["high"],
        medium=per_tier["medium"],
        low=per_tier["low"],
        total=len(alerts),
    )
