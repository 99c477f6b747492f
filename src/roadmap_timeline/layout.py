from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, Sequence

from .alerts import days_between
from .roadmap_models import (
    Delivery,
    Lane,
    LanePlacement,
    Milestone,
    Quarter,
    TimelineLayout,
    TimelinePosition,
)

logger = logging.getLogger(__name__)

CATEGORY_KEYWORDS: tuple[str, ...] = ("frontend", "backend", "mobile", "devops", "design", "qa", "data")
"""Team keywords in matching order; the first keyword found in a team name wins."""

DEFAULT_CATEGORY = "other"

_QUARTER_ENDS: tuple[tuple[int, int], ...] = ((3, 31), (6, 30), (9, 30), (12, 31))


class LayoutError(ValueError):
    """Raised when the layout window is degenerate (no days to divide by)."""


def layout_year(
    deliveries: Sequence[Delivery],
    year: int,
    milestones: Iterable[Milestone] = (),
) -> TimelineLayout:
    """Lay deliveries out on the calendar year `year`, banded into four quarters."""

    try:
        window_start = dt.date(year, 1, 1)
        window_end = dt.date(year, 12, 31)
    except (TypeError, ValueError) as exc:
        raise LayoutError(f"Cannot build a timeline window for year {year!r}") from exc

    layout = layout_window(deliveries, window_start, window_end, milestones)
    layout.quarters = _year_quarters(year, window_start, layout.total_days)
    return layout


def layout_window(
    deliveries: Sequence[Delivery],
    window_start: dt.date,
    window_end: dt.date,
    milestones: Iterable[Milestone] = (),
) -> TimelineLayout:
    """
    Compute proportional placement for deliveries within [window_start, window_end].

    - total_days counts both window ends, so a delivery covering the whole
      window is exactly 100% wide.
    - Nothing is clipped; out-of-window items get offsets outside 0..100.
    - Deliveries are bucketed into lanes by team category in input order.
    """

    total_days = days_between(window_end, window_start) + 1
    if total_days <= 0:
        raise LayoutError(f"Timeline window {window_start} .. {window_end} spans no days")

    positions: dict[str, TimelinePosition] = {}
    sub_positions: dict[str, TimelinePosition] = {}
    for delivery in deliveries:
        positions[delivery.id] = _position(delivery.start_date, delivery.end_date, window_start, total_days)
        for sub in delivery.sub_deliveries:
            sub_positions[sub.id] = _position(sub.start_date, sub.end_date, window_start, total_days)

    milestone_positions = {
        milestone.id: _position(milestone.date, milestone.span_finish, window_start, total_days)
        for milestone in milestones
    }

    lanes = build_lanes(deliveries)
    logger.debug(
        "laid out %d deliveries in %d lanes over %d days", len(positions), len(lanes), total_days
    )
    return TimelineLayout(
        window_start=window_start,
        window_end=window_end,
        total_days=total_days,
        quarters=[],
        positions=positions,
        sub_positions=sub_positions,
        milestone_positions=milestone_positions,
        lanes=lanes,
    )


def category_for_team(team: str | None) -> str:
    """Normalize a free-text team name onto a lane category."""
    if not team:
        return DEFAULT_CATEGORY
    lowered = team.lower()
    for keyword in CATEGORY_KEYWORDS:
        if keyword in lowered:
            return keyword
    return DEFAULT_CATEGORY


def build_lanes(deliveries: Iterable[Delivery]) -> list[Lane]:
    """
    Bucket deliveries into category lanes.

    Rows inside a lane are sequential in input order; overlapping bars are
    left to the renderer. Empty lanes are omitted and the default lane is last.
    """

    by_category: dict[str, list[str]] = {}
    for delivery in deliveries:
        by_category.setdefault(category_for_team(delivery.team), []).append(delivery.id)

    lanes: list[Lane] = []
    for category in CATEGORY_KEYWORDS + (DEFAULT_CATEGORY,):
        ids = by_category.get(category)
        if not ids:
            continue
        lanes.append(
            Lane(
                category=category,
                placements=[LanePlacement(delivery_id=delivery_id, row=row) for row, delivery_id in enumerate(ids)],
            )
        )
    return lanes


def resolve_links(delivery: Delivery, all_deliveries: Iterable[Delivery]) -> list[Delivery]:
    """Deliveries referenced by `delivery.linked_deliveries`, in `all_deliveries` order."""
    linked = set(delivery.linked_deliveries or ())
    if not linked:
        return []
    return [candidate for candidate in all_deliveries if candidate.id in linked]


def position_in(layout: TimelineLayout, start: dt.date, end: dt.date) -> TimelinePosition:
    """Place an arbitrary interval on an existing layout's window."""
    return _position(start, end, layout.window_start, layout.total_days)


def _position(start: dt.date, end: dt.date, window_start: dt.date, total_days: int) -> TimelinePosition:
    # An inverted interval yields a negative width; callers render it as empty.
    offset = days_between(start, window_start)
    duration = days_between(end, start) + 1
    return TimelinePosition(
        left_percent=offset / total_days * 100,
        width_percent=duration / total_days * 100,
    )


def _year_quarters(year: int, window_start: dt.date, total_days: int) -> list[Quarter]:
    quarters: list[Quarter] = []
    for index in range(4):
        start = dt.date(year, index * 3 + 1, 1)
        end = dt.date(year, *_QUARTER_ENDS[index])
        position = _position(start, end, window_start, total_days)
        quarters.append(
            Quarter(
                label=f"Q{index + 1} {year}",
                start=start,
                end=end,
                left_percent=position.left_percent,
                width_percent=position.width_percent,
            )
        )
    return quarters
