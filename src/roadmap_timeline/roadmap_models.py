from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal


Complexity = Literal["simple", "medium", "complex", "very-complex"]
Priority = Literal["low", "medium", "high", "critical"]
Status = Literal["not-started", "in-progress", "completed", "blocked"]
AlertType = Literal["milestone", "delivery", "sub-delivery"]
Urgency = Literal["critical", "high", "medium", "low"]

RowKind = Literal["lane", "bar", "sub_bar", "linked", "lozenge", "period"]
"""Allowed render row types: lane heading, delivery bar, sub-delivery bar, linked delivery, milestone, period milestone."""


def _clamp_progress(value: int) -> int:
    return max(0, min(100, int(value)))


@dataclass
class SubDelivery:
    """Child work item owned by exactly one delivery."""

    id: str
    title: str
    start_date: date
    end_date: date
    description: str = ""
    team: str | None = None
    responsible: str | None = None
    status: Status = "not-started"
    progress: int = 0
    completed: bool = False
    jira_link: str | None = None

    def __post_init__(self) -> None:
        self.progress = _clamp_progress(self.progress)


@dataclass
class Delivery:
    """Top-level planned work item with a date range."""

    id: str
    title: str
    start_date: date
    end_date: date
    description: str = ""
    complexity: Complexity = "medium"
    priority: Priority = "medium"
    status: Status = "not-started"
    progress: int = 0
    delivery_phase: str | None = None
    delivery_color: str | None = None
    responsible: str | None = None
    team: str | None = None
    jira_link: str | None = None
    sub_deliveries: list[SubDelivery] = field(default_factory=list)
    linked_deliveries: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.progress = _clamp_progress(self.progress)


@dataclass
class Milestone:
    """Point-in-time or period marker independent of deliveries."""

    id: str
    title: str
    date: date
    description: str | None = None
    is_period: bool = False
    end_date: date | None = None
    color: str | None = None

    @property
    def span_finish(self) -> date:
        """Last day covered by the milestone (its date unless it is a period)."""
        if self.is_period and self.end_date is not None:
            return self.end_date
        return self.date


@dataclass
class Roadmap:
    """Root container produced by the loader."""

    title: str
    deliveries: list[Delivery] = field(default_factory=list)
    milestones: list[Milestone] = field(default_factory=list)
    subtitle: str | None = None
    description: str | None = None


@dataclass
class DateAlert:
    """Deadline entry derived from a milestone, delivery or sub-delivery."""

    id: str
    title: str
    type: AlertType
    date: date
    days_until: int
    urgency: Urgency
    color: str | None = None
    parent_delivery: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class AlertCounts:
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    total: int = 0


@dataclass
class AlertFeed:
    """Sorted alerts plus tallies per urgency tier."""

    alerts: list[DateAlert]
    counts: AlertCounts


@dataclass(frozen=True)
class StatusCounts:
    not_started: int = 0
    in_progress: int = 0
    completed: int = 0
    blocked: int = 0
    total: int = 0


@dataclass(frozen=True)
class TimelinePosition:
    """Horizontal placement as percentages of the layout window."""

    left_percent: float
    width_percent: float


@dataclass(frozen=True)
class Quarter:
    label: str
    start: date
    end: date
    left_percent: float
    width_percent: float


@dataclass(frozen=True)
class LanePlacement:
    delivery_id: str
    row: int


@dataclass
class Lane:
    """Timeline row group for one team category."""

    category: str
    placements: list[LanePlacement] = field(default_factory=list)


@dataclass
class TimelineLayout:
    """
    Geometry for one timeline window.

    Positions are not clipped to the window; a delivery outside the window
    simply gets a negative or >100 left offset.
    """

    window_start: date
    window_end: date
    total_days: int
    quarters: list[Quarter]
    positions: dict[str, TimelinePosition]
    sub_positions: dict[str, TimelinePosition] = field(default_factory=dict)
    milestone_positions: dict[str, TimelinePosition] = field(default_factory=dict)
    lanes: list[Lane] = field(default_factory=list)


@dataclass
class FlatRenderRow:
    """
    Flattened view of a layout used by renderers.

    Only the fields relevant to drawing are kept: positional order,
    indentation level, row kind, lane ownership, and horizontal placement.
    """

    order: int
    indent: int
    node_type: RowKind
    node_id: str
    name: str
    lane: str | None
    left_percent: float | None = None
    width_percent: float | None = None
    progress: int = 0
    color: str | None = None
