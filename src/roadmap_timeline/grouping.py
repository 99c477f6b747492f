from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, Protocol, Sequence, TypeVar

from .roadmap_models import Delivery, Priority, StatusCounts

logger = logging.getLogger(__name__)

NO_PHASE = "No Phase"
"""Bucket for deliveries without a phase; moving a delivery here clears its phase."""

NO_RESPONSIBLE = "No Responsible"
"""Filter value selecting deliveries that have no responsible set."""


class _HasId(Protocol):
    id: str


T = TypeVar("T", bound=_HasId)


def group_by_phase(deliveries: Iterable[Delivery]) -> dict[str, list[Delivery]]:
    """
    Bucket deliveries by phase label.

    Buckets appear in order of first appearance and keep the input order of
    their deliveries. Blank phases land in NO_PHASE.
    """

    grouped: dict[str, list[Delivery]] = {}
    for delivery in deliveries:
        grouped.setdefault(_phase_key(delivery.delivery_phase), []).append(delivery)
    return grouped


def reorder_within_list(items: Sequence[T], active_id: str, over_id: str) -> Sequence[T]:
    """
    Move the item `active_id` to the index currently held by `over_id`.

    Returns the input unchanged when either id is missing; list mutation can
    race with the gesture that produced the ids.
    """

    old_index = _index_of(items, active_id)
    new_index = _index_of(items, over_id)
    if old_index is None or new_index is None:
        logger.debug("reorder skipped: %r or %r not found", active_id, over_id)
        return items

    reordered = list(items)
    moved = reordered.pop(old_index)
    reordered.insert(new_index, moved)
    return reordered


def move_to_phase(deliveries: Sequence[Delivery], delivery_id: str, new_phase: str | None) -> list[Delivery]:
    """Return the deliveries with one of them reassigned to `new_phase` (NO_PHASE clears it)."""

    phase = None if new_phase is None or new_phase == NO_PHASE or not new_phase.strip() else new_phase
    return [
        dataclasses.replace(delivery, delivery_phase=phase) if delivery.id == delivery_id else delivery
        for delivery in deliveries
    ]


def reorder_phase_groups(
    grouped: dict[str, list[Delivery]], active_phase: str, over_phase: str
) -> dict[str, list[Delivery]]:
    """Reorder the phase buckets themselves; bucket contents are carried over as-is."""

    phases = list(grouped.keys())
    if active_phase not in grouped or over_phase not in grouped:
        return grouped

    old_index = phases.index(active_phase)
    new_index = phases.index(over_phase)
    moved = phases.pop(old_index)
    phases.insert(new_index, moved)
    return {phase: grouped[phase] for phase in phases}


def filter_deliveries(
    deliveries: Iterable[Delivery],
    phase: str | None = None,
    priority: Priority | None = None,
    responsibles: Iterable[str] | None = None,
) -> list[Delivery]:
    """
    Keep deliveries matching every given criterion.

    `phase` accepts NO_PHASE for unphased deliveries. An empty or missing
    `responsibles` selection matches everyone; NO_RESPONSIBLE inside it
    matches deliveries without a responsible.
    """

    selected = set(responsibles or ())
    result: list[Delivery] = []
    for delivery in deliveries:
        if phase is not None and _phase_key(delivery.delivery_phase) != phase:
            continue
        if priority is not None and delivery.priority != priority:
            continue
        if selected:
            who = delivery.responsible.strip() if delivery.responsible else ""
            if (who or NO_RESPONSIBLE) not in selected:
                continue
        result.append(delivery)
    return result


def list_phases(deliveries: Iterable[Delivery]) -> list[str]:
    return list(group_by_phase(deliveries).keys())


def list_responsibles(deliveries: Iterable[Delivery]) -> list[str]:
    return sorted({d.responsible.strip() for d in deliveries if d.responsible and d.responsible.strip()})


def delivery_stats(deliveries: Iterable[Delivery]) -> StatusCounts:
    counts = {"not-started": 0, "in-progress": 0, "completed": 0, "blocked": 0}
    total = 0
    for delivery in deliveries:
        counts[delivery.status] = counts.get(delivery.status, 0) + 1
        total += 1
    return StatusCounts(
        not_started=counts["not-started"],
        in_progress=counts["in-progress"],
        completed=counts["completed"],
        blocked=counts["blocked"],
        total=total,
    )


def _phase_key(phase: str | None) -> str:
    if phase is None or not phase.strip():
        return NO_PHASE
    return phase


def _index_of(items: Sequence[_HasId], item_id: str) -> int | None:
    for idx, item in enumerate(items):
        if item.id == item_id:
            return idx
    return None
