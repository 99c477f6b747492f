from __future__ import annotations

from typing import AbstractSet, Iterable, List, Sequence

from .layout import position_in, resolve_links
from .phase_colors import effective_color
from .roadmap_models import Delivery, FlatRenderRow, Milestone, TimelineLayout

MILESTONE_LANE = "milestones"
MILESTONE_COLOR = "#666666"


def to_render_rows(
    layout: TimelineLayout,
    deliveries: Sequence[Delivery],
    milestones: Iterable[Milestone] = (),
    expanded: AbstractSet[str] = frozenset(),
    all_deliveries: Sequence[Delivery] | None = None,
) -> list[FlatRenderRow]:
    """
    Convert a layout into a flat list of render rows with indentation.

    Lane headings are emitted first, followed by their deliveries in lane row
    order. Sub-deliveries follow their delivery at indent 2; deliveries whose
    id is in `expanded` are followed by their linked deliveries, looked up in
    `all_deliveries` (defaults to `deliveries`) so filtered-out links still show.
    """

    by_id = {delivery.id: delivery for delivery in deliveries}
    rows: List[FlatRenderRow] = []
    order = 0

    for lane in layout.lanes:
        rows.append(
            FlatRenderRow(order=order, indent=0, node_type="lane", node_id=f"lane:{lane.category}", name=lane.category, lane=lane.category)
        )
        order += 1
        for placement in lane.placements:
            delivery = by_id.get(placement.delivery_id)
            if delivery is None:
                continue
            order = _append_delivery(delivery, rows, order, layout, lane.category)
            if delivery.id in expanded:
                for linked in resolve_links(delivery, deliveries if all_deliveries is None else all_deliveries):
                    position = layout.positions.get(linked.id) or position_in(layout, linked.start_date, linked.end_date)
                    rows.append(
                        FlatRenderRow(
                            order=order,
                            indent=2,
                            node_type="linked",
                            node_id=f"{delivery.id}->{linked.id}",
                            name=linked.title,
                            lane=lane.category,
                            left_percent=position.left_percent,
                            width_percent=position.width_percent,
                            progress=linked.progress,
                            color=effective_color(linked),
                        )
                    )
                    order += 1

    milestone_list = list(milestones)
    if milestone_list:
        rows.append(
            FlatRenderRow(order=order, indent=0, node_type="lane", node_id=f"lane:{MILESTONE_LANE}", name=MILESTONE_LANE, lane=MILESTONE_LANE)
        )
        order += 1
        for milestone in milestone_list:
            position = layout.milestone_positions.get(milestone.id)
            rows.append(
                FlatRenderRow(
                    order=order,
                    indent=1,
                    node_type="period" if milestone.is_period else "lozenge",
                    node_id=milestone.id,
                    name=milestone.title,
                    lane=MILESTONE_LANE,
                    left_percent=position.left_percent if position else None,
                    width_percent=position.width_percent if position else None,
                    color=milestone.color or MILESTONE_COLOR,
                )
            )
            order += 1

    return rows


def _append_delivery(delivery: Delivery, rows: List[FlatRenderRow], order: int, layout: TimelineLayout, lane: str) -> int:
    """Append the delivery and its sub-deliveries; return updated order counter."""

    position = layout.positions.get(delivery.id)
    color = effective_color(delivery)
    rows.append(
        FlatRenderRow(
            order=order,
            indent=1,
            node_type="bar",
            node_id=delivery.id,
            name=delivery.title,
            lane=lane,
            left_percent=position.left_percent if position else None,
            width_percent=position.width_percent if position else None,
            progress=delivery.progress,
            color=color,
        )
    )
    order += 1

    for sub in delivery.sub_deliveries:
        sub_position = layout.sub_positions.get(sub.id)
        rows.append(
            FlatRenderRow(
                order=order,
                indent=2,
                node_type="sub_bar",
                node_id=sub.id,
                name=sub.title,
                lane=lane,
                left_percent=sub_position.left_percent if sub_position else None,
                width_percent=sub_position.width_percent if sub_position else None,
                progress=sub.progress,
                color=color,
            )
        )
        order += 1
    return order
