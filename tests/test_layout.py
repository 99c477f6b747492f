import datetime as dt

import pytest

from roadmap_timeline.layout import (
    DEFAULT_CATEGORY,
    LayoutError,
    build_lanes,
    category_for_team,
    layout_window,
    layout_year,
    position_in,
    resolve_links,
)
from roadmap_timeline.roadmap_models import Delivery, Milestone, SubDelivery


def _delivery(id, start, end, team=None, **kwargs):
    return Delivery(id=id, title=f"Delivery {id}", start_date=start, end_date=end, team=team, **kwargs)


def test_full_year_delivery_spans_whole_window():
    layout = layout_year([_delivery("y", dt.date(2025, 1, 1), dt.date(2025, 12, 31))], 2025)

    assert layout.total_days == 365
    position = layout.positions["y"]
    assert position.left_percent == pytest.approx(0.0)
    assert position.width_percent == pytest.approx(100.0)


def test_single_day_width_is_one_day_of_the_year():
    layout = layout_year([_delivery("d", dt.date(2025, 7, 1), dt.date(2025, 7, 1))], 2025)

    position = layout.positions["d"]
    assert position.width_percent == pytest.approx(1 / 365 * 100)
    assert position.left_percent == pytest.approx(181 / 365 * 100)


def test_leap_year_has_366_days():
    assert layout_year([], 2024).total_days == 366


def test_out_of_window_positions_are_not_clipped():
    layout = layout_year(
        [
            _delivery("early", dt.date(2024, 12, 1), dt.date(2025, 1, 31)),
            _delivery("late", dt.date(2026, 1, 10), dt.date(2026, 1, 20)),
        ],
        2025,
    )

    assert layout.positions["early"].left_percent < 0
    assert layout.positions["late"].left_percent > 100


def test_inverted_interval_gives_negative_width_instead_of_raising():
    layout = layout_year([_delivery("bad", dt.date(2025, 3, 10), dt.date(2025, 3, 1))], 2025)
    assert layout.positions["bad"].width_percent < 0


def test_quarters_cover_the_year():
    layout = layout_year([], 2025)

    assert [q.label for q in layout.quarters] == ["Q1 2025", "Q2 2025", "Q3 2025", "Q4 2025"]
    assert layout.quarters[0].start == dt.date(2025, 1, 1)
    assert layout.quarters[1].start == dt.date(2025, 4, 1)
    assert layout.quarters[3].end == dt.date(2025, 12, 31)
    assert sum(q.width_percent for q in layout.quarters) == pytest.approx(100.0)
    assert layout.quarters[2].left_percent == pytest.approx(181 / 365 * 100)


def test_sub_delivery_and_milestone_positions():
    sub = SubDelivery(id="s", title="Sub", start_date=dt.date(2025, 1, 1), end_date=dt.date(2025, 1, 10))
    delivery = _delivery("d", dt.date(2025, 1, 1), dt.date(2025, 3, 1), sub_deliveries=[sub])
    milestones = [
        Milestone(id="m", title="Go-live", date=dt.date(2025, 1, 1)),
        Milestone(id="p", title="Freeze", date=dt.date(2025, 1, 1), is_period=True, end_date=dt.date(2025, 1, 5)),
    ]

    layout = layout_year([delivery], 2025, milestones)

    assert layout.sub_positions["s"].width_percent == pytest.approx(10 / 365 * 100)
    assert layout.milestone_positions["m"].width_percent == pytest.approx(1 / 365 * 100)
    assert layout.milestone_positions["p"].width_percent == pytest.approx(5 / 365 * 100)


def test_degenerate_window_raises_layout_error():
    with pytest.raises(LayoutError):
        layout_window([], dt.date(2025, 1, 2), dt.date(2025, 1, 1))
    with pytest.raises(LayoutError):
        layout_year([], 0)


@pytest.mark.parametrize(
    "team, category",
    [
        ("Frontend Web", "frontend"),
        ("BACKEND", "backend"),
        ("Mobile iOS", "mobile"),
        ("Platform DevOps", "devops"),
        ("UX Design", "design"),
        ("QA squad", "qa"),
        ("Data Engineering", "data"),
        ("Data Backend", "backend"),
        ("Finance", DEFAULT_CATEGORY),
        (None, DEFAULT_CATEGORY),
        ("", DEFAULT_CATEGORY),
    ],
)
def test_category_for_team(team, category):
    assert category_for_team(team) == category


def test_lanes_follow_keyword_order_with_sequential_rows():
    start, end = dt.date(2025, 1, 1), dt.date(2025, 2, 1)
    deliveries = [
        _delivery("1", start, end, team="Finance"),
        _delivery("2", start, end, team="backend"),
        _delivery("3", start, end, team="Frontend"),
        _delivery("4", start, end, team="Backend API"),
    ]

    lanes = build_lanes(deliveries)

    assert [lane.category for lane in lanes] == ["frontend", "backend", DEFAULT_CATEGORY]
    backend = lanes[1]
    assert [(p.delivery_id, p.row) for p in backend.placements] == [("2", 0), ("4", 1)]


def test_resolve_links_filters_by_id_in_input_order():
    start, end = dt.date(2025, 1, 1), dt.date(2025, 2, 1)
    a = _delivery("a", start, end, linked_deliveries=["c", "b", "ghost"])
    b = _delivery("b", start, end)
    c = _delivery("c", start, end)

    assert [d.id for d in resolve_links(a, [a, b, c])] == ["b", "c"]
    assert resolve_links(b, [a, b, c]) == []


def test_position_in_places_intervals_outside_the_layout():
    layout = layout_year([], 2025)
    position = position_in(layout, dt.date(2025, 2, 1), dt.date(2025, 2, 21))
    assert position.left_percent == pytest.approx(31 / 365 * 100)
    assert position.width_percent == pytest.approx(21 / 365 * 100)
