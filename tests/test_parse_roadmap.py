import datetime as dt
import logging

import pytest

from roadmap_timeline.parse_roadmap import RoadmapValidationError, load_roadmap, parse_roadmap

ROADMAP_YAML = """
roadmap:
  title: Platform 2025
  subtitle: Wave planning
deliveries:
  - id: d1
    title: Checkout
    start_date: 2025-01-06
    end_date: "2025-03-28"
    priority: high
    status: in-progress
    progress: 140
    phase: Onda 1
    team: Frontend
    responsible: Ana
    linked_deliveries: [d2]
    sub_deliveries:
      - id: s1
        title: Cart API
        start_date: 2025-01-06
        end_date: 2025-02-14
        completed: true
      - id: s2
        title: Payment form
        start_date: 2025-02-17
        end_date: 2025-03-28
        status: in-progress
  - id: 7
    title: Reports
    start_date: 2025-04-01
    end_date: 2025-06-30
milestones:
  - id: m1
    title: Go-live
    date: 2025-07-01
    color: "#ef4444"
  - id: m2
    title: Code freeze
    date: 2025-12-15
    end_date: 2025-12-31
"""


def _minimal(**delivery):
    base = {"id": "d", "title": "D", "start_date": "2025-01-01", "end_date": "2025-01-31"}
    base.update(delivery)
    return {"roadmap": {"title": "R"}, "deliveries": [base]}


def test_load_roadmap_from_yaml(tmp_path):
    path = tmp_path / "roadmap.yaml"
    path.write_text(ROADMAP_YAML, encoding="utf-8")

    roadmap = load_roadmap(str(path))

    assert roadmap.title == "Platform 2025"
    assert roadmap.subtitle == "Wave planning"
    first, second = roadmap.deliveries
    assert first.start_date == dt.date(2025, 1, 6)
    assert first.end_date == dt.date(2025, 3, 28)
    assert first.progress == 100
    assert first.delivery_phase == "Onda 1"
    assert first.delivery_color is None
    assert first.linked_deliveries == ["d2"]
    assert [s.id for s in first.sub_deliveries] == ["s1", "s2"]
    assert first.sub_deliveries[0].status == "completed"
    assert first.sub_deliveries[1].completed is False
    assert second.id == "7"
    assert second.priority == "medium"
    assert second.status == "not-started"

    point, period = roadmap.milestones
    assert point.is_period is False
    assert point.color == "#ef4444"
    assert period.is_period is True
    assert period.end_date == dt.date(2025, 12, 31)


def test_dangling_link_is_kept_and_logged(caplog):
    data = _minimal(linked_deliveries=["ghost"])

    with caplog.at_level(logging.WARNING, logger="roadmap_timeline.parse_roadmap"):
        roadmap = parse_roadmap(data)

    assert roadmap.deliveries[0].linked_deliveries == ["ghost"]
    assert "ghost" in caplog.text


def test_empty_collections_are_allowed():
    roadmap = parse_roadmap({"roadmap": {"title": "Empty"}})
    assert roadmap.deliveries == []
    assert roadmap.milestones == []


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"end_date": "2024-12-31"}, "precedes start_date"),
        ({"status": "done"}, "expected one of"),
        ({"color": "blue"}, "hex colour"),
        ({"progress": "50%"}, "expected integer"),
        ({"owner": "x"}, "unexpected fields"),
        ({"start_date": "01/02/2025"}, "YYYY-MM-DD"),
        ({"linked_deliveries": ["d"]}, "link to itself"),
        ({"sub_deliveries": [{"id": "s", "title": "S", "start_date": "2025-01-01", "end_date": "2025-01-02", "completed": True, "status": "blocked"}]}, "contradicts"),
    ],
)
def test_invalid_delivery_fields_are_rejected(overrides, message):
    with pytest.raises(RoadmapValidationError, match=message):
        parse_roadmap(_minimal(**overrides))


def test_missing_title_is_rejected():
    data = _minimal()
    del data["deliveries"][0]["title"]
    with pytest.raises(RoadmapValidationError, match=r"deliveries\[0\]: missing required field 'title'"):
        parse_roadmap(data)


def test_duplicate_ids_across_entities_are_rejected():
    data = _minimal()
    data["milestones"] = [{"id": "d", "title": "M", "date": "2025-01-01"}]
    with pytest.raises(RoadmapValidationError, match="duplicate id 'd'"):
        parse_roadmap(data)


def test_period_milestone_must_not_end_before_it_starts():
    data = {"roadmap": {"title": "R"}, "milestones": [{"id": "m", "title": "M", "date": "2025-02-01", "end_date": "2025-01-01"}]}
    with pytest.raises(RoadmapValidationError, match="precedes date"):
        parse_roadmap(data)


def test_top_level_must_be_mapping():
    with pytest.raises(RoadmapValidationError):
        parse_roadmap(["not", "a", "mapping"])
    with pytest.raises(RoadmapValidationError, match="'roadmap'"):
        parse_roadmap({"deliveries": []})
