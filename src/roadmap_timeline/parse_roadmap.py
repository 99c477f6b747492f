from __future__ import annotations

import datetime as _dt
import logging
import re
from dataclasses import dataclass
from typing import Any, get_args

import yaml

from .roadmap_models import Complexity, Delivery, Milestone, Priority, Roadmap, Status, SubDelivery

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


class RoadmapValidationError(Exception):
    """Raised when a roadmap file is malformed (bad fields, duplicate ids, inverted dates)."""


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like deliveries[0].sub_deliveries[1]."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


def load_roadmap(path: str) -> Roadmap:
    """Load a Roadmap from a YAML file at the given path."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    return parse_roadmap(raw)


def parse_roadmap(data: Any) -> Roadmap:
    """Validate an already-decoded mapping and build a Roadmap from it."""

    path = _Path()
    if not isinstance(data, dict):
        raise RoadmapValidationError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, {"roadmap", "deliveries", "milestones"}, path)

    header = data.get("roadmap")
    if not isinstance(header, dict):
        raise RoadmapValidationError(f"{path}: missing required mapping 'roadmap'")
    header_path = path.child("roadmap")
    _assert_allowed_keys(header, {"title", "subtitle", "description"}, header_path)
    title = _require_str(header, "title", header_path)
    subtitle = _optional_str(header, "subtitle", header_path)
    description = _optional_str(header, "description", header_path)

    ids: set[str] = set()
    deliveries = [
        _parse_delivery(raw, path.child(f"deliveries[{idx}]"), ids)
        for idx, raw in enumerate(_optional_list(data, "deliveries", path))
    ]
    milestones = [
        _parse_milestone(raw, path.child(f"milestones[{idx}]"), ids)
        for idx, raw in enumerate(_optional_list(data, "milestones", path))
    ]

    _warn_dangling_links(deliveries)
    logger.debug("parsed roadmap %r: %d deliveries, %d milestones", title, len(deliveries), len(milestones))
    return Roadmap(
        title=title,
        deliveries=deliveries,
        milestones=milestones,
        subtitle=subtitle,
        description=description,
    )


def _parse_delivery(data: Any, path: _Path, ids: set[str]) -> Delivery:
    if not isinstance(data, dict):
        raise RoadmapValidationError(f"{path}: expected mapping for delivery")

    _assert_allowed_keys(
        data,
        {
            "id",
            "title",
            "description",
            "start_date",
            "end_date",
            "complexity",
            "priority",
            "status",
            "progress",
            "phase",
            "color",
            "responsible",
            "team",
            "jira_link",
            "sub_deliveries",
            "linked_deliveries",
        },
        path,
    )
    delivery_id = _require_id(data, path, ids)
    title = _require_str(data, "title", path)
    start_date, end_date = _parse_interval(data, path)

    sub_deliveries = [
        _parse_sub_delivery(raw, path.child(f"sub_deliveries[{idx}]"), ids)
        for idx, raw in enumerate(_optional_list(data, "sub_deliveries", path))
    ]

    linked: list[str] = []
    for idx, link in enumerate(_optional_list(data, "linked_deliveries", path)):
        if not isinstance(link, (str, int)) or isinstance(link, bool):
            raise RoadmapValidationError(f"{path}.linked_deliveries[{idx}]: expected delivery id")
        if str(link) == delivery_id:
            raise RoadmapValidationError(f"{path}.linked_deliveries[{idx}]: delivery cannot link to itself")
        linked.append(str(link))

    return Delivery(
        id=delivery_id,
        title=title,
        start_date=start_date,
        end_date=end_date,
        description=_optional_str(data, "description", path) or "",
        complexity=_parse_choice(data, "complexity", Complexity, "medium", path),
        priority=_parse_choice(data, "priority", Priority, "medium", path),
        status=_parse_choice(data, "status", Status, "not-started", path),
        progress=_parse_progress(data, path),
        delivery_phase=_optional_str(data, "phase", path),
        delivery_color=_parse_color(data, "color", path),
        responsible=_optional_str(data, "responsible", path),
        team=_optional_str(data, "team", path),
        jira_link=_optional_str(data, "jira_link", path),
        sub_deliveries=sub_deliveries,
        linked_deliveries=linked,
    )


def _parse_sub_delivery(data: Any, path: _Path, ids: set[str]) -> SubDelivery:
    if not isinstance(data, dict):
        raise RoadmapValidationError(f"{path}: expected mapping for sub-delivery")

    _assert_allowed_keys(
        data,
        {
            "id",
            "title",
            "description",
            "start_date",
            "end_date",
            "team",
            "responsible",
            "status",
            "progress",
            "completed",
            "jira_link",
        },
        path,
    )
    sub_id = _require_id(data, path, ids)
    title = _require_str(data, "title", path)
    start_date, end_date = _parse_interval(data, path)

    status = _parse_choice(data, "status", Status, None, path)
    completed = data.get("completed")
    if completed is not None and not isinstance(completed, bool):
        raise RoadmapValidationError(f"{path}.completed: expected boolean")

    if status is None:
        status = "completed" if completed else "not-started"
    if completed is None:
        completed = status == "completed"
    if completed != (status == "completed"):
        raise RoadmapValidationError(f"{path}: completed={completed} contradicts status '{status}'")

    return SubDelivery(
        id=sub_id,
        title=title,
        start_date=start_date,
        end_date=end_date,
        description=_optional_str(data, "description", path) or "",
        team=_optional_str(data, "team", path),
        responsible=_optional_str(data, "responsible", path),
        status=status,
        progress=_parse_progress(data, path),
        completed=completed,
        jira_link=_optional_str(data, "jira_link", path),
    )


def _parse_milestone(data: Any, path: _Path, ids: set[str]) -> Milestone:
    if not isinstance(data, dict):
        raise RoadmapValidationError(f"{path}: expected mapping for milestone")

    _assert_allowed_keys(data, {"id", "title", "description", "date", "end_date", "color"}, path)
    milestone_id = _require_id(data, path, ids)
    title = _require_str(data, "title", path)
    date = _parse_date(_require_value(data, "date", path), path.child("date"))

    end_date = None
    if data.get("end_date") is not None:
        end_date = _parse_date(data["end_date"], path.child("end_date"))
        if end_date < date:
            raise RoadmapValidationError(f"{path}: end_date {end_date} precedes date {date}")

    return Milestone(
        id=milestone_id,
        title=title,
        date=date,
        description=_optional_str(data, "description", path),
        is_period=end_date is not None,
        end_date=end_date,
        color=_parse_color(data, "color", path),
    )


def _warn_dangling_links(deliveries: list[Delivery]) -> None:
    known = {delivery.id for delivery in deliveries}
    for delivery in deliveries:
        for link in delivery.linked_deliveries:
            if link not in known:
                logger.warning("delivery %r links to unknown delivery %r", delivery.id, link)


def _parse_interval(data: dict[str, Any], path: _Path) -> tuple[_dt.date, _dt.date]:
    start_date = _parse_date(_require_value(data, "start_date", path), path.child("start_date"))
    end_date = _parse_date(_require_value(data, "end_date", path), path.child("end_date"))
    if end_date < start_date:
        raise RoadmapValidationError(f"{path}: end_date {end_date} precedes start_date {start_date}")
    return start_date, end_date


def _parse_choice(data: dict[str, Any], key: str, choices: Any, default: Any, path: _Path) -> Any:
    if data.get(key) is None:
        return default
    allowed = get_args(choices)
    value = data[key]
    if value not in allowed:
        raise RoadmapValidationError(f"{path.child(key)}: expected one of {list(allowed)}, got {value!r}")
    return value


def _parse_progress(data: dict[str, Any], path: _Path) -> int:
    value = data.get("progress", 0)
    if value is None:
        return 0
    if not isinstance(value, int) or isinstance(value, bool):
        raise RoadmapValidationError(f"{path}.progress: expected integer")
    return value


def _parse_color(data: dict[str, Any], key: str, path: _Path) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not _HEX_COLOR.match(value):
        raise RoadmapValidationError(f"{path.child(key)}: expected hex colour like '#3b82f6'")
    return value


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise RoadmapValidationError(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise RoadmapValidationError(f"{path.child(key)}: expected non-empty string")
    return value


def _optional_str(data: dict[str, Any], key: str, path: _Path) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RoadmapValidationError(f"{path.child(key)}: expected string")
    return value


def _optional_list(data: dict[str, Any], key: str, path: _Path) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise RoadmapValidationError(f"{path}.{key}: expected list")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise RoadmapValidationError(f"{path}: missing required field '{key}'")
    return data[key]


def _parse_date(value: Any, path: _Path) -> _dt.date:
    # YAML turns unquoted ISO dates into date objects already.
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise RoadmapValidationError(f"{path}: expected YYYY-MM-DD string")
    try:
        parsed = _dt.date.fromisoformat(value)
    except ValueError as exc:
        raise RoadmapValidationError(f"{path}: expected YYYY-MM-DD string") from exc
    return parsed


def _require_id(data: dict[str, Any], path: _Path, ids: set[str]) -> str:
    value = _require_value(data, "id", path)
    if isinstance(value, bool) or not isinstance(value, (str, int)) or not str(value).strip():
        raise RoadmapValidationError(f"{path}.id: expected non-empty string or integer")
    entity_id = str(value)
    if entity_id in ids:
        raise RoadmapValidationError(f"{path}.id: duplicate id '{entity_id}'")
    ids.add(entity_id)
    return entity_id
