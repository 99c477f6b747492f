from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
import webbrowser
from pathlib import Path

import yaml

from .alerts import compute_alerts, describe_days_until
from .grouping import filter_deliveries
from .layout import LayoutError, layout_year
from .parse_roadmap import RoadmapValidationError, load_roadmap
from .render_rows import to_render_rows
from .render_timeline import render_timeline
from .roadmap_models import AlertFeed, Roadmap

logger = logging.getLogger("roadmap_timeline")


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _build_parser() -> argparse.ArgumentParser:
    today = dt.date.today()
    parser = argparse.ArgumentParser(
        prog="roadmap-timeline",
        description="Roadmap timeline and deadline alerts",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("roadmap", help="Path to roadmap YAML")
    parser.add_argument("--out", default="output/roadmap_timeline.svg", help="Output SVG path")
    parser.add_argument("--year", type=int, default=today.year, help="Calendar year to lay out")
    parser.add_argument("--today", type=_parse_date, default=today, help="Reference date for alerts (YYYY-MM-DD)")
    parser.add_argument("--expand", action="append", default=[], metavar="ID", help="Show linked deliveries under this delivery")
    parser.add_argument("--phase", help="Only include deliveries of this phase")
    parser.add_argument("--priority", choices=["low", "medium", "high", "critical"], help="Only include this priority")
    parser.add_argument("--responsible", action="append", default=[], help="Only include deliveries of this responsible")
    parser.add_argument("--alerts", dest="alerts", action="store_true", default=True, help="Print the deadline alert feed")
    parser.add_argument("--no-alerts", dest="alerts", action="store_false", help="Do not print alerts")
    parser.add_argument(
        "--view",
        dest="view",
        action="store_true",
        default=True,
        help="Best-effort open the output file after rendering",
    )
    parser.add_argument(
        "--no-view",
        dest="view",
        action="store_false",
        help="Do not open the output file after rendering",
    )
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    return parser


def _print_alerts(feed: AlertFeed) -> None:
    counts = feed.counts
    print(
        f"Alerts: {counts.total} (critical {counts.critical}, high {counts.high}, "
        f"medium {counts.medium}, low {counts.low})"
    )
    for alert in feed.alerts:
        parent = f" [{alert.parent_delivery}]" if alert.parent_delivery else ""
        print(
            f"  {alert.urgency:<8} {alert.type:<12} {alert.date.isoformat()}  "
            f"{describe_days_until(alert.days_until):<20} {alert.title}{parent}"
        )


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
    roadmap_path = Path(args.roadmap)

    try:
        roadmap: Roadmap = load_roadmap(str(roadmap_path))
    except (yaml.YAMLError, RoadmapValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: roadmap file not found: {roadmap_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading roadmap: {exc}", file=sys.stderr)
        return 1

    if args.alerts:
        _print_alerts(compute_alerts(roadmap.deliveries, roadmap.milestones, args.today))

    visible = filter_deliveries(
        roadmap.deliveries,
        phase=args.phase,
        priority=args.priority,
        responsibles=args.responsible,
    )
    logger.info("rendering %d of %d deliveries", len(visible), len(roadmap.deliveries))

    try:
        layout = layout_year(visible, args.year, roadmap.milestones)
    except LayoutError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    rows = to_render_rows(
        layout,
        visible,
        roadmap.milestones,
        expanded=frozenset(args.expand),
        all_deliveries=roadmap.deliveries,
    )
    if not rows:
        print("Nothing to render: no deliveries or milestones", file=sys.stderr)
        return 0

    try:
        render_timeline(rows=rows, layout=layout, out_path=args.out, title=roadmap.title)
    except Exception as exc:
        print(f"Unexpected error while rendering: {exc}", file=sys.stderr)
        return 1

    if args.view:
        try:
            webbrowser.open(Path(args.out).resolve().as_uri())
        except webbrowser.Error:
            logger.info("could not open %s in a browser", args.out)

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
