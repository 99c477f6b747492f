from __future__ import annotations

from importlib import metadata
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # headless, deterministic output
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon

from .roadmap_models import FlatRenderRow, TimelineLayout

FONT_SCALE = 1.0
TITLE_FONT = 14 * FONT_SCALE
LABEL_FONT = 10 * FONT_SCALE
FOOTER_FONT = 8 * FONT_SCALE
TICK_FONT = 9 * FONT_SCALE
TOP_MARGIN_FRAC = 0.88
TITLE_Y = 0.985
ROW_HEIGHT = 0.6
SUB_ROW_HEIGHT = 0.35
QUARTER_BAND_COLORS = ("#f3f4f6", "#ffffff")
PROGRESS_OVERLAY_ALPHA = 0.35
DEFAULT_BAR_COLOR = "#999999"


def render_timeline(
    rows: list[FlatRenderRow],
    layout: TimelineLayout,
    out_path: str,
    title: str,
) -> None:
    """
    Render a static SVG timeline to `out_path`.

    - x axis is the layout window in percent (0..100), banded by quarter.
    - Lane headings are label-only rows; indentation drives label offset.
    - Bars outside the window are drawn as-is and cut off by the axes.
    """

    if not rows:
        raise ValueError("rows must not be empty")

    fig_height = max(3.0, ROW_HEIGHT * len(rows) + 2.0)
    fig = plt.figure(figsize=(16.0, fig_height))
    gs = fig.add_gridspec(1, 2, width_ratios=[1.2, 4.0], wspace=0.05, left=0.04, right=0.98, top=TOP_MARGIN_FRAC, bottom=0.08)
    label_ax = fig.add_subplot(gs[0, 0])
    ax = fig.add_subplot(gs[0, 1], sharey=label_ax)

    ax.set_ylim(-1, len(rows))
    ax.invert_yaxis()
    ax.set_xlim(0, 100)
    ax.xaxis.tick_top()
    ax.set_yticks([])

    for idx, quarter in enumerate(layout.quarters):
        ax.axvspan(
            quarter.left_percent,
            quarter.left_percent + quarter.width_percent,
            color=QUARTER_BAND_COLORS[idx % len(QUARTER_BAND_COLORS)],
            zorder=0,
        )
    if layout.quarters:
        ax.set_xticks([q.left_percent + q.width_percent / 2 for q in layout.quarters])
        ax.set_xticklabels([q.label for q in layout.quarters], fontsize=TICK_FONT)
    else:
        ax.tick_params(axis="x", labelsize=TICK_FONT)

    label_ax.set_ylim(-1, len(rows))
    label_ax.invert_yaxis()
    label_ax.set_xlim(0, 1)
    label_ax.axis("off")

    fig.suptitle(title, x=0.5, fontsize=TITLE_FONT, y=TITLE_Y)
    footer = f"{layout.window_start.isoformat()} .. {layout.window_end.isoformat()} · roadmap-timeline v{_tool_version()}"
    fig.text(0.99, 0.01, footer, ha="right", va="bottom", fontsize=FOOTER_FONT, alpha=0.8)

    for y, row in enumerate(rows):
        text_weight = "bold" if row.node_type == "lane" else "normal"
        label = row.name.upper() if row.node_type == "lane" else row.name
        label_ax.text(
            0.98 - 0.04 * max(0, row.indent - 1),
            y,
            label,
            ha="right",
            va="center",
            fontsize=LABEL_FONT,
            fontweight=text_weight,
            fontstyle="italic" if row.node_type == "linked" else "normal",
            transform=label_ax.transData,
        )

        if row.left_percent is None or row.width_percent is None:
            continue
        color = row.color or DEFAULT_BAR_COLOR

        if row.node_type in ("bar", "sub_bar", "linked", "period"):
            height = SUB_ROW_HEIGHT if row.node_type == "sub_bar" else ROW_HEIGHT
            width = max(0.0, row.width_percent)
            ax.barh(
                y,
                width=width,
                left=row.left_percent,
                height=height,
                color=color,
                alpha=0.5 if row.node_type == "linked" else 1.0,
                edgecolor="black",
                linewidth=0.5,
                zorder=2,
            )
            if row.progress:
                ax.barh(
                    y,
                    width=width * row.progress / 100,
                    left=row.left_percent,
                    height=height,
                    color="white",
                    alpha=PROGRESS_OVERLAY_ALPHA,
                    zorder=3,
                )

        elif row.node_type == "lozenge":
            center_x = row.left_percent + row.width_percent / 2
            half_width = 0.4
            half_height = ROW_HEIGHT / 1.5
            diamond = [
                (center_x - half_width, y),
                (center_x, y - half_height),
                (center_x + half_width, y),
                (center_x, y + half_height),
            ]
            ax.add_patch(Polygon(diamond, closed=True, facecolor=color, edgecolor="black", zorder=3))

        # Lanes only emit a label.

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, format="svg", bbox_inches="tight")
    plt.close(fig)


def _tool_version() -> str:
    try:
        return metadata.version("roadmap-timeline")
    except metadata.PackageNotFoundError:
        return "0.0.0"
