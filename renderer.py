from __future__ import annotations

from typing import Optional

import matplotlib
import matplotlib.pyplot as plt
from matplotlib.patches import FancyBboxPatch, Polygon, Rectangle

from chart_styler import (
    DEPENDENCY_DASH,
    DEPENDENCY_STROKE,
    MILESTONE_FILL_DEFAULT,
    MILESTONE_STROKE_DEFAULT,
    PROGRESS_FILL_DEFAULT,
    TASK_FILL_DEFAULT,
    TASK_STROKE_DEFAULT,
    TODAY_STROKE,
)
from gantt_models import ChartSettings
from layout_engine import ChartLayout

# Figure size is derived from pixel geometry at this many pixels per inch;
# output_dpi only changes the raster resolution.
PX_PER_INCH = 100.0

TIMELINE_BAND_PX = 24.0
WEEKEND_FILL = "#F2F2F2"
GRID_COLOR = "#E6E6E6"
ROW_LINE_COLOR = "#EFEFEF"
LABEL_PANEL_FILL = "#F6F8FB"
TEXT_COLOR = "#333333"


def _font_family_available(family: str) -> bool:
    family = (family or "").strip()
    if not family:
        return False
    fam_lower = family.lower()
    from matplotlib import font_manager as fm
    for f in fm.fontManager.ttflist:
        if f.name.lower() == fam_lower:
            return True
    return False


def resolve_font_family(preferred: str) -> str:
    """
    Returns a font family name that matplotlib can actually render.
    Priority:
      1) preferred, if available
      2) DejaVu Sans (matplotlib default)
    """
    preferred = (preferred or "").strip()
    if preferred and _font_family_available(preferred):
        return preferred
    return "DejaVu Sans"


# ---------------------------------------------------------------------------
# Drawing passes
# ---------------------------------------------------------------------------

def _draw_timeline(ax, layout: ChartLayout, body_height: float) -> None:
    """Label band above the rows, plus gridlines (and weekend shading in DAY mode)."""
    band_top = -TIMELINE_BAND_PX
    ax.add_patch(
        Rectangle((0.0, band_top), layout.chart_width, TIMELINE_BAND_PX, facecolor="#FFFFFF", edgecolor="none", zorder=0)
    )
    ax.hlines(0.0, 0.0, layout.chart_width, colors="#D0D0D0", linewidth=1.2, zorder=2)

    for label in layout.timeline.labels:
        if layout.view_mode == "DAY" and label.is_weekend:
            ax.add_patch(
                Rectangle((label.x, 0.0), layout.day_width, body_height, facecolor=WEEKEND_FILL, edgecolor="none", zorder=0)
            )
        ax.vlines(label.x, band_top, body_height, colors=GRID_COLOR, linewidth=0.8, zorder=1)
        ax.text(
            label.x + 2.0,
            band_top + TIMELINE_BAND_PX / 2.0,
            label.text,
            ha="left",
            va="center",
            fontsize=8,
            color=TEXT_COLOR,
            fontweight="bold" if label.is_weekend and layout.view_mode == "DAY" else "normal",
            zorder=3,
        )


def _draw_rows(ax_labels, ax_main, layout: ChartLayout) -> None:
    for row in layout.rows:
        ax_main.hlines(row.y + row.height, 0.0, layout.chart_width, colors=ROW_LINE_COLOR, linewidth=0.6, zorder=1)
        ax_labels.text(
            0.04,
            row.y + row.height / 2.0,
            row.title or row.item_id,
            ha="left",
            va="center",
            fontsize=9,
            fontweight="bold" if row.kind == "milestone" else "normal",
            color="#222222",
        )


def _draw_bars(ax, layout: ChartLayout) -> None:
    for bar in layout.bars:
        if bar.width <= 0:
            continue
        ax.add_patch(
            FancyBboxPatch(
                (bar.x, bar.y),
                bar.width,
                bar.height,
                boxstyle="round,pad=0,rounding_size=3",
                facecolor=bar.fill or TASK_FILL_DEFAULT,
                edgecolor=bar.stroke or TASK_STROKE_DEFAULT,
                linewidth=1.0,
                zorder=5,
            )
        )
        if bar.progress_width > 0:
            ax.add_patch(
                Rectangle(
                    (bar.x, bar.y),
                    bar.progress_width,
                    bar.height,
                    facecolor=bar.progress_fill or PROGRESS_FILL_DEFAULT,
                    edgecolor="none",
                    alpha=0.9,
                    zorder=6,
                )
            )


def _draw_markers(ax, layout: ChartLayout) -> None:
    for marker in layout.markers:
        ax.add_patch(
            Polygon(
                marker.points,
                closed=True,
                facecolor=marker.fill or MILESTONE_FILL_DEFAULT,
                edgecolor=marker.stroke or MILESTONE_STROKE_DEFAULT,
                linewidth=1.0,
                zorder=7,
            )
        )


def _draw_connectors(ax, layout: ChartLayout) -> None:
    for c in layout.connectors:
        stroke = c.stroke or DEPENDENCY_STROKE
        dash = c.dash or DEPENDENCY_DASH
        ax.plot([c.x1, c.x2], [c.y1, c.y2], color=stroke, linewidth=1.0, linestyle=(0, dash), zorder=8)
        ax.add_patch(Polygon(c.arrowhead, closed=True, facecolor=stroke, edgecolor=stroke, linewidth=1.0, zorder=8))


def _draw_today(ax, layout: ChartLayout, body_height: float) -> None:
    today = layout.today
    if today is None:
        return
    stroke = today.stroke or TODAY_STROKE
    ax.vlines(today.x, -TIMELINE_BAND_PX, body_height, colors=stroke, linewidth=2.0, zorder=9)
    ax.text(today.x + 2.0, body_height, "Today", fontsize=7, va="bottom", ha="left", color=stroke, zorder=9)


# ---------------------------------------------------------------------------
# Figure
# ---------------------------------------------------------------------------

def render_chart(layout: ChartLayout, settings: Optional[ChartSettings] = None) -> plt.Figure:
    """
    Draw a (styled) layout. Returns the figure; callers close it.

    Data coordinates on the main axes are the layout's pixel coordinates, with
    y growing downward like the geometry.
    """
    settings = settings or ChartSettings()
    matplotlib.rcParams["font.family"] = resolve_font_family(settings.font_family)

    body_height = max(layout.chart_height, settings.bar_height + settings.row_spacing)
    width_px = settings.row_label_width + layout.chart_width
    height_px = settings.header_height + TIMELINE_BAND_PX + body_height

    fig = plt.figure(figsize=(width_px / PX_PER_INCH, height_px / PX_PER_INCH), dpi=settings.output_dpi)
    gs = fig.add_gridspec(
        nrows=2,
        ncols=2,
        height_ratios=[settings.header_height, TIMELINE_BAND_PX + body_height],
        width_ratios=[settings.row_label_width, layout.chart_width],
        left=0.0,
        right=1.0,
        top=1.0,
        bottom=0.0,
        wspace=0.0,
        hspace=0.0,
    )
    ax_header = fig.add_subplot(gs[0, :])
    ax_labels = fig.add_subplot(gs[1, 0])
    ax_main = fig.add_subplot(gs[1, 1], sharey=ax_labels)

    ax_header.axis("off")
    ax_header.text(
        0.01, 0.55, settings.chart_title,
        fontsize=14,
        fontweight="bold",
        ha="left",
        va="center",
        transform=ax_header.transAxes,
    )
    ax_header.text(
        0.99, 0.55,
        f"{layout.range_start.strftime('%d %b %Y')} - {layout.range_end.strftime('%d %b %Y')}",
        fontsize=9,
        ha="right",
        va="center",
        color=TEXT_COLOR,
        transform=ax_header.transAxes,
    )

    for ax in (ax_main, ax_labels):
        ax.spines[:].set_visible(False)
        ax.tick_params(left=False, labelleft=False, bottom=False, labelbottom=False)
        ax.set_xticks([])
        ax.set_yticks([])

    ax_main.set_xlim(0.0, layout.chart_width)
    ax_main.set_ylim(body_height, -TIMELINE_BAND_PX)
    ax_labels.set_xlim(0, 1)
    ax_labels.set_facecolor(LABEL_PANEL_FILL)
    ax_labels.vlines(1.0, -TIMELINE_BAND_PX, body_height, colors="#E0E0E0", linewidth=1.0)
    ax_main.set_facecolor("white")

    _draw_timeline(ax_main, layout, body_height)
    _draw_rows(ax_labels, ax_main, layout)
    _draw_bars(ax_main, layout)
    _draw_markers(ax_main, layout)
    _draw_connectors(ax_main, layout)
    _draw_today(ax_main, layout, body_height)

    return fig
