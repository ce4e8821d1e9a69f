from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, Optional, Tuple, TypeVar

import matplotlib.colors as mcolors

from gantt_models import ChartItem
from layout_engine import (
    BarGeometry,
    ChartGeometry,
    ChartLayout,
    ConnectorGeometry,
    MarkerGeometry,
    TodayMarker,
)

logger = logging.getLogger(__name__)

# Outline = fill with every RGB channel scaled by this factor (HSV value x 0.7).
DARKEN_FACTOR = 0.7
PROGRESS_LIGHTEN = 0.35

NEUTRAL_COLOR = "#808080"

TASK_FILL_DEFAULT = "#6495ED"  # cornflower blue
TASK_STROKE_DEFAULT = "#00008B"  # dark blue
MILESTONE_FILL_DEFAULT = "#800080"  # purple
MILESTONE_STROKE_DEFAULT = "#9400D3"  # dark violet
PROGRESS_FILL_DEFAULT = "#66A5FF"

DEPENDENCY_STROKE = NEUTRAL_COLOR
DEPENDENCY_DASH: Tuple[float, ...] = (5.0, 5.0)
TODAY_STROKE = "#FF0000"

STATUS_COMPLETED = "completed"
STATUS_IN_PROGRESS = "in-progress"

STATUS_COLORS = {
    "not-started": "#CED4DA",  # gray
    "in-progress": "#17A2B8",  # cyan
    "completed": "#28A745",  # green
}
PRIORITY_COLORS = {
    "low": "#28A745",  # green
    "medium": "#FFC107",  # yellow
    "high": "#FD7E14",  # orange
    "critical": "#DC3545",  # red
}
UNKNOWN_STATUS_COLOR = "#6C757D"

G = TypeVar("G", BarGeometry, MarkerGeometry, ConnectorGeometry)


# ---------------------------------------------------------------------------
# Color helpers
# ---------------------------------------------------------------------------

def parse_color(color: Optional[str]) -> Optional[str]:
    """Normalize any matplotlib-understood color to "#RRGGBB"; None when absent or unparseable."""
    if color is None or not str(color).strip():
        return None
    try:
        return mcolors.to_hex(mcolors.to_rgb(str(color).strip())).upper()
    except ValueError:
        logger.warning("Unparseable color %r; using neutral default", color)
        return None


def darker(hex_color: str) -> str:
    """
    Deterministically darker shade: scale R, G and B by DARKEN_FACTOR.

    Pure black is the floor: darker("#000000") is "#000000", and channels
    already at 1/255 round back to themselves.
    """
    try:
        r, g, b = mcolors.to_rgb(hex_color)
    except ValueError:
        return darker(NEUTRAL_COLOR)
    return mcolors.to_hex((r * DARKEN_FACTOR, g * DARKEN_FACTOR, b * DARKEN_FACTOR)).upper()


def lighter(hex_color: str, amount: float = PROGRESS_LIGHTEN) -> str:
    """Blend a color with white. amount in [0, 1]."""
    try:
        r, g, b = mcolors.to_rgb(hex_color)
    except ValueError:
        return PROGRESS_FILL_DEFAULT
    r = r + (1.0 - r) * amount
    g = g + (1.0 - g) * amount
    b = b + (1.0 - b) * amount
    return mcolors.to_hex((r, g, b)).upper()


def _fill_and_stroke(color: Optional[str], default_fill: str, default_stroke: str) -> Tuple[str, str]:
    if color is None:
        return default_fill, default_stroke
    fill = parse_color(color) or NEUTRAL_COLOR
    return fill, darker(fill)


def color_for_status(status: Optional[str]) -> Tuple[str, str]:
    """(fill, stroke) for a task status such as "in-progress"."""
    fill = STATUS_COLORS.get((status or "").strip().lower(), UNKNOWN_STATUS_COLOR)
    return fill, darker(fill)


def color_for_priority(priority: Optional[str]) -> Tuple[str, str]:
    """(fill, stroke) for a task priority such as "critical"."""
    fill = PRIORITY_COLORS.get((priority or "").strip().lower(), UNKNOWN_STATUS_COLOR)
    return fill, darker(fill)


def color_for_progress(progress: int) -> str:
    if progress >= 100:
        return "#4CAF50"  # green, done
    if progress >= 75:
        return "#2196F3"  # blue, almost done
    if progress >= 25:
        return "#FF9800"  # orange
    return "#F44336"  # red, just started


# ---------------------------------------------------------------------------
# Tooltips
# ---------------------------------------------------------------------------

def build_tooltip(item: ChartItem) -> str:
    """Multi-line tooltip; optional fields are left out rather than shown blank."""
    if item.is_milestone():
        lines = [f"Milestone: {item.title}"]
        if item.start_date is not None:
            lines.append(f"Date: {item.start_date.isoformat()}")
    else:
        lines = [f"Task: {item.title}"]
        if item.start_date is not None:
            lines.append(f"Start: {item.start_date.isoformat()}")
        if item.end_date is not None:
            lines.append(f"End: {item.end_date.isoformat()}")
        lines.append(f"Progress: {item.progress}%")
    if item.assignee:
        lines.append(f"Assignee: {item.assignee}")
    if item.subsystem:
        lines.append(f"Subsystem: {item.subsystem}")
    return "\n".join(lines)


def _status_class(item: ChartItem) -> str:
    return STATUS_COMPLETED if item.is_completed() else STATUS_IN_PROGRESS


# ---------------------------------------------------------------------------
# Decoration
# ---------------------------------------------------------------------------

def _style_bar(bar: BarGeometry, item: ChartItem) -> BarGeometry:
    fill, stroke = _fill_and_stroke(item.color, TASK_FILL_DEFAULT, TASK_STROKE_DEFAULT)
    progress_fill = lighter(fill) if item.color is not None else PROGRESS_FILL_DEFAULT
    return replace(
        bar,
        fill=fill,
        stroke=stroke,
        progress_fill=progress_fill,
        style_classes=(bar.kind, _status_class(item)),
        tooltip=build_tooltip(item),
    )


def _style_marker(marker: MarkerGeometry, item: ChartItem) -> MarkerGeometry:
    fill, stroke = _fill_and_stroke(item.color, MILESTONE_FILL_DEFAULT, MILESTONE_STROKE_DEFAULT)
    return replace(
        marker,
        fill=fill,
        stroke=stroke,
        style_classes=(marker.kind, _status_class(item)),
        tooltip=build_tooltip(item),
    )


def _style_connector(connector: ConnectorGeometry) -> ConnectorGeometry:
    return replace(
        connector,
        stroke=DEPENDENCY_STROKE,
        dash=DEPENDENCY_DASH,
        style_classes=(connector.kind,),
    )


def style_element(element: Optional[G], item: Optional[ChartItem] = None) -> Optional[G]:
    """
    Return a styled copy of one geometry record.

    Connectors take a fixed neutral style and ignore `item`. Bars and markers
    without an item come back unchanged; a None element stays None.
    """
    if element is None:
        return None
    if element.kind == "dependency-line":
        return _style_connector(element)
    if item is None:
        return element
    if element.kind == "task-bar":
        return _style_bar(element, item)
    if element.kind == "milestone-marker":
        return _style_marker(element, item)
    return element


def style_today(marker: Optional[TodayMarker]) -> Optional[TodayMarker]:
    if marker is None:
        return None
    return replace(
        marker,
        stroke=TODAY_STROKE,
        style_classes=("today-line",),
        tooltip=f"Today: {marker.date.strftime('%b')} {marker.date.day}, {marker.date.year}",
    )


def style_chart(layout: ChartLayout, items: Iterable[ChartItem]) -> ChartLayout:
    """Decorate every element of a layout, matching bars/markers to items by id."""
    by_id: Dict[str, ChartItem] = {}
    for item in items:
        by_id.setdefault(item.id, item)

    def _styled(elements: Iterable[ChartGeometry], id_attr: str) -> tuple:
        return tuple(style_element(e, by_id.get(getattr(e, id_attr))) for e in elements)

    return replace(
        layout,
        bars=_styled(layout.bars, "item_id"),
        markers=_styled(layout.markers, "item_id"),
        connectors=_styled(layout.connectors, "target_id"),
        today=style_today(layout.today),
    )
