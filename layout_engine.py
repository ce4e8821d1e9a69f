from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from date_utils import days_between, is_weekend, span_days_inclusive, step_dates
from gantt_models import ChartItem, ChartSettings

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 7
DEFAULT_LOOKAHEAD_DAYS = 30

LABEL_FORMATS = {
    "DAY": "%m/%d",
    "WEEK": "%m/%d",
    "MONTH": "%b %Y",
}

Point = Tuple[float, float]


# ---------------------------------------------------------------------------
# Geometry records
#
# Bars, markers and connectors form a tagged union on `kind`. The layout pass
# fills positions only; style fields stay empty until chart_styler decorates
# a copy.
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimelineLabel:
    date: date
    text: str
    x: float
    width: float
    is_weekend: bool


@dataclass(frozen=True)
class TimelineAxis:
    view_mode: str
    labels: Tuple[TimelineLabel, ...]
    width: float
    label_width: float


@dataclass(frozen=True)
class ChartRow:
    item_id: str
    title: str
    kind: str
    index: int
    y: float
    height: float


@dataclass(frozen=True)
class BarGeometry:
    item_id: str
    x: float
    y: float
    width: float
    height: float
    progress_width: float
    start: date
    end: date
    kind: Literal["task-bar"] = "task-bar"
    fill: Optional[str] = None
    stroke: Optional[str] = None
    progress_fill: Optional[str] = None
    dash: Optional[Tuple[float, ...]] = None
    style_classes: Tuple[str, ...] = ()
    tooltip: str = ""

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2.0


@dataclass(frozen=True)
class MarkerGeometry:
    """Milestone diamond centered on (x, y)."""

    item_id: str
    x: float
    y: float
    size: float
    date: date
    kind: Literal["milestone-marker"] = "milestone-marker"
    fill: Optional[str] = None
    stroke: Optional[str] = None
    dash: Optional[Tuple[float, ...]] = None
    style_classes: Tuple[str, ...] = ()
    tooltip: str = ""

    @property
    def right(self) -> float:
        return self.x + self.size / 2.0

    @property
    def left(self) -> float:
        return self.x - self.size / 2.0

    @property
    def center_y(self) -> float:
        return self.y

    @property
    def points(self) -> Tuple[Point, Point, Point, Point]:
        half = self.size / 2.0
        return (
            (self.x, self.y - half),
            (self.x + half, self.y),
            (self.x, self.y + half),
            (self.x - half, self.y),
        )


@dataclass(frozen=True)
class ConnectorGeometry:
    """Straight dependency line from a prerequisite to its dependent, plus arrowhead."""

    source_id: str
    target_id: str
    x1: float
    y1: float
    x2: float
    y2: float
    arrowhead: Tuple[Point, Point, Point]
    kind: Literal["dependency-line"] = "dependency-line"
    stroke: Optional[str] = None
    dash: Optional[Tuple[float, ...]] = None
    style_classes: Tuple[str, ...] = ()
    tooltip: str = ""


@dataclass(frozen=True)
class TodayMarker:
    date: date
    x: float
    y1: float
    y2: float
    stroke: Optional[str] = None
    style_classes: Tuple[str, ...] = ()
    tooltip: str = ""


ChartGeometry = Union[BarGeometry, MarkerGeometry, ConnectorGeometry]


@dataclass(frozen=True)
class ChartLayout:
    range_start: date
    range_end: date
    view_mode: str
    total_days: int
    day_width: float
    chart_width: float
    chart_height: float
    timeline: TimelineAxis
    rows: Tuple[ChartRow, ...]
    bars: Tuple[BarGeometry, ...]
    markers: Tuple[MarkerGeometry, ...]
    connectors: Tuple[ConnectorGeometry, ...]
    today: Optional[TodayMarker]
    warnings: Dict[str, List[str]] = field(default_factory=dict)

    def geometry_for(self, item_id: str) -> Optional[Union[BarGeometry, MarkerGeometry]]:
        for bar in self.bars:
            if bar.item_id == item_id:
                return bar
        for marker in self.markers:
            if marker.item_id == item_id:
                return marker
        return None


# ---------------------------------------------------------------------------
# Range and coordinate helpers
# ---------------------------------------------------------------------------

def resolve_today(settings: ChartSettings) -> date:
    if settings.today_line_date is not None:
        return settings.today_line_date
    return datetime.now(tz=ZoneInfo(settings.timezone)).date()


def resolve_range(settings: ChartSettings, today: date) -> Tuple[date, date]:
    start = settings.range_start or (today - timedelta(days=DEFAULT_LOOKBACK_DAYS))
    end = settings.range_end or (today + timedelta(days=DEFAULT_LOOKAHEAD_DAYS))
    return start, end


def compute_day_width(chart_width: float, total_days: int) -> float:
    """Pixels per calendar day. A zero-length (or inverted) range is treated as one day."""
    return chart_width / max(total_days, 1)


def clip_to_range(start: date, end: date, range_start: date, range_end: date) -> Tuple[date, date]:
    """Truncate [start, end] to the visible window. Items fully outside stay degenerate."""
    if start < range_start:
        start = range_start
    if end > range_end:
        end = range_end
    return start, end


def create_timeline_axis(
    range_start: date,
    range_end: date,
    view_mode: str,
    *,
    day_width: float,
    label_width: float = 30.0,
) -> TimelineAxis:
    """
    One label per step from range_start to range_end inclusive.

    Rules:
      - DAY -> +1 day, WEEK -> +1 week, MONTH -> +1 calendar month
      - DAY/WEEK labels read "MM/dd", MONTH labels read "Mon yyyy"
      - weekend flag is computed for every label (only DAY mode shows it)
      - label x sits on the shared day_width scale; label width is fixed
    """
    fmt = LABEL_FORMATS.get(view_mode, LABEL_FORMATS["WEEK"])
    labels = tuple(
        TimelineLabel(
            date=d,
            text=d.strftime(fmt),
            x=days_between(range_start, d) * day_width,
            width=label_width,
            is_weekend=is_weekend(d),
        )
        for d in step_dates(range_start, range_end, view_mode)
    )
    width = max(days_between(range_start, range_end), 1) * day_width
    return TimelineAxis(view_mode=view_mode, labels=labels, width=width, label_width=label_width)


# ---------------------------------------------------------------------------
# Per-item geometry
# ---------------------------------------------------------------------------

def create_task_bar(
    task: ChartItem,
    *,
    range_start: date,
    range_end: date,
    day_width: float,
    y: float,
    bar_height: float = 25.0,
) -> Optional[BarGeometry]:
    """Bar for one task row, or None when the task has no dates to place."""
    if task.start_date is None or task.end_date is None:
        return None

    start, end = clip_to_range(task.start_date, task.end_date, range_start, range_end)
    x = days_between(range_start, start) * day_width
    width = span_days_inclusive(start, end) * day_width
    return BarGeometry(
        item_id=task.id,
        x=x,
        y=y,
        width=width,
        height=bar_height,
        progress_width=width * task.progress / 100.0,
        start=start,
        end=end,
    )


def create_milestone_marker(
    milestone: ChartItem,
    *,
    range_start: date,
    range_end: date,
    day_width: float,
    y: float,
    bar_height: float = 25.0,
    size: float = 15.0,
) -> Optional[MarkerGeometry]:
    """Diamond placed like a zero-width bar on the milestone date, centered in its row."""
    if milestone.start_date is None:
        return None

    d = min(max(milestone.start_date, range_start), range_end)
    return MarkerGeometry(
        item_id=milestone.id,
        x=days_between(range_start, d) * day_width,
        y=y + bar_height / 2.0,
        size=size,
        date=d,
    )


def arrowhead_points(
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    *,
    length: float = 6.0,
    angle_deg: float = 30.0,
) -> Tuple[Point, Point, Point]:
    """Triangle (tip, wing, wing) at (x2, y2), wings swept back ±angle_deg from the line."""
    theta = math.atan2(y2 - y1, x2 - x1)
    spread = math.radians(angle_deg)
    wing_a = (x2 - length * math.cos(theta - spread), y2 - length * math.sin(theta - spread))
    wing_b = (x2 - length * math.cos(theta + spread), y2 - length * math.sin(theta + spread))
    return (x2, y2), wing_a, wing_b


def draw_dependencies(
    tasks: Iterable[ChartItem],
    geometry_by_id: Dict[str, Union[BarGeometry, MarkerGeometry]],
    *,
    arrow_length: float = 6.0,
    arrow_angle_deg: float = 30.0,
) -> List[ConnectorGeometry]:
    """
    Straight connectors from each prerequisite's right edge to the dependent's left edge.

    References to items that have no geometry in this chart (filtered out,
    undated, unknown) are skipped. Cycles are not detected.
    """
    out: List[ConnectorGeometry] = []
    for task in tasks:
        target = geometry_by_id.get(task.id)
        if not isinstance(target, BarGeometry):
            continue
        for dep_id in task.dependencies:
            source = geometry_by_id.get(dep_id)
            if source is None:
                continue
            x1, y1 = source.right, source.center_y
            x2, y2 = target.x, target.center_y
            out.append(
                ConnectorGeometry(
                    source_id=dep_id,
                    target_id=task.id,
                    x1=x1,
                    y1=y1,
                    x2=x2,
                    y2=y2,
                    arrowhead=arrowhead_points(x1, y1, x2, y2, length=arrow_length, angle_deg=arrow_angle_deg),
                )
            )
    return out


# ---------------------------------------------------------------------------
# Chart assembly
# ---------------------------------------------------------------------------

def create_gantt_chart(
    tasks: Optional[Sequence[ChartItem]],
    milestones: Optional[Sequence[ChartItem]],
    settings: Optional[ChartSettings] = None,
) -> ChartLayout:
    """
    Lay out tasks then milestones, one row each, in input order.

    Returns unstyled geometry. Never raises for well-typed input: missing
    lists are empty, missing dates fall back to defaults, malformed spans
    produce degenerate geometry.
    """
    settings = settings or ChartSettings()
    tasks = list(tasks or [])
    milestones = list(milestones or [])

    today = resolve_today(settings)
    range_start, range_end = resolve_range(settings, today)
    view_mode = settings.view_mode

    total_days = days_between(range_start, range_end)
    day_width = compute_day_width(settings.chart_width, total_days)
    row_step = settings.bar_height + settings.row_spacing

    timeline = create_timeline_axis(
        range_start,
        range_end,
        view_mode,
        day_width=day_width,
        label_width=settings.label_width,
    )

    warnings: Dict[str, List[str]] = {"clamped": [], "undated": []}
    rows: List[ChartRow] = []
    bars: List[BarGeometry] = []
    markers: List[MarkerGeometry] = []
    geometry_by_id: Dict[str, Union[BarGeometry, MarkerGeometry]] = {}

    for index, item in enumerate(tasks + milestones):
        y = index * row_step
        rows.append(ChartRow(item_id=item.id, title=item.title, kind=item.kind, index=index, y=y, height=settings.bar_height))

        if index < len(tasks):
            bar = create_task_bar(
                item,
                range_start=range_start,
                range_end=range_end,
                day_width=day_width,
                y=y,
                bar_height=settings.bar_height,
            )
            if bar is None:
                warnings["undated"].append(f"{item.id}: '{item.title}' has no start/end date; row left empty.")
                continue
            if bar.start != item.start_date or bar.end != item.end_date:
                warnings["clamped"].append(f"{item.id}: '{item.title}' is partially outside range; clamped in the chart.")
            bars.append(bar)
            geometry_by_id.setdefault(item.id, bar)
        else:
            marker = create_milestone_marker(
                item,
                range_start=range_start,
                range_end=range_end,
                day_width=day_width,
                y=y,
                bar_height=settings.bar_height,
                size=settings.milestone_size,
            )
            if marker is None:
                warnings["undated"].append(f"{item.id}: '{item.title}' has no date; row left empty.")
                continue
            if marker.date != item.start_date:
                warnings["clamped"].append(f"{item.id}: '{item.title}' is outside range; clamped in the chart.")
            markers.append(marker)
            geometry_by_id.setdefault(item.id, marker)

    chart_height = len(rows) * row_step

    connectors: List[ConnectorGeometry] = []
    if settings.show_dependencies:
        connectors = draw_dependencies(
            tasks,
            geometry_by_id,
            arrow_length=settings.arrow_length,
            arrow_angle_deg=settings.arrow_angle_deg,
        )

    today_marker: Optional[TodayMarker] = None
    if settings.show_today_line and range_start <= today <= range_end:
        today_marker = TodayMarker(
            date=today,
            x=days_between(range_start, today) * day_width,
            y1=0.0,
            y2=chart_height,
        )

    logger.debug(
        "Laid out %d rows (%d bars, %d markers, %d connectors) for %s..%s in %s mode",
        len(rows),
        len(bars),
        len(markers),
        len(connectors),
        range_start,
        range_end,
        view_mode,
    )

    return ChartLayout(
        range_start=range_start,
        range_end=range_end,
        view_mode=view_mode,
        total_days=total_days,
        day_width=day_width,
        chart_width=settings.chart_width,
        chart_height=chart_height,
        timeline=timeline,
        rows=tuple(rows),
        bars=tuple(bars),
        markers=tuple(markers),
        connectors=tuple(connectors),
        today=today_marker,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Pre-layout filters (pure)
# ---------------------------------------------------------------------------

def filter_tasks_by_date_range(
    tasks: Optional[Iterable[ChartItem]],
    range_start: Optional[date],
    range_end: Optional[date],
) -> List[ChartItem]:
    """Keep tasks whose [start, end] overlaps the range. A None bound is open; undated tasks are dropped."""
    out: List[ChartItem] = []
    for t in tasks or []:
        if t.start_date is None or t.end_date is None:
            continue
        if range_end is not None and t.start_date > range_end:
            continue
        if range_start is not None and t.end_date < range_start:
            continue
        out.append(t)
    return out


def filter_milestones_by_date_range(
    milestones: Optional[Iterable[ChartItem]],
    range_start: Optional[date],
    range_end: Optional[date],
) -> List[ChartItem]:
    """Keep milestones dated within [range_start, range_end]."""
    out: List[ChartItem] = []
    for m in milestones or []:
        if m.start_date is None:
            continue
        if range_start is not None and m.start_date < range_start:
            continue
        if range_end is not None and m.start_date > range_end:
            continue
        out.append(m)
    return out


# ---------------------------------------------------------------------------
# Single-day agenda
# ---------------------------------------------------------------------------

EMPTY_DAY_MESSAGE = "No tasks or milestones scheduled for this date."


@dataclass(frozen=True)
class DailyTaskEntry:
    item_id: str
    title: str
    color: Optional[str]
    progress: int
    subsystem: Optional[str]
    assignee: Optional[str]


@dataclass(frozen=True)
class DailyMilestoneEntry:
    item_id: str
    title: str
    color: Optional[str]
    completed: bool

    @property
    def status_label(self) -> str:
        return "Completed" if self.completed else "Pending"


@dataclass(frozen=True)
class DailyChart:
    day: date
    header: str
    tasks: Tuple[DailyTaskEntry, ...]
    milestones: Tuple[DailyMilestoneEntry, ...]
    empty_message: Optional[str]


def create_daily_chart(
    tasks: Optional[Iterable[ChartItem]],
    milestones: Optional[Iterable[ChartItem]],
    day: date,
) -> DailyChart:
    """Tasks active on `day` and milestones dated on `day`."""
    day_tasks = tuple(
        DailyTaskEntry(
            item_id=t.id,
            title=t.title,
            color=t.color,
            progress=t.progress,
            subsystem=t.subsystem,
            assignee=t.assignee,
        )
        for t in tasks or []
        if t.is_on_date(day)
    )
    day_milestones = tuple(
        DailyMilestoneEntry(item_id=m.id, title=m.title, color=m.color, completed=m.is_completed())
        for m in milestones or []
        if m.start_date == day
    )
    return DailyChart(
        day=day,
        header=f"{day.strftime('%A, %B')} {day.day}, {day.year}",
        tasks=day_tasks,
        milestones=day_milestones,
        empty_message=None if (day_tasks or day_milestones) else EMPTY_DAY_MESSAGE,
    )
