from datetime import date

import matplotlib.colors as mcolors

from chart_styler import (
    NEUTRAL_COLOR,
    PROGRESS_FILL_DEFAULT,
    TASK_FILL_DEFAULT,
    TASK_STROKE_DEFAULT,
    build_tooltip,
    color_for_priority,
    color_for_progress,
    color_for_status,
    darker,
    lighter,
    parse_color,
    style_chart,
    style_element,
)
from gantt_models import ChartItem
from layout_engine import create_gantt_chart


def _brightness(hex_color: str) -> float:
    return sum(mcolors.to_rgb(hex_color))


def _layout(settings, tasks, milestones=()):
    return create_gantt_chart(tasks, list(milestones), settings)


def test_task_without_color_gets_defaults(week_settings) -> None:
    t = ChartItem(id="T", title="Build", start_date=date(2024, 1, 3), end_date=date(2024, 1, 5))
    bar = _layout(week_settings, [t]).bars[0]
    styled = style_element(bar, t)

    assert styled.fill == TASK_FILL_DEFAULT
    assert styled.stroke == TASK_STROKE_DEFAULT
    assert styled.progress_fill == PROGRESS_FILL_DEFAULT
    assert styled.style_classes == ("task-bar", "in-progress")
    # Pure: the layout's own record is untouched.
    assert bar.fill is None
    assert (styled.x, styled.width) == (bar.x, bar.width)


def test_item_color_drives_fill_and_darker_outline(week_settings) -> None:
    t = ChartItem(id="T", start_date=date(2024, 1, 3), end_date=date(2024, 1, 5), color="#1f77b4", progress=100)
    styled = style_element(_layout(week_settings, [t]).bars[0], t)

    assert styled.fill == "#1F77B4"
    assert _brightness(styled.stroke) < _brightness(styled.fill)
    assert _brightness(styled.progress_fill) > _brightness(styled.fill)
    assert styled.style_classes == ("task-bar", "completed")


def test_invalid_color_fails_soft_to_gray(week_settings) -> None:
    t = ChartItem(id="T", start_date=date(2024, 1, 3), end_date=date(2024, 1, 5), color="not-a-color")
    styled = style_element(_layout(week_settings, [t]).bars[0], t)
    assert styled.fill == NEUTRAL_COLOR
    assert styled.stroke == darker(NEUTRAL_COLOR)


def test_milestone_marker_styling(week_settings) -> None:
    m = ChartItem(id="M", title="Kickoff", kind="milestone", start_date=date(2024, 1, 6), status="completed")
    marker = _layout(week_settings, [], [m]).markers[0]
    styled = style_element(marker, m)

    assert styled.fill == "#800080"
    assert styled.stroke == "#9400D3"
    assert styled.style_classes == ("milestone-marker", "completed")
    assert styled.tooltip == "Milestone: Kickoff\nDate: 2024-01-06"


def test_connector_styling_ignores_item(week_settings) -> None:
    tasks = [
        ChartItem(id="A", start_date=date(2024, 1, 1), end_date=date(2024, 1, 2)),
        ChartItem(id="B", start_date=date(2024, 1, 4), end_date=date(2024, 1, 5), dependencies=["A"]),
    ]
    layout = _layout(week_settings.model_copy(update={"show_dependencies": True}), tasks)
    styled = style_element(layout.connectors[0], None)

    assert styled.stroke == "#808080"
    assert styled.dash == (5.0, 5.0)
    assert styled.style_classes == ("dependency-line",)


def test_none_inputs(week_settings) -> None:
    t = ChartItem(id="T", start_date=date(2024, 1, 3), end_date=date(2024, 1, 5))
    bar = _layout(week_settings, [t]).bars[0]
    assert style_element(None, t) is None
    assert style_element(bar, None) is bar


def test_tooltip_omits_absent_fields() -> None:
    t = ChartItem(
        id="T",
        title="Build",
        start_date=date(2024, 1, 3),
        end_date=date(2024, 1, 5),
        progress=50,
        subsystem="Drivetrain",
    )
    assert build_tooltip(t) == "Task: Build\nStart: 2024-01-03\nEnd: 2024-01-05\nProgress: 50%\nSubsystem: Drivetrain"

    t.assignee = "Alex"
    assert build_tooltip(t).endswith("Assignee: Alex\nSubsystem: Drivetrain")


def test_style_chart_decorates_everything(week_settings) -> None:
    tasks = [
        ChartItem(id="A", title="A", start_date=date(2024, 1, 1), end_date=date(2024, 1, 2)),
        ChartItem(id="B", title="B", start_date=date(2024, 1, 4), end_date=date(2024, 1, 5), dependencies=["A"]),
    ]
    milestones = [ChartItem(id="M", title="M", kind="milestone", start_date=date(2024, 1, 7))]
    layout = _layout(week_settings.model_copy(update={"show_dependencies": True}), tasks, milestones)
    styled = style_chart(layout, tasks + milestones)

    assert all(b.fill for b in styled.bars)
    assert all(m.fill for m in styled.markers)
    assert all(c.stroke for c in styled.connectors)
    assert styled.today.stroke == "#FF0000"
    assert styled.today.tooltip == "Today: Jan 4, 2024"
    assert styled.bars[0].x == layout.bars[0].x
    assert layout.today.stroke is None


def test_color_helpers() -> None:
    assert parse_color("red") == "#FF0000"
    assert parse_color("") is None
    assert parse_color("bogus") is None
    assert lighter("#000000", 0.5) == "#808080"
    assert _brightness(darker("#FFFFFF")) < 3.0


def test_status_and_priority_palettes() -> None:
    assert color_for_status("in-progress")[0] == "#17A2B8"
    assert color_for_status("COMPLETED")[0] == "#28A745"
    assert color_for_status("mystery")[0] == "#6C757D"
    assert color_for_priority("critical")[0] == "#DC3545"
    assert color_for_priority(None)[0] == "#6C757D"
    fill, stroke = color_for_priority("medium")
    assert _brightness(stroke) < _brightness(fill)


def test_progress_palette_thresholds() -> None:
    assert color_for_progress(100) == "#4CAF50"
    assert color_for_progress(75) == "#2196F3"
    assert color_for_progress(25) == "#FF9800"
    assert color_for_progress(24) == "#F44336"


def test_darker_is_strictly_darker_except_black() -> None:
    for color in ("#FFFFFF", "#6495ED", "#101010", "#808080"):
        assert _brightness(darker(color)) < _brightness(color)
    assert darker("#000000") == "#000000"
