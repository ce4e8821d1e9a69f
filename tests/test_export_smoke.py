from __future__ import annotations


# A small export test to make sure render/export functions produce non-empty
# outputs with correct file signatures (PNG header, PDF header, SVG prolog).

from datetime import date

import matplotlib.pyplot as plt
import pytest

from export import export_pdf_bytes, export_png_bytes, export_svg_bytes, prepare_chart
from gantt_models import ChartItem, ChartSettings
from renderer import render_chart, resolve_font_family


def _sample():
    settings = ChartSettings(
        view_mode="DAY",
        show_dependencies=True,
        range_start=date(2024, 1, 1),
        range_end=date(2024, 1, 21),
        chart_width=630,
        today_line_date=date(2024, 1, 8),
        chart_title="Build Season",
        output_dpi=100,
        font_family="DejaVu Sans",
    )
    tasks = [
        ChartItem(id="T1", title="Drivetrain CAD", start_date=date(2024, 1, 2), end_date=date(2024, 1, 6),
                  progress=100, subsystem="Drivetrain"),
        ChartItem(id="T2", title="Machine gearbox plates", start_date=date(2024, 1, 7), end_date=date(2024, 1, 14),
                  progress=35, dependencies=["T1"], color="#FF7F0E"),
        ChartItem(id="T3", title="Unscheduled", progress=0),
    ]
    milestones = [
        ChartItem(id="M1", title="Kickoff", kind="milestone", start_date=date(2024, 1, 6)),
        ChartItem(id="M2", title="Week 3 review", kind="milestone", start_date=date(2024, 1, 20), color="green"),
    ]
    return settings, tasks, milestones


def test_prepare_chart_returns_styled_layout() -> None:
    settings, tasks, milestones = _sample()
    layout = prepare_chart(tasks, milestones, settings)

    assert len(layout.rows) == 5
    assert len(layout.bars) == 2
    assert len(layout.markers) == 2
    assert len(layout.connectors) == 1
    assert layout.bars[1].fill == "#FF7F0E"
    assert layout.markers[1].fill == "#008000"


def test_render_chart_builds_figure() -> None:
    settings, tasks, milestones = _sample()
    fig = render_chart(prepare_chart(tasks, milestones, settings), settings)
    try:
        assert len(fig.axes) == 3
        w, h = fig.get_size_inches()
        assert w == pytest.approx((settings.row_label_width + settings.chart_width) / 100.0)
        assert h > 0
    finally:
        plt.close(fig)


def test_render_empty_chart() -> None:
    settings = ChartSettings(range_start=date(2024, 1, 1), range_end=date(2024, 1, 31), show_today_line=False)
    fig = render_chart(prepare_chart([], [], settings), settings)
    plt.close(fig)


def test_exports_produce_bytes() -> None:
    settings, tasks, milestones = _sample()

    png = export_png_bytes(tasks, milestones, settings)
    assert isinstance(png, (bytes, bytearray))
    assert png[:8] == b"\x89PNG\r\n\x1a\n"
    assert len(png) > 2_000

    pdf = export_pdf_bytes(tasks, milestones, settings)
    assert pdf[:4] == b"%PDF"

    svg = export_svg_bytes(tasks, milestones, settings)
    assert b"<svg" in svg[:2000]


def test_png_dpi_override_gives_larger_image() -> None:
    settings, tasks, milestones = _sample()
    small = export_png_bytes(tasks, milestones, settings)
    large = export_png_bytes(tasks, milestones, settings, dpi=200)
    assert len(large) > len(small)


def test_resolve_font_family_falls_back() -> None:
    assert resolve_font_family("Definitely Not A Real Font") == "DejaVu Sans"
    assert resolve_font_family("") == "DejaVu Sans"
