from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional, Sequence

import matplotlib.pyplot as plt

from chart_styler import style_chart
from gantt_models import ChartItem, ChartSettings
from layout_engine import ChartLayout, create_gantt_chart
from renderer import render_chart

logger = logging.getLogger(__name__)


def prepare_chart(
    tasks: Optional[Sequence[ChartItem]],
    milestones: Optional[Sequence[ChartItem]],
    settings: Optional[ChartSettings] = None,
) -> ChartLayout:
    """Layout plus presentation pass: geometry ready to draw."""
    tasks = list(tasks or [])
    milestones = list(milestones or [])
    layout = create_gantt_chart(tasks, milestones, settings)
    return style_chart(layout, tasks + milestones)


def _export_bytes(
    fmt: str,
    tasks: Optional[Sequence[ChartItem]],
    milestones: Optional[Sequence[ChartItem]],
    settings: Optional[ChartSettings],
    **savefig_kwargs,
) -> bytes:
    settings = settings or ChartSettings()
    layout = prepare_chart(tasks, milestones, settings)
    fig = render_chart(layout, settings)
    bio = BytesIO()
    try:
        fig.savefig(bio, format=fmt, facecolor="white", **savefig_kwargs)
    finally:
        # Close to avoid memory growth when exporting repeatedly.
        plt.close(fig)
    logger.debug("Exported %s chart (%d bytes)", fmt, bio.getbuffer().nbytes)
    return bio.getvalue()


def export_png_bytes(
    tasks: Optional[Sequence[ChartItem]],
    milestones: Optional[Sequence[ChartItem]],
    settings: Optional[ChartSettings] = None,
    *,
    dpi: Optional[int] = None,
) -> bytes:
    # The caller may choose a raster DPI independently of settings.output_dpi
    settings = settings or ChartSettings()
    return _export_bytes("png", tasks, milestones, settings, dpi=dpi or settings.output_dpi)


def export_pdf_bytes(
    tasks: Optional[Sequence[ChartItem]],
    milestones: Optional[Sequence[ChartItem]],
    settings: Optional[ChartSettings] = None,
) -> bytes:
    return _export_bytes("pdf", tasks, milestones, settings)


def export_svg_bytes(
    tasks: Optional[Sequence[ChartItem]],
    milestones: Optional[Sequence[ChartItem]],
    settings: Optional[ChartSettings] = None,
) -> bytes:
    return _export_bytes("svg", tasks, milestones, settings)
