import sys
from datetime import date
from pathlib import Path

import pytest

# Force a headless backend for matplotlib before any pyplot imports.
import matplotlib

matplotlib.use("Agg")

# Ensure project root is on sys.path for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gantt_models import ChartSettings  # noqa: E402


@pytest.fixture
def week_settings() -> ChartSettings:
    """2024-01-01 (Mon) .. 2024-01-08 over 70px: day_width is exactly 10."""
    return ChartSettings(
        view_mode="DAY",
        range_start=date(2024, 1, 1),
        range_end=date(2024, 1, 8),
        chart_width=70,
        today_line_date=date(2024, 1, 4),
    )
