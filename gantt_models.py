from __future__ import annotations

import logging
from datetime import date
from typing import List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

ItemKind = Literal["task", "milestone"]
ViewMode = Literal["DAY", "WEEK", "MONTH"]

VIEW_MODES = ("DAY", "WEEK", "MONTH")
DEFAULT_VIEW_MODE: ViewMode = "WEEK"

COMPLETED_STATUS = "completed"


def _strip_or_none(v: object) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def clamp_progress(value: object) -> int:
    """Coerce anything progress-like into an int within [0, 100]."""
    if value is None:
        return 0
    try:
        p = float(value)  # accepts 42, 42.7, "42"
    except (TypeError, ValueError):
        return 0
    if p != p:  # NaN
        return 0
    return int(max(0.0, min(100.0, p)))


class ChartItem(BaseModel):
    """
    A task or milestone normalized for chart layout.

    Assignment goes through the same validators as construction, so
    `item.progress = 250` stores 100.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    title: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    progress: int = 0
    kind: ItemKind = "task"
    status: Optional[str] = None
    dependencies: List[str] = Field(default_factory=list)
    assignee: Optional[str] = None
    subsystem: Optional[str] = None
    color: Optional[str] = None  # hex or any matplotlib color; parsed at styling time

    @field_validator("id", mode="before")
    @classmethod
    def _id_not_empty(cls, v: object) -> str:
        s = _strip_or_none(v)
        if not s:
            raise ValueError("id is required.")
        return s

    @field_validator("title", mode="before")
    @classmethod
    def _title_strip(cls, v: object) -> str:
        return _strip_or_none(v) or ""

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, v: object) -> int:
        return clamp_progress(v)

    @field_validator("status", "assignee", "subsystem", "color", mode="before")
    @classmethod
    def _optional_strip(cls, v: object) -> Optional[str]:
        return _strip_or_none(v)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dedupe_dependencies(cls, v: object) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        out: List[str] = []
        for dep in v:
            dep_id = _strip_or_none(dep)
            if dep_id and dep_id not in out:
                out.append(dep_id)
        return out

    @model_validator(mode="after")
    def _milestone_single_date(self) -> "ChartItem":
        # Milestones are positioned by start_date; end_date always mirrors it,
        # including after start_date is reassigned.
        if self.kind == "milestone" and self.end_date != self.start_date:
            object.__setattr__(self, "end_date", self.start_date)
        return self

    def is_milestone(self) -> bool:
        return self.kind == "milestone"

    def is_completed(self) -> bool:
        return self.progress >= 100 or self.status == COMPLETED_STATUS

    def is_on_date(self, d: Optional[date]) -> bool:
        if d is None or self.start_date is None or self.end_date is None:
            return False
        return self.start_date <= d <= self.end_date

    def duration_days(self) -> int:
        """Inclusive day count; negative when end_date precedes start_date."""
        if self.start_date is None or self.end_date is None:
            return 0
        return (self.end_date - self.start_date).days + 1

    def add_dependency(self, dependency_id: Optional[str]) -> None:
        dep_id = _strip_or_none(dependency_id)
        if dep_id and dep_id not in self.dependencies:
            self.dependencies.append(dep_id)

    def remove_dependency(self, dependency_id: Optional[str]) -> None:
        dep_id = _strip_or_none(dependency_id)
        if dep_id in self.dependencies:
            self.dependencies.remove(dep_id)


class ChartSettings(BaseModel):
    view_mode: ViewMode = Field(default=DEFAULT_VIEW_MODE)
    show_dependencies: bool = Field(default=False)

    range_start: Optional[date] = Field(default=None)  # today - 7 days when absent
    range_end: Optional[date] = Field(default=None)  # today + 30 days when absent

    # Geometry, in pixels. day_width = chart_width / total_days.
    chart_width: float = Field(default=900.0, gt=0)
    bar_height: float = Field(default=25.0, gt=0)
    row_spacing: float = Field(default=10.0, ge=0)
    milestone_size: float = Field(default=15.0, gt=0)
    label_width: float = Field(default=30.0, gt=0)
    arrow_length: float = Field(default=6.0, ge=0)
    arrow_angle_deg: float = Field(default=30.0, ge=0, le=90)

    show_today_line: bool = Field(default=True)
    today_line_date: Optional[date] = Field(default=None)
    timezone: str = Field(default="America/Chicago")

    # Rendering only.
    chart_title: str = Field(default="Project Schedule")
    output_dpi: Literal[100, 150, 300, 600] = Field(default=150)
    font_family: str = Field(default="DejaVu Sans")  # Falls back at render-time if not found.
    row_label_width: float = Field(default=180.0, gt=0)
    header_height: float = Field(default=40.0, gt=0)

    @field_validator("view_mode", mode="before")
    @classmethod
    def _normalize_view_mode(cls, v: object) -> str:
        mode = (str(v).strip().upper() if v is not None else "")
        if mode not in VIEW_MODES:
            logger.warning("Unrecognized view mode %r; falling back to %s", v, DEFAULT_VIEW_MODE)
            return DEFAULT_VIEW_MODE
        return mode

    @field_validator("timezone")
    @classmethod
    def _tz_not_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("timezone is required.")
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    @field_validator("font_family")
    @classmethod
    def _font_not_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            return "DejaVu Sans"
        return v
