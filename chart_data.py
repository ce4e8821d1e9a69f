from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd
from pydantic import ValidationError

from chart_styler import MILESTONE_FILL_DEFAULT, TASK_FILL_DEFAULT, darker, parse_color
from date_utils import coerce_date
from gantt_models import ChartItem, ItemKind

logger = logging.getLogger(__name__)

RECORD_COLUMNS = [
    "id",
    "title",
    "kind",
    "start_date",
    "end_date",
    "progress",
    "status",
    "dependencies",
    "assignee",
    "subsystem",
    "color",
]

FILTER_BEHIND_SCHEDULE = "BEHIND_SCHEDULE"
FILTER_COMPLETED = "COMPLETED"
FILTER_INCOMPLETE = "INCOMPLETE"

DEPENDENCY_TYPE = "finish-to-start"


def _is_blank(value: Any) -> bool:
    """True if value is None/NaN/NaT/pd.NA or an empty/whitespace string."""
    if value is None:
        return True
    if isinstance(value, (list, tuple, set)):
        return False
    try:
        if pd.isna(value):
            return True
    except (TypeError, ValueError):
        pass
    if isinstance(value, str):
        return value.strip() == ""
    return False


def _clean(record: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(k).strip(): (None if _is_blank(v) else v) for k, v in record.items()}


def _normalize_id(value: Any) -> Any:
    # A numeric id column with blanks is read as float by pandas (1 -> 1.0).
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _split_dependencies(value: Any) -> List[str]:
    # Tabular sources carry dependencies as "A, B"; programmatic ones as a list.
    if value is None:
        return []
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    return [str(_normalize_id(v)).strip() for v in value if not _is_blank(v)]


# ---------------------------------------------------------------------------
# Record conversion
# ---------------------------------------------------------------------------

def _item_from_record(record: Mapping[str, Any], kind: ItemKind) -> ChartItem:
    r = _clean(record)
    start = coerce_date(r.get("start_date"))
    end = coerce_date(r.get("end_date"))
    if kind == "milestone":
        start = start or coerce_date(r.get("date"))
        end = end or start

    try:
        return ChartItem(
            id=_normalize_id(r.get("id")),
            title=r.get("title") or "",
            start_date=start,
            end_date=end,
            progress=r.get("progress"),
            kind=kind,
            status=r.get("status"),
            dependencies=_split_dependencies(r.get("dependencies")),
            assignee=r.get("assignee"),
            subsystem=r.get("subsystem"),
            color=r.get("color"),
        )
    except ValidationError as e:
        raise ValueError(f"Invalid {kind} record {r.get('id')!r}: {e.errors()[0]['msg']}") from e


def item_from_task_record(record: Mapping[str, Any]) -> ChartItem:
    return _item_from_record(record, "task")


def item_from_milestone_record(record: Mapping[str, Any]) -> ChartItem:
    """Milestones may carry their date as `date` or `start_date`."""
    return _item_from_record(record, "milestone")


def item_to_record(item: ChartItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "kind": item.kind,
        "start_date": item.start_date,
        "end_date": item.end_date,
        "progress": item.progress,
        "status": item.status,
        "dependencies": list(item.dependencies),
        "assignee": item.assignee,
        "subsystem": item.subsystem,
        "color": item.color,
    }


def items_from_records(records: Iterable[Mapping[str, Any]], kind: ItemKind = "task") -> List[ChartItem]:
    """Bulk conversion; errors name the 1-based record position."""
    out: List[ChartItem] = []
    for position, record in enumerate(records, start=1):
        try:
            out.append(_item_from_record(record, kind))
        except ValueError as e:
            raise ValueError(f"Record {position}: {e}") from e
    return out


def items_from_frame(df: pd.DataFrame, kind: ItemKind = "task") -> List[ChartItem]:
    """
    Read items from a DataFrame shaped like RECORD_COLUMNS.

    Missing columns are treated as empty. Rows with no id and no title are
    skipped as blank spreadsheet rows.
    """
    if df is None or df.empty:
        return []
    frame = df.copy()
    for col in RECORD_COLUMNS:
        if col not in frame.columns:
            frame[col] = pd.NA

    records = [
        r for r in frame.to_dict(orient="records")
        if not (_is_blank(r.get("id")) and _is_blank(r.get("title")))
    ]
    items = items_from_records(records, kind)
    logger.debug("Read %d %s items from a frame of %d rows", len(items), kind, len(frame))
    return items


def items_to_frame(items: Iterable[ChartItem]) -> pd.DataFrame:
    rows = []
    for item in items:
        rec = item_to_record(item)
        rec["dependencies"] = ", ".join(rec["dependencies"])
        rows.append(rec)
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

def _is_behind_schedule(item: ChartItem, today: date) -> bool:
    if item.is_milestone() or item.start_date is None or item.end_date is None:
        return False
    if item.start_date > today or item.end_date < today:
        return False
    total = (item.end_date - item.start_date).days
    if total <= 0:
        return item.progress < 100
    expected = (today - item.start_date).days * 100 // total
    return item.progress < expected


def filter_chart_data(
    items: Optional[Iterable[ChartItem]],
    filter_type: Optional[str] = None,
    subsystem: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> List[ChartItem]:
    """
    Narrow chart items before layout.

    Filters:
      - start/end: keep items overlapping the window (undated items are dropped
        once either bound is given)
      - subsystem: exact match
      - filter_type: BEHIND_SCHEDULE (active task whose progress trails the
        elapsed share of its span), COMPLETED, INCOMPLETE; anything else is ignored
    """
    out = list(items or [])

    if start is not None:
        out = [i for i in out if i.end_date is not None and i.end_date >= start]
    if end is not None:
        out = [i for i in out if i.start_date is not None and i.start_date <= end]

    if subsystem:
        out = [i for i in out if i.subsystem == subsystem]

    ft = (filter_type or "").strip().upper()
    if ft == FILTER_BEHIND_SCHEDULE:
        today = today or date.today()
        out = [i for i in out if _is_behind_schedule(i, today)]
    elif ft == FILTER_COMPLETED:
        out = [i for i in out if i.is_completed()]
    elif ft == FILTER_INCOMPLETE:
        out = [i for i in out if not i.is_completed()]
    elif ft:
        logger.debug("Ignoring unknown filter type %r", filter_type)

    return out


# ---------------------------------------------------------------------------
# Web chart payloads
# ---------------------------------------------------------------------------

def _iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None


def to_chart_js_format(items: Iterable[ChartItem]) -> Dict[str, List[Dict[str, Any]]]:
    """Datasets for a Chart.js floating-bar timeline, one per item."""
    datasets: List[Dict[str, Any]] = []
    for item in items:
        default = MILESTONE_FILL_DEFAULT if item.is_milestone() else TASK_FILL_DEFAULT
        color = parse_color(item.color) or default
        dataset: Dict[str, Any] = {
            "id": item.id,
            "label": item.title,
            "backgroundColor": color,
            "borderColor": darker(color),
            "borderWidth": 1,
            "data": [{"x": [_iso(item.start_date), _iso(item.end_date)], "y": item.title}],
            "progress": item.progress,
            "type": item.kind,
            "dependencies": list(item.dependencies),
        }
        if item.assignee is not None:
            dataset["assignee"] = item.assignee
        if item.subsystem is not None:
            dataset["subsystem"] = item.subsystem
        datasets.append(dataset)
    return {"datasets": datasets}


def create_dependency_data(items: Iterable[ChartItem]) -> List[Dict[str, str]]:
    return [
        {"source": dep_id, "target": item.id, "type": DEPENDENCY_TYPE}
        for item in items
        for dep_id in item.dependencies
    ]


# ---------------------------------------------------------------------------
# Dependency cycles
# ---------------------------------------------------------------------------

def find_dependency_cycles(items: Iterable[ChartItem]) -> List[List[str]]:
    """
    Cycles in the dependency graph, one per back edge, each as a list of ids
    in dependency order. A self-reference yields a single-id cycle. Unknown
    ids are ignored.
    """
    graph: Dict[str, List[str]] = {}
    for item in items:
        graph.setdefault(item.id, list(item.dependencies))

    state: Dict[str, int] = {}  # 1 = on the current path, 2 = done
    path: List[str] = []
    cycles: List[List[str]] = []

    def visit(node: str) -> None:
        state[node] = 1
        path.append(node)
        for dep in graph[node]:
            if dep not in graph:
                continue
            if state.get(dep) == 1:
                cycles.append(path[path.index(dep):])
            elif dep not in state:
                visit(dep)
        path.pop()
        state[node] = 2

    for node in graph:
        if node not in state:
            visit(node)

    if cycles:
        logger.warning("Found %d dependency cycle(s)", len(cycles))
    return cycles


def identify_bottlenecks(items: Iterable[ChartItem]) -> List[str]:
    """
    Ids of the most connected items: the top quarter (at least one) ranked by
    incoming plus outgoing dependencies. Ties keep input order.
    """
    by_id: Dict[str, ChartItem] = {}
    for item in items:
        by_id.setdefault(item.id, item)
    if not by_id:
        return []

    counts = {item_id: len(item.dependencies) for item_id, item in by_id.items()}
    for item in by_id.values():
        for dep in item.dependencies:
            if dep in counts:
                counts[dep] += 1

    limit = max(len(counts) // 4, 1)
    ranked = sorted(counts, key=lambda item_id: counts[item_id], reverse=True)
    return ranked[:limit]
