# toolcrib/insights.py
"""
Dashboard figures derived from the loaded CAM sheets, tool changes,
inventory and equipment lists.

Everything here is a pure function over in-memory records and is total:
empty or missing inputs give zeroed results, never an exception.
Percentages are rounded half-up to whole numbers.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .config import EQUIPMENT_STATUSES, STATUS_RUNNING
from .models import CAMSheet, EndmillInfo, Equipment, InventoryRecord, ToolChange
from .stock import STOCK_STATUSES, stock_status
from .storage import parse_date

TOOL_TYPE_KEYWORDS = ["FLAT", "BALL", "T-CUT", "RADIUS", "CORNER", "TAPER", "DRILL", "CHAMFER"]
OTHER_TYPE = "OTHER"

STANDARD_SHARE = 0.75


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _percent(part: float, whole: float) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100.0)


def expected_life_by_code(cam_endmills: Optional[Iterable[EndmillInfo]]) -> Dict[str, int]:
    """First positive configured tool life seen for each endmill code."""
    out: Dict[str, int] = {}
    for e in cam_endmills or []:
        if e.endmill_code and e.tool_life > 0 and e.endmill_code not in out:
            out[e.endmill_code] = e.tool_life
    return out


def _accuracy(expected: Dict[str, int], tool_changes: Iterable[ToolChange]) -> int:
    scores = []
    for tc in tool_changes:
        life = expected.get(tc.endmill_code)
        if not life:
            continue
        scores.append(min(tc.tool_life / life * 100.0, 100.0))
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))


def tool_life_accuracy(cam_endmills: Optional[Iterable[EndmillInfo]],
                       tool_changes: Optional[Iterable[ToolChange]]) -> int:
    """
    Mean of min(actual / expected * 100, 100) over tool changes whose code
    has a positive expected life in some CAM sheet. Unmatched changes are
    left out; 0 when nothing matches.
    """
    return _accuracy(expected_life_by_code(cam_endmills), tool_changes or [])


def per_process_accuracy(cam_endmills: Optional[Iterable[EndmillInfo]],
                         tool_changes: Optional[Iterable[ToolChange]],
                         processes: Optional[Sequence[str]]) -> Dict[str, int]:
    expected = expected_life_by_code(cam_endmills)
    changes = list(tool_changes or [])
    return {
        p: _accuracy(expected, [tc for tc in changes if tc.process == p])
        for p in processes or []
    }


def average_change_interval(tool_changes: Optional[Iterable[ToolChange]]) -> int:
    lives = [tc.tool_life for tc in tool_changes or [] if tc.tool_life > 0]
    if not lives:
        return 0
    return round_half_up(sum(lives) / len(lives))


def tool_type(endmill_name: str) -> str:
    upper = (endmill_name or "").upper()
    for keyword in TOOL_TYPE_KEYWORDS:
        if keyword in upper:
            return keyword
    return OTHER_TYPE


def per_type_change_interval(tool_changes: Optional[Iterable[ToolChange]]) -> Dict[str, int]:
    """Average positive tool life per endmill type; types with no data are omitted."""
    buckets: Dict[str, List[int]] = {}
    for tc in tool_changes or []:
        if tc.tool_life <= 0:
            continue
        buckets.setdefault(tool_type(tc.endmill_name), []).append(tc.tool_life)
    order = TOOL_TYPE_KEYWORDS + [OTHER_TYPE]
    return {
        t: round_half_up(sum(buckets[t]) / len(buckets[t]))
        for t in order if t in buckets
    }


def inventory_linkage(cam_endmills: Optional[Iterable[EndmillInfo]],
                      inventory: Optional[Iterable[InventoryRecord]]) -> int:
    """Share of CAM-referenced codes whose stock is at or above minimum."""
    codes = {e.endmill_code for e in cam_endmills or [] if e.endmill_code}
    if not codes:
        return 0
    by_code = {r.endmill_code: r for r in inventory or []}
    secured = 0
    for code in codes:
        row = by_code.get(code)
        if row is not None and row.current_stock >= row.min_stock:
            secured += 1
    return _percent(secured, len(codes))


@dataclass
class StandardizationIndex:
    distinct_codes: int = 0
    standard: int = 0
    duplicate: int = 0
    rate: int = 0


def standardization_index(cam_endmills: Optional[Iterable[EndmillInfo]]) -> StandardizationIndex:
    # Placeholder: a fixed 75% of distinct codes counts as standard.
    # There is no real duplicate detection behind these numbers.
    distinct = len({e.endmill_code for e in cam_endmills or [] if e.endmill_code})
    standard = math.floor(distinct * STANDARD_SHARE)
    return StandardizationIndex(
        distinct_codes=distinct,
        standard=standard,
        duplicate=distinct - standard,
        rate=_percent(standard, distinct),
    )


@dataclass
class CamSheetInsights:
    tool_life_accuracy: int = 0
    average_change_interval: int = 0
    inventory_linkage: int = 0
    standardization: StandardizationIndex = field(default_factory=StandardizationIndex)
    per_process_accuracy: Dict[str, int] = field(default_factory=dict)
    per_type_change_interval: Dict[str, int] = field(default_factory=dict)


def cam_sheet_insights(cam_sheets: Optional[Iterable[CAMSheet]],
                       tool_changes: Optional[Iterable[ToolChange]],
                       inventory: Optional[Iterable[InventoryRecord]],
                       processes: Optional[Sequence[str]]) -> CamSheetInsights:
    endmills = [e for s in cam_sheets or [] for e in s.endmills]
    changes = list(tool_changes or [])
    return CamSheetInsights(
        tool_life_accuracy=tool_life_accuracy(endmills, changes),
        average_change_interval=average_change_interval(changes),
        inventory_linkage=inventory_linkage(endmills, inventory),
        standardization=standardization_index(endmills),
        per_process_accuracy=per_process_accuracy(endmills, changes, processes),
        per_type_change_interval=per_type_change_interval(changes),
    )


# -------------------------
# Dashboard summaries
# -------------------------
@dataclass
class EquipmentStats:
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    operating_rate: int = 0


def equipment_stats(equipment: Optional[Iterable[Equipment]]) -> EquipmentStats:
    rows = list(equipment or [])
    by_status = {s: 0 for s in EQUIPMENT_STATUSES}
    for e in rows:
        by_status[e.status] = by_status.get(e.status, 0) + 1
    return EquipmentStats(
        total=len(rows),
        by_status=by_status,
        operating_rate=_percent(by_status.get(STATUS_RUNNING, 0), len(rows)),
    )


@dataclass
class InventorySummary:
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)


def inventory_summary(inventory: Optional[Iterable[InventoryRecord]]) -> InventorySummary:
    rows = list(inventory or [])
    by_status = {s: 0 for s in STOCK_STATUSES}
    for r in rows:
        by_status[stock_status(r.current_stock, r.min_stock, r.max_stock)] += 1
    return InventorySummary(total=len(rows), by_status=by_status)


@dataclass
class ToolChangeSummary:
    today: int = 0
    yesterday: int = 0
    difference: int = 0
    trend: str = "0"


def _change_day(tc: ToolChange) -> Optional[date]:
    dt = parse_date(tc.change_date) or parse_date(tc.created_at)
    return dt.date() if dt else None


def tool_change_summary(tool_changes: Optional[Iterable[ToolChange]],
                        today: Optional[date] = None) -> ToolChangeSummary:
    today = today or datetime.now().date()
    yesterday = today - timedelta(days=1)
    days = [_change_day(tc) for tc in tool_changes or []]
    n_today = sum(1 for d in days if d == today)
    n_yesterday = sum(1 for d in days if d == yesterday)
    diff = n_today - n_yesterday
    return ToolChangeSummary(
        today=n_today,
        yesterday=n_yesterday,
        difference=diff,
        trend=f"+{diff}" if diff > 0 else str(diff),
    )


def model_series(model: str) -> str:
    """'PA1-X' -> 'PA1'."""
    return (model or "").split("-")[0].strip()


def model_series_frequency(tool_changes: Optional[Iterable[ToolChange]],
                           since: Optional[date] = None) -> pd.DataFrame:
    """Tool-change count per model series, most frequent first."""
    rows = []
    for tc in tool_changes or []:
        day = _change_day(tc)
        if since is not None and (day is None or day < since):
            continue
        rows.append({"series": model_series(tc.production_model) or "(blank)", "id": tc.id})
    if not rows:
        return pd.DataFrame(columns=["series", "changes"])
    df = pd.DataFrame(rows)
    out = df.groupby("series", dropna=False).agg(changes=("id", "count")).reset_index()
    return out.sort_values(["changes", "series"], ascending=[False, True]).reset_index(drop=True)


def recent_changes_by_equipment(tool_changes: Optional[Iterable[ToolChange]], topn: int = 10) -> pd.DataFrame:
    """Equipment with the most tool changes, with average achieved life."""
    rows = [{"equipment_number": tc.equipment_number or "(blank)", "tool_life": tc.tool_life, "id": tc.id}
            for tc in tool_changes or []]
    if not rows:
        return pd.DataFrame(columns=["equipment_number", "changes", "avg_life"])
    df = pd.DataFrame(rows)
    out = df.groupby("equipment_number", dropna=False).agg(
        changes=("id", "count"),
        avg_life=("tool_life", "mean"),
    ).reset_index()
    out["avg_life"] = out["avg_life"].apply(round_half_up)
    out = out.sort_values(["changes", "equipment_number"], ascending=[False, True]).head(topn)
    return out.reset_index(drop=True)
