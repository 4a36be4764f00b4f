# toolcrib/table.py
"""
Filter -> sort -> paginate pipeline shared by every list screen.

Rows can be dataclass records or plain dicts. The stages are plain
functions; TableController holds the four bits of screen state (search
term, dropdown filters, sort, page) and re-derives the visible page from
them on demand.
"""
from __future__ import annotations

import locale
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

from .storage import parse_date

T = TypeVar("T")

logger = logging.getLogger(__name__)

ASC = "asc"
DESC = "desc"

TEXT = "text"
NUMBER = "number"
DATE = "date"

EPOCH = datetime(1970, 1, 1)


def field_value(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _is_missing(v: Any) -> bool:
    return v is None or (isinstance(v, str) and v.strip() == "")


# -------------------------
# Filter
# -------------------------
def filter_rows(rows: Sequence[T], search: str = "", search_fields: Sequence[str] = (),
                filters: Optional[Mapping[str, Any]] = None) -> List[T]:
    """
    Case-insensitive substring search over `search_fields` AND exact match
    on every non-empty filter. Empty search and empty filters match all.
    """
    needle = (search or "").strip().lower()
    active = {k: v for k, v in (filters or {}).items() if not _is_missing(v)}
    out = []
    for row in rows:
        if needle and not any(needle in str(field_value(row, f) or "").lower() for f in search_fields):
            continue
        if any(str(field_value(row, k)) != str(v) for k, v in active.items()):
            continue
        out.append(row)
    return out


# -------------------------
# Sort
# -------------------------
def _number(v: Any) -> Optional[float]:
    if isinstance(v, bool):
        return float(v)
    if isinstance(v, (int, float)):
        return None if isinstance(v, float) and math.isnan(v) else float(v)
    try:
        return float(str(v).strip())
    except (TypeError, ValueError):
        return None


def _epoch_ms(v: Any) -> Optional[float]:
    dt = parse_date(v)
    if dt is None:
        return None
    return (dt - EPOCH).total_seconds() * 1000.0


def use_system_collation() -> bool:
    """Adopt the user's collation order for text sorts; falls back to code point order."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logger.warning("System collation unavailable, sorting by code point: %s", exc)
        return False
    return True


def _text(v: Any) -> str:
    return locale.strxfrm(str(v).lower())


def sort_key(kind: str) -> Callable[[Any], Any]:
    if kind == NUMBER:
        return _number
    if kind == DATE:
        return _epoch_ms
    return lambda v: None if _is_missing(v) else _text(v)


def sort_rows(rows: Sequence[T], field_name: Optional[str], direction: str = ASC, kind: str = TEXT) -> List[T]:
    """
    Stable sort on one field. Equal keys keep their input order in both
    directions. Rows whose key cannot be read go last.
    """
    if not field_name:
        return list(rows)
    to_key = sort_key(kind)
    keyed = [(to_key(field_value(r, field_name)), r) for r in rows]
    present = [(k, r) for k, r in keyed if k is not None]
    missing = [r for k, r in keyed if k is None]
    present.sort(key=lambda kr: kr[0], reverse=(direction == DESC))
    return [r for _, r in present] + missing


# -------------------------
# Paginate
# -------------------------
@dataclass
class Page(Generic[T]):
    items: List[T]
    page: int
    page_size: int
    total: int
    total_pages: int

    @property
    def start_index(self) -> int:
        """1-based index of the first item shown, 0 when empty."""
        return (self.page - 1) * self.page_size + 1 if self.items else 0

    @property
    def end_index(self) -> int:
        return self.start_index + len(self.items) - 1 if self.items else 0


def paginate(rows: Sequence[T], page: int, page_size: int) -> Page[T]:
    """Slice one page; an out-of-range page clamps into [1, total_pages]."""
    page_size = max(1, int(page_size))
    total = len(rows)
    total_pages = math.ceil(total / page_size)
    page = min(max(1, int(page)), max(1, total_pages))
    start = (page - 1) * page_size
    return Page(
        items=list(rows[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
    )


# -------------------------
# Stateful controller
# -------------------------
@dataclass
class SortState:
    field: Optional[str] = None
    direction: str = ASC


@dataclass
class TableController:
    search_fields: Sequence[str] = ()
    page_size: int = 20
    column_kinds: Dict[str, str] = field(default_factory=dict)
    search: str = ""
    filters: Dict[str, Any] = field(default_factory=dict)
    sort: SortState = field(default_factory=SortState)
    page: int = 1

    @classmethod
    def from_settings(cls, settings, search_fields: Sequence[str] = (),
                      column_kinds: Optional[Dict[str, str]] = None) -> "TableController":
        return cls(search_fields=search_fields, page_size=settings.items_per_page,
                   column_kinds=dict(column_kinds or {}))

    def set_search(self, term: str) -> None:
        self.search = term or ""
        self.page = 1

    def set_filter(self, name: str, value: Any) -> None:
        if _is_missing(value):
            self.filters.pop(name, None)
        else:
            self.filters[name] = value
        self.page = 1

    def clear_filters(self) -> None:
        self.search = ""
        self.filters = {}
        self.page = 1

    def toggle_sort(self, field_name: str) -> None:
        """Same column flips direction; a new column starts ascending."""
        if self.sort.field == field_name:
            self.sort = SortState(field_name, DESC if self.sort.direction == ASC else ASC)
        else:
            self.sort = SortState(field_name, ASC)
        self.page = 1

    def set_page(self, page: int) -> None:
        self.page = page

    def set_page_size(self, page_size: int) -> None:
        self.page_size = max(1, int(page_size))
        self.page = 1

    def arrange(self, rows: Sequence[T]) -> List[T]:
        """Filtered and sorted rows, every page."""
        filtered = filter_rows(rows, self.search, self.search_fields, self.filters)
        kind = self.column_kinds.get(self.sort.field or "", TEXT)
        return sort_rows(filtered, self.sort.field, self.sort.direction, kind)

    def view(self, rows: Sequence[T]) -> Page[T]:
        result = paginate(self.arrange(rows), self.page, self.page_size)
        self.page = result.page
        return result
