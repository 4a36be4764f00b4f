# toolcrib/storage.py
from __future__ import annotations

import os
import json
from datetime import datetime, date
from typing import Any, Optional

import pandas as pd


# -----------------------------
# JSON helpers (safe writes)
# -----------------------------
def load_json(path: str, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError):
        return default


def save_json(path: str, obj: Any) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


# -----------------------------
# Common converters
# -----------------------------
def _is_blank(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, float) and pd.isna(val):
        return True
    return str(val).strip() == ""


def safe_int(val: Any, default: int = 0) -> int:
    try:
        if _is_blank(val):
            return default
        return int(float(str(val).strip()))
    except (TypeError, ValueError):
        return default


def safe_float(val: Any, default: float = 0.0) -> float:
    try:
        if _is_blank(val):
            return default
        return float(str(val).strip())
    except (TypeError, ValueError):
        return default


def safe_str(val: Any, default: str = "") -> str:
    if _is_blank(val):
        return default
    return str(val).strip()


def is_number(val: Any) -> bool:
    """True when val is a non-blank value that parses as a float."""
    if _is_blank(val):
        return False
    try:
        float(str(val).strip())
    except (TypeError, ValueError):
        return False
    return True


# -----------------------------
# Dates
# -----------------------------
DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
)


def parse_date(d: Any) -> Optional[datetime]:
    if isinstance(d, datetime):
        return d
    if isinstance(d, date):
        return datetime(d.year, d.month, d.day)
    if _is_blank(d):
        return None
    s = str(d).strip()
    if s.endswith("Z"):
        s = s[:-1]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            pass
    return None


def now_iso() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def today_iso() -> str:
    return datetime.now().strftime("%Y-%m-%d")

