# toolcrib/stock.py
from __future__ import annotations

from typing import Optional

SUFFICIENT = "sufficient"
LOW = "low"
CRITICAL = "critical"

STOCK_STATUSES = [SUFFICIENT, LOW, CRITICAL]

STOCK_STATUS_LABELS = {
    SUFFICIENT: "충분",
    LOW: "부족",
    CRITICAL: "위험",
}


def stock_status(current: float, minimum: float, maximum: Optional[float] = None) -> str:
    """
    Three-tier stock classification.

    `maximum` is accepted so callers can pass a whole inventory row, but it
    does not take part in the decision. Negative values are not rejected.
    """
    if current <= minimum:
        return CRITICAL
    if current <= minimum * 1.5:
        return LOW
    return SUFFICIENT


def stock_fill_percent(current: float, maximum: float) -> int:
    """Progress-bar fill, clamped to 0..100."""
    if maximum <= 0:
        return 0
    pct = current / maximum * 100.0
    return int(max(0.0, min(100.0, pct)))
