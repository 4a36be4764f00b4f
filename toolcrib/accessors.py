# toolcrib/accessors.py
"""
Typed fetch/mutate wrappers over the database layer.

Every fetch returns fully-populated records from models.py. Every
successful write is published on CHANGE_FEED as (table, action) so open
screens can refetch. sqlite errors surface as DataAccessError.
"""
from __future__ import annotations

import os
import shutil
import sqlite3
import time
import logging
from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from . import db
from .config import UPLOADS_DIR, REFETCH_MIN_INTERVAL
from .models import (
    CAMSheet,
    EndmillDisposal,
    EndmillInfo,
    EndmillType,
    Equipment,
    InventoryRecord,
    InventoryTransaction,
    SupplierPrice,
    ToolChange,
)

logger = logging.getLogger(__name__)


class DataAccessError(Exception):
    """A fetch or mutation against the database failed."""


class RecordNotFoundError(DataAccessError):
    pass


class InsufficientStockError(DataAccessError):
    pass


# ----------------------------
# Change notification
# ----------------------------
ChangeListener = Callable[[str, str], None]


class ChangeFeed:
    def __init__(self):
        self._listeners: List[Tuple[Optional[str], ChangeListener]] = []

    def subscribe(self, listener: ChangeListener, table: Optional[str] = None) -> Callable[[], None]:
        entry = (table, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def publish(self, table: str, action: str) -> None:
        for wanted, listener in list(self._listeners):
            if wanted is None or wanted == table:
                listener(table, action)


CHANGE_FEED = ChangeFeed()


class RefetchThrottle:
    """Lets a refetch through at most once per `min_interval` seconds."""

    def __init__(self, min_interval: float = REFETCH_MIN_INTERVAL, clock: Callable[[], float] = time.monotonic):
        self.min_interval = min_interval
        self.clock = clock
        self._last: Optional[float] = None

    def ready(self) -> bool:
        now = self.clock()
        if self._last is not None and now - self._last < self.min_interval:
            return False
        self._last = now
        return True

    def mark(self) -> None:
        self._last = self.clock()


def _guarded(what: str):
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except sqlite3.Error as exc:
                logger.exception("%s failed", what)
                raise DataAccessError(f"{what} failed: {exc}") from exc
        return wrapper
    return deco


def _require(changed: int, table: str, row_id: Any) -> None:
    if not changed:
        raise RecordNotFoundError(f"{table} {row_id} not found")


# ----------------------------
# CAM sheets
# ----------------------------
@_guarded("Loading CAM sheets")
def fetch_cam_sheets() -> List[CAMSheet]:
    return [CAMSheet.from_row(r) for r in db.list_cam_sheets()]


@_guarded("Creating CAM sheet")
def create_cam_sheet(sheet: CAMSheet) -> int:
    sheet_id = db.insert_cam_sheet(sheet.to_record(), [e.to_record() for e in sheet.endmills])
    CHANGE_FEED.publish("cam_sheets", "insert")
    return sheet_id


@_guarded("Creating CAM sheets")
def bulk_create_cam_sheets(sheets: Iterable[CAMSheet]) -> List[int]:
    ids = db.insert_cam_sheets([(s.to_record(), [e.to_record() for e in s.endmills]) for s in sheets])
    if ids:
        CHANGE_FEED.publish("cam_sheets", "insert")
    return ids


@_guarded("Updating CAM sheet")
def update_cam_sheet(sheet: CAMSheet) -> None:
    _require(db.update_cam_sheet(sheet.id, sheet.to_record(), [e.to_record() for e in sheet.endmills]),
             "CAM sheet", sheet.id)
    CHANGE_FEED.publish("cam_sheets", "update")


@_guarded("Deleting CAM sheet")
def delete_cam_sheet(sheet_id: int) -> None:
    _require(db.delete_cam_sheet(sheet_id), "CAM sheet", sheet_id)
    CHANGE_FEED.publish("cam_sheets", "delete")


def all_cam_endmills(sheets: Iterable[CAMSheet]) -> List[EndmillInfo]:
    return [e for s in sheets for e in s.endmills]


def find_cam_endmill(sheets: Iterable[CAMSheet], model: str, process: str,
                     t_number: int) -> Optional[EndmillInfo]:
    """The endmill a CAM sheet assigns to one T position; newest version wins."""
    matching = [s for s in sheets if s.model == model and s.process == process]
    matching.sort(key=lambda s: (s.version_date, s.cam_version), reverse=True)
    for s in matching:
        for e in s.endmills:
            if e.t_number == t_number:
                return e
    return None


# ----------------------------
# Equipment
# ----------------------------
@_guarded("Loading equipment")
def fetch_equipment() -> List[Equipment]:
    return [Equipment.from_row(r) for r in db.list_equipment()]


@_guarded("Creating equipment")
def bulk_create_equipment(rows: Iterable[Equipment]) -> List[int]:
    ids = db.insert_equipment([e.to_record() for e in rows])
    if ids:
        CHANGE_FEED.publish("equipment", "insert")
    return ids


def create_equipment(equipment: Equipment) -> int:
    return bulk_create_equipment([equipment])[0]


@_guarded("Updating equipment")
def update_equipment(equipment: Equipment) -> None:
    _require(db.update_equipment(equipment.id, equipment.to_record()), "Equipment", equipment.id)
    CHANGE_FEED.publish("equipment", "update")


@_guarded("Deleting equipment")
def delete_equipment(equipment_id: int) -> None:
    _require(db.delete_equipment(equipment_id), "Equipment", equipment_id)
    CHANGE_FEED.publish("equipment", "delete")


# ----------------------------
# Endmill master
# ----------------------------
@_guarded("Loading endmill types")
def fetch_endmill_types() -> List[EndmillType]:
    prices: Dict[str, List[Dict[str, Any]]] = {}
    for p in db.list_supplier_prices():
        prices.setdefault(p["endmill_code"], []).append(p)
    out = []
    for r in db.list_endmill_types():
        r["suppliers"] = prices.get(r["code"], [])
        out.append(EndmillType.from_row(r))
    return out


@_guarded("Saving endmill types")
def save_endmill_types(types: Iterable[EndmillType]) -> int:
    count = db.save_endmill_types(
        (t.code, t.to_record(), [{"supplier": s.supplier, "unit_price": s.unit_price} for s in t.suppliers])
        for t in types
    )
    if count:
        CHANGE_FEED.publish("endmill_types", "upsert")
    return count


@_guarded("Deleting endmill type")
def delete_endmill_type(code: str) -> None:
    _require(db.delete_endmill_type(code), "Endmill type", code)
    CHANGE_FEED.publish("endmill_types", "delete")


@_guarded("Loading supplier prices")
def fetch_supplier_prices(code: str) -> List[SupplierPrice]:
    return [SupplierPrice(p["supplier"], float(p["unit_price"])) for p in db.list_supplier_prices(code)]


@_guarded("Loading supplier prices")
def supplier_prices_by_code() -> Dict[str, List[SupplierPrice]]:
    out: Dict[str, List[SupplierPrice]] = {}
    for p in db.list_supplier_prices():
        out.setdefault(p["endmill_code"], []).append(SupplierPrice(p["supplier"], float(p["unit_price"])))
    return out


@_guarded("Saving supplier prices")
def save_supplier_prices(code: str, prices: Iterable[SupplierPrice]) -> None:
    """Replace every price on file for one endmill code."""
    db.replace_supplier_prices(code, [{"supplier": p.supplier, "unit_price": p.unit_price} for p in prices])
    CHANGE_FEED.publish("supplier_prices", "replace")


# ----------------------------
# Inventory
# ----------------------------
@_guarded("Loading inventory")
def fetch_inventory() -> List[InventoryRecord]:
    return [InventoryRecord.from_row(r) for r in db.list_inventory()]


@_guarded("Saving inventory")
def bulk_upsert_inventory(rows: Iterable[InventoryRecord]) -> List[int]:
    ids = db.upsert_inventory([r.to_record() for r in rows])
    if ids:
        CHANGE_FEED.publish("inventory", "upsert")
    return ids


def create_inventory(record: InventoryRecord) -> int:
    return bulk_upsert_inventory([record])[0]


@_guarded("Updating inventory")
def update_inventory(record: InventoryRecord) -> None:
    fields = {k: v for k, v in record.to_record().items()
              if k in ("current_stock", "min_stock", "max_stock", "location")}
    _require(db.update_inventory(record.id, fields), "Inventory", record.id)
    CHANGE_FEED.publish("inventory", "update")


@_guarded("Deleting inventory")
def delete_inventory(inventory_id: int) -> None:
    _require(db.delete_inventory(inventory_id), "Inventory", inventory_id)
    CHANGE_FEED.publish("inventory", "delete")


@_guarded("Recording inbound stock")
def record_inbound(code: str, quantity: int, supplier: str = "", unit_price: float = 0.0,
                   processed_by: str = "", notes: str = "") -> int:
    if quantity <= 0:
        raise ValueError("Inbound quantity must be positive")
    new_stock = db.apply_stock_movement(code, quantity, {
        "transaction_type": "inbound",
        "supplier": supplier,
        "unit_price": unit_price,
        "processed_by": processed_by,
        "notes": notes,
    })
    if new_stock is None:
        raise RecordNotFoundError(f"No inventory row for {code}")
    CHANGE_FEED.publish("inventory", "inbound")
    return new_stock


@_guarded("Recording outbound stock")
def record_outbound(code: str, quantity: int, equipment_number: str = "", t_number: int = 0,
                    purpose: str = "", processed_by: str = "", notes: str = "") -> int:
    if quantity <= 0:
        raise ValueError("Outbound quantity must be positive")
    current = db.get_inventory_by_code(code)
    if current is None:
        raise RecordNotFoundError(f"No inventory row for {code}")
    if int(current["current_stock"]) < quantity:
        raise InsufficientStockError(
            f"{code}: requested {quantity}, only {current['current_stock']} in stock"
        )
    new_stock = db.apply_stock_movement(code, -quantity, {
        "transaction_type": "outbound",
        "equipment_number": equipment_number,
        "t_number": t_number,
        "purpose": purpose,
        "processed_by": processed_by,
        "notes": notes,
    })
    if new_stock is None:
        raise InsufficientStockError(f"{code}: stock changed, {quantity} no longer available")
    CHANGE_FEED.publish("inventory", "outbound")
    return new_stock


@_guarded("Loading transactions")
def fetch_transactions(code: Optional[str] = None, transaction_type: Optional[str] = None,
                       limit: int = 500) -> List[InventoryTransaction]:
    return [InventoryTransaction.from_row(r) for r in db.list_transactions(code, transaction_type, limit)]


# ----------------------------
# Tool changes
# ----------------------------
@_guarded("Loading tool changes")
def fetch_tool_changes(start: Optional[str] = None, end: Optional[str] = None,
                       equipment_number: Optional[str] = None,
                       limit: Optional[int] = None, offset: int = 0) -> List[ToolChange]:
    return [ToolChange.from_row(r)
            for r in db.list_tool_changes(start, end, equipment_number, limit, offset)]


@_guarded("Counting tool changes")
def count_tool_changes(start: Optional[str] = None, end: Optional[str] = None) -> int:
    return db.count_tool_changes(start, end)


def _stamp(change: ToolChange) -> Dict[str, Any]:
    rec = change.to_record()
    if not rec["change_date"]:
        rec["change_date"] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    return rec


@_guarded("Creating tool changes")
def bulk_create_tool_changes(changes: Iterable[ToolChange]) -> List[int]:
    ids = db.insert_tool_changes([_stamp(c) for c in changes])
    if ids:
        CHANGE_FEED.publish("tool_changes", "insert")
    return ids


def create_tool_change(change: ToolChange) -> int:
    return bulk_create_tool_changes([change])[0]


@_guarded("Updating tool change")
def update_tool_change(change: ToolChange) -> None:
    _require(db.update_tool_change(change.id, change.to_record()), "Tool change", change.id)
    CHANGE_FEED.publish("tool_changes", "update")


@_guarded("Deleting tool change")
def delete_tool_change(change_id: int) -> None:
    _require(db.delete_tool_change(change_id), "Tool change", change_id)
    CHANGE_FEED.publish("tool_changes", "delete")


# ----------------------------
# Disposals
# ----------------------------
@_guarded("Loading disposals")
def fetch_disposals(start: Optional[str] = None, end: Optional[str] = None,
                    limit: Optional[int] = None, offset: int = 0) -> List[EndmillDisposal]:
    return [EndmillDisposal.from_row(r) for r in db.list_disposals(start, end, limit, offset)]


@_guarded("Creating disposal")
def create_disposal(disposal: EndmillDisposal) -> int:
    disposal_id = db.insert_disposal(disposal.to_record())
    CHANGE_FEED.publish("endmill_disposals", "insert")
    return disposal_id


@_guarded("Updating disposal")
def update_disposal(disposal: EndmillDisposal) -> None:
    _require(db.update_disposal(disposal.id, disposal.to_record()), "Disposal", disposal.id)
    CHANGE_FEED.publish("endmill_disposals", "update")


@_guarded("Deleting disposal")
def delete_disposal(disposal_id: int) -> None:
    _require(db.delete_disposal(disposal_id), "Disposal", disposal_id)
    CHANGE_FEED.publish("endmill_disposals", "delete")


def store_disposal_image(source_path: str, uploads_dir: str = UPLOADS_DIR) -> str:
    """Copy an image into the uploads folder and return the stored path."""
    if not os.path.isfile(source_path):
        raise DataAccessError(f"Image not found: {source_path}")
    os.makedirs(uploads_dir, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    target = os.path.join(uploads_dir, f"disposal_{stamp}_{os.path.basename(source_path)}")
    try:
        shutil.copyfile(source_path, target)
    except OSError as exc:
        raise DataAccessError(f"Uploading image failed: {exc}") from exc
    return target
