# toolcrib/db.py
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import DB_PATH


@contextmanager
def connect():
    conn = sqlite3.connect(DB_PATH)
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("PRAGMA journal_mode = WAL;")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db() -> None:
    schema = """
    CREATE TABLE IF NOT EXISTS meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS audit_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        username TEXT NOT NULL DEFAULT '',
        action TEXT NOT NULL DEFAULT ''
    );

    CREATE TABLE IF NOT EXISTS endmill_types (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        code TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT '',
        specifications TEXT NOT NULL DEFAULT '',
        diameter REAL NOT NULL DEFAULT 0.0,
        flutes INTEGER NOT NULL DEFAULT 0,
        coating TEXT NOT NULL DEFAULT '',
        material TEXT NOT NULL DEFAULT '',
        tolerance TEXT NOT NULL DEFAULT '',
        helix TEXT NOT NULL DEFAULT '',
        standard_life INTEGER NOT NULL DEFAULT 0,
        min_stock INTEGER NOT NULL DEFAULT 0,
        max_stock INTEGER NOT NULL DEFAULT 0,
        recommended_stock INTEGER NOT NULL DEFAULT 0,
        quality_grade TEXT NOT NULL DEFAULT '',
        description TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );

    CREATE TABLE IF NOT EXISTS supplier_prices (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        endmill_type_id INTEGER NOT NULL,
        supplier TEXT NOT NULL,
        unit_price REAL NOT NULL DEFAULT 0.0,
        UNIQUE(endmill_type_id, supplier),
        FOREIGN KEY(endmill_type_id) REFERENCES endmill_types(id) ON DELETE CASCADE
    );

    CREATE TABLE IF NOT EXISTS cam_sheets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        model TEXT NOT NULL,
        process TEXT NOT NULL,
        cam_version TEXT NOT NULL,
        version_date TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT NOT NULL DEFAULT (datetime('now')),
        UNIQUE(model, process, cam_version)
    );

    CREATE TABLE IF NOT EXISTS cam_sheet_endmills (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        cam_sheet_id INTEGER NOT NULL,
        t_number INTEGER NOT NULL,
        endmill_code TEXT NOT NULL DEFAULT '',
        endmill_name TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT '',
        specifications TEXT NOT NULL DEFAULT '',
        tool_life INTEGER NOT NULL DEFAULT 0,
        UNIQUE(cam_sheet_id, t_number),
        FOREIGN KEY(cam_sheet_id) REFERENCES cam_sheets(id) ON DELETE CASCADE
    );

    CREATE TABLE IF NOT EXISTS equipment (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        equipment_number TEXT NOT NULL UNIQUE,
        location TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT '',
        current_model TEXT NOT NULL DEFAULT '',
        process TEXT NOT NULL DEFAULT '',
        tool_position_count INTEGER NOT NULL DEFAULT 21,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT NOT NULL DEFAULT (datetime('now'))
    );

    CREATE TABLE IF NOT EXISTS inventory (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        endmill_type_id INTEGER NOT NULL UNIQUE,
        current_stock INTEGER NOT NULL DEFAULT 0,
        min_stock INTEGER NOT NULL DEFAULT 0,
        max_stock INTEGER NOT NULL DEFAULT 0,
        location TEXT NOT NULL DEFAULT '',
        updated_at TEXT NOT NULL DEFAULT (datetime('now')),
        FOREIGN KEY(endmill_type_id) REFERENCES endmill_types(id) ON DELETE CASCADE
    );

    CREATE TABLE IF NOT EXISTS inventory_transactions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        inventory_id INTEGER NOT NULL,
        transaction_type TEXT NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 0,
        equipment_number TEXT NOT NULL DEFAULT '',
        t_number INTEGER NOT NULL DEFAULT 0,
        purpose TEXT NOT NULL DEFAULT '',
        supplier TEXT NOT NULL DEFAULT '',
        unit_price REAL NOT NULL DEFAULT 0.0,
        processed_by TEXT NOT NULL DEFAULT '',
        notes TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        FOREIGN KEY(inventory_id) REFERENCES inventory(id) ON DELETE CASCADE
    );

    CREATE TABLE IF NOT EXISTS tool_changes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        equipment_number TEXT NOT NULL DEFAULT '',
        production_model TEXT NOT NULL DEFAULT '',
        process TEXT NOT NULL DEFAULT '',
        t_number INTEGER NOT NULL DEFAULT 0,
        endmill_code TEXT NOT NULL DEFAULT '',
        endmill_name TEXT NOT NULL DEFAULT '',
        tool_life INTEGER NOT NULL DEFAULT 0,
        change_reason TEXT NOT NULL DEFAULT '',
        changed_by TEXT NOT NULL DEFAULT '',
        change_date TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT (datetime('now'))
    );

    CREATE TABLE IF NOT EXISTS endmill_disposals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        disposal_date TEXT NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 0,
        weight_kg REAL NOT NULL DEFAULT 0.0,
        inspector TEXT NOT NULL DEFAULT '',
        reviewer TEXT NOT NULL DEFAULT '',
        image_url TEXT NOT NULL DEFAULT '',
        notes TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT (datetime('now'))
    );

    CREATE INDEX IF NOT EXISTS idx_tool_changes_date ON tool_changes(change_date);
    CREATE INDEX IF NOT EXISTS idx_disposals_date ON endmill_disposals(disposal_date);
    """
    with connect() as conn:
        conn.executescript(schema)
        _ensure_columns(conn, "cam_sheet_endmills", {
            "category": "TEXT NOT NULL DEFAULT ''",
        })
        _ensure_columns(conn, "inventory_transactions", {
            "processed_by": "TEXT NOT NULL DEFAULT ''",
        })


def _ensure_columns(conn: sqlite3.Connection, table: str, columns: Dict[str, str]) -> None:
    existing = {row["name"] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
    for name, col_def in columns.items():
        if name not in existing:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {col_def}")


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _update_fields(conn: sqlite3.Connection, table: str, row_id: int,
                   fields: Dict[str, Any], allowed: Iterable[str], touch: bool = True) -> int:
    updates = {k: v for k, v in fields.items() if k in set(allowed)}
    if not updates:
        return 0
    sets = ", ".join([f"{k}=?" for k in updates.keys()])
    if touch:
        sets += ", updated_at=datetime('now')"
    params = list(updates.values()) + [row_id]
    cur = conn.execute(f"UPDATE {table} SET {sets} WHERE id=?", params)
    return cur.rowcount


# ----------------------------
# Audit + meta
# ----------------------------
def log_audit(username: str, action: str) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO audit_logs(username, action) VALUES(?, ?)",
            (username or "", action or ""),
        )


def get_meta(key: str) -> Optional[str]:
    with connect() as conn:
        row = conn.execute("SELECT value FROM meta WHERE key=?", (key,)).fetchone()
        return row["value"] if row else None


def set_meta(key: str, value: str) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO meta(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value),
        )


# ----------------------------
# Endmill types (master data)
# ----------------------------
ENDMILL_TYPE_FIELDS = (
    "name", "category", "specifications", "diameter", "flutes", "coating", "material",
    "tolerance", "helix", "standard_life", "min_stock", "max_stock", "recommended_stock",
    "quality_grade", "description",
)


def _endmill_type_id(conn: sqlite3.Connection, code: str) -> Optional[int]:
    row = conn.execute("SELECT id FROM endmill_types WHERE code=?", (code,)).fetchone()
    return int(row["id"]) if row else None


def _ensure_endmill_type(conn: sqlite3.Connection, code: str, name: str = "", category: str = "") -> int:
    type_id = _endmill_type_id(conn, code)
    if type_id is not None:
        return type_id
    cur = conn.execute(
        "INSERT INTO endmill_types(code, name, category) VALUES(?,?,?)",
        (code, name or "", category or ""),
    )
    return int(cur.lastrowid)


def _upsert_endmill_type(conn: sqlite3.Connection, code: str, fields: Dict[str, Any]) -> int:
    values = {k: fields[k] for k in ENDMILL_TYPE_FIELDS if k in fields}
    cols = ["code"] + list(values.keys())
    placeholders = ", ".join(["?"] * len(cols))
    updates = ", ".join([f"{k}=excluded.{k}" for k in values.keys()] + ["updated_at=datetime('now')"])
    conn.execute(
        f"""
        INSERT INTO endmill_types({", ".join(cols)}) VALUES({placeholders})
        ON CONFLICT(code) DO UPDATE SET {updates}
        """,
        [code] + list(values.values()),
    )
    return _endmill_type_id(conn, code)


def save_endmill_types(rows: Iterable[Tuple[str, Dict[str, Any], Iterable[Dict[str, Any]]]]) -> int:
    """Upsert each (code, fields, supplier prices) row in one transaction; returns the row count."""
    count = 0
    with connect() as conn:
        for code, fields, prices in rows:
            _upsert_endmill_type(conn, code, fields)
            _replace_supplier_prices(conn, code, prices)
            count += 1
    return count


def list_endmill_types() -> List[Dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM endmill_types ORDER BY code").fetchall()
        return [dict(r) for r in rows]


def delete_endmill_type(code: str) -> int:
    with connect() as conn:
        return conn.execute("DELETE FROM endmill_types WHERE code=?", (code,)).rowcount


def _replace_supplier_prices(conn: sqlite3.Connection, code: str, prices: Iterable[Dict[str, Any]]) -> None:
    type_id = _ensure_endmill_type(conn, code)
    conn.execute("DELETE FROM supplier_prices WHERE endmill_type_id=?", (type_id,))
    for p in prices:
        supplier = str(p.get("supplier", "") or "").strip()
        if not supplier:
            continue
        conn.execute(
            """
            INSERT INTO supplier_prices(endmill_type_id, supplier, unit_price) VALUES(?,?,?)
            ON CONFLICT(endmill_type_id, supplier) DO UPDATE SET unit_price=excluded.unit_price
            """,
            (type_id, supplier, float(p.get("unit_price", 0.0) or 0.0)),
        )


def replace_supplier_prices(code: str, prices: Iterable[Dict[str, Any]]) -> None:
    with connect() as conn:
        _replace_supplier_prices(conn, code, prices)


def list_supplier_prices(code: Optional[str] = None) -> List[Dict[str, Any]]:
    sql = """
        SELECT et.code AS endmill_code, sp.supplier, sp.unit_price
        FROM supplier_prices sp
        JOIN endmill_types et ON et.id = sp.endmill_type_id
    """
    params: List[Any] = []
    if code:
        sql += " WHERE et.code=?"
        params.append(code)
    sql += " ORDER BY et.code, sp.id"
    with connect() as conn:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]


# ----------------------------
# CAM sheets
# ----------------------------
def _insert_sheet_endmills(conn: sqlite3.Connection, sheet_id: int, endmills: Iterable[Dict[str, Any]]) -> None:
    for e in endmills:
        conn.execute(
            """
            INSERT INTO cam_sheet_endmills(
                cam_sheet_id, t_number, endmill_code, endmill_name, category, specifications, tool_life
            ) VALUES(?,?,?,?,?,?,?)
            """,
            (
                sheet_id,
                int(e.get("t_number", 0)),
                e.get("endmill_code", ""),
                e.get("endmill_name", ""),
                e.get("category", ""),
                e.get("specifications", ""),
                int(e.get("tool_life", 0)),
            ),
        )


def list_cam_sheets() -> List[Dict[str, Any]]:
    with connect() as conn:
        sheets = [dict(r) for r in conn.execute(
            "SELECT * FROM cam_sheets ORDER BY created_at DESC, id DESC"
        ).fetchall()]
        by_id = {s["id"]: s for s in sheets}
        for s in sheets:
            s["endmills"] = []
        rows = conn.execute(
            "SELECT * FROM cam_sheet_endmills ORDER BY cam_sheet_id, t_number"
        ).fetchall()
        for r in rows:
            sheet = by_id.get(r["cam_sheet_id"])
            if sheet is not None:
                sheet["endmills"].append(dict(r))
        return sheets


def _insert_cam_sheet(conn: sqlite3.Connection, sheet: Dict[str, Any], endmills: Iterable[Dict[str, Any]]) -> int:
    cur = conn.execute(
        "INSERT INTO cam_sheets(model, process, cam_version, version_date) VALUES(?,?,?,?)",
        (sheet["model"], sheet["process"], sheet["cam_version"], sheet.get("version_date", "")),
    )
    sheet_id = int(cur.lastrowid)
    _insert_sheet_endmills(conn, sheet_id, endmills)
    return sheet_id


def insert_cam_sheet(sheet: Dict[str, Any], endmills: Iterable[Dict[str, Any]]) -> int:
    with connect() as conn:
        return _insert_cam_sheet(conn, sheet, endmills)


def insert_cam_sheets(sheets: Iterable[Tuple[Dict[str, Any], Iterable[Dict[str, Any]]]]) -> List[int]:
    """Insert every (sheet, endmills) pair in one transaction; a failure leaves none of them."""
    with connect() as conn:
        return [_insert_cam_sheet(conn, sheet, endmills) for sheet, endmills in sheets]


def update_cam_sheet(sheet_id: int, sheet: Dict[str, Any],
                     endmills: Optional[Iterable[Dict[str, Any]]] = None) -> int:
    with connect() as conn:
        if not conn.execute("SELECT 1 FROM cam_sheets WHERE id=?", (sheet_id,)).fetchone():
            return 0
        changed = _update_fields(conn, "cam_sheets", sheet_id, sheet,
                                 ("model", "process", "cam_version", "version_date"))
        if endmills is not None:
            conn.execute("DELETE FROM cam_sheet_endmills WHERE cam_sheet_id=?", (sheet_id,))
            _insert_sheet_endmills(conn, sheet_id, endmills)
            if not changed:
                changed = conn.execute(
                    "UPDATE cam_sheets SET updated_at=datetime('now') WHERE id=?", (sheet_id,)
                ).rowcount
        return changed


def delete_cam_sheet(sheet_id: int) -> int:
    with connect() as conn:
        return conn.execute("DELETE FROM cam_sheets WHERE id=?", (sheet_id,)).rowcount


# ----------------------------
# Equipment
# ----------------------------
EQUIPMENT_FIELDS = ("equipment_number", "location", "status", "current_model", "process", "tool_position_count")


def list_equipment() -> List[Dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM equipment ORDER BY equipment_number").fetchall()
        return [dict(r) for r in rows]


def insert_equipment(rows: Iterable[Dict[str, Any]]) -> List[int]:
    ids = []
    with connect() as conn:
        for e in rows:
            cur = conn.execute(
                """
                INSERT INTO equipment(equipment_number, location, status, current_model, process, tool_position_count)
                VALUES(?,?,?,?,?,?)
                """,
                tuple(e.get(k) for k in EQUIPMENT_FIELDS),
            )
            ids.append(int(cur.lastrowid))
    return ids


def update_equipment(equipment_id: int, fields: Dict[str, Any]) -> int:
    with connect() as conn:
        return _update_fields(conn, "equipment", equipment_id, fields, EQUIPMENT_FIELDS)


def delete_equipment(equipment_id: int) -> int:
    with connect() as conn:
        return conn.execute("DELETE FROM equipment WHERE id=?", (equipment_id,)).rowcount


# ----------------------------
# Inventory
# ----------------------------
_INVENTORY_SELECT = """
    SELECT i.id, i.endmill_type_id, et.code AS endmill_code, et.name AS endmill_name,
           et.category, i.current_stock, i.min_stock, i.max_stock, i.location, i.updated_at
    FROM inventory i
    JOIN endmill_types et ON et.id = i.endmill_type_id
"""


def list_inventory() -> List[Dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute(_INVENTORY_SELECT + " ORDER BY et.code").fetchall()
        return [dict(r) for r in rows]


def get_inventory_by_code(code: str) -> Optional[Dict[str, Any]]:
    with connect() as conn:
        row = conn.execute(_INVENTORY_SELECT + " WHERE et.code=?", (code,)).fetchone()
        return dict(row) if row else None


def upsert_inventory(rows: Iterable[Dict[str, Any]]) -> List[int]:
    """Insert or update inventory rows keyed by endmill code."""
    ids = []
    with connect() as conn:
        for r in rows:
            type_id = _ensure_endmill_type(conn, r["endmill_code"], r.get("endmill_name", ""), r.get("category", ""))
            if r.get("endmill_name") or r.get("category"):
                conn.execute(
                    """
                    UPDATE endmill_types SET
                      name=CASE WHEN ?<>'' THEN ? ELSE name END,
                      category=CASE WHEN ?<>'' THEN ? ELSE category END,
                      updated_at=datetime('now')
                    WHERE id=?
                    """,
                    (r.get("endmill_name", ""), r.get("endmill_name", ""),
                     r.get("category", ""), r.get("category", ""), type_id),
                )
            conn.execute(
                """
                INSERT INTO inventory(endmill_type_id, current_stock, min_stock, max_stock, location)
                VALUES(?,?,?,?,?)
                ON CONFLICT(endmill_type_id) DO UPDATE SET
                  current_stock=excluded.current_stock,
                  min_stock=excluded.min_stock,
                  max_stock=excluded.max_stock,
                  location=excluded.location,
                  updated_at=datetime('now')
                """,
                (type_id, int(r.get("current_stock", 0)), int(r.get("min_stock", 0)),
                 int(r.get("max_stock", 0)), r.get("location", "")),
            )
            row = conn.execute("SELECT id FROM inventory WHERE endmill_type_id=?", (type_id,)).fetchone()
            ids.append(int(row["id"]))
    return ids


def update_inventory(inventory_id: int, fields: Dict[str, Any]) -> int:
    with connect() as conn:
        return _update_fields(conn, "inventory", inventory_id, fields,
                              ("current_stock", "min_stock", "max_stock", "location"))


def delete_inventory(inventory_id: int) -> int:
    with connect() as conn:
        return conn.execute("DELETE FROM inventory WHERE id=?", (inventory_id,)).rowcount


def apply_stock_movement(code: str, delta: int, txn: Dict[str, Any]) -> Optional[int]:
    """
    Adjust stock for one endmill code and log the transaction in the same
    connection. Returns the new stock, or None when the row is missing or the
    movement would take stock below zero.
    """
    with connect() as conn:
        row = conn.execute(
            "SELECT i.id, i.current_stock FROM inventory i JOIN endmill_types et ON et.id = i.endmill_type_id "
            "WHERE et.code=?",
            (code,),
        ).fetchone()
        if not row:
            return None
        new_stock = int(row["current_stock"]) + int(delta)
        if new_stock < 0:
            return None
        conn.execute(
            "UPDATE inventory SET current_stock=?, updated_at=datetime('now') WHERE id=?",
            (new_stock, row["id"]),
        )
        conn.execute(
            """
            INSERT INTO inventory_transactions(
                inventory_id, transaction_type, quantity, equipment_number, t_number,
                purpose, supplier, unit_price, processed_by, notes, created_at
            ) VALUES(?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                row["id"],
                txn.get("transaction_type", ""),
                abs(int(delta)),
                txn.get("equipment_number", ""),
                int(txn.get("t_number", 0) or 0),
                txn.get("purpose", ""),
                txn.get("supplier", ""),
                float(txn.get("unit_price", 0.0) or 0.0),
                txn.get("processed_by", ""),
                txn.get("notes", ""),
                txn.get("created_at") or _now(),
            ),
        )
        return new_stock


def list_transactions(code: Optional[str] = None, transaction_type: Optional[str] = None,
                      limit: int = 500) -> List[Dict[str, Any]]:
    sql = """
        SELECT t.*, et.code AS endmill_code, et.name AS endmill_name
        FROM inventory_transactions t
        JOIN inventory i ON i.id = t.inventory_id
        JOIN endmill_types et ON et.id = i.endmill_type_id
        WHERE 1=1
    """
    params: List[Any] = []
    if code:
        sql += " AND et.code=?"
        params.append(code)
    if transaction_type:
        sql += " AND t.transaction_type=?"
        params.append(transaction_type)
    sql += " ORDER BY t.created_at DESC, t.id DESC LIMIT ?"
    params.append(limit)
    with connect() as conn:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]


# ----------------------------
# Tool changes
# ----------------------------
TOOL_CHANGE_FIELDS = (
    "equipment_number", "production_model", "process", "t_number", "endmill_code",
    "endmill_name", "tool_life", "change_reason", "changed_by", "change_date",
)


def _date_window(column: str, start: Optional[str], end: Optional[str]) -> tuple[str, List[Any]]:
    clauses = []
    params: List[Any] = []
    if start:
        clauses.append(f"substr({column},1,10) >= ?")
        params.append(start[:10])
    if end:
        clauses.append(f"substr({column},1,10) <= ?")
        params.append(end[:10])
    return (" AND " + " AND ".join(clauses)) if clauses else "", params


def list_tool_changes(start: Optional[str] = None, end: Optional[str] = None,
                      equipment_number: Optional[str] = None,
                      limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
    where, params = _date_window("change_date", start, end)
    if equipment_number:
        where += " AND equipment_number=?"
        params.append(equipment_number)
    sql = f"SELECT * FROM tool_changes WHERE 1=1{where} ORDER BY change_date DESC, id DESC"
    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params += [int(limit), int(offset)]
    with connect() as conn:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]


def count_tool_changes(start: Optional[str] = None, end: Optional[str] = None) -> int:
    where, params = _date_window("change_date", start, end)
    with connect() as conn:
        row = conn.execute(f"SELECT COUNT(*) AS n FROM tool_changes WHERE 1=1{where}", params).fetchone()
        return int(row["n"])


def insert_tool_changes(rows: Iterable[Dict[str, Any]]) -> List[int]:
    ids = []
    cols = ", ".join(TOOL_CHANGE_FIELDS)
    placeholders = ", ".join(["?"] * len(TOOL_CHANGE_FIELDS))
    with connect() as conn:
        for r in rows:
            values = [r.get(k) for k in TOOL_CHANGE_FIELDS]
            cur = conn.execute(f"INSERT INTO tool_changes({cols}) VALUES({placeholders})", values)
            ids.append(int(cur.lastrowid))
    return ids


def update_tool_change(change_id: int, fields: Dict[str, Any]) -> int:
    with connect() as conn:
        return _update_fields(conn, "tool_changes", change_id, fields, TOOL_CHANGE_FIELDS, touch=False)


def delete_tool_change(change_id: int) -> int:
    with connect() as conn:
        return conn.execute("DELETE FROM tool_changes WHERE id=?", (change_id,)).rowcount


# ----------------------------
# Disposals
# ----------------------------
DISPOSAL_FIELDS = ("disposal_date", "quantity", "weight_kg", "inspector", "reviewer", "image_url", "notes")


def list_disposals(start: Optional[str] = None, end: Optional[str] = None,
                   limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
    where, params = _date_window("disposal_date", start, end)
    sql = f"SELECT * FROM endmill_disposals WHERE 1=1{where} ORDER BY disposal_date DESC, id DESC"
    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params += [int(limit), int(offset)]
    with connect() as conn:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]


def insert_disposal(row: Dict[str, Any]) -> int:
    cols = ", ".join(DISPOSAL_FIELDS)
    placeholders = ", ".join(["?"] * len(DISPOSAL_FIELDS))
    with connect() as conn:
        cur = conn.execute(
            f"INSERT INTO endmill_disposals({cols}) VALUES({placeholders})",
            [row.get(k) for k in DISPOSAL_FIELDS],
        )
        return int(cur.lastrowid)


def update_disposal(disposal_id: int, fields: Dict[str, Any]) -> int:
    with connect() as conn:
        return _update_fields(conn, "endmill_disposals", disposal_id, fields, DISPOSAL_FIELDS, touch=False)


def delete_disposal(disposal_id: int) -> int:
    with connect() as conn:
        return conn.execute("DELETE FROM endmill_disposals WHERE id=?", (disposal_id,)).rowcount
