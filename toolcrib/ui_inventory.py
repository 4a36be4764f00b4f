# toolcrib/ui_inventory.py
from __future__ import annotations

import logging
import tkinter as tk
from tkinter import ttk, messagebox

from . import accessors
from .accessors import DataAccessError
from .excel_io import export_inventory, import_inventory, inventory_template
from .insights import inventory_summary
from .models import InventoryRecord
from .pages import InvalidTransition
from .stock import CRITICAL, LOW, STOCK_STATUS_LABELS, STOCK_STATUSES
from .storage import is_number, safe_float, safe_int
from .table import NUMBER
from .ui_common import ListScreen

logger = logging.getLogger(__name__)


def _quantity(text: str) -> int:
    if not is_number(text) or safe_int(text, 0) <= 0:
        raise ValueError("Quantity must be a positive number")
    return safe_int(text, 0)


class TransactionsDialog(tk.Toplevel):
    COLS = (("created_at", "When", 150), ("transaction_type", "Type", 80), ("quantity", "Qty", 60),
            ("equipment_number", "Equipment", 90), ("t_number", "T#", 50), ("supplier", "Supplier", 100),
            ("unit_price", "Unit Price", 90), ("processed_by", "By", 90), ("notes", "Notes", 160))

    def __init__(self, parent, code: str):
        super().__init__(parent)
        self.title(f"Stock History - {code}")
        self.geometry("980x420")

        tree = ttk.Treeview(self, columns=[c[0] for c in self.COLS], show="headings", height=16)
        for name, label, width in self.COLS:
            tree.heading(name, text=label)
            tree.column(name, width=width)
        tree.pack(fill="both", expand=True, padx=10, pady=10)

        try:
            rows = accessors.fetch_transactions(code)
        except DataAccessError as exc:
            messagebox.showerror("Error", str(exc), parent=self)
            rows = []
        for t in rows:
            tree.insert("", "end", values=[getattr(t, c[0]) for c in self.COLS])

        tk.Button(self, text="Close", command=self.destroy).pack(pady=(0, 10))


class InventoryUI(ListScreen):
    title = "Inventory"
    columns = (
        ("endmill_code", "Code", 100),
        ("endmill_name", "Name", 200),
        ("category", "Category", 90),
        ("current_stock", "Current", 80),
        ("min_stock", "Min", 70),
        ("max_stock", "Max", 70),
        ("fill_percent", "Fill %", 70),
        ("location", "Location", 90),
        ("status", "Status", 80),
    )
    search_fields = ("endmill_code", "endmill_name", "location")
    column_kinds = {"current_stock": NUMBER, "min_stock": NUMBER, "max_stock": NUMBER, "fill_percent": NUMBER}
    feed_tables = ("inventory", "endmill_types")

    def fetch(self):
        return accessors.fetch_inventory()

    def filter_options(self):
        return [("category", "Category", self.settings.categories), ("status", "Status", STOCK_STATUSES)]

    def row_values(self, r: InventoryRecord):
        return (r.endmill_code, r.endmill_name, r.category, r.current_stock, r.min_stock, r.max_stock,
                f"{r.fill_percent}%", r.location, STOCK_STATUS_LABELS[r.status])

    def row_tag(self, r: InventoryRecord):
        return r.status if r.status in (CRITICAL, LOW) else None

    def describe(self, r: InventoryRecord):
        return r.endmill_code

    def build_toolbar(self, bar):
        super().build_toolbar(bar)
        tk.Button(bar, text="Inbound", command=self.inbound).pack(side="left", padx=4)
        tk.Button(bar, text="Outbound", command=self.outbound).pack(side="left", padx=4)
        tk.Button(bar, text="History", command=self.history).pack(side="left", padx=4)
        tk.Button(bar, text="Template", command=lambda: self.save_template(
            lambda p: inventory_template(p, self.settings), "inventory")).pack(side="left", padx=4)
        tk.Button(bar, text="Import", command=self.import_excel).pack(side="left", padx=4)
        tk.Button(bar, text="Export", command=self.export_excel).pack(side="left", padx=4)

    def update_summary(self):
        s = inventory_summary(self.page.rows)
        parts = " | ".join(f"{STOCK_STATUS_LABELS[k]}: {s.by_status.get(k, 0)}" for k in STOCK_STATUSES)
        self.summary.config(text=f"{s.total} items | {parts}")

    # -------------------------
    def _fields(self):
        return [
            ("endmill_code", "Endmill Code", None),
            ("endmill_name", "Endmill Name", None),
            ("category", "Category", self.settings.categories),
            ("current_stock", "Current Stock", None),
            ("min_stock", "Min Stock", None),
            ("max_stock", "Max Stock", None),
            ("location", "Location", None),
        ]

    def _build(self, values, own_id=0) -> InventoryRecord:
        code = values["endmill_code"]
        if not code:
            raise ValueError("Endmill code is required")
        if any(r.endmill_code == code and r.id != own_id for r in self.page.rows):
            raise ValueError(f"Inventory for {code} already exists")
        for name in ("current_stock", "min_stock", "max_stock"):
            if not is_number(values[name]) or safe_int(values[name], 0) < 0:
                raise ValueError(f"{name.replace('_', ' ').title()} must be 0 or more")
        return InventoryRecord.from_row({**values, "id": own_id})

    def open_editor(self, record=None):
        if record is None:
            defaults = self.settings.default_stock
            values = {"category": self.settings.categories[0], "current_stock": 0,
                      "min_stock": defaults["min_stock"], "max_stock": defaults["max_stock"]}
            self.dialog("Add Inventory", self._fields(), values, self._save_new)
        else:
            self.dialog("Edit Inventory", self._fields(), record.to_record(),
                        lambda v: self._save_existing(record, v),
                        readonly=("endmill_code", "endmill_name", "category"))

    def _save_new(self, values):
        return self.save_from_dialog(lambda: accessors.create_inventory(self._build(values)),
                                     "Inventory added.", f"Added inventory {values['endmill_code']}")

    def _save_existing(self, record: InventoryRecord, values):
        values.update(endmill_code=record.endmill_code, endmill_name=record.endmill_name, category=record.category)
        return self.save_from_dialog(lambda: accessors.update_inventory(self._build(values, record.id)),
                                     "Inventory updated.", f"Updated inventory {record.endmill_code}")

    def delete_record(self, record: InventoryRecord):
        accessors.delete_inventory(record.id)

    # -------------------------
    def _begin_movement(self):
        record = self.selected_record()
        if record is None:
            messagebox.showinfo("Stock", "Select an inventory row first.")
            return None
        try:
            self.page.start_edit(self.record_id(record))
        except InvalidTransition:
            return None
        return record

    def inbound(self):
        record = self._begin_movement()
        if record is None:
            return
        fields = [
            ("quantity", "Quantity", None),
            ("supplier", "Supplier", self.settings.suppliers),
            ("unit_price", "Unit Price (VND)", None),
            ("notes", "Notes", None),
        ]
        self.dialog(f"Inbound - {record.endmill_code}", fields,
                    {"supplier": self.settings.suppliers[0], "unit_price": 0},
                    lambda v: self._save_inbound(record, v))

    def _save_inbound(self, record: InventoryRecord, values):
        def action():
            accessors.record_inbound(record.endmill_code, _quantity(values["quantity"]), values["supplier"],
                                     safe_float(values["unit_price"], 0.0), self.controller.user, values["notes"])

        return self.save_from_dialog(action, "Inbound recorded.",
                                     f"Inbound {values['quantity']} x {record.endmill_code}")

    def outbound(self):
        record = self._begin_movement()
        if record is None:
            return
        try:
            equipment = [e.equipment_number for e in accessors.fetch_equipment()]
        except DataAccessError as exc:
            logger.warning("Equipment list unavailable: %s", exc)
            equipment = []
        fields = [
            ("quantity", "Quantity", None),
            ("equipment_number", "Equipment", equipment or None),
            ("t_number", "T Number", None),
            ("purpose", "Purpose", self.settings.change_reasons),
            ("notes", "Notes", None),
        ]
        self.dialog(f"Outbound - {record.endmill_code} (stock {record.current_stock})", fields,
                    {"purpose": self.settings.default_reason}, lambda v: self._save_outbound(record, v))

    def _save_outbound(self, record: InventoryRecord, values):
        def action():
            accessors.record_outbound(record.endmill_code, _quantity(values["quantity"]),
                                      values["equipment_number"], safe_int(values["t_number"], 0),
                                      values["purpose"], self.controller.user, values["notes"])

        return self.save_from_dialog(action, "Outbound recorded.",
                                     f"Outbound {values['quantity']} x {record.endmill_code}")

    def history(self):
        record = self.selected_record()
        if record is None:
            messagebox.showinfo("History", "Select an inventory row first.")
            return
        TransactionsDialog(self, record.endmill_code)

    # -------------------------
    def export_excel(self):
        def write(path):
            return export_inventory(path, self.page.arranged(), accessors.supplier_prices_by_code())

        self.export_rows(write, "inventory")

    def import_excel(self):
        def write(report):
            accessors.bulk_upsert_inventory([r.record for r in report.rows])
            for r in report.rows:
                if r.suppliers:
                    accessors.save_supplier_prices(r.record.endmill_code, r.suppliers)

        self.import_rows(lambda p: import_inventory(p, self.settings), write, "inventory")
