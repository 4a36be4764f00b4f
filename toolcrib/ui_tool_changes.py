# toolcrib/ui_tool_changes.py
from __future__ import annotations

import logging
import tkinter as tk
from tkinter import ttk
from datetime import datetime, timedelta

from . import accessors
from .accessors import DataAccessError
from .excel_io import EQUIPMENT_NUMBER_RE, export_tool_changes, import_tool_changes, tool_change_template
from .insights import tool_change_summary
from .models import ToolChange
from .storage import is_number, safe_int
from .table import DATE, NUMBER
from .ui_common import ListScreen, notify

logger = logging.getLogger(__name__)

WINDOWS = {"Last 7 Days": 7, "Last 30 Days": 30, "Last 90 Days": 90, "All": None}


class ToolChangesUI(ListScreen):
    """
    Tool change log. Picking an equipment number fills model and process
    from the equipment list; entering a T number then fills the endmill
    from the matching CAM sheet.
    """

    title = "Tool Changes"
    columns = (
        ("change_date", "Date", 140),
        ("equipment_number", "Equipment", 90),
        ("production_model", "Model", 100),
        ("process", "Process", 80),
        ("t_number", "T#", 50),
        ("endmill_code", "Code", 90),
        ("endmill_name", "Name", 160),
        ("tool_life", "Tool Life", 80),
        ("change_reason", "Reason", 90),
        ("changed_by", "By", 90),
    )
    search_fields = ("equipment_number", "endmill_code", "endmill_name", "changed_by")
    column_kinds = {"change_date": DATE, "t_number": NUMBER, "tool_life": NUMBER}
    feed_tables = ("tool_changes",)

    def build_toolbar(self, bar):
        tk.Label(bar, text="Window:").pack(side="left")
        self.window_box = ttk.Combobox(bar, state="readonly", width=12, values=list(WINDOWS))
        self.window_box.set("Last 30 Days")
        self.window_box.pack(side="left", padx=(4, 10))
        self.window_box.bind("<<ComboboxSelected>>", lambda e: self.refresh())
        super().build_toolbar(bar)
        tk.Button(bar, text="Template", command=lambda: self.save_template(
            lambda p: tool_change_template(p, self.settings), "tool_changes")).pack(side="left", padx=4)
        tk.Button(bar, text="Import", command=self.import_excel).pack(side="left", padx=4)
        tk.Button(bar, text="Export", command=lambda: self.export_rows(
            lambda p: export_tool_changes(p, self.page.arranged()), "tool_changes")).pack(side="left", padx=4)

    def fetch(self):
        days = WINDOWS.get(self.window_box.get())
        start = None
        if days:
            start = (datetime.now().date() - timedelta(days=days - 1)).isoformat()
        return accessors.fetch_tool_changes(start=start)

    def filter_options(self):
        return [
            ("production_model", "Model", self.settings.models),
            ("process", "Process", self.settings.processes),
            ("change_reason", "Reason", self.settings.change_reasons),
        ]

    def row_values(self, c: ToolChange):
        return (c.change_date, c.equipment_number, c.production_model, c.process, c.t_number,
                c.endmill_code, c.endmill_name, c.tool_life, c.change_reason, c.changed_by)

    def describe(self, c: ToolChange):
        return f"{c.equipment_number} T{c.t_number} ({c.change_date})"

    def update_summary(self):
        s = tool_change_summary(self.page.rows)
        self.summary.config(text=f"Today: {s.today} | Yesterday: {s.yesterday} | Trend: {s.trend}")

    # -------------------------
    def _load_lookups(self):
        try:
            self._equipment = {e.equipment_number: e for e in accessors.fetch_equipment()}
            self._cam_sheets = accessors.fetch_cam_sheets()
        except DataAccessError as exc:
            logger.warning("Auto-fill data unavailable: %s", exc)
            self._equipment, self._cam_sheets = {}, []

    def _fields(self):
        s = self.settings
        return [
            ("equipment_number", "Equipment", sorted(self._equipment) or None),
            ("production_model", "Model", s.models),
            ("process", "Process", s.processes),
            ("t_number", "T Number", None),
            ("endmill_code", "Endmill Code", None),
            ("endmill_name", "Endmill Name", None),
            ("tool_life", "Actual Tool Life", None),
            ("change_reason", "Reason", s.change_reasons),
            ("changed_by", "Changed By", None),
        ]

    def _autofill(self, name, vars):
        if name == "equipment_number":
            eq = self._equipment.get(vars["equipment_number"].get())
            if eq is not None:
                vars["production_model"].set(eq.current_model)
                vars["process"].set(eq.process)
        if name in ("equipment_number", "production_model", "process", "t_number"):
            t_text = vars["t_number"].get().strip()
            if not is_number(t_text):
                return
            endmill = accessors.find_cam_endmill(self._cam_sheets, vars["production_model"].get(),
                                                 vars["process"].get(), safe_int(t_text, 0))
            if endmill is not None:
                vars["endmill_code"].set(endmill.endmill_code)
                vars["endmill_name"].set(endmill.endmill_name)

    def _build(self, values, own_id=0, change_date="") -> ToolChange:
        if not EQUIPMENT_NUMBER_RE.match(values["equipment_number"]):
            raise ValueError("Equipment number must look like C001")
        t_min, t_max = self.settings.t_number_range
        if not is_number(values["t_number"]) or not t_min <= safe_int(values["t_number"], 0) <= t_max:
            raise ValueError(f"T number must be between {t_min} and {t_max}")
        if not values["endmill_code"]:
            raise ValueError("Endmill code is required")
        if not is_number(values["tool_life"]) or safe_int(values["tool_life"], 0) < 0:
            raise ValueError("Tool life must be 0 or more")
        return ToolChange.from_row({**values, "id": own_id, "change_date": change_date})

    def open_editor(self, change=None):
        self._load_lookups()
        if change is None:
            values = {"change_reason": self.settings.default_reason, "changed_by": self.controller.user}
            self.dialog("Add Tool Change", self._fields(), values, self._save_new, on_change=self._autofill)
        else:
            self.dialog("Edit Tool Change", self._fields(), change.to_record(),
                        lambda v: self._save_existing(change, v), on_change=self._autofill)

    def _save_new(self, values):
        return self.save_from_dialog(lambda: accessors.create_tool_change(self._build(values)),
                                     "Tool change recorded.",
                                     f"Recorded tool change {values['equipment_number']} T{values['t_number']}")

    def _save_existing(self, change: ToolChange, values):
        return self.save_from_dialog(
            lambda: accessors.update_tool_change(self._build(values, change.id, change.change_date)),
            "Tool change updated.", f"Updated tool change {change.id}")

    def delete_record(self, change: ToolChange):
        accessors.delete_tool_change(change.id)

    def import_excel(self):
        try:
            cam_sheets = accessors.fetch_cam_sheets()
            numbers = [e.equipment_number for e in accessors.fetch_equipment()]
        except DataAccessError as exc:
            notify("error", f"Cannot check the import against CAM sheets and equipment.\n{exc}")
            return
        self.import_rows(lambda p: import_tool_changes(p, self.settings, cam_sheets, numbers),
                         lambda report: accessors.bulk_create_tool_changes(report.rows), "tool change")
