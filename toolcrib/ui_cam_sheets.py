# toolcrib/ui_cam_sheets.py
from __future__ import annotations

import tkinter as tk
from tkinter import ttk, messagebox

from . import accessors
from .excel_io import cam_sheet_template, export_cam_sheets, import_cam_sheets
from .models import CAMSheet, EndmillInfo
from .storage import is_number, safe_int, today_iso
from .table import DATE, NUMBER
from .pages import InvalidTransition
from .ui_common import ListScreen


def parse_endmill(values, t_range, categories) -> EndmillInfo:
    """Form values -> EndmillInfo; raises ValueError with a readable message."""
    t_min, t_max = t_range
    if not is_number(values.get("t_number")):
        raise ValueError("T number must be a number")
    t_number = safe_int(values.get("t_number"), 0)
    if not t_min <= t_number <= t_max:
        raise ValueError(f"T number must be between {t_min} and {t_max}")
    code = (values.get("endmill_code") or "").strip()
    if not code:
        raise ValueError("Endmill code is required")
    life = values.get("tool_life") or ""
    if life and not is_number(life):
        raise ValueError("Tool life must be a number")
    category = (values.get("category") or "").strip()
    if category and category not in categories:
        raise ValueError(f"Unknown category: {category}")
    return EndmillInfo.from_row({**values, "t_number": t_number, "endmill_code": code})


class EndmillListDialog(tk.Toplevel):
    """Edit the T-number lines of one CAM sheet."""

    COLS = (("t_number", "T#", 50), ("endmill_code", "Code", 110), ("category", "Category", 90),
            ("endmill_name", "Name", 200), ("tool_life", "Tool Life", 90))

    def __init__(self, screen: "CamSheetsUI", sheet: CAMSheet):
        super().__init__(screen)
        self.screen = screen
        self.sheet = sheet
        self.endmills = sorted(sheet.endmills, key=lambda e: e.t_number)
        self.title(f"Endmills - {sheet.model} / {sheet.process} / {sheet.cam_version}")
        self.geometry("720x480")

        self.tree = ttk.Treeview(self, columns=[c[0] for c in self.COLS], show="headings", height=12)
        for name, label, width in self.COLS:
            self.tree.heading(name, text=label)
            self.tree.column(name, width=width)
        self.tree.pack(fill="both", expand=True, padx=10, pady=10)

        form = tk.Frame(self, padx=10)
        form.pack(fill="x")
        self.vars = {}
        settings = screen.settings
        for col, (name, label, _) in enumerate(self.COLS):
            tk.Label(form, text=label).grid(row=0, column=col, sticky="w")
            var = tk.StringVar()
            if name == "category":
                w = ttk.Combobox(form, textvariable=var, values=[""] + settings.categories, state="readonly", width=10)
            else:
                w = tk.Entry(form, textvariable=var, width=12 if name != "endmill_name" else 24)
            w.grid(row=1, column=col, padx=2)
            self.vars[name] = var
        self.vars["tool_life"].set(str(settings.default_stock["standard_life"]))

        btns = tk.Frame(self, padx=10, pady=10)
        btns.pack(fill="x")
        tk.Button(btns, text="Add / Replace T#", command=self._add).pack(side="left", padx=4)
        tk.Button(btns, text="Remove Selected", command=self._remove).pack(side="left", padx=4)
        tk.Button(btns, text="Close", command=self._close).pack(side="right", padx=4)
        tk.Button(btns, text="Save", command=self._save, bg="#28a745", fg="white").pack(side="right", padx=4)

        self.protocol("WM_DELETE_WINDOW", self._close)
        self._render()
        self.transient(screen)
        self.grab_set()

    def _render(self):
        for i in self.tree.get_children():
            self.tree.delete(i)
        for e in self.endmills:
            self.tree.insert("", "end", iid=str(e.t_number),
                             values=(e.t_number, e.endmill_code, e.category, e.endmill_name, e.tool_life))

    def _add(self):
        settings = self.screen.settings
        try:
            endmill = parse_endmill({k: v.get().strip() for k, v in self.vars.items()},
                                    settings.t_number_range, settings.categories)
        except ValueError as exc:
            messagebox.showerror("Invalid", str(exc))
            return
        self.endmills = [e for e in self.endmills if e.t_number != endmill.t_number] + [endmill]
        self.endmills.sort(key=lambda e: e.t_number)
        self._render()

    def _remove(self):
        sel = self.tree.selection()
        if not sel:
            return
        self.endmills = [e for e in self.endmills if str(e.t_number) != sel[0]]
        self._render()

    def _save(self):
        self.sheet.endmills = list(self.endmills)
        if self.screen.save_from_dialog(
            lambda: accessors.update_cam_sheet(self.sheet),
            "Endmills saved.",
            f"Updated endmills for CAM sheet {self.sheet.model}/{self.sheet.process}/{self.sheet.cam_version}",
        ):
            self.destroy()

    def _close(self):
        self.screen.page.cancel()
        self.destroy()


class CamSheetsUI(ListScreen):
    title = "CAM Sheets"
    columns = (
        ("model", "Model", 120),
        ("process", "Process", 90),
        ("cam_version", "Version", 90),
        ("version_date", "Version Date", 110),
        ("endmill_count", "Endmills", 80),
        ("updated_at", "Updated", 150),
    )
    search_fields = ("model", "process", "cam_version")
    column_kinds = {"version_date": DATE, "updated_at": DATE, "endmill_count": NUMBER}
    feed_tables = ("cam_sheets",)

    def fetch(self):
        return accessors.fetch_cam_sheets()

    def filter_options(self):
        return [("model", "Model", self.settings.models), ("process", "Process", self.settings.processes)]

    def row_values(self, s: CAMSheet):
        return (s.model, s.process, s.cam_version, s.version_date, s.endmill_count, s.updated_at)

    def describe(self, s: CAMSheet):
        return f"{s.model} / {s.process} / {s.cam_version}"

    def build_toolbar(self, bar):
        super().build_toolbar(bar)
        tk.Button(bar, text="Endmills", command=self.edit_endmills).pack(side="left", padx=4)
        tk.Button(bar, text="Template", command=lambda: self.save_template(
            lambda p: cam_sheet_template(p, self.settings), "cam_sheet")).pack(side="left", padx=4)
        tk.Button(bar, text="Import", command=self.import_excel).pack(side="left", padx=4)
        tk.Button(bar, text="Export", command=lambda: self.export_rows(
            lambda p: export_cam_sheets(p, self.page.arranged()), "cam_sheets")).pack(side="left", padx=4)

    def update_summary(self):
        sheets = self.page.rows
        endmills = accessors.all_cam_endmills(sheets)
        codes = {e.endmill_code for e in endmills if e.endmill_code}
        self.summary.config(text=f"{len(sheets)} sheets | {len(endmills)} T lines | {len(codes)} distinct endmill codes")

    # -------------------------
    def open_editor(self, sheet=None):
        fields = [
            ("model", "Model", self.settings.models),
            ("process", "Process", self.settings.processes),
            ("cam_version", "CAM Version", None),
            ("version_date", "Version Date (YYYY-MM-DD)", None),
        ]
        if sheet is None:
            values = {"model": self.settings.models[0], "process": self.settings.processes[0],
                      "cam_version": "v1.0", "version_date": today_iso()}
            self.dialog("Add CAM Sheet", fields, values, self._save_new)
        else:
            self.dialog("Edit CAM Sheet", fields, {f[0]: getattr(sheet, f[0]) for f in fields},
                        lambda v: self._save_existing(sheet, v))

    def _check_header(self, values, own_id=0):
        if not values["cam_version"]:
            raise ValueError("CAM version is required")
        key = (values["model"], values["process"], values["cam_version"])
        if any(s.key == key and s.id != own_id for s in self.page.rows):
            raise ValueError(f"CAM sheet {' / '.join(key)} already exists")

    def _save_new(self, values):
        def action():
            self._check_header(values)
            accessors.create_cam_sheet(CAMSheet.from_row({**values, "id": 0}))

        return self.save_from_dialog(action, "CAM sheet added.",
                                     f"Added CAM sheet {values['model']}/{values['process']}/{values['cam_version']}")

    def _save_existing(self, sheet: CAMSheet, values):
        def action():
            self._check_header(values, sheet.id)
            updated = CAMSheet.from_row({**values, "id": sheet.id})
            updated.endmills = sheet.endmills
            accessors.update_cam_sheet(updated)

        return self.save_from_dialog(action, "CAM sheet updated.", f"Updated CAM sheet {sheet.id}")

    def delete_record(self, sheet: CAMSheet):
        accessors.delete_cam_sheet(sheet.id)

    def edit_endmills(self):
        sheet = self.selected_record()
        if sheet is None:
            messagebox.showinfo("Endmills", "Select a CAM sheet first.")
            return
        try:
            self.page.start_edit(self.record_id(sheet))
        except InvalidTransition:
            return
        self._editing_id = self.record_id(sheet)
        EndmillListDialog(self, sheet)

    def import_excel(self):
        def write(report):
            accessors.bulk_create_cam_sheets(report.rows)

        self.import_rows(lambda p: import_cam_sheets(p, self.settings, self.page.rows), write, "CAM sheet")
