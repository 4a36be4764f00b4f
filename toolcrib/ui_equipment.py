# toolcrib/ui_equipment.py
from __future__ import annotations

import tkinter as tk

from . import accessors
from .excel_io import EQUIPMENT_NUMBER_RE, equipment_template, export_equipment, import_equipment
from .insights import equipment_stats
from .models import Equipment
from .table import NUMBER
from .ui_common import ListScreen


class EquipmentUI(ListScreen):
    title = "Equipment"
    columns = (
        ("equipment_number", "Equipment #", 110),
        ("location", "Location", 110),
        ("status", "Status", 90),
        ("current_model", "Model", 120),
        ("process", "Process", 90),
        ("tool_position_count", "Tool Positions", 110),
    )
    search_fields = ("equipment_number", "current_model", "process")
    column_kinds = {"tool_position_count": NUMBER}
    feed_tables = ("equipment",)

    def fetch(self):
        return accessors.fetch_equipment()

    def filter_options(self):
        s = self.settings
        return [
            ("status", "Status", s.equipment_statuses),
            ("location", "Location", s.locations),
            ("current_model", "Model", s.models),
            ("process", "Process", s.processes),
        ]

    def row_values(self, e: Equipment):
        return (e.equipment_number, e.location, e.status, e.current_model, e.process, e.tool_position_count)

    def describe(self, e: Equipment):
        return e.equipment_number

    def build_toolbar(self, bar):
        super().build_toolbar(bar)
        tk.Button(bar, text="Template", command=lambda: self.save_template(
            lambda p: equipment_template(p, self.settings), "equipment")).pack(side="left", padx=4)
        tk.Button(bar, text="Import", command=self.import_excel).pack(side="left", padx=4)
        tk.Button(bar, text="Export", command=lambda: self.export_rows(
            lambda p: export_equipment(p, self.page.arranged()), "equipment")).pack(side="left", padx=4)

    def update_summary(self):
        stats = equipment_stats(self.page.rows)
        parts = " | ".join(f"{s}: {n}" for s, n in stats.by_status.items())
        self.summary.config(text=f"{stats.total} units | {parts} | Operating rate {stats.operating_rate}%")

    # -------------------------
    def _fields(self):
        s = self.settings
        return [
            ("equipment_number", "Equipment # (C001)", None),
            ("location", "Location", s.locations),
            ("status", "Status", s.equipment_statuses),
            ("current_model", "Model", s.models),
            ("process", "Process", s.processes),
            ("tool_position_count", "Tool Positions", None),
        ]

    def _build(self, values, own_id=0) -> Equipment:
        number = values["equipment_number"].upper()
        if not EQUIPMENT_NUMBER_RE.match(number):
            raise ValueError("Equipment number must look like C001")
        if any(e.equipment_number == number and e.id != own_id for e in self.page.rows):
            raise ValueError(f"Equipment {number} already exists")
        return Equipment.from_row({**values, "equipment_number": number, "id": own_id})

    def open_editor(self, equipment=None):
        s = self.settings
        if equipment is None:
            values = {
                "location": s.locations[0],
                "status": s.equipment_statuses[0],
                "current_model": s.models[0],
                "process": s.processes[0],
                "tool_position_count": s.tool_position_count,
            }
            self.dialog("Add Equipment", self._fields(), values, self._save_new)
        else:
            values = equipment.to_record()
            self.dialog("Edit Equipment", self._fields(), values,
                        lambda v: self._save_existing(equipment, v), readonly=("equipment_number",))

    def _save_new(self, values):
        return self.save_from_dialog(lambda: accessors.create_equipment(self._build(values)),
                                     "Equipment added.", f"Added equipment {values['equipment_number']}")

    def _save_existing(self, equipment: Equipment, values):
        values["equipment_number"] = equipment.equipment_number
        return self.save_from_dialog(lambda: accessors.update_equipment(self._build(values, equipment.id)),
                                     "Equipment updated.", f"Updated equipment {equipment.equipment_number}")

    def delete_record(self, equipment: Equipment):
        accessors.delete_equipment(equipment.id)

    def import_excel(self):
        existing = [e.equipment_number for e in self.page.rows]
        self.import_rows(lambda p: import_equipment(p, self.settings, existing),
                         lambda report: accessors.bulk_create_equipment(report.rows), "equipment")
