# toolcrib/ui_disposals.py
from __future__ import annotations

import tkinter as tk
from tkinter import filedialog, messagebox

from . import accessors
from .audit import log_audit
from .excel_io import export_disposals
from .models import EndmillDisposal
from .pages import InvalidTransition
from .storage import is_number, parse_date, safe_float, safe_int, today_iso
from .table import DATE, NUMBER
from .ui_common import ListScreen


class DisposalsUI(ListScreen):
    title = "Disposals"
    columns = (
        ("disposal_date", "Date", 110),
        ("quantity", "Qty", 70),
        ("weight_kg", "Weight (kg)", 90),
        ("inspector", "Inspector", 110),
        ("reviewer", "Reviewer", 110),
        ("image_url", "Image", 220),
        ("notes", "Notes", 200),
    )
    search_fields = ("inspector", "reviewer", "notes")
    column_kinds = {"disposal_date": DATE, "quantity": NUMBER, "weight_kg": NUMBER}
    feed_tables = ("endmill_disposals",)

    def fetch(self):
        return accessors.fetch_disposals()

    def row_values(self, d: EndmillDisposal):
        return (d.disposal_date, d.quantity, d.weight_kg, d.inspector, d.reviewer, d.image_url, d.notes)

    def describe(self, d: EndmillDisposal):
        return f"disposal of {d.disposal_date} ({d.quantity} pcs)"

    def build_toolbar(self, bar):
        super().build_toolbar(bar)
        tk.Button(bar, text="Attach Image", command=self.attach_image).pack(side="left", padx=4)
        tk.Button(bar, text="Export", command=lambda: self.export_rows(
            lambda p: export_disposals(p, self.page.arranged()), "disposals")).pack(side="left", padx=4)

    def update_summary(self):
        rows = self.page.rows
        qty = sum(d.quantity for d in rows)
        weight = sum(d.weight_kg for d in rows)
        self.summary.config(text=f"{len(rows)} disposals | {qty} pcs | {weight:.2f} kg")

    # -------------------------
    FIELDS = [
        ("disposal_date", "Date (YYYY-MM-DD)", None),
        ("quantity", "Quantity", None),
        ("weight_kg", "Weight (kg)", None),
        ("inspector", "Inspector", None),
        ("reviewer", "Reviewer", None),
        ("notes", "Notes", None),
    ]

    def _build(self, values, own: EndmillDisposal = None) -> EndmillDisposal:
        if parse_date(values["disposal_date"]) is None:
            raise ValueError("Disposal date is not a valid date")
        if not is_number(values["quantity"]) or safe_int(values["quantity"], 0) <= 0:
            raise ValueError("Quantity must be a positive number")
        if values["weight_kg"] and (not is_number(values["weight_kg"]) or safe_float(values["weight_kg"], 0.0) < 0):
            raise ValueError("Weight must be 0 or more")
        if not values["inspector"]:
            raise ValueError("Inspector is required")
        return EndmillDisposal.from_row({
            **values,
            "id": own.id if own else 0,
            "image_url": own.image_url if own else "",
        })

    def open_editor(self, disposal=None):
        if disposal is None:
            values = {"disposal_date": today_iso(), "inspector": self.controller.user}
            self.dialog("Add Disposal", self.FIELDS, values, self._save_new)
        else:
            self.dialog("Edit Disposal", self.FIELDS, disposal.to_record(),
                        lambda v: self._save_existing(disposal, v))

    def _save_new(self, values):
        return self.save_from_dialog(lambda: accessors.create_disposal(self._build(values)),
                                     "Disposal recorded.", f"Recorded disposal {values['disposal_date']}")

    def _save_existing(self, disposal: EndmillDisposal, values):
        return self.save_from_dialog(lambda: accessors.update_disposal(self._build(values, disposal)),
                                     "Disposal updated.", f"Updated disposal {disposal.id}")

    def delete_record(self, disposal: EndmillDisposal):
        accessors.delete_disposal(disposal.id)

    def attach_image(self):
        disposal = self.selected_record()
        if disposal is None:
            messagebox.showinfo("Image", "Select a disposal first.")
            return
        path = filedialog.askopenfilename(
            title="Select Image",
            filetypes=[("Images", "*.png *.jpg *.jpeg *.gif *.bmp"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            self.page.start_edit(self.record_id(disposal))
        except InvalidTransition:
            return

        def action():
            disposal.image_url = accessors.store_disposal_image(path)
            accessors.update_disposal(disposal)

        if self.page.run_mutation(action, "Image attached."):
            log_audit(self.controller.user, f"Attached image to disposal {disposal.id}")
        self.render()
