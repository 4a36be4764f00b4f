# toolcrib/ui_settings.py
from __future__ import annotations

import copy
import logging
import tkinter as tk
from tkinter import ttk, messagebox, filedialog
from typing import Any, Dict, List

from .audit import log_audit
from .settings import SettingsValidationError
from .storage import safe_int
from .ui_common import HeaderFrame

logger = logging.getLogger(__name__)

INT = "int"
LIST = "list"
TEXT = "text"

# (category, dotted key inside the category, label, kind)
EDITABLE = [
    ("system", "itemsPerPage", "Rows per page", INT),
    ("system", "sessionTimeout", "Session timeout (min)", INT),
    ("equipment", "totalCount", "Equipment count", INT),
    ("equipment", "toolPositionCount", "Tool positions per machine", INT),
    ("equipment", "models", "Models", LIST),
    ("equipment", "processes", "Processes", LIST),
    ("equipment", "locations", "Locations", LIST),
    ("inventory", "categories", "Endmill categories", LIST),
    ("inventory", "suppliers", "Suppliers", LIST),
    ("inventory", "stockThresholds.criticalPercent", "Critical stock %", INT),
    ("inventory", "stockThresholds.lowPercent", "Low stock %", INT),
    ("inventory", "defaultValues.minStock", "Default min stock", INT),
    ("inventory", "defaultValues.maxStock", "Default max stock", INT),
    ("inventory", "defaultValues.standardLife", "Default standard life", INT),
    ("toolChanges", "reasons", "Change reasons", LIST),
    ("toolChanges", "defaultReason", "Default reason", TEXT),
    ("toolChanges", "tNumberRange.min", "T number min", INT),
    ("toolChanges", "tNumberRange.max", "T number max", INT),
]


def _get(node: Dict[str, Any], dotted: str) -> Any:
    for part in dotted.split("."):
        node = node.get(part, {}) if isinstance(node, dict) else {}
    return node


def _set(node: Dict[str, Any], dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value


def form_to_updates(current: Dict[str, Any], form: Dict[tuple, str]) -> Dict[str, Dict[str, Any]]:
    """
    Turn edited form text into SettingsProvider.update_many input. Only
    top-level keys that actually changed are returned; nested keys carry
    their whole parent object.
    """
    updates: Dict[str, Dict[str, Any]] = {}
    for (category, dotted, _label, kind) in EDITABLE:
        text = form.get((category, dotted), "")
        if kind == INT:
            value: Any = safe_int(text, -1)
        elif kind == LIST:
            value = [v.strip() for v in text.split(",") if v.strip()]
        else:
            value = text.strip()
        if _get(current.get(category, {}), dotted) == value:
            continue
        top = dotted.split(".")[0]
        cat = updates.setdefault(category, {})
        if top not in cat:
            cat[top] = copy.deepcopy(current.get(category, {}).get(top))
        if "." in dotted:
            _set(cat, dotted, value)
        else:
            cat[top] = value
    return updates


class SettingsUI(tk.Frame):
    def __init__(self, parent, controller, show_header=True):
        super().__init__(parent, bg=controller.colors["bg"])
        self.controller = controller
        self.settings = controller.settings

        if show_header:
            HeaderFrame(self, controller, "Settings").pack(fill="x")

        top = tk.Frame(self, bg=controller.colors["bg"], padx=10, pady=10)
        top.pack(fill="x")
        tk.Label(top, text="Settings", bg=controller.colors["bg"], fg=controller.colors["fg"],
                 font=("Arial", 16, "bold")).pack(side="left")

        tk.Button(top, text="Reset All", command=self.reset_all).pack(side="right", padx=(8, 0))
        tk.Button(top, text="Import JSON", command=self.import_json).pack(side="right", padx=(8, 0))
        tk.Button(top, text="Export JSON", command=self.export_json).pack(side="right", padx=(8, 0))
        tk.Button(top, text="Reload", command=self.reload).pack(side="right", padx=(8, 0))
        tk.Button(top, text="Save", command=self.save, bg="#28a745", fg="white").pack(side="right")

        body = tk.Frame(self, bg=controller.colors["bg"], padx=10)
        body.pack(fill="both", expand=True)

        form = tk.Frame(body, bg=controller.colors["bg"])
        form.pack(side="left", fill="y", anchor="n")
        self.vars: Dict[tuple, tk.StringVar] = {}
        last_category = None
        row = 0
        for (category, dotted, label, kind) in EDITABLE:
            if category != last_category:
                tk.Label(form, text=category, bg=controller.colors["bg"], fg=controller.colors["fg"],
                         font=("Arial", 11, "bold")).grid(row=row, column=0, columnspan=2, sticky="w", pady=(10, 2))
                row += 1
                last_category = category
            tk.Label(form, text=label, bg=controller.colors["bg"], fg=controller.colors["fg"]).grid(
                row=row, column=0, sticky="w", padx=(8, 12))
            var = tk.StringVar()
            tk.Entry(form, textvariable=var, width=60 if kind == LIST else 14).grid(row=row, column=1, sticky="w", pady=2)
            self.vars[(category, dotted)] = var
            row += 1
        tk.Label(form, text="Lists are comma separated.", bg=controller.colors["bg"],
                 fg=controller.colors["fg"]).grid(row=row, column=0, columnspan=2, sticky="w", pady=(10, 0))

        hist = tk.LabelFrame(body, text="Change History", padx=6, pady=6)
        hist.pack(side="left", fill="both", expand=True, padx=(16, 0))
        cols = ("changed_at", "category", "field", "old_value", "new_value", "changed_by", "reason")
        self.history_tree = ttk.Treeview(hist, columns=cols, show="headings", height=20)
        for c in cols:
            self.history_tree.heading(c, text=c.replace("_", " ").title())
            self.history_tree.column(c, width=110)
        self.history_tree.pack(fill="both", expand=True)
        tk.Button(hist, text="Clear History", command=self.clear_history).pack(anchor="e", pady=(6, 0))

        self._unsubscribe = self.settings.subscribe(lambda _snapshot: self.populate())
        self.bind("<Destroy>", self._on_destroy)
        self.populate()

    def _on_destroy(self, event):
        if event.widget is self:
            self._unsubscribe()

    # -------------------------
    def populate(self):
        current = self.settings.get()
        for (category, dotted, _label, kind), var in zip(EDITABLE, self.vars.values()):
            value = _get(current.get(category, {}), dotted)
            var.set(", ".join(str(v) for v in value) if kind == LIST and isinstance(value, list) else str(value))
        for i in self.history_tree.get_children():
            self.history_tree.delete(i)
        for h in self.settings.history(limit=100):
            self.history_tree.insert("", "end", values=(h.changed_at, h.category, h.field, h.old_value,
                                                        h.new_value, h.changed_by, h.reason))

    def _report(self, exc: SettingsValidationError):
        messagebox.showerror("Invalid Settings", "\n".join(exc.errors))

    def _warn(self, warnings: List[str]):
        if warnings:
            messagebox.showwarning("Saved with Warnings", "\n".join(warnings))
        else:
            messagebox.showinfo("Saved", "Settings saved.")

    def save(self):
        form = {key: var.get() for key, var in self.vars.items()}
        updates = form_to_updates(self.settings.get(), form)
        if not updates:
            messagebox.showinfo("Settings", "Nothing changed.")
            return
        try:
            warnings = self.settings.update_many(updates, changed_by=self.controller.user, reason="edited")
        except SettingsValidationError as exc:
            self._report(exc)
            return
        log_audit(self.controller.user, f"Updated settings: {', '.join(updates)}")
        self._warn(warnings)

    def reload(self):
        self.settings.reload()

    def reset_all(self):
        if not messagebox.askyesno("Confirm", "Reset every setting to its default?"):
            return
        self.settings.reset(changed_by=self.controller.user)
        log_audit(self.controller.user, "Reset all settings")
        messagebox.showinfo("Settings", "Settings reset to defaults.")

    def clear_history(self):
        if not messagebox.askyesno("Confirm", "Clear the settings change history?"):
            return
        self.settings.clear_history()
        self.populate()

    def export_json(self):
        path = filedialog.asksaveasfilename(title="Export Settings", defaultextension=".json",
                                            initialfile="settings.json", filetypes=[("JSON", "*.json")])
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.settings.export_json(self.controller.user))
        except OSError as exc:
            messagebox.showerror("Export Failed", str(exc))
            return
        log_audit(self.controller.user, f"Exported settings to {path}")
        messagebox.showinfo("Exported", f"Settings exported to:\n{path}")

    def import_json(self):
        path = filedialog.askopenfilename(title="Import Settings", filetypes=[("JSON", "*.json")])
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
            warnings = self.settings.import_json(text, changed_by=self.controller.user)
        except OSError as exc:
            messagebox.showerror("Import Failed", str(exc))
            return
        except SettingsValidationError as exc:
            self._report(exc)
            return
        log_audit(self.controller.user, f"Imported settings from {path}")
        self._warn(warnings)
