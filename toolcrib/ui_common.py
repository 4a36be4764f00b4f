# toolcrib/ui_common.py
from __future__ import annotations

import logging
import tkinter as tk
from tkinter import ttk, messagebox, filedialog
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .audit import log_audit
from .excel_io import ImportReport
from .pages import InvalidTransition, PageController
from .table import ASC, TableController

logger = logging.getLogger(__name__)

LIGHT = {"bg": "#f0f0f0", "fg": "black", "header_bg": "#cccccc"}
DARK = {"bg": "#2e2e2e", "fg": "white", "header_bg": "#1a1a1a"}

ALL = "All"


class HeaderFrame(tk.Frame):
    def __init__(self, parent, controller, title: str = ""):
        super().__init__(parent, bg=controller.colors["header_bg"], height=56)
        self.pack_propagate(False)

        text = title or "Endmill Management"
        tk.Label(self, text=text, font=("Arial", 14, "bold"),
                 bg=controller.colors["header_bg"], fg=controller.colors["fg"]).pack(side="left", padx=20)

        right = tk.Frame(self, bg=controller.colors["header_bg"])
        right.pack(side="right", padx=10)

        tk.Label(right, text=f"User: {controller.user}",
                 bg=controller.colors["header_bg"], fg=controller.colors["fg"]).pack(side="left", padx=6)
        mode_text = "Light Mode" if controller.is_dark else "Dark Mode"
        tk.Button(right, text=mode_text, command=controller.toggle_theme, width=12).pack(side="left", padx=6)


class DataTable(tk.Frame):
    """Treeview with scrollbars; clicking a heading calls on_sort(field)."""

    def __init__(self, parent, columns: Sequence[Tuple[str, str, int]],
                 on_sort: Optional[Callable[[str], None]] = None, height: int = 18):
        super().__init__(parent)
        self.fields = [c[0] for c in columns]
        self.labels = {c[0]: c[1] for c in columns}
        self.tree = ttk.Treeview(self, columns=self.fields, show="headings", height=height)

        for name, label, width in columns:
            cmd = (lambda f=name: on_sort(f)) if on_sort else None
            self.tree.heading(name, text=label, command=cmd)
            self.tree.column(name, width=width)

        sy = ttk.Scrollbar(self, orient="vertical", command=self.tree.yview)
        sx = ttk.Scrollbar(self, orient="horizontal", command=self.tree.xview)
        self.tree.configure(yscroll=sy.set, xscroll=sx.set)

        sy.pack(side="right", fill="y")
        sx.pack(side="bottom", fill="x")
        self.tree.pack(fill="both", expand=True)

    def load(self, rows: Sequence[Tuple[str, Sequence[Any]]], tags: Optional[Dict[str, str]] = None) -> None:
        """rows are (iid, values) pairs."""
        for i in self.tree.get_children():
            self.tree.delete(i)
        for iid, values in rows:
            tag = (tags or {}).get(iid)
            self.tree.insert("", "end", iid=iid, values=list(values), tags=(tag,) if tag else ())

    def mark_sort(self, field: Optional[str], direction: str) -> None:
        for f in self.fields:
            arrow = ""
            if f == field:
                arrow = " ▲" if direction == ASC else " ▼"
            self.tree.heading(f, text=self.labels[f] + arrow)

    def selected_id(self) -> Optional[str]:
        sel = self.tree.selection()
        return sel[0] if sel else None


class Pager(tk.Frame):
    def __init__(self, parent, controller, on_page: Callable[[int], None]):
        super().__init__(parent, bg=controller.colors["bg"])
        self.on_page = on_page
        self.page = 1
        self.total_pages = 0
        tk.Button(self, text="◀ Prev", command=lambda: self.on_page(self.page - 1)).pack(side="left", padx=4)
        self.label = tk.Label(self, text="", bg=controller.colors["bg"], fg=controller.colors["fg"])
        self.label.pack(side="left", padx=8)
        tk.Button(self, text="Next ▶", command=lambda: self.on_page(self.page + 1)).pack(side="left", padx=4)

    def show(self, page) -> None:
        self.page = page.page
        self.total_pages = page.total_pages
        if page.total:
            text = f"{page.start_index}-{page.end_index} of {page.total}  |  Page {page.page} / {page.total_pages}"
        else:
            text = "No rows"
        self.label.config(text=text)


def notify(kind: str, message: str) -> None:
    if kind == "error":
        messagebox.showerror("Error", message)
    else:
        messagebox.showinfo("Done", message)


def show_import_report(report: ImportReport, what: str) -> bool:
    """Summarize a validated workbook. Returns True when the user agrees to write it."""
    if report.errors:
        shown = "\n".join(report.errors[:20])
        more = f"\n... and {len(report.errors) - 20} more" if len(report.errors) > 20 else ""
        messagebox.showerror("Import Refused", f"{what}: fix these errors first.\n\n{shown}{more}")
        return False
    lines = [f"{len(report.rows)} new {what} row(s) ready to import."]
    if report.duplicates:
        lines.append(f"{len(report.duplicates)} duplicate(s) will be skipped.")
    if report.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(report.warnings[:15])
        if len(report.warnings) > 15:
            lines.append(f"... and {len(report.warnings) - 15} more")
    if not report.rows:
        messagebox.showinfo("Nothing to Import", "\n".join(lines))
        return False
    return messagebox.askyesno("Confirm Import", "\n".join(lines + ["", "Continue?"]))


def ask_save_xlsx(title: str, initialfile: str = "") -> str:
    return filedialog.asksaveasfilename(
        title=title,
        defaultextension=".xlsx",
        initialfile=initialfile,
        filetypes=[("Excel Workbook", "*.xlsx")],
    )


def ask_open_xlsx(title: str) -> str:
    return filedialog.askopenfilename(title=title, filetypes=[("Excel Workbook", "*.xlsx *.xls")])


class RecordDialog(tk.Toplevel):
    """
    Small add/edit form. fields: (name, label, options) where options is
    None for a free-text entry or a list for a read-only combobox.
    on_save(values) returns True to close the dialog.
    """

    def __init__(self, parent, title: str, fields: Sequence[Tuple[str, str, Optional[List[str]]]],
                 values: Dict[str, Any], on_save: Callable[[Dict[str, str]], bool],
                 on_cancel: Callable[[], None], readonly: Sequence[str] = (),
                 on_change: Optional[Callable[[str, Dict[str, tk.StringVar]], None]] = None):
        super().__init__(parent)
        self.title(title)
        self.resizable(False, False)
        self.on_save = on_save
        self.on_cancel = on_cancel
        self.vars: Dict[str, tk.StringVar] = {}

        form = tk.Frame(self, padx=12, pady=12)
        form.pack(fill="both", expand=True)

        for row, (name, label, options) in enumerate(fields):
            tk.Label(form, text=label).grid(row=row, column=0, sticky="w", pady=3)
            var = tk.StringVar(value="" if values.get(name) is None else str(values.get(name)))
            self.vars[name] = var
            if on_change is not None:
                var.trace_add("write", lambda *_, n=name: on_change(n, self.vars))
            if options is not None:
                w = ttk.Combobox(form, textvariable=var, values=options, state="readonly", width=28)
            else:
                w = tk.Entry(form, textvariable=var, width=30)
            if name in readonly:
                w.configure(state="disabled")
            w.grid(row=row, column=1, sticky="w", padx=(8, 0), pady=3)

        btns = tk.Frame(form)
        btns.grid(row=len(fields), column=0, columnspan=2, sticky="e", pady=(10, 0))
        tk.Button(btns, text="Cancel", command=self._cancel).pack(side="right", padx=4)
        tk.Button(btns, text="Save", command=self._save, bg="#28a745", fg="white").pack(side="right", padx=4)

        self.protocol("WM_DELETE_WINDOW", self._cancel)
        self.transient(parent)
        self.grab_set()

    def _save(self):
        values = {k: v.get().strip() for k, v in self.vars.items()}
        if self.on_save(values):
            self.destroy()

    def _cancel(self):
        self.on_cancel()
        self.destroy()


class ListScreen(tk.Frame):
    """
    Base for every list screen: search box, dropdown filters, sortable
    columns, pager, and add/edit/delete wired through a PageController.
    Subclasses fill in the class attributes and the record hooks.
    """

    title = ""
    columns: Sequence[Tuple[str, str, int]] = ()
    search_fields: Sequence[str] = ()
    column_kinds: Dict[str, str] = {}
    feed_tables: Sequence[str] = ()
    _editing_id: Optional[str] = None

    def __init__(self, parent, controller, show_header=True):
        super().__init__(parent, bg=controller.colors["bg"])
        self.controller = controller
        self.settings = controller.settings

        if show_header:
            HeaderFrame(self, controller, self.title).pack(fill="x")

        table = TableController.from_settings(self.settings, self.search_fields, self.column_kinds)
        self.page = PageController(self.fetch, table, notify, tables=self.feed_tables)
        self.page.on_reload = self.render

        top = tk.Frame(self, bg=controller.colors["bg"], padx=10, pady=10)
        top.pack(fill="x")
        tk.Label(top, text=self.title, bg=controller.colors["bg"], fg=controller.colors["fg"],
                 font=("Arial", 16, "bold")).pack(side="left")
        tk.Button(top, text="Refresh", command=self.refresh).pack(side="right")
        self.toolbar = tk.Frame(top, bg=controller.colors["bg"])
        self.toolbar.pack(side="right", padx=8)
        self.build_toolbar(self.toolbar)

        ctrl = tk.Frame(self, bg=controller.colors["bg"], padx=10)
        ctrl.pack(fill="x")
        tk.Label(ctrl, text="Search:", bg=controller.colors["bg"], fg=controller.colors["fg"]).pack(side="left")
        self.search_var = tk.StringVar()
        search = tk.Entry(ctrl, textvariable=self.search_var, width=24)
        search.pack(side="left", padx=6)
        search.bind("<KeyRelease>", lambda e: self._on_search())

        self.filter_boxes: Dict[str, ttk.Combobox] = {}
        for name, label, options in self.filter_options():
            tk.Label(ctrl, text=f"{label}:", bg=controller.colors["bg"],
                     fg=controller.colors["fg"]).pack(side="left", padx=(12, 4))
            cb = ttk.Combobox(ctrl, state="readonly", width=12, values=[ALL] + list(options))
            cb.set(ALL)
            cb.pack(side="left")
            cb.bind("<<ComboboxSelected>>", lambda e, n=name: self._on_filter(n))
            self.filter_boxes[name] = cb
        tk.Button(ctrl, text="Clear", command=self._clear_filters).pack(side="left", padx=10)

        self.summary = tk.Label(self, text="", bg=controller.colors["bg"], fg=controller.colors["fg"],
                                anchor="w", justify="left", padx=10)
        self.summary.pack(fill="x", pady=(6, 0))

        self.table = DataTable(self, self.columns, on_sort=self._on_sort)
        self.table.pack(fill="both", expand=True, padx=10, pady=8)
        self.table.tree.tag_configure("critical", background="#f8d7da")
        self.table.tree.tag_configure("low", background="#fff3cd")
        self.table.tree.bind("<Double-1>", lambda e: self.edit_selected())

        bottom = tk.Frame(self, bg=controller.colors["bg"], padx=10, pady=6)
        bottom.pack(fill="x")
        self.pager = Pager(bottom, controller, self._on_page)
        self.pager.pack(side="left")
        self.status = tk.Label(bottom, text="", bg=controller.colors["bg"], fg=controller.colors["fg"])
        self.status.pack(side="right")

        self.bind("<Destroy>", self._on_destroy)
        self.refresh()

    # ---- hooks -------------------------------------------------
    def fetch(self) -> list:
        raise NotImplementedError

    def row_values(self, rec) -> Sequence[Any]:
        raise NotImplementedError

    def record_id(self, rec) -> str:
        return str(rec.id)

    def row_tag(self, rec) -> Optional[str]:
        return None

    def filter_options(self) -> List[Tuple[str, str, Sequence[str]]]:
        return []

    def build_toolbar(self, bar: tk.Frame) -> None:
        tk.Button(bar, text="Add", command=self.add_record).pack(side="left", padx=4)
        tk.Button(bar, text="Edit", command=self.edit_selected).pack(side="left", padx=4)
        tk.Button(bar, text="Delete", command=self.delete_selected,
                  bg="#d9534f", fg="white").pack(side="left", padx=4)

    def update_summary(self) -> None:
        self.summary.config(text="")

    def open_editor(self, rec=None) -> None:
        pass

    def delete_record(self, rec) -> None:
        raise NotImplementedError

    def describe(self, rec) -> str:
        return self.record_id(rec)

    # ---- state -------------------------------------------------
    def refresh(self):
        self.page.load()
        self.render()

    def render(self):
        view = self.page.view()
        rows = [(self.record_id(r), self.row_values(r)) for r in view.items]
        tags = {}
        for r in view.items:
            tag = self.row_tag(r)
            if tag:
                tags[self.record_id(r)] = tag
        self.table.load(rows, tags)
        self.table.mark_sort(self.page.table.sort.field, self.page.table.sort.direction)
        self.pager.show(view)
        self.status.config(text=f"{len(self.page.rows)} loaded")
        self.update_summary()

    def _on_search(self):
        self.page.table.set_search(self.search_var.get())
        self.render()

    def _on_filter(self, name: str):
        value = self.filter_boxes[name].get()
        self.page.table.set_filter(name, "" if value == ALL else value)
        self.render()

    def _clear_filters(self):
        self.search_var.set("")
        for cb in self.filter_boxes.values():
            cb.set(ALL)
        self.page.table.clear_filters()
        self.render()

    def _on_sort(self, field: str):
        self.page.table.toggle_sort(field)
        self.render()

    def _on_page(self, page: int):
        self.page.table.set_page(page)
        self.render()

    def _on_destroy(self, event):
        if event.widget is self:
            self.page.close()

    def selected_record(self):
        rid = self.table.selected_id()
        if rid is None:
            return None
        for r in self.page.rows:
            if self.record_id(r) == rid:
                return r
        return None

    # ---- actions -----------------------------------------------
    def add_record(self):
        try:
            self.page.start_add()
        except InvalidTransition:
            return
        self.open_editor(None)

    def edit_selected(self):
        rec = self.selected_record()
        if rec is None:
            return
        try:
            self.page.start_edit(self.record_id(rec))
        except InvalidTransition:
            return
        self.open_editor(rec)

    def delete_selected(self):
        rec = self.selected_record()
        if rec is None:
            return
        try:
            self.page.confirm_delete(self.record_id(rec))
        except InvalidTransition:
            return
        if not messagebox.askyesno("Confirm", f"Delete {self.describe(rec)}?"):
            self.page.cancel()
            self.render()
            return
        if self.page.run_mutation(lambda: self.delete_record(rec), "Deleted."):
            log_audit(self.controller.user, f"Deleted {self.title} {self.describe(rec)}")
        self.render()

    def save_from_dialog(self, action: Callable[[], Any], message: str, audit: str) -> bool:
        """Run a save; keeps the dialog open when the write fails."""
        if self.page.run_mutation(action, message):
            log_audit(self.controller.user, audit)
            self.render()
            return True
        # run_mutation already returned to idle; reopen editing on the same record
        if self.page.state.is_idle and self._editing_id is not None:
            self.page.start_edit(self._editing_id)
        elif self.page.state.is_idle:
            self.page.start_add()
        return False

    def dialog(self, title: str, fields, values, on_save, readonly=(), on_change=None) -> None:
        self._editing_id = self.page.state.record_id

        def cancel():
            self.page.cancel()
            self.render()

        RecordDialog(self, title, fields, values, on_save, cancel, readonly, on_change)

    # ---- workbook helpers --------------------------------------
    def save_template(self, writer: Callable[[str], Any], name: str) -> None:
        path = ask_save_xlsx(f"Save {name} Template", f"{name}_template.xlsx")
        if not path:
            return
        try:
            writer(path)
        except (OSError, ValueError) as exc:
            logger.exception("Template write failed")
            messagebox.showerror("Export Failed", f"Unable to write template.\n{exc}")
            return
        messagebox.showinfo("Saved", f"Template saved to:\n{path}")

    def export_rows(self, writer: Callable[[str], int], name: str) -> None:
        path = ask_save_xlsx(f"Export {name}", f"{name}.xlsx")
        if not path:
            return
        try:
            count = writer(path)
        except (OSError, ValueError) as exc:
            logger.exception("Export failed")
            messagebox.showerror("Export Failed", f"Unable to export {name}.\n{exc}")
            return
        log_audit(self.controller.user, f"Exported {count} {name} rows to {path}")
        messagebox.showinfo("Exported", f"{count} rows exported to:\n{path}")

    def import_rows(self, validate: Callable[[str], ImportReport], write: Callable[[ImportReport], Any],
                    name: str) -> None:
        path = ask_open_xlsx(f"Import {name}")
        if not path:
            return
        try:
            report = validate(path)
        except ValueError as exc:
            messagebox.showerror("Import Failed", str(exc))
            return
        if not show_import_report(report, name):
            return
        if self.page.run_mutation(lambda: write(report), f"{len(report.rows)} {name} row(s) imported."):
            log_audit(self.controller.user, f"Imported {len(report.rows)} {name} rows from {path}")
        self.render()
