# toolcrib/ui_dashboard.py
import logging
import tkinter as tk
from tkinter import ttk
from datetime import datetime, timedelta

from . import accessors
from .accessors import DataAccessError
from .insights import (
    cam_sheet_insights,
    equipment_stats,
    inventory_summary,
    model_series_frequency,
    recent_changes_by_equipment,
    tool_change_summary,
)
from .stock import STOCK_STATUS_LABELS, STOCK_STATUSES
from .storage import safe_int
from .ui_common import HeaderFrame

logger = logging.getLogger(__name__)


class DashboardUI(tk.Frame):
    """
    Dashboard:
    - KPI cards: equipment operating rate, stock status counts, today's tool changes
    - CAM sheet insights: life accuracy, change interval, inventory linkage, standardization
    - Tables: per-process accuracy, per-type interval, model series, busiest equipment
    """

    FEED_TABLES = ("cam_sheets", "tool_changes", "inventory", "equipment")

    def __init__(self, parent, controller, show_header=True):
        super().__init__(parent, bg=controller.colors["bg"])
        self.controller = controller
        self.throttle = accessors.RefetchThrottle()

        if show_header:
            HeaderFrame(self, controller, "Dashboard").pack(fill="x")

        top = tk.Frame(self, bg=controller.colors["bg"], padx=10, pady=10)
        top.pack(fill="x")
        tk.Label(top, text="Endmill Dashboard", bg=controller.colors["bg"], fg=controller.colors["fg"],
                 font=("Arial", 16, "bold")).pack(side="left")
        tk.Button(top, text="Refresh", command=self.refresh).pack(side="right")

        ctrl = tk.Frame(self, bg=controller.colors["bg"], padx=10)
        ctrl.pack(fill="x")
        tk.Label(ctrl, text="Series window:", bg=controller.colors["bg"], fg=controller.colors["fg"]).pack(side="left")
        self.window_var = ttk.Combobox(ctrl, state="readonly", width=14,
                                       values=["Last 7 Days", "Last 30 Days", "Last 90 Days", "All"])
        self.window_var.set("Last 30 Days")
        self.window_var.pack(side="left", padx=8)
        self.window_var.bind("<<ComboboxSelected>>", lambda e: self.refresh())

        tk.Label(ctrl, text="Show Top:", bg=controller.colors["bg"], fg=controller.colors["fg"]).pack(side="left", padx=(18, 6))
        self.topn_var = tk.StringVar(value="10")
        tk.Entry(ctrl, textvariable=self.topn_var, width=6).pack(side="left")

        self.status = tk.Label(ctrl, text="", bg=controller.colors["bg"], fg=controller.colors["fg"])
        self.status.pack(side="left", padx=(18, 0))

        cards = tk.Frame(self, bg=controller.colors["bg"], padx=10, pady=10)
        cards.pack(fill="x")
        self.card_vars = {}
        for key, title in [
            ("equipment", "Equipment"),
            ("stock", "Stock"),
            ("changes", "Tool Changes Today"),
            ("accuracy", "Tool Life Accuracy"),
            ("interval", "Avg Change Interval"),
            ("linkage", "Inventory Linkage"),
            ("standard", "Standardization"),
        ]:
            box = tk.LabelFrame(cards, text=title, padx=8, pady=6)
            box.pack(side="left", fill="both", expand=True, padx=4)
            var = tk.StringVar(value="-")
            tk.Label(box, textvariable=var, font=("Arial", 12, "bold"), justify="left").pack(anchor="w")
            self.card_vars[key] = var

        nb = ttk.Notebook(self)
        nb.pack(fill="both", expand=True, padx=10, pady=10)

        tab_process = tk.Frame(nb)
        tab_type = tk.Frame(nb)
        tab_series = tk.Frame(nb)
        tab_equipment = tk.Frame(nb)
        nb.add(tab_process, text="Accuracy by Process")
        nb.add(tab_type, text="Interval by Tool Type")
        nb.add(tab_series, text="Changes by Model Series")
        nb.add(tab_equipment, text="Changes by Equipment")

        self.tree_process = self._make_tree(tab_process, ("process", "accuracy_pct"))
        self.tree_type = self._make_tree(tab_type, ("tool_type", "avg_life"))
        self.tree_series = self._make_tree(tab_series, ("series", "changes"))
        self.tree_equipment = self._make_tree(tab_equipment, ("equipment_number", "changes", "avg_life"))

        self._unsubscribe = [accessors.CHANGE_FEED.subscribe(self._on_remote_change, t) for t in self.FEED_TABLES]
        self.bind("<Destroy>", self._on_destroy)

        self.refresh()

    # -------------------------
    def _make_tree(self, parent, cols):
        tree = ttk.Treeview(parent, columns=cols, show="headings", height=14)
        for c in cols:
            tree.heading(c, text=c.upper())
            tree.column(c, width=220)
        tree.pack(fill="both", expand=True, padx=8, pady=8)
        return tree

    def _clear_tree(self, tree):
        for i in tree.get_children():
            tree.delete(i)

    def _since(self):
        mode = self.window_var.get()
        today = datetime.now().date()
        days = {"Last 7 Days": 7, "Last 30 Days": 30, "Last 90 Days": 90}.get(mode)
        return today - timedelta(days=days - 1) if days else None

    def _topn(self):
        return max(5, safe_int(self.topn_var.get(), 10))

    def _on_remote_change(self, table, action):
        if self.throttle.ready():
            self.refresh()

    def _on_destroy(self, event):
        if event.widget is self:
            for unsubscribe in self._unsubscribe:
                unsubscribe()
            self._unsubscribe = []

    # -------------------------
    def refresh(self):
        for t in (self.tree_process, self.tree_type, self.tree_series, self.tree_equipment):
            self._clear_tree(t)

        try:
            sheets = accessors.fetch_cam_sheets()
            changes = accessors.fetch_tool_changes()
            inventory = accessors.fetch_inventory()
            equipment = accessors.fetch_equipment()
        except DataAccessError as exc:
            logger.exception("Dashboard load failed")
            self.status.config(text=f"Could not load data: {exc}")
            return
        self.throttle.mark()

        settings = self.controller.settings
        ins = cam_sheet_insights(sheets, changes, inventory, settings.processes)
        eq = equipment_stats(equipment)
        inv = inventory_summary(inventory)
        tc = tool_change_summary(changes)

        by_status = " / ".join(f"{s} {n}" for s, n in eq.by_status.items())
        self.card_vars["equipment"].set(f"{eq.total} units, {eq.operating_rate}% running\n{by_status}")
        stock_line = " / ".join(f"{STOCK_STATUS_LABELS[s]} {inv.by_status.get(s, 0)}" for s in STOCK_STATUSES)
        self.card_vars["stock"].set(f"{inv.total} items\n{stock_line}")
        self.card_vars["changes"].set(f"{tc.today} (yesterday {tc.yesterday}, {tc.trend})")
        self.card_vars["accuracy"].set(f"{ins.tool_life_accuracy}%")
        self.card_vars["interval"].set(f"{ins.average_change_interval}")
        self.card_vars["linkage"].set(f"{ins.inventory_linkage}%")
        std = ins.standardization
        self.card_vars["standard"].set(f"{std.rate}% ({std.standard}/{std.distinct_codes})")

        for process, pct in ins.per_process_accuracy.items():
            self.tree_process.insert("", "end", values=(process, pct))
        for name, life in ins.per_type_change_interval.items():
            self.tree_type.insert("", "end", values=(name, life))

        series = model_series_frequency(changes, self._since())
        for _, r in series.iterrows():
            self.tree_series.insert("", "end", values=(r["series"], int(r["changes"])))

        busiest = recent_changes_by_equipment(changes, self._topn())
        for _, r in busiest.iterrows():
            self.tree_equipment.insert("", "end", values=(r["equipment_number"], int(r["changes"]), int(r["avg_life"])))

        self.status.config(text=f"{len(sheets)} CAM sheets | {len(changes)} tool changes | "
                                f"{len(inventory)} inventory rows | {len(equipment)} equipment")
