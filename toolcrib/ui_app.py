# toolcrib/ui_app.py
from __future__ import annotations

import getpass
import logging
import tkinter as tk
from tkinter import ttk

from .audit import log_audit
from .screen_registry import SCREEN_REGISTRY, get_screen_class
from .settings import SettingsProvider
from .ui_common import DARK, LIGHT, HeaderFrame

logger = logging.getLogger(__name__)


class App(tk.Tk):
    """
    Root window: header plus one notebook tab per registered screen.
    Screens are rebuilt on theme toggle and on settings changes so
    allow-lists and page size take effect immediately.
    """

    def __init__(self, user: str = ""):
        super().__init__()

        self.title("Endmill Management System")
        self.geometry("1400x880")

        self.settings = SettingsProvider()
        self.user = user or getpass.getuser() or "operator"

        theme = self.settings.get_value("ui.theme", "light")
        self.is_dark = theme == "dark"
        self.colors = DARK if self.is_dark else LIGHT

        self.container = tk.Frame(self)
        self.container.pack(fill="both", expand=True)

        self._current_tab = 0
        self._unsubscribe = self.settings.subscribe(lambda _snapshot: self.after_idle(self.rebuild))

        log_audit(self.user, "Opened application")
        self.rebuild()

    def toggle_theme(self):
        self.is_dark = not self.is_dark
        self.colors = DARK if self.is_dark else LIGHT
        self.rebuild()

    def clear(self):
        for w in self.container.winfo_children():
            w.destroy()

    def rebuild(self):
        nb = getattr(self, "notebook", None)
        if nb is not None and nb.winfo_exists() and nb.tabs():
            self._current_tab = nb.index(nb.select())

        self.clear()
        self.container.configure(bg=self.colors["bg"])

        HeaderFrame(self.container, self).pack(fill="x")

        self.notebook = ttk.Notebook(self.container)
        self.notebook.pack(fill="both", expand=True, padx=10, pady=10)

        for title in SCREEN_REGISTRY:
            tab = tk.Frame(self.notebook, bg=self.colors["bg"])
            self.notebook.add(tab, text=title)
            view_cls = get_screen_class(title)
            view_cls(tab, self, show_header=False).pack(fill="both", expand=True)

        if self._current_tab < len(self.notebook.tabs()):
            self.notebook.select(self._current_tab)
