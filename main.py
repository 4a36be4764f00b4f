# main.py
from __future__ import annotations

import sys
import traceback
from pathlib import Path


def _write_startup_log(msg: str) -> None:
    try:
        # Import inside so we can still log even if toolcrib/config imports fail later
        base = Path(__file__).resolve().parent
        log_dir = base / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        (log_dir / "startup.log").write_text(msg, encoding="utf-8")
    except OSError:
        pass


def _show_fatal_popup(title: str, text: str) -> None:
    # Last-ditch: try to show a Tk popup even if the app didn't initialize.
    try:
        import tkinter as tk
        from tkinter import messagebox

        root = tk.Tk()
        root.withdraw()
        messagebox.showerror(title, text)
        root.destroy()
    except Exception:
        # If even Tk popup fails, the startup log still has the traceback
        pass


def main() -> int:
    try:
        # 1) Initialize app environment FIRST
        from toolcrib import initialize_app
        initialize_app()

        # 2) Import UI AFTER init (prevents missing logs/data dirs errors)
        from toolcrib.ui_app import App

        # 3) Launch
        App().mainloop()
        return 0

    except Exception:
        tb = traceback.format_exc()
        msg = f"Startup failure:\n\n{tb}"
        _write_startup_log(msg)
        print(msg, file=sys.stderr)
        _show_fatal_popup("Endmill Management - Startup Error", msg)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
