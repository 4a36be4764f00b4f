# toolcrib/screen_registry.py
from __future__ import annotations

from typing import Dict, Tuple, Type
import tkinter as tk

# tab title -> (module, class); order is the notebook order
SCREEN_REGISTRY: Dict[str, Tuple[str, str]] = {
    "Dashboard": ("toolcrib.ui_dashboard", "DashboardUI"),
    "CAM Sheets": ("toolcrib.ui_cam_sheets", "CamSheetsUI"),
    "Equipment": ("toolcrib.ui_equipment", "EquipmentUI"),
    "Tool Changes": ("toolcrib.ui_tool_changes", "ToolChangesUI"),
    "Inventory": ("toolcrib.ui_inventory", "InventoryUI"),
    "Endmill Master": ("toolcrib.ui_endmill_master", "EndmillMasterUI"),
    "Disposals": ("toolcrib.ui_disposals", "DisposalsUI"),
    "Settings": ("toolcrib.ui_settings", "SettingsUI"),
}


def get_screen_class(screen: str) -> Type[tk.Frame]:
    module_name, class_name = SCREEN_REGISTRY[screen]
    mod = __import__(module_name, fromlist=[class_name])
    return getattr(mod, class_name)
