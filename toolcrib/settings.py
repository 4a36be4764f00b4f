# toolcrib/settings.py
"""
Settings Provider.

One SettingsProvider is built at startup and handed to every screen and
workbook adapter that needs allow-lists or paging. Saved values are merged
over DEFAULT_SETTINGS so a partial file never leaves a key missing.
Listeners registered with subscribe() are called after every save.
"""
from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .config import (
    DEFAULT_SETTINGS,
    SETTINGS_CATEGORIES,
    SETTINGS_FILE,
    SETTINGS_HISTORY_FILE,
    SETTINGS_HISTORY_LIMIT,
    SETTINGS_VERSION,
    FALLBACK_MODELS,
    FALLBACK_PROCESSES,
    FALLBACK_CATEGORIES,
    FALLBACK_SUPPLIERS,
    FALLBACK_LOCATIONS,
    FALLBACK_CHANGE_REASONS,
    EQUIPMENT_STATUSES,
)
from .storage import load_json, save_json, safe_int

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any]], None]


class SettingsValidationError(ValueError):
    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__("Invalid settings: " + ", ".join(self.errors))


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class SettingsChange:
    category: str
    field: str
    old_value: Any
    new_value: Any
    changed_by: str
    changed_at: str
    reason: str = ""


def merge_with_defaults(saved: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Recursive merge; keys missing from `saved` come from `defaults`."""
    out = copy.deepcopy(defaults)
    for key, value in (saved or {}).items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = merge_with_defaults(value, out[key])
        else:
            out[key] = copy.deepcopy(value)
    return out


def validate_settings(settings: Dict[str, Any]) -> ValidationResult:
    result = ValidationResult()
    system = settings.get("system", {})
    equipment = settings.get("equipment", {})
    inventory = settings.get("inventory", {})
    tool_changes = settings.get("toolChanges", {})

    items_per_page = safe_int(system.get("itemsPerPage"), -1)
    if not 1 <= items_per_page <= 100:
        result.errors.append("itemsPerPage must be between 1 and 100")

    timeout = safe_int(system.get("sessionTimeout"), -1)
    if not 5 <= timeout <= 480:
        result.errors.append("sessionTimeout must be between 5 and 480 minutes")
    elif timeout < 15:
        result.warnings.append("sessionTimeout under 15 minutes may log users out often")

    total = safe_int(equipment.get("totalCount"), -1)
    if not 1 <= total <= 10000:
        result.errors.append("equipment totalCount must be between 1 and 10000")

    positions = safe_int(equipment.get("toolPositionCount"), -1)
    if not 1 <= positions <= 50:
        result.errors.append("toolPositionCount must be between 1 and 50")

    thresholds = inventory.get("stockThresholds", {})
    if safe_int(thresholds.get("criticalPercent"), 0) >= safe_int(thresholds.get("lowPercent"), 0):
        result.errors.append("criticalPercent must be lower than lowPercent")

    t_range = tool_changes.get("tNumberRange", {})
    t_min, t_max = safe_int(t_range.get("min"), 1), safe_int(t_range.get("max"), 0)
    if t_min < 1 or t_max < t_min:
        result.errors.append("tNumberRange must satisfy 1 <= min <= max")

    return result


class SettingsProvider:
    def __init__(
        self,
        path: str = SETTINGS_FILE,
        history_path: str = SETTINGS_HISTORY_FILE,
        defaults: Optional[Dict[str, Any]] = None,
    ):
        self.path = path
        self.history_path = history_path
        self.defaults = copy.deepcopy(defaults if defaults is not None else DEFAULT_SETTINGS)
        self._listeners: List[Listener] = []
        self._settings = self._load()
        self._history: List[Dict[str, Any]] = load_json(self.history_path, []) or []

    # -------------------------
    # Persistence
    # -------------------------
    def _load(self) -> Dict[str, Any]:
        saved = load_json(self.path, {})
        if not isinstance(saved, dict):
            logger.warning("Settings file %s is not an object; using defaults", self.path)
            saved = {}
        return merge_with_defaults(saved, self.defaults)

    def reload(self) -> None:
        self._settings = self._load()
        self._notify()

    def _save(self) -> None:
        save_json(self.path, self._settings)
        save_json(self.history_path, self._history[-SETTINGS_HISTORY_LIMIT:])
        self._notify()

    # -------------------------
    # Pub/sub
    # -------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.get()
        for listener in list(self._listeners):
            listener(snapshot)

    # -------------------------
    # Reads
    # -------------------------
    def get(self, category: Optional[str] = None) -> Dict[str, Any]:
        if category is None:
            return copy.deepcopy(self._settings)
        return copy.deepcopy(self._settings.get(category, {}))

    def get_value(self, dotted: str, default: Any = None) -> Any:
        node: Any = self._settings
        for part in dotted.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return copy.deepcopy(node)

    def history(self, category: Optional[str] = None, limit: Optional[int] = None) -> List[SettingsChange]:
        rows = [h for h in self._history if not category or h.get("category") == category]
        if limit:
            rows = rows[-limit:]
        rows = sorted(rows, key=lambda h: h.get("changed_at", ""), reverse=True)
        return [SettingsChange(**h) for h in rows]

    # -------------------------
    # Writes
    # -------------------------
    def update(self, category: str, changes: Dict[str, Any], changed_by: str = "system",
               reason: str = "") -> List[str]:
        """Apply field changes to one category. Returns validation warnings."""
        return self.update_many({category: changes}, changed_by=changed_by, reason=reason)

    def update_many(self, updates: Dict[str, Dict[str, Any]], changed_by: str = "system",
                    reason: str = "") -> List[str]:
        unknown = [c for c in updates if c not in SETTINGS_CATEGORIES]
        if unknown:
            raise SettingsValidationError([f"Unknown settings category: {c}" for c in unknown])

        candidate = copy.deepcopy(self._settings)
        for category, changes in updates.items():
            candidate[category] = {**candidate.get(category, {}), **copy.deepcopy(changes)}

        result = validate_settings(candidate)
        if not result.is_valid:
            raise SettingsValidationError(result.errors, result.warnings)

        self._record_changes(updates, changed_by, reason)
        self._settings = candidate
        self._save()
        logger.info("Settings updated by %s: %s", changed_by, ", ".join(updates.keys()))
        return result.warnings

    def _record_changes(self, updates: Dict[str, Dict[str, Any]], changed_by: str, reason: str) -> None:
        now = datetime.now().isoformat(timespec="seconds")
        for category, changes in updates.items():
            current = self._settings.get(category, {})
            for fld, new_value in changes.items():
                old_value = current.get(fld)
                if json.dumps(old_value, sort_keys=True) == json.dumps(new_value, sort_keys=True):
                    continue
                self._history.append(asdict(SettingsChange(
                    category=category,
                    field=fld,
                    old_value=copy.deepcopy(old_value),
                    new_value=copy.deepcopy(new_value),
                    changed_by=changed_by,
                    changed_at=now,
                    reason=reason,
                )))
        self._history = self._history[-SETTINGS_HISTORY_LIMIT:]

    def reset(self, category: Optional[str] = None, changed_by: str = "system") -> None:
        if category:
            self.update(category, self.defaults.get(category, {}), changed_by, "reset")
            return
        self.update_many({c: self.defaults[c] for c in SETTINGS_CATEGORIES if c in self.defaults},
                         changed_by, "reset all")

    def clear_history(self, category: Optional[str] = None) -> None:
        if category:
            self._history = [h for h in self._history if h.get("category") != category]
        else:
            self._history = []
        save_json(self.history_path, self._history)

    # -------------------------
    # Import / export
    # -------------------------
    def export_json(self, exported_by: str = "system") -> str:
        return json.dumps({
            "version": SETTINGS_VERSION,
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "settings": self._settings,
            "metadata": {
                "exportedBy": exported_by,
                "description": "Endmill management settings export",
            },
        }, indent=2, ensure_ascii=False)

    def import_json(self, text: str, changed_by: str = "system") -> List[str]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SettingsValidationError([f"Settings file is not valid JSON: {exc}"]) from exc
        if not isinstance(data, dict) or not isinstance(data.get("settings"), dict):
            raise SettingsValidationError(["Settings file has no 'settings' object"])
        imported = {k: v for k, v in data["settings"].items() if k in SETTINGS_CATEGORIES and isinstance(v, dict)}
        return self.update_many(imported, changed_by=changed_by, reason="import")

    # -------------------------
    # Typed accessors (allow-lists fall back to hardcoded values)
    # -------------------------
    def _list(self, dotted: str, fallback: List[str]) -> List[str]:
        value = self.get_value(dotted, [])
        if not value:
            return list(fallback)
        return [str(v) for v in value]

    @property
    def models(self) -> List[str]:
        return self._list("equipment.models", FALLBACK_MODELS)

    @property
    def processes(self) -> List[str]:
        return self._list("equipment.processes", FALLBACK_PROCESSES)

    @property
    def locations(self) -> List[str]:
        return self._list("equipment.locations", FALLBACK_LOCATIONS)

    @property
    def equipment_statuses(self) -> List[str]:
        statuses = self.get_value("equipment.statuses", [])
        codes = [str(s.get("code", "")) for s in statuses if isinstance(s, dict) and s.get("code")]
        return codes or list(EQUIPMENT_STATUSES)

    @property
    def categories(self) -> List[str]:
        return self._list("inventory.categories", FALLBACK_CATEGORIES)

    @property
    def suppliers(self) -> List[str]:
        return self._list("inventory.suppliers", FALLBACK_SUPPLIERS)

    @property
    def change_reasons(self) -> List[str]:
        return self._list("toolChanges.reasons", FALLBACK_CHANGE_REASONS)

    @property
    def default_reason(self) -> str:
        return str(self.get_value("toolChanges.defaultReason", "") or self.change_reasons[0])

    @property
    def t_number_range(self) -> tuple[int, int]:
        t_range = self.get_value("toolChanges.tNumberRange", {}) or {}
        return safe_int(t_range.get("min"), 1), safe_int(t_range.get("max"), 21)

    @property
    def items_per_page(self) -> int:
        return max(1, safe_int(self.get_value("system.itemsPerPage"), 20))

    @property
    def tool_position_count(self) -> int:
        return safe_int(self.get_value("equipment.toolPositionCount"), 21)

    @property
    def default_stock(self) -> Dict[str, int]:
        values = self.get_value("inventory.defaultValues", {}) or {}
        return {
            "min_stock": safe_int(values.get("minStock"), 20),
            "max_stock": safe_int(values.get("maxStock"), 100),
            "standard_life": safe_int(values.get("standardLife"), 2000),
        }
