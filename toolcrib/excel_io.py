# toolcrib/excel_io.py
"""
Workbook templates, exports and validated imports.

Every import reads the first sheet with pandas and returns an ImportReport:
  errors      block the import (the screen refuses to write anything)
  warnings    are shown but do not block
  rows        the valid typed rows that would be written
  duplicates  rows that already exist; reported and never written
Row numbers in messages are worksheet rows (header is row 1).
"""
from __future__ import annotations

import re
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from .config import (
    CAM_SHEET_HEADERS,
    CAM_SHEET_REQUIRED,
    DEFAULT_TOOL_LIFE,
    ENDMILL_MASTER_HEADERS,
    ENDMILL_MASTER_REQUIRED,
    EQUIPMENT_HEADERS,
    INVENTORY_HEADERS,
    INVENTORY_REQUIRED,
    QUALITY_GRADES,
    SUPPLIER_SLOTS,
    TOOL_CHANGE_HEADERS,
)
from .models import (
    CAMSheet,
    EndmillDisposal,
    EndmillInfo,
    EndmillType,
    Equipment,
    InventoryRecord,
    SupplierPrice,
    ToolChange,
)
from .settings import SettingsProvider
from .storage import is_number, safe_float, safe_int, safe_str

logger = logging.getLogger(__name__)

T = TypeVar("T")

HEADER_FILL = PatternFill(start_color="FF4472C4", end_color="FF4472C4", fill_type="solid")
REQUIRED_FILL = PatternFill(start_color="FFFFC000", end_color="FFFFC000", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFFFF")

EQUIPMENT_NUMBER_RE = re.compile(r"^C\d{3}$")

TOOL_CHANGE_REQUIRED = ["설비번호", "생산모델", "공정", "T번호", "앤드밀코드", "실제Tool life", "교체사유"]


@dataclass
class ImportReport(Generic[T]):
    rows: List[T] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    duplicates: List[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def error(self, row: int, msg: str) -> None:
        self.errors.append(f"Row {row}: {msg}" if row else msg)

    def warn(self, row: int, msg: str) -> None:
        self.warnings.append(f"Row {row}: {msg}" if row else msg)


@dataclass
class InventoryImportRow:
    record: InventoryRecord
    suppliers: List[SupplierPrice] = field(default_factory=list)


# -------------------------
# Workbook plumbing
# -------------------------
def _style_sheet(ws, required: Iterable[str] = ()) -> None:
    required = set(required)
    for idx, cell in enumerate(ws[1], start=1):
        cell.fill = REQUIRED_FILL if cell.value in required else HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center", vertical="center")
        width = max(12, len(str(cell.value or "")) * 2 + 2)
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = "A2"


def write_workbook(path: str, sheets: Dict[str, pd.DataFrame], required: Iterable[str] = (),
                   guide: Optional[Sequence[str]] = None, guide_name: str = "작성방법") -> None:
    """Write one or more frames; header rows styled, optional guide sheet last."""
    required = list(required)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
            _style_sheet(writer.sheets[name], required)
        if guide:
            pd.DataFrame({"안내": list(guide)}).to_excel(writer, sheet_name=guide_name, index=False)
            ws = writer.sheets[guide_name]
            _style_sheet(ws)
            ws.column_dimensions["A"].width = 90
    logger.info("Wrote workbook %s", path)


def read_sheet(path: str) -> pd.DataFrame:
    """First worksheet as a frame with stripped header names."""
    try:
        df = pd.read_excel(path, sheet_name=0, dtype=object, engine="openpyxl")
    except (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException) as exc:
        raise ValueError(f"Unable to read workbook {path}: {exc}") from exc
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _records(df: pd.DataFrame) -> List[Tuple[int, Dict[str, Any]]]:
    out = []
    for i, rec in enumerate(df.to_dict("records")):
        if all(safe_str(v) == "" for v in rec.values()):
            continue
        out.append((i + 2, rec))
    return out


def _check_columns(df: pd.DataFrame, required: Sequence[str], report: ImportReport) -> bool:
    missing = [c for c in required if c not in df.columns]
    if missing:
        report.error(0, "Missing required columns: " + ", ".join(missing))
        return False
    return True


def _require_fields(rec: Dict[str, Any], names: Sequence[str], row: int, report: ImportReport) -> bool:
    ok = True
    for name in names:
        if safe_str(rec.get(name)) == "":
            report.error(row, f"'{name}' is required")
            ok = False
    return ok


def _check_allowed(value: str, allowed: Sequence[str], label: str, row: int, report: ImportReport) -> bool:
    if value not in allowed:
        report.error(row, f"{label} '{value}' is not one of: {', '.join(allowed)}")
        return False
    return True


def _non_negative_int(rec: Dict[str, Any], name: str, row: int, report: ImportReport) -> Optional[int]:
    raw = rec.get(name)
    if safe_str(raw) == "":
        return 0
    if not is_number(raw) or safe_float(raw) < 0:
        report.error(row, f"'{name}' must be a number of 0 or more (got {safe_str(raw)})")
        return None
    return safe_int(raw)


def _supplier_columns(slot: int) -> Tuple[str, str]:
    return f"공급업체{slot}", f"공급업체{slot}_단가(VND)"


def _read_suppliers(rec: Dict[str, Any], known: Sequence[str], row: int,
                    report: ImportReport) -> List[SupplierPrice]:
    out = []
    for slot in range(1, SUPPLIER_SLOTS + 1):
        name_col, price_col = _supplier_columns(slot)
        supplier = safe_str(rec.get(name_col))
        price_raw = rec.get(price_col)
        has_price = safe_str(price_raw) != ""
        if not supplier and not has_price:
            continue
        if supplier and not has_price:
            report.warn(row, f"{name_col} '{supplier}' has no price")
        if has_price and not supplier:
            report.warn(row, f"{price_col} given without a supplier")
            continue
        if has_price and (not is_number(price_raw) or safe_float(price_raw) < 0):
            report.error(row, f"{price_col} must be a number of 0 or more")
            continue
        if supplier not in known:
            report.warn(row, f"Unrecognized supplier '{supplier}'")
        out.append(SupplierPrice(supplier, safe_float(price_raw, 0.0)))
    return out


def _supplier_cells(prices: Sequence[SupplierPrice]) -> Dict[str, Any]:
    cells: Dict[str, Any] = {}
    for slot in range(1, SUPPLIER_SLOTS + 1):
        name_col, price_col = _supplier_columns(slot)
        if slot <= len(prices):
            cells[name_col] = prices[slot - 1].supplier
            cells[price_col] = prices[slot - 1].unit_price
        else:
            cells[name_col] = ""
            cells[price_col] = ""
    return cells


# -------------------------
# CAM sheets
# -------------------------
CAM_GUIDE = [
    "한 행은 하나의 T번호(공구 위치)입니다.",
    "Model + Process + CAM Version 이 같은 행은 하나의 CAM Sheet로 묶입니다.",
    "Model, Process 는 설정에 등록된 값만 사용할 수 있습니다.",
    "T Number 는 설정된 범위 안의 정수여야 합니다.",
    f"Tool Life 를 비워두면 {DEFAULT_TOOL_LIFE} 으로 등록됩니다.",
    "이미 등록된 Model/Process/CAM Version 조합은 중복으로 표시되고 등록되지 않습니다.",
]


def cam_sheet_template(path: str, settings: SettingsProvider) -> None:
    model = settings.models[0]
    process = settings.processes[0]
    sample = [
        [model, process, "v1.0", 1, "AT001", "FLAT", "FLAT 12mm 4F", 2000],
        [model, process, "v1.0", 2, "AT002", "BALL", "BALL 6mm 2F", 1500],
        [model, process, "v1.0", 3, "AT003", "T-CUT", "T-CUT 8mm", 1800],
    ]
    df = pd.DataFrame(sample, columns=CAM_SHEET_HEADERS)
    write_workbook(path, {"CAM Sheet": df}, CAM_SHEET_REQUIRED, CAM_GUIDE)


def export_cam_sheets(path: str, sheets: Iterable[CAMSheet]) -> int:
    rows = []
    for s in sheets:
        for e in s.endmills:
            rows.append([s.model, s.process, s.cam_version, e.t_number, e.endmill_code,
                         e.category, e.endmill_name, e.tool_life])
    write_workbook(path, {"CAM Sheets": pd.DataFrame(rows, columns=CAM_SHEET_HEADERS)}, CAM_SHEET_REQUIRED)
    return len(rows)


def validate_cam_rows(df: pd.DataFrame, settings: SettingsProvider,
                      existing: Iterable[CAMSheet] = ()) -> ImportReport[CAMSheet]:
    report: ImportReport[CAMSheet] = ImportReport()
    if not _check_columns(df, CAM_SHEET_REQUIRED, report):
        return report

    t_min, t_max = settings.t_number_range
    groups: Dict[Tuple[str, str, str], CAMSheet] = {}
    t_rows: Dict[Tuple[str, str, str, int], int] = {}

    for row, rec in _records(df):
        if not _require_fields(rec, CAM_SHEET_REQUIRED, row, report):
            continue
        model = safe_str(rec.get("Model"))
        process = safe_str(rec.get("Process"))
        version = safe_str(rec.get("CAM Version"))
        ok = _check_allowed(model, settings.models, "Model", row, report)
        ok = _check_allowed(process, settings.processes, "Process", row, report) and ok

        t_raw = rec.get("T Number")
        t_number = safe_int(t_raw, 0)
        if not is_number(t_raw) or not t_min <= t_number <= t_max:
            report.error(row, f"T Number must be between {t_min} and {t_max} (got {safe_str(t_raw)})")
            ok = False

        life_raw = rec.get("Tool Life")
        tool_life = DEFAULT_TOOL_LIFE
        if safe_str(life_raw) != "":
            if not is_number(life_raw):
                report.error(row, f"Tool Life must be a number (got {safe_str(life_raw)})")
                ok = False
            else:
                tool_life = safe_int(life_raw)
                if tool_life < 0:
                    report.warn(row, f"Tool Life is negative ({tool_life})")

        category = safe_str(rec.get("Category"))
        if category and category not in settings.categories:
            report.warn(row, f"Unrecognized category '{category}'")

        key = (model, process, version)
        if ok and (key + (t_number,)) in t_rows:
            report.error(row, f"T{t_number} already used in row {t_rows[key + (t_number,)]} "
                              f"for {model}/{process}/{version}")
            ok = False
        if not ok:
            continue
        t_rows[key + (t_number,)] = row

        sheet = groups.setdefault(key, CAMSheet(id=0, model=model, process=process, cam_version=version))
        sheet.endmills.append(EndmillInfo(
            t_number=t_number,
            endmill_code=safe_str(rec.get("Endmill Code")),
            endmill_name=safe_str(rec.get("Endmill Name")),
            specifications=safe_str(rec.get("Specifications")),
            tool_life=tool_life,
            category=category,
        ))

    new_sheets, duplicates = partition_duplicates(groups.values(), existing)
    report.rows = new_sheets
    report.duplicates = duplicates
    for d in duplicates:
        report.warn(0, f"CAM sheet {d.model}/{d.process}/{d.cam_version} already exists and will be skipped")
    return report


def partition_duplicates(incoming: Iterable[CAMSheet],
                         existing: Iterable[CAMSheet]) -> Tuple[List[CAMSheet], List[CAMSheet]]:
    """Split incoming sheets into (new, duplicate) by (model, process, cam_version)."""
    known = {s.key for s in existing}
    new_sheets, duplicates = [], []
    for s in incoming:
        (duplicates if s.key in known else new_sheets).append(s)
    return new_sheets, duplicates


def import_cam_sheets(path: str, settings: SettingsProvider,
                      existing: Iterable[CAMSheet] = ()) -> ImportReport[CAMSheet]:
    return validate_cam_rows(read_sheet(path), settings, existing)


# -------------------------
# Equipment
# -------------------------
EQUIPMENT_GUIDE = [
    "설비번호: C + 숫자 3자리 (예: C001)",
    "위치, 상태, 생산모델, 공정: 설정에 등록된 값만 사용할 수 있습니다.",
    "상태: 가동중 / 점검중 / 셋업중",
    "파일 안에서 같은 설비번호를 두 번 쓸 수 없습니다.",
]


def equipment_template(path: str, settings: SettingsProvider) -> None:
    statuses = settings.equipment_statuses
    sample = [
        ["C001", settings.locations[0], statuses[0], settings.models[0], settings.processes[0]],
        ["C002", settings.locations[-1], statuses[-1], settings.models[-1], settings.processes[-1]],
    ]
    write_workbook(path, {"설비": pd.DataFrame(sample, columns=EQUIPMENT_HEADERS)},
                   EQUIPMENT_HEADERS, EQUIPMENT_GUIDE)


def export_equipment(path: str, equipment: Iterable[Equipment]) -> int:
    rows = [[e.equipment_number, e.location, e.status, e.current_model, e.process] for e in equipment]
    write_workbook(path, {"설비": pd.DataFrame(rows, columns=EQUIPMENT_HEADERS)}, EQUIPMENT_HEADERS)
    return len(rows)


def validate_equipment_rows(df: pd.DataFrame, settings: SettingsProvider,
                            existing_numbers: Iterable[str] = ()) -> ImportReport[Equipment]:
    report: ImportReport[Equipment] = ImportReport()
    if not _check_columns(df, EQUIPMENT_HEADERS, report):
        return report

    known = set(existing_numbers)
    seen: Dict[str, int] = {}
    for row, rec in _records(df):
        if not _require_fields(rec, EQUIPMENT_HEADERS, row, report):
            continue
        number = safe_str(rec.get("설비번호")).upper()
        location = safe_str(rec.get("위치"))
        status = safe_str(rec.get("상태"))
        model = safe_str(rec.get("생산모델"))
        process = safe_str(rec.get("공정"))

        ok = True
        if not EQUIPMENT_NUMBER_RE.match(number):
            report.error(row, f"설비번호 '{number}' must look like C001")
            ok = False
        ok = _check_allowed(location, settings.locations, "위치", row, report) and ok
        ok = _check_allowed(status, settings.equipment_statuses, "상태", row, report) and ok
        ok = _check_allowed(model, settings.models, "생산모델", row, report) and ok
        ok = _check_allowed(process, settings.processes, "공정", row, report) and ok
        if number in seen:
            report.error(row, f"설비번호 {number} repeats row {seen[number]}")
            ok = False
        seen.setdefault(number, row)
        if not ok:
            continue

        equipment = Equipment(
            id=0,
            equipment_number=number,
            location=location,
            status=status,
            current_model=model,
            process=process,
            tool_position_count=settings.tool_position_count,
        )
        if number in known:
            report.duplicates.append(equipment)
            report.warn(row, f"설비번호 {number} already exists and will be skipped")
        else:
            report.rows.append(equipment)
    return report


def import_equipment(path: str, settings: SettingsProvider,
                     existing_numbers: Iterable[str] = ()) -> ImportReport[Equipment]:
    return validate_equipment_rows(read_sheet(path), settings, existing_numbers)


# -------------------------
# Inventory
# -------------------------
INVENTORY_GUIDE = [
    "앤드밀코드, 현재고, 최소재고, 최대재고는 필수입니다.",
    "재고 수량은 0 이상의 숫자여야 합니다.",
    "카테고리는 설정에 등록된 값만 사용할 수 있습니다.",
    "공급업체와 단가(VND)는 짝으로 입력합니다. 최대 3곳까지 입력할 수 있습니다.",
    "이미 등록된 앤드밀코드는 재고 수량이 갱신됩니다.",
]


def inventory_template(path: str, settings: SettingsProvider) -> None:
    defaults = settings.default_stock
    suppliers = settings.suppliers
    row = {
        "앤드밀코드": "AT001", "앤드밀이름": "FLAT 12mm 4F", "카테고리": settings.categories[0],
        "현재고": 50, "최소재고": defaults["min_stock"], "최대재고": defaults["max_stock"], "위치": "A-01",
    }
    row.update(_supplier_cells([SupplierPrice(suppliers[0], 150000.0)]))
    df = pd.DataFrame([row], columns=INVENTORY_HEADERS)
    write_workbook(path, {"재고": df}, INVENTORY_REQUIRED, INVENTORY_GUIDE, guide_name="작성가이드")


def export_inventory(path: str, records: Iterable[InventoryRecord],
                     prices: Optional[Dict[str, List[SupplierPrice]]] = None) -> int:
    prices = prices or {}
    rows = []
    for r in records:
        row = {
            "앤드밀코드": r.endmill_code,
            "앤드밀이름": r.endmill_name,
            "카테고리": r.category,
            "현재고": r.current_stock,
            "최소재고": r.min_stock,
            "최대재고": r.max_stock,
            "위치": r.location,
        }
        row.update(_supplier_cells(prices.get(r.endmill_code, [])))
        rows.append(row)
    write_workbook(path, {"재고": pd.DataFrame(rows, columns=INVENTORY_HEADERS)}, INVENTORY_REQUIRED)
    return len(rows)


def validate_inventory_rows(df: pd.DataFrame, settings: SettingsProvider) -> ImportReport[InventoryImportRow]:
    report: ImportReport[InventoryImportRow] = ImportReport()
    if not _check_columns(df, INVENTORY_REQUIRED, report):
        return report

    seen: Dict[str, int] = {}
    for row, rec in _records(df):
        if not _require_fields(rec, INVENTORY_REQUIRED, row, report):
            continue
        code = safe_str(rec.get("앤드밀코드"))
        category = safe_str(rec.get("카테고리"))

        ok = True
        if category and not _check_allowed(category, settings.categories, "카테고리", row, report):
            ok = False
        current = _non_negative_int(rec, "현재고", row, report)
        minimum = _non_negative_int(rec, "최소재고", row, report)
        maximum = _non_negative_int(rec, "최대재고", row, report)
        if current is None or minimum is None or maximum is None:
            ok = False
        suppliers = _read_suppliers(rec, settings.suppliers, row, report)
        if not ok:
            continue

        if minimum >= maximum:
            report.warn(row, f"최소재고 ({minimum}) is not below 최대재고 ({maximum})")
        if current > maximum:
            report.warn(row, f"현재고 ({current}) is above 최대재고 ({maximum})")
        elif current <= minimum:
            report.warn(row, f"현재고 ({current}) is at or below 최소재고 ({minimum})")
        if code in seen:
            report.warn(row, f"앤드밀코드 {code} repeats row {seen[code]}; the later row wins")
        seen.setdefault(code, row)

        report.rows.append(InventoryImportRow(
            record=InventoryRecord(
                id=0,
                endmill_code=code,
                endmill_name=safe_str(rec.get("앤드밀이름")),
                category=category,
                current_stock=current,
                min_stock=minimum,
                max_stock=maximum,
                location=safe_str(rec.get("위치")),
            ),
            suppliers=suppliers,
        ))
    return report


def import_inventory(path: str, settings: SettingsProvider) -> ImportReport[InventoryImportRow]:
    return validate_inventory_rows(read_sheet(path), settings)


# -------------------------
# Tool changes
# -------------------------
TOOL_CHANGE_GUIDE = [
    "설비번호: C + 숫자 3자리 (예: C001)",
    "생산모델, 공정, 교체사유: 설정에 등록된 값만 사용할 수 있습니다.",
    "T번호는 설정된 범위 안의 정수, 실제Tool life 는 0 이상의 숫자입니다.",
    "같은 파일 안에서 설비번호 + T번호 조합은 한 번만 쓸 수 있습니다.",
    "설비번호는 설비 관리에 등록된 번호만 사용할 수 있습니다.",
    "CAM Sheet 에 없는 T번호나 다른 앤드밀코드가 있는 행은 등록되지 않습니다.",
]


def tool_change_template(path: str, settings: SettingsProvider) -> None:
    sample = [["C001", settings.models[0], settings.processes[0], 1, "AT001", "FLAT 12mm 4F",
               1950, settings.default_reason, "홍길동"]]
    write_workbook(path, {"교체실적": pd.DataFrame(sample, columns=TOOL_CHANGE_HEADERS)},
                   TOOL_CHANGE_REQUIRED, TOOL_CHANGE_GUIDE)


def export_tool_changes(path: str, changes: Iterable[ToolChange]) -> int:
    headers = ["교체일자"] + TOOL_CHANGE_HEADERS
    rows = [[c.change_date, c.equipment_number, c.production_model, c.process, c.t_number,
             c.endmill_code, c.endmill_name, c.tool_life, c.change_reason, c.changed_by]
            for c in changes]
    write_workbook(path, {"교체실적": pd.DataFrame(rows, columns=headers)}, TOOL_CHANGE_REQUIRED)
    return len(rows)


def check_against_cam(change: ToolChange, cam_sheets: Sequence[CAMSheet]) -> Optional[str]:
    """Error text when a tool change does not line up with any CAM sheet."""
    matching = [s for s in cam_sheets if s.model == change.production_model and s.process == change.process]
    if not matching:
        return f"No CAM sheet for {change.production_model}/{change.process}"
    for s in matching:
        for e in s.endmills:
            if e.t_number == change.t_number:
                if e.endmill_code and e.endmill_code != change.endmill_code:
                    return (f"T{change.t_number} is {e.endmill_code} in CAM sheet "
                            f"{s.cam_version}, not {change.endmill_code}")
                return None
    return f"T{change.t_number} is not in any CAM sheet for {change.production_model}/{change.process}"


def validate_tool_change_rows(df: pd.DataFrame, settings: SettingsProvider,
                              cam_sheets: Optional[Sequence[CAMSheet]] = None,
                              equipment_numbers: Optional[Iterable[str]] = None) -> ImportReport[ToolChange]:
    """Rows that disagree with the CAM sheets or name unregistered equipment are rejected."""
    report: ImportReport[ToolChange] = ImportReport()
    registered = None if equipment_numbers is None else {safe_str(n).upper() for n in equipment_numbers}
    if not _check_columns(df, TOOL_CHANGE_REQUIRED, report):
        return report

    t_min, t_max = settings.t_number_range
    seen: Dict[Tuple[str, int], int] = {}
    for row, rec in _records(df):
        if not _require_fields(rec, TOOL_CHANGE_REQUIRED, row, report):
            continue
        number = safe_str(rec.get("설비번호")).upper()
        model = safe_str(rec.get("생산모델"))
        process = safe_str(rec.get("공정"))
        reason = safe_str(rec.get("교체사유"))

        ok = True
        if not EQUIPMENT_NUMBER_RE.match(number):
            report.error(row, f"설비번호 '{number}' must look like C001")
            ok = False
        elif registered is not None and number not in registered:
            report.error(row, f"설비번호 {number} is not registered")
            ok = False
        ok = _check_allowed(model, settings.models, "생산모델", row, report) and ok
        ok = _check_allowed(process, settings.processes, "공정", row, report) and ok
        ok = _check_allowed(reason, settings.change_reasons, "교체사유", row, report) and ok

        t_raw = rec.get("T번호")
        t_number = safe_int(t_raw, 0)
        if not is_number(t_raw) or not t_min <= t_number <= t_max:
            report.error(row, f"T번호 must be between {t_min} and {t_max} (got {safe_str(t_raw)})")
            ok = False
        life = _non_negative_int(rec, "실제Tool life", row, report)
        if life is None:
            ok = False

        key = (number, t_number)
        if ok and key in seen:
            report.error(row, f"{number} T{t_number} repeats row {seen[key]}")
            ok = False
        if not ok:
            continue
        seen[key] = row

        change = ToolChange(
            id=0,
            equipment_number=number,
            production_model=model,
            process=process,
            t_number=t_number,
            endmill_code=safe_str(rec.get("앤드밀코드")),
            endmill_name=safe_str(rec.get("앤드밀이름")),
            tool_life=life,
            change_reason=reason,
            changed_by=safe_str(rec.get("교체자")),
        )
        if cam_sheets is not None:
            mismatch = check_against_cam(change, cam_sheets)
            if mismatch:
                report.error(row, mismatch)
                continue
        report.rows.append(change)
    return report


def import_tool_changes(path: str, settings: SettingsProvider,
                        cam_sheets: Optional[Sequence[CAMSheet]] = None,
                        equipment_numbers: Optional[Iterable[str]] = None) -> ImportReport[ToolChange]:
    return validate_tool_change_rows(read_sheet(path), settings, cam_sheets, equipment_numbers)


# -------------------------
# Endmill master
# -------------------------
ENDMILL_MASTER_GUIDE = [
    "앤드밀코드, 카테고리, 앤드밀이름은 필수입니다.",
    "카테고리는 설정에 등록된 값만 사용할 수 있습니다.",
    "직경, 날수, 표준수명, 재고 수량은 0 이상의 숫자입니다.",
    "권장재고는 최소재고와 최대재고 사이로 입력합니다.",
    "품질등급: " + ", ".join(QUALITY_GRADES),
    "이미 등록된 앤드밀코드는 중복으로 표시되고 등록되지 않습니다.",
]

_MASTER_NUMERIC = {
    "날수": "flutes",
    "표준수명": "standard_life",
    "최소재고": "min_stock",
    "최대재고": "max_stock",
    "권장재고": "recommended_stock",
}


def endmill_master_template(path: str, settings: SettingsProvider) -> None:
    defaults = settings.default_stock
    row = {
        "앤드밀코드": "AT001", "Type": "FLAT", "카테고리": settings.categories[0],
        "앤드밀이름": "FLAT 12mm 4F", "직경(mm)": 12, "날수": 4, "코팅": "AlTiN", "소재": "초경",
        "공차": "h6", "나선각": "35°", "표준수명": defaults["standard_life"],
        "최소재고": defaults["min_stock"], "최대재고": defaults["max_stock"], "권장재고": 50,
        "품질등급": "A", "설명": "",
    }
    row.update(_supplier_cells([SupplierPrice(settings.suppliers[0], 150000.0)]))
    df = pd.DataFrame([row], columns=ENDMILL_MASTER_HEADERS)
    write_workbook(path, {"앤드밀": df}, ENDMILL_MASTER_REQUIRED, ENDMILL_MASTER_GUIDE, guide_name="작성가이드")


def export_endmill_types(path: str, types: Iterable[EndmillType]) -> int:
    rows = []
    for t in types:
        row = {
            "앤드밀코드": t.code, "Type": t.specifications, "카테고리": t.category, "앤드밀이름": t.name,
            "직경(mm)": t.diameter, "날수": t.flutes, "코팅": t.coating, "소재": t.material,
            "공차": t.tolerance, "나선각": t.helix, "표준수명": t.standard_life,
            "최소재고": t.min_stock, "최대재고": t.max_stock, "권장재고": t.recommended_stock,
            "품질등급": t.quality_grade, "설명": t.description,
        }
        row.update(_supplier_cells(t.suppliers))
        rows.append(row)
    write_workbook(path, {"앤드밀": pd.DataFrame(rows, columns=ENDMILL_MASTER_HEADERS)}, ENDMILL_MASTER_REQUIRED)
    return len(rows)


def validate_endmill_master_rows(df: pd.DataFrame, settings: SettingsProvider,
                                 existing_codes: Iterable[str] = ()) -> ImportReport[EndmillType]:
    report: ImportReport[EndmillType] = ImportReport()
    if not _check_columns(df, ENDMILL_MASTER_REQUIRED, report):
        return report

    known = set(existing_codes)
    seen: Dict[str, int] = {}
    for row, rec in _records(df):
        if not _require_fields(rec, ENDMILL_MASTER_REQUIRED, row, report):
            continue
        code = safe_str(rec.get("앤드밀코드"))
        category = safe_str(rec.get("카테고리"))
        ok = _check_allowed(category, settings.categories, "카테고리", row, report)

        numbers: Dict[str, int] = {}
        for col, attr in _MASTER_NUMERIC.items():
            value = _non_negative_int(rec, col, row, report)
            if value is None:
                ok = False
            else:
                numbers[attr] = value
        diameter_raw = rec.get("직경(mm)")
        if safe_str(diameter_raw) and (not is_number(diameter_raw) or safe_float(diameter_raw) < 0):
            report.error(row, "직경(mm) must be a number of 0 or more")
            ok = False
        if code in seen:
            report.error(row, f"앤드밀코드 {code} repeats row {seen[code]}")
            ok = False
        seen.setdefault(code, row)
        suppliers = _read_suppliers(rec, settings.suppliers, row, report)
        if not ok:
            continue

        if numbers["min_stock"] >= numbers["max_stock"] and numbers["max_stock"]:
            report.warn(row, f"최소재고 ({numbers['min_stock']}) is not below 최대재고 ({numbers['max_stock']})")
        recommended = numbers["recommended_stock"]
        if recommended and not numbers["min_stock"] <= recommended <= numbers["max_stock"]:
            report.warn(row, f"권장재고 ({recommended}) is outside 최소재고..최대재고")
        grade = safe_str(rec.get("품질등급"))
        if grade and grade not in QUALITY_GRADES:
            report.warn(row, f"Unknown 품질등급 '{grade}'")

        endmill = EndmillType(
            code=code,
            name=safe_str(rec.get("앤드밀이름")),
            category=category,
            specifications=safe_str(rec.get("Type")),
            diameter=safe_float(diameter_raw, 0.0),
            coating=safe_str(rec.get("코팅")),
            material=safe_str(rec.get("소재")),
            tolerance=safe_str(rec.get("공차")),
            helix=safe_str(rec.get("나선각")),
            quality_grade=grade,
            description=safe_str(rec.get("설명")),
            suppliers=suppliers,
            flutes=numbers["flutes"],
            standard_life=numbers["standard_life"] or settings.default_stock["standard_life"],
            min_stock=numbers["min_stock"],
            max_stock=numbers["max_stock"],
            recommended_stock=recommended,
        )
        if code in known:
            report.duplicates.append(endmill)
            report.warn(row, f"앤드밀코드 {code} already exists and will be skipped")
        else:
            report.rows.append(endmill)
    return report


def import_endmill_master(path: str, settings: SettingsProvider,
                          existing_codes: Iterable[str] = ()) -> ImportReport[EndmillType]:
    return validate_endmill_master_rows(read_sheet(path), settings, existing_codes)


# -------------------------
# Disposals (export only)
# -------------------------
DISPOSAL_HEADERS = ["폐기일자", "수량", "무게(kg)", "검사자", "검토자", "비고"]


def export_disposals(path: str, disposals: Iterable[EndmillDisposal]) -> int:
    rows = [[d.disposal_date, d.quantity, d.weight_kg, d.inspector, d.reviewer, d.notes] for d in disposals]
    write_workbook(path, {"폐기": pd.DataFrame(rows, columns=DISPOSAL_HEADERS)})
    return len(rows)
