# toolcrib/models.py
"""
Typed records for every table the screens touch.

Rows coming back from the database (or a parsed workbook) go through
`from_row` once, where blanks and missing keys are resolved to concrete
defaults. Code past that point can rely on every field being present.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping

from .config import DEFAULT_TOOL_LIFE, EQUIPMENT_STATUSES, STATUS_RUNNING
from .stock import stock_fill_percent, stock_status
from .storage import safe_float, safe_int, safe_str


@dataclass
class EndmillInfo:
    t_number: int
    endmill_code: str
    endmill_name: str = ""
    specifications: str = ""
    tool_life: int = DEFAULT_TOOL_LIFE
    category: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EndmillInfo":
        return cls(
            t_number=safe_int(row.get("t_number"), 0),
            endmill_code=safe_str(row.get("endmill_code")),
            endmill_name=safe_str(row.get("endmill_name")),
            specifications=safe_str(row.get("specifications")),
            tool_life=safe_int(row.get("tool_life"), DEFAULT_TOOL_LIFE),
            category=safe_str(row.get("category")),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CAMSheet:
    id: int
    model: str
    process: str
    cam_version: str
    version_date: str = ""
    endmills: List[EndmillInfo] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.model, self.process, self.cam_version)

    @property
    def endmill_count(self) -> int:
        return len(self.endmills)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CAMSheet":
        return cls(
            id=safe_int(row.get("id"), 0),
            model=safe_str(row.get("model")),
            process=safe_str(row.get("process")),
            cam_version=safe_str(row.get("cam_version")),
            version_date=safe_str(row.get("version_date")),
            endmills=[EndmillInfo.from_row(e) for e in (row.get("endmills") or [])],
            created_at=safe_str(row.get("created_at")),
            updated_at=safe_str(row.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "process": self.process,
            "cam_version": self.cam_version,
            "version_date": self.version_date,
        }


@dataclass
class ToolChange:
    id: int
    equipment_number: str
    production_model: str
    process: str
    t_number: int
    endmill_code: str
    endmill_name: str = ""
    tool_life: int = 0
    change_reason: str = ""
    changed_by: str = ""
    change_date: str = ""
    created_at: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ToolChange":
        created = safe_str(row.get("created_at"))
        return cls(
            id=safe_int(row.get("id"), 0),
            equipment_number=safe_str(row.get("equipment_number")),
            production_model=safe_str(row.get("production_model")),
            process=safe_str(row.get("process")),
            t_number=safe_int(row.get("t_number"), 0),
            endmill_code=safe_str(row.get("endmill_code")),
            endmill_name=safe_str(row.get("endmill_name")),
            tool_life=safe_int(row.get("tool_life"), 0),
            change_reason=safe_str(row.get("change_reason")),
            changed_by=safe_str(row.get("changed_by")),
            change_date=safe_str(row.get("change_date"), created[:10]),
            created_at=created,
        )

    def to_record(self) -> Dict[str, Any]:
        rec = asdict(self)
        rec.pop("id")
        rec.pop("created_at")
        return rec


@dataclass
class InventoryRecord:
    id: int
    endmill_code: str
    endmill_name: str = ""
    category: str = ""
    current_stock: int = 0
    min_stock: int = 0
    max_stock: int = 0
    location: str = ""

    @property
    def status(self) -> str:
        return stock_status(self.current_stock, self.min_stock, self.max_stock)

    @property
    def fill_percent(self) -> int:
        return stock_fill_percent(self.current_stock, self.max_stock)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "InventoryRecord":
        return cls(
            id=safe_int(row.get("id"), 0),
            endmill_code=safe_str(row.get("endmill_code")),
            endmill_name=safe_str(row.get("endmill_name")),
            category=safe_str(row.get("category")),
            current_stock=safe_int(row.get("current_stock"), 0),
            min_stock=safe_int(row.get("min_stock"), 0),
            max_stock=safe_int(row.get("max_stock"), 0),
            location=safe_str(row.get("location")),
        )

    def to_record(self) -> Dict[str, Any]:
        rec = asdict(self)
        rec.pop("id")
        return rec


@dataclass
class Equipment:
    id: int
    equipment_number: str
    location: str = ""
    status: str = STATUS_RUNNING
    current_model: str = ""
    process: str = ""
    tool_position_count: int = 21

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Equipment":
        status = safe_str(row.get("status"), STATUS_RUNNING)
        return cls(
            id=safe_int(row.get("id"), 0),
            equipment_number=safe_str(row.get("equipment_number")),
            location=safe_str(row.get("location")),
            status=status if status in EQUIPMENT_STATUSES else STATUS_RUNNING,
            current_model=safe_str(row.get("current_model")),
            process=safe_str(row.get("process")),
            tool_position_count=safe_int(row.get("tool_position_count"), 21),
        )

    def to_record(self) -> Dict[str, Any]:
        rec = asdict(self)
        rec.pop("id")
        return rec


@dataclass
class EndmillDisposal:
    id: int
    disposal_date: str
    quantity: int = 0
    weight_kg: float = 0.0
    inspector: str = ""
    reviewer: str = ""
    image_url: str = ""
    notes: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EndmillDisposal":
        return cls(
            id=safe_int(row.get("id"), 0),
            disposal_date=safe_str(row.get("disposal_date")),
            quantity=safe_int(row.get("quantity"), 0),
            weight_kg=safe_float(row.get("weight_kg"), 0.0),
            inspector=safe_str(row.get("inspector")),
            reviewer=safe_str(row.get("reviewer")),
            image_url=safe_str(row.get("image_url")),
            notes=safe_str(row.get("notes")),
        )

    def to_record(self) -> Dict[str, Any]:
        rec = asdict(self)
        rec.pop("id")
        return rec


@dataclass
class SupplierPrice:
    supplier: str
    unit_price: float = 0.0


@dataclass
class EndmillType:
    code: str
    name: str = ""
    category: str = ""
    specifications: str = ""
    diameter: float = 0.0
    flutes: int = 0
    coating: str = ""
    material: str = ""
    tolerance: str = ""
    helix: str = ""
    standard_life: int = DEFAULT_TOOL_LIFE
    min_stock: int = 0
    max_stock: int = 0
    recommended_stock: int = 0
    quality_grade: str = ""
    description: str = ""
    suppliers: List[SupplierPrice] = field(default_factory=list)

    @property
    def supplier_count(self) -> int:
        return len(self.suppliers)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EndmillType":
        return cls(
            code=safe_str(row.get("code")),
            name=safe_str(row.get("name")),
            category=safe_str(row.get("category")),
            specifications=safe_str(row.get("specifications")),
            diameter=safe_float(row.get("diameter"), 0.0),
            flutes=safe_int(row.get("flutes"), 0),
            coating=safe_str(row.get("coating")),
            material=safe_str(row.get("material")),
            tolerance=safe_str(row.get("tolerance")),
            helix=safe_str(row.get("helix")),
            standard_life=safe_int(row.get("standard_life"), DEFAULT_TOOL_LIFE),
            min_stock=safe_int(row.get("min_stock"), 0),
            max_stock=safe_int(row.get("max_stock"), 0),
            recommended_stock=safe_int(row.get("recommended_stock"), 0),
            quality_grade=safe_str(row.get("quality_grade")),
            description=safe_str(row.get("description")),
            suppliers=[
                SupplierPrice(safe_str(p.get("supplier")), safe_float(p.get("unit_price"), 0.0))
                for p in (row.get("suppliers") or [])
            ],
        )

    def to_record(self) -> Dict[str, Any]:
        rec = asdict(self)
        rec.pop("code")
        rec.pop("suppliers")
        return rec


@dataclass
class InventoryTransaction:
    id: int
    endmill_code: str
    transaction_type: str
    quantity: int = 0
    equipment_number: str = ""
    t_number: int = 0
    purpose: str = ""
    supplier: str = ""
    unit_price: float = 0.0
    processed_by: str = ""
    notes: str = ""
    created_at: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "InventoryTransaction":
        return cls(
            id=safe_int(row.get("id"), 0),
            endmill_code=safe_str(row.get("endmill_code")),
            transaction_type=safe_str(row.get("transaction_type")),
            quantity=safe_int(row.get("quantity"), 0),
            equipment_number=safe_str(row.get("equipment_number")),
            t_number=safe_int(row.get("t_number"), 0),
            purpose=safe_str(row.get("purpose")),
            supplier=safe_str(row.get("supplier")),
            unit_price=safe_float(row.get("unit_price"), 0.0),
            processed_by=safe_str(row.get("processed_by")),
            notes=safe_str(row.get("notes")),
            created_at=safe_str(row.get("created_at")),
        )
