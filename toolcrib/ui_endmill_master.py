# toolcrib/ui_endmill_master.py
from __future__ import annotations

import tkinter as tk

from . import accessors
from .config import QUALITY_GRADES, SUPPLIER_SLOTS
from .excel_io import endmill_master_template, export_endmill_types, import_endmill_master
from .models import EndmillType, SupplierPrice
from .storage import is_number, safe_float
from .table import NUMBER
from .ui_common import ListScreen

NUMERIC_FIELDS = ("diameter", "flutes", "standard_life", "min_stock", "max_stock", "recommended_stock")


class EndmillMasterUI(ListScreen):
    """Endmill type catalogue with up to three supplier prices per code."""

    title = "Endmill Master"
    columns = (
        ("code", "Code", 100),
        ("name", "Name", 200),
        ("category", "Category", 90),
        ("diameter", "Dia (mm)", 70),
        ("flutes", "Flutes", 60),
        ("coating", "Coating", 80),
        ("standard_life", "Std Life", 80),
        ("quality_grade", "Grade", 60),
        ("supplier_count", "Suppliers", 70),
    )
    search_fields = ("code", "name", "specifications", "description")
    column_kinds = {"diameter": NUMBER, "flutes": NUMBER, "standard_life": NUMBER, "supplier_count": NUMBER}
    feed_tables = ("endmill_types", "supplier_prices")

    def fetch(self):
        return accessors.fetch_endmill_types()

    def record_id(self, t: EndmillType):
        return t.code

    def filter_options(self):
        return [("category", "Category", self.settings.categories), ("quality_grade", "Grade", QUALITY_GRADES)]

    def row_values(self, t: EndmillType):
        return (t.code, t.name, t.category, t.diameter, t.flutes, t.coating, t.standard_life,
                t.quality_grade, t.supplier_count)

    def build_toolbar(self, bar):
        super().build_toolbar(bar)
        tk.Button(bar, text="Template", command=lambda: self.save_template(
            lambda p: endmill_master_template(p, self.settings), "endmill_master")).pack(side="left", padx=4)
        tk.Button(bar, text="Import", command=self.import_excel).pack(side="left", padx=4)
        tk.Button(bar, text="Export", command=lambda: self.export_rows(
            lambda p: export_endmill_types(p, self.page.arranged()), "endmill_master")).pack(side="left", padx=4)

    # -------------------------
    def _fields(self):
        suppliers = [""] + self.settings.suppliers
        fields = [
            ("code", "Endmill Code", None),
            ("name", "Name", None),
            ("category", "Category", self.settings.categories),
            ("specifications", "Type / Specs", None),
            ("diameter", "Diameter (mm)", None),
            ("flutes", "Flutes", None),
            ("coating", "Coating", None),
            ("material", "Material", None),
            ("tolerance", "Tolerance", None),
            ("helix", "Helix", None),
            ("standard_life", "Standard Life", None),
            ("min_stock", "Min Stock", None),
            ("max_stock", "Max Stock", None),
            ("recommended_stock", "Recommended Stock", None),
            ("quality_grade", "Quality Grade", [""] + QUALITY_GRADES),
            ("description", "Description", None),
        ]
        for slot in range(1, SUPPLIER_SLOTS + 1):
            fields.append((f"supplier{slot}", f"Supplier {slot}", suppliers))
            fields.append((f"price{slot}", f"Supplier {slot} Price (VND)", None))
        return fields

    def _values(self, t: EndmillType):
        values = t.to_record()
        values["code"] = t.code
        for slot, p in enumerate(t.suppliers[:SUPPLIER_SLOTS], start=1):
            values[f"supplier{slot}"] = p.supplier
            values[f"price{slot}"] = p.unit_price
        return values

    def _build(self, values, editing: bool) -> EndmillType:
        code = values["code"]
        if not code or not values["name"]:
            raise ValueError("Endmill code and name are required")
        if not editing and any(t.code == code for t in self.page.rows):
            raise ValueError(f"Endmill {code} already exists")
        for name in NUMERIC_FIELDS:
            if values[name] and (not is_number(values[name]) or safe_float(values[name], 0.0) < 0):
                raise ValueError(f"{name.replace('_', ' ').title()} must be 0 or more")
        suppliers = []
        for slot in range(1, SUPPLIER_SLOTS + 1):
            supplier, price = values.pop(f"supplier{slot}", ""), values.pop(f"price{slot}", "")
            if not supplier:
                continue
            if price and not is_number(price):
                raise ValueError(f"Supplier {slot} price must be a number")
            suppliers.append(SupplierPrice(supplier, safe_float(price, 0.0)))
        t = EndmillType.from_row(values)
        t.suppliers = suppliers
        return t

    def open_editor(self, t=None):
        if t is None:
            defaults = self.settings.default_stock
            values = {"category": self.settings.categories[0], "standard_life": defaults["standard_life"],
                      "min_stock": defaults["min_stock"], "max_stock": defaults["max_stock"]}
            self.dialog("Add Endmill", self._fields(), values, lambda v: self._save(v, False))
        else:
            self.dialog(f"Edit Endmill - {t.code}", self._fields(), self._values(t),
                        lambda v: self._save({**v, "code": t.code}, True), readonly=("code",))

    def _save(self, values, editing: bool):
        verb = "Updated" if editing else "Added"
        return self.save_from_dialog(lambda: accessors.save_endmill_types([self._build(values, editing)]),
                                     f"Endmill {verb.lower()}.", f"{verb} endmill type {values['code']}")

    def delete_record(self, t: EndmillType):
        accessors.delete_endmill_type(t.code)

    def import_excel(self):
        existing = [t.code for t in self.page.rows]
        self.import_rows(lambda p: import_endmill_master(p, self.settings, existing),
                         lambda report: accessors.save_endmill_types(report.rows), "endmill")
