import pandas as pd
import pytest
from openpyxl import load_workbook

from toolcrib.config import CAM_SHEET_HEADERS, EQUIPMENT_HEADERS, TOOL_CHANGE_HEADERS
from toolcrib.excel_io import (
    cam_sheet_template,
    check_against_cam,
    export_endmill_types,
    export_inventory,
    import_endmill_master,
    import_inventory,
    partition_duplicates,
    read_sheet,
    validate_cam_rows,
    validate_equipment_rows,
    validate_tool_change_rows,
)
from toolcrib.models import CAMSheet, EndmillType, InventoryRecord, SupplierPrice


def cam_frame(rows):
    return pd.DataFrame(rows, columns=CAM_SHEET_HEADERS)


class TestWorkbooks:
    def test_template_has_styled_header_and_guide(self, tmp_path, settings):
        path = str(tmp_path / "cam.xlsx")
        cam_sheet_template(path, settings)
        wb = load_workbook(path)
        assert wb.sheetnames == ["CAM Sheet", "작성방법"]
        ws = wb["CAM Sheet"]
        assert [c.value for c in ws[1]] == CAM_SHEET_HEADERS
        assert ws["A1"].font.bold
        assert ws.freeze_panes == "A2"

    def test_template_imports_cleanly(self, tmp_path, settings):
        path = str(tmp_path / "cam.xlsx")
        cam_sheet_template(path, settings)
        report = validate_cam_rows(read_sheet(path), settings)
        assert report.ok
        assert len(report.rows) == 1
        assert report.rows[0].endmill_count == 3

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_text("not a workbook", encoding="utf-8")
        with pytest.raises(ValueError):
            read_sheet(str(path))

    def test_inventory_export_then_import(self, tmp_path, settings):
        records = [
            InventoryRecord(id=1, endmill_code="AT001", endmill_name="FLAT 12mm", category="FLAT",
                            current_stock=50, min_stock=20, max_stock=100, location="A-01"),
            InventoryRecord(id=2, endmill_code="AT002", endmill_name="BALL 6mm", category="BALL",
                            current_stock=35, min_stock=10, max_stock=60, location="A-02"),
        ]
        prices = {"AT001": [SupplierPrice("KORLOY", 150000.0), SupplierPrice("SANDVIK", 170000.0)]}
        path = str(tmp_path / "inventory.xlsx")
        assert export_inventory(path, records, prices) == 2

        report = import_inventory(path, settings)
        assert report.ok
        assert report.warnings == []
        assert [r.record.to_record() for r in report.rows] == [r.to_record() for r in records]
        assert report.rows[0].suppliers == prices["AT001"]
        assert report.rows[1].suppliers == []

    def test_endmill_master_duplicates_skipped(self, tmp_path, settings):
        path = str(tmp_path / "master.xlsx")
        export_endmill_types(path, [
            EndmillType(code="AT001", name="FLAT 12mm", category="FLAT", min_stock=20, max_stock=100),
            EndmillType(code="AT002", name="BALL 6mm", category="BALL", min_stock=20, max_stock=100),
        ])
        report = import_endmill_master(path, settings, existing_codes=["AT001"])
        assert report.ok
        assert [t.code for t in report.rows] == ["AT002"]
        assert [t.code for t in report.duplicates] == ["AT001"]


class TestCamValidation:
    def test_groups_rows_into_sheets(self, settings):
        report = validate_cam_rows(cam_frame([
            ["PA1", "CNC1", "v1", 1, "AT001", "FLAT", "FLAT 12mm", 2000],
            ["PA1", "CNC1", "v1", 2, "AT002", "BALL", "BALL 6mm", None],
            ["PA1", "CNC2", "v1", 1, "AT003", "T-CUT", "T-CUT 8mm", 1800],
        ]), settings)
        assert report.ok
        assert [(s.process, s.endmill_count) for s in report.rows] == [("CNC1", 2), ("CNC2", 1)]
        assert report.rows[0].endmills[1].tool_life == 2000

    def test_existing_version_is_duplicate(self, settings):
        existing = [CAMSheet(id=9, model="PA1", process="CNC2", cam_version="v1")]
        report = validate_cam_rows(cam_frame([
            ["PA1", "CNC2", "v1", 1, "AT003", "T-CUT", "", 1800],
            ["PA1", "CNC2", "v2", 1, "AT003", "T-CUT", "", 1800],
        ]), settings, existing)
        assert report.ok
        assert [s.cam_version for s in report.rows] == ["v2"]
        assert [s.cam_version for s in report.duplicates] == ["v1"]
        assert len(report.warnings) == 1

    def test_errors_and_warnings(self, settings):
        report = validate_cam_rows(cam_frame([
            ["PA1", "CNC1", "v1", 99, "AT001", "FLAT", "", 2000],
            ["PA1", "CNC1", "v1", 2, "AT002", "WEIRD", "", -5],
            ["ZZ9", "CNC1", "v1", 3, "AT003", "FLAT", "", 2000],
            ["PA1", "CNC1", "v1", 2, "AT004", "FLAT", "", 2000],
        ]), settings)
        assert not report.ok
        assert any(e.startswith("Row 2:") and "T Number" in e for e in report.errors)
        assert any(e.startswith("Row 4:") and "Model" in e for e in report.errors)
        assert any(e.startswith("Row 5:") and "T2" in e for e in report.errors)
        assert any("negative" in w for w in report.warnings)
        assert any("WEIRD" in w for w in report.warnings)

    def test_missing_column(self, settings):
        df = pd.DataFrame([["PA1", "CNC1"]], columns=["Model", "Process"])
        report = validate_cam_rows(df, settings)
        assert len(report.errors) == 1
        assert "CAM Version" in report.errors[0]

    def test_blank_rows_skipped(self, settings):
        report = validate_cam_rows(cam_frame([
            [None] * 8,
            ["PA1", "CNC1", "v1", 1, "AT001", "FLAT", "", 2000],
        ]), settings)
        assert report.ok
        assert len(report.rows) == 1

    def test_partition_duplicates(self):
        a = CAMSheet(id=0, model="PA1", process="CNC1", cam_version="v1")
        b = CAMSheet(id=0, model="PA1", process="CNC1", cam_version="v2")
        new, dup = partition_duplicates([a, b], [CAMSheet(id=1, model="PA1", process="CNC1", cam_version="v1")])
        assert (new, dup) == ([b], [a])


class TestEquipmentValidation:
    def test_number_format_and_repeats(self, settings):
        df = pd.DataFrame([
            ["C001", "A동", "가동중", "PA1", "CNC1"],
            ["X12", "A동", "가동중", "PA1", "CNC1"],
            ["c001", "A동", "가동중", "PA1", "CNC1"],
            ["C002", "A동", "고장", "PA1", "CNC1"],
        ], columns=EQUIPMENT_HEADERS)
        report = validate_equipment_rows(df, settings)
        assert [e.equipment_number for e in report.rows] == ["C001"]
        assert len(report.errors) == 3
        assert report.rows[0].tool_position_count == 21

    def test_existing_numbers_are_duplicates(self, settings):
        df = pd.DataFrame([["C001", "A동", "가동중", "PA1", "CNC1"]], columns=EQUIPMENT_HEADERS)
        report = validate_equipment_rows(df, settings, existing_numbers=["C001"])
        assert report.ok
        assert report.rows == []
        assert len(report.duplicates) == 1


class TestToolChangeValidation:
    def frame(self, rows):
        return pd.DataFrame(rows, columns=TOOL_CHANGE_HEADERS)

    def test_cam_mismatch_rejects_row(self, settings, sample_sheets):
        report = validate_tool_change_rows(self.frame([
            ["C001", "PA1", "CNC1", 1, "AT001", "", 2000, "수명완료", "kim"],
            ["C001", "PA1", "CNC1", 2, "AT999", "", 900, "파손", "kim"],
            ["C002", "PA1", "CNC1", 7, "AT001", "", 900, "마모", "kim"],
        ]), settings, sample_sheets)
        assert not report.ok
        assert [c.t_number for c in report.rows] == [1]
        assert len(report.errors) == 2
        assert "AT002" in report.errors[0]
        assert "T7" in report.errors[1]

    def test_wrong_code_for_known_t_number(self, settings, sample_sheets):
        report = validate_tool_change_rows(self.frame([
            ["C001", "PA1", "CNC1", 1, "ZZ999", "", 2000, "수명완료", "kim"],
        ]), settings, sample_sheets)
        assert report.rows == []
        assert "AT001" in report.errors[0]

    def test_model_without_cam_sheet_is_error(self, settings, sample_sheets):
        report = validate_tool_change_rows(self.frame([
            ["C001", "B7", "CNC1", 1, "AT001", "", 2000, "수명완료", "kim"],
        ]), settings, sample_sheets)
        assert report.rows == []
        assert "No CAM sheet for B7/CNC1" in report.errors[0]

    def test_unregistered_equipment_is_error(self, settings):
        report = validate_tool_change_rows(self.frame([
            ["C001", "PA1", "CNC1", 1, "AT001", "", 2000, "수명완료", ""],
            ["c002", "PA1", "CNC1", 1, "AT001", "", 2000, "수명완료", ""],
        ]), settings, equipment_numbers=["C001"])
        assert [c.equipment_number for c in report.rows] == ["C001"]
        assert len(report.errors) == 1
        assert "C002 is not registered" in report.errors[0]

    def test_repeat_and_range_errors(self, settings):
        report = validate_tool_change_rows(self.frame([
            ["C001", "PA1", "CNC1", 1, "AT001", "", 2000, "수명완료", ""],
            ["C001", "PA1", "CNC1", 1, "AT001", "", 2000, "수명완료", ""],
            ["C001", "PA1", "CNC1", 30, "AT001", "", -1, "수명완료", ""],
        ]), settings)
        assert len(report.rows) == 1
        assert len(report.errors) == 3

    def test_check_against_cam(self, sample_sheets, sample_changes):
        assert check_against_cam(sample_changes[0], sample_sheets) is None
        sample_changes[0].production_model = "B7"
        assert "No CAM sheet" in check_against_cam(sample_changes[0], sample_sheets)
