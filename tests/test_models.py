from toolcrib import bootstrap, db
from toolcrib.config import DEFAULT_SETTINGS, DEFAULT_TOOL_LIFE, STATUS_RUNNING
from toolcrib.models import CAMSheet, EndmillType, Equipment, ToolChange
from toolcrib.storage import load_json


class TestFromRow:
    def test_cam_sheet_nested_defaults(self):
        sheet = CAMSheet.from_row({"id": "3", "model": " PA1 ", "process": "CNC1", "cam_version": "v1",
                                   "endmills": [{"t_number": "2", "endmill_code": "AT002", "tool_life": None}]})
        assert (sheet.id, sheet.model) == (3, "PA1")
        assert sheet.endmills[0].t_number == 2
        assert sheet.endmills[0].tool_life == DEFAULT_TOOL_LIFE
        assert sheet.key == ("PA1", "CNC1", "v1")

    def test_unknown_equipment_status_falls_back(self):
        assert Equipment.from_row({"equipment_number": "C001", "status": "broken"}).status == STATUS_RUNNING
        assert Equipment.from_row({"equipment_number": "C001"}).tool_position_count == 21

    def test_tool_change_date_falls_back_to_created(self):
        change = ToolChange.from_row({"created_at": "2026-03-10 08:00:00", "t_number": "4"})
        assert change.change_date == "2026-03-10"
        assert change.t_number == 4
        assert "id" not in change.to_record()

    def test_endmill_type_suppliers(self):
        t = EndmillType.from_row({"code": "AT001", "diameter": "12.5",
                                  "suppliers": [{"supplier": "KORLOY", "unit_price": "150000"}]})
        assert t.diameter == 12.5
        assert t.suppliers[0].unit_price == 150000.0
        assert "suppliers" not in t.to_record()


class TestBootstrap:
    def test_initialize_is_repeatable(self, tmp_path, monkeypatch):
        data = tmp_path / "data"
        monkeypatch.setattr(bootstrap, "DATA_DIR", str(data))
        monkeypatch.setattr(bootstrap, "LOGS_DIR", str(tmp_path / "logs"))
        monkeypatch.setattr(bootstrap, "UPLOADS_DIR", str(data / "uploads"))
        monkeypatch.setattr(bootstrap, "SETTINGS_FILE", str(data / "settings.json"))
        monkeypatch.setattr(db, "DB_PATH", str(data / "toolcrib.db"))

        bootstrap.ensure_app_initialized()
        bootstrap.ensure_app_initialized()

        assert (data / "uploads").is_dir()
        assert db.get_meta("schema_version") == bootstrap.SCHEMA_VERSION
        assert load_json(str(data / "settings.json"), {}) == DEFAULT_SETTINGS
