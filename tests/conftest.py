"""
Shared fixtures: every test gets its own SQLite file and settings files
under tmp_path, and the module-level change feed is restored afterwards.
"""
import pytest

from toolcrib import db
from toolcrib.accessors import CHANGE_FEED
from toolcrib.models import CAMSheet, EndmillInfo, InventoryRecord, ToolChange
from toolcrib.settings import SettingsProvider


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Fresh database with the full schema."""
    path = str(tmp_path / "toolcrib.db")
    monkeypatch.setattr(db, "DB_PATH", path)
    db.init_db()
    return path


@pytest.fixture
def settings(tmp_path):
    return SettingsProvider(
        path=str(tmp_path / "settings.json"),
        history_path=str(tmp_path / "settings_history.json"),
    )


@pytest.fixture(autouse=True)
def clean_feed():
    saved = list(CHANGE_FEED._listeners)
    yield
    CHANGE_FEED._listeners[:] = saved


@pytest.fixture
def sample_sheets():
    return [
        CAMSheet(id=1, model="PA1", process="CNC1", cam_version="v1", endmills=[
            EndmillInfo(t_number=1, endmill_code="AT001", endmill_name="FLAT 12mm 4F", tool_life=2500),
            EndmillInfo(t_number=2, endmill_code="AT002", endmill_name="BALL 6mm", tool_life=1000),
        ]),
        CAMSheet(id=2, model="PA1", process="CNC2", cam_version="v1", endmills=[
            EndmillInfo(t_number=1, endmill_code="AT003", endmill_name="T-CUT 8mm", tool_life=1800),
        ]),
    ]


@pytest.fixture
def sample_changes():
    return [
        ToolChange(id=1, equipment_number="C001", production_model="PA1", process="CNC1", t_number=1,
                   endmill_code="AT001", endmill_name="FLAT 12mm 4F", tool_life=2000,
                   change_date="2026-03-10 08:00:00"),
        ToolChange(id=2, equipment_number="C001", production_model="PA1", process="CNC1", t_number=2,
                   endmill_code="AT002", endmill_name="BALL 6mm", tool_life=1200,
                   change_date="2026-03-10 09:00:00"),
        ToolChange(id=3, equipment_number="C002", production_model="PA1", process="CNC2", t_number=1,
                   endmill_code="AT003", endmill_name="T-CUT 8mm", tool_life=900,
                   change_date="2026-03-09 10:00:00"),
    ]


@pytest.fixture
def sample_inventory():
    return [
        InventoryRecord(id=1, endmill_code="AT001", current_stock=50, min_stock=20, max_stock=100),
        InventoryRecord(id=2, endmill_code="AT002", current_stock=10, min_stock=20, max_stock=100),
        InventoryRecord(id=3, endmill_code="AT003", current_stock=25, min_stock=20, max_stock=100),
    ]
