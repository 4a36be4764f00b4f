import pytest

from toolcrib import accessors
from toolcrib.accessors import (
    CHANGE_FEED,
    DataAccessError,
    InsufficientStockError,
    RecordNotFoundError,
    RefetchThrottle,
)
from toolcrib.models import (
    CAMSheet,
    EndmillDisposal,
    EndmillInfo,
    EndmillType,
    Equipment,
    InventoryRecord,
    SupplierPrice,
    ToolChange,
)


@pytest.fixture
def published():
    events = []
    CHANGE_FEED.subscribe(lambda table, action: events.append((table, action)))
    return events


def _sheet(version="v1", code="AT001", version_date=""):
    return CAMSheet(id=0, model="PA1", process="CNC1", cam_version=version, version_date=version_date,
                    endmills=[EndmillInfo(t_number=1, endmill_code=code, endmill_name="FLAT", tool_life=2500),
                              EndmillInfo(t_number=3, endmill_code="AT009", tool_life=800)])


class TestCamSheets:
    def test_create_and_fetch_nested(self, db_path, published):
        sheet_id = accessors.create_cam_sheet(_sheet())
        sheets = accessors.fetch_cam_sheets()
        assert [s.id for s in sheets] == [sheet_id]
        assert [e.t_number for e in sheets[0].endmills] == [1, 3]
        assert sheets[0].endmills[0].tool_life == 2500
        assert published == [("cam_sheets", "insert")]

    def test_update_replaces_endmills(self, db_path):
        sheet = _sheet()
        sheet.id = accessors.create_cam_sheet(sheet)
        sheet.cam_version = "v2"
        sheet.endmills = [EndmillInfo(t_number=5, endmill_code="AT005")]
        accessors.update_cam_sheet(sheet)
        stored = accessors.fetch_cam_sheets()[0]
        assert stored.cam_version == "v2"
        assert [e.endmill_code for e in stored.endmills] == ["AT005"]

    def test_delete_cascades(self, db_path):
        sheet_id = accessors.create_cam_sheet(_sheet())
        accessors.delete_cam_sheet(sheet_id)
        assert accessors.fetch_cam_sheets() == []

    def test_missing_sheet(self, db_path):
        missing = _sheet()
        missing.id = 99
        with pytest.raises(RecordNotFoundError):
            accessors.update_cam_sheet(missing)
        with pytest.raises(RecordNotFoundError):
            accessors.delete_cam_sheet(99)

    def test_duplicate_key_is_data_access_error(self, db_path):
        accessors.create_cam_sheet(_sheet())
        with pytest.raises(DataAccessError):
            accessors.create_cam_sheet(_sheet())

    def test_bulk_create_publishes_once(self, db_path, published):
        ids = accessors.bulk_create_cam_sheets([_sheet("v1"), _sheet("v2")])
        assert len(ids) == 2
        assert published == [("cam_sheets", "insert")]

    def test_failed_bulk_create_leaves_no_rows(self, db_path, published):
        accessors.create_cam_sheet(_sheet("v1"))
        published.clear()
        with pytest.raises(DataAccessError):
            accessors.bulk_create_cam_sheets([_sheet("v2"), _sheet("v1")])
        assert [s.cam_version for s in accessors.fetch_cam_sheets()] == ["v1"]
        assert published == []

    def test_find_cam_endmill_prefers_newest_version(self):
        sheets = [_sheet("v1", "AT001", "2026-01-01"), _sheet("v2", "AT777", "2026-02-01")]
        assert accessors.find_cam_endmill(sheets, "PA1", "CNC1", 1).endmill_code == "AT777"
        assert accessors.find_cam_endmill(sheets, "PA1", "CNC1", 2) is None
        assert accessors.find_cam_endmill(sheets, "PA2", "CNC1", 1) is None


class TestEquipment:
    def test_crud(self, db_path, published):
        eq_id = accessors.create_equipment(Equipment(id=0, equipment_number="C001", location="A동",
                                                     current_model="PA1", process="CNC1"))
        eq = accessors.fetch_equipment()[0]
        assert (eq.id, eq.equipment_number, eq.tool_position_count) == (eq_id, "C001", 21)
        eq.process = "CNC2"
        accessors.update_equipment(eq)
        assert accessors.fetch_equipment()[0].process == "CNC2"
        accessors.delete_equipment(eq_id)
        assert accessors.fetch_equipment() == []
        assert [a for _, a in published] == ["insert", "update", "delete"]

    def test_duplicate_number_rejected(self, db_path):
        accessors.create_equipment(Equipment(id=0, equipment_number="C001"))
        with pytest.raises(DataAccessError):
            accessors.create_equipment(Equipment(id=0, equipment_number="C001"))


class TestEndmillTypes:
    def test_save_with_suppliers(self, db_path):
        t = EndmillType(code="AT001", name="FLAT 12mm", category="FLAT", diameter=12.0, flutes=4,
                        suppliers=[SupplierPrice("KORLOY", 150000), SupplierPrice("SANDVIK", 180000)])
        assert accessors.save_endmill_types([t]) == 1
        stored = accessors.fetch_endmill_types()[0]
        assert stored.name == "FLAT 12mm"
        assert stored.supplier_count == 2
        assert accessors.fetch_supplier_prices("AT001")[1] == SupplierPrice("SANDVIK", 180000.0)

    def test_save_again_updates(self, db_path):
        accessors.save_endmill_types([EndmillType(code="AT001", name="old",
                                                  suppliers=[SupplierPrice("KORLOY", 1)])])
        accessors.save_endmill_types([EndmillType(code="AT001", name="new")])
        stored = accessors.fetch_endmill_types()
        assert len(stored) == 1
        assert stored[0].name == "new"
        assert stored[0].suppliers == []

    def test_supplier_prices_by_code(self, db_path, published):
        accessors.save_supplier_prices("AT002", [SupplierPrice("YG-1", 90000)])
        assert accessors.supplier_prices_by_code() == {"AT002": [SupplierPrice("YG-1", 90000.0)]}
        assert published == [("supplier_prices", "replace")]

    def test_delete(self, db_path):
        accessors.save_endmill_types([EndmillType(code="AT001", name="x")])
        accessors.delete_endmill_type("AT001")
        assert accessors.fetch_endmill_types() == []
        with pytest.raises(RecordNotFoundError):
            accessors.delete_endmill_type("AT001")

    def test_failed_batch_save_leaves_no_rows(self, db_path, published):
        good = EndmillType(code="AT001", name="FLAT", suppliers=[SupplierPrice("KORLOY", 1000)])
        with pytest.raises(DataAccessError):
            accessors.save_endmill_types([good, EndmillType(code=None, name="broken")])
        assert accessors.fetch_endmill_types() == []
        assert accessors.fetch_supplier_prices("AT001") == []
        assert published == []


class TestInventory:
    def _stock(self, code="AT001", current=50):
        accessors.bulk_upsert_inventory([InventoryRecord(id=0, endmill_code=code, endmill_name="FLAT",
                                                         category="FLAT", current_stock=current,
                                                         min_stock=20, max_stock=100)])

    def test_upsert_is_keyed_by_code(self, db_path):
        self._stock(current=50)
        self._stock(current=70)
        rows = accessors.fetch_inventory()
        assert len(rows) == 1
        assert rows[0].current_stock == 70
        assert rows[0].endmill_name == "FLAT"

    def test_update(self, db_path):
        self._stock()
        rec = accessors.fetch_inventory()[0]
        rec.min_stock = 30
        accessors.update_inventory(rec)
        assert accessors.fetch_inventory()[0].min_stock == 30

    def test_inbound_and_outbound(self, db_path, published):
        self._stock(current=50)
        assert accessors.record_inbound("AT001", 10, supplier="KORLOY", unit_price=1000, processed_by="kim") == 60
        assert accessors.record_outbound("AT001", 15, equipment_number="C001", t_number=3) == 45
        txns = accessors.fetch_transactions("AT001")
        assert sorted(t.transaction_type for t in txns) == ["inbound", "outbound"]
        assert all(t.quantity > 0 for t in txns)
        assert ("inventory", "inbound") in published
        assert ("inventory", "outbound") in published

    def test_outbound_beyond_stock(self, db_path):
        self._stock(current=5)
        with pytest.raises(InsufficientStockError):
            accessors.record_outbound("AT001", 6)
        assert accessors.fetch_inventory()[0].current_stock == 5
        assert accessors.fetch_transactions() == []

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_quantity_must_be_positive(self, db_path, quantity):
        self._stock()
        with pytest.raises(ValueError):
            accessors.record_inbound("AT001", quantity)
        with pytest.raises(ValueError):
            accessors.record_outbound("AT001", quantity)

    def test_unknown_code(self, db_path):
        with pytest.raises(RecordNotFoundError):
            accessors.record_inbound("NOPE", 1)
        with pytest.raises(RecordNotFoundError):
            accessors.record_outbound("NOPE", 1)

    def test_missing_row(self, db_path):
        with pytest.raises(RecordNotFoundError):
            accessors.update_inventory(InventoryRecord(id=42, endmill_code="AT001"))
        with pytest.raises(RecordNotFoundError):
            accessors.delete_inventory(42)


class TestToolChanges:
    def test_create_stamps_date(self, db_path):
        accessors.create_tool_change(ToolChange(id=0, equipment_number="C001", production_model="PA1",
                                                process="CNC1", t_number=1, endmill_code="AT001"))
        change = accessors.fetch_tool_changes()[0]
        assert len(change.change_date) == 19

    def test_window_and_count(self, db_path, sample_changes):
        accessors.bulk_create_tool_changes(sample_changes)
        assert len(accessors.fetch_tool_changes(start="2026-03-10")) == 2
        assert accessors.count_tool_changes(end="2026-03-09") == 1
        assert [c.id for c in accessors.fetch_tool_changes(equipment_number="C002")] == [3]

    def test_update_and_delete(self, db_path, sample_changes):
        accessors.bulk_create_tool_changes(sample_changes[:1])
        change = accessors.fetch_tool_changes()[0]
        change.tool_life = 2100
        accessors.update_tool_change(change)
        assert accessors.fetch_tool_changes()[0].tool_life == 2100
        accessors.delete_tool_change(change.id)
        with pytest.raises(RecordNotFoundError):
            accessors.delete_tool_change(change.id)


class TestDisposals:
    def test_crud(self, db_path):
        d_id = accessors.create_disposal(EndmillDisposal(id=0, disposal_date="2026-03-10", quantity=12,
                                                         weight_kg=1.5, inspector="kim"))
        d = accessors.fetch_disposals()[0]
        assert (d.id, d.quantity, d.weight_kg) == (d_id, 12, 1.5)
        d.reviewer = "lee"
        accessors.update_disposal(d)
        assert accessors.fetch_disposals(start="2026-03-01")[0].reviewer == "lee"
        accessors.delete_disposal(d_id)
        assert accessors.fetch_disposals() == []

    def test_store_image(self, tmp_path):
        src = tmp_path / "scrap.png"
        src.write_bytes(b"png")
        stored = accessors.store_disposal_image(str(src), str(tmp_path / "uploads"))
        assert stored.endswith("scrap.png")
        with open(stored, "rb") as f:
            assert f.read() == b"png"

    def test_store_missing_image(self, tmp_path):
        with pytest.raises(DataAccessError):
            accessors.store_disposal_image(str(tmp_path / "none.png"), str(tmp_path / "uploads"))


class TestChangeFeed:
    def test_table_filter_and_unsubscribe(self):
        seen = []
        unsubscribe = CHANGE_FEED.subscribe(lambda t, a: seen.append(a), table="inventory")
        CHANGE_FEED.publish("equipment", "insert")
        CHANGE_FEED.publish("inventory", "update")
        unsubscribe()
        CHANGE_FEED.publish("inventory", "delete")
        assert seen == ["update"]

    def test_throttle(self):
        now = [100.0]
        throttle = RefetchThrottle(3.0, clock=lambda: now[0])
        assert throttle.ready()
        now[0] = 102.0
        assert not throttle.ready()
        now[0] = 103.0
        assert throttle.ready()
