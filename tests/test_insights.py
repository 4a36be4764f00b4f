from datetime import date

import pytest

from toolcrib.config import STATUS_MAINTENANCE, STATUS_RUNNING, STATUS_SETUP
from toolcrib.insights import (
    average_change_interval,
    cam_sheet_insights,
    equipment_stats,
    expected_life_by_code,
    inventory_linkage,
    inventory_summary,
    model_series,
    model_series_frequency,
    per_process_accuracy,
    per_type_change_interval,
    recent_changes_by_equipment,
    round_half_up,
    standardization_index,
    tool_change_summary,
    tool_life_accuracy,
    tool_type,
)
from toolcrib.models import EndmillInfo, Equipment, ToolChange
from toolcrib.stock import CRITICAL, LOW, SUFFICIENT


def _change(code, life, **kw):
    return ToolChange(id=kw.pop("id", 1), equipment_number=kw.pop("equipment_number", "C001"),
                      production_model=kw.pop("production_model", "PA1"), process=kw.pop("process", "CNC1"),
                      t_number=kw.pop("t_number", 1), endmill_code=code, tool_life=life, **kw)


class TestToolLifeAccuracy:
    def test_single_match(self):
        endmills = [EndmillInfo(t_number=1, endmill_code="AT001", tool_life=2500)]
        assert tool_life_accuracy(endmills, [_change("AT001", 2000)]) == 80

    def test_over_life_is_capped_at_100(self):
        endmills = [EndmillInfo(t_number=1, endmill_code="AT001", tool_life=1000)]
        assert tool_life_accuracy(endmills, [_change("AT001", 5000)]) == 100

    def test_no_matching_code_gives_zero(self):
        endmills = [EndmillInfo(t_number=1, endmill_code="AT001", tool_life=2000)]
        assert tool_life_accuracy(endmills, [_change("ZZ999", 1500)]) == 0

    def test_empty_and_missing_inputs(self):
        assert tool_life_accuracy([], []) == 0
        assert tool_life_accuracy(None, None) == 0

    def test_zero_expected_life_is_ignored(self):
        endmills = [EndmillInfo(t_number=1, endmill_code="AT001", tool_life=0)]
        assert tool_life_accuracy(endmills, [_change("AT001", 1500)]) == 0

    def test_mean_over_matches(self, sample_sheets, sample_changes):
        endmills = [e for s in sample_sheets for e in s.endmills]
        # 80, 100 (capped), 50
        assert tool_life_accuracy(endmills, sample_changes) == 77

    @pytest.mark.parametrize("actual", [0, 1, 999, 2000, 10000])
    def test_result_stays_in_bounds(self, actual):
        endmills = [EndmillInfo(t_number=1, endmill_code="AT001", tool_life=2000)]
        assert 0 <= tool_life_accuracy(endmills, [_change("AT001", actual)]) <= 100

    def test_first_positive_life_wins(self):
        endmills = [
            EndmillInfo(t_number=1, endmill_code="AT001", tool_life=0),
            EndmillInfo(t_number=2, endmill_code="AT001", tool_life=2000),
            EndmillInfo(t_number=3, endmill_code="AT001", tool_life=4000),
        ]
        assert expected_life_by_code(endmills) == {"AT001": 2000}


class TestPerProcessAndType:
    def test_per_process_lists_every_configured_process(self, sample_sheets, sample_changes):
        endmills = [e for s in sample_sheets for e in s.endmills]
        result = per_process_accuracy(endmills, sample_changes, ["CNC1", "CNC2", "CNC2-1"])
        assert result == {"CNC1": 90, "CNC2": 50, "CNC2-1": 0}

    def test_average_change_interval(self, sample_changes):
        assert average_change_interval(sample_changes) == 1367

    def test_average_ignores_non_positive_life(self):
        assert average_change_interval([_change("A", 0), _change("B", 100)]) == 100
        assert average_change_interval([]) == 0

    def test_tool_type_keywords(self):
        assert tool_type("flat 10mm") == "FLAT"
        assert tool_type("T-CUT 8") == "T-CUT"
        assert tool_type("mystery") == "OTHER"
        assert tool_type("") == "OTHER"

    def test_per_type_only_buckets_with_data(self, sample_changes):
        result = per_type_change_interval(sample_changes)
        assert list(result) == ["FLAT", "BALL", "T-CUT"]
        assert result == {"FLAT": 2000, "BALL": 1200, "T-CUT": 900}


class TestLinkageAndStandardization:
    def test_inventory_linkage(self, sample_sheets, sample_inventory):
        endmills = [e for s in sample_sheets for e in s.endmills]
        # AT001 and AT003 at or above minimum, AT002 below
        assert inventory_linkage(endmills, sample_inventory) == 67

    def test_linkage_without_cam_codes(self, sample_inventory):
        assert inventory_linkage([], sample_inventory) == 0

    def test_linkage_missing_inventory_row_is_unsecured(self):
        endmills = [EndmillInfo(t_number=1, endmill_code="AT001")]
        assert inventory_linkage(endmills, []) == 0

    def test_standardization_fixed_share(self, sample_sheets):
        endmills = [e for s in sample_sheets for e in s.endmills]
        idx = standardization_index(endmills)
        assert (idx.distinct_codes, idx.standard, idx.duplicate, idx.rate) == (3, 2, 1, 67)

    def test_standardization_empty(self):
        idx = standardization_index([])
        assert (idx.distinct_codes, idx.rate) == (0, 0)


class TestBundle:
    def test_cam_sheet_insights(self, sample_sheets, sample_changes, sample_inventory):
        ins = cam_sheet_insights(sample_sheets, sample_changes, sample_inventory, ["CNC1", "CNC2"])
        assert ins.tool_life_accuracy == 77
        assert ins.average_change_interval == 1367
        assert ins.inventory_linkage == 67
        assert ins.per_process_accuracy == {"CNC1": 90, "CNC2": 50}

    def test_cam_sheet_insights_on_nothing(self):
        ins = cam_sheet_insights(None, None, None, None)
        assert ins.tool_life_accuracy == 0
        assert ins.per_process_accuracy == {}
        assert ins.per_type_change_interval == {}


class TestDashboardSummaries:
    def test_equipment_stats(self):
        rows = [
            Equipment(id=1, equipment_number="C001", status=STATUS_RUNNING),
            Equipment(id=2, equipment_number="C002", status=STATUS_RUNNING),
            Equipment(id=3, equipment_number="C003", status=STATUS_MAINTENANCE),
            Equipment(id=4, equipment_number="C004", status=STATUS_SETUP),
        ]
        stats = equipment_stats(rows)
        assert stats.total == 4
        assert stats.by_status[STATUS_RUNNING] == 2
        assert stats.operating_rate == 50

    def test_inventory_summary(self, sample_inventory):
        summary = inventory_summary(sample_inventory)
        assert summary.total == 3
        # 50 > 30 sufficient, 10 <= 20 critical, 25 <= 30 low
        assert summary.by_status == {SUFFICIENT: 1, LOW: 1, CRITICAL: 1}

    def test_tool_change_summary(self, sample_changes):
        s = tool_change_summary(sample_changes, today=date(2026, 3, 10))
        assert (s.today, s.yesterday, s.difference, s.trend) == (2, 1, 1, "+1")

    def test_tool_change_summary_negative_trend(self, sample_changes):
        s = tool_change_summary(sample_changes, today=date(2026, 3, 11))
        assert s.trend == "-2"

    def test_model_series(self):
        assert model_series("PA1-X") == "PA1"
        assert model_series("") == ""

    def test_model_series_frequency(self, sample_changes):
        df = model_series_frequency(sample_changes)
        assert df.to_dict("records") == [{"series": "PA1", "changes": 3}]
        assert model_series_frequency(sample_changes, since=date(2026, 3, 10))["changes"].tolist() == [2]
        assert model_series_frequency([]).empty

    def test_recent_changes_by_equipment(self, sample_changes):
        df = recent_changes_by_equipment(sample_changes)
        assert df["equipment_number"].tolist() == ["C001", "C002"]
        assert df["changes"].tolist() == [2, 1]
        assert df["avg_life"].tolist() == [1600, 900]


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(66.4) == 66
