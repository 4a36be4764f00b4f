import json

import pytest

from toolcrib.config import DEFAULT_SETTINGS, FALLBACK_MODELS
from toolcrib.settings import (
    SettingsProvider,
    SettingsValidationError,
    merge_with_defaults,
    validate_settings,
)


class TestValidate:
    def test_defaults_are_valid(self):
        result = validate_settings(DEFAULT_SETTINGS)
        assert result.is_valid
        assert result.warnings == []

    @pytest.mark.parametrize("category, key, value", [
        ("system", "itemsPerPage", 0),
        ("system", "itemsPerPage", 101),
        ("system", "sessionTimeout", 4),
        ("system", "sessionTimeout", 481),
        ("equipment", "totalCount", 0),
        ("equipment", "toolPositionCount", 51),
    ])
    def test_out_of_range_is_error(self, category, key, value):
        candidate = merge_with_defaults({category: {key: value}}, DEFAULT_SETTINGS)
        assert not validate_settings(candidate).is_valid

    def test_short_timeout_is_warning(self):
        candidate = merge_with_defaults({"system": {"sessionTimeout": 10}}, DEFAULT_SETTINGS)
        result = validate_settings(candidate)
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_thresholds_must_be_ordered(self):
        candidate = merge_with_defaults(
            {"inventory": {"stockThresholds": {"criticalPercent": 50, "lowPercent": 50}}}, DEFAULT_SETTINGS)
        assert not validate_settings(candidate).is_valid

    def test_t_number_range(self):
        candidate = merge_with_defaults({"toolChanges": {"tNumberRange": {"min": 5, "max": 3}}}, DEFAULT_SETTINGS)
        assert not validate_settings(candidate).is_valid


class TestProvider:
    def test_missing_file_gives_defaults(self, settings):
        assert settings.get() == DEFAULT_SETTINGS
        assert settings.items_per_page == 20
        assert settings.t_number_range == (1, 21)

    def test_partial_file_is_merged(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"system": {"itemsPerPage": 50}}), encoding="utf-8")
        provider = SettingsProvider(path=str(path), history_path=str(tmp_path / "h.json"))
        assert provider.items_per_page == 50
        assert provider.get("system")["sessionTimeout"] == 480

    def test_update_persists_and_records_history(self, settings, tmp_path):
        warnings = settings.update("system", {"itemsPerPage": 30}, changed_by="kim", reason="bigger pages")
        assert warnings == []
        reopened = SettingsProvider(path=settings.path, history_path=settings.history_path)
        assert reopened.items_per_page == 30
        history = reopened.history()
        assert len(history) == 1
        assert (history[0].field, history[0].old_value, history[0].new_value) == ("itemsPerPage", 20, 30)
        assert history[0].changed_by == "kim"

    def test_unchanged_value_not_recorded(self, settings):
        settings.update("system", {"itemsPerPage": 20})
        assert settings.history() == []

    def test_invalid_update_leaves_settings_alone(self, settings):
        with pytest.raises(SettingsValidationError) as info:
            settings.update("system", {"itemsPerPage": 0})
        assert info.value.errors
        assert settings.items_per_page == 20
        assert settings.history() == []

    def test_unknown_category_rejected(self, settings):
        with pytest.raises(SettingsValidationError):
            settings.update("nonsense", {"a": 1})

    def test_update_returns_warnings(self, settings):
        warnings = settings.update("system", {"sessionTimeout": 10})
        assert len(warnings) == 1
        assert settings.get_value("system.sessionTimeout") == 10

    def test_subscribers_are_notified_until_unsubscribed(self, settings):
        seen = []
        unsubscribe = settings.subscribe(lambda snapshot: seen.append(snapshot["system"]["itemsPerPage"]))
        settings.update("system", {"itemsPerPage": 25})
        unsubscribe()
        settings.update("system", {"itemsPerPage": 40})
        assert seen == [25]

    def test_reset_restores_defaults(self, settings):
        settings.update("equipment", {"models": ["X1"]})
        settings.reset()
        assert settings.models == list(DEFAULT_SETTINGS["equipment"]["models"])

    def test_reset_one_category(self, settings):
        settings.update("system", {"itemsPerPage": 30})
        settings.update("equipment", {"models": ["X1"]})
        settings.reset("system")
        assert settings.items_per_page == 20
        assert settings.models == ["X1"]

    def test_clear_history(self, settings):
        settings.update("system", {"itemsPerPage": 30})
        settings.update("equipment", {"models": ["X1"]})
        settings.clear_history("system")
        assert [h.category for h in settings.history()] == ["equipment"]
        settings.clear_history()
        assert settings.history() == []

    def test_get_returns_a_copy(self, settings):
        settings.get("equipment")["models"].append("ZZ")
        assert "ZZ" not in settings.models

    def test_get_value_default(self, settings):
        assert settings.get_value("system.nothing.here", "x") == "x"


class TestImportExport:
    def test_export_then_import_into_fresh_provider(self, settings, tmp_path):
        settings.update("system", {"itemsPerPage": 35})
        text = settings.export_json("kim")
        data = json.loads(text)
        assert data["metadata"]["exportedBy"] == "kim"
        assert data["settings"]["system"]["itemsPerPage"] == 35

        other = SettingsProvider(path=str(tmp_path / "other.json"), history_path=str(tmp_path / "oh.json"))
        other.import_json(text, changed_by="lee")
        assert other.items_per_page == 35
        assert other.history()[0].reason == "import"

    def test_import_rejects_bad_json(self, settings):
        with pytest.raises(SettingsValidationError):
            settings.import_json("{not json")

    def test_import_requires_settings_object(self, settings):
        with pytest.raises(SettingsValidationError):
            settings.import_json(json.dumps({"version": "1.0.0"}))

    def test_import_validates(self, settings):
        bad = json.dumps({"settings": {"system": {"itemsPerPage": 1000}}})
        with pytest.raises(SettingsValidationError):
            settings.import_json(bad)
        assert settings.items_per_page == 20


class TestFallbacks:
    def test_empty_lists_fall_back(self, settings):
        settings.update("equipment", {"models": []})
        assert settings.models == FALLBACK_MODELS

    def test_default_stock(self, settings):
        assert settings.default_stock["min_stock"] == 20
        assert settings.default_stock["max_stock"] == 100

    def test_default_reason(self, settings):
        assert settings.default_reason == "수명완료"
