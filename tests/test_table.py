import locale

import pytest

import toolcrib
from toolcrib import audit, bootstrap
from toolcrib import table as table_module
from toolcrib.models import Equipment
from toolcrib.table import (
    ASC,
    DATE,
    DESC,
    NUMBER,
    TableController,
    filter_rows,
    paginate,
    sort_rows,
)


@pytest.fixture
def rows():
    return [
        {"id": 1, "code": "AT010", "category": "FLAT", "date": "2026-03-02"},
        {"id": 2, "code": "at002", "category": "BALL", "date": "2026-03-01 08:30:00"},
        {"id": 3, "code": "BT003", "category": "FLAT", "date": ""},
        {"id": 4, "code": "AT004", "category": "DRILL", "date": "2026/03/03"},
    ]


class TestFilter:
    def test_search_is_case_insensitive_substring(self, rows):
        out = filter_rows(rows, "at0", ["code"])
        assert [r["id"] for r in out] == [1, 2, 4]

    def test_filters_are_anded_with_search(self, rows):
        out = filter_rows(rows, "t0", ["code"], {"category": "FLAT"})
        assert [r["id"] for r in out] == [1, 3]

    def test_empty_search_and_filters_match_everything(self, rows):
        assert filter_rows(rows, "", ["code"], {"category": ""}) == rows

    def test_works_on_records(self):
        eq = [Equipment(id=1, equipment_number="C001", process="CNC1"),
              Equipment(id=2, equipment_number="C002", process="CNC2")]
        assert [e.id for e in filter_rows(eq, filters={"process": "CNC2"})] == [2]


class TestSort:
    def test_stable_ascending(self):
        data = [{"id": 1, "v": 5}, {"id": 2, "v": 5}, {"id": 3, "v": 3}]
        assert [r["id"] for r in sort_rows(data, "v", ASC, NUMBER)] == [3, 1, 2]

    def test_stable_descending(self):
        data = [{"id": 1, "v": 5}, {"id": 2, "v": 5}, {"id": 3, "v": 3}]
        assert [r["id"] for r in sort_rows(data, "v", DESC, NUMBER)] == [1, 2, 3]

    def test_numbers_sort_numerically(self):
        data = [{"v": "10"}, {"v": "9"}, {"v": 100}]
        assert [r["v"] for r in sort_rows(data, "v", ASC, NUMBER)] == ["9", "10", 100]

    def test_dates_sort_chronologically_blank_last(self, rows):
        assert [r["id"] for r in sort_rows(rows, "date", ASC, DATE)] == [2, 1, 4, 3]
        assert [r["id"] for r in sort_rows(rows, "date", DESC, DATE)] == [4, 1, 2, 3]

    def test_text_ignores_case(self, rows):
        assert [r["id"] for r in sort_rows(rows, "code")] == [2, 4, 1, 3]

    def test_no_field_keeps_order(self, rows):
        assert sort_rows(rows, None) == rows


class TestPaginate:
    def test_page_count_and_clamp(self):
        page = paginate(list(range(45)), page=5, page_size=20)
        assert page.total_pages == 3
        assert page.page == 3
        assert page.items == list(range(40, 45))
        assert (page.start_index, page.end_index) == (41, 45)

    def test_page_below_one_clamps_to_first(self):
        page = paginate(list(range(5)), page=0, page_size=2)
        assert page.page == 1
        assert page.items == [0, 1]

    def test_empty_input(self):
        page = paginate([], page=3, page_size=20)
        assert (page.page, page.total, page.total_pages, page.items) == (1, 0, 0, [])
        assert page.start_index == 0


class TestTableController:
    def test_view_pipeline(self):
        data = [{"id": i, "v": i % 3, "name": f"row{i}"} for i in range(1, 46)]
        table = TableController(search_fields=["name"], page_size=20, column_kinds={"v": NUMBER})
        table.toggle_sort("v")
        table.set_page(2)
        page = table.view(data)
        assert page.total == 45
        assert page.page == 2
        assert [r["v"] for r in page.items][:1] == [1]

    def test_out_of_range_page_is_stored_clamped(self):
        table = TableController(page_size=20)
        table.set_page(9)
        table.view(list(range(45)))
        assert table.page == 3

    def test_changes_reset_to_first_page(self):
        table = TableController(search_fields=["name"], page_size=10)
        for change in (lambda: table.set_search("x"), lambda: table.set_filter("a", "b"),
                       lambda: table.toggle_sort("a"), table.clear_filters, lambda: table.set_page_size(5)):
            table.page = 4
            change()
            assert table.page == 1

    def test_toggle_sort_flips_direction(self):
        table = TableController()
        table.toggle_sort("v")
        assert (table.sort.field, table.sort.direction) == ("v", ASC)
        table.toggle_sort("v")
        assert table.sort.direction == DESC
        table.toggle_sort("w")
        assert (table.sort.field, table.sort.direction) == ("w", ASC)

    def test_blank_filter_removes_it(self):
        table = TableController()
        table.set_filter("category", "FLAT")
        table.set_filter("category", "")
        assert table.filters == {}

    def test_page_size_from_settings(self, settings):
        table = TableController.from_settings(settings, ["code"])
        assert table.page_size == 20

    def test_arrange_returns_every_page(self):
        table = TableController(page_size=2)
        assert len(table.arrange(list(range(7)))) == 7


class TestSystemCollation:
    def test_sets_collate_from_environment(self, monkeypatch):
        calls = []
        monkeypatch.setattr(locale, "setlocale", lambda category, name=None: calls.append((category, name)))
        assert table_module.use_system_collation() is True
        assert calls == [(locale.LC_COLLATE, "")]

    def test_unsupported_locale_is_logged(self, monkeypatch, caplog):
        def refuse(category, name=None):
            raise locale.Error("unsupported locale setting")

        monkeypatch.setattr(locale, "setlocale", refuse)
        assert table_module.use_system_collation() is False
        assert "System collation unavailable" in caplog.text

    def test_initialize_app_applies_collation(self, monkeypatch):
        steps = []
        monkeypatch.setattr(audit, "configure_logging", lambda: steps.append("logging"))
        monkeypatch.setattr(table_module, "use_system_collation", lambda: steps.append("collation"))
        monkeypatch.setattr(bootstrap, "ensure_app_initialized", lambda: steps.append("bootstrap"))
        toolcrib.initialize_app()
        assert steps == ["logging", "collation", "bootstrap"]
