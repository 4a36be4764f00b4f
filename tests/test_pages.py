import pytest

from toolcrib.accessors import ChangeFeed, DataAccessError, RefetchThrottle
from toolcrib.pages import InvalidTransition, PageController, PageMode, PageState
from toolcrib.table import TableController


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class Source:
    """Stands in for an accessor fetch; can be told to fail."""

    def __init__(self, rows):
        self.rows = rows
        self.fail = False
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.fail:
            raise DataAccessError("database is locked")
        return list(self.rows)


@pytest.fixture
def source():
    return Source([{"id": 1}, {"id": 2}])


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def messages():
    return []


@pytest.fixture
def page(source, feed, clock, messages):
    return PageController(source, TableController(page_size=1), lambda kind, msg: messages.append((kind, msg)),
                          tables=("inventory",), throttle=RefetchThrottle(3.0, clock=clock), feed=feed)


class TestPageState:
    def test_transitions_from_idle(self):
        assert PageState().start_add().mode is PageMode.ADDING
        edit = PageState().start_edit(7)
        assert (edit.mode, edit.record_id) == (PageMode.EDITING, 7)
        assert PageState().confirm_delete(7).mode is PageMode.CONFIRMING_DELETE

    @pytest.mark.parametrize("busy", [
        PageState(PageMode.ADDING),
        PageState(PageMode.EDITING, 1),
        PageState(PageMode.CONFIRMING_DELETE, 1),
    ])
    def test_only_one_form_at_a_time(self, busy):
        with pytest.raises(InvalidTransition):
            busy.start_add()
        with pytest.raises(InvalidTransition):
            busy.start_edit(2)
        with pytest.raises(InvalidTransition):
            busy.confirm_delete(2)
        assert busy.finish().is_idle


class TestLoading:
    def test_load_and_view(self, page):
        assert page.load()
        assert page.view().total_pages == 2
        assert page.arranged() == [{"id": 1}, {"id": 2}]
        assert not page.loading

    def test_failed_load_keeps_last_rows(self, page, source, messages):
        page.load()
        source.fail = True
        assert not page.load()
        assert page.rows == [{"id": 1}, {"id": 2}]
        assert messages[-1][0] == "error"
        assert not page.loading


class TestMutations:
    def test_success_refetches_and_returns_to_idle(self, page, source, messages):
        page.start_edit(1)
        source.rows = [{"id": 1}]
        assert page.run_mutation(lambda: None, "Saved.")
        assert page.state.is_idle
        assert page.rows == [{"id": 1}]
        assert messages == [("info", "Saved.")]

    @pytest.mark.parametrize("error", [DataAccessError("locked"), ValueError("bad quantity")])
    def test_failure_returns_to_idle_without_refetch(self, page, source, messages, error):
        page.start_add()
        calls = source.calls

        def boom():
            raise error

        assert not page.run_mutation(boom, "Saved.")
        assert page.state.is_idle
        assert source.calls == calls
        assert messages == [("error", str(error))]

    def test_cancel(self, page):
        page.confirm_delete(2)
        page.cancel()
        assert page.state.is_idle


class TestRemoteChanges:
    def test_change_triggers_reload(self, page, feed, source):
        reloaded = []
        page.on_reload = lambda: reloaded.append(True)
        feed.publish("inventory", "update")
        assert source.calls == 1
        assert reloaded == [True]

    def test_other_tables_ignored(self, page, feed, source):
        feed.publish("equipment", "update")
        assert source.calls == 0

    def test_throttled(self, page, feed, source, clock):
        feed.publish("inventory", "update")
        clock.now = 2.9
        feed.publish("inventory", "update")
        assert source.calls == 1
        clock.now = 3.0
        feed.publish("inventory", "update")
        assert source.calls == 2

    def test_own_write_does_not_double_fetch(self, page, feed, source):
        page.run_mutation(lambda: feed.publish("inventory", "update"))
        assert source.calls == 1

    def test_close_unsubscribes(self, page, feed, source):
        page.close()
        feed.publish("inventory", "update")
        assert source.calls == 0
