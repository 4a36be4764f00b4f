# toolcrib/pages.py
"""
Screen-independent page logic: which form is open, loading rows with a
fall-back to the last good load, running mutations, and throttled refetch
on change notifications. The Tk screens own one PageController each.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from .accessors import CHANGE_FEED, ChangeFeed, DataAccessError, RefetchThrottle
from .table import Page, TableController

logger = logging.getLogger(__name__)

T = TypeVar("T")

# notify(kind, message); kind is "info" or "error"
Notifier = Callable[[str, str], None]


class PageMode(Enum):
    IDLE = "idle"
    ADDING = "adding"
    EDITING = "editing"
    CONFIRMING_DELETE = "confirming_delete"


class InvalidTransition(RuntimeError):
    pass


@dataclass(frozen=True)
class PageState:
    mode: PageMode = PageMode.IDLE
    record_id: Optional[Any] = None

    @property
    def is_idle(self) -> bool:
        return self.mode is PageMode.IDLE

    def _from_idle(self, mode: PageMode, record_id: Optional[Any] = None) -> "PageState":
        if not self.is_idle:
            raise InvalidTransition(f"Cannot start {mode.value} while {self.mode.value}")
        return PageState(mode, record_id)

    def start_add(self) -> "PageState":
        return self._from_idle(PageMode.ADDING)

    def start_edit(self, record_id: Any) -> "PageState":
        return self._from_idle(PageMode.EDITING, record_id)

    def confirm_delete(self, record_id: Any) -> "PageState":
        return self._from_idle(PageMode.CONFIRMING_DELETE, record_id)

    def finish(self) -> "PageState":
        return PageState()


class PageController(Generic[T]):
    def __init__(
        self,
        fetch: Callable[[], List[T]],
        table: TableController,
        notify: Notifier,
        tables: Sequence[str] = (),
        throttle: Optional[RefetchThrottle] = None,
        feed: ChangeFeed = CHANGE_FEED,
    ):
        self.fetch = fetch
        self.table = table
        self.notify = notify
        self.throttle = throttle or RefetchThrottle()
        self.rows: List[T] = []
        self.loading = False
        self.state = PageState()
        self.on_reload: Optional[Callable[[], None]] = None
        self._mutating = False
        self._unsubscribe = [feed.subscribe(self.on_remote_change, t) for t in tables]

    # -------------------------
    # Loading
    # -------------------------
    def load(self) -> bool:
        """Refetch rows. On failure keep the previous rows and report it."""
        self.loading = True
        try:
            self.rows = list(self.fetch())
            return True
        except DataAccessError as exc:
            logger.exception("Load failed")
            self.notify("error", f"Could not load data. Showing last loaded rows.\n{exc}")
            return False
        finally:
            self.loading = False

    def view(self) -> Page[T]:
        return self.table.view(self.rows)

    def arranged(self) -> List[T]:
        return self.table.arrange(self.rows)

    def on_remote_change(self, table: str, action: str) -> None:
        if self._mutating:
            return
        if not self.throttle.ready():
            logger.debug("Refetch for %s/%s skipped by throttle", table, action)
            return
        if self.load() and self.on_reload is not None:
            self.on_reload()

    def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    # -------------------------
    # Mutations
    # -------------------------
    def run_mutation(self, action: Callable[[], Any], success_message: str = "") -> bool:
        """
        Run one write. The page goes back to idle either way; rows are
        refetched only after success.
        """
        self._mutating = True
        try:
            action()
        except (DataAccessError, ValueError) as exc:
            logger.exception("Mutation failed")
            self.notify("error", str(exc))
            return False
        finally:
            self._mutating = False
            self.state = self.state.finish()
        self.load()
        self.throttle.mark()
        if success_message:
            self.notify("info", success_message)
        return True

    # -------------------------
    # Mode transitions
    # -------------------------
    def start_add(self) -> None:
        self.state = self.state.start_add()

    def start_edit(self, record_id: Any) -> None:
        self.state = self.state.start_edit(record_id)

    def confirm_delete(self, record_id: Any) -> None:
        self.state = self.state.confirm_delete(record_id)

    def cancel(self) -> None:
        self.state = self.state.finish()
