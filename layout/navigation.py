"""View-mode and anchor-date state for the calendar screen."""
import logging
from datetime import date
from typing import Callable, List, Optional

from layout.date_window import VIEWS, date_window, shift_anchor
from processor.models import DateRange

logger = logging.getLogger(__name__)

Listener = Callable[['CalendarView'], None]


class CalendarView:
    """Holds the current view and anchor and notifies listeners on change."""

    def __init__(self, view: str = 'week', anchor: Optional[date] = None,
                 today_provider: Callable[[], date] = date.today):
        """
        Args:
            view: Initial view mode
            anchor: Initial anchor date (defaults to today)
            today_provider: Callable returning today's date
        """
        if view not in VIEWS:
            raise ValueError(f"Unknown view '{view}'")
        self._today = today_provider
        self._view = view
        self._anchor = anchor or today_provider()
        self._listeners: List[Listener] = []

    @property
    def view(self) -> str:
        return self._view

    @property
    def anchor(self) -> date:
        return self._anchor

    @property
    def window(self) -> DateRange:
        return date_window(self._view, self._anchor)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view '{view}'")
        if view != self._view:
            self._view = view
            self._notify()

    def set_anchor(self, anchor: date) -> None:
        if anchor != self._anchor:
            self._anchor = anchor
            self._notify()

    def previous(self) -> None:
        self.set_anchor(shift_anchor(self._view, self._anchor, -1))

    def next(self) -> None:
        self.set_anchor(shift_anchor(self._view, self._anchor, 1))

    def today(self) -> None:
        self.set_anchor(self._today())

    def select_day(self, day: Optional[int]) -> None:
        """Jump to a day of the current month (mini-calendar click)."""
        if day:
            self.set_anchor(self._anchor.replace(day=day))

    def _notify(self) -> None:
        logger.debug(f"Calendar view changed to {self._view} at {self._anchor.isoformat()}")
        for listener in list(self._listeners):
            listener(self)
