"""Group events into day columns and mobile time-of-day cells."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from processor.models import Event

SLOT_NAMES = ('Morning', 'Afternoon', 'Evening')

MAX_STACKED_CARDS = 3
STACK_OFFSET_PX = 4
STACK_ROTATION_DEG = 2


@dataclass
class StackedCard:
    """One visible card in a mobile cell."""
    event: Event
    index: int
    offset_px: int = 0
    rotation_deg: int = 0
    z_index: int = 1


@dataclass
class CellLayout:
    """Render instructions for one (day, slot) cell."""
    events: List[Event] = field(default_factory=list)
    cards: List[StackedCard] = field(default_factory=list)
    overflow_badge: Optional[str] = None
    count_badge: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.events

    @property
    def is_stacked(self) -> bool:
        return len(self.events) > 1


def day_index(date_str: str) -> int:
    """1-based day-of-week column for an ISO date, Sunday = 1."""
    weekday = datetime.strptime(date_str, '%Y-%m-%d').weekday()
    return (weekday + 1) % 7 + 1


def coarse_slot(start_time: str) -> int:
    """Morning (0) for [6, 12), afternoon (1) for [12, 18), else evening (2)."""
    hour = int(start_time.split(':')[0])
    if 6 <= hour < 12:
        return 0
    if 12 <= hour < 18:
        return 1
    return 2


def bucket_desktop(events: Sequence[Event]) -> Dict[int, List[Event]]:
    """Bucket events by day column, keeping the data layer's order."""
    buckets: Dict[int, List[Event]] = {day: [] for day in range(1, 8)}
    for event in events:
        buckets[day_index(event.date)].append(event)
    return buckets


def bucket_mobile(events: Sequence[Event]) -> Dict[int, Dict[int, List[Event]]]:
    """Bucket events by day column and coarse slot, keeping input order."""
    buckets: Dict[int, Dict[int, List[Event]]] = {
        day: {slot: [] for slot in range(len(SLOT_NAMES))}
        for day in range(1, 8)
    }
    for event in events:
        buckets[day_index(event.date)][coarse_slot(event.start_time)].append(event)
    return buckets


def layout_cell(events: Sequence[Event]) -> CellLayout:
    """
    Build the stacked-card layout for a mobile cell.

    A single event renders as one full-size card. Two or more render up to
    three cards, each offset and rotated a step further than the one above
    it, with the first card on top. Cells with more than three events get an
    overflow badge; every multi-event cell gets a count badge.
    """
    events = list(events)
    cell = CellLayout(events=events)

    if not events:
        return cell

    if len(events) == 1:
        cell.cards.append(StackedCard(event=events[0], index=0))
        return cell

    visible = events[:MAX_STACKED_CARDS]
    for index, event in enumerate(visible):
        cell.cards.append(StackedCard(
            event=event,
            index=index,
            offset_px=index * STACK_OFFSET_PX,
            rotation_deg=index * STACK_ROTATION_DEG,
            z_index=len(visible) - index
        ))

    hidden = len(events) - MAX_STACKED_CARDS
    if hidden > 0:
        cell.overflow_badge = f"+{hidden}"
    cell.count_badge = str(len(events))
    return cell


def layout_mobile_week(events: Sequence[Event]) -> Dict[int, Dict[int, CellLayout]]:
    """Cell layouts for every (day, slot) of the mobile week grid."""
    return {
        day: {slot: layout_cell(group) for slot, group in slots.items()}
        for day, slots in bucket_mobile(events).items()
    }


class DetailCursor:
    """Detail view over a group of events with wrap-around navigation."""

    def __init__(self, events: Sequence[Event], index: int = 0):
        if not events:
            raise ValueError("DetailCursor needs at least one event")
        if not 0 <= index < len(events):
            raise IndexError(f"Event index {index} out of range for {len(events)} events")
        self.events = list(events)
        self.index = index

    @property
    def current(self) -> Event:
        return self.events[self.index]

    @property
    def position(self) -> str:
        return f"{self.index + 1} of {len(self.events)}"

    def next(self) -> Event:
        self.index = (self.index + 1) % len(self.events)
        return self.current


def open_detail(cell: CellLayout, card_index: int) -> DetailCursor:
    """Open the detail view at the selected card of a cell."""
    return DetailCursor(cell.events, card_index)


def image_viewer_target(event: Event) -> Optional[Tuple[str, str]]:
    """Image URL and title for the full-size viewer, if the event has an image."""
    if not event.image_url:
        return None
    return event.image_url, event.title
