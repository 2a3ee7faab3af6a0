"""Pixel geometry for events on the desktop hourly grid."""
from dataclasses import dataclass
from typing import List

GRID_ORIGIN_HOUR = 8
PIXELS_PER_HOUR = 80
GRID_SLOT_COUNT = 9  # 8 AM to 4 PM


@dataclass
class Geometry:
    """Vertical placement of an event block, in pixels."""
    top: float
    height: float


def decimal_hours(time_str: str) -> float:
    """Convert 'HH:MM' to fractional hours."""
    hours, minutes = time_str.split(':')[:2]
    return int(hours) + int(minutes) / 60


def event_geometry(start_time: str, end_time: str,
                   origin_hour: int = GRID_ORIGIN_HOUR,
                   pixels_per_hour: int = PIXELS_PER_HOUR) -> Geometry:
    """
    Compute top offset and height of an event block.

    Events outside the visible hours get offsets above or below the grid;
    nothing is clipped.
    """
    start = decimal_hours(start_time)
    end = decimal_hours(end_time)
    return Geometry(
        top=(start - origin_hour) * pixels_per_hour,
        height=(end - start) * pixels_per_hour
    )


def time_slots(origin_hour: int = GRID_ORIGIN_HOUR, count: int = GRID_SLOT_COUNT) -> List[int]:
    """Hours labelled down the side of the desktop grid."""
    return [origin_hour + i for i in range(count)]
