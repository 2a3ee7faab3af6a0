"""Date window calculations for the day, week and month views."""
import calendar
from datetime import date, timedelta
from typing import List, Optional

from processor.models import DateRange

VIEWS = ('day', 'week', 'month')


def date_window(view: str, anchor: date) -> DateRange:
    """
    Compute the date range displayed for a view mode and anchor date.

    Weeks always run Sunday through Saturday.

    Args:
        view: One of 'day', 'week', 'month'
        anchor: Date the view is centred on

    Returns:
        Inclusive DateRange
    """
    if view == 'day':
        return DateRange(start=anchor, end=anchor)

    if view == 'week':
        start = week_start(anchor)
        return DateRange(start=start, end=start + timedelta(days=6))

    if view == 'month':
        last_day = calendar.monthrange(anchor.year, anchor.month)[1]
        return DateRange(
            start=anchor.replace(day=1),
            end=anchor.replace(day=last_day)
        )

    raise ValueError(f"Unknown view '{view}', expected one of {', '.join(VIEWS)}")


def week_start(anchor: date) -> date:
    """Return the most recent Sunday on or before anchor."""
    # date.weekday() is Monday=0; shift so Sunday=0
    days_since_sunday = (anchor.weekday() + 1) % 7
    return anchor - timedelta(days=days_since_sunday)


def week_dates(anchor: date) -> List[date]:
    """Return the seven dates of the week containing anchor."""
    start = week_start(anchor)
    return [start + timedelta(days=i) for i in range(7)]


def shift_anchor(view: str, anchor: date, step: int) -> date:
    """
    Move the anchor by step days, weeks or months depending on the view.

    A month shift keeps the day of month, clamped to the target month's
    length (Jan 31 + 1 month -> Feb 28/29).
    """
    if view == 'day':
        return anchor + timedelta(days=step)

    if view == 'week':
        return anchor + timedelta(weeks=step)

    if view == 'month':
        month_index = anchor.year * 12 + (anchor.month - 1) + step
        year, month = divmod(month_index, 12)
        month += 1
        day = min(anchor.day, calendar.monthrange(year, month)[1])
        return date(year, month, day)

    raise ValueError(f"Unknown view '{view}', expected one of {', '.join(VIEWS)}")


def mini_calendar_days(anchor: date) -> List[Optional[int]]:
    """
    Day numbers of anchor's month for a Sunday-first mini calendar.

    Leading None entries pad the weekdays before the 1st.
    """
    first_day = anchor.replace(day=1)
    days_in_month = calendar.monthrange(anchor.year, anchor.month)[1]
    padding = (first_day.weekday() + 1) % 7

    days: List[Optional[int]] = [None] * padding
    days.extend(range(1, days_in_month + 1))
    return days
