"""
Date arithmetic and grouping for the calendar and availability views.

Everything here is pure: the caller's notion of "today" is always passed in,
so the same inputs give the same grid on every call. Weeks start on Sunday.
"""

import calendar
from datetime import date, timedelta
from typing import Iterable, Iterator, Optional, Union

from constants import (
    ACTIVITY_TYPES, ACTIVITY_TYPE_DEFAULT_LABEL, EVENT_TYPES, EVENT_TYPE_DEFAULT_LABEL,
    MONTH_RANGE_BUFFER_DAYS, WEEKDAY_NAMES, WEEKDAY_NAMES_SHORT,
)
from models import AvailabilityMark, CalendarDay, CalendarItem

DateLike = Union[date, str]


class CalendarError(ValueError):
    """Raised for calendar inputs that cannot produce a grid or slot list."""


def _to_date(value: DateLike) -> date:
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


def start_of_week(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def end_of_week(day: date) -> date:
    """Saturday on or after ``day``."""
    return start_of_week(day) + timedelta(days=6)


def _month_bounds(day: date) -> tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def _days_between(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _calendar_day(day: date, today: date, is_current_month: bool) -> CalendarDay:
    return CalendarDay(
        date=day,
        date_string=day.isoformat(),
        day_of_month=day.day,
        is_current_month=is_current_month,
        is_today=day == today,
        # date.weekday(): Saturday == 5, Sunday == 6
        is_weekend=day.weekday() >= 5,
    )


def month_grid(reference_date: date, today: date) -> list[CalendarDay]:
    """
    Every day needed to draw the month containing ``reference_date``.

    The grid starts on the Sunday of the week holding the 1st and ends on the
    Saturday of the week holding the last day, so it is always whole weeks.
    """
    month_start, month_end = _month_bounds(reference_date)
    return [
        _calendar_day(
            day,
            today,
            (day.year, day.month) == (reference_date.year, reference_date.month),
        )
        for day in _days_between(start_of_week(month_start), end_of_week(month_end))
    ]


def week_grid(reference_date: date, num_weeks: int, today: date) -> list[CalendarDay]:
    """``num_weeks * 7`` consecutive days starting on the Sunday on/before ``reference_date``."""
    if num_weeks <= 0:
        raise CalendarError(f"num_weeks must be positive, got {num_weeks}")

    start = start_of_week(reference_date)
    return [
        _calendar_day(start + timedelta(days=offset), today, True)
        for offset in range(num_weeks * 7)
    ]


def month_date_range(reference_date: date) -> tuple[str, str]:
    """Month grid bounds with a one-week buffer either side, for prefetching rows."""
    month_start, month_end = _month_bounds(reference_date)
    buffer = timedelta(days=MONTH_RANGE_BUFFER_DAYS)
    start = start_of_week(month_start) - buffer
    end = end_of_week(month_end) + buffer
    return start.isoformat(), end.isoformat()


def week_date_range(reference_date: date, num_weeks: int = 1) -> tuple[str, str]:
    """The exact window covered by ``week_grid``."""
    if num_weeks <= 0:
        raise CalendarError(f"num_weeks must be positive, got {num_weeks}")

    start = start_of_week(reference_date)
    end = start + timedelta(days=num_weeks * 7 - 1)
    return start.isoformat(), end.isoformat()


def group_by_date(items: Iterable[CalendarItem]) -> dict[str, list[CalendarItem]]:
    """Partition items by their ``yyyy-MM-dd`` key, keeping insertion order within a day."""
    grouped: dict[str, list[CalendarItem]] = {}
    for item in items:
        grouped.setdefault(item.date, []).append(item)
    return grouped


def sort_items(items: Iterable[CalendarItem]) -> list[CalendarItem]:
    return sorted(items, key=lambda item: (item.date, item.time))


class TimeSlots:
    """
    Time-of-day strings from ``start_hour:00`` through ``end_hour:00``.

    Iterating always starts over from the first slot, so one instance can be
    walked as many times as a render needs. When ``step_minutes`` does not
    divide the window evenly the last slot is the final one before ``end_hour:00``.
    """

    def __init__(self, start_hour: int, end_hour: int, step_minutes: int = 30):
        if not 0 <= start_hour <= 23 or not 0 <= end_hour <= 23:
            raise CalendarError(f"Hours must be between 0 and 23, got {start_hour}-{end_hour}")
        if start_hour > end_hour:
            raise CalendarError(f"start_hour {start_hour} is after end_hour {end_hour}")
        if step_minutes <= 0:
            raise CalendarError(f"step_minutes must be positive, got {step_minutes}")

        self.start_hour = start_hour
        self.end_hour = end_hour
        self.step_minutes = step_minutes

    def __iter__(self) -> Iterator[str]:
        minutes = self.start_hour * 60
        last = self.end_hour * 60
        while minutes <= last:
            yield f"{minutes // 60:02d}:{minutes % 60:02d}"
            minutes += self.step_minutes

    def __len__(self) -> int:
        return (self.end_hour - self.start_hour) * 60 // self.step_minutes + 1

    def __contains__(self, time: object) -> bool:
        return any(slot == time for slot in self)

    def __repr__(self) -> str:
        return f"TimeSlots({self.start_hour}, {self.end_hour}, {self.step_minutes})"


def generate_time_slots(start_hour: int, end_hour: int, step_minutes: int = 30) -> TimeSlots:
    return TimeSlots(start_hour, end_hour, step_minutes)


def format_time_display(time: str) -> str:
    """'18:30' -> '6:30 PM'"""
    hours, minutes = (int(part) for part in time.split(":")[:2])
    period = "AM" if hours < 12 else "PM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{minutes:02d} {period}"


def is_same_day(first: DateLike, second: DateLike) -> bool:
    return _to_date(first) == _to_date(second)


def weekday_names(short: bool = True) -> list[str]:
    return list(WEEKDAY_NAMES_SHORT if short else WEEKDAY_NAMES)


def previous_month(day: date) -> date:
    first = day.replace(day=1)
    return (first - timedelta(days=1)).replace(day=1)


def next_month(day: date) -> date:
    _, month_end = _month_bounds(day)
    return month_end + timedelta(days=1)


def previous_week(day: date) -> date:
    return day - timedelta(days=7)


def next_week(day: date) -> date:
    return day + timedelta(days=7)


def event_type_label(event_type: Optional[str]) -> str:
    for entry in EVENT_TYPES:
        if entry["value"] == event_type:
            return entry["label"]
    return EVENT_TYPE_DEFAULT_LABEL


def activity_type_label(activity_type: Optional[str]) -> str:
    for entry in ACTIVITY_TYPES:
        if entry["value"] == activity_type:
            return entry["label"]
    return ACTIVITY_TYPE_DEFAULT_LABEL


# ============ ROW NORMALIZATION ============

def _iso(value) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


def _hhmm(value) -> str:
    # TIME columns come back as datetime.time, TEXT columns as "HH:MM[:SS]"
    if hasattr(value, "strftime"):
        return value.strftime("%H:%M")
    return str(value or "")[:5]


def item_from_match(row: dict, team_name: Optional[str] = None) -> CalendarItem:
    return CalendarItem(
        id=str(row["id"]),
        type="match",
        date=_iso(row["date"]),
        time=_hhmm(row.get("time")),
        team_id=row.get("team_id"),
        team_name=team_name or row.get("team_name"),
        name=f"vs {row['opponent_name']}",
    )


def item_from_event(row: dict, team_name: Optional[str] = None) -> CalendarItem:
    return CalendarItem(
        id=str(row["id"]),
        type="event",
        date=_iso(row["date"]),
        time=_hhmm(row.get("time")),
        team_id=row.get("team_id"),
        team_name=team_name or row.get("team_name"),
        name=row["event_name"],
        event_type=row.get("event_type") or None,
    )


def item_from_activity(row: dict) -> CalendarItem:
    """Personal activities have no team; they carry their own subtype and length."""
    return CalendarItem(
        id=str(row["id"]),
        type="activity",
        date=_iso(row["date"]),
        time=_hhmm(row.get("time")),
        name=row["title"],
        activity_type=row.get("activity_type") or None,
        duration_minutes=row.get("duration_minutes"),
    )


def apply_availability(items: Iterable[CalendarItem], marks: Iterable[AvailabilityMark]) -> list[CalendarItem]:
    """Copies of ``items`` carrying the viewer's status; when an item has several marks the last one wins."""
    status_by_item = {mark.item_id: mark.status for mark in marks}
    return [
        item.model_copy(update={"availability_status": status_by_item[item.id]})
        if item.id in status_by_item else item
        for item in items
    ]
