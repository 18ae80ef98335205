"""Interval arithmetic for dayplanner.

Pure functions over half-open ``[start, end)`` intervals: turning work
windows into concrete intervals on a date, subtracting blocked time and
filtering out fragments too short to use.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from dayplanner.models.constants import DEFAULT_MIN_SLOT_MINUTES
from dayplanner.models.schedule import TimeInterval


def localize(dt: datetime, time_zone: Optional[str]) -> datetime:
    """Express ``dt`` in ``time_zone``.

    Naive datetimes are taken to already be local to ``time_zone``. With no
    time zone the value is returned unchanged.
    """
    if time_zone is None:
        return dt
    tz = ZoneInfo(time_zone)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def day_bounds(plan_date: date, time_zone: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Return (start of day, start of next day) for a planning date."""
    tzinfo = ZoneInfo(time_zone) if time_zone else None
    day_start = datetime.combine(plan_date, time.min, tzinfo=tzinfo)
    return day_start, day_start + timedelta(days=1)


def at_hour(plan_date: date, hour: int, time_zone: Optional[str] = None) -> datetime:
    """Datetime for ``hour:00`` on ``plan_date`` (hour 24 is next midnight)."""
    day_start, _ = day_bounds(plan_date, time_zone)
    return day_start + timedelta(hours=hour)


def work_windows_for(
    plan_date: date,
    windows: Sequence[Tuple[int, int]],
    time_zone: Optional[str] = None,
) -> List[TimeInterval]:
    """Turn (start_hour, end_hour) pairs into concrete intervals on a date."""
    intervals = [
        TimeInterval(
            start=at_hour(plan_date, start_hour, time_zone),
            end=at_hour(plan_date, end_hour, time_zone),
        )
        for start_hour, end_hour in windows
    ]
    return sorted(intervals, key=lambda i: i.start)


def subtract(free: TimeInterval, blocked_start: datetime, blocked_end: datetime) -> List[TimeInterval]:
    """Subtract ``[blocked_start, blocked_end)`` from ``free``.

    Returns zero, one or two fragments:
    - no overlap: ``[free]`` unchanged
    - otherwise the non-empty left and right remainders

    Raises:
        ValueError: if the blocked range is empty or inverted
    """
    if blocked_start >= blocked_end:
        raise ValueError(f"blocked interval start must be before end ({blocked_start} >= {blocked_end})")

    if blocked_end <= free.start or blocked_start >= free.end:
        return [free]

    fragments = []
    left_end = min(blocked_start, free.end)
    if free.start < left_end:
        fragments.append(TimeInterval(start=free.start, end=left_end))

    right_start = max(blocked_end, free.start)
    if right_start < free.end:
        fragments.append(TimeInterval(start=right_start, end=free.end))

    return fragments


def compute_free_slots(
    work_windows: Iterable[TimeInterval],
    blocked: Iterable[TimeInterval],
    min_slot_minutes: int = DEFAULT_MIN_SLOT_MINUTES,
) -> List[TimeInterval]:
    """Fold every blocked interval over every work window.

    Fragments shorter than ``min_slot_minutes`` are discarded. The result is
    sorted ascending and non-overlapping as long as the work windows are.

    Args:
        work_windows: Windows of the day available for work
        blocked: Fixed obstacles (classes, meetings, committed items)
        min_slot_minutes: Minimum usable duration of a free interval

    Returns:
        Sorted list of free intervals
    """
    if min_slot_minutes < 0:
        raise ValueError("min_slot_minutes must not be negative")

    slots = sorted(work_windows, key=lambda i: i.start)
    for obstacle in blocked:
        next_slots = []
        for slot in slots:
            next_slots.extend(subtract(slot, obstacle.start, obstacle.end))
        slots = next_slots

    minimum = timedelta(minutes=min_slot_minutes)
    return [slot for slot in slots if slot.duration >= minimum]


def is_sorted_disjoint(intervals: Sequence[TimeInterval]) -> bool:
    """True if intervals are sorted by start and do not overlap."""
    return all(a.end <= b.start for a, b in zip(intervals, intervals[1:]))


def total_minutes(intervals: Iterable) -> float:
    """Total length in minutes of anything with ``start``/``end``."""
    return sum((i.end - i.start).total_seconds() for i in intervals) / 60


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a
