"""Overnight-aware time-of-day arithmetic.

All intervals are times of day on a single calendar date. An interval whose
end is at or before its start crosses midnight and finishes on the next day.
"""

from __future__ import annotations

from datetime import time
from typing import Union

MINUTES_PER_DAY = 24 * 60

TimeLike = Union[time, str]


def parse_time(value: TimeLike) -> time:
    """
    Parse ``HH:MM`` (or ``HH:MM:SS``, as returned by SQL ``time`` columns).

    Raises:
        ValueError: If the string is not a valid time of day
    """
    if isinstance(value, time):
        return value
    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time string: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    return time(hour, minute, second)


def format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def to_minutes(value: TimeLike) -> int:
    t = parse_time(value)
    return t.hour * 60 + t.minute


def _span(start: TimeLike, end: TimeLike) -> tuple[int, int]:
    s = to_minutes(start)
    e = to_minutes(end)
    if e <= s:
        e += MINUTES_PER_DAY
    return s, e


def duration_minutes(start: TimeLike, end: TimeLike) -> int:
    s, e = _span(start, end)
    return e - s


def duration_hours(start: TimeLike, end: TimeLike) -> float:
    return duration_minutes(start, end) / 60.0


def overlaps(start_a: TimeLike, end_a: TimeLike, start_b: TimeLike, end_b: TimeLike) -> bool:
    """
    True if two same-date intervals share any minute.

    The overnight tail of one interval (after midnight) is compared against the
    early part of the other, e.g. 22:00-06:00 overlaps 05:00-09:00.
    """
    sa, ea = _span(start_a, end_a)
    sb, eb = _span(start_b, end_b)
    for shift in (-MINUTES_PER_DAY, 0, MINUTES_PER_DAY):
        if sa < eb + shift and sb + shift < ea:
            return True
    return False


def contains(outer_start: TimeLike, outer_end: TimeLike, start: TimeLike, end: TimeLike) -> bool:
    """True if ``start-end`` lies entirely inside ``outer_start-outer_end``."""
    so, eo = _span(outer_start, outer_end)
    s, e = _span(start, end)
    for shift in (0, MINUTES_PER_DAY):
        if so <= s + shift and e + shift <= eo:
            return True
    return False


def rest_hours(end_a: TimeLike, start_b: TimeLike) -> float:
    """
    Hours between the end of one shift and the start of the next.

    If ``start_b`` is not after ``end_a`` the next shift starts the following day.
    """
    end = to_minutes(end_a)
    start = to_minutes(start_b)
    if start <= end:
        start += MINUTES_PER_DAY
    return (start - end) / 60.0


def gap_hours(start_a: TimeLike, end_a: TimeLike, start_b: TimeLike, end_b: TimeLike) -> float:
    """
    Hours between two non-overlapping intervals on the same date.

    The intervals are ordered by start; the gap runs from the end of the
    earlier one to the start of the later one. Only an interval whose own end
    is at or before its start reaches into the next day.
    """
    first, second = sorted((_span(start_a, end_a), _span(start_b, end_b)))
    return (second[0] - first[1]) / 60.0
