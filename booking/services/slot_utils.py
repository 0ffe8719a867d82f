"""
slot_utils.py
-------------
Time helpers shared by the schedule resolver, the availability engine and
the booking transaction.

Conventions:
- Local wall-clock windows are `Window(start, end)` with datetime.time ends,
  half-open: [start, end).
- Window arithmetic is done in minutes since midnight.
- Datetimes handed to the ORM are timezone-aware in the current timezone
  (each business runs on the one configured local time).

intervals_overlap() is the only overlap predicate in the codebase; the
single-slot path, the bulk check and the booking commit all call it.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from django.utils import timezone

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> time:
    """
    Parse 'HH:MM' into a time. Raises ValueError on anything else.
    """
    h, m = (value or "").strip().split(":")
    return time(int(h), int(m))


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(value: int) -> time:
    if value >= MINUTES_PER_DAY:
        return time.max.replace(second=0, microsecond=0)
    return time(value // 60, value % 60)


@dataclass(frozen=True, order=True)
class Window:
    start: time
    end: time

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    @property
    def is_valid(self) -> bool:
        return self.start < self.end

    def as_dict(self) -> dict:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


def intervals_overlap(a_start, a_end, b_start, b_end) -> bool:
    """
    Half-open overlap test: [a_start, a_end) and [b_start, b_end) share time.
    Works for datetimes, times and plain minute counts alike.
    """
    return a_start < b_end and b_start < a_end


def normalize_windows(windows) -> list:
    """
    Drop malformed windows (start >= end), sort, and merge overlapping or
    touching ones so the result is ordered and non-overlapping.
    """
    valid = sorted(w for w in windows if w.is_valid)
    merged = []
    for w in valid:
        if merged and w.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Window(last.start, max(last.end, w.end))
        else:
            merged.append(w)
    return merged


def intersect_windows(first, second) -> list:
    """
    Pairwise intersection of two window lists.
    """
    result = []
    for a in first:
        for b in second:
            start = max(a.start, b.start)
            end = min(a.end, b.end)
            if start < end:
                result.append(Window(start, end))
    return normalize_windows(result)


def split_around_break(window: Window, break_start: time | None, break_end: time | None) -> list:
    """
    Remove a break (e.g. lunch) from a window, leaving the parts before and after.
    """
    if break_start is None or break_end is None:
        return [window]
    if not intervals_overlap(window.start, window.end, break_start, break_end):
        return [window]

    parts = []
    if window.start < break_start:
        parts.append(Window(window.start, break_start))
    if break_end < window.end:
        parts.append(Window(break_end, window.end))
    return parts


def fits_windows(start_minutes: int, end_minutes: int, windows) -> bool:
    """
    True when [start, end) lies entirely inside one of the windows.
    """
    return any(
        w.start_minutes <= start_minutes and end_minutes <= w.end_minutes
        for w in windows
    )


def slots_needed_for(duration_minutes: int, granularity: int) -> int:
    return max(1, math.ceil(duration_minutes / granularity))


def first_boundary(window_start: int, anchor: int, granularity: int) -> int:
    """
    Earliest slot boundary at or after window_start, where boundaries are
    anchor + k * granularity for any integer k.
    """
    offset = (window_start - anchor) % granularity
    if offset == 0:
        return window_start
    return window_start + granularity - offset


def candidate_starts(window: Window, anchor: int, granularity: int, step: int, duration: int) -> list:
    """
    Start minutes inside `window`, aligned to the slot grid and stepping by
    `step`, whose [start, start + duration) still ends inside the window.
    """
    starts = []
    current = first_boundary(window.start_minutes, anchor, granularity)
    while current + duration <= window.end_minutes:
        starts.append(current)
        current += step
    return starts


def _make_aware(dt_naive: datetime):
    """
    Convert a naive datetime to an aware one using Django's current timezone.
    """
    if timezone.is_aware(dt_naive):
        return dt_naive
    return timezone.make_aware(dt_naive, timezone.get_current_timezone())


def ensure_aware(value: datetime) -> datetime:
    return _make_aware(value)


def combine(day: date, minutes: int) -> datetime:
    """
    Aware datetime for `minutes` past local midnight on `day`.
    """
    return _make_aware(datetime(day.year, day.month, day.day) + timedelta(minutes=minutes))


def local_date(value: datetime) -> date:
    return timezone.localtime(ensure_aware(value)).date()


def local_minutes(value: datetime) -> int:
    local = timezone.localtime(ensure_aware(value))
    return local.hour * 60 + local.minute


def date_to_range(day):
    """
    Convert a date (or 'YYYY-MM-DD') into a timezone-aware day window [start, end).
    """
    if isinstance(day, str):
        y, m, d = map(int, day.strip().split("-"))
        day = date(y, m, d)

    day_start = _make_aware(datetime(day.year, day.month, day.day, 0, 0, 0))
    day_end = _make_aware(datetime.combine(day + timedelta(days=1), time(0, 0)))
    return day_start, day_end
