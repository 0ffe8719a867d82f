"""
schedule_resolver.py
--------------------
Resolves a staff member's working windows for one date.

The weekly schedule is stored as loosely-shaped JSON (see staff/models.py).
parse_day() turns each day into one of two shapes:

    NotWorking()
    Working(windows=(Window, ...))   # ordered, non-overlapping

Time off (StaffUnavailability) is day-granular: a record covering the date
empties the day no matter what the weekly schedule says.

Staff-level lunch breaks are not applied here; the business-level lunch
break in BusinessHours is the one the availability engine honours.
"""

import logging
from dataclasses import dataclass

from staff.models import StaffAvailability, StaffUnavailability, WEEKDAY_KEYS

from .errors import StaffScheduleNotFound
from .slot_utils import Window, normalize_windows, parse_hhmm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotWorking:
    windows: tuple = ()

    @property
    def is_working(self) -> bool:
        return False


@dataclass(frozen=True)
class Working:
    windows: tuple

    @property
    def is_working(self) -> bool:
        return True


def _window_from(raw) -> Window | None:
    if not isinstance(raw, dict):
        return None
    try:
        return Window(parse_hhmm(raw.get("start")), parse_hhmm(raw.get("end")))
    except (AttributeError, TypeError, ValueError):
        return None


def parse_day(raw):
    """
    Normalise one day of the weekly schedule JSON.
    Malformed windows (unparseable, or start >= end) are dropped.
    """
    if not isinstance(raw, dict) or raw.get("isWorking") is False:
        return NotWorking()

    shifts = raw.get("timeSlots")
    if isinstance(shifts, list) and shifts:
        candidates = [_window_from(s) for s in shifts]
    else:
        candidates = [_window_from(raw)]

    windows = normalize_windows(w for w in candidates if w is not None)
    if not windows:
        return NotWorking()
    return Working(tuple(windows))


def parse_schedule(schedule) -> dict:
    """
    Normalise the whole weekly schedule: {weekday_index: NotWorking | Working}.
    """
    schedule = schedule if isinstance(schedule, dict) else {}
    return {index: parse_day(schedule.get(key)) for index, key in enumerate(WEEKDAY_KEYS)}


class StaffScheduleResolver:
    def _availability_for(self, staff):
        try:
            return StaffAvailability.objects.get(staff=staff)
        except StaffAvailability.DoesNotExist:
            raise StaffScheduleNotFound(
                f"No availability has been set up for staff member {staff.pk}."
            ) from None

    def day_schedule(self, staff, day):
        availability = self._availability_for(staff)
        return parse_day((availability.schedule or {}).get(WEEKDAY_KEYS[day.weekday()]))

    def is_unavailable(self, staff, day) -> bool:
        return StaffUnavailability.objects.filter(
            staff=staff,
            start_date__lte=day,
            end_date__gte=day,
        ).exists()

    def resolve_windows(self, staff, day) -> list:
        """
        Ordered working windows for `staff` on `day`; empty when not working.

        Raises:
            StaffScheduleNotFound: the staff member never had a schedule created.
        """
        schedule = self.day_schedule(staff, day)
        if not schedule.is_working:
            return []

        if self.is_unavailable(staff, day):
            logger.debug("Staff %s unavailable on %s", staff.pk, day)
            return []

        return list(schedule.windows)
