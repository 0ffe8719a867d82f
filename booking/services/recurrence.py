"""
recurrence.py
-------------
Turns a recurrence rule into concrete booking attempts.

- expand_dates(): pure date generation. Steps from start_date by
  frequency × interval (day, week, month or year) up to and including
  end_date (default: start + SCHEDULING["RECURRENCE_HORIZON_DAYS"]).
  Month/year steps are taken from the start date each time, so a series
  starting on the 31st lands on the last day of shorter months without
  drifting.
- RecurrencePatternExpander.book_series(): stores the pattern, then sends
  every date to BookingManager.book() one by one. A rejected date is
  recorded and skipped; earlier successes stay committed.
- delete_pattern(): removes the pattern together with its still-active
  future appointments. Past or terminal occurrences are kept (their link to
  the pattern is cleared).
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from django.db import transaction
from django.utils import timezone

from ..conf import scheduling_setting
from ..models import RecurringAppointmentPattern
from ..signals import future_occurrences
from .booking_manager import BookingManager
from .errors import InvalidRecurrence, SchedulingError
from .slot_utils import ensure_aware

logger = logging.getLogger(__name__)

FREQUENCIES = {
    RecurringAppointmentPattern.DAILY,
    RecurringAppointmentPattern.WEEKLY,
    RecurringAppointmentPattern.MONTHLY,
    RecurringAppointmentPattern.YEARLY,
}

# Upper bound on generated dates, whatever the rule says.
MAX_OCCURRENCES = 1000


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _nth(start: date, frequency: str, step: int) -> date:
    if frequency == RecurringAppointmentPattern.DAILY:
        return start + timedelta(days=step)
    if frequency == RecurringAppointmentPattern.WEEKLY:
        return start + timedelta(weeks=step)
    if frequency == RecurringAppointmentPattern.MONTHLY:
        return _add_months(start, step)
    return _add_months(start, 12 * step)


def validate_rule(frequency, interval, days_of_week, start_date, end_date) -> None:
    if frequency not in FREQUENCIES:
        raise InvalidRecurrence(f"Unknown frequency: {frequency!r}.")
    if not isinstance(interval, int) or isinstance(interval, bool) or interval < 1:
        raise InvalidRecurrence("Interval must be a whole number of at least 1.")
    if start_date is None:
        raise InvalidRecurrence("A start date is required.")
    if end_date is not None and end_date < start_date:
        raise InvalidRecurrence("End date must not be before the start date.")
    for weekday in days_of_week or []:
        if not isinstance(weekday, int) or isinstance(weekday, bool) or not 0 <= weekday <= 6:
            raise InvalidRecurrence("Days of week must be numbers 0 (Monday) to 6 (Sunday).")


def default_end_date(start_date: date) -> date:
    return start_date + timedelta(days=scheduling_setting("RECURRENCE_HORIZON_DAYS"))


def expand_dates(frequency, interval, start_date, end_date=None, days_of_week=None) -> list:
    """
    Dates produced by the rule, inclusive of both ends.

    Raises:
        InvalidRecurrence: unknown frequency, interval < 1, bad day filter,
            or end before start.
    """
    validate_rule(frequency, interval, days_of_week, start_date, end_date)
    end_date = end_date or default_end_date(start_date)
    allowed = set(days_of_week or [])

    dates = []
    step = 0
    while len(dates) < MAX_OCCURRENCES:
        current = _nth(start_date, frequency, step * interval)
        if current > end_date:
            break
        if not allowed or current.weekday() in allowed:
            dates.append(current)
        step += 1
    return dates


@dataclass
class AppointmentTemplate:
    """What every occurrence books: service, client, optional staff, start time."""
    service_id: int
    client_id: int
    start_time: time
    staff_id: int | None = None
    notes: str = ""


@dataclass
class SeriesOutcome:
    pattern: RecurringAppointmentPattern
    created: list = field(default_factory=list)
    skipped: list = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)

    def as_dict(self) -> dict:
        return {
            "pattern_id": self.pattern.pk,
            "appointments_created": self.created_count,
            "created": [
                {"date": timezone.localtime(a.scheduled_for).date().isoformat(), "appointment_id": a.pk}
                for a in self.created
            ],
            "skipped": [{"date": d.isoformat(), "code": code} for d, code in self.skipped],
        }


class RecurrencePatternExpander:
    def __init__(self, manager: BookingManager | None = None):
        self.manager = manager or BookingManager()

    def expand(self, pattern, template: AppointmentTemplate) -> list:
        """
        Booking attempts for `pattern`: one (date, start datetime) pair per date.
        """
        dates = expand_dates(
            pattern.frequency,
            pattern.interval,
            pattern.start_date,
            pattern.end_date,
            pattern.days_of_week,
        )
        return [
            (day, ensure_aware(datetime.combine(day, template.start_time)))
            for day in dates
        ]

    def book_series(
        self,
        business,
        template: AppointmentTemplate,
        frequency,
        interval,
        start_date,
        end_date=None,
        days_of_week=None,
        now=None,
    ) -> SeriesOutcome:
        """
        Store the pattern and book every occurrence individually.
        """
        validate_rule(frequency, interval, days_of_week, start_date, end_date)

        pattern = RecurringAppointmentPattern.objects.create(
            business=business,
            frequency=frequency,
            interval=interval,
            days_of_week=list(days_of_week or []),
            start_date=start_date,
            end_date=end_date,
        )
        outcome = SeriesOutcome(pattern=pattern)

        for day, start in self.expand(pattern, template):
            try:
                appointment = self.manager.book(
                    business,
                    service_id=template.service_id,
                    client_id=template.client_id,
                    scheduled_for=start,
                    staff_id=template.staff_id,
                    notes=template.notes,
                    recurring_pattern=pattern,
                    now=now,
                )
            except SchedulingError as exc:
                outcome.skipped.append((day, exc.code))
                continue
            outcome.created.append(appointment)

        logger.info(
            "Recurring pattern %s: %s created, %s skipped",
            pattern.pk, outcome.created_count, len(outcome.skipped),
        )
        return outcome


@transaction.atomic
def delete_pattern(pattern) -> int:
    """
    Delete `pattern`; the pre_delete receiver in booking/signals.py removes its
    active future appointments. Returns how many were removed.
    """
    pattern_id = pattern.pk
    removed = future_occurrences(pattern).count()
    pattern.delete()
    logger.info("Deleted recurring pattern %s with %s future appointment(s)", pattern_id, removed)
    return removed
