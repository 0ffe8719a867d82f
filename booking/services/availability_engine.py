"""
availability_engine.py
----------------------
Computes bookable slots for one service on one day by checking candidate
start boundaries against:
1) the business's open hours for that weekday (minus the lunch break),
2) the staff member's working windows (when a staff member is involved),
3) existing non-terminal appointments on the exclusivity key.

Exclusivity key:
- exclusive service (capacity 1) with a staff member → the staff member;
  any overlapping active appointment of that staff member blocks the slot
- class service (capacity > 1), or a service without staff → the service;
  up to `capacity` overlapping active appointments may share a slot

Read-only: nothing here writes or locks. A stale answer only yields a slot
the booking transaction will then reject.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from django.utils import timezone

from businesses.models import BusinessHours

from ..conf import scheduling_setting
from ..models import Appointment, Service, Staff
from .errors import (
    InvalidRequest,
    InvalidSlotStart,
    OutsideWorkingHours,
    PastDate,
    ServiceNotFound,
    SlotConflict,
    StaffNotFound,
    StaffScheduleNotFound,
)
from .schedule_resolver import StaffScheduleResolver
from .slot_utils import (
    Window,
    candidate_starts,
    combine,
    date_to_range,
    ensure_aware,
    fits_windows,
    intersect_windows,
    intervals_overlap,
    local_date,
    local_minutes,
    parse_hhmm,
    slots_needed_for,
    split_around_break,
    to_minutes,
)

logger = logging.getLogger(__name__)

# Appointments are assumed to fit within a day; anything starting earlier
# than this before a candidate cannot reach into it.
LOOKBEHIND = timedelta(days=1)


@dataclass(frozen=True)
class SlotKey:
    """Structured slot identity: (service, weekday, time of day)."""
    service_id: int
    weekday: int
    start: time

    def as_dict(self) -> dict:
        return {
            "service_id": self.service_id,
            "weekday": self.weekday,
            "start": self.start.strftime("%H:%M"),
        }


def slot_key(service_id, start: datetime) -> SlotKey:
    local = timezone.localtime(start)
    return SlotKey(service_id, local.weekday(), local.time().replace(second=0, microsecond=0))


@dataclass(frozen=True)
class Slot:
    service_id: int
    start_time: datetime
    end_time: datetime
    slot_index: int
    remaining_capacity: int
    staff_id: int | None
    available: bool

    @property
    def key(self) -> SlotKey:
        return slot_key(self.service_id, self.start_time)

    @property
    def is_full(self) -> bool:
        return self.remaining_capacity <= 0

    def as_dict(self) -> dict:
        start = timezone.localtime(self.start_time)
        end = timezone.localtime(self.end_time)
        return {
            "start_time": start.strftime("%H:%M"),
            "end_time": end.strftime("%H:%M"),
            "starts_at": start.isoformat(),
            "ends_at": end.isoformat(),
            "slot_index": self.slot_index,
            "remaining_capacity": max(self.remaining_capacity, 0),
            "staff_id": self.staff_id,
            "available": self.available,
            "is_full": self.is_full,
            "key": self.key.as_dict(),
        }


@dataclass(frozen=True)
class Roster:
    """Who holds one concrete slot, and how much room is left in it."""
    key: SlotKey
    start_time: datetime
    end_time: datetime
    staff_id: int | None
    capacity: int
    remaining_capacity: int
    appointments: tuple

    def as_dict(self) -> dict:
        return {
            "key": self.key.as_dict(),
            "starts_at": timezone.localtime(self.start_time).isoformat(),
            "ends_at": timezone.localtime(self.end_time).isoformat(),
            "staff_id": self.staff_id,
            "capacity": self.capacity,
            "enrolled": len(self.appointments),
            "remaining_capacity": max(self.remaining_capacity, 0),
        }


# -------------------------
# Exclusivity key helpers
# -------------------------
def uses_staff_key(service, staff) -> bool:
    return staff is not None and not service.is_class


def key_capacity(service, staff) -> int:
    return 1 if uses_staff_key(service, staff) else service.capacity


def key_filter(service, staff) -> dict:
    if uses_staff_key(service, staff):
        return {"staff_id": staff.pk}
    return {"service_id": service.pk}


def count_overlapping(appointments, start, end, staff_id=None, service_id=None) -> int:
    """
    Number of appointments in `appointments` that overlap [start, end),
    optionally restricted to one staff member or one service.
    """
    count = 0
    for appt in appointments:
        if staff_id is not None and appt.staff_id != staff_id:
            continue
        if service_id is not None and appt.service_id != service_id:
            continue
        if intervals_overlap(appt.scheduled_for, appt.ends_at, start, end):
            count += 1
    return count


def active_appointments_between(business, start, end, **filters):
    """
    Active (non-terminal) appointments of `business` that may overlap [start, end).
    """
    return list(
        Appointment.objects.filter(
            business=business,
            status__in=Appointment.ACTIVE_STATUSES,
            scheduled_for__lt=end,
            scheduled_for__gte=start - LOOKBEHIND,
            **filters,
        ).order_by("scheduled_for", "id")
    )


class AvailabilityEngine:
    def __init__(self, resolver: StaffScheduleResolver | None = None):
        self.resolver = resolver or StaffScheduleResolver()

    # -------------------------
    # Lookups (business-scoped)
    # -------------------------
    def get_service(self, business, service_id):
        try:
            return Service.objects.get(pk=service_id, business=business, active=True)
        except (Service.DoesNotExist, ValueError, TypeError):
            raise ServiceNotFound() from None

    def get_staff(self, business, staff_id, service=None):
        try:
            staff = Staff.objects.get(pk=staff_id, business=business)
        except (Staff.DoesNotExist, ValueError, TypeError):
            raise StaffNotFound() from None
        if service is not None and service.staff.exists() and not service.staff.filter(pk=staff.pk).exists():
            raise StaffNotFound(f"{staff.name} does not perform {service.name}.")
        return staff

    # -------------------------
    # Slot grid
    # -------------------------
    def granularity(self, business) -> int:
        return business.slot_minutes or scheduling_setting("SLOT_MINUTES")

    def anchor(self, business) -> int:
        if business.day_start is not None:
            return to_minutes(business.day_start)
        return to_minutes(parse_hhmm(scheduling_setting("DAY_START")))

    def slots_needed(self, service, business) -> int:
        if service.slots_needed:
            return service.slots_needed
        return slots_needed_for(service.duration_minutes, self.granularity(business))

    # -------------------------
    # Windows
    # -------------------------
    def business_windows(self, business, day) -> list:
        """
        Open windows for `day`, split around the business lunch break.
        A weekday without an hours row uses the configured default hours.
        """
        hours = BusinessHours.objects.filter(business=business, weekday=day.weekday()).first()
        if hours is None:
            return [Window(
                parse_hhmm(scheduling_setting("DEFAULT_OPEN")),
                parse_hhmm(scheduling_setting("DEFAULT_CLOSE")),
            )]
        if not hours.is_open or hours.open_time >= hours.close_time:
            return []
        return split_around_break(
            Window(hours.open_time, hours.close_time),
            hours.lunch_start,
            hours.lunch_end,
        )

    def windows_for(self, business, day, staff=None) -> list:
        windows = self.business_windows(business, day)
        if staff is None or not windows:
            return windows
        return intersect_windows(windows, self.resolver.resolve_windows(staff, day))

    # -------------------------
    # Slots
    # -------------------------
    def _rows_for(self, business, service, day, windows, staff, appointments):
        granularity = self.granularity(business)
        anchor = self.anchor(business)
        step = self.slots_needed(service, business) * granularity
        duration = service.duration_minutes
        capacity = key_capacity(service, staff)
        key = key_filter(service, staff)

        rows = []
        for window in windows:
            for minutes in candidate_starts(window, anchor, granularity, step, duration):
                start = combine(day, minutes)
                end = start + timedelta(minutes=duration)
                remaining = capacity - count_overlapping(appointments, start, end, **key)
                rows.append((start, end, remaining, staff.pk if staff is not None else None))
        return rows

    def compute_slots(self, business, service_id, day, staff_id=None, now=None) -> list:
        """
        Ordered slots for `service_id` on `day`.

        Every candidate inside working hours is returned, full or not; `available`
        is False when the slot has no remaining capacity or has already started.
        Ordered by start time, then staff id.

        Raises:
            PastDate: `day` is before today.
            ServiceNotFound / StaffNotFound / StaffScheduleNotFound
        """
        now = now or timezone.now()
        if day < local_date(now):
            raise PastDate(f"{day.isoformat()} is in the past.")

        service = self.get_service(business, service_id)
        staff = self.get_staff(business, staff_id, service) if staff_id is not None else None

        day_start, day_end = date_to_range(day)
        appointments = active_appointments_between(business, day_start, day_end)

        rows = []
        if staff is not None:
            rows = self._rows_for(
                business, service, day, self.windows_for(business, day, staff), staff, appointments
            )
        elif not service.is_class and service.staff.exists():
            open_windows = self.business_windows(business, day)
            for member in service.staff.order_by("id"):
                try:
                    staff_windows = self.resolver.resolve_windows(member, day)
                except StaffScheduleNotFound:
                    logger.debug("Skipping staff %s without a schedule", member.pk)
                    continue
                windows = intersect_windows(open_windows, staff_windows)
                rows.extend(self._rows_for(business, service, day, windows, member, appointments))
        else:
            rows = self._rows_for(
                business, service, day, self.business_windows(business, day), None, appointments
            )

        rows.sort(key=lambda r: (r[0], r[3] if r[3] is not None else 0))
        return [
            Slot(
                service_id=service.pk,
                start_time=start,
                end_time=end,
                slot_index=index,
                remaining_capacity=remaining,
                staff_id=staff_pk,
                available=remaining > 0 and start > now,
            )
            for index, (start, end, remaining, staff_pk) in enumerate(rows)
        ]

    # -------------------------
    # Single candidate checks
    # -------------------------
    def is_slot_start(self, business, service, minutes, windows) -> bool:
        """
        True when `minutes` is one of the starts compute_slots offers for `windows`.
        """
        granularity = self.granularity(business)
        step = self.slots_needed(service, business) * granularity
        anchor = self.anchor(business)
        return any(
            minutes in candidate_starts(window, anchor, granularity, step, service.duration_minutes)
            for window in windows
        )

    def validate_candidate(self, business, service, start, staff=None, now=None):
        """
        Raise if [start, start + duration) is in the past, outside the
        open/working windows, or not an offered slot start. Used by the bulk
        check and by booking.
        """
        now = now or timezone.now()
        day = local_date(start)
        if day < local_date(now) or start <= now:
            raise PastDate()

        begin = local_minutes(start)
        end = begin + service.duration_minutes
        windows = self.windows_for(business, day, staff)
        if not fits_windows(begin, end, windows):
            raise OutsideWorkingHours()
        local = timezone.localtime(ensure_aware(start))
        if local.second or local.microsecond or not self.is_slot_start(business, service, begin, windows):
            raise InvalidSlotStart(
                f"{local.strftime('%H:%M')} is not a slot start for {service.name}."
            )

    def roster(self, business, service_id, start, staff_id=None) -> Roster:
        """
        Active bookings that start at `start` for the service (and staff member,
        when given), with the capacity left on the slot's exclusivity key.
        """
        service = self.get_service(business, service_id)
        staff = self.get_staff(business, staff_id, service) if staff_id is not None else None
        start = ensure_aware(start)
        end = start + timedelta(minutes=service.duration_minutes)

        appointments = active_appointments_between(business, start, end)
        remaining = key_capacity(service, staff) - count_overlapping(
            appointments, start, end, **key_filter(service, staff)
        )

        enrolled = Appointment.objects.filter(
            business=business,
            service=service,
            scheduled_for=start,
            status__in=Appointment.ACTIVE_STATUSES,
        ).select_related("service", "staff", "client").order_by("created_at", "id")
        if staff is not None:
            enrolled = enrolled.filter(staff=staff)

        return Roster(
            key=slot_key(service.pk, start),
            start_time=start,
            end_time=end,
            staff_id=staff.pk if staff is not None else None,
            capacity=key_capacity(service, staff),
            remaining_capacity=remaining,
            appointments=tuple(enrolled),
        )

    def check_slots(self, business, service_id, starts, staff_id=None, now=None) -> list:
        """
        Check several candidate starts for one service at once.
        Returns one dict per start: {start, available, remaining_capacity, reason}.
        """
        if not starts:
            raise InvalidRequest("Provide at least one start time.")

        now = now or timezone.now()
        service = self.get_service(business, service_id)
        staff = self.get_staff(business, staff_id, service) if staff_id is not None else None
        capacity = key_capacity(service, staff)
        key = key_filter(service, staff)

        lo = min(starts)
        hi = max(starts) + timedelta(minutes=service.duration_minutes)
        appointments = active_appointments_between(business, lo, hi)

        results = []
        for start in sorted(starts):
            end = start + timedelta(minutes=service.duration_minutes)
            remaining = capacity - count_overlapping(appointments, start, end, **key)
            reason = None
            try:
                self.validate_candidate(business, service, start, staff, now)
                if remaining <= 0:
                    raise SlotConflict()
            except (PastDate, OutsideWorkingHours, SlotConflict, StaffScheduleNotFound) as exc:
                reason = exc.code
            results.append({
                "start": timezone.localtime(start).isoformat(),
                "available": reason is None,
                "remaining_capacity": max(remaining, 0),
                "reason": reason,
            })
        return results
