"""
booking_manager.py
------------------
Coordinates appointment creation and the appointment lifecycle.

Booking (book):
1) load service / client / staff inside the caller's business
2) eligibility gate for class services (before any lock is taken)
3) timing: past dates are rejected; a class closes for enrollment the
   moment it starts
4) in one transaction:
   • lock the exclusivity key's row (Staff for exclusive services, Service
     for classes and staff-less services) with SELECT ... FOR UPDATE
   • re-validate working hours / lunch break and that the start is one of
     the offered slot starts (availability may be stale)
   • count overlapping active appointments on the key; refuse when the
     count has reached capacity
   • refuse a second active booking of the same service on the same day
   • insert the appointment
   The count and the insert see the same locked state, so concurrent
   callers for one key are serialised and capacity cannot be overshot.

Rejections raise SchedulingError subclasses (see errors.py); nothing is
retried here. When no staff member is named for an exclusive service, the
first free staff member (by id) who performs the service is assigned.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from ..conf import scheduling_setting
from ..models import Appointment, Service, Staff
from .availability_engine import (
    AvailabilityEngine,
    active_appointments_between,
    count_overlapping,
    key_capacity,
    key_filter,
)
from .eligibility import EligibilityGate
from .errors import (
    AlreadyEnrolled,
    CancellationCutoff,
    EnrollmentClosed,
    InvalidSlotStart,
    InvalidTransition,
    OutsideWorkingHours,
    PastDate,
    SchedulingError,
    SlotConflict,
    StaffScheduleNotFound,
)
from .slot_utils import date_to_range, ensure_aware, local_date

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS = {
    Appointment.PENDING: {
        Appointment.CONFIRMED,
        Appointment.ACCEPTED,
        Appointment.REJECTED,
        Appointment.CANCELLED,
    },
    Appointment.CONFIRMED: {
        Appointment.ACCEPTED,
        Appointment.COMPLETED,
        Appointment.CANCELLED,
    },
    Appointment.ACCEPTED: {
        Appointment.COMPLETED,
        Appointment.CANCELLED,
    },
}


class BookingManager:
    def __init__(self, availability: AvailabilityEngine | None = None, gate: EligibilityGate | None = None):
        self.availability = availability or AvailabilityEngine()
        self.gate = gate or EligibilityGate()

    # -------------------------
    # Booking
    # -------------------------
    def book(
        self,
        business,
        service_id,
        client_id,
        scheduled_for,
        staff_id=None,
        notes="",
        recurring_pattern=None,
        now=None,
    ):
        """
        Create an appointment, or raise the SchedulingError explaining why not.

        Args:
            business: Business the caller acts for (from the identity provider)
            service_id / client_id / staff_id: primary keys, scoped to business
            scheduled_for: start datetime (naive values are read as local time)
            notes: optional free text
            recurring_pattern: RecurringAppointmentPattern this occurrence belongs to
            now: override of the current time (tests)
        """
        now = now or timezone.now()
        scheduled_for = ensure_aware(scheduled_for)

        try:
            service = self.availability.get_service(business, service_id)
            client = self.gate.get_client(business, client_id)
            staff = None
            if staff_id is not None:
                staff = self.availability.get_staff(business, staff_id, service)

            self.gate.authorize(client, service)
            self._check_timing(service, scheduled_for, now)

            appointment = self._commit(
                business, service, client, staff, scheduled_for, notes, recurring_pattern, now
            )
        except SchedulingError as exc:
            logger.info(
                "Booking rejected: business=%s service=%s client=%s at %s → %s",
                business.pk, service_id, client_id, scheduled_for.isoformat(), exc.code,
            )
            raise

        logger.info(
            "Booked appointment %s: service=%s staff=%s client=%s at %s (%s)",
            appointment.pk, appointment.service_id, appointment.staff_id,
            appointment.client_id, appointment.scheduled_for.isoformat(), appointment.status,
        )
        return appointment

    def _check_timing(self, service, scheduled_for, now):
        if local_date(scheduled_for) < local_date(now):
            raise PastDate(f"{local_date(scheduled_for).isoformat()} is in the past.")
        if scheduled_for <= now:
            if service.is_class:
                raise EnrollmentClosed()
            raise PastDate()

    def _lock(self, service, staff):
        """
        Row lock serialising bookings on one exclusivity key.
        """
        if staff is not None and not service.is_class:
            Staff.objects.select_for_update().get(pk=staff.pk)
        else:
            Service.objects.select_for_update().get(pk=service.pk)

    def _has_room(self, business, service, staff, start, end) -> bool:
        appointments = active_appointments_between(business, start, end, **key_filter(service, staff))
        taken = count_overlapping(appointments, start, end)
        return taken < key_capacity(service, staff)

    def _candidate_staff(self, service, staff):
        if staff is not None or service.is_class:
            return [staff]
        members = list(service.staff.order_by("id"))
        return members or [None]

    @transaction.atomic
    def _commit(self, business, service, client, staff, scheduled_for, notes, recurring_pattern, now):
        end = scheduled_for + timedelta(minutes=service.duration_minutes)
        candidates = self._candidate_staff(service, staff)
        auto_assign = staff is None and candidates != [None]

        assigned = None
        found = False
        in_hours = False
        off_grid = None
        for candidate in candidates:
            try:
                self.availability.validate_candidate(business, service, scheduled_for, candidate, now)
            except (OutsideWorkingHours, StaffScheduleNotFound) as exc:
                if not auto_assign:
                    raise
                if isinstance(exc, InvalidSlotStart):
                    off_grid = exc
                continue
            in_hours = True

            self._lock(service, candidate)
            if self._has_room(business, service, candidate, scheduled_for, end):
                assigned = candidate
                found = True
                break

        if not found:
            if auto_assign and not in_hours:
                if off_grid is not None:
                    raise off_grid
                raise OutsideWorkingHours("No staff member works at that time.")
            raise SlotConflict()

        day_start, day_end = date_to_range(local_date(scheduled_for))
        already = Appointment.objects.filter(
            business=business,
            client=client,
            service=service,
            status__in=Appointment.ACTIVE_STATUSES,
            scheduled_for__gte=day_start,
            scheduled_for__lt=day_end,
        ).exists()
        if already:
            raise AlreadyEnrolled()

        return Appointment.objects.create(
            business=business,
            service=service,
            staff=assigned,
            client=client,
            scheduled_for=scheduled_for,
            duration_minutes=service.duration_minutes,
            status=Appointment.CONFIRMED if business.auto_confirm else Appointment.PENDING,
            notes=notes or "",
            recurring_pattern=recurring_pattern,
        )

    # -------------------------
    # Lifecycle
    # -------------------------
    @transaction.atomic
    def transition(self, appointment, new_status, now=None):
        """
        Move an appointment to `new_status`. Terminal states never re-open.
        """
        current = Appointment.objects.select_for_update().get(pk=appointment.pk)
        if new_status not in ALLOWED_TRANSITIONS.get(current.status, set()):
            raise InvalidTransition(f"Cannot move from {current.status} to {new_status}.")

        current.status = new_status
        fields = ["status"]
        if new_status == Appointment.CANCELLED:
            current.cancellation_time = now or timezone.now()
            fields.append("cancellation_time")
        current.save(update_fields=fields)

        logger.info("Appointment %s: %s → %s", current.pk, appointment.status, new_status)
        appointment.status = current.status
        appointment.cancellation_time = current.cancellation_time
        return current

    @transaction.atomic
    def cancel(self, appointment, by_client=True, reason="", cutoff_minutes=None, now=None):
        """
        Cancel an appointment. Clients cannot cancel inside the cut-off window
        before the start (SCHEDULING["CANCEL_CUTOFF_MINUTES"]); staff can.
        """
        now = now or timezone.now()
        if cutoff_minutes is None:
            cutoff_minutes = scheduling_setting("CANCEL_CUTOFF_MINUTES")

        if by_client and appointment.scheduled_for - now <= timedelta(minutes=cutoff_minutes):
            raise CancellationCutoff(
                f"Cannot cancel within {cutoff_minutes} minutes of the appointment start."
            )

        if reason:
            appointment.notes = (appointment.notes or "") + f"\n[Cancel reason] {reason}"
            appointment.save(update_fields=["notes"])

        return self.transition(appointment, Appointment.CANCELLED, now=now)
