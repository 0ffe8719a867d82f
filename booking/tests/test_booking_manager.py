from datetime import time, timedelta

from django.test import TestCase
from django.utils import timezone

from booking.models import Appointment
from booking.services.availability_engine import AvailabilityEngine
from booking.services.booking_manager import BookingManager
from booking.services.errors import (
    AlreadyEnrolled,
    CancellationCutoff,
    ClientNotEligible,
    ClientNotFound,
    EnrollmentClosed,
    InvalidSlotStart,
    InvalidTransition,
    OutsideWorkingHours,
    PastDate,
    ServiceNotFound,
    SlotConflict,
)
from staff.models import StaffAvailability

from .helpers import MONDAY, at, day_before, make_business, make_client, make_service, make_staff, set_hours, weekly_schedule


class BookTests(TestCase):
    """
    Booking transaction: validation order, capacity and exclusivity.
    """

    def setUp(self):
        self.manager = BookingManager()
        self.business = make_business()
        self.client_profile = make_client(self.business)
        self.now = day_before(MONDAY)

    def book(self, service, client=None, start=None, **kwargs):
        kwargs.setdefault("now", self.now)
        return self.manager.book(
            self.business,
            service_id=service.pk,
            client_id=(client or self.client_profile).pk,
            scheduled_for=start or at(MONDAY, 10),
            **kwargs,
        )

    def test_books_pending_appointment_with_service_duration(self):
        service = make_service(self.business, duration=45)
        appointment = self.book(service, notes="first visit")

        self.assertEqual(appointment.status, Appointment.PENDING)
        self.assertEqual(appointment.duration_minutes, 45)
        self.assertEqual(appointment.notes, "first visit")
        self.assertEqual(appointment.business, self.business)

    def test_auto_confirm_business_starts_confirmed(self):
        self.business.auto_confirm = True
        self.business.save()
        appointment = self.book(make_service(self.business))
        self.assertEqual(appointment.status, Appointment.CONFIRMED)

    def test_exclusive_slot_conflict(self):
        service = make_service(self.business)
        self.book(service)
        with self.assertRaises(SlotConflict):
            self.book(service, client=make_client(self.business, name="Sam"))
        self.assertEqual(Appointment.objects.count(), 1)

    def test_back_to_back_is_allowed(self):
        service = make_service(self.business)
        self.book(service)
        self.book(service, client=make_client(self.business, name="Sam"), start=at(MONDAY, 11))
        self.assertEqual(Appointment.objects.count(), 2)

    def test_cancelled_appointment_frees_the_slot(self):
        service = make_service(self.business)
        first = self.book(service)
        self.manager.transition(first, Appointment.CANCELLED, now=self.now)
        self.book(service, client=make_client(self.business, name="Sam"))
        self.assertEqual(Appointment.objects.filter(status=Appointment.PENDING).count(), 1)

    def test_class_fills_to_capacity(self):
        service = make_service(self.business, name="Spin", capacity=3)
        clients = [make_client(self.business, name=f"Rider{i}") for i in range(4)]

        for client in clients[:3]:
            self.book(service, client=client)
        with self.assertRaises(SlotConflict):
            self.book(service, client=clients[3])

        self.assertEqual(Appointment.objects.filter(service=service).count(), 3, "capacity never exceeded")

    def test_ineligible_client_is_turned_away_without_a_row(self):
        service = make_service(self.business, name="Spin", capacity=5)
        client = make_client(self.business, name="Casey", eligible=False)

        with self.assertRaises(ClientNotEligible):
            self.book(service, client=client)
        self.assertFalse(Appointment.objects.exists())

    def test_eligibility_only_gates_classes(self):
        client = make_client(self.business, name="Casey", eligible=False)
        appointment = self.book(make_service(self.business), client=client)
        self.assertIsNotNone(appointment.pk)

    def test_already_enrolled_same_day(self):
        service = make_service(self.business, name="Spin", capacity=5)
        self.book(service)
        with self.assertRaises(AlreadyEnrolled):
            self.book(service, start=at(MONDAY, 14))

    def test_same_service_next_day_is_fine(self):
        service = make_service(self.business, name="Spin", capacity=5)
        self.book(service)
        self.book(service, start=at(MONDAY + timedelta(days=1), 10))
        self.assertEqual(Appointment.objects.count(), 2)

    def test_past_date(self):
        service = make_service(self.business)
        with self.assertRaises(PastDate):
            self.book(service, start=at(MONDAY - timedelta(days=2), 10))

    def test_started_exclusive_slot_today_is_past(self):
        service = make_service(self.business)
        with self.assertRaises(PastDate):
            self.book(service, start=at(MONDAY, 10), now=at(MONDAY, 10, 30))

    def test_started_class_is_closed_for_enrollment(self):
        service = make_service(self.business, name="Spin", capacity=5)
        with self.assertRaises(EnrollmentClosed):
            self.book(service, start=at(MONDAY, 10), now=at(MONDAY, 10, 30))

    def test_lunch_break_is_refused(self):
        set_hours(self.business, MONDAY.weekday(), lunch=(time(12), time(13)))
        service = make_service(self.business)
        with self.assertRaises(OutsideWorkingHours):
            self.book(service, start=at(MONDAY, 11, 30))
        with self.assertRaises(OutsideWorkingHours):
            self.book(service, start=at(MONDAY, 12))

    def test_after_closing_is_refused(self):
        service = make_service(self.business)
        with self.assertRaises(OutsideWorkingHours):
            self.book(service, start=at(MONDAY, 16, 30))

    def test_start_between_offered_slots_is_refused(self):
        service = make_service(self.business, duration=60)
        with self.assertRaises(InvalidSlotStart):
            self.book(service, start=at(MONDAY, 10, 17))
        with self.assertRaises(InvalidSlotStart):
            self.book(service, start=at(MONDAY, 10, 30))
        self.assertFalse(Appointment.objects.exists())

        slots = AvailabilityEngine().compute_slots(self.business, service.pk, MONDAY, now=self.now)
        self.assertTrue(all(s.available for s in slots), "no slot is taken by a refused start")

    def test_shorter_service_steps_on_its_own_grid(self):
        service = make_service(self.business, name="Trim", duration=30)
        appointment = self.book(service, start=at(MONDAY, 10, 30))
        self.assertEqual(timezone.localtime(appointment.scheduled_for).time(), time(10, 30))

    def test_class_session_is_keyed_by_its_offered_start(self):
        service = make_service(self.business, name="Spin", capacity=3)
        riders = [make_client(self.business, name=f"Rider{i}") for i in range(4)]

        for rider in riders[:3]:
            with self.assertRaises(InvalidSlotStart):
                self.book(service, client=rider, start=at(MONDAY, 10, 30))

        self.book(service, client=riders[3], start=at(MONDAY, 10))
        session = next(
            s for s in AvailabilityEngine().compute_slots(self.business, service.pk, MONDAY, now=self.now)
            if timezone.localtime(s.start_time).time() == time(10)
        )
        self.assertEqual(session.remaining_capacity, 2)

    def test_unknown_references(self):
        service = make_service(self.business)
        with self.assertRaises(ServiceNotFound):
            self.manager.book(self.business, 9999, self.client_profile.pk, at(MONDAY, 10), now=self.now)
        with self.assertRaises(ClientNotFound):
            self.manager.book(self.business, service.pk, 9999, at(MONDAY, 10), now=self.now)

    def test_other_business_client_is_not_found(self):
        other_client = make_client(make_business(slug="other"), name="Remy")
        with self.assertRaises(ClientNotFound):
            self.book(make_service(self.business), client=other_client)


class StaffAssignmentTests(TestCase):
    def setUp(self):
        self.manager = BookingManager()
        self.business = make_business()
        self.now = day_before(MONDAY)
        self.alex = make_staff(self.business, name="Alex")
        self.blair = make_staff(self.business, name="Blair")
        self.service = make_service(self.business, staff=[self.alex, self.blair])

    def book(self, name, staff=None):
        client = make_client(self.business, name=name)
        return self.manager.book(
            self.business,
            self.service.pk,
            client.pk,
            at(MONDAY, 10),
            staff_id=staff.pk if staff else None,
            now=self.now,
        )

    def test_first_free_staff_member_is_assigned(self):
        self.assertEqual(self.book("Ana").staff, self.alex)
        self.assertEqual(self.book("Ben").staff, self.blair)
        with self.assertRaises(SlotConflict):
            self.book("Cam")

    def test_named_staff_member_is_exclusive(self):
        self.book("Ana", staff=self.blair)
        with self.assertRaises(SlotConflict):
            self.book("Ben", staff=self.blair)
        self.assertEqual(self.book("Cam", staff=self.alex).staff, self.alex)

    def test_staff_busy_with_another_service(self):
        other = make_service(self.business, name="Colour", duration=30, staff=[self.alex])
        client = make_client(self.business, name="Dee")
        self.manager.book(self.business, other.pk, client.pk, at(MONDAY, 10, 30), staff_id=self.alex.pk, now=self.now)

        with self.assertRaises(SlotConflict):
            self.book("Eve", staff=self.alex)

    def test_outside_staff_hours(self):
        StaffAvailability.objects.filter(staff=self.alex).update(schedule=weekly_schedule("13:00", "17:00"))
        with self.assertRaises(OutsideWorkingHours):
            self.book("Fay", staff=self.alex)


class LifecycleTests(TestCase):
    def setUp(self):
        self.manager = BookingManager()
        self.business = make_business()
        self.client_profile = make_client(self.business)
        self.service = make_service(self.business)
        self.appointment = self.manager.book(
            self.business, self.service.pk, self.client_profile.pk, at(MONDAY, 10), now=day_before(MONDAY)
        )

    def test_pending_to_confirmed_to_completed(self):
        self.manager.transition(self.appointment, Appointment.CONFIRMED)
        self.manager.transition(self.appointment, Appointment.COMPLETED)
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.COMPLETED)

    def test_pending_cannot_complete(self):
        with self.assertRaises(InvalidTransition):
            self.manager.transition(self.appointment, Appointment.COMPLETED)

    def test_terminal_states_never_reopen(self):
        self.manager.transition(self.appointment, Appointment.REJECTED)
        with self.assertRaises(InvalidTransition):
            self.manager.transition(self.appointment, Appointment.CONFIRMED)

    def test_client_cancel_inside_cutoff_is_refused(self):
        with self.assertRaises(CancellationCutoff):
            self.manager.cancel(self.appointment, by_client=True, now=at(MONDAY, 9))
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.PENDING)

    def test_client_cancel_before_cutoff(self):
        self.manager.cancel(self.appointment, by_client=True, reason="sick", now=at(MONDAY, 7))
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.CANCELLED)
        self.assertIsNotNone(self.appointment.cancellation_time)
        self.assertIn("[Cancel reason] sick", self.appointment.notes)

    def test_staff_cancel_ignores_cutoff(self):
        self.manager.cancel(self.appointment, by_client=False, now=at(MONDAY, 9, 45))
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, Appointment.CANCELLED)
