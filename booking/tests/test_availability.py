from datetime import time, timedelta

from django.test import TestCase
from django.utils import timezone

from booking.models import Appointment
from booking.services.availability_engine import AvailabilityEngine
from booking.services.errors import PastDate, ServiceNotFound, StaffNotFound, StaffScheduleNotFound
from staff.models import StaffUnavailability

from .helpers import MONDAY, at, day_before, make_business, make_client, make_service, make_staff, set_hours, weekly_schedule


def _book(service, client, start, staff=None, status=Appointment.CONFIRMED):
    return Appointment.objects.create(
        business=service.business,
        service=service,
        staff=staff,
        client=client,
        scheduled_for=start,
        duration_minutes=service.duration_minutes,
        status=status,
    )


def _local_start(slot):
    return timezone.localtime(slot.start_time).time()


class ComputeSlotsTests(TestCase):
    """
    Slot listing for one service on one day.
    """

    def setUp(self):
        self.engine = AvailabilityEngine()
        self.business = make_business()
        self.client_profile = make_client(self.business)
        self.now = day_before(MONDAY)

    def test_sixty_minute_service_on_a_default_day_has_eight_slots(self):
        service = make_service(self.business, duration=60)
        slots = self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)

        self.assertEqual(len(slots), 8, "09:00-17:00 with 60 min steps")
        self.assertEqual(_local_start(slots[0]), time(9))
        self.assertEqual(_local_start(slots[-1]), time(16))
        self.assertEqual([s.slot_index for s in slots], list(range(8)))
        self.assertTrue(all(s.available for s in slots))

    def test_booked_slot_shows_full_and_others_stay_open(self):
        service = make_service(self.business, duration=60)
        _book(service, self.client_profile, at(MONDAY, 11))

        slots = self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)
        by_start = {_local_start(s): s for s in slots}

        self.assertEqual(len(slots), 8, "full slots are still listed")
        self.assertFalse(by_start[time(11)].available)
        self.assertEqual(by_start[time(11)].remaining_capacity, 0)
        self.assertTrue(by_start[time(10)].available)
        self.assertTrue(by_start[time(12)].available)

    def test_terminal_appointments_do_not_block(self):
        service = make_service(self.business, duration=60)
        _book(service, self.client_profile, at(MONDAY, 11), status=Appointment.CANCELLED)

        slots = self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)
        self.assertTrue(all(s.available for s in slots))

    def test_same_inputs_give_same_answer(self):
        service = make_service(self.business, duration=30)
        first = [s.as_dict() for s in self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)]
        second = [s.as_dict() for s in self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)]
        self.assertEqual(first, second)

    def test_lunch_break_is_excluded(self):
        set_hours(self.business, MONDAY.weekday(), lunch=(time(12), time(13)))
        service = make_service(self.business, duration=60)

        starts = [_local_start(s) for s in self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)]
        self.assertEqual(starts, [time(9), time(10), time(11), time(13), time(14), time(15), time(16)])

    def test_closed_day_has_no_slots(self):
        set_hours(self.business, MONDAY.weekday(), is_open=False)
        service = make_service(self.business)
        self.assertEqual(self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now), [])

    def test_class_reports_remaining_seats(self):
        service = make_service(self.business, name="Yoga", capacity=3)
        _book(service, self.client_profile, at(MONDAY, 10))
        _book(service, make_client(self.business, name="Sam"), at(MONDAY, 10))

        slot = next(s for s in self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)
                    if _local_start(s) == time(10))
        self.assertEqual(slot.remaining_capacity, 1)
        self.assertTrue(slot.available)

    def test_past_day_is_rejected(self):
        service = make_service(self.business)
        with self.assertRaises(PastDate):
            self.engine.compute_slots(self.business, service.pk, MONDAY - timedelta(days=1), now=at(MONDAY, 8))

    def test_started_slots_today_are_listed_but_unavailable(self):
        service = make_service(self.business, duration=60)
        slots = self.engine.compute_slots(self.business, service.pk, MONDAY, now=at(MONDAY, 12, 15))
        by_start = {_local_start(s): s for s in slots}
        self.assertFalse(by_start[time(12)].available)
        self.assertTrue(by_start[time(13)].available)

    def test_other_business_service_is_not_found(self):
        other = make_business(slug="other")
        service = make_service(other)
        with self.assertRaises(ServiceNotFound):
            self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)

    def test_inactive_service_is_not_found(self):
        service = make_service(self.business, active=False)
        with self.assertRaises(ServiceNotFound):
            self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)


class StaffSlotsTests(TestCase):
    def setUp(self):
        self.engine = AvailabilityEngine()
        self.business = make_business()
        self.client_profile = make_client(self.business)
        self.now = day_before(MONDAY)

    def test_full_day_for_one_staff_member(self):
        alex = make_staff(self.business)
        service = make_service(self.business, staff=[alex])

        slots = self.engine.compute_slots(self.business, service.pk, MONDAY, alex.pk, now=self.now)
        self.assertEqual([_local_start(s) for s in slots], [time(h) for h in range(9, 17)])
        self.assertFalse(any(s.is_full for s in slots))

        _book(service, self.client_profile, at(MONDAY, 11), staff=alex)
        slots = self.engine.compute_slots(self.business, service.pk, MONDAY, alex.pk, now=self.now)
        full = [_local_start(s) for s in slots if s.is_full]
        self.assertEqual(full, [time(11)], "only the booked hour is full")

    def test_staff_windows_intersect_business_hours(self):
        alex = make_staff(self.business, schedule=weekly_schedule("13:00", "19:00"))
        service = make_service(self.business, staff=[alex])

        starts = [_local_start(s) for s in self.engine.compute_slots(self.business, service.pk, MONDAY, alex.pk, now=self.now)]
        self.assertEqual(starts, [time(13), time(14), time(15), time(16)])

    def test_one_row_per_staff_member_without_staff_filter(self):
        alex = make_staff(self.business, name="Alex")
        blair = make_staff(self.business, name="Blair")
        service = make_service(self.business, staff=[alex, blair])
        _book(service, self.client_profile, at(MONDAY, 9), staff=alex)

        slots = self.engine.compute_slots(self.business, service.pk, MONDAY, now=self.now)
        nine = [s for s in slots if _local_start(s) == time(9)]

        self.assertEqual(len(slots), 16)
        self.assertEqual([s.staff_id for s in nine], [alex.pk, blair.pk])
        self.assertEqual([s.available for s in nine], [False, True])

    def test_staff_on_leave_has_no_slots(self):
        alex = make_staff(self.business)
        service = make_service(self.business, staff=[alex])
        StaffUnavailability.objects.create(staff=alex, start_date=MONDAY, end_date=MONDAY)

        self.assertEqual(self.engine.compute_slots(self.business, service.pk, MONDAY, alex.pk, now=self.now), [])

    def test_staff_booked_on_another_service_is_busy(self):
        alex = make_staff(self.business)
        cut = make_service(self.business, name="Cut", staff=[alex])
        colour = make_service(self.business, name="Colour", staff=[alex])
        _book(colour, self.client_profile, at(MONDAY, 10), staff=alex)

        slots = self.engine.compute_slots(self.business, cut.pk, MONDAY, alex.pk, now=self.now)
        ten = next(s for s in slots if _local_start(s) == time(10))
        self.assertFalse(ten.available)

    def test_staff_not_bound_to_service_is_rejected(self):
        alex = make_staff(self.business, name="Alex")
        blair = make_staff(self.business, name="Blair")
        service = make_service(self.business, staff=[alex])
        with self.assertRaises(StaffNotFound):
            self.engine.compute_slots(self.business, service.pk, MONDAY, blair.pk, now=self.now)

    def test_staff_without_schedule(self):
        alex = make_staff(self.business, schedule=False)
        service = make_service(self.business, staff=[alex])
        with self.assertRaises(StaffScheduleNotFound):
            self.engine.compute_slots(self.business, service.pk, MONDAY, alex.pk, now=self.now)


class CheckSlotsTests(TestCase):
    def setUp(self):
        self.engine = AvailabilityEngine()
        self.business = make_business()
        self.service = make_service(self.business, duration=60)
        self.now = day_before(MONDAY)

    def test_reasons_per_start(self):
        _book(self.service, make_client(self.business), at(MONDAY, 10))

        results = self.engine.check_slots(
            self.business,
            self.service.pk,
            [at(MONDAY, 9), at(MONDAY, 10), at(MONDAY, 10, 30), at(MONDAY, 16, 30)],
            now=self.now,
        )
        self.assertEqual([r["available"] for r in results], [True, False, False, False])
        self.assertEqual(
            [r["reason"] for r in results],
            [None, "SLOT_CONFLICT", "INVALID_SLOT_START", "OUTSIDE_WORKING_HOURS"],
        )


class RosterTests(TestCase):
    def setUp(self):
        self.engine = AvailabilityEngine()
        self.business = make_business()
        self.service = make_service(self.business, name="Yoga", capacity=3)

    def test_lists_active_enrollments_for_one_session(self):
        ana = _book(self.service, make_client(self.business, name="Ana"), at(MONDAY, 10))
        ben = _book(self.service, make_client(self.business, name="Ben"), at(MONDAY, 10))
        _book(self.service, make_client(self.business, name="Cy"), at(MONDAY, 10), status=Appointment.CANCELLED)
        _book(self.service, make_client(self.business, name="Di"), at(MONDAY, 14))

        roster = self.engine.roster(self.business, self.service.pk, at(MONDAY, 10))

        self.assertEqual([a.pk for a in roster.appointments], [ana.pk, ben.pk])
        self.assertEqual(roster.capacity, 3)
        self.assertEqual(roster.remaining_capacity, 1)
        self.assertEqual(roster.key.as_dict(), {"service_id": self.service.pk, "weekday": 0, "start": "10:00"})

    def test_other_business_service_is_not_found(self):
        other = make_service(make_business(slug="other"), capacity=3)
        with self.assertRaises(ServiceNotFound):
            self.engine.roster(self.business, other.pk, at(MONDAY, 10))
