from datetime import time, timedelta

from django.test import TestCase

from booking.services.errors import StaffScheduleNotFound
from booking.services.schedule_resolver import NotWorking, StaffScheduleResolver, Working, parse_day, parse_schedule
from booking.services.slot_utils import Window
from staff.models import StaffUnavailability

from .helpers import MONDAY, make_business, make_staff, weekly_schedule


class ParseDayTests(TestCase):
    def test_not_working_shapes(self):
        self.assertIsInstance(parse_day({"isWorking": False}), NotWorking)
        self.assertIsInstance(parse_day(None), NotWorking)
        # working but every window malformed
        self.assertIsInstance(parse_day({"isWorking": True, "start": "17:00", "end": "09:00"}), NotWorking)

    def test_single_window(self):
        day = parse_day({"isWorking": True, "start": "09:00", "end": "17:00"})
        self.assertIsInstance(day, Working)
        self.assertEqual(day.windows, (Window(time(9), time(17)),))

    def test_time_slots_are_sorted_and_bad_entries_dropped(self):
        day = parse_day({
            "isWorking": True,
            "timeSlots": [
                {"start": "14:00", "end": "18:00"},
                {"start": "bad", "end": "10:00"},
                {"start": "08:00", "end": "12:00"},
            ],
        })
        self.assertEqual(day.windows, (Window(time(8), time(12)), Window(time(14), time(18))))

    def test_whole_week_is_indexed_by_weekday(self):
        week = parse_schedule({"monday": {"isWorking": True, "start": "09:00", "end": "17:00"}})
        self.assertEqual(sorted(week), list(range(7)))
        self.assertIsInstance(week[0], Working)
        self.assertTrue(all(isinstance(week[i], NotWorking) for i in range(1, 7)))
        self.assertTrue(all(isinstance(d, NotWorking) for d in parse_schedule(None).values()))


class StaffScheduleResolverTests(TestCase):
    def setUp(self):
        self.business = make_business()
        self.resolver = StaffScheduleResolver()

    def test_weekday_windows(self):
        staff = make_staff(self.business, schedule=weekly_schedule("10:00", "15:00"))
        self.assertEqual(self.resolver.resolve_windows(staff, MONDAY), [Window(time(10), time(15))])

    def test_day_off_is_empty(self):
        staff = make_staff(self.business)
        saturday = MONDAY + timedelta(days=5)
        self.assertEqual(self.resolver.resolve_windows(staff, saturday), [])

    def test_unavailability_blanks_every_covered_day(self):
        staff = make_staff(self.business)
        StaffUnavailability.objects.create(
            staff=staff,
            start_date=MONDAY,
            end_date=MONDAY + timedelta(days=1),
            kind=StaffUnavailability.VACATION,
        )
        self.assertEqual(self.resolver.resolve_windows(staff, MONDAY), [])
        self.assertEqual(self.resolver.resolve_windows(staff, MONDAY + timedelta(days=1)), [])
        self.assertNotEqual(self.resolver.resolve_windows(staff, MONDAY + timedelta(days=2)), [])

    def test_missing_schedule_raises(self):
        staff = make_staff(self.business, schedule=False)
        with self.assertRaises(StaffScheduleNotFound):
            self.resolver.resolve_windows(staff, MONDAY)
