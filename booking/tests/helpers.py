# booking/tests/helpers.py
#
# Small factories shared by the test modules. All dates are far in the
# future (MONDAY is 2030-01-07) and the scheduling services receive an
# explicit `now`, so results do not depend on the wall clock.

from datetime import date, datetime, time, timedelta

from django.utils import timezone

from booking.models import ClientProfile, Service, Staff
from businesses.models import Business, BusinessHours
from staff.models import WEEKDAY_KEYS, StaffAvailability

MONDAY = date(2030, 1, 7)
TUESDAY = MONDAY + timedelta(days=1)


def at(day, hour, minute=0):
    """Aware local datetime on `day`."""
    return timezone.make_aware(datetime.combine(day, time(hour, minute)))


def day_before(day):
    """A `now` early on the previous day."""
    return at(day - timedelta(days=1), 8)


def make_business(slug="salon", **kwargs):
    kwargs.setdefault("name", slug.title())
    return Business.objects.create(slug=slug, **kwargs)


def set_hours(business, weekday, open_time=time(9), close_time=time(17), lunch=None, is_open=True):
    lunch_start, lunch_end = lunch or (None, None)
    return BusinessHours.objects.create(
        business=business,
        weekday=weekday,
        is_open=is_open,
        open_time=open_time,
        close_time=close_time,
        lunch_start=lunch_start,
        lunch_end=lunch_end,
    )


def weekly_schedule(start="09:00", end="17:00", days=WEEKDAY_KEYS[:5]):
    return {
        key: ({"isWorking": True, "start": start, "end": end} if key in days else {"isWorking": False})
        for key in WEEKDAY_KEYS
    }


def make_staff(business, name="Alex", schedule=None, **kwargs):
    email = kwargs.pop("email", f"{name.lower()}@{business.slug}.test")
    staff = Staff.objects.create(business=business, name=name, email=email, **kwargs)
    if schedule is not False:
        StaffAvailability.objects.create(staff=staff, schedule=schedule or weekly_schedule())
    return staff


def make_client(business, name="Jordan", eligible=True, **kwargs):
    email = kwargs.pop("email", f"{name.lower()}@client.test")
    return ClientProfile.objects.create(
        business=business, name=name, email=email, is_eligible=eligible, **kwargs
    )


def make_service(business, name="Haircut", duration=60, capacity=1, staff=(), **kwargs):
    service = Service.objects.create(
        business=business,
        name=name,
        duration_minutes=duration,
        capacity=capacity,
        **kwargs,
    )
    if staff:
        service.staff.set(staff)
    return service
