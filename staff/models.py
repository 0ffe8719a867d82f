# staff/models.py
#
# Purpose:
# - Personal working schedule and time off for booking.Staff.
#
# Design:
# - StaffAvailability: one row per staff member; `schedule` is keyed by
#   lowercase weekday name ("monday" .. "sunday"). Each day is either
#     {"isWorking": false}
#   or a single window
#     {"isWorking": true, "start": "09:00", "end": "17:00"}
#   or a list of shifts
#     {"isWorking": true, "timeSlots": [{"start": "09:00", "end": "12:00"}, ...]}
#   booking/services/schedule_resolver.py normalises these shapes.
# - StaffUnavailability: vacation / sick leave, day-granular and inclusive
#   on both ends. Any record covering a date blanks the whole day.
#
from django.core.exceptions import ValidationError
from django.db import models


WEEKDAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class StaffAvailability(models.Model):
    """
    Weekly schedule of one staff member.
    Points to booking.Staff to avoid having two Staff models.
    """
    staff = models.OneToOneField(
        "booking.Staff",                 # ← reference booking app model
        on_delete=models.CASCADE,
        related_name="availability",
    )
    schedule = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "staff availabilities"

    def __str__(self):
        working = [day for day in WEEKDAY_KEYS if (self.schedule.get(day) or {}).get("isWorking")]
        return f"{self.staff.name}: {', '.join(working) or 'no working days'}"

    def clean(self):
        if not isinstance(self.schedule, dict):
            raise ValidationError("Schedule must be an object keyed by weekday.")
        unknown = set(self.schedule) - set(WEEKDAY_KEYS)
        if unknown:
            raise ValidationError(f"Unknown weekday key(s): {', '.join(sorted(unknown))}")


class StaffUnavailability(models.Model):
    """
    A date range during which a staff member does not work.
    """
    VACATION = "VACATION"
    SICK_LEAVE = "SICK_LEAVE"
    OTHER = "OTHER"
    KIND_CHOICES = [
        (VACATION, "Vacation"),
        (SICK_LEAVE, "Sick leave"),
        (OTHER, "Other"),
    ]

    staff = models.ForeignKey(
        "booking.Staff",
        on_delete=models.CASCADE,
        related_name="unavailabilities",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    kind = models.CharField(max_length=12, choices=KIND_CHOICES, default=OTHER)
    reason = models.CharField(max_length=200, blank=True)

    class Meta:
        ordering = ["staff_id", "start_date"]

    def __str__(self):
        return f"{self.staff.name}: {self.get_kind_display()} {self.start_date} - {self.end_date}"

    def clean(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError("Unavailability must end on or after its start date.")
