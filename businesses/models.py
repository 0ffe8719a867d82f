# businesses/models.py
#
# Purpose:
# - Tenant record (Business) and its weekly open-hours table.
#
# Design highlights:
# - Business carries the per-tenant scheduling knobs: slot granularity,
#   the day-start anchor that slot boundaries are aligned to, and whether new
#   appointments are confirmed automatically.
# - BusinessHours: one row per weekday (0=Monday .. 6=Sunday).
#   • clean() enforces open < close and that a lunch break, when set, lies
#     strictly inside the open hours.
#   • A weekday with no row falls back to SCHEDULING["DEFAULT_OPEN"/"DEFAULT_CLOSE"].
#

from datetime import time

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


WEEKDAY_CHOICES = [
    (0, "Monday"),
    (1, "Tuesday"),
    (2, "Wednesday"),
    (3, "Thursday"),
    (4, "Friday"),
    (5, "Saturday"),
    (6, "Sunday"),
]


class Business(models.Model):
    """
    A salon, clinic or studio. Every staff member, service, client and
    appointment belongs to exactly one business.
    """
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=100, unique=True)
    contact_email = models.EmailField(blank=True)
    day_start = models.TimeField(
        default=time(9, 0),
        help_text="Anchor for slot boundaries (slots are aligned to this time).",
    )
    slot_minutes = models.PositiveSmallIntegerField(
        default=30,
        validators=[MinValueValidator(5), MaxValueValidator(240)],
    )
    auto_confirm = models.BooleanField(
        default=False,
        help_text="New appointments start CONFIRMED instead of PENDING.",
    )

    class Meta:
        verbose_name_plural = "businesses"

    def __str__(self):
        return self.name


class BusinessHours(models.Model):
    """
    Open hours for one weekday.
    """
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="hours")
    weekday = models.PositiveSmallIntegerField(choices=WEEKDAY_CHOICES)
    is_open = models.BooleanField(default=True)
    open_time = models.TimeField(default=time(9, 0))
    close_time = models.TimeField(default=time(17, 0))
    lunch_start = models.TimeField(null=True, blank=True)
    lunch_end = models.TimeField(null=True, blank=True)

    class Meta:
        ordering = ["business_id", "weekday"]
        constraints = [
            models.UniqueConstraint(fields=["business", "weekday"], name="uniq_business_weekday_hours"),
        ]

    def __str__(self):
        day = dict(WEEKDAY_CHOICES).get(self.weekday, self.weekday)
        if not self.is_open:
            return f"{self.business}: {day} closed"
        return f"{self.business}: {day} {self.open_time:%H:%M}-{self.close_time:%H:%M}"

    @property
    def has_lunch_break(self) -> bool:
        return self.lunch_start is not None and self.lunch_end is not None

    def clean(self):
        if not self.is_open:
            return
        if self.open_time >= self.close_time:
            raise ValidationError("Opening time must be before closing time.")

        # Both or neither
        if (self.lunch_start is None) != (self.lunch_end is None):
            raise ValidationError("Lunch break needs both a start and an end.")

        if self.has_lunch_break:
            if not (self.open_time < self.lunch_start < self.lunch_end < self.close_time):
                raise ValidationError("Lunch break must lie strictly within open hours.")
