# booking/models.py
#
# Purpose:
# - Core domain models for scheduling: who works (Staff), who books
#   (ClientProfile), what is booked (Service, SlotTemplate) and the bookings
#   themselves (Appointment, RecurringAppointmentPattern).
#
# Design highlights:
# - Every model is scoped to a businesses.Business; queries in the service
#   layer always filter by the caller's business.
# - ClientProfile: clean() prevents duplicates inside one business by
#   (name/email case-insensitive + phone exact). is_eligible gates class
#   enrollment.
# - Service: capacity 1 = exclusive one-on-one, >1 = group/class.
#   slots_needed is optional; when blank it is derived from duration.
# - SlotTemplate: reusable (slots_needed, duration) preset, global when
#   business is empty and is_default is set. Immutable once a Service uses it.
# - Appointment:
#   • duration is copied from the service at booking time
#   • status is uppercase; CANCELLED, REJECTED and COMPLETED are terminal
#   • recurring_pattern is SET_NULL so past occurrences survive pattern deletion
#
# Notes for developers:
# - Overlap/capacity rules are NOT enforced here; they live in
#   booking/services/booking_manager.py inside a locked transaction.
#

from datetime import timedelta

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from businesses.models import Business


# -------------------------
# Staff member
# -------------------------
class Staff(models.Model):
    """
    A stylist, practitioner or instructor who can be assigned to appointments.
    """
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="staff")
    name = models.CharField(max_length=200)
    email = models.EmailField()
    role = models.CharField(max_length=100, blank=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["business", "email"], name="uniq_staff_email_per_business"),
        ]

    def __str__(self):
        return self.name


# -------------------------
# Client (person who books)
# -------------------------
class ClientProfile(models.Model):
    """
    A client of one business.
    - is_eligible is controlled by the business (onboarding done, membership
      valid, ...) and gates enrollment in capacity-based services.
    """
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="clients")
    name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    is_eligible = models.BooleanField(default=True)

    def __str__(self):
        return self.name

    def clean(self):
        """
        Soft duplicate prevention within one business:
        same name/email (case-insensitive) + phone exact.
        """
        name = (self.name or "").strip()
        email = (self.email or "").strip()
        phone = (self.phone or "").strip()

        if not name or not email or not self.business_id:
            return

        qs = ClientProfile.objects.filter(
            business_id=self.business_id,
            name__iexact=name,
            email__iexact=email,
            phone=phone,
        )
        if self.pk:
            qs = qs.exclude(pk=self.pk)

        if qs.exists():
            raise ValidationError(
                "A client with the same name, email, and phone already exists."
            )


# -------------------------
# Slot template (configuration preset)
# -------------------------
class SlotTemplate(models.Model):
    """
    Reusable (slots_needed, duration) preset for creating services quickly.

    Rules:
    - business empty + is_default → global template offered to every business
    - once a Service references the template its timing fields are frozen
    """
    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name="slot_templates",
        null=True,
        blank=True,
    )
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    slots_needed = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    category = models.CharField(max_length=100, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    FROZEN_FIELDS = ("slots_needed", "duration_minutes", "category", "metadata")

    class Meta:
        ordering = ["-is_default", "category", "name"]

    def __str__(self):
        return f"{self.name} ({self.slots_needed} slot(s), {self.duration_minutes} min)"

    @property
    def is_global(self) -> bool:
        return self.business_id is None and self.is_default

    def clean(self):
        if self.pk is None or not self.services.exists():
            return
        previous = SlotTemplate.objects.get(pk=self.pk)
        changed = [f for f in self.FROZEN_FIELDS if getattr(previous, f) != getattr(self, f)]
        if changed:
            raise ValidationError(
                f"Template is used by existing services; cannot change {', '.join(changed)}."
            )

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)


# -------------------------
# Service catalog item
# -------------------------
class Service(models.Model):
    """
    A bookable service.

    Rules:
    - duration_minutes must be > 0
    - capacity 1 is exclusive per staff member; capacity > 1 is a class
    - staff lists who can perform it (empty = not bound to staff)
    - active controls visibility and bookability
    """
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="services")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    slots_needed = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Duration in slot units; derived from duration when blank.",
    )
    capacity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    category = models.CharField(max_length=100, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    slot_template = models.ForeignKey(
        SlotTemplate,
        on_delete=models.PROTECT,
        related_name="services",
        null=True,
        blank=True,
    )
    staff = models.ManyToManyField(Staff, related_name="services", blank=True)
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.name} ({self.duration_minutes} min)"

    @property
    def is_class(self) -> bool:
        return self.capacity > 1


# -------------------------
# Recurrence rule
# -------------------------
class RecurringAppointmentPattern(models.Model):
    """
    Rule that generated a series of appointments.
    days_of_week uses Python weekday numbers (0=Monday .. 6=Sunday).
    """
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    FREQUENCY_CHOICES = [
        (DAILY, "Daily"),
        (WEEKLY, "Weekly"),
        (MONTHLY, "Monthly"),
        (YEARLY, "Yearly"),
    ]

    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="recurring_patterns")
    frequency = models.CharField(max_length=10, choices=FREQUENCY_CHOICES)
    interval = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    days_of_week = models.JSONField(default=list, blank=True)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.frequency} every {self.interval} from {self.start_date}"


# -------------------------
# Appointment record
# -------------------------
class Appointment(models.Model):
    """
    A booked appointment or class enrollment.
    """
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ACCEPTED = "ACCEPTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (ACCEPTED, "Accepted"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
        (REJECTED, "Rejected"),
    ]

    ACTIVE_STATUSES = (PENDING, CONFIRMED, ACCEPTED)
    TERMINAL_STATUSES = (CANCELLED, REJECTED, COMPLETED)

    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name="appointments")
    service = models.ForeignKey(Service, on_delete=models.CASCADE, related_name="appointments")
    staff = models.ForeignKey(
        Staff,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointments",
    )
    client = models.ForeignKey(ClientProfile, on_delete=models.CASCADE, related_name="appointments")
    scheduled_for = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=PENDING,
        help_text="Appointment lifecycle status",
    )
    notes = models.TextField(blank=True)
    recurring_pattern = models.ForeignKey(
        RecurringAppointmentPattern,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointments",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    cancellation_time = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the appointment was cancelled (if applicable).",
    )

    class Meta:
        ordering = ["scheduled_for", "id"]
        indexes = [
            models.Index(fields=["staff", "scheduled_for"]),
            models.Index(fields=["service", "scheduled_for"]),
        ]

    def __str__(self):
        return f"{self.client.name} → {self.service.name} on {self.scheduled_for}"

    @property
    def ends_at(self):
        return self.scheduled_for + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES
