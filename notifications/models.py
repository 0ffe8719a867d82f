# notifications/models.py
#
# Purpose:
# - Record messages sent to clients (confirmation/cancellation).
#
# Design:
# - FK to booking.ClientProfile (clients are not auth users).
# - 'sent' indicates delivery attempt result.
#
from django.db import models
from booking.models import Appointment, ClientProfile


class Notification(models.Model):
    CONFIRMATION = "CONFIRMATION"
    CANCELLATION = "CANCELLATION"
    KIND_CHOICES = [
        (CONFIRMATION, "Confirmation"),
        (CANCELLATION, "Cancellation"),
    ]

    user = models.ForeignKey(ClientProfile, on_delete=models.CASCADE, related_name="notifications")
    appointment = models.ForeignKey(
        Appointment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    kind = models.CharField(max_length=12, choices=KIND_CHOICES)
    message = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    sent = models.BooleanField(default=False)

    def __str__(self) -> str:
        label = getattr(self.user, "name", None) or getattr(self.user, "email", "client")
        return f"Notification to {label} at {self.created_at:%Y-%m-%d %H:%M}"
