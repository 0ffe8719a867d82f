"""
NotificationService
-------------------
Purpose:
- Tell clients (and the business contact) about confirmed and cancelled
  appointments through Django's mail framework.

How it is used:
- notifications/signals.py calls it after the booking transaction commits.
- Scheduling never waits on it: every send is wrapped so a mail failure is
  logged and swallowed, and the caller just gets False back.

Dev mode:
- With EMAIL_BACKEND = console.EmailBackend, send_mail prints the message.
"""

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

logger = logging.getLogger(__name__)


def _when(appointment) -> str:
    return timezone.localtime(appointment.scheduled_for).strftime("%A, %B %d, %Y at %I:%M %p")


class NotificationService:
    """
    Formats and sends confirmation / cancellation emails.
    """

    def _send(self, subject: str, body: str, to_email: str) -> bool:
        if not to_email:
            return False
        try:
            send_mail(
                subject=subject,
                message=body,
                from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
                recipient_list=[to_email],
                fail_silently=False,  # raise so we can log; we still catch it below
            )
        except Exception:
            logger.exception("Email send failed to %s (subject: %s)", to_email, subject)
            return False
        return True

    def confirmation_body(self, appointment) -> str:
        staff = appointment.staff.name if appointment.staff else "TBA"
        return (
            f"Hi {appointment.client.name},\n\n"
            f"Your appointment is confirmed.\n\n"
            f"Booking ID: {appointment.pk}\n"
            f"Service: {appointment.service.name}\n"
            f"Date & Time: {_when(appointment)}\n"
            f"Duration: {appointment.duration_minutes} min\n"
            f"Staff: {staff}\n\n"
            f"We look forward to seeing you!\n"
            f"— {appointment.business.name}"
        )

    def cancellation_body(self, appointment) -> str:
        return (
            f"Dear {appointment.client.name},\n\n"
            f"Your appointment for {appointment.service.name} on {_when(appointment)} has been cancelled.\n"
            f"If this was unexpected, please reply to this email.\n"
        )

    def send_confirmation(self, appointment, body: str | None = None) -> bool:
        return self._send(
            f"Booking Confirmation #{appointment.pk}",
            body or self.confirmation_body(appointment),
            appointment.client.email,
        )

    def send_cancellation(self, appointment, body: str | None = None) -> bool:
        sent = self._send(
            f"Booking #{appointment.pk} Cancelled",
            body or self.cancellation_body(appointment),
            appointment.client.email,
        )

        # Owner/admin alert when the business has a contact address
        owner_email = appointment.business.contact_email
        if owner_email:
            cancelled_at = appointment.cancellation_time or timezone.now()
            body_owner = (
                f"ALERT: Booking #{appointment.pk} cancelled.\n"
                f"Client: {appointment.client.name} ({appointment.client.email})\n"
                f"Service: {appointment.service.name}\n"
                f"Original Time: {_when(appointment)}\n"
                f"Cancellation Time: {timezone.localtime(cancelled_at):%Y-%m-%d %H:%M:%S}\n"
            )
            self._send(f"ALERT: Booking #{appointment.pk} CANCELLED", body_owner, owner_email)
        return sent
