# notifications/signals.py
#
# Purpose:
# - Tell the client when an Appointment is confirmed or cancelled.
#   * CONFIRMED: on create, or when the status field is saved as CONFIRMED
#   * CANCELLED: on update when status is set to CANCELLED
#
# Notes:
# - Delivery is deferred with transaction.on_commit, so a rolled-back booking
#   never notifies and the booking transaction never waits on email.
# - NotificationService logs and swallows mail errors.
#
import logging

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from booking.models import Appointment
from booking.services.notification_service import NotificationService
from notifications.models import Notification

logger = logging.getLogger(__name__)

notifier = NotificationService()


def _deliver(appointment_id: int, kind: str) -> None:
    appointment = (
        Appointment.objects.select_related("client", "service", "staff", "business")
        .filter(pk=appointment_id)
        .first()
    )
    if appointment is None:
        return

    if kind == Notification.CONFIRMATION:
        body = notifier.confirmation_body(appointment)
        sent = notifier.send_confirmation(appointment, body)
    else:
        body = notifier.cancellation_body(appointment)
        sent = notifier.send_cancellation(appointment, body)

    # Record the message for auditing, whether or not delivery worked
    Notification.objects.create(
        user=appointment.client,
        appointment=appointment,
        kind=kind,
        message=body,
        sent=sent,
    )
    logger.info("%s notification for appointment %s (sent=%s)", kind, appointment_id, sent)


@receiver(post_save, sender=Appointment)
def appointment_status_notifications(sender, instance: Appointment, created: bool, update_fields=None, **kwargs):
    """
    Queue a notification when an appointment becomes CONFIRMED or CANCELLED.
    """
    status_saved = created or update_fields is None or "status" in update_fields

    if instance.status == Appointment.CONFIRMED and status_saved:
        kind = Notification.CONFIRMATION
    elif instance.status == Appointment.CANCELLED and not created and status_saved:
        kind = Notification.CANCELLATION
    else:
        return

    appointment_id = instance.pk
    transaction.on_commit(lambda: _deliver(appointment_id, kind))
