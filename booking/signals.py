# booking/signals.py
#
# Purpose:
# - Keep a recurring series consistent when its pattern is deleted, from any
#   entry point (API, admin, shell): the still-active future occurrences go
#   with it, past or terminal ones stay (their FK is SET_NULL).
#
import logging

from django.db.models.signals import pre_delete
from django.dispatch import receiver
from django.utils import timezone

from .models import Appointment, RecurringAppointmentPattern

logger = logging.getLogger(__name__)


def future_occurrences(pattern, now=None):
    return Appointment.objects.filter(
        recurring_pattern=pattern,
        status__in=Appointment.ACTIVE_STATUSES,
        scheduled_for__gte=now or timezone.now(),
    )


@receiver(pre_delete, sender=RecurringAppointmentPattern)
def remove_future_occurrences(sender, instance, **kwargs):
    removed, _ = future_occurrences(instance).delete()
    if removed:
        logger.info("Pattern %s deleted: removed %s future appointment(s)", instance.pk, removed)
