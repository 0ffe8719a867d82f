"""
slot_templates.py
-----------------
Configuration helper: stamp a SlotTemplate's timing onto services.

Templates are never modified here. Creating two services from one template
gives two independent services.
"""

import logging

from django.db.models import Q

from ..models import Service, SlotTemplate
from .errors import InvalidRequest, TemplateNotFound

logger = logging.getLogger(__name__)


def templates_for_business(business, category=None, include_global=True):
    """
    Active templates visible to `business`: its own, plus global defaults.
    Ordered defaults first, then by category and name.
    """
    scope = Q(business=business)
    if include_global:
        scope |= Q(business__isnull=True, is_default=True)

    qs = SlotTemplate.objects.filter(scope, is_active=True)
    if category:
        qs = qs.filter(category=category)
    return qs.order_by("-is_default", "category", "name")


def get_template(business, template_id):
    try:
        return templates_for_business(business).get(pk=template_id)
    except (SlotTemplate.DoesNotExist, ValueError, TypeError):
        raise TemplateNotFound() from None


def _copy_timing(template, service):
    service.slots_needed = template.slots_needed
    service.duration_minutes = template.duration_minutes
    service.category = template.category
    service.metadata = dict(template.metadata or {})
    service.slot_template = template


def create_service_from_template(business, template, name=None, capacity=1, description="", staff=None):
    """
    New Service for `business` carrying the template's timing, category and metadata.
    """
    if template.business_id not in (None, business.pk):
        raise TemplateNotFound()
    if capacity < 1:
        raise InvalidRequest("Capacity must be at least 1.")

    service = Service(
        business=business,
        name=name or template.name,
        description=description or template.description,
        capacity=capacity,
    )
    _copy_timing(template, service)
    service.save()
    if staff:
        service.staff.set(staff)

    logger.info("Service %s created from slot template %s", service.pk, template.pk)
    return service


def apply_template(service, template):
    """
    Overwrite an existing service's timing with the template's.
    """
    if template.business_id not in (None, service.business_id):
        raise TemplateNotFound()
    _copy_timing(template, service)
    service.save(update_fields=["slots_needed", "duration_minutes", "category", "metadata", "slot_template"])
    return service
