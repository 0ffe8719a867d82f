# booking/urls.py
#
# Purpose:
# - Expose the booking REST API via a DRF router, mounted under /api/.
#
# Notes for developers:
# - Custom actions (availability, check, transition, cancel, from-template,
#   eligibility) are declared with @action on the viewsets and routed
#   automatically.
#
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AppointmentViewSet,
    ClientProfileViewSet,
    RecurringPatternViewSet,
    ServiceViewSet,
    SlotTemplateViewSet,
)

router = DefaultRouter()
router.register(r"appointments", AppointmentViewSet, basename="appointment")
router.register(r"recurring", RecurringPatternViewSet, basename="recurring")
router.register(r"services", ServiceViewSet, basename="service")
router.register(r"slot-templates", SlotTemplateViewSet, basename="slot-template")
router.register(r"clients", ClientProfileViewSet, basename="client")

urlpatterns = [
    path("", include(router.urls)),
]
