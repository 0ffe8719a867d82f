from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import StaffAvailabilityViewSet, StaffMemberViewSet, StaffUnavailabilityViewSet

router = DefaultRouter()
router.register(r"members", StaffMemberViewSet, basename="staff-member")
router.register(r"availability", StaffAvailabilityViewSet, basename="staff-availability")
router.register(r"unavailability", StaffUnavailabilityViewSet, basename="staff-unavailability")

urlpatterns = [path("", include(router.urls))]
