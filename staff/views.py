# staff/views.py
#
# Purpose:
# - Staff roster, weekly schedules and time off, scoped to the caller's business.
#
# Endpoints:
# - GET|POST        /api/staff/members/
# - GET|PUT         /api/staff/availability/{staff_id}/   (PUT creates or replaces)
# - GET|POST|DELETE /api/staff/unavailability/[?staff=ID]
#
# Writes are staff/admin only; clients may read the roster.
#
import logging

from rest_framework import mixins, status, viewsets
from rest_framework.response import Response

from booking.identity import IsStaffOnly, IsStaffOrReadOnly
from booking.models import Staff
from booking.serializers import StaffSerializer
from booking.services.errors import StaffNotFound, StaffScheduleNotFound

from .models import StaffAvailability, StaffUnavailability
from .serializers import StaffAvailabilitySerializer, StaffUnavailabilitySerializer

logger = logging.getLogger(__name__)


class StaffMemberViewSet(viewsets.ModelViewSet):
    serializer_class = StaffSerializer
    permission_classes = [IsStaffOrReadOnly]

    def get_queryset(self):
        return Staff.objects.filter(business=self.request.user.business).order_by("id")

    def perform_create(self, serializer):
        serializer.save(business=self.request.user.business)


class StaffAvailabilityViewSet(viewsets.ViewSet):
    """
    One weekly schedule per staff member, addressed by the staff id.
    """
    permission_classes = [IsStaffOnly]

    def _staff(self, request, pk):
        try:
            return Staff.objects.get(pk=pk, business=request.user.business)
        except (Staff.DoesNotExist, ValueError):
            raise StaffNotFound() from None

    def retrieve(self, request, pk=None):
        staff = self._staff(request, pk)
        availability = StaffAvailability.objects.filter(staff=staff).first()
        if availability is None:
            raise StaffScheduleNotFound()
        return Response(StaffAvailabilitySerializer(availability).data)

    def update(self, request, pk=None):
        staff = self._staff(request, pk)
        availability = StaffAvailability.objects.filter(staff=staff).first()

        serializer = StaffAvailabilitySerializer(availability, data=request.data)
        serializer.is_valid(raise_exception=True)
        saved = serializer.save(staff=staff)

        logger.info("Weekly schedule %s for staff %s", "updated" if availability else "created", staff.pk)
        return Response(
            StaffAvailabilitySerializer(saved).data,
            status=status.HTTP_200_OK if availability else status.HTTP_201_CREATED,
        )


class StaffUnavailabilityViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = StaffUnavailabilitySerializer
    permission_classes = [IsStaffOnly]

    def get_queryset(self):
        qs = StaffUnavailability.objects.filter(staff__business=self.request.user.business)
        staff_id = self.request.query_params.get("staff")
        if staff_id:
            qs = qs.filter(staff_id=staff_id)
        return qs.order_by("staff_id", "start_date")
