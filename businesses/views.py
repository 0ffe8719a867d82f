# businesses/views.py
#
# Purpose:
# - The caller's business profile and its weekly open hours.
#
# Endpoints:
# - GET|PATCH /api/business/          profile and scheduling knobs
# - GET|PUT   /api/business/hours/    seven effective weekday rows; PUT upserts
#
# Notes for developers:
# - GET /hours/ reports the effective hours: weekdays without a row show the
#   configured default hours with "configured": false.
#
import logging

from django.db import transaction
from rest_framework.response import Response
from rest_framework.views import APIView

from booking.conf import scheduling_setting
from booking.identity import IsStaffOrReadOnly
from booking.services.slot_utils import parse_hhmm

from .models import WEEKDAY_CHOICES, BusinessHours
from .serializers import BusinessHoursSerializer, BusinessHoursUpdateSerializer, BusinessSerializer

logger = logging.getLogger(__name__)


def _effective_hours(business):
    rows = {h.weekday: h for h in BusinessHours.objects.filter(business=business)}
    out = []
    for weekday, label in WEEKDAY_CHOICES:
        hours = rows.get(weekday)
        if hours is None:
            data = {
                "weekday": weekday,
                "is_open": True,
                "open_time": parse_hhmm(scheduling_setting("DEFAULT_OPEN")).strftime("%H:%M:%S"),
                "close_time": parse_hhmm(scheduling_setting("DEFAULT_CLOSE")).strftime("%H:%M:%S"),
                "lunch_start": None,
                "lunch_end": None,
            }
        else:
            data = dict(BusinessHoursSerializer(hours).data)
        data["day"] = label
        data["configured"] = hours is not None
        out.append(data)
    return out


class BusinessProfileView(APIView):
    permission_classes = [IsStaffOrReadOnly]

    def get(self, request):
        return Response(BusinessSerializer(request.user.business).data)

    def patch(self, request):
        serializer = BusinessSerializer(request.user.business, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class BusinessHoursView(APIView):
    permission_classes = [IsStaffOrReadOnly]

    def get(self, request):
        return Response({"success": True, "hours": _effective_hours(request.user.business)})

    def put(self, request):
        payload = BusinessHoursUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        business = request.user.business
        with transaction.atomic():
            for row in payload.validated_data["hours"]:
                weekday = row.pop("weekday")
                BusinessHours.objects.update_or_create(business=business, weekday=weekday, defaults=row)

        logger.info("Business %s hours updated (%s weekday row(s))", business.pk, len(payload.validated_data["hours"]))
        return Response({"success": True, "hours": _effective_hours(business)})
