# booking/views.py
#
# Purpose:
# - Appointment API: availability, bulk slot check, booking, lifecycle.
# - Recurring series, service catalog, slot templates, client records.
# - Every queryset is scoped to request.user.business (see identity.py);
#   another business's rows simply do not exist for the caller.
#
# Permissions:
# - Clients book and read only for themselves (X-Client-Id).
# - Configuration writes (services, templates, eligibility) are staff/admin.
#
# Notes for developers:
# - Views stay thin: all scheduling rules live in booking/services/ and
#   raise SchedulingError, which api_errors.py renders as the error envelope.
#
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .identity import IsStaffOnly, IsStaffOrReadOnly
from .models import Appointment, ClientProfile, RecurringAppointmentPattern, Service, SlotTemplate
from .serializers import (
    AppointmentSerializer,
    AvailabilityQuerySerializer,
    BookingRequestSerializer,
    CancelSerializer,
    ClientProfileSerializer,
    EligibilitySerializer,
    RecurringPatternSerializer,
    RecurringRequestSerializer,
    ServiceFromTemplateSerializer,
    ServiceSerializer,
    SlotCheckSerializer,
    SlotRosterQuerySerializer,
    SlotTemplateSerializer,
    TransitionSerializer,
)
from .services.availability_engine import AvailabilityEngine
from .services.booking_manager import BookingManager
from .services.eligibility import EligibilityGate
from .services.errors import InvalidRequest
from .services.recurrence import AppointmentTemplate, RecurrencePatternExpander, delete_pattern
from .services.slot_templates import create_service_from_template, get_template, templates_for_business


def _client_for(request, requested_id):
    """
    The client a request acts for. Clients always act for themselves.
    """
    actor = request.user
    if not actor.is_staff:
        if requested_id is not None and requested_id != actor.client_id:
            raise InvalidRequest("Clients can only book for themselves.")
        return actor.client_id
    if requested_id is None:
        raise InvalidRequest("'client' is required.")
    return requested_id


def _truthy(raw, default=True):
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


# -------------------- Appointments --------------------
class AppointmentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Endpoints:
    - GET    /api/appointments/                      scoped listing
    - POST   /api/appointments/                      book
    - GET    /api/appointments/availability/         slots for service + date
    - POST   /api/appointments/check/                bulk check of start times
    - GET    /api/appointments/slot/                 staff roster of one slot
    - POST   /api/appointments/{id}/transition/      staff status change
    - POST   /api/appointments/{id}/cancel/          cancel (client cut-off applies)
    """
    serializer_class = AppointmentSerializer
    engine = AvailabilityEngine()
    manager = BookingManager(availability=engine)

    def get_queryset(self):
        actor = self.request.user
        qs = (
            Appointment.objects.filter(business=actor.business)
            .select_related("service", "staff", "client")
            .order_by("scheduled_for", "id")
        )
        if not actor.is_staff:
            qs = qs.filter(client_id=actor.client_id)

        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter.upper())
        return qs

    def create(self, request, *args, **kwargs):
        payload = BookingRequestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        appointment = self.manager.book(
            request.user.business,
            service_id=data["service"],
            client_id=_client_for(request, data.get("client")),
            scheduled_for=data["start_time"],
            staff_id=data.get("staff"),
            notes=data.get("notes", ""),
        )
        out = AppointmentSerializer(appointment)
        return Response({"success": True, "appointment": out.data}, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path="availability")
    def availability(self, request):
        """
        GET /api/appointments/availability/?service=ID&date=YYYY-MM-DD[&staff=ID]
        """
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        slots = self.engine.compute_slots(
            request.user.business,
            params["service"],
            params["date"],
            staff_id=params.get("staff"),
        )
        return Response({
            "success": True,
            "service_id": params["service"],
            "date": params["date"].isoformat(),
            "slots": [slot.as_dict() for slot in slots],
        })

    @action(detail=False, methods=["post"], url_path="check")
    def check(self, request):
        payload = SlotCheckSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        results = self.engine.check_slots(
            request.user.business,
            data["service"],
            data["starts"],
            staff_id=data.get("staff"),
        )
        return Response({"success": True, "results": results})

    @action(detail=False, methods=["get"], url_path="slot", permission_classes=[IsStaffOnly])
    def slot(self, request):
        """
        GET /api/appointments/slot/?service=ID&start=ISO-DATETIME[&staff=ID]
        Who is booked into one slot (a class roster) and the seats left.
        """
        query = SlotRosterQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        roster = self.engine.roster(
            request.user.business,
            params["service"],
            params["start"],
            staff_id=params.get("staff"),
        )
        return Response({
            "success": True,
            **roster.as_dict(),
            "appointments": AppointmentSerializer(roster.appointments, many=True).data,
        })

    @action(detail=True, methods=["post"], permission_classes=[IsStaffOnly])
    def transition(self, request, pk=None):
        appointment = self.get_object()
        payload = TransitionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        updated = self.manager.transition(appointment, payload.validated_data["status"])
        return Response({"success": True, "appointment": AppointmentSerializer(updated).data})

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        appointment = self.get_object()
        payload = CancelSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        updated = self.manager.cancel(
            appointment,
            by_client=not request.user.is_staff,
            reason=payload.validated_data.get("reason", ""),
        )
        return Response({"success": True, "appointment": AppointmentSerializer(updated).data})


# -------------------- Recurring series --------------------
class RecurringPatternViewSet(
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    - POST   /api/recurring/        store a pattern and book every occurrence
    - GET    /api/recurring/{id}/   the pattern with its appointment ids
    - DELETE /api/recurring/{id}/   remove the pattern and its future appointments
    """
    serializer_class = RecurringPatternSerializer
    expander = RecurrencePatternExpander()

    def get_queryset(self):
        return RecurringAppointmentPattern.objects.filter(business=self.request.user.business)

    def create(self, request, *args, **kwargs):
        payload = RecurringRequestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        template = AppointmentTemplate(
            service_id=data["service"],
            client_id=_client_for(request, data.get("client")),
            start_time=data["start_time"],
            staff_id=data.get("staff"),
            notes=data.get("notes", ""),
        )
        outcome = self.expander.book_series(
            request.user.business,
            template,
            frequency=data["frequency"].upper(),
            interval=data["interval"],
            start_date=data["start_date"],
            end_date=data.get("end_date"),
            days_of_week=data.get("days_of_week"),
        )
        body = {"success": True}
        body.update(outcome.as_dict())
        return Response(body, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        pattern = self.get_object()
        removed = delete_pattern(pattern)
        return Response({"success": True, "appointments_removed": removed})


# -------------------- Catalog --------------------
class ServiceViewSet(viewsets.ModelViewSet):
    """
    Service catalog:
    - Members list active services; staff also see inactive ones.
    - Only staff can create/update/delete services.
    - POST /api/services/from-template/ stamps a slot template onto a new service.
    """
    serializer_class = ServiceSerializer
    permission_classes = [IsStaffOrReadOnly]

    def get_queryset(self):
        actor = self.request.user
        qs = Service.objects.filter(business=actor.business).order_by("id")
        if actor.is_staff:
            return qs
        return qs.filter(active=True)

    def perform_create(self, serializer):
        serializer.save(business=self.request.user.business)

    @action(detail=False, methods=["post"], url_path="from-template")
    def from_template(self, request):
        payload = ServiceFromTemplateSerializer(data=request.data, context={"request": request})
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        business = request.user.business
        template = get_template(business, data["template"])
        service = create_service_from_template(
            business,
            template,
            name=data.get("name") or None,
            capacity=data["capacity"],
            description=data.get("description", ""),
            staff=data.get("staff"),
        )
        return Response(ServiceSerializer(service).data, status=status.HTTP_201_CREATED)


class SlotTemplateViewSet(viewsets.ModelViewSet):
    """
    GET  /api/slot-templates/?category=...&include_global=false
    POST /api/slot-templates/   business-scoped template (staff only)

    Global defaults are read-only here; they are managed by the
    seed_slot_templates command.
    """
    serializer_class = SlotTemplateSerializer
    permission_classes = [IsStaffOrReadOnly]

    def get_queryset(self):
        params = self.request.query_params
        if self.request.method in ("GET", "HEAD", "OPTIONS"):
            return templates_for_business(
                self.request.user.business,
                category=params.get("category") or None,
                include_global=_truthy(params.get("include_global")),
            )
        return SlotTemplate.objects.filter(business=self.request.user.business, is_active=True)

    def perform_create(self, serializer):
        serializer.save(business=self.request.user.business)

    def perform_destroy(self, instance):
        # referenced templates are kept for the services stamped from them
        if instance.services.exists():
            instance.is_active = False
            instance.save(update_fields=["is_active"])
            return
        instance.delete()


class ClientProfileViewSet(viewsets.ModelViewSet):
    """
    Client records of the business. Clients see only their own record.
    PATCH /api/clients/{id}/eligibility/ toggles class eligibility (staff only).
    """
    serializer_class = ClientProfileSerializer
    permission_classes = [IsStaffOrReadOnly]
    gate = EligibilityGate()

    def get_queryset(self):
        actor = self.request.user
        qs = ClientProfile.objects.filter(business=actor.business).order_by("id")
        if not actor.is_staff:
            qs = qs.filter(pk=actor.client_id)
        return qs

    def create(self, request, *args, **kwargs):
        """
        Create-or-reuse a client with trimmed fields.
        An existing record with the same name/email (case-insensitive) and
        phone is returned with 200 instead of creating a duplicate.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        name = data["name"].strip()
        email = data["email"].strip()
        phone = (data.get("phone") or "").strip()

        existing = ClientProfile.objects.filter(
            business=request.user.business,
            name__iexact=name,
            email__iexact=email,
            phone=phone,
        ).first()
        if existing:
            return Response(self.get_serializer(existing).data, status=status.HTTP_200_OK)

        client = serializer.save(business=request.user.business, name=name, email=email, phone=phone)
        return Response(self.get_serializer(client).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["patch"], permission_classes=[IsStaffOnly])
    def eligibility(self, request, pk=None):
        payload = EligibilitySerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        client = self.gate.set_eligibility(request.user.business, pk, payload.validated_data["is_eligible"])
        return Response(ClientProfileSerializer(client).data)
