from rest_framework import serializers

from .identity import Actor
from .models import Appointment, ClientProfile, RecurringAppointmentPattern, Service, SlotTemplate, Staff


class BusinessScopedPrimaryKeyRelatedField(serializers.PrimaryKeyRelatedField):
    """
    PK field that only resolves rows of the caller's business.
    """
    def get_queryset(self):
        qs = super().get_queryset()
        request = self.context.get("request")
        actor = getattr(request, "user", None)
        if not isinstance(actor, Actor):
            return qs.none()
        return qs.filter(business=actor.business)


class ClientProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = ClientProfile
        fields = ["id", "name", "email", "phone", "is_eligible"]
        read_only_fields = ["is_eligible"]


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ["id", "name", "email", "role"]


class SlotTemplateSerializer(serializers.ModelSerializer):
    is_global = serializers.BooleanField(read_only=True)

    class Meta:
        model = SlotTemplate
        fields = [
            "id",
            "name",
            "description",
            "slots_needed",
            "duration_minutes",
            "category",
            "metadata",
            "is_default",
            "is_global",
        ]
        read_only_fields = ["is_default"]


class ServiceSerializer(serializers.ModelSerializer):
    staff = BusinessScopedPrimaryKeyRelatedField(queryset=Staff.objects.all(), many=True, required=False)
    slot_template = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Service
        fields = [
            "id",
            "name",
            "description",
            "duration_minutes",
            "slots_needed",
            "capacity",
            "category",
            "metadata",
            "slot_template",
            "staff",
            "active",
        ]


class _Summary(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()


class AppointmentSerializer(serializers.ModelSerializer):
    """
    Read shape of an appointment with echoed service/staff/client summaries.
    """
    service = _Summary(read_only=True)
    staff = _Summary(read_only=True, allow_null=True)
    client = _Summary(read_only=True)
    ends_at = serializers.DateTimeField(read_only=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "status",
            "service",
            "staff",
            "client",
            "scheduled_for",
            "ends_at",
            "duration_minutes",
            "notes",
            "recurring_pattern",
            "created_at",
            "cancellation_time",
        ]
        read_only_fields = fields


# -------------------------
# Request payloads
# -------------------------
class AvailabilityQuerySerializer(serializers.Serializer):
    service = serializers.IntegerField()
    date = serializers.DateField()
    staff = serializers.IntegerField(required=False, allow_null=True)


class SlotCheckSerializer(serializers.Serializer):
    service = serializers.IntegerField()
    staff = serializers.IntegerField(required=False, allow_null=True)
    starts = serializers.ListField(child=serializers.DateTimeField(), allow_empty=False, max_length=100)


class SlotRosterQuerySerializer(serializers.Serializer):
    service = serializers.IntegerField()
    start = serializers.DateTimeField()
    staff = serializers.IntegerField(required=False, allow_null=True)


class BookingRequestSerializer(serializers.Serializer):
    service = serializers.IntegerField()
    staff = serializers.IntegerField(required=False, allow_null=True)
    client = serializers.IntegerField(required=False, allow_null=True)
    start_time = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class TransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class RecurringRequestSerializer(serializers.Serializer):
    # frequency/interval are checked by the recurrence rule itself so a bad
    # rule surfaces as INVALID_RECURRENCE rather than a field error
    frequency = serializers.CharField()
    interval = serializers.IntegerField(default=1)
    days_of_week = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    start_date = serializers.DateField()
    end_date = serializers.DateField(required=False, allow_null=True)
    service = serializers.IntegerField()
    staff = serializers.IntegerField(required=False, allow_null=True)
    client = serializers.IntegerField(required=False, allow_null=True)
    start_time = serializers.TimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class RecurringPatternSerializer(serializers.ModelSerializer):
    appointments = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = RecurringAppointmentPattern
        fields = [
            "id",
            "frequency",
            "interval",
            "days_of_week",
            "start_date",
            "end_date",
            "created_at",
            "appointments",
        ]
        read_only_fields = fields


class EligibilitySerializer(serializers.Serializer):
    is_eligible = serializers.BooleanField()


class ServiceFromTemplateSerializer(serializers.Serializer):
    template = serializers.IntegerField()
    name = serializers.CharField(required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    capacity = serializers.IntegerField(min_value=1, default=1)
    staff = BusinessScopedPrimaryKeyRelatedField(queryset=Staff.objects.all(), many=True, required=False)
