from rest_framework import serializers

from booking.models import Staff
from booking.serializers import BusinessScopedPrimaryKeyRelatedField
from booking.services.schedule_resolver import parse_day, parse_schedule

from .models import WEEKDAY_KEYS, StaffAvailability, StaffUnavailability


class StaffAvailabilitySerializer(serializers.ModelSerializer):
    staff = serializers.PrimaryKeyRelatedField(read_only=True)
    # normalised view of `schedule`, as the scheduler reads it
    working_windows = serializers.SerializerMethodField()

    class Meta:
        model = StaffAvailability
        fields = ["staff", "schedule", "working_windows", "updated_at"]
        read_only_fields = ["updated_at"]

    def get_working_windows(self, obj):
        parsed = parse_schedule(obj.schedule)
        return {
            key: [w.as_dict() for w in parsed[index].windows] if parsed[index].is_working else []
            for index, key in enumerate(WEEKDAY_KEYS)
        }

    def validate_schedule(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Schedule must be an object keyed by weekday.")

        unknown = set(value) - set(WEEKDAY_KEYS)
        if unknown:
            raise serializers.ValidationError(f"Unknown weekday key(s): {', '.join(sorted(unknown))}")

        for key, raw in value.items():
            if not isinstance(raw, dict) or not isinstance(raw.get("isWorking"), bool):
                raise serializers.ValidationError(f"{key}: expected an object with a boolean 'isWorking'.")
            if raw["isWorking"] and not parse_day(raw).is_working:
                raise serializers.ValidationError(f"{key}: working day needs at least one valid start/end window.")
        return value


class StaffUnavailabilitySerializer(serializers.ModelSerializer):
    staff = BusinessScopedPrimaryKeyRelatedField(queryset=Staff.objects.all())

    class Meta:
        model = StaffUnavailability
        fields = ["id", "staff", "start_date", "end_date", "kind", "reason"]

    def validate(self, attrs):
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError("start_date must be on or before end_date.")
        return attrs
