from django.core.exceptions import ValidationError as ModelValidationError
from rest_framework import serializers

from .models import Business, BusinessHours


class BusinessSerializer(serializers.ModelSerializer):
    class Meta:
        model = Business
        fields = ["id", "name", "slug", "contact_email", "day_start", "slot_minutes", "auto_confirm"]
        read_only_fields = ["slug"]


class BusinessHoursSerializer(serializers.ModelSerializer):
    class Meta:
        model = BusinessHours
        fields = ["weekday", "is_open", "open_time", "close_time", "lunch_start", "lunch_end"]

    def validate(self, attrs):
        # Reuse the model rules (open < close, lunch strictly inside)
        candidate = BusinessHours(**attrs)
        try:
            candidate.clean()
        except ModelValidationError as exc:
            raise serializers.ValidationError(exc.messages) from None
        return attrs


class BusinessHoursUpdateSerializer(serializers.Serializer):
    hours = BusinessHoursSerializer(many=True)

    def validate_hours(self, value):
        weekdays = [row["weekday"] for row in value]
        if len(weekdays) != len(set(weekdays)):
            raise serializers.ValidationError("Each weekday may appear only once.")
        return value
