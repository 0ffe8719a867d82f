# staff/admin.py
from django.contrib import admin
from .models import StaffAvailability, StaffUnavailability

@admin.register(StaffAvailability)
class StaffAvailabilityAdmin(admin.ModelAdmin):
    list_display = ("staff", "updated_at")
    search_fields = ("staff__name",)

@admin.register(StaffUnavailability)
class StaffUnavailabilityAdmin(admin.ModelAdmin):
    list_display = ("staff", "kind", "start_date", "end_date", "reason")
    list_filter = ("kind", "staff")
    search_fields = ("staff__name", "reason")
