from django.contrib import admin
from .models import Appointment, ClientProfile, RecurringAppointmentPattern, Service, SlotTemplate, Staff

@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "business", "duration_minutes", "capacity", "category", "active")
    list_filter = ("business", "active", "category")
    search_fields = ("name",)
    list_editable = ("active",)
    filter_horizontal = ("staff",)

@admin.register(SlotTemplate)
class SlotTemplateAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "business", "slots_needed", "duration_minutes", "category", "is_default", "is_active")
    list_filter = ("is_default", "is_active", "category")
    search_fields = ("name", "description")

@admin.register(ClientProfile)
class ClientProfileAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "business", "is_eligible")
    list_filter = ("business", "is_eligible")
    search_fields = ("name", "email", "phone")

@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "role", "business")
    list_filter = ("business",)

@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("id", "client", "service", "staff", "scheduled_for", "status")
    list_filter = ("business", "status", "service")
    search_fields = ("client__name", "service__name")
    date_hierarchy = "scheduled_for"

@admin.register(RecurringAppointmentPattern)
class RecurringAppointmentPatternAdmin(admin.ModelAdmin):
    list_display = ("id", "business", "frequency", "interval", "start_date", "end_date")
    list_filter = ("frequency",)
