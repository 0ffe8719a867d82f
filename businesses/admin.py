from django.contrib import admin
from .models import Business, BusinessHours

class BusinessHoursInline(admin.TabularInline):
    model = BusinessHours
    extra = 0

@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "slot_minutes", "day_start", "auto_confirm")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [BusinessHoursInline]
