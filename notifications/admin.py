from django.contrib import admin
from notifications.models import Notification

@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('user', 'kind', 'appointment', 'sent', 'created_at')
    list_filter = ('kind', 'sent', 'created_at')
    search_fields = ('user__name', 'user__email', 'message')
