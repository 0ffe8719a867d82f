from django.urls import path

from .views import BusinessHoursView, BusinessProfileView

urlpatterns = [
    path("", BusinessProfileView.as_view(), name="business-profile"),
    path("hours/", BusinessHoursView.as_view(), name="business-hours"),
]
