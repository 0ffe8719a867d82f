# appointment_platform/urls.py
#
# Purpose:
# - Project URL router.
# - All JSON APIs live under /api/; the Django admin under /admin/.
#
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),

    # =====
    # API's
    # =====
    path("api/staff/", include("staff.urls")),
    path("api/business/", include("businesses.urls")),
    path("api/", include("booking.urls")),
]
