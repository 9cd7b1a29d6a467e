from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # accounts.urls have register, login, refresh endpoints

    # Driver APIs (profile, duty status, GPS location, current load)
    path('api/driver/', include('drivers.urls')),

    # Load endpoints (at /api/loads/): blasts, responses, status changes, suggestions
    path('api/loads/', include('loads.urls')),
]
