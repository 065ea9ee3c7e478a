from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # register, login, refresh, profile

    # Ride-sharing tab of a party (offers, requests, pickup, kick, leave, cancel)
    path('api/parties/<uuid:party_id>/rides/', include('rides.urls')),

    # Address -> coordinates, cached
    path('api/geocode/', include('geocoding.urls')),

    # Notification history behind the bell icon
    path('api/notifications/', include('notifications.urls')),
]
