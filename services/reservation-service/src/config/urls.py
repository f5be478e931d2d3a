# services/reservation-service/src/config/urls.py
from django.contrib import admin
from django.urls import path, include

from shared.common.health import get_health_urlpatterns

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/reservations/', include('apps.api.urls', namespace='api')),
] + get_health_urlpatterns()
