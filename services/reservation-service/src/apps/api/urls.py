# services/reservation-service/src/apps/api/urls.py
"""
Reservation API URL Configuration

Defines all API routes for the reservation service.
"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import (
    ReservationViewSet,
    StatusViewSet,
    AnalyticsViewSet,
)

app_name = 'api'

# Fixed prefixes first so they win over the reservation detail routes
router = SimpleRouter()
router.register(r'statuses', StatusViewSet, basename='status')
router.register(r'analytics', AnalyticsViewSet, basename='analytics')
router.register(r'', ReservationViewSet, basename='reservation')

urlpatterns = [
    path('', include(router.urls)),
]
