# services/reservation-service/src/apps/api/views/__init__.py
"""
Reservation API Views
"""

from .reservation_views import ReservationViewSet
from .status_views import StatusViewSet
from .analytics_views import AnalyticsViewSet


__all__ = [
    'ReservationViewSet',
    'StatusViewSet',
    'AnalyticsViewSet',
]
