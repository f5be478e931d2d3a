# services/reservation-service/src/apps/api/serializers/__init__.py
"""
Reservation API Serializers
"""

from .reservation_serializers import (
    ResourceEntrySerializer,
    OrganizationResourceEntrySerializer,
    DetailInputSerializer,
    ReservationCreateSerializer,
    OrganizationReservationCreateSerializer,
    ReservationUpdateSerializer,
    OrganizationReservationUpdateSerializer,
    ReservationCancelSerializer,
    ReservationTransitionSerializer,
    ValidateTicketSerializer,
    ReservationsByResourcesSerializer,
)

from .status_serializers import (
    StatusCreateSerializer,
    StatusUpdateSerializer,
    StatusListQuerySerializer,
)

from .analytics_serializers import (
    DateRangeQuerySerializer,
    OptionalDateRangeQuerySerializer,
    ClientSearchQuerySerializer,
)


__all__ = [
    # Reservation
    'ResourceEntrySerializer',
    'OrganizationResourceEntrySerializer',
    'DetailInputSerializer',
    'ReservationCreateSerializer',
    'OrganizationReservationCreateSerializer',
    'ReservationUpdateSerializer',
    'OrganizationReservationUpdateSerializer',
    'ReservationCancelSerializer',
    'ReservationTransitionSerializer',
    'ValidateTicketSerializer',
    'ReservationsByResourcesSerializer',
    # Status
    'StatusCreateSerializer',
    'StatusUpdateSerializer',
    'StatusListQuerySerializer',
    # Analytics
    'DateRangeQuerySerializer',
    'OptionalDateRangeQuerySerializer',
    'ClientSearchQuerySerializer',
]
