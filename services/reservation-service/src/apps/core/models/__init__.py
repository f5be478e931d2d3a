# services/reservation-service/src/apps/core/models/__init__.py
"""
Reservation Service Models
"""

from .status import Status, StatusName, STATUS_COLORS, STATUS_TRANSITIONS
from .reservation import Reservation
from .detail import Detail
from .reservation_resource import ReservationResource

__all__ = [
    'Status',
    'StatusName',
    'STATUS_COLORS',
    'STATUS_TRANSITIONS',
    'Reservation',
    'Detail',
    'ReservationResource',
]
