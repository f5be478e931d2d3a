# services/reservation-service/src/apps/core/services/__init__.py
"""
Reservation Service Business Logic
"""

from shared.common.exceptions import ExternalServiceError, ExternalServiceTimeout


# Custom Exceptions
class ReservationServiceError(Exception):
    """Base exception for reservation service errors."""

    error_code = 'RESERVATION_ERROR'

    def __init__(self, message: str = None):
        self.message = message or self.__doc__
        super().__init__(self.message)


class InvalidReservationData(ReservationServiceError):
    """Reservation data failed validation."""

    error_code = 'INVALID_RESERVATION_DATA'

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(f"Invalid reservation data: {'; '.join(self.errors)}")


class InvalidReservationDate(ReservationServiceError):
    """Reservation date range is invalid."""

    error_code = 'INVALID_RESERVATION_DATE'


class ReservationNotFound(ReservationServiceError):
    """Reservation not found."""

    error_code = 'RESERVATION_NOT_FOUND'

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Reservation '{identifier}' not found")


class ReservationDetailNotFound(ReservationServiceError):
    """Reservation detail not found."""

    error_code = 'RESERVATION_DETAIL_NOT_FOUND'

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Detail for reservation '{identifier}' not found")


class StatusNotFound(ReservationServiceError):
    """Status not found."""

    error_code = 'STATUS_NOT_FOUND'

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Status '{identifier}' not found")


class ResourceUnavailable(ReservationServiceError):
    """Resource already claimed for the requested dates."""

    error_code = 'RESOURCE_UNAVAILABLE'

    def __init__(self, resource_ids, start_date, end_date):
        self.resource_ids = [str(r) for r in resource_ids]
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Resources {', '.join(self.resource_ids)} are not available "
            f"between {start_date} and {end_date}"
        )


class InvalidStatusTransition(ReservationServiceError):
    """Status transition not allowed."""

    error_code = 'INVALID_STATUS_TRANSITION'

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from status '{current}' to '{target}'")


class PaymentProcessingFailed(ReservationServiceError):
    """Pricing or refund could not be processed."""

    error_code = 'PAYMENT_PROCESSING_FAILED'


class ReservationAuthorizationFailed(ReservationServiceError):
    """Caller is not allowed to modify this reservation."""

    error_code = 'RESERVATION_AUTHORIZATION_FAILED'

    def __init__(self, user_id, reservation_id):
        self.user_id = user_id
        self.reservation_id = reservation_id
        super().__init__(f"User '{user_id}' is not allowed to modify reservation '{reservation_id}'")


class DuplicateReservationCode(ReservationServiceError):
    """Could not generate a unique reservation code."""

    error_code = 'DUPLICATE_RESERVATION_CODE'


# Services import the exceptions above
from .status_service import StatusService  # noqa: E402
from .availability_service import AvailabilityService  # noqa: E402
from .pricing_service import PricingService, PricedItem  # noqa: E402
from .validation_service import ValidationService, ReservationRequest, ResourceEntry  # noqa: E402
from .reservation_service import ReservationService, generate_reservation_code  # noqa: E402
from .query_service import ReservationQueryService  # noqa: E402
from .analytics_service import ReservationAnalyticsService  # noqa: E402


__all__ = [
    # Services
    'StatusService',
    'AvailabilityService',
    'PricingService',
    'PricedItem',
    'ValidationService',
    'ReservationRequest',
    'ResourceEntry',
    'ReservationService',
    'generate_reservation_code',
    'ReservationQueryService',
    'ReservationAnalyticsService',

    # Exceptions
    'ReservationServiceError',
    'InvalidReservationData',
    'InvalidReservationDate',
    'ReservationNotFound',
    'ReservationDetailNotFound',
    'StatusNotFound',
    'ResourceUnavailable',
    'InvalidStatusTransition',
    'PaymentProcessingFailed',
    'ReservationAuthorizationFailed',
    'DuplicateReservationCode',
    'ExternalServiceError',
    'ExternalServiceTimeout',
]
