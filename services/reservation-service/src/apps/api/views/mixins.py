# services/reservation-service/src/apps/api/views/mixins.py
"""
Reservation View Mixins

Domain error translation and caller resolution shared by the
reservation views.
"""

import logging

from shared.common.api_mixins import StandardResponseMixin, ExceptionTranslationMixin
from shared.common.exceptions import (
    ValidationException,
    PaymentRequiredException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    InternalServerException,
)
from apps.core.services import (
    ReservationServiceError,
    InvalidReservationData,
    InvalidReservationDate,
    ReservationNotFound,
    ReservationDetailNotFound,
    StatusNotFound,
    ResourceUnavailable,
    InvalidStatusTransition,
    PaymentProcessingFailed,
    ReservationAuthorizationFailed,
    DuplicateReservationCode,
)

logger = logging.getLogger(__name__)


class ReservationAPIMixin(ExceptionTranslationMixin, StandardResponseMixin):
    """
    Base for reservation views.

    Maps domain errors to HTTP errors and resolves who is calling.
    """

    exception_translations = {
        InvalidReservationData: lambda e: ValidationException(
            e.errors, detail=e.message, error_code=e.error_code
        ),
        InvalidReservationDate: lambda e: ValidationException(
            [e.message], detail=e.message, error_code=e.error_code
        ),
        ReservationNotFound: lambda e: NotFoundException(detail=e.message, error_code=e.error_code),
        ReservationDetailNotFound: lambda e: NotFoundException(detail=e.message, error_code=e.error_code),
        StatusNotFound: lambda e: NotFoundException(detail=e.message, error_code=e.error_code),
        ResourceUnavailable: lambda e: ConflictException(
            detail=e.message,
            error_code=e.error_code,
            extra_data={'errors': {'resource_ids': e.resource_ids}},
        ),
        InvalidStatusTransition: lambda e: ConflictException(
            detail=e.message,
            error_code=e.error_code,
            extra_data={'errors': {'current': e.current, 'target': e.target}},
        ),
        PaymentProcessingFailed: lambda e: PaymentRequiredException(detail=e.message, error_code=e.error_code),
        ReservationAuthorizationFailed: lambda e: ForbiddenException(detail=e.message, error_code=e.error_code),
        DuplicateReservationCode: lambda e: ConflictException(detail=e.message, error_code=e.error_code),
        ReservationServiceError: lambda e: InternalServerException(detail=e.message, error_code=e.error_code),
    }

    def get_requested_by(self):
        """Owning-user check subject; ``None`` for service principals."""
        user = self.request.user
        if getattr(user, 'is_service', False):
            return None
        return getattr(user, 'user_id', None)

    def resolve_organization_id(self, requested=None) -> str:
        """
        Organization a request acts on.

        Users act on their token's organization only; services must name
        one explicitly.
        """
        user = self.request.user
        if getattr(user, 'is_service', False):
            if not requested:
                raise ValidationException({'organization_id': ['This field is required.']})
            return str(requested)

        organization_id = getattr(user, 'organization_id', None)
        if not organization_id:
            raise ForbiddenException(detail='Organization membership is required.')
        if requested and str(requested) != str(organization_id):
            logger.info(f"{user} denied access to organization {requested}")
            raise ForbiddenException(detail='You cannot access another organization.')
        return str(organization_id)

    def ensure_can_view(self, reservation) -> None:
        """
        Reject callers who would not see ``reservation`` in their listing.

        Services see every reservation, organization members those of
        their organization and other users their own.
        """
        user = self.request.user
        if getattr(user, 'is_service', False):
            return

        organization_id = getattr(user, 'organization_id', None)
        if organization_id:
            visible = str(reservation.organization_id) == str(organization_id)
        else:
            visible = reservation.can_modify(getattr(user, 'user_id', None))

        if not visible:
            logger.info(f"{user} denied access to reservation {reservation.id}")
            raise ForbiddenException(detail='You cannot access this reservation.')
