# services/reservation-service/src/apps/api/views/reservation_views.py
"""
Reservation API Views

Reservation lifecycle, lookups and organization operations.
"""

import logging

from django.conf import settings
from rest_framework import viewsets
from rest_framework.response import Response
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from apps.core.models import Reservation
from apps.core.services import ReservationService, ReservationQueryService
from apps.api.serializers import (
    ReservationCreateSerializer,
    OrganizationReservationCreateSerializer,
    ReservationUpdateSerializer,
    OrganizationReservationUpdateSerializer,
    ReservationCancelSerializer,
    ReservationTransitionSerializer,
    ValidateTicketSerializer,
    ReservationsByResourcesSerializer,
)
from shared.common.exceptions import ValidationException
from shared.common.pagination import build_page_envelope
from shared.common.permissions import IsServiceOrOrganizationMember
from apps.core.filters import ReservationFilter
from .mixins import ReservationAPIMixin

logger = logging.getLogger(__name__)

UUID_PATTERN = '[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}'
ORGANIZATION_ACTIONS = ('create_for_organization', 'update_for_organization')


def _int_param(request, name: str, default: int) -> int:
    value = request.query_params.get(name)
    if value in (None, ''):
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ValidationException({name: ['A valid integer is required.']})
    if parsed < 1:
        raise ValidationException({name: ['Ensure this value is greater than or equal to 1.']})
    return parsed


class ReservationViewSet(ReservationAPIMixin, viewsets.ViewSet):
    """
    ViewSet for reservation management.

    Provides CRUD operations and lifecycle actions for reservations.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_PATTERN

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.reservation_service = ReservationService()
        self.query_service = ReservationQueryService(lifecycle=self.reservation_service)

    def get_permissions(self):
        if self.action in ORGANIZATION_ACTIONS:
            return [IsServiceOrOrganizationMember()]
        return super().get_permissions()

    def _view(self, reservation: Reservation) -> dict:
        return self.query_service.to_view(reservation)

    def _ensure_visible(self, **lookup) -> None:
        reservation = (
            Reservation.all_objects
            .filter(**lookup)
            .only('id', 'user_id', 'organization_id')
            .first()
        )
        if reservation is not None:
            self.ensure_can_view(reservation)

    # ==========================================================================
    # CRUD
    # ==========================================================================

    def list(self, request):
        """Filtered, paged reservation listing."""
        filterset = ReservationFilter(request.query_params, queryset=Reservation.objects.all())
        if not filterset.is_valid():
            raise ValidationException(filterset.errors)
        filters = filterset.cleaned_filters()

        user = request.user
        if not getattr(user, 'is_service', False):
            if getattr(user, 'organization_id', None):
                filters['organization_id'] = user.organization_id
            else:
                filters['user_id'] = user.user_id

        rules = settings.RESERVATION
        page = _int_param(request, 'page', 1)
        per_page = min(_int_param(request, 'per_page', rules['DEFAULT_PAGE_SIZE']), rules['MAX_PAGE_SIZE'])
        with_organizations = request.query_params.get('with_organizations', '').lower() in ('1', 'true')

        items, total = self.query_service.list_reservations(
            filters,
            page=page,
            per_page=per_page,
            order_by=request.query_params.get('order_by'),
            with_organizations=with_organizations,
        )
        return Response(build_page_envelope(total, page, per_page, items))

    def create(self, request):
        """Create a reservation for the calling user."""
        serializer = ReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        requested_by = self.get_requested_by()
        if requested_by is not None:
            data['user_id'] = requested_by

        reservation = self.reservation_service.create_reservation(data)
        return self.created_response(self._view(reservation))

    def retrieve(self, request, pk=None):
        """Get a reservation. ``include_deleted=true`` also finds deleted ones."""
        include_deleted = request.query_params.get('include_deleted', '').lower() in ('1', 'true')
        self._ensure_visible(pk=pk)
        return self.success_response(
            self.query_service.get_reservation(pk, include_deleted=include_deleted)
        )

    def partial_update(self, request, pk=None):
        """Update a reservation owned by the caller."""
        serializer = ReservationUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        reservation = self.reservation_service.update_reservation(
            pk,
            dict(serializer.validated_data),
            requested_by=self.get_requested_by(),
        )
        return self.success_response(self._view(reservation))

    def update(self, request, pk=None):
        return self.partial_update(request, pk)

    def destroy(self, request, pk=None):
        """Soft-delete a reservation owned by the caller."""
        self.reservation_service.delete_reservation(pk, requested_by=self.get_requested_by())
        return self.no_content_response()

    # ==========================================================================
    # Lifecycle Actions
    # ==========================================================================

    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        """Confirm a reservation."""
        reservation = self.reservation_service.confirm_reservation(
            pk, requested_by=self.get_requested_by()
        )
        return self.success_response(self._view(reservation))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel a reservation, refunding its total."""
        serializer = ReservationCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation = self.reservation_service.cancel_reservation(
            pk,
            reason=serializer.validated_data.get('reason') or None,
            requested_by=self.get_requested_by(),
        )
        return self.success_response(self._view(reservation))

    @action(detail=True, methods=['post'])
    def transition(self, request, pk=None):
        """Move a reservation to any allowed status."""
        serializer = ReservationTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation = self.reservation_service.transition_reservation(
            pk,
            serializer.validated_data['status'],
            requested_by=self.get_requested_by(),
        )
        return self.success_response(self._view(reservation))

    @action(detail=True, methods=['get'], url_path='detail', url_name='detail-record')
    def reservation_detail(self, request, pk=None):
        """Customer detail of a reservation."""
        self._ensure_visible(pk=pk)
        return self.success_response(self.query_service.get_detail(pk))

    # ==========================================================================
    # Organization Path
    # ==========================================================================

    @action(detail=False, methods=['post'], url_path='organization')
    def create_for_organization(self, request):
        """Create a reservation on behalf of an organization."""
        serializer = OrganizationReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        data['organization_id'] = self.resolve_organization_id(data.get('organization_id'))

        reservation = self.reservation_service.create_reservation_for_organization(data)
        return self.created_response(self._view(reservation))

    @action(detail=True, methods=['patch', 'put'], url_path='organization')
    def update_for_organization(self, request, pk=None):
        """Organization-initiated update."""
        serializer = OrganizationReservationUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        reservation = Reservation.objects.filter(pk=pk).only('organization_id').first()
        if reservation is not None:
            self.resolve_organization_id(reservation.organization_id)

        reservation = self.reservation_service.update_reservation_for_organization(
            pk, dict(serializer.validated_data)
        )
        return self.success_response(self._view(reservation))

    # ==========================================================================
    # Lookups
    # ==========================================================================

    @action(detail=False, methods=['post'], url_path='validate-ticket')
    def validate_ticket(self, request):
        """Validate a ticket code, checking the reservation in."""
        serializer = ValidateTicketSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        code = serializer.validated_data['code']
        self._ensure_visible(code=code)
        return self.success_response(self.query_service.validate_ticket(code))

    @action(detail=False, methods=['post'], url_path='by-resources')
    def by_resources(self, request):
        """Live reservations overlapping a range on any of the resources."""
        serializer = ReservationsByResourcesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        return self.success_response(
            self.query_service.get_reservations_by_resources(
                data['resource_ids'], data['start_date'], data['end_date']
            )
        )

    @action(
        detail=False,
        methods=['get'],
        url_path=f'current-for-resource/(?P<resource_id>{UUID_PATTERN})'
    )
    def current_for_resource(self, request, resource_id=None):
        """The reservation occupying a resource today, if any."""
        return self.success_response(
            self.query_service.get_current_reservation_for_resource(resource_id)
        )
