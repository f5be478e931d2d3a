# services/reservation-service/src/apps/core/services/query_service.py
"""
Reservation Query Service

Cached reads and enriched listings of reservations.
"""

import logging
from datetime import date
from typing import Optional, Dict, Any, List, Tuple, Iterable

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db.models import Prefetch, QuerySet
from django.utils import timezone

from apps.core.cache import ReservationCache
from apps.core.filters import ReservationFilter
from apps.core.models import Reservation, Detail, ReservationResource
from shared.common.clients import (
    IdentityServiceClient,
    OrganizationServiceClient,
    ResourceServiceClient,
)

from . import ReservationNotFound, ReservationDetailNotFound
from .availability_service import AvailabilityService
from .reservation_service import ReservationService

logger = logging.getLogger(__name__)


class ReservationQueryService:
    """
    Read side of the reservation service.

    Single-entity reads go through the read-through cache; listings are
    enriched with collaborator data fetched in batches.
    """

    def __init__(
        self,
        cache: ReservationCache = None,
        lifecycle: ReservationService = None,
        availability: AvailabilityService = None,
        identity_client: IdentityServiceClient = None,
        organization_client: OrganizationServiceClient = None,
        resource_client: ResourceServiceClient = None
    ):
        self.cache = cache or ReservationCache()
        self.lifecycle = lifecycle or ReservationService(cache=self.cache)
        self.availability = availability or AvailabilityService()
        self.identity_client = identity_client or IdentityServiceClient()
        self.organization_client = organization_client or OrganizationServiceClient()
        self.resource_client = resource_client or ResourceServiceClient()

    # ==========================================================================
    # Single Reads
    # ==========================================================================

    def get_reservation(self, reservation_id, include_deleted: bool = False) -> Dict[str, Any]:
        """
        Reservation view with the owner's profile.

        ``include_deleted`` bypasses the cache and also finds soft-deleted
        rows.
        """
        if include_deleted:
            return self._load_view(reservation_id, Reservation.all_objects.all())

        return self.cache.get_or_create(
            self.cache.reservation_key(reservation_id),
            lambda: self._load_view(reservation_id, Reservation.objects.filter(is_active=True)),
            ttl=self.cache.default_ttl,
        )

    def _load_view(self, reservation_id, queryset: QuerySet) -> Dict[str, Any]:
        try:
            reservation = queryset.select_related('status').get(id=reservation_id)
        except (Reservation.DoesNotExist, ValidationError):
            raise ReservationNotFound(reservation_id)

        view = self.to_view(reservation)
        view['user'] = self._profile(reservation.user_id, {})
        return view

    def get_detail(self, reservation_id) -> Dict[str, Any]:
        """Detail record of a live reservation."""
        def load():
            try:
                detail = Detail.objects.filter(
                    reservation_id=reservation_id,
                    reservation__is_deleted=False,
                ).first()
            except ValidationError:
                detail = None
            if detail is None:
                raise ReservationDetailNotFound(reservation_id)
            return self.detail_to_view(detail)

        return self.cache.get_or_create(
            self.cache.detail_key(reservation_id),
            load,
            ttl=self.cache.default_ttl,
        )

    def validate_ticket(self, code: str) -> Dict[str, Any]:
        """
        Check in the reservation holding ``code`` and return its view.

        Validation is a write: a reservation not yet CheckedIn is moved
        there.
        """
        view = self.cache.get_or_create(
            self.cache.ticket_key(code),
            lambda: self.to_view(self.lifecycle.check_in_by_code(code)),
            ttl=self.cache.default_ttl,
        )
        logger.info(f"Validated ticket {code}", extra={'code': code})
        return view

    def get_current_reservation_for_resource(self, resource_id) -> Optional[Dict[str, Any]]:
        """The live reservation covering today on ``resource_id``, if any."""
        today = timezone.now().date()
        reservation = (
            Reservation.objects
            .filter(
                is_active=True,
                start_date__lte=today,
                end_date__gte=today,
                resource_links__resource_id=resource_id,
                resource_links__is_deleted=False,
            )
            .select_related('status')
            .order_by('start_date', 'code')
            .first()
        )
        return self.to_view(reservation) if reservation else None

    # ==========================================================================
    # Listings
    # ==========================================================================

    def list_reservations(
        self,
        filters: Dict[str, Any] = None,
        page: int = 1,
        per_page: int = None,
        order_by: str = None,
        with_organizations: bool = False
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Filtered, paged and enriched reservation views.

        Resources are fetched once per page, organizations once per
        distinct organization and user profiles once per distinct user.
        """
        rules = settings.RESERVATION
        per_page = min(per_page or rules['DEFAULT_PAGE_SIZE'], rules['MAX_PAGE_SIZE'])
        page = max(page or 1, 1)

        queryset = self._filtered(filters or {})
        ordering = ['code'] if (order_by or '').lower() == 'code' else ['start_date', 'code']
        queryset = queryset.order_by(*ordering)

        total = queryset.count()
        offset = (page - 1) * per_page
        reservations = list(queryset[offset:offset + per_page])

        resources = self._resources_by_id(
            rid for reservation in reservations for rid in self._link_ids(reservation)
        )
        profiles: Dict[str, Any] = {}
        organizations: Dict[str, Any] = {}

        items = []
        for reservation in reservations:
            view = self.to_view(reservation)
            view['resources'] = [
                resources.get(rid, {'id': rid}) for rid in view['resource_ids']
            ]
            view['user'] = self._profile(reservation.user_id, profiles)
            if with_organizations:
                view['organization'] = self._organization(reservation.organization_id, organizations)
            items.append(view)

        return items, total

    def _filtered(self, filters: Dict[str, Any]) -> QuerySet:
        queryset = (
            Reservation.objects
            .filter(is_active=True)
            .select_related('status', 'detail')
            .prefetch_related(
                Prefetch('resource_links', queryset=ReservationResource.objects.order_by('created_at'))
            )
        )
        return ReservationFilter(filters, queryset=queryset).qs

    def get_reservations_by_resources(
        self,
        resource_ids: Iterable,
        start_date: date,
        end_date: date
    ) -> List[Dict[str, Any]]:
        """Live reservations overlapping the range on any of the resources."""
        conflicts = self.availability.find_conflicts(resource_ids, start_date, end_date)
        return [self.to_view(reservation) for reservation in conflicts]

    # ==========================================================================
    # Enrichment
    # ==========================================================================

    def _resources_by_id(self, resource_ids: Iterable[str]) -> Dict[str, Dict]:
        ids = list(dict.fromkeys(resource_ids))
        if not ids:
            return {}
        return {
            str(resource.get('id')): resource
            for resource in self.resource_client.get_resources(ids)
            if isinstance(resource, dict)
        }

    def _profile(self, user_id, memo: Dict[str, Any]) -> Optional[Dict]:
        if user_id is None:
            return None
        key = str(user_id)
        if key not in memo:
            memo[key] = self.identity_client.get_user_profile(key)
        return memo[key]

    def _organization(self, organization_id, memo: Dict[str, Any]) -> Optional[Dict]:
        key = str(organization_id)
        if key not in memo:
            memo[key] = self.organization_client.get_organization(key)
        return memo[key]

    # ==========================================================================
    # Views
    # ==========================================================================

    @staticmethod
    def _link_ids(reservation: Reservation) -> List[str]:
        return [str(link.resource_id) for link in reservation.resource_links.all()]

    @classmethod
    def to_view(cls, reservation: Reservation) -> Dict[str, Any]:
        """JSON-safe view of a reservation with its status, detail and resources."""
        try:
            detail = cls.detail_to_view(reservation.detail)
        except Detail.DoesNotExist:
            detail = None

        status = reservation.status
        return {
            'id': str(reservation.id),
            'code': reservation.code,
            'user_id': str(reservation.user_id) if reservation.user_id else None,
            'organization_id': str(reservation.organization_id),
            'status_id': str(status.id),
            'status_name': status.name,
            'status_color': status.color,
            'total_amount': str(reservation.total_amount),
            'start_date': reservation.start_date.isoformat(),
            'end_date': reservation.end_date.isoformat(),
            'nights': reservation.nights,
            'source': reservation.source,
            'is_active': reservation.is_active,
            'is_deleted': reservation.is_deleted,
            'detail': detail,
            'resource_ids': cls._link_ids(reservation),
            'created_at': reservation.created_at.isoformat() if reservation.created_at else None,
            'updated_at': reservation.updated_at.isoformat() if reservation.updated_at else None,
        }

    @staticmethod
    def detail_to_view(detail: Detail) -> Dict[str, Any]:
        return {
            'id': str(detail.id),
            'reservation_id': str(detail.reservation_id),
            'name': detail.name,
            'email': detail.email,
            'phone': detail.phone,
            'number_of_adults': detail.number_of_adults,
            'number_of_children': detail.number_of_children,
            'number_of_infants': detail.number_of_infants,
            'number_of_pets': detail.number_of_pets,
            'resource_quantity': detail.resource_quantity,
            'note': detail.note,
            'original_price': str(detail.original_price),
            'discount': str(detail.discount),
            'currency': detail.currency,
        }
