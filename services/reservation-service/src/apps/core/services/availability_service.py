# services/reservation-service/src/apps/core/services/availability_service.py
"""
Availability Service

Resource availability checks against live reservations.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from django.db import connection
from django.db.models import Q, QuerySet

from apps.core.models import Reservation, ReservationResource

from . import ResourceUnavailable

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Read-only availability checker.

    Two date ranges conflict when ``s1 <= e2 and e1 >= s2``: the bounds
    are inclusive, so a reservation ending on the 15th blocks a new one
    starting on the 15th. Only active, non-deleted reservations and
    non-deleted resource links take part.
    """

    @staticmethod
    def _overlapping_links(
        resource_ids: Iterable,
        start_date: date,
        end_date: date,
        exclude_reservation_id=None
    ) -> QuerySet:
        links = ReservationResource.objects.filter(
            resource_id__in=list(resource_ids),
            reservation__is_deleted=False,
            reservation__is_active=True,
            reservation__start_date__lte=end_date,
            reservation__end_date__gte=start_date,
        )
        if exclude_reservation_id:
            links = links.exclude(reservation_id=exclude_reservation_id)
        return links

    def is_available(
        self,
        resource_id,
        start_date: date,
        end_date: date,
        exclude_reservation_id=None
    ) -> bool:
        """Check whether a single resource is free for the range."""
        return not self._overlapping_links(
            [resource_id], start_date, end_date, exclude_reservation_id
        ).exists()

    def find_conflicts(
        self,
        resource_ids: Iterable,
        start_date: date,
        end_date: date,
        exclude_reservation_id=None
    ) -> List[Reservation]:
        """Live reservations claiming any of the resources in the range."""
        links = self._overlapping_links(resource_ids, start_date, end_date, exclude_reservation_id)
        return list(
            Reservation.objects
            .filter(id__in=links.values('reservation_id'))
            .select_related('status')
            .order_by('start_date', 'code')
        )

    def unavailable_resource_ids(
        self,
        resource_ids: Iterable,
        start_date: date,
        end_date: date,
        exclude_reservation_id=None
    ) -> List[str]:
        resource_ids = list(resource_ids)
        taken = {
            str(rid) for rid in
            self._overlapping_links(resource_ids, start_date, end_date, exclude_reservation_id)
            .values_list('resource_id', flat=True)
        }
        return [str(rid) for rid in resource_ids if str(rid) in taken]

    def ensure_available(
        self,
        resource_ids: Iterable,
        start_date: date,
        end_date: date,
        exclude_reservation_id=None
    ) -> None:
        """Raise ResourceUnavailable if any resource is already claimed."""
        unavailable = self.unavailable_resource_ids(
            resource_ids, start_date, end_date, exclude_reservation_id
        )
        if unavailable:
            logger.info(
                f"Resources unavailable between {start_date} and {end_date}: {', '.join(unavailable)}"
            )
            raise ResourceUnavailable(unavailable, start_date, end_date)

    def lock_resources(self, resource_ids: Iterable) -> None:
        """
        Serialize check-and-write per resource for the current transaction.

        On PostgreSQL takes transaction-scoped advisory locks, in sorted
        order so concurrent writers cannot deadlock. Must be called inside
        ``transaction.atomic``. Other backends serialize writers on their own.
        """
        if connection.vendor != 'postgresql':
            return

        with connection.cursor() as cursor:
            for resource_id in sorted({str(r) for r in resource_ids}):
                cursor.execute(
                    "SELECT pg_advisory_xact_lock(hashtextextended(%s, 0))",
                    [f'reservation-resource:{resource_id}'],
                )
