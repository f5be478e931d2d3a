# services/reservation-service/src/apps/core/services/analytics_service.py
"""
Reservation Analytics Service

Per-organization statistics, client search and CSV report export.
"""

import io
import csv
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Any, List, Tuple

from django.db.models import Q, Count, Sum, Max, QuerySet

from apps.core.cache import ReservationCache
from apps.core.models import Reservation, Detail
from shared.common.clients import ResourceServiceClient

from . import InvalidReservationData, InvalidReservationDate

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
BUSINESS_SOURCES = (Reservation.Source.ORGANIZATION,)

REPORT_COLUMNS = [
    'code',
    'status',
    'source',
    'start_date',
    'end_date',
    'nights',
    'client_name',
    'client_email',
    'client_phone',
    'adults',
    'children',
    'infants',
    'pets',
    'resources',
    'total_amount',
    'currency',
]


class ReservationAnalyticsService:
    """
    Aggregated reads over an organization's reservations.

    Results are cached with the short TTL under keys that carry the
    organization's statistics version, so any reservation mutation makes
    them unreachable.
    """

    def __init__(self, cache: ReservationCache = None, resource_client: ResourceServiceClient = None):
        self.cache = cache or ReservationCache()
        self.resource_client = resource_client or ResourceServiceClient()

    @staticmethod
    def _check_range(start_date: date, end_date: date) -> None:
        if start_date is None or end_date is None:
            raise InvalidReservationDate('Both start_date and end_date are required')
        if end_date < start_date:
            raise InvalidReservationDate('end_date cannot be before start_date')

    @staticmethod
    def _in_range(organization_id, start_date: date = None, end_date: date = None) -> QuerySet:
        queryset = Reservation.objects.filter(organization_id=organization_id, is_active=True)
        if start_date:
            queryset = queryset.filter(start_date__gte=start_date)
        if end_date:
            queryset = queryset.filter(start_date__lte=end_date)
        return queryset

    # ==========================================================================
    # Statistics
    # ==========================================================================

    def get_stats(self, organization_id, start_date: date, end_date: date) -> Dict[str, Any]:
        """Totals and average daily earnings for reservations starting in the range."""
        self._check_range(start_date, end_date)

        def compute():
            totals = self._in_range(organization_id, start_date, end_date).aggregate(
                count=Count('id'),
                earnings=Sum('total_amount'),
            )
            earnings = totals['earnings'] or Decimal('0')
            days = (end_date - start_date).days + 1
            return {
                'organization_id': str(organization_id),
                'start_date': start_date.isoformat(),
                'end_date': end_date.isoformat(),
                'total_reservations': totals['count'],
                'total_earnings': str(earnings.quantize(CENT)),
                'average_daily_earnings': str((earnings / days).quantize(CENT)),
            }

        return self.cache.get_or_create(
            self.cache.stats_key('Stats', organization_id, start_date, end_date),
            compute,
            ttl=self.cache.short_ttl,
        )

    def count_per_day(self, organization_id, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """Number of active reservations per start date."""
        self._check_range(start_date, end_date)

        def compute():
            rows = (
                self._in_range(organization_id, start_date, end_date)
                .values('start_date')
                .annotate(count=Count('id'))
                .order_by('start_date')
            )
            return [
                {'date': row['start_date'].isoformat(), 'count': row['count']}
                for row in rows
            ]

        return self.cache.get_or_create(
            self.cache.stats_key('CountPerDay', organization_id, start_date, end_date),
            compute,
            ttl=self.cache.short_ttl,
        )

    def count_by_source(self, organization_id, start_date: date = None, end_date: date = None) -> Dict[str, int]:
        """Business (organization-made) versus client reservations."""
        if start_date and end_date:
            self._check_range(start_date, end_date)

        def compute():
            counts = {'business': 0, 'client': 0}
            rows = (
                self._in_range(organization_id, start_date, end_date)
                .values('source')
                .annotate(count=Count('id'))
                .order_by()
            )
            for row in rows:
                bucket = 'business' if row['source'] in BUSINESS_SOURCES else 'client'
                counts[bucket] += row['count']
            counts['total'] = counts['business'] + counts['client']
            return counts

        return self.cache.get_or_create(
            self.cache.stats_key('SourceCount', organization_id, start_date, end_date),
            compute,
            ttl=self.cache.short_ttl,
        )

    # ==========================================================================
    # Client Search
    # ==========================================================================

    def search_clients_by_name(self, organization_id, query: str, max_results: int = 10) -> List[Dict[str, Any]]:
        """
        Distinct clients of an organization matching ``query``.

        Matches name, phone or email, most recent reservation first.
        """
        errors = []
        if not organization_id:
            errors.append('organization_id is required')
        query = (query or '').strip()
        if not query:
            errors.append('query is required')
        if errors:
            raise InvalidReservationData(errors)

        rows = (
            Detail.objects
            .filter(
                reservation__organization_id=organization_id,
                reservation__is_deleted=False,
            )
            .filter(
                Q(name__icontains=query) | Q(phone__icontains=query) | Q(email__icontains=query)
            )
            .values('name', 'phone')
            .annotate(
                last_email=Max('email'),
                last_date=Max('reservation__start_date'),
            )
            .order_by('-last_date', 'name')[:max_results]
        )

        return [
            {
                'name': row['name'],
                'phone': row['phone'],
                'email': row['last_email'],
                'last_reservation': row['last_date'].strftime('%m/%d') if row['last_date'] else None,
            }
            for row in rows
        ]

    # ==========================================================================
    # Report
    # ==========================================================================

    def generate_report_csv(self, organization_id, start_date: date, end_date: date) -> Tuple[str, str]:
        """
        CSV export of reservations starting in the range.

        Returns ``(filename, content)``.
        """
        self._check_range(start_date, end_date)

        reservations = list(
            Reservation.objects
            .filter(
                organization_id=organization_id,
                start_date__gte=start_date,
                start_date__lte=end_date,
            )
            .select_related('status', 'detail')
            .prefetch_related('resource_links')
            .order_by('start_date', 'code')
        )

        resource_ids = list(dict.fromkeys(
            str(link.resource_id)
            for reservation in reservations
            for link in reservation.resource_links.all()
        ))
        names = {}
        if resource_ids:
            names = {
                str(resource.get('id')): resource.get('name') or str(resource.get('id'))
                for resource in self.resource_client.get_resources(resource_ids)
                if isinstance(resource, dict)
            }

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=REPORT_COLUMNS)
        writer.writeheader()

        for reservation in reservations:
            try:
                detail = reservation.detail
            except Detail.DoesNotExist:
                detail = None

            link_ids = [str(link.resource_id) for link in reservation.resource_links.all()]
            writer.writerow({
                'code': reservation.code,
                'status': reservation.status.name,
                'source': reservation.source,
                'start_date': reservation.start_date.isoformat(),
                'end_date': reservation.end_date.isoformat(),
                'nights': reservation.nights,
                'client_name': detail.name if detail else '',
                'client_email': detail.email if detail else '',
                'client_phone': detail.phone if detail else '',
                'adults': detail.number_of_adults if detail else 0,
                'children': detail.number_of_children if detail else 0,
                'infants': detail.number_of_infants if detail else 0,
                'pets': detail.number_of_pets if detail else 0,
                'resources': '; '.join(names.get(rid, rid) for rid in link_ids),
                'total_amount': str(reservation.total_amount),
                'currency': detail.currency if detail else '',
            })

        filename = f"reservations-{start_date:%Y-%m-%d}_to_{end_date:%Y-%m-%d}.csv"
        logger.info(
            f"Generated report {filename} with {len(reservations)} reservations",
            extra={'organization_id': str(organization_id)}
        )
        return filename, buffer.getvalue()
