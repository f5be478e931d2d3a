# services/reservation-service/src/apps/api/views/analytics_views.py
"""
Analytics API Views

Statistics, client search and report export per organization.
"""

import logging

from django.http import HttpResponse
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from apps.core.services import ReservationAnalyticsService
from apps.api.serializers import (
    DateRangeQuerySerializer,
    OptionalDateRangeQuerySerializer,
    ClientSearchQuerySerializer,
)
from shared.common.permissions import IsServiceOrOrganizationMember
from .mixins import ReservationAPIMixin

logger = logging.getLogger(__name__)


class AnalyticsViewSet(ReservationAPIMixin, viewsets.ViewSet):
    """
    Read-only analytics over one organization's reservations.

    Organization members see their own organization; services name it
    with ``organization_id``.
    """

    permission_classes = [IsAuthenticated, IsServiceOrOrganizationMember]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.analytics_service = ReservationAnalyticsService()

    def _query(self, serializer_class):
        serializer = serializer_class(data=self.request.query_params)
        serializer.is_valid(raise_exception=True)
        params = dict(serializer.validated_data)
        params['organization_id'] = self.resolve_organization_id(params.get('organization_id'))
        return params

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Totals and average daily earnings."""
        params = self._query(DateRangeQuerySerializer)
        return self.success_response(self.analytics_service.get_stats(
            params['organization_id'], params['start_date'], params['end_date']
        ))

    @action(detail=False, methods=['get'], url_path='count-per-day')
    def count_per_day(self, request):
        """Reservations per start date."""
        params = self._query(DateRangeQuerySerializer)
        return self.success_response(self.analytics_service.count_per_day(
            params['organization_id'], params['start_date'], params['end_date']
        ))

    @action(detail=False, methods=['get'], url_path='source-count')
    def source_count(self, request):
        """Business versus client reservations."""
        params = self._query(OptionalDateRangeQuerySerializer)
        return self.success_response(self.analytics_service.count_by_source(
            params['organization_id'], params.get('start_date'), params.get('end_date')
        ))

    @action(detail=False, methods=['get'])
    def clients(self, request):
        """Search clients by name, phone or email."""
        params = self._query(ClientSearchQuerySerializer)
        return self.success_response(self.analytics_service.search_clients_by_name(
            params['organization_id'], params['query'], params['max_results']
        ))

    @action(detail=False, methods=['get'])
    def report(self, request):
        """CSV export of reservations starting in the range."""
        params = self._query(DateRangeQuerySerializer)
        filename, content = self.analytics_service.generate_report_csv(
            params['organization_id'], params['start_date'], params['end_date']
        )

        response = HttpResponse(content, content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response
