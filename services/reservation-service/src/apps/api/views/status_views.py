# services/reservation-service/src/apps/api/views/status_views.py
"""
Status API Views
"""

import logging

from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.services import StatusService
from apps.api.serializers import (
    StatusCreateSerializer,
    StatusUpdateSerializer,
    StatusListQuerySerializer,
)
from shared.common.pagination import build_page_envelope
from shared.common.permissions import IsServiceOrOrganizationMember
from .mixins import ReservationAPIMixin

logger = logging.getLogger(__name__)


class StatusViewSet(ReservationAPIMixin, viewsets.ViewSet):
    """
    ViewSet for the status reference table.

    Anyone authenticated may read; services and organization members
    may write.
    """

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.status_service = StatusService()

    def get_permissions(self):
        if self.action in ('create', 'partial_update', 'update', 'destroy'):
            return [IsServiceOrOrganizationMember()]
        return super().get_permissions()

    def list(self, request):
        query = StatusListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        statuses, total = self.status_service.list_statuses(
            keyword=params.get('keyword'),
            order_by=params.get('order_by'),
            page=params['page'],
            per_page=params['per_page'],
        )
        return Response(build_page_envelope(
            total,
            params['page'],
            params['per_page'],
            [self.status_service.to_view(s) for s in statuses],
        ))

    def create(self, request):
        serializer = StatusCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        status = self.status_service.create_status(**serializer.validated_data)
        return self.created_response(self.status_service.to_view(status))

    def retrieve(self, request, pk=None):
        return self.success_response(self.status_service.get_status_view(pk))

    def partial_update(self, request, pk=None):
        serializer = StatusUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        status = self.status_service.update_status(pk, **serializer.validated_data)
        return self.success_response(self.status_service.to_view(status))

    def update(self, request, pk=None):
        return self.partial_update(request, pk)

    def destroy(self, request, pk=None):
        self.status_service.delete_status(pk)
        return self.no_content_response()
