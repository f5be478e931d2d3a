# services/reservation-service/src/apps/core/services/status_service.py
"""
Status Service

Status registry and lifecycle state machine.
"""

import logging
from typing import Optional, Dict, Any, Tuple, List

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q, QuerySet

from apps.core.cache import ReservationCache
from apps.core.models import Status, StatusName, STATUS_COLORS, STATUS_TRANSITIONS
from apps.core.models.status import STATUS_DESCRIPTIONS

from . import StatusNotFound, InvalidStatusTransition, InvalidReservationData

logger = logging.getLogger(__name__)


class StatusService:
    """
    Service for the status reference table.

    Handles:
    - Lazy creation of well-known statuses
    - Transition validation
    - Status CRUD
    """

    def __init__(self, cache: ReservationCache = None):
        self.cache = cache or ReservationCache()

    # ==========================================================================
    # Registry
    # ==========================================================================

    def get_or_create(self, name: str, description: str = None) -> Status:
        """
        Idempotent lookup-or-insert by name.

        Concurrent callers converge on a single row: the partial unique
        constraint on live names rejects the second insert and
        ``get_or_create`` re-reads the winner.
        """
        status, created = Status.objects.get_or_create(
            name=name,
            defaults={'description': description or STATUS_DESCRIPTIONS.get(name, '')},
        )
        if created:
            logger.info(f"Created status '{name}'", extra={'status_id': str(status.id)})
        return status

    def get_initial_status(self) -> Status:
        return self.get_or_create(StatusName.INITIAL)

    def find_by_name(self, name: str) -> Status:
        status = Status.objects.filter(name=name).first()
        if status is None:
            raise StatusNotFound(name)
        return status

    def get_status(self, status_id) -> Status:
        try:
            return Status.objects.get(id=status_id)
        except (Status.DoesNotExist, ValidationError):
            raise StatusNotFound(status_id)

    @staticmethod
    def color_for(name: str) -> str:
        return STATUS_COLORS.get(name, '')

    @staticmethod
    def allowed_targets(name: str) -> List[str]:
        return sorted(STATUS_TRANSITIONS.get(name, frozenset()))

    def validate_transition(self, current: Status, target_name: str) -> None:
        """Raise InvalidStatusTransition unless ``current -> target_name`` is allowed."""
        if not current.can_transition_to(target_name):
            raise InvalidStatusTransition(current.name, target_name)

    # ==========================================================================
    # CRUD
    # ==========================================================================

    def list_statuses(
        self,
        keyword: str = None,
        order_by: str = None,
        page: int = 1,
        per_page: int = 30
    ) -> Tuple[List[Status], int]:
        queryset = self._filtered(keyword)
        queryset = queryset.order_by('name' if (order_by or '').lower() == 'name' else 'created_at')

        total = queryset.count()
        offset = (max(page, 1) - 1) * per_page
        return list(queryset[offset:offset + per_page]), total

    def _filtered(self, keyword: Optional[str]) -> QuerySet:
        queryset = Status.objects.all()
        if keyword:
            queryset = queryset.filter(
                Q(name__icontains=keyword) | Q(description__icontains=keyword)
            )
        return queryset

    def get_status_view(self, status_id) -> Dict[str, Any]:
        """Cached single-status read."""
        return self.cache.get_or_create(
            self.cache.status_key(status_id),
            lambda: self.to_view(self.get_status(status_id)),
            ttl=self.cache.half_day_ttl,
        )

    @transaction.atomic
    def create_status(self, name: str, description: str = '') -> Status:
        name = (name or '').strip()
        if not name:
            raise InvalidReservationData(['Status name is required'])
        if Status.objects.filter(name=name).exists():
            raise InvalidReservationData([f"Status '{name}' already exists"])

        status = Status.objects.create(name=name, description=description or '')
        logger.info(f"Created status '{name}'", extra={'status_id': str(status.id)})
        return status

    @transaction.atomic
    def update_status(self, status_id, **changes) -> Status:
        status = self.get_status(status_id)
        renamed = False

        name = changes.get('name')
        if name is not None:
            name = name.strip()
            if not name:
                raise InvalidReservationData(['Status name is required'])
            if Status.objects.filter(name=name).exclude(id=status.id).exists():
                raise InvalidReservationData([f"Status '{name}' already exists"])
            renamed = name != status.name
            status.name = name

        if changes.get('description') is not None:
            status.description = changes['description']
        if changes.get('is_active') is not None:
            status.is_active = changes['is_active']

        status.save()
        self.cache.invalidate_status(status.id)
        if renamed:
            # Reservation views embed the status name and color
            self.cache.invalidate_views()

        logger.info(f"Updated status {status.id}")
        return status

    @transaction.atomic
    def delete_status(self, status_id) -> None:
        status = self.get_status(status_id)
        status.soft_delete()
        self.cache.invalidate_status(status.id)
        self.cache.invalidate_views()

        logger.info(f"Deleted status '{status.name}'", extra={'status_id': str(status.id)})

    @staticmethod
    def to_view(status: Status) -> Dict[str, Any]:
        return {
            'id': str(status.id),
            'name': status.name,
            'description': status.description,
            'color': status.color,
            'is_active': status.is_active,
            'created_at': status.created_at.isoformat() if status.created_at else None,
        }
