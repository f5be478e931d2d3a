# services/reservation-service/src/apps/core/services/reservation_service.py
"""
Reservation Service

Reservation lifecycle: creation, updates, status transitions, deletion
and ticket check-in.
"""

import uuid
import string
import secrets
import logging
from decimal import Decimal
from typing import Optional, Dict, Any, List

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction, IntegrityError
from django.utils import timezone

from apps.core.cache import ReservationCache
from apps.core.models import Reservation, Detail, ReservationResource, Status, StatusName
from apps.core.tasks import broadcast_reservation_change, post_organization_ledger_entry
from shared.common.clients import ResourceServiceClient, PaymentServiceClient

from . import (
    InvalidReservationData,
    ReservationNotFound,
    PaymentProcessingFailed,
    ReservationAuthorizationFailed,
    DuplicateReservationCode,
    ExternalServiceError,
)
from .status_service import StatusService
from .availability_service import AvailabilityService
from .pricing_service import PricingService
from .validation_service import ValidationService, ReservationRequest

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
ORGANIZATION_DETAIL_NAME = 'Organization Booking'

# Statuses the user path reaches only through their dedicated actions
ACTION_STATUSES = {
    StatusName.CONFIRMED: 'confirm',
    StatusName.CANCELLED: 'cancel',
}


def generate_reservation_code(prefix: str = None, length: int = None) -> str:
    """Random human-readable code, e.g. ``ORG-7KQ2M``."""
    rules = settings.RESERVATION
    prefix = prefix or rules['CODE_PREFIX']
    length = length or rules['CODE_LENGTH']
    suffix = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix}-{suffix}"


class ReservationService:
    """
    Service for the reservation lifecycle.

    Handles:
    - Creation (public and organization paths)
    - Updates (public and organization paths)
    - Confirm / cancel / generic status transitions
    - Soft deletion
    - Ticket check-in

    Every write sequence runs in one transaction holding per-resource
    locks, and availability is re-checked under those locks. Cache keys
    are invalidated once the transaction has committed; collaborator
    notifications are dispatched after commit.
    """

    def __init__(
        self,
        status_service: StatusService = None,
        availability: AvailabilityService = None,
        pricing: PricingService = None,
        validation: ValidationService = None,
        cache: ReservationCache = None,
        resource_client: ResourceServiceClient = None,
        payment_client: PaymentServiceClient = None
    ):
        self.cache = cache or ReservationCache()
        self.status_service = status_service or StatusService(cache=self.cache)
        self.availability = availability or AvailabilityService()
        self.validation = validation or ValidationService()
        self.resource_client = resource_client or ResourceServiceClient()
        self.payment_client = payment_client or PaymentServiceClient()
        self.pricing = pricing or PricingService(payment_client=self.payment_client)

    # ==========================================================================
    # Creation
    # ==========================================================================

    def create_reservation(self, data: Dict[str, Any]) -> Reservation:
        """
        Create a reservation on behalf of a user.

        The total amount is the sum of full prices quoted by the pricing
        collaborator; nothing is written when pricing fails.
        """
        request = self.validation.validate_create(data)

        self.availability.ensure_available(request.resource_ids, request.start_date, request.end_date)

        status = self.status_service.get_initial_status()

        items = self.pricing.expand(request.resources, request.start_date, request.end_date)
        total_amount = self.pricing.quote(items)
        original_price = sum((item.original_price for item in items), Decimal('0'))

        with transaction.atomic():
            reservation = self._persist(request, status, total_amount, original_price)
            self._schedule(broadcast_reservation_change, reservation.id)

        self.cache.invalidate_reservation(reservation)

        logger.info(
            f"Created reservation {reservation.code} for "
            f"{reservation.start_date:%Y-%m-%d} - {reservation.end_date:%Y-%m-%d}",
            extra=self._log_context(reservation)
        )
        return reservation

    def create_reservation_for_organization(self, data: Dict[str, Any]) -> Reservation:
        """
        Create a reservation on behalf of an organization.

        The caller supplies the total amount; no pricing is requested.
        Resources may be referenced by slug. A ledger entry is posted
        after commit.
        """
        request = self.validation.validate_create(data, for_organization=True)
        self._resolve_slugs(request)

        self.availability.ensure_available(request.resource_ids, request.start_date, request.end_date)

        if request.status_id:
            status = self.status_service.get_status(request.status_id)
        else:
            status = self.status_service.get_initial_status()

        items = self.pricing.expand(request.resources, request.start_date, request.end_date)
        original_price = sum((item.original_price for item in items), Decimal('0'))

        with transaction.atomic():
            reservation = self._persist(request, status, request.total_amount, original_price)
            self._schedule(broadcast_reservation_change, reservation.id)
            self._schedule(post_organization_ledger_entry, reservation.id)

        self.cache.invalidate_reservation(reservation)

        logger.info(
            f"Created organization reservation {reservation.code}",
            extra=self._log_context(reservation)
        )
        return reservation

    def _resolve_slugs(self, request: ReservationRequest) -> None:
        unknown = []
        for entry in request.resources:
            if entry.resource_id is not None:
                continue
            resource = self.resource_client.get_resource_by_slug(entry.slug)
            try:
                entry.resource_id = uuid.UUID(str(resource['id']))
            except (TypeError, KeyError, ValueError):
                unknown.append(entry.slug)

        if unknown:
            raise InvalidReservationData([f"Unknown resource '{slug}'" for slug in unknown])

    def _persist(
        self,
        request: ReservationRequest,
        status: Status,
        total_amount: Decimal,
        original_price: Decimal
    ) -> Reservation:
        """Write reservation, detail and links. Caller holds the transaction."""
        resource_ids = request.resource_ids

        self.availability.lock_resources(resource_ids)
        self.availability.ensure_available(resource_ids, request.start_date, request.end_date)

        reservation = self._insert_reservation(
            user_id=request.user_id,
            organization_id=request.organization_id,
            status=status,
            total_amount=total_amount,
            start_date=request.start_date,
            end_date=request.end_date,
            source=request.source,
        )

        links = {}
        for entry in request.resources:
            if entry.resource_id not in links:
                links[entry.resource_id] = entry

        detail = dict(request.detail)
        detail.setdefault('currency', settings.RESERVATION['DEFAULT_CURRENCY'])
        detail.setdefault('original_price', original_price)
        detail.setdefault('resource_quantity', sum(entry.quantity for entry in links.values()))
        Detail.objects.create(reservation=reservation, **detail)

        for resource_id, entry in links.items():
            ReservationResource.objects.create(
                reservation=reservation,
                resource_id=resource_id,
                quantity=entry.quantity,
                price=entry.price,
            )

        return reservation

    def _insert_reservation(self, **fields) -> Reservation:
        """Insert with a fresh random code, retrying on collision."""
        attempts = settings.RESERVATION['CODE_MAX_ATTEMPTS']

        for _ in range(attempts):
            code = generate_reservation_code()
            if Reservation.all_objects.filter(code=code).exists():
                logger.debug(f"Reservation code {code} taken, retrying")
                continue
            try:
                with transaction.atomic():
                    return Reservation.objects.create(code=code, **fields)
            except IntegrityError:
                if not Reservation.all_objects.filter(code=code).exists():
                    raise
                logger.warning(f"Reservation code {code} inserted concurrently, retrying")

        raise DuplicateReservationCode(
            f"Could not generate a unique reservation code in {attempts} attempts"
        )

    # ==========================================================================
    # Updates
    # ==========================================================================

    def update_reservation(
        self,
        reservation_id,
        changes: Dict[str, Any],
        requested_by=None
    ) -> Reservation:
        """
        Update dates, total, status, active flag, resources or detail.

        A status change must follow the transition table. Confirmed and
        Cancelled are only reached through ``confirm_reservation`` and
        ``cancel_reservation``.
        """
        return self._update(reservation_id, changes, requested_by, for_organization=False)

    def update_reservation_for_organization(self, reservation_id, changes: Dict[str, Any]) -> Reservation:
        """
        Organization-initiated update.

        Any existing status may be set and the active flag is never
        touched. Moving to Finished or CheckedIn appends a timestamped
        note to the detail.
        """
        return self._update(reservation_id, changes, None, for_organization=True)

    def _update(
        self,
        reservation_id,
        changes: Dict[str, Any],
        requested_by,
        for_organization: bool
    ) -> Reservation:
        with transaction.atomic():
            reservation = self._get_for_update(reservation_id)
            self._authorize(reservation, requested_by)

            cleaned = self.validation.validate_update(reservation, changes, for_organization)
            status_changed = False
            if 'status_id' in cleaned and cleaned['status_id'] != reservation.status_id:
                target = self.status_service.get_status(cleaned['status_id'])
                if not for_organization:
                    self.status_service.validate_transition(reservation.status, target.name)
                    if target.name in ACTION_STATUSES:
                        raise InvalidReservationData([
                            f"Use the {ACTION_STATUSES[target.name]} action to move a reservation to {target.name}"
                        ])
                reservation.status = target
                status_changed = True

            for name in ('start_date', 'end_date', 'total_amount', 'is_active'):
                if name in cleaned:
                    setattr(reservation, name, cleaned[name])

            resource_ids = cleaned.get('resource_ids')
            if resource_ids is None:
                resource_ids = list(reservation.resource_ids)
            if resource_ids and ('start_date' in cleaned or 'end_date' in cleaned or 'resource_ids' in cleaned):
                self.availability.lock_resources(resource_ids)
                self.availability.ensure_available(
                    resource_ids,
                    reservation.start_date,
                    reservation.end_date,
                    exclude_reservation_id=reservation.id,
                )

            reservation.save()

            if 'resource_ids' in cleaned:
                self._replace_links(reservation, cleaned['resource_ids'])

            detail = None
            if 'detail' in cleaned:
                detail = self._upsert_detail(reservation, cleaned['detail'], for_organization)

            if for_organization and status_changed:
                self._note_status_change(reservation, detail)

            self._schedule(broadcast_reservation_change, reservation.id)

        self.cache.invalidate_reservation(reservation)

        logger.info(
            f"Updated reservation {reservation.code}",
            extra=self._log_context(reservation)
        )
        return reservation

    def _replace_links(self, reservation: Reservation, resource_ids: List[uuid.UUID]) -> None:
        """Soft-delete all links, then revive or insert the given ones in order."""
        now = timezone.now()
        ReservationResource.objects.filter(reservation=reservation).update(
            is_deleted=True,
            is_active=False,
            deleted_at=now,
            updated_at=now,
        )

        for resource_id in resource_ids:
            link = (
                ReservationResource.all_objects
                .filter(reservation=reservation, resource_id=resource_id)
                .order_by('-updated_at')
                .first()
            )
            if link is not None:
                link.restore()
            else:
                ReservationResource.objects.create(reservation=reservation, resource_id=resource_id)

    def _upsert_detail(self, reservation: Reservation, values: Dict[str, Any], for_organization: bool) -> Detail:
        detail = Detail.objects.filter(reservation=reservation).first()
        if detail is None:
            defaults = {'currency': settings.RESERVATION['DEFAULT_CURRENCY']}
            if for_organization:
                defaults['name'] = ORGANIZATION_DETAIL_NAME
            defaults.update(values)
            return Detail.objects.create(reservation=reservation, **defaults)

        for name, value in values.items():
            setattr(detail, name, value)
        detail.save()
        return detail

    def _note_status_change(self, reservation: Reservation, detail: Optional[Detail]) -> None:
        now = timezone.now()
        if reservation.status.name == StatusName.FINISHED:
            note = f"Reservation completed on {now:%Y-%m-%d %H:%M}"
        elif reservation.status.name == StatusName.CHECKED_IN:
            note = f"Client checked in on {now:%Y-%m-%d %H:%M}"
        else:
            return

        detail = detail or self._upsert_detail(reservation, {}, for_organization=True)
        detail.append_note(note)
        detail.save(update_fields=['note', 'updated_at'])

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    def confirm_reservation(self, reservation_id, requested_by=None) -> Reservation:
        """
        Move a reservation to Confirmed.

        The reservation's resources must still be free of any other live
        reservation over its dates.
        """
        with transaction.atomic():
            reservation = self._get_for_update(reservation_id)
            self._authorize(reservation, requested_by)
            self.status_service.validate_transition(reservation.status, StatusName.CONFIRMED)

            resource_ids = list(reservation.resource_ids)
            self.availability.lock_resources(resource_ids)
            self.availability.ensure_available(
                resource_ids,
                reservation.start_date,
                reservation.end_date,
                exclude_reservation_id=reservation.id,
            )

            self._set_status(reservation, StatusName.CONFIRMED)

        self.cache.invalidate_reservation(reservation)

        logger.info(f"Confirmed reservation {reservation.code}", extra=self._log_context(reservation))
        return reservation

    def cancel_reservation(self, reservation_id, reason: str = None, requested_by=None) -> Reservation:
        """
        Move a reservation to Cancelled after refunding its total.

        With ``CANCEL_REQUIRES_REFUND`` a failed refund aborts the
        cancellation; otherwise it is logged and the cancellation commits.
        """
        with transaction.atomic():
            reservation = self._get_for_update(reservation_id)
            self._authorize(reservation, requested_by)
            self.status_service.validate_transition(reservation.status, StatusName.CANCELLED)

            self._refund(reservation, reason)
            self._set_status(reservation, StatusName.CANCELLED)

            if reason:
                detail = Detail.objects.filter(reservation=reservation).first()
                if detail is not None:
                    detail.append_note(f"Cancelled: {reason}")
                    detail.save(update_fields=['note', 'updated_at'])

        self.cache.invalidate_reservation(reservation)

        logger.info(
            f"Cancelled reservation {reservation.code}: {reason or 'no reason given'}",
            extra=self._log_context(reservation)
        )
        return reservation

    def transition_reservation(self, reservation_id, status_name: str, requested_by=None) -> Reservation:
        """Apply any transition allowed by the status table."""
        if status_name == StatusName.CONFIRMED:
            return self.confirm_reservation(reservation_id, requested_by)
        if status_name == StatusName.CANCELLED:
            return self.cancel_reservation(reservation_id, requested_by=requested_by)

        with transaction.atomic():
            reservation = self._get_for_update(reservation_id)
            self._authorize(reservation, requested_by)
            self.status_service.validate_transition(reservation.status, status_name)
            self._set_status(reservation, status_name)

        self.cache.invalidate_reservation(reservation)

        logger.info(
            f"Moved reservation {reservation.code} to {status_name}",
            extra=self._log_context(reservation)
        )
        return reservation

    def _set_status(self, reservation: Reservation, status_name: str) -> None:
        reservation.status = self.status_service.get_or_create(status_name)
        reservation.save(update_fields=['status', 'updated_at'])
        self._schedule(broadcast_reservation_change, reservation.id)

    def _refund(self, reservation: Reservation, reason: Optional[str]) -> None:
        if reservation.total_amount <= 0:
            return

        try:
            result = self.payment_client.refund_reservation(
                reservation.id,
                reservation.total_amount,
                reason,
            )
            if not self._refund_succeeded(result):
                raise PaymentProcessingFailed(
                    f"Refund of {reservation.total_amount} for reservation {reservation.code} was rejected"
                )
        except (PaymentProcessingFailed, ExternalServiceError) as e:
            if settings.RESERVATION['CANCEL_REQUIRES_REFUND']:
                raise
            logger.error(
                f"Refund for reservation {reservation.code} failed, cancelling anyway: {e}",
                extra=self._log_context(reservation)
            )

    @staticmethod
    def _refund_succeeded(result) -> bool:
        if not isinstance(result, dict):
            return False
        if result.get('success') is False:
            return False
        return str(result.get('status', '')).lower() not in ('failed', 'rejected')

    # ==========================================================================
    # Deletion & Check-in
    # ==========================================================================

    def delete_reservation(self, reservation_id, requested_by=None) -> None:
        """Soft-delete the reservation with its detail and resource links."""
        with transaction.atomic():
            reservation = self._get_for_update(reservation_id)
            self._authorize(reservation, requested_by)

            reservation.soft_delete()

            detail = Detail.objects.filter(reservation=reservation).first()
            if detail is not None:
                detail.soft_delete()

            now = timezone.now()
            ReservationResource.objects.filter(reservation=reservation).update(
                is_deleted=True,
                is_active=False,
                deleted_at=now,
                updated_at=now,
            )

            self._schedule(broadcast_reservation_change, reservation.id)

        self.cache.invalidate_reservation(reservation)

        logger.info(f"Deleted reservation {reservation.code}", extra=self._log_context(reservation))

    def check_in_by_code(self, code: str) -> Reservation:
        """
        Look up a reservation by code and mark it CheckedIn.

        Already checked-in reservations are returned unchanged.
        """
        with transaction.atomic():
            reservation = (
                Reservation.objects
                .select_for_update(of=('self',))
                .select_related('status')
                .filter(code=code)
                .first()
            )
            if reservation is None:
                raise ReservationNotFound(code)

            if reservation.status.name == StatusName.CHECKED_IN:
                return reservation

            reservation.status = self.status_service.get_or_create(StatusName.CHECKED_IN)
            reservation.save(update_fields=['status', 'updated_at'])

        self.cache.invalidate_reservation(reservation)

        logger.info(f"Checked in reservation {reservation.code}", extra=self._log_context(reservation))
        return reservation

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _get_for_update(self, reservation_id) -> Reservation:
        """Fresh, row-locked copy of a live reservation."""
        try:
            return (
                Reservation.objects
                .select_for_update(of=('self',))
                .select_related('status')
                .get(id=reservation_id)
            )
        except (Reservation.DoesNotExist, ValidationError):
            raise ReservationNotFound(reservation_id)

    @staticmethod
    def _authorize(reservation: Reservation, requested_by) -> None:
        """Users may only modify their own reservations. ``None`` means a service principal."""
        if requested_by is None:
            return
        if not reservation.can_modify(requested_by):
            raise ReservationAuthorizationFailed(requested_by, reservation.id)

    @staticmethod
    def _schedule(task, reservation_id) -> None:
        """Dispatch a task once the surrounding transaction commits."""
        reservation_id = str(reservation_id)

        def dispatch():
            try:
                task.delay(reservation_id)
            except Exception as e:
                logger.error(f"Failed to dispatch {task.name} for {reservation_id}: {e}")

        transaction.on_commit(dispatch)

    @staticmethod
    def _log_context(reservation: Reservation) -> Dict[str, str]:
        return {
            'reservation_id': str(reservation.id),
            'code': reservation.code,
            'organization_id': str(reservation.organization_id),
        }
