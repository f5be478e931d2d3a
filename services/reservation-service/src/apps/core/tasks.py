# services/reservation-service/src/apps/core/tasks.py
"""
Reservation Celery Tasks

Post-commit side calls to collaborators. Their outcome never affects
the request that scheduled them.
"""

import logging
from celery import shared_task

from django.conf import settings

from shared.common.clients import (
    OrganizationServiceClient,
    ResourceServiceClient,
    PaymentServiceClient,
)
from shared.common.exceptions import ExternalServiceError

from .models import Reservation, Detail, ReservationResource


logger = logging.getLogger(__name__)


@shared_task(
    name='reservation.broadcast_change',
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def broadcast_reservation_change(self, reservation_id: str):
    """
    Ask the resource inventory to refresh the organization's view.

    Runs after a reservation was created, changed or deleted. Stops
    quietly when the organization is unknown or no resource is linked.

    Args:
        reservation_id: Reservation UUID string
    """
    reservation = Reservation.all_objects.filter(id=reservation_id).first()
    if reservation is None:
        logger.error(f"Reservation not found for broadcast: {reservation_id}")
        return None

    links = ReservationResource.all_objects.filter(reservation_id=reservation.id)
    if not reservation.is_deleted:
        links = links.filter(is_deleted=False)

    try:
        organization = OrganizationServiceClient().get_organization(reservation.organization_id)
        if not organization or not organization.get('slug'):
            logger.info(
                f"Skipping broadcast for {reservation.code}: organization "
                f"{reservation.organization_id} not found"
            )
            return None

        if not links.exists():
            logger.info(f"Skipping broadcast for {reservation.code}: no linked resources")
            return None

        ResourceServiceClient().refresh_organization_resources(
            organization['slug'],
            reservation.start_date,
        )

    except ExternalServiceError as e:
        if self.request.retries < self.max_retries:
            logger.warning(f"Broadcast for {reservation.code} failed, retrying: {e}")
            raise self.retry(exc=e)
        logger.error(
            f"Broadcast for {reservation.code} failed after {self.max_retries} retries: {e}",
            extra={'reservation_id': str(reservation.id), 'code': reservation.code}
        )
        return None

    logger.info(
        f"Broadcast change of {reservation.code} to {organization['slug']}",
        extra={'reservation_id': str(reservation.id), 'organization_id': str(reservation.organization_id)}
    )
    return {'reservation_id': str(reservation.id), 'organization': organization['slug']}


@shared_task(name='reservation.post_organization_ledger_entry')
def post_organization_ledger_entry(reservation_id: str):
    """
    Record an organization-created reservation in the payment ledger.

    Best effort: failures are logged and dropped.
    """
    reservation = Reservation.all_objects.filter(id=reservation_id).first()
    if reservation is None:
        logger.error(f"Reservation not found for ledger entry: {reservation_id}")
        return None

    detail = Detail.all_objects.filter(reservation_id=reservation.id).first()
    currency = (detail.currency if detail else '') or settings.RESERVATION['DEFAULT_CURRENCY']
    total = str(reservation.total_amount)

    try:
        transaction_data = PaymentServiceClient().create_transaction({
            'organization_id': str(reservation.organization_id),
            'reference_id': str(reservation.id),
            'reference_type': 'ReservationForOrganization',
            'status': 'Success',
            'description': f"Reservation {reservation.code} created by organization",
            'currency': currency,
            'total_value': total,
            'resource_gross_value': total,
        })
    except ExternalServiceError as e:
        logger.error(
            f"Ledger entry for {reservation.code} failed: {e}",
            extra={'reservation_id': str(reservation.id), 'code': reservation.code}
        )
        return None

    logger.info(f"Posted ledger entry for {reservation.code}")
    return transaction_data
