# services/reservation-service/src/tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for reservation service tests.
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from apps.core.models import Status, StatusName, Reservation, Detail, ReservationResource
from apps.core.services import (
    ReservationService,
    ReservationQueryService,
    ReservationAnalyticsService,
    generate_reservation_code,
)
from shared.common.authentication import TokenUser, ServiceUser
from shared.common.clients import (
    CircuitBreaker,
    IdentityServiceClient,
    OrganizationServiceClient,
    ResourceServiceClient,
    PaymentServiceClient,
)


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Isolate cache contents and circuit breakers between tests."""
    cache.clear()
    CircuitBreaker.reset_all()
    yield
    cache.clear()
    CircuitBreaker.reset_all()


# =============================================================================
# IDS & DATES
# =============================================================================

@pytest.fixture
def organization_id():
    """Provide a test organization ID."""
    return uuid.uuid4()


@pytest.fixture
def user_id():
    """Provide a test user ID."""
    return uuid.uuid4()


@pytest.fixture
def resource_id():
    """Provide a test resource ID."""
    return uuid.uuid4()


@pytest.fixture
def today():
    return timezone.now().date()


@pytest.fixture
def future_start(today):
    """A start date comfortably inside the booking window."""
    return today + timedelta(days=10)


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture
def create_status(db):
    """Factory for statuses, reusing live rows with the same name."""
    def _create(name=StatusName.CREATED, description=''):
        status, _ = Status.objects.get_or_create(name=name, defaults={'description': description})
        return status
    return _create


@pytest.fixture
def create_reservation(db, organization_id, user_id, future_start, create_status):
    """Factory writing a reservation, its detail and links directly."""
    def _create(
        status_name=StatusName.CREATED,
        start_date=None,
        end_date=None,
        resource_ids=(),
        total_amount=Decimal('200.00'),
        source=Reservation.Source.WEB,
        with_detail=True,
        detail=None,
        **kwargs
    ):
        start_date = start_date or future_start
        end_date = end_date or start_date + timedelta(days=2)

        reservation = Reservation.objects.create(
            user_id=kwargs.pop('user_id', user_id),
            organization_id=kwargs.pop('organization_id', organization_id),
            status=create_status(status_name),
            code=kwargs.pop('code', None) or generate_reservation_code(),
            total_amount=total_amount,
            start_date=start_date,
            end_date=end_date,
            source=source,
            **kwargs
        )

        if with_detail:
            values = {
                'name': 'Ingrid Hansen',
                'email': 'ingrid@example.com',
                'phone': '+4790000000',
                'number_of_adults': 2,
                'currency': 'EUR',
            }
            values.update(detail or {})
            Detail.objects.create(reservation=reservation, **values)

        for rid in resource_ids:
            ReservationResource.objects.create(
                reservation=reservation,
                resource_id=rid,
                price=Decimal('100.00'),
            )

        return reservation
    return _create


@pytest.fixture
def reservation_data(organization_id, user_id, resource_id, future_start):
    """Provide sample public creation data: 2 nights at 100."""
    return {
        'user_id': str(user_id),
        'organization_id': str(organization_id),
        'start_date': future_start.isoformat(),
        'end_date': (future_start + timedelta(days=2)).isoformat(),
        'source': Reservation.Source.WEB,
        'resources': [
            {'resource_id': str(resource_id), 'price': '100.00', 'quantity': 1},
        ],
        'detail': {
            'name': 'Ingrid Hansen',
            'email': 'ingrid@example.com',
            'phone': '+4790000000',
            'number_of_adults': 2,
        },
    }


# =============================================================================
# COLLABORATORS
# =============================================================================

def echo_full_prices(items):
    """Pricing stub quoting every item at its original price."""
    return [
        {'resource_id': item['resource_id'], 'date': item['date'], 'full_price': item['original_price']}
        for item in items
    ]


@pytest.fixture
def payment_client():
    client = MagicMock(spec=PaymentServiceClient)
    client.get_full_prices.side_effect = echo_full_prices
    client.refund_reservation.return_value = {'success': True, 'status': 'Completed'}
    client.create_transaction.return_value = {'id': str(uuid.uuid4())}
    return client


@pytest.fixture
def resource_client():
    client = MagicMock(spec=ResourceServiceClient)
    client.get_resources.return_value = []
    client.get_resource_by_slug.return_value = None
    return client


@pytest.fixture
def identity_client():
    client = MagicMock(spec=IdentityServiceClient)
    client.get_user_profile.side_effect = lambda user_id: {'id': str(user_id), 'first_name': 'Ingrid'}
    return client


@pytest.fixture
def organization_client():
    client = MagicMock(spec=OrganizationServiceClient)
    client.get_organization.side_effect = lambda org_id: {'id': str(org_id), 'slug': 'fjord-cabins'}
    return client


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def reservation_service(payment_client, resource_client):
    return ReservationService(payment_client=payment_client, resource_client=resource_client)


@pytest.fixture
def query_service(reservation_service, identity_client, organization_client, resource_client):
    return ReservationQueryService(
        lifecycle=reservation_service,
        identity_client=identity_client,
        organization_client=organization_client,
        resource_client=resource_client,
    )


@pytest.fixture
def analytics_service(resource_client):
    return ReservationAnalyticsService(resource_client=resource_client)


# =============================================================================
# API CLIENTS
# =============================================================================

@pytest.fixture
def api_client():
    """Provide an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user_client(user_id):
    """API client authenticated as a user without an organization."""
    client = APIClient()
    client.force_authenticate(user=TokenUser({'sub': str(user_id), 'roles': []}))
    return client


@pytest.fixture
def org_client(user_id, organization_id):
    """API client authenticated as a member of the test organization."""
    client = APIClient()
    client.force_authenticate(user=TokenUser({
        'sub': str(user_id),
        'organization_id': str(organization_id),
        'roles': ['organization_admin'],
    }))
    return client


@pytest.fixture
def service_client():
    """API client authenticated as another service."""
    client = APIClient()
    client.force_authenticate(user=ServiceUser('booking-gateway'))
    return client
