# services/reservation-service/src/tests/integration/test_reservation_api.py
"""
Integration Tests for Reservation API

Tests API endpoints with full request/response cycle. Collaborator
clients are patched at class level.
"""

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.utils import timezone
from rest_framework import status

from apps.core.models import Reservation, StatusName
from shared.common.clients import (
    IdentityServiceClient,
    OrganizationServiceClient,
    ResourceServiceClient,
    PaymentServiceClient,
)


BASE_URL = '/api/v1/reservations/'


def _echo_prices(items):
    return [
        {'resource_id': item['resource_id'], 'date': item['date'], 'full_price': item['original_price']}
        for item in items
    ]


@pytest.fixture(autouse=True)
def collaborators():
    """Patch every outgoing collaborator call."""
    with patch.object(PaymentServiceClient, 'get_full_prices', side_effect=_echo_prices) as prices, \
            patch.object(PaymentServiceClient, 'refund_reservation', return_value={'success': True}) as refund, \
            patch.object(IdentityServiceClient, 'get_user_profile', return_value={'first_name': 'Ingrid'}), \
            patch.object(OrganizationServiceClient, 'get_organization', return_value={'slug': 'fjord-cabins'}), \
            patch.object(ResourceServiceClient, 'get_resources', return_value=[]), \
            patch.object(ResourceServiceClient, 'get_resource_by_slug', return_value=None) as by_slug:
        yield {'prices': prices, 'refund': refund, 'by_slug': by_slug}


def _error_code(response):
    return response.data['error']['code']


@pytest.mark.django_db
class TestReservationCrudAPI:
    """Integration tests for reservation CRUD endpoints."""

    def test_requires_authentication(self, api_client):
        response = api_client.get(BASE_URL)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_reservation(self, user_client, reservation_data, user_id):
        reservation_data['user_id'] = str(uuid.uuid4())

        response = user_client.post(BASE_URL, data=reservation_data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['success'] is True
        data = response.data['data']
        assert data['code'].startswith('ORG-')
        assert data['status_name'] == StatusName.CREATED
        assert data['total_amount'] == '200.00'
        # The caller's identity wins over the body
        assert data['user_id'] == str(user_id)
        assert data['detail']['currency'] == 'EUR'

    def test_create_conflict(self, user_client, reservation_data, create_reservation, resource_id, future_start):
        create_reservation(start_date=future_start, resource_ids=[resource_id])

        response = user_client.post(BASE_URL, data=reservation_data, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert _error_code(response) == 'RESOURCE_UNAVAILABLE'
        assert response.data['error']['details'] == {'resource_ids': [str(resource_id)]}

    def test_create_rule_violations(self, user_client, reservation_data, future_start):
        reservation_data['end_date'] = future_start.isoformat()
        reservation_data['detail']['email'] = 'not-an-email'

        response = user_client.post(BASE_URL, data=reservation_data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert _error_code(response) == 'INVALID_RESERVATION_DATA'
        assert 'End date must be after start date' in response.data['error']['details']
        assert len(response.data['error']['details']) == 2

    def test_create_malformed_body(self, user_client):
        response = user_client.post(BASE_URL, data={'start_date': 'soon'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert _error_code(response) == 'VALIDATION_ERROR'
        assert 'start_date' in response.data['error']['details']

    def test_create_pricing_failure(self, user_client, reservation_data, collaborators):
        collaborators['prices'].side_effect = None
        collaborators['prices'].return_value = []

        response = user_client.post(BASE_URL, data=reservation_data, format='json')

        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED
        assert _error_code(response) == 'PAYMENT_PROCESSING_FAILED'
        assert not Reservation.all_objects.exists()

    def test_retrieve(self, user_client, create_reservation):
        reservation = create_reservation()

        response = user_client.get(f'{BASE_URL}{reservation.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['code'] == reservation.code
        assert response.data['data']['user'] == {'first_name': 'Ingrid'}

    def test_retrieve_missing(self, user_client):
        response = user_client.get(f'{BASE_URL}{uuid.uuid4()}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert _error_code(response) == 'RESERVATION_NOT_FOUND'

    def test_list_scoped_to_caller(self, user_client, create_reservation):
        create_reservation(code='ORG-MINE1')
        create_reservation(code='ORG-THEIR', user_id=uuid.uuid4())

        response = user_client.get(BASE_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['code'] == 'ORG-MINE1'

    def test_list_organization_member_sees_organization(self, org_client, create_reservation):
        create_reservation(code='ORG-OWN01', user_id=uuid.uuid4())
        create_reservation(code='ORG-OWN02', user_id=uuid.uuid4())
        create_reservation(code='ORG-OTHER', organization_id=uuid.uuid4())

        response = org_client.get(BASE_URL, {'order_by': 'code', 'per_page': 1, 'page': 2})

        assert response.data['count'] == 2
        assert response.data['total_pages'] == 2
        assert response.data['current_page'] == 2
        assert [item['code'] for item in response.data['results']] == ['ORG-OWN02']

    def test_list_filters(self, service_client, create_reservation):
        create_reservation(code='ORG-CONF1', status_name=StatusName.CONFIRMED)
        create_reservation(code='ORG-CREA1')

        response = service_client.get(BASE_URL, {'status': 'Confirmed'})

        assert [item['code'] for item in response.data['results']] == ['ORG-CONF1']

    def test_list_invalid_paging(self, service_client):
        response = service_client.get(BASE_URL, {'page': 'x'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_partial_update(self, user_client, create_reservation, future_start):
        reservation = create_reservation()

        response = user_client.patch(
            f'{BASE_URL}{reservation.id}/',
            data={'end_date': (future_start + timedelta(days=4)).isoformat()},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['nights'] == 4

    def test_update_foreign_reservation(self, user_client, create_reservation):
        reservation = create_reservation(user_id=uuid.uuid4())

        response = user_client.patch(
            f'{BASE_URL}{reservation.id}/', data={'total_amount': '1.00'}, format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert _error_code(response) == 'RESERVATION_AUTHORIZATION_FAILED'

    def test_destroy(self, service_client, create_reservation):
        reservation = create_reservation()

        response = service_client.delete(f'{BASE_URL}{reservation.id}/')
        assert response.status_code == status.HTTP_204_NO_CONTENT

        response = service_client.get(f'{BASE_URL}{reservation.id}/')
        assert response.status_code == status.HTTP_404_NOT_FOUND

        response = service_client.get(f'{BASE_URL}{reservation.id}/', {'include_deleted': 'true'})
        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['is_deleted'] is True

    def test_detail(self, user_client, create_reservation):
        reservation = create_reservation()

        response = user_client.get(f'{BASE_URL}{reservation.id}/detail/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['name'] == 'Ingrid Hansen'


    def test_create_invalid_detail_keeps_field_errors(self, user_client, reservation_data):
        reservation_data['detail'] = 'Ingrid'

        response = user_client.post(BASE_URL, data=reservation_data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert _error_code(response) == 'VALIDATION_ERROR'
        assert response.data['error']['message'] == 'Validation error'
        assert 'detail' in response.data['error']['details']

    def test_list_keyword(self, service_client, create_reservation):
        create_reservation(code='ORG-FJORD')
        create_reservation(code='ORG-COAST')

        response = service_client.get(BASE_URL, {'keyword': 'fjo'})

        assert [item['code'] for item in response.data['results']] == ['ORG-FJORD']

    def test_list_invalid_filter(self, service_client):
        response = service_client.get(BASE_URL, {'start_date': 'soon'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'start_date' in response.data['error']['details']

    def test_list_skips_inactive_and_deleted(self, service_client, create_reservation):
        create_reservation(code='ORG-LIVE1')
        create_reservation(code='ORG-IDLE1', is_active=False)
        deleted = create_reservation(code='ORG-GONE1')
        service_client.delete(f'{BASE_URL}{deleted.id}/')

        response = service_client.get(BASE_URL)

        assert response.data['count'] == 1
        assert [item['code'] for item in response.data['results']] == ['ORG-LIVE1']

    def test_retrieve_foreign_reservation(self, user_client, create_reservation):
        reservation = create_reservation(user_id=uuid.uuid4())

        response = user_client.get(f'{BASE_URL}{reservation.id}/')
        assert response.status_code == status.HTTP_403_FORBIDDEN

        response = user_client.get(f'{BASE_URL}{reservation.id}/', {'include_deleted': 'true'})
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_retrieve_organization_reservation(self, org_client, create_reservation):
        reservation = create_reservation(user_id=uuid.uuid4())

        response = org_client.get(f'{BASE_URL}{reservation.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['code'] == reservation.code

    def test_retrieve_other_organization(self, org_client, create_reservation):
        reservation = create_reservation(organization_id=uuid.uuid4())

        response = org_client.get(f'{BASE_URL}{reservation.id}/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_destroy_foreign_reservation(self, user_client, create_reservation):
        reservation = create_reservation(user_id=uuid.uuid4())

        response = user_client.delete(f'{BASE_URL}{reservation.id}/')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert _error_code(response) == 'RESERVATION_AUTHORIZATION_FAILED'
        assert Reservation.objects.filter(id=reservation.id).exists()

    def test_destroy_own_reservation(self, user_client, create_reservation):
        reservation = create_reservation()

        response = user_client.delete(f'{BASE_URL}{reservation.id}/')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Reservation.objects.filter(id=reservation.id).exists()

    def test_detail_foreign_reservation(self, user_client, create_reservation):
        reservation = create_reservation(user_id=uuid.uuid4())

        response = user_client.get(f'{BASE_URL}{reservation.id}/detail/')

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestReservationLifecycleAPI:
    """Integration tests for lifecycle actions."""

    def test_confirm(self, user_client, create_reservation):
        reservation = create_reservation()

        response = user_client.post(f'{BASE_URL}{reservation.id}/confirm/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['status_name'] == StatusName.CONFIRMED

    def test_cancel(self, user_client, create_reservation, collaborators):
        reservation = create_reservation()

        response = user_client.post(
            f'{BASE_URL}{reservation.id}/cancel/', data={'reason': 'Sick'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['status_name'] == StatusName.CANCELLED
        assert response.data['data']['detail']['note'] == 'Cancelled: Sick'
        collaborators['refund'].assert_called_once()

    def test_cancel_refund_rejected(self, user_client, create_reservation, collaborators):
        reservation = create_reservation()
        collaborators['refund'].return_value = {'success': False}

        response = user_client.post(f'{BASE_URL}{reservation.id}/cancel/', format='json')

        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED
        reservation.refresh_from_db()
        assert reservation.status.name == StatusName.CREATED

    def test_invalid_transition(self, user_client, create_reservation):
        reservation = create_reservation(status_name=StatusName.CANCELLED)

        response = user_client.post(
            f'{BASE_URL}{reservation.id}/transition/', data={'status': StatusName.CONFIRMED}, format='json'
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert _error_code(response) == 'INVALID_STATUS_TRANSITION'
        assert response.data['error']['details'] == {
            'current': StatusName.CANCELLED,
            'target': StatusName.CONFIRMED,
        }

    def test_transition(self, service_client, create_reservation):
        reservation = create_reservation(status_name=StatusName.CONFIRMED)

        response = service_client.post(
            f'{BASE_URL}{reservation.id}/transition/', data={'status': StatusName.NO_SHOW}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['status_name'] == StatusName.NO_SHOW

    def test_validate_ticket(self, service_client, create_reservation):
        create_reservation(code='ORG-GATE1')

        response = service_client.post(f'{BASE_URL}validate-ticket/', data={'code': 'ORG-GATE1'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['status_name'] == StatusName.CHECKED_IN

    def test_patch_cannot_cancel(self, user_client, create_reservation, create_status, collaborators):
        reservation = create_reservation()
        cancelled = create_status(StatusName.CANCELLED)

        response = user_client.patch(
            f'{BASE_URL}{reservation.id}/', data={'status_id': str(cancelled.id)}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert _error_code(response) == 'INVALID_RESERVATION_DATA'
        collaborators['refund'].assert_not_called()
        reservation.refresh_from_db()
        assert reservation.status.name == StatusName.CREATED

    def test_validate_foreign_ticket(self, user_client, create_reservation):
        reservation = create_reservation(code='ORG-GATE2', user_id=uuid.uuid4())

        response = user_client.post(f'{BASE_URL}validate-ticket/', data={'code': 'ORG-GATE2'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        reservation.refresh_from_db()
        assert reservation.status.name == StatusName.CREATED

    def test_validate_unknown_ticket(self, service_client):
        response = service_client.post(f'{BASE_URL}validate-ticket/', data={'code': 'ORG-NONE0'}, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_by_resources(self, service_client, create_reservation, resource_id, future_start):
        reservation = create_reservation(resource_ids=[resource_id])

        response = service_client.post(f'{BASE_URL}by-resources/', data={
            'resource_ids': [str(resource_id)],
            'start_date': future_start.isoformat(),
            'end_date': future_start.isoformat(),
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert [item['id'] for item in response.data['data']] == [str(reservation.id)]

    def test_current_for_resource(self, service_client, create_reservation, resource_id):
        today = timezone.now().date()
        reservation = create_reservation(
            start_date=today,
            end_date=today + timedelta(days=1),
            resource_ids=[resource_id],
        )

        response = service_client.get(f'{BASE_URL}current-for-resource/{resource_id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['id'] == str(reservation.id)

    def test_current_for_free_resource(self, service_client):
        response = service_client.get(f'{BASE_URL}current-for-resource/{uuid.uuid4()}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data'] is None


@pytest.mark.django_db
class TestOrganizationReservationAPI:
    """Integration tests for the organization path."""

    def _payload(self, organization_id, resource_id, start, **extra):
        payload = {
            'organization_id': str(organization_id),
            'start_date': start.isoformat(),
            'end_date': (start + timedelta(days=2)).isoformat(),
            'total_amount': '300.00',
            'resources': [{'resource_id': str(resource_id)}],
        }
        payload.update(extra)
        return payload

    def test_create(self, org_client, organization_id, resource_id, future_start, collaborators):
        response = org_client.post(
            f'{BASE_URL}organization/',
            data=self._payload(organization_id, resource_id, future_start),
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.data['data']
        assert data['source'] == Reservation.Source.ORGANIZATION
        assert data['total_amount'] == '300.00'
        assert data['user_id'] is None
        collaborators['prices'].assert_not_called()

    def test_create_by_slug(self, service_client, organization_id, resource_id, future_start, collaborators):
        collaborators['by_slug'].return_value = {'id': str(resource_id)}

        response = service_client.post(
            f'{BASE_URL}organization/',
            data=self._payload(organization_id, resource_id, future_start, resources=[{'slug': 'cabin-7'}]),
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['data']['resource_ids'] == [str(resource_id)]

    def test_create_for_other_organization(self, org_client, resource_id, future_start):
        response = org_client.post(
            f'{BASE_URL}organization/',
            data=self._payload(uuid.uuid4(), resource_id, future_start),
            format='json',
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_user_without_organization(self, user_client, organization_id, resource_id, future_start):
        response = user_client.post(
            f'{BASE_URL}organization/',
            data=self._payload(organization_id, resource_id, future_start),
            format='json',
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_update_status_with_note(self, org_client, create_reservation, create_status):
        reservation = create_reservation()
        finished = create_status(StatusName.FINISHED)

        response = org_client.patch(
            f'{BASE_URL}{reservation.id}/organization/',
            data={'status_id': str(finished.id)},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['data']['status_name'] == StatusName.FINISHED
        assert response.data['data']['status_color'] == '#A3AED0'
        assert response.data['data']['detail']['note'].startswith('Reservation completed on ')

    def test_update_foreign_organization(self, org_client, create_reservation):
        reservation = create_reservation(organization_id=uuid.uuid4())

        response = org_client.patch(
            f'{BASE_URL}{reservation.id}/organization/',
            data={'total_amount': '10.00'},
            format='json',
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        reservation.refresh_from_db()
        assert reservation.total_amount == Decimal('200.00')
