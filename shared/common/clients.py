# shared/common/clients.py
"""
Service Clients for Inter-Service Communication

Synchronous httpx clients for the collaborators the reservation
service depends on. Every call carries a per-call timeout; transport
failures, timeouts and 5xx answers surface as ExternalServiceError.
"""

import time
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Any, Optional, List, Iterable

import httpx
from django.conf import settings

from .exceptions import ExternalServiceError, ExternalServiceTimeout
from .middleware import REQUEST_ID_HEADER, get_request_id

logger = logging.getLogger(__name__)


# =============================================================================
# CIRCUIT BREAKER
# =============================================================================

class CircuitBreaker:
    """
    Circuit breaker for handling collaborator failures.

    One breaker is shared per collaborator name across all client
    instances in the process (see ``for_service``).
    """

    _registry: Dict[str, 'CircuitBreaker'] = {}

    def __init__(
        self,
        failure_threshold: int = 5,
        success_threshold: int = 2,
        timeout: int = 30
    ):
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.timeout = timeout
        self.failure_count = 0
        self.success_count = 0
        self.state = 'closed'  # closed, open, half_open
        self.last_failure_time = None

    @classmethod
    def for_service(cls, service_name: str) -> 'CircuitBreaker':
        if service_name not in cls._registry:
            cls._registry[service_name] = cls()
        return cls._registry[service_name]

    @classmethod
    def reset_all(cls):
        cls._registry.clear()

    @classmethod
    def states(cls) -> Dict[str, str]:
        """Current state of every breaker created so far, by service."""
        return {name: breaker.state for name, breaker in sorted(cls._registry.items())}

    def _should_try_reset(self) -> bool:
        if self.last_failure_time is None:
            return True
        return time.time() - self.last_failure_time >= self.timeout

    def record_success(self):
        if self.state == 'half_open':
            self.success_count += 1
            if self.success_count >= self.success_threshold:
                self._reset()
        else:
            self.failure_count = 0

    def record_failure(self):
        self.failure_count += 1
        self.last_failure_time = time.time()
        if self.state == 'half_open' or self.failure_count >= self.failure_threshold:
            self.state = 'open'
            self.success_count = 0
            logger.warning(f"Circuit breaker opened after {self.failure_count} failures")

    def _reset(self):
        self.state = 'closed'
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time = None
        logger.info("Circuit breaker reset to closed state")

    def can_execute(self) -> bool:
        if self.state == 'closed':
            return True
        if self.state == 'open':
            if self._should_try_reset():
                self.state = 'half_open'
                return True
            return False
        return True  # half_open


# =============================================================================
# BASE SERVICE CLIENT
# =============================================================================

class BaseServiceClient:
    """
    Base class for service-to-service HTTP communication.
    """

    def __init__(
        self,
        service_name: str,
        base_url: str = None,
        timeout: httpx.Timeout = None,
        transport: httpx.BaseTransport = None
    ):
        self.service_name = service_name
        self.base_url = (base_url or self._get_service_url(service_name)).rstrip('/')
        self.timeout = timeout or httpx.Timeout(
            getattr(settings, 'SERVICE_CLIENT_TIMEOUT', 10.0),
            connect=getattr(settings, 'SERVICE_CLIENT_CONNECT_TIMEOUT', 5.0),
        )
        self.transport = transport
        self.auth_token = getattr(settings, 'SERVICE_AUTH_TOKEN', '')
        self.circuit_breaker = CircuitBreaker.for_service(service_name)

    def _get_service_url(self, service_name: str) -> str:
        """Get service URL from settings"""
        service_urls = getattr(settings, 'SERVICE_URLS', {})
        return service_urls.get(service_name, f'http://{service_name}:8000')

    def _get_headers(self, extra_headers: Dict = None) -> Dict:
        """Build request headers"""
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'X-Service-Auth': self.auth_token,
            'X-Source-Service': getattr(settings, 'SERVICE_NAME', 'unknown'),
        }
        request_id = get_request_id()
        if request_id:
            headers[REQUEST_ID_HEADER] = request_id
        if extra_headers:
            headers.update(extra_headers)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: Dict = None,
        data: Any = None,
        headers: Dict = None,
        allow_not_found: bool = False
    ) -> Optional[Any]:
        """Make HTTP request to service. Returns None for a tolerated 404."""
        if not self.circuit_breaker.can_execute():
            raise ExternalServiceError(self.service_name, 'circuit breaker is open')

        url = f"{self.base_url}{path}"

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=data,
                    headers=self._get_headers(headers)
                )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling {self.service_name}: {e}", extra={'url': url})
            self.circuit_breaker.record_failure()
            raise ExternalServiceTimeout(self.service_name, 'request timed out') from e
        except httpx.RequestError as e:
            logger.error(f"Request error calling {self.service_name}: {e}", extra={'url': url})
            self.circuit_breaker.record_failure()
            raise ExternalServiceError(self.service_name, str(e)) from e

        if allow_not_found and response.status_code == 404:
            self.circuit_breaker.record_success()
            return None

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"HTTP error calling {self.service_name}: {response.status_code}",
                extra={'url': url, 'status_code': response.status_code}
            )
            if response.status_code >= 500:
                self.circuit_breaker.record_failure()
            raise ExternalServiceError(
                self.service_name,
                f"HTTP {response.status_code}",
                upstream_status=response.status_code,
            ) from e

        self.circuit_breaker.record_success()
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(self.service_name, 'invalid JSON response') from e

    def get(self, path: str, params: Dict = None, **kwargs) -> Optional[Any]:
        return self._request('GET', path, params=params, **kwargs)

    def post(self, path: str, data: Any = None, **kwargs) -> Optional[Any]:
        return self._request('POST', path, data=data, **kwargs)


def _unwrap(payload: Any, key: str = 'data') -> Any:
    """Collaborators answer either bare or as ``{"data": ...}``."""
    if isinstance(payload, dict) and key in payload:
        return payload[key]
    return payload


# =============================================================================
# COLLABORATOR CLIENTS
# =============================================================================

class IdentityServiceClient(BaseServiceClient):
    """Client for the identity/profile service"""

    def __init__(self, **kwargs):
        super().__init__('identity-service', **kwargs)

    def get_user_profile(self, user_id) -> Optional[Dict]:
        payload = self.get(f'/api/v1/users/{user_id}/profile/', allow_not_found=True)
        return _unwrap(payload) if payload is not None else None


class OrganizationServiceClient(BaseServiceClient):
    """Client for the organization directory service"""

    def __init__(self, **kwargs):
        super().__init__('organization-service', **kwargs)

    def get_organization(self, org_id) -> Optional[Dict]:
        payload = self.get(f'/api/v1/organizations/{org_id}/', allow_not_found=True)
        return _unwrap(payload) if payload is not None else None


class ResourceServiceClient(BaseServiceClient):
    """Client for the resource inventory service"""

    def __init__(self, **kwargs):
        super().__init__('resource-service', **kwargs)

    def get_resources(self, resource_ids: Iterable) -> List[Dict]:
        ids = [str(r) for r in resource_ids]
        if not ids:
            return []
        payload = self.post('/api/v1/resources/batch/', {'ids': ids})
        return _unwrap(payload, 'results') or []

    def get_resource_by_slug(self, slug: str) -> Optional[Dict]:
        payload = self.get(f'/api/v1/resources/by-slug/{slug}/', allow_not_found=True)
        return _unwrap(payload) if payload is not None else None

    def refresh_organization_resources(self, organization_slug: str, on_date: date) -> Dict:
        """Ask the inventory to rebuild the organization's resource view for a date."""
        return self.get(
            f'/api/v1/resources/organizations/{organization_slug}/',
            params={'date': on_date.isoformat()},
        )


class PaymentServiceClient(BaseServiceClient):
    """Client for the pricing/payment service"""

    def __init__(self, **kwargs):
        super().__init__('payment-service', **kwargs)

    def get_full_prices(self, items: List[Dict]) -> List[Dict]:
        """
        Price (resource, date, original price) items.

        Returns one ``{"resource_id", "date", "full_price"}`` entry per item.
        """
        payload = self.post('/api/v1/pricing/full-prices/', {'items': items})
        return _unwrap(payload, 'prices') or []

    def refund_reservation(self, reservation_id, amount: Decimal, reason: str = None) -> Dict:
        return self.post('/api/v1/refunds/', {
            'reference_id': str(reservation_id),
            'reference_type': 'Reservation',
            'amount': str(amount),
            'reason': reason or '',
        })

    def create_transaction(self, data: Dict) -> Dict:
        return self.post('/api/v1/transactions/', data)


# =============================================================================
# CLIENT FACTORY
# =============================================================================

class ServiceClientFactory:
    """Factory for creating service clients"""

    _clients = {
        'identity': IdentityServiceClient,
        'organization': OrganizationServiceClient,
        'resource': ResourceServiceClient,
        'payment': PaymentServiceClient,
    }

    @classmethod
    def get_client(cls, service_name: str, **kwargs) -> BaseServiceClient:
        """Get a service client by name"""
        client_class = cls._clients.get(service_name)
        if not client_class:
            raise ValueError(f"Unknown service: {service_name}")
        return client_class(**kwargs)
