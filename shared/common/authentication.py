# shared/common/authentication.py
"""
Request Authentication

Two principals reach the services: users carrying a JWT issued by the
identity service, and other services presenting the shared service token.
"""

import jwt
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple, List
from django.conf import settings
from rest_framework import authentication, exceptions
from rest_framework.request import Request

logger = logging.getLogger(__name__)


class JWTAuthentication(authentication.BaseAuthentication):
    """
    Bearer token authentication.

    The token must be signed with the configured key, carry the platform
    issuer and the ``exp``, ``iat`` and ``sub`` claims.
    """

    keyword = 'Bearer'

    def authenticate(self, request: Request) -> Optional[Tuple['TokenUser', Dict]]:
        auth_header = authentication.get_authorization_header(request)
        if not auth_header:
            return None

        try:
            scheme, _, token = auth_header.decode('utf-8').partition(' ')
        except UnicodeDecodeError:
            raise exceptions.AuthenticationFailed('Invalid token header encoding')

        if scheme.lower() != self.keyword.lower():
            return None
        token = token.strip()
        if not token or ' ' in token:
            raise exceptions.AuthenticationFailed('Invalid token header format')

        payload = self.decode(token)
        return TokenUser(payload), payload

    @staticmethod
    def decode(token: str) -> Dict[str, Any]:
        jwt_settings = settings.JWT_SETTINGS
        try:
            return jwt.decode(
                token,
                jwt_settings['VERIFYING_KEY'],
                algorithms=[jwt_settings['ALGORITHM']],
                issuer=jwt_settings['ISSUER'],
                options={'require': ['exp', 'iat', 'sub', 'iss']}
            )
        except jwt.ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected bearer token: {e}")
            raise exceptions.AuthenticationFailed('Invalid token')

    def authenticate_header(self, request: Request) -> str:
        return self.keyword


class ServiceAuthentication(authentication.BaseAuthentication):
    """
    Service-to-service authentication.

    Callers send the shared ``X-Service-Auth`` token and name themselves
    in ``X-Source-Service``.
    """

    keyword = 'Service'

    def authenticate(self, request: Request) -> Optional[Tuple['ServiceUser', Dict]]:
        service_token = request.headers.get('X-Service-Auth')
        if not service_token:
            return None

        if not settings.SERVICE_AUTH_TOKEN or service_token != settings.SERVICE_AUTH_TOKEN:
            logger.warning(f"Rejected service token from {request.headers.get('X-Source-Service', 'unknown')}")
            raise exceptions.AuthenticationFailed('Invalid service token')

        source_service = request.headers.get('X-Source-Service', 'unknown')
        return ServiceUser(source_service), {'service': source_service}

    def authenticate_header(self, request: Request) -> str:
        return self.keyword


class TokenUser:
    """A user known only by the claims of their token."""

    is_service = False
    is_active = True
    is_authenticated = True
    is_anonymous = False

    def __init__(self, payload: Dict):
        self.payload = payload
        self.user_id = payload.get('sub')
        self.organization_id = payload.get('organization_id')
        self.roles: List[str] = payload.get('roles') or []

    @property
    def id(self):
        return self.user_id

    def __str__(self) -> str:
        return f"TokenUser({self.user_id})"


class ServiceUser:
    """Another platform service. Not bound to a user or organization."""

    is_service = True
    is_active = True
    is_authenticated = True
    is_anonymous = False
    user_id = None
    organization_id = None

    def __init__(self, service_name: str):
        self.service_name = service_name
        self.id = f"service:{service_name}"

    def __str__(self) -> str:
        return f"ServiceUser({self.service_name})"


def issue_access_token(user_id, organization_id=None, roles: List[str] = None) -> str:
    """Sign an access token the way the identity service does."""
    jwt_settings = settings.JWT_SETTINGS
    now = datetime.now(timezone.utc)

    payload = {
        'sub': str(user_id),
        'organization_id': str(organization_id) if organization_id else None,
        'roles': roles or [],
        'iat': now,
        'exp': now + jwt_settings['ACCESS_TOKEN_LIFETIME'],
        'iss': jwt_settings['ISSUER'],
        'type': 'access',
    }
    return jwt.encode(payload, jwt_settings['SIGNING_KEY'], algorithm=jwt_settings['ALGORITHM'])
