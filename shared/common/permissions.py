# shared/common/permissions.py
"""
Custom Permission Classes for Service and Organization Access
"""

from rest_framework import permissions
from rest_framework.request import Request
from rest_framework.views import APIView
import logging

logger = logging.getLogger(__name__)


def is_service(request: Request) -> bool:
    return bool(getattr(request.user, 'is_service', False))


class IsOrganizationMember(permissions.BasePermission):
    """Allow users whose token carries an organization"""

    message = 'Organization membership is required.'

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not getattr(request.user, 'is_authenticated', False):
            return False
        return bool(getattr(request.user, 'organization_id', None))


class IsServiceOrOrganizationMember(IsOrganizationMember):
    """Allow service principals and organization members"""

    message = 'Only services and organization members may perform this action.'

    def has_permission(self, request: Request, view: APIView) -> bool:
        if is_service(request):
            return True
        allowed = super().has_permission(request, view)
        if not allowed:
            logger.info(f"Organization access denied for {request.user}")
        return allowed
