# Shared Common Library for the booking platform services.
# Exceptions, authentication, middleware, pagination, caching,
# model mixins and inter-service clients.

__version__ = "1.0.0"

from .exceptions import (
    BaseAPIException,
    ValidationException,
    PaymentRequiredException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    InternalServerException,
    ServiceUnavailableException,
    ExternalServiceError,
    ExternalServiceTimeout,
)

__all__ = [
    '__version__',

    # Exceptions
    'BaseAPIException',
    'ValidationException',
    'PaymentRequiredException',
    'ForbiddenException',
    'NotFoundException',
    'ConflictException',
    'InternalServerException',
    'ServiceUnavailableException',
    'ExternalServiceError',
    'ExternalServiceTimeout',
]
