# shared/common/middleware.py
"""
Request Tracing Middleware

Every request gets an ``X-Request-ID`` (taken from the caller or freshly
generated). The id is echoed on the response, attached to log records
through ``RequestIDLogFilter`` and forwarded to collaborator services by
the HTTP clients.
"""

import uuid
import time
import logging
from contextvars import ContextVar
from typing import Callable, Optional
from django.http import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'
HEALTH_PATHS = ('/health/', '/health/ready/')

_current_request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


def get_request_id() -> Optional[str]:
    """Id of the request being served on this thread, if any."""
    return _current_request_id.get()


class RequestIDLogFilter(logging.Filter):
    """Adds ``request_id`` to every record so formatters can emit it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'request_id'):
            record.request_id = get_request_id()
        return True


class RequestIDMiddleware:
    """Assigns and propagates the request id."""

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.request_id = request_id

        token = _current_request_id.set(request_id)
        try:
            response = self.get_response(request)
        finally:
            _current_request_id.reset(token)

        response[REQUEST_ID_HEADER] = request_id
        return response


class LoggingMiddleware:
    """Logs one line per request with its outcome and duration."""

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        if request.path in HEALTH_PATHS:
            return self.get_response(request)

        started = time.monotonic()
        response = self.get_response(request)
        duration_ms = (time.monotonic() - started) * 1000

        user = getattr(request, 'user', None)
        log_method = logger.warning if response.status_code >= 400 else logger.info
        log_method(
            f"{request.method} {request.path} - {response.status_code}",
            extra={
                'method': request.method,
                'path': request.path,
                'status_code': response.status_code,
                'duration_ms': round(duration_ms, 2),
                'principal': str(user) if user is not None else None,
            }
        )

        response['X-Response-Time'] = f"{duration_ms:.2f}ms"
        return response
