# shared/common/api_mixins.py
"""
Shared API Mixins Module.

Standard response envelopes and domain-exception translation for
service views.
"""
import logging
from typing import Any, Callable, Dict, Optional, Type

from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


# =============================================================================
# RESPONSE MIXIN
# =============================================================================

class StandardResponseMixin:
    """
    Success envelopes: ``{"success": true, "data": ...}``.

    Errors never pass through here; ``custom_exception_handler`` renders
    them.
    """

    def success_response(self, data: Any = None, status_code: int = status.HTTP_200_OK) -> Response:
        return Response({'success': True, 'data': data}, status=status_code)

    def created_response(self, data: Any = None) -> Response:
        return self.success_response(data, status_code=status.HTTP_201_CREATED)

    def no_content_response(self) -> Response:
        return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# EXCEPTION TRANSLATION MIXIN
# =============================================================================

class ExceptionTranslationMixin:
    """
    Translate domain exceptions into API exceptions.

    ``exception_translations`` maps a domain exception class to a callable
    building the API exception from the instance. The first matching
    entry in declaration order wins, so list subclasses before their bases.
    Unmapped exceptions go to the regular DRF handling.
    """

    exception_translations: Dict[Type[Exception], Callable[[Exception], Exception]] = {}

    def translate_exception(self, exc: Exception) -> Optional[Exception]:
        for exc_class, builder in self.exception_translations.items():
            if isinstance(exc, exc_class):
                return builder(exc)
        return None

    def handle_exception(self, exc):
        translated = self.translate_exception(exc)
        if translated is not None:
            logger.info(
                f"{type(exc).__name__} -> {type(translated).__name__}: {exc}",
                extra={'error_code': getattr(translated, 'error_code', None)}
            )
            exc = translated
        return super().handle_exception(exc)
