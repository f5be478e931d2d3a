# shared/common/cache.py
"""
Read-Through Cache Utilities

Thin layer over the Django cache (django-redis in deployed services)
providing keyed read-through lookups, explicit invalidation and
version counters for groups of keys that cannot be enumerated.
"""

import logging
from typing import Any, Callable, Iterable, Optional

from django.core.cache import cache as default_cache

logger = logging.getLogger(__name__)

_MISSING = object()


class CacheKeyBuilder:
    """
    Helper class for building consistent cache keys.

    Keys follow ``{domain}.{EntityType}.{identifier}``, e.g.
    ``Reservation.Ticket.ORG-7XK2Q``.
    """

    def __init__(self, domain: str):
        self.domain = domain

    def build(self, *parts: Any) -> str:
        """Build cache key from parts"""
        return '.'.join([self.domain] + [str(p) for p in parts])

    def entity(self, entity_type: str, identifier: Any) -> str:
        return self.build(entity_type, identifier)

    def version(self, group: str, identifier: Any) -> str:
        return self.build('Version', group, identifier)


class ReadThroughCache:
    """
    Keyed read-through cache.

    Usage:
        cache = ReadThroughCache('Reservation')
        view = cache.get_or_create(
            cache.keys.entity('Reservation', reservation_id),
            lambda: load(reservation_id),
            ttl=3600,
        )

    Backend errors are logged and degrade to calling the factory, so the
    store of record stays authoritative when the cache is unavailable.
    ``None`` results are never cached.
    """

    def __init__(self, domain: str, backend=None):
        self.keys = CacheKeyBuilder(domain)
        self._backend = backend

    @property
    def backend(self):
        return self._backend or default_cache

    def get(self, key: str) -> Optional[Any]:
        try:
            return self.backend.get(key)
        except Exception as e:
            logger.error(f"Cache get error: {e}", extra={'cache_key': key})
            return None

    def set(self, key: str, value: Any, ttl: int = None) -> bool:
        try:
            self.backend.set(key, value, timeout=ttl)
            return True
        except Exception as e:
            logger.error(f"Cache set error: {e}", extra={'cache_key': key})
            return False

    def get_or_create(self, key: str, factory: Callable[[], Any], ttl: int = None) -> Any:
        """Return the cached value for ``key``, populating it from ``factory`` on a miss."""
        try:
            value = self.backend.get(key, _MISSING)
        except Exception as e:
            logger.error(f"Cache get error: {e}", extra={'cache_key': key})
            return factory()

        if value is not _MISSING:
            return value

        value = factory()
        if value is not None:
            self.set(key, value, ttl=ttl)
        return value

    def invalidate(self, *keys: str) -> None:
        """Drop one or more keys."""
        self.invalidate_many(keys)

    def invalidate_many(self, keys: Iterable[str]) -> None:
        keys = [k for k in keys if k]
        if not keys:
            return
        try:
            self.backend.delete_many(keys)
            logger.debug(f"Invalidated cache keys: {', '.join(keys)}")
        except Exception as e:
            logger.error(f"Cache invalidation error: {e}", extra={'cache_keys': keys})

    # Version counters

    def get_version(self, key: str) -> int:
        """Current value of a version counter, starting at 1."""
        try:
            version = self.backend.get(key)
            if version is None:
                self.backend.add(key, 1, timeout=None)
                version = self.backend.get(key) or 1
            return int(version)
        except Exception as e:
            logger.error(f"Cache version error: {e}", extra={'cache_key': key})
            return 1

    def bump_version(self, key: str) -> int:
        """
        Advance a version counter so every key built from the previous
        version becomes unreachable.
        """
        try:
            return self.backend.incr(key)
        except ValueError:
            self.backend.set(key, 2, timeout=None)
            return 2
        except Exception as e:
            logger.error(f"Cache version bump error: {e}", extra={'cache_key': key})
            return 0
