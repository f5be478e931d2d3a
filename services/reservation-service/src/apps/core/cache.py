# services/reservation-service/src/apps/core/cache.py
"""
Reservation Cache

Key scheme and TTL tiers for reservation reads on top of the shared
read-through cache.

    Reservation.Reservation.<id>.v<views version>
    Reservation.Ticket.<code>.v<views version>
    Reservation.Detail.<reservation id>
    Reservation.Status.<id>
    Reservation.{Stats|CountPerDay|SourceCount}.<org>.v<version>.<range>
"""

from datetime import date
from typing import Optional

from django.conf import settings

from shared.common.cache import ReadThroughCache


def _ttl_minutes(name: str) -> int:
    return settings.RESERVATION[name]


class ReservationCache(ReadThroughCache):
    """Read-through cache for reservation, status and statistics reads."""

    def __init__(self, backend=None):
        super().__init__('Reservation', backend=backend)

    # TTL tiers, seconds

    @property
    def default_ttl(self) -> int:
        return _ttl_minutes('CACHE_TTL_DEFAULT') * 60

    @property
    def half_day_ttl(self) -> int:
        return _ttl_minutes('CACHE_TTL_HALF_DAY') * 60

    @property
    def short_ttl(self) -> int:
        return _ttl_minutes('CACHE_TTL_SHORT') * 60

    # Keys

    def _views_version(self) -> int:
        return self.get_version(self.keys.version('Views', 'all'))

    def reservation_key(self, reservation_id) -> str:
        return self.keys.build('Reservation', reservation_id, f'v{self._views_version()}')

    def ticket_key(self, code: str) -> str:
        return self.keys.build('Ticket', code, f'v{self._views_version()}')

    def detail_key(self, reservation_id) -> str:
        return self.keys.entity('Detail', reservation_id)

    def status_key(self, status_id) -> str:
        return self.keys.entity('Status', status_id)

    def stats_key(
        self,
        kind: str,
        organization_id,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> str:
        version = self.get_version(self.keys.version('Stats', organization_id))
        parts = [kind, organization_id, f'v{version}']
        if start_date:
            parts.append(start_date.strftime('%Y%m%d'))
        if end_date:
            parts.append(end_date.strftime('%Y%m%d'))
        return self.keys.build(*parts)

    # Invalidation

    def invalidate_reservation(self, reservation) -> None:
        """Drop every cached read that can contain this reservation."""
        self.invalidate(
            self.reservation_key(reservation.id),
            self.ticket_key(reservation.code),
            self.detail_key(reservation.id),
        )
        self.invalidate_statistics(reservation.organization_id)

    def invalidate_statistics(self, organization_id) -> None:
        self.bump_version(self.keys.version('Stats', organization_id))

    def invalidate_status(self, status_id) -> None:
        self.invalidate(self.status_key(status_id))

    def invalidate_views(self) -> None:
        """Retire every cached reservation and ticket view at once."""
        self.bump_version(self.keys.version('Views', 'all'))
