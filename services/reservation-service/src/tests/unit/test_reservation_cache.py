# services/reservation-service/src/tests/unit/test_reservation_cache.py
"""
Unit Tests for the Reservation Cache
"""

import uuid
from datetime import date
from unittest.mock import MagicMock

from apps.core.cache import ReservationCache
from shared.common.cache import CacheKeyBuilder, ReadThroughCache


class TestCacheKeyBuilder:

    def test_keys(self):
        keys = CacheKeyBuilder('Reservation')

        assert keys.entity('Ticket', 'ORG-7XK2Q') == 'Reservation.Ticket.ORG-7XK2Q'
        assert keys.version('Stats', 'org-1') == 'Reservation.Version.Stats.org-1'


class TestReadThroughCache:
    """Tests for read-through behaviour."""

    def test_factory_called_once(self):
        cache = ReadThroughCache('Test')
        factory = MagicMock(return_value={'value': 1})

        assert cache.get_or_create('Test.key', factory) == {'value': 1}
        assert cache.get_or_create('Test.key', factory) == {'value': 1}
        assert factory.call_count == 1

    def test_none_is_not_cached(self):
        cache = ReadThroughCache('Test')
        factory = MagicMock(return_value=None)

        cache.get_or_create('Test.none', factory)
        cache.get_or_create('Test.none', factory)

        assert factory.call_count == 2

    def test_backend_failure_degrades_to_factory(self):
        backend = MagicMock()
        backend.get.side_effect = ConnectionError('redis down')
        cache = ReadThroughCache('Test', backend=backend)

        assert cache.get_or_create('Test.key', lambda: 'fresh') == 'fresh'
        assert cache.get('Test.key') is None

    def test_failed_invalidation_is_logged_not_raised(self):
        backend = MagicMock()
        backend.delete_many.side_effect = ConnectionError('redis down')

        ReadThroughCache('Test', backend=backend).invalidate('Test.key')

    def test_version_counter(self):
        cache = ReadThroughCache('Test')

        assert cache.get_version('Test.Version.x') == 1
        assert cache.bump_version('Test.Version.x') == 2
        assert cache.get_version('Test.Version.x') == 2

    def test_bump_missing_version(self):
        cache = ReadThroughCache('Test')
        assert cache.bump_version('Test.Version.fresh') == 2


class TestReservationCache:
    """Tests for reservation keys and invalidation."""

    def test_ttls_in_seconds(self):
        cache = ReservationCache()

        assert cache.default_ttl == 1440 * 60
        assert cache.half_day_ttl == 720 * 60
        assert cache.short_ttl == 3600

    def test_stats_key_changes_after_invalidation(self):
        cache = ReservationCache()
        org = uuid.uuid4()

        before = cache.stats_key('Stats', org, date(2030, 3, 1), date(2030, 3, 31))
        cache.invalidate_statistics(org)
        after = cache.stats_key('Stats', org, date(2030, 3, 1), date(2030, 3, 31))

        assert before == f'Reservation.Stats.{org}.v1.20300301.20300331'
        assert after == f'Reservation.Stats.{org}.v2.20300301.20300331'

    def test_invalidate_reservation(self):
        cache = ReservationCache()
        reservation = MagicMock(id=uuid.uuid4(), code='ORG-7XK2Q', organization_id=uuid.uuid4())
        for key in (
            cache.reservation_key(reservation.id),
            cache.ticket_key(reservation.code),
            cache.detail_key(reservation.id),
        ):
            cache.set(key, 'cached')

        cache.invalidate_reservation(reservation)

        assert cache.get(cache.reservation_key(reservation.id)) is None
        assert cache.get(cache.ticket_key('ORG-7XK2Q')) is None
        assert cache.get(cache.detail_key(reservation.id)) is None

    def test_invalidate_views(self):
        cache = ReservationCache()
        reservation_id = uuid.uuid4()
        cache.set(cache.reservation_key(reservation_id), 'cached')
        cache.set(cache.ticket_key('ORG-7XK2Q'), 'cached')

        cache.invalidate_views()

        assert cache.reservation_key(reservation_id) == f'Reservation.Reservation.{reservation_id}.v2'
        assert cache.get(cache.reservation_key(reservation_id)) is None
        assert cache.get(cache.ticket_key('ORG-7XK2Q')) is None
