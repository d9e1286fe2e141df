"""
Unit tests for the analytics cache (Redis replaced by an in-memory client).
"""

import fnmatch
import pytest
from datetime import datetime
from decimal import Decimal
from flask import Flask

from clearvue.services.cache_service import CacheService
from clearvue.utils.serializers import to_jsonable


class FakeRedis:
    """Minimal stand-in for the redis client calls CacheService makes."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def scan(self, cursor, match='*', count=100):
        return 0, [k for k in list(self.store) if fnmatch.fnmatch(k, match)]

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:

    def __init__(self, client):
        self.client = client
        self.keys = []

    def delete(self, key):
        self.keys.append(key)

    def execute(self):
        for key in self.keys:
            self.client.store.pop(key, None)
            self.client.ttls.pop(key, None)


@pytest.fixture
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr('clearvue.services.cache_service.redis.from_url', lambda *args, **kwargs: client)
    return client


def _make_cache(enabled=True):
    app = Flask(__name__)
    app.config.update(
        CACHE_ENABLED=enabled,
        CACHE_KEY_PREFIX='cv-test',
        CACHE_ANALYTICS_TTL=90,
        REDIS_URL='redis://localhost:6379/0',
    )
    return CacheService(app)


def _rollup():
    return {
        'timeframe': 'weekly',
        'start': datetime(2026, 6, 8, 12, 0),
        'end': datetime(2026, 6, 15, 12, 0),
        'total_revenue': Decimal('550.00'),
        'rows': [{'product_id': 1, 'name': 'Jacket', 'total_revenue': Decimal('300.00'), 'total_units': 2}],
    }


class TestMemoize:

    def test_cached_and_fresh_payloads_match(self, fake_redis):
        cache = _make_cache()
        calls = []

        def loader():
            calls.append(1)
            return _rollup()

        fresh = cache.memoize('analytics', 'rollup:weekly', loader)
        cached = cache.memoize('analytics', 'rollup:weekly', loader)

        assert len(calls) == 1
        assert fresh == cached == to_jsonable(_rollup())
        assert cached['total_revenue'] == '550.00'
        assert cached['start'] == '2026-06-08T12:00:00'

    def test_keys_are_namespaced_with_ttl(self, fake_redis):
        cache = _make_cache()

        cache.memoize('analytics', 'overdue', lambda: [])

        assert list(fake_redis.store) == ['cv-test:analytics:overdue']
        assert fake_redis.ttls['cv-test:analytics:overdue'] == 90

    def test_invalidate_module_forces_reload(self, fake_redis):
        cache = _make_cache()
        cache.memoize('analytics', 'rollup:weekly', _rollup)
        cache.memoize('analytics', 'overdue', lambda: [])
        cache.set('other', 'keep', {'a': 1})

        assert cache.invalidate_module('analytics') == 2

        assert list(fake_redis.store) == ['cv-test:other:keep']
        reloaded = cache.memoize('analytics', 'rollup:weekly', lambda: {'total_revenue': Decimal('1.00')})
        assert reloaded == {'total_revenue': '1.00'}


class TestDisabledCache:

    def test_disabled_cache_always_loads(self):
        cache = _make_cache(enabled=False)
        calls = []

        def loader():
            calls.append(1)
            return _rollup()

        first = cache.memoize('analytics', 'rollup:weekly', loader)
        second = cache.memoize('analytics', 'rollup:weekly', loader)

        assert len(calls) == 2
        assert first == second == to_jsonable(_rollup())
        assert cache.is_available() is False
        assert cache.invalidate_module('analytics') == 0
