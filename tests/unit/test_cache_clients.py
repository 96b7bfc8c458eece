import threading

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from order_insights.cache.memory_cache import InMemoryCacheClient
from order_insights.cache.redis_cache import RedisCacheClient
from order_insights.domain.exceptions import CacheError


class _Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class _FakeRedis:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.store = {}
        self.set_calls = []

    def get(self, key):
        if self.fail:
            raise RedisConnectionError("connection refused")
        return self.store.get(key)

    def set(self, key, value, ex=None):
        if self.fail:
            raise RedisConnectionError("connection refused")
        self.set_calls.append((key, value, ex))
        self.store[key] = value
        return True

    def ping(self):
        if self.fail:
            raise RedisConnectionError("connection refused")
        return True


def test_memory_cache_expires_entries():
    clock = _Clock()
    cache = InMemoryCacheClient(clock=clock)

    assert cache.set("k", b"payload", 10)
    assert cache.get("k") == b"payload"

    clock.now += 9.9
    assert cache.get("k") == b"payload"

    clock.now += 0.1
    assert cache.get("k") is None
    assert len(cache) == 0


def test_memory_cache_rejects_non_positive_ttl():
    cache = InMemoryCacheClient()

    assert cache.set("k", b"payload", 0) is False
    assert cache.get("k") is None


def test_memory_cache_clear():
    cache = InMemoryCacheClient()
    cache.set("a", b"1", 5)
    cache.set("b", b"2", 5)

    cache.clear()

    assert len(cache) == 0


def test_memory_cache_len_waits_for_writers():
    cache = InMemoryCacheClient()
    cache.set("a", b"1", 5)
    sizes = []

    with cache._lock:
        reader = threading.Thread(target=lambda: sizes.append(len(cache)))
        reader.start()
        reader.join(timeout=0.1)
        assert reader.is_alive()
        cache._entries["b"] = (b"2", float("inf"))

    reader.join(timeout=2)
    assert sizes == [2]


def test_redis_client_round_trip_uses_expiry():
    fake = _FakeRedis()
    client = RedisCacheClient(fake)

    assert client.set("k", b"payload", 3600)
    assert client.get("k") == b"payload"
    assert fake.set_calls == [("k", b"payload", 3600)]
    assert client.get("missing") is None


def test_redis_client_encodes_string_replies():
    fake = _FakeRedis()
    fake.store["k"] = '{"a": 1}'

    assert RedisCacheClient(fake).get("k") == b'{"a": 1}'


def test_redis_client_skips_non_positive_ttl():
    fake = _FakeRedis()

    assert RedisCacheClient(fake).set("k", b"payload", 0) is False
    assert fake.set_calls == []


def test_redis_failures_become_cache_errors():
    client = RedisCacheClient(_FakeRedis(fail=True))

    with pytest.raises(CacheError) as read_error:
        client.get("k")
    with pytest.raises(CacheError):
        client.set("k", b"payload", 10)

    assert read_error.value.code == "CACHE_UNAVAILABLE"
    assert isinstance(read_error.value.__cause__, RedisConnectionError)


def test_redis_ping_reports_health():
    assert RedisCacheClient(_FakeRedis()).ping() is True
    assert RedisCacheClient(_FakeRedis(fail=True)).ping() is False


def test_redis_from_url_applies_socket_timeouts():
    client = RedisCacheClient.from_url("redis://localhost:6379/0", timeout=0.25)

    kwargs = client._client.connection_pool.connection_kwargs  # type: ignore[attr-defined]
    assert kwargs["socket_timeout"] == 0.25
    assert kwargs["socket_connect_timeout"] == 0.25
