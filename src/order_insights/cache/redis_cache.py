"""Redis cache client with bounded socket timeouts."""

from __future__ import annotations

import logging
from typing import Optional

import redis
from redis.exceptions import RedisError

from order_insights.domain.exceptions import CacheError
from order_insights.domain.interfaces import ICacheClient


class RedisCacheClient(ICacheClient):
    """Thin wrapper translating redis-py failures into ``CacheError``."""

    def __init__(
        self, client: redis.Redis, *, logger: Optional[logging.Logger] = None
    ) -> None:
        self._client = client
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_url(cls, url: str, *, timeout: float = 0.5) -> "RedisCacheClient":
        client = redis.Redis.from_url(
            url,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client)

    def get(self, key: str) -> Optional[bytes]:
        try:
            value = self._client.get(key)
        except RedisError as exc:
            raise CacheError(
                "Redis read failed", context={"key": key, "error": str(exc)}
            ) from exc
        if value is None:
            return None
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    def set(self, key: str, payload: bytes, ttl_seconds: int) -> bool:
        if ttl_seconds <= 0:
            return False
        try:
            return bool(self._client.set(key, payload, ex=ttl_seconds))
        except RedisError as exc:
            raise CacheError(
                "Redis write failed", context={"key": key, "error": str(exc)}
            ) from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except RedisError as exc:
            self._logger.warning("cache_ping_failed", extra={"error": str(exc)})
            return False
