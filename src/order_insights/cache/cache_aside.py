"""Get-or-compute-and-store caching in front of metric computations."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, Optional, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from order_insights.domain.interfaces import ICacheClient

T = TypeVar("T")

PLATFORM_SCOPE = "platform"


def cache_key(family: str, scope: Optional[str], *parts: str) -> str:
    """Build ``family:scope[:part...]``; a missing scope means platform-wide."""

    segments = [family, scope or PLATFORM_SCOPE, *[part for part in parts if part]]
    return ":".join(segments)


@lru_cache(maxsize=None)
def _adapter(model: Any) -> TypeAdapter:
    return TypeAdapter(model)


class CacheAside:
    """Fail-open cache-aside policy. The event store stays the source of truth."""

    def __init__(
        self,
        client: Optional[ICacheClient],
        *,
        enabled: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._enabled = enabled
        self._logger = logger or logging.getLogger(__name__)

    @property
    def active(self) -> bool:
        return self._enabled and self._client is not None

    def with_cache(
        self,
        key: str,
        ttl_seconds: int,
        compute: Callable[[], T],
        model: Any,
    ) -> T:
        """Return the cached value for ``key`` or compute, store and return it.

        ``model`` is the type the payload is validated into on a hit. A TTL of
        zero or less bypasses the cache entirely.
        """

        if not self.active or ttl_seconds <= 0:
            return compute()

        adapter = _adapter(model)
        cached = self._read(key, adapter)
        if cached is not None:
            return cached

        value = compute()
        self._write(key, ttl_seconds, value, adapter)
        return value

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _read(self, key: str, adapter: TypeAdapter) -> Any:
        try:
            payload = self._client.get(key)
        except Exception as exc:
            self._logger.warning(
                "cache_read_failed", extra={"cache_key": key, "error": str(exc)}
            )
            return None
        if payload is None:
            self._logger.debug("cache_miss", extra={"cache_key": key})
            return None
        try:
            value = adapter.validate_json(payload)
        except PydanticValidationError as exc:
            self._logger.warning(
                "cache_payload_invalid", extra={"cache_key": key, "error": str(exc)}
            )
            return None
        self._logger.debug("cache_hit", extra={"cache_key": key})
        return value

    def _write(self, key: str, ttl_seconds: int, value: Any, adapter: TypeAdapter) -> None:
        try:
            accepted = self._client.set(key, adapter.dump_json(value), ttl_seconds)
        except Exception as exc:
            self._logger.warning(
                "cache_write_failed", extra={"cache_key": key, "error": str(exc)}
            )
            return
        if not accepted:
            self._logger.warning("cache_write_rejected", extra={"cache_key": key})
