"""Process-local cache client with TTL expiry."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from order_insights.domain.interfaces import ICacheClient


class InMemoryCacheClient(ICacheClient):
    """Dictionary-backed cache; entries expire ``ttl_seconds`` after writing."""

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        self._entries: Dict[str, Tuple[bytes, float]] = {}
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            payload, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return payload

    def set(self, key: str, payload: bytes, ttl_seconds: int) -> bool:
        if ttl_seconds <= 0:
            return False
        with self._lock:
            self._entries[key] = (bytes(payload), self._clock() + ttl_seconds)
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
