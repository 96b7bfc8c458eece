"""Domain-level interfaces for the reporting engine's external collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, List, Optional, Protocol, Tuple, Union

from .models import Accumulator, EventPredicate, GroupKey, MetricEvent, TimeWindow

GroupedRow = Tuple[Any, float]
Clock = Callable[[], datetime]


class IEventStore(Protocol):
    """Read-only query surface of the event store (the source of truth)."""

    def query_grouped(
        self,
        predicate: EventPredicate,
        window: TimeWindow,
        group_key: Union[GroupKey, str],
        accumulator: Accumulator,
        *,
        value_field: str = "value",
        timeout: Optional[float] = None,
    ) -> List[GroupedRow]:
        """Return ``(native_key, reduced_value)`` pairs, in no particular order."""

    def query_raw(
        self,
        predicate: EventPredicate,
        window: TimeWindow,
        *,
        timeout: Optional[float] = None,
    ) -> List[MetricEvent]:
        """Return matching events for per-event post-processing."""


class ICacheClient(Protocol):
    """Best-effort key/value side-store. Failures raise ``CacheError``."""

    def get(self, key: str) -> Optional[bytes]:
        """Return the stored payload or ``None`` when absent or expired."""

    def set(self, key: str, payload: bytes, ttl_seconds: int) -> bool:
        """Overwrite ``key`` wholesale; return True when the write was accepted."""
