"""In-process event store for development, demos and tests."""

from __future__ import annotations

from datetime import tzinfo
from typing import Iterable, List, Optional, Union

from order_insights.domain.interfaces import GroupedRow, IEventStore
from order_insights.domain.models import (
    Accumulator,
    EventPredicate,
    GroupKey,
    MetricEvent,
    TimeWindow,
)
from order_insights.windowing.resolver import load_timezone

from .grouping import group_events


class InMemoryEventStore(IEventStore):
    """Keeps events in a list and groups them on demand."""

    def __init__(
        self, events: Iterable[MetricEvent] = (), *, tz: tzinfo | str = "UTC"
    ) -> None:
        self._events: List[MetricEvent] = list(events)
        self._tz = load_timezone(tz) if isinstance(tz, str) else tz

    def add(self, *events: MetricEvent) -> None:
        self._events.extend(events)

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
        return group_events(
            self.query_raw(predicate, window),
            group_key,
            accumulator,
            value_field=value_field,
            tz=self._tz,
        )

    def query_raw(
        self,
        predicate: EventPredicate,
        window: TimeWindow,
        *,
        timeout: Optional[float] = None,
    ) -> List[MetricEvent]:
        return [
            event
            for event in self._events
            if predicate.matches(event) and window.contains(event.timestamp)
        ]
