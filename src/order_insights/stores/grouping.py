"""Store-side grouping shared by stores that reduce events in process."""

from __future__ import annotations

from datetime import tzinfo
from typing import Any, Dict, Iterable, List, Union

from order_insights.domain.interfaces import GroupedRow
from order_insights.domain.models import Accumulator, GroupKey, MetricEvent
from order_insights.windowing.buckets import is_time_key, native_time_key

EVENT_FIELDS = frozenset({"tenant_id", "customer_id", "status"})


def native_key(event: MetricEvent, group_key: Union[GroupKey, str], tz: tzinfo) -> Any:
    """Key ``event`` the way the store groups it, time keys in ``tz``."""

    if is_time_key(group_key):
        return native_time_key(event.timestamp.astimezone(tz), group_key)
    name = str(group_key)
    if name in EVENT_FIELDS:
        return getattr(event, name)
    return event.group_keys.get(name)


def event_value(event: MetricEvent, accumulator: Accumulator, value_field: str) -> float:
    if accumulator is Accumulator.COUNT:
        return 1.0
    if value_field == "value":
        return float(event.value)
    raw = event.group_keys.get(value_field)
    return float(raw) if raw is not None else 0.0


def group_events(
    events: Iterable[MetricEvent],
    group_key: Union[GroupKey, str],
    accumulator: Accumulator,
    *,
    value_field: str = "value",
    tz: tzinfo,
) -> List[GroupedRow]:
    groups: Dict[Any, float] = {}
    for event in events:
        key = native_key(event, group_key, tz)
        groups[key] = groups.get(key, 0.0) + event_value(event, accumulator, value_field)
    return list(groups.items())
