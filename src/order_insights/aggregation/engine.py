"""Reduce grouped event-store results onto dense bucket sequences."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

from order_insights.domain.exceptions import (
    DataIntegrityWarning,
    DependencyError,
    InsightsError,
)
from order_insights.domain.interfaces import GroupedRow, IEventStore
from order_insights.domain.models import (
    AggregateResult,
    EventPredicate,
    GroupKey,
    MetricDefinition,
    TimeWindow,
)
from order_insights.windowing.buckets import BucketScheme


class AggregationEngine:
    """Read-only calculations on top of an ``IEventStore``.

    Fixed schemes are zero-filled before grouped rows are merged so every
    bucket appears in order. Dynamic (custom range) schemes only report the
    keys the store actually returned. Store failures always propagate as
    ``DependencyError``; only absent buckets become zero.
    """

    def __init__(
        self,
        store: IEventStore,
        *,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)

    def aggregate(
        self, window: TimeWindow, scheme: BucketScheme, metric: MetricDefinition
    ) -> AggregateResult:
        rows = self._query_grouped(metric, window, scheme.group_key)
        if scheme.dynamic:
            scheme = scheme.materialize(key for key, _ in rows)

        values = scheme.empty_values()
        for key, value in rows:
            index = scheme.index_of_key(key)
            if index is None:
                if not scheme.skips(key):
                    self._drop(metric, scheme, key, value)
                continue
            values[index] += value

        return AggregateResult(
            labels=list(scheme.labels), values=values, total=sum(values)
        )

    def breakdown(
        self,
        window: TimeWindow,
        metric: MetricDefinition,
        dimension: str,
        *,
        missing_label: str = "Unknown",
    ) -> List[Tuple[str, float]]:
        """Totals per dimension value, largest first, ties broken by label."""

        totals: dict[str, float] = {}
        for key, value in self._query_grouped(metric, window, dimension):
            label = missing_label if key is None else str(key)
            totals[label] = totals.get(label, 0.0) + value
        return sorted(totals.items(), key=lambda item: (-item[1], item[0]))

    def scalar(self, window: TimeWindow, metric: MetricDefinition) -> float:
        rows = self._query_grouped(metric, window, GroupKey.ALL)
        return sum(value for _, value in rows)

    def distinct_count(
        self,
        window: TimeWindow,
        predicate: EventPredicate,
        field: str = "customer_id",
    ) -> int:
        events = self._call(
            "query_raw",
            lambda: self._store.query_raw(predicate, window, timeout=self._timeout),
        )
        seen = set()
        for event in events:
            value = (
                getattr(event, field)
                if field in type(event).model_fields
                else event.group_keys.get(field)
            )
            if value is not None:
                seen.add(value)
        return len(seen)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _query_grouped(
        self,
        metric: MetricDefinition,
        window: TimeWindow,
        group_key: Union[GroupKey, str],
    ) -> List[GroupedRow]:
        return self._call(
            "query_grouped",
            lambda: self._store.query_grouped(
                metric.predicate,
                window,
                group_key,
                metric.accumulator,
                value_field=metric.value_field,
                timeout=self._timeout,
            ),
        )

    def _call(self, operation: str, query: Callable[[], Iterable[Any]]) -> List[Any]:
        try:
            return list(query())
        except InsightsError:
            raise
        except Exception as exc:
            self._logger.exception(
                "event_store_failure", extra={"operation": operation}
            )
            raise DependencyError(
                "Unexpected event store failure",
                context={"operation": operation, "store": type(self._store).__name__},
            ) from exc

    def _drop(
        self, metric: MetricDefinition, scheme: BucketScheme, key: Any, value: float
    ) -> None:
        warning = DataIntegrityWarning(
            context={
                "metric": metric.name,
                "group_key": str(getattr(scheme.group_key, "value", scheme.group_key)),
                "native_key": key,
                "value": value,
            }
        )
        self._logger.warning("bucket_dropped: %s", warning, extra={"code": warning.code})
