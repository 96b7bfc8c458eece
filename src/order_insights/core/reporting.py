"""Shared plumbing for the tenant and platform reporting facades."""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar

from order_insights.aggregation.engine import AggregationEngine
from order_insights.cache.cache_aside import CacheAside, cache_key
from order_insights.core.concurrency import gather
from order_insights.core.config import InsightsConfig
from order_insights.domain.exceptions import ValidationError
from order_insights.domain.models import ReportQuery, TimeWindow
from order_insights.windowing.resolver import TimeWindowResolver

T = TypeVar("T")


class ReportingComponent:
    """Resolves windows, builds cache keys and fans out computations."""

    def __init__(
        self,
        engine: AggregationEngine,
        cache: CacheAside,
        resolver: TimeWindowResolver,
        config: InsightsConfig,
        *,
        executor: Executor,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._engine = engine
        self._cache = cache
        self._resolver = resolver
        self._config = config
        self._executor = executor
        self._logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )

    def _cached(
        self,
        family: str,
        scope: Optional[str],
        token: str,
        compute: Callable[[], T],
        model: Any,
    ) -> T:
        key = cache_key(family, scope, token)
        return self._cache.with_cache(key, self._config.ttl_for(family), compute, model)

    def _window(
        self,
        query: Optional[ReportQuery],
        default: Callable[[], TimeWindow],
        default_token: str,
    ) -> Tuple[TimeWindow, str]:
        """Resolve ``query`` (or the default window) plus its cache token."""

        if query is None:
            return default(), default_token
        window = self._resolver.resolve_query(query)
        return window, f"{query.filter.value}:{window.cache_token}"

    def _gather(self, tasks: Mapping[str, Callable[[], Any]]) -> Dict[str, Any]:
        return gather(
            tasks,
            executor=self._executor,
            timeout=self._config.request_timeout_seconds,
        )

    def _validate_page(self, page: int, limit: Optional[int]) -> Tuple[int, int]:
        resolved_limit = self._config.default_page_limit if limit is None else limit
        if page < 1:
            raise ValidationError("page must be at least 1", field="page")
        if not 1 <= resolved_limit <= self._config.max_page_limit:
            raise ValidationError(
                f"limit must be between 1 and {self._config.max_page_limit}",
                field="limit",
            )
        return page, resolved_limit


def require_tenant(tenant_id: Optional[str]) -> str:
    if tenant_id is None or not str(tenant_id).strip():
        raise ValidationError("tenant_id is required", field="tenant_id")
    return str(tenant_id).strip()
