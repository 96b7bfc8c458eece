"""Top-level facade consumed by request handlers."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, List, Optional, TypeVar

from order_insights.core.composer import InsightsComposer
from order_insights.core.platform import PlatformReports
from order_insights.domain.exceptions import InsightsError, error_response
from order_insights.domain.models import (
    AggregateResult,
    AnalyticsReport,
    CompositeInsights,
    MasterAnalytics,
    Page,
    ProviderRanking,
    ReportQuery,
    TrendingItem,
)

T = TypeVar("T")


class ReportingService:
    """Bundles tenant and platform reporting behind raw request parameters.

    Request handlers pass the unparsed ``filter``/``start_date``/``end_date``
    values; they are validated once here and the typed query flows down.
    """

    def __init__(
        self,
        insights: InsightsComposer,
        platform: PlatformReports,
        *,
        executor: Optional[Executor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._insights = insights
        self._platform = platform
        self._executor = executor
        self._logger = logger or logging.getLogger(__name__)

    @property
    def insights(self) -> InsightsComposer:
        return self._insights

    @property
    def platform(self) -> PlatformReports:
        return self._platform

    def provider_insights(
        self,
        tenant_id: str,
        filter: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> CompositeInsights:
        query = self._query(filter, start_date, end_date)
        return self._run(
            "provider_insights",
            lambda: self._insights.compose_insights(tenant_id, query),
        )

    def provider_feedback(self, tenant_id: str) -> AggregateResult:
        return self._run(
            "provider_feedback", lambda: self._insights.customer_feedback(tenant_id)
        )

    def master_analytics(
        self,
        filter: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> MasterAnalytics:
        query = ReportQuery.build(filter, start_date, end_date)
        return self._run("master_analytics", lambda: self._platform.master(query))

    def analytics_report(
        self,
        filter: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> AnalyticsReport:
        query = ReportQuery.build(filter, start_date, end_date)
        return self._run("analytics_report", lambda: self._platform.reports(query))

    def top_providers(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        filter: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Page[ProviderRanking]:
        query = self._query(filter, start_date, end_date)
        return self._run(
            "top_providers",
            lambda: self._platform.top_providers(query, page=page, limit=limit),
        )

    def trending_items(
        self,
        filter: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 3,
    ) -> List[TrendingItem]:
        query = ReportQuery.build(filter, start_date, end_date)
        return self._run(
            "trending_items",
            lambda: self._platform.trending_items(query, limit=limit),
        )

    def close(self) -> None:
        if isinstance(self._executor, ThreadPoolExecutor):
            self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "ReportingService":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _query(
        filter: Optional[str], start_date: Optional[str], end_date: Optional[str]
    ) -> Optional[ReportQuery]:
        """No filter at all selects each metric's default window."""

        if filter is None and start_date is None and end_date is None:
            return None
        return ReportQuery.build(filter, start_date, end_date)

    def _run(self, operation: str, call: Callable[[], T]) -> T:
        try:
            return call()
        except InsightsError as exc:
            response = error_response(exc)
            self._logger.warning(
                "report_failed",
                extra={
                    "operation": operation,
                    "code": response.code,
                    "status": response.status,
                    "error": str(exc),
                },
            )
            raise
