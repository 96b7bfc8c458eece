"""Tenant-scoped dashboard metrics and the composite insights fan-out."""

from __future__ import annotations

from typing import List, Optional, Tuple

from order_insights.aggregation.metrics import (
    COMPLETED,
    SETTLED,
    item_sales,
    order_count,
    order_revenue,
    platform_fees,
    review_count,
)
from order_insights.core.reporting import ReportingComponent, require_tenant
from order_insights.domain.models import (
    AggregateResult,
    CompositeInsights,
    Filter,
    MixResult,
    OrderStatus,
    OrderStatusOverview,
    ProviderOverview,
    ReportQuery,
    TimeWindow,
)
from order_insights.windowing.buckets import rating_scheme, scheme_for

FAMILY_OVERVIEW = "analytics:overview"
FAMILY_REVENUE = "analytics:revenue"
FAMILY_ORDERS = "analytics:orders"
FAMILY_CATEGORIES = "analytics:categories"
FAMILY_USERS = "analytics:users"
FAMILY_HOURLY = "analytics:hourly"
FAMILY_STATUS = "analytics:status"
FAMILY_FEEDBACK = "analytics:feedback"

ALL_TIME = "all-time"
TRAILING_WEEK = "trailing-7d"
OTHERS_LABEL = "Others"
NO_STATE = "N/A"


class InsightsComposer(ReportingComponent):
    """Entry points for one provider's dashboard.

    Every metric counts completed orders only, except the order status
    overview which reports all statuses. Without a ``ReportQuery`` the
    revenue and order trends cover the trailing seven days bucketed by
    weekday; the other metrics cover all recorded history.
    """

    def compose_insights(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> CompositeInsights:
        tenant = require_tenant(tenant_id)
        if query is not None:
            self._resolver.resolve_query(query)

        results = self._gather(
            {
                "overview": lambda: self.overview(tenant, query),
                "revenue_performance": lambda: self.revenue_trend(tenant, query),
                "order_distribution": lambda: self.order_trend(tenant, query),
                "user_distribution_by_city": lambda: self.city_distribution(
                    tenant, query
                ),
                "category_mix": lambda: self.category_mix(tenant, query),
                "hourly_peak_activity": lambda: self.hourly_activity(tenant, query),
            }
        )
        return CompositeInsights(**results)

    def overview(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> ProviderOverview:
        tenant = require_tenant(tenant_id)
        window, token = self._all_time_window(query)

        def compute() -> ProviderOverview:
            revenue = self._engine.scalar(
                window, order_revenue(tenant, statuses=COMPLETED)
            )
            orders = int(
                self._engine.scalar(window, order_count(tenant, statuses=COMPLETED))
            )
            states = self._engine.breakdown(
                window,
                order_revenue(tenant, statuses=COMPLETED),
                "state",
                missing_label=NO_STATE,
            )
            return ProviderOverview(
                total_revenue=revenue,
                total_orders=orders,
                avg_order_value=round(revenue / orders, 2) if orders else 0.0,
                top_performing_state=states[0][0] if states else NO_STATE,
            )

        return self._cached(FAMILY_OVERVIEW, tenant, token, compute, ProviderOverview)

    def revenue_trend(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> AggregateResult:
        tenant = require_tenant(tenant_id)
        window, token = self._trend_window(query)
        scheme = scheme_for(query.filter if query else Filter.WEEK)
        return self._cached(
            FAMILY_REVENUE,
            tenant,
            token,
            lambda: self._engine.aggregate(
                window, scheme, order_revenue(tenant, statuses=COMPLETED)
            ),
            AggregateResult,
        )

    def order_trend(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> AggregateResult:
        tenant = require_tenant(tenant_id)
        window, token = self._trend_window(query)
        scheme = scheme_for(query.filter if query else Filter.WEEK)
        return self._cached(
            FAMILY_ORDERS,
            tenant,
            token,
            lambda: self._engine.aggregate(
                window, scheme, order_count(tenant, statuses=COMPLETED)
            ),
            AggregateResult,
        )

    def category_mix(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> MixResult:
        """Line-item sales per category with each category's share in percent."""

        tenant = require_tenant(tenant_id)
        window, token = self._all_time_window(query)

        def compute() -> MixResult:
            rows = self._engine.breakdown(
                window, item_sales(tenant), "category", missing_label="Uncategorized"
            )
            total = sum(value for _, value in rows)
            return MixResult(
                labels=[label for label, _ in rows],
                values=[value for _, value in rows],
                total=total,
                shares=[
                    round(value / total * 100, 1) if total > 0 else 0.0
                    for _, value in rows
                ],
            )

        return self._cached(FAMILY_CATEGORIES, tenant, token, compute, MixResult)

    def city_distribution(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> AggregateResult:
        """Completed orders per customer city; the tail is folded into Others."""

        tenant = require_tenant(tenant_id)
        window, token = self._all_time_window(query)

        def compute() -> AggregateResult:
            rows = self._engine.breakdown(
                window, order_count(tenant, statuses=COMPLETED), "city"
            )
            top = self._fold_tail(rows, self._config.top_cities)
            values = [value for _, value in top]
            return AggregateResult(
                labels=[label for label, _ in top], values=values, total=sum(values)
            )

        return self._cached(FAMILY_USERS, tenant, token, compute, AggregateResult)

    def hourly_activity(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> AggregateResult:
        tenant = require_tenant(tenant_id)
        window, token = self._all_time_window(query)
        return self._cached(
            FAMILY_HOURLY,
            tenant,
            token,
            lambda: self._engine.aggregate(
                window,
                scheme_for(Filter.TODAY),
                order_count(tenant, statuses=COMPLETED),
            ),
            AggregateResult,
        )

    def order_status_overview(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> OrderStatusOverview:
        tenant = require_tenant(tenant_id)
        window, token = self._all_time_window(query)

        def compute() -> OrderStatusOverview:
            counts = dict(
                self._engine.breakdown(window, order_count(tenant), "status")
            )
            profit = self._engine.scalar(window, platform_fees(tenant))
            return OrderStatusOverview(
                total_orders=int(sum(counts.values())),
                pending_orders=int(counts.get(OrderStatus.PENDING.value, 0)),
                completed_orders=int(
                    sum(counts.get(status, 0) for status in SETTLED)
                ),
                platform_profit=round(profit, 2),
            )

        return self._cached(FAMILY_STATUS, tenant, token, compute, OrderStatusOverview)

    def customer_feedback(
        self, tenant_id: str, query: Optional[ReportQuery] = None
    ) -> AggregateResult:
        tenant = require_tenant(tenant_id)
        window, token = self._all_time_window(query)
        return self._cached(
            FAMILY_FEEDBACK,
            tenant,
            token,
            lambda: self._engine.aggregate(
                window, rating_scheme(), review_count(tenant)
            ),
            AggregateResult,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _all_time_window(self, query: Optional[ReportQuery]) -> Tuple[TimeWindow, str]:
        return self._window(query, self._resolver.all_time, ALL_TIME)

    def _trend_window(self, query: Optional[ReportQuery]) -> Tuple[TimeWindow, str]:
        return self._window(
            query, lambda: self._resolver.trailing_days(7), TRAILING_WEEK
        )

    @staticmethod
    def _fold_tail(
        rows: List[Tuple[str, float]], keep: int
    ) -> List[Tuple[str, float]]:
        head = list(rows[:keep])
        others = sum(value for _, value in rows[keep:])
        if others > 0:
            head.append((OTHERS_LABEL, others))
        return head
