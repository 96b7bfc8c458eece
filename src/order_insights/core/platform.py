"""Platform-wide (admin) reports across every provider."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from order_insights.aggregation.metrics import (
    CANCELLED,
    FULFILLED,
    SETTLED,
    item_lines,
    item_quantity,
    item_sales,
    order_count,
    order_revenue,
    orders_predicate,
    review_count,
    signup_count,
)
from order_insights.cache.cache_aside import PLATFORM_SCOPE
from order_insights.core.reporting import ReportingComponent
from order_insights.domain.exceptions import ValidationError
from order_insights.domain.models import (
    AggregateResult,
    AnalyticsReport,
    CustomerAnalysis,
    MasterAnalytics,
    MetricDefinition,
    Page,
    Pagination,
    PlatformOverview,
    ProviderRanking,
    ReportQuery,
    StateBreakdown,
    TimeWindow,
    TrendingItem,
)
from order_insights.windowing.buckets import rating_scheme, report_scheme, scheme_for
from order_insights.windowing.resolver import EPOCH

FAMILY_OVERVIEW = "admin:overview"
FAMILY_REVENUE = "admin:revenue"
FAMILY_ORDERS = "admin:orders"
FAMILY_TOP_PROVIDERS = "admin:top-providers"
FAMILY_RATINGS = "admin:ratings"
FAMILY_STATES = "admin:states"
FAMILY_CUSTOMERS = "admin:customers"
FAMILY_TRENDING = "admin:trending"
FAMILY_REPORT_REVENUE = "admin:report-revenue"
FAMILY_REPORT_VOLUME = "admin:report-volume"

ALL_TIME = "all-time"
TOP_STATES = 6


class PlatformReports(ReportingComponent):
    """Admin dashboard entry points.

    Orders are counted across all providers and exclude cancelled ones,
    except the provider ranking which only counts settled orders. Missing
    queries default to today.
    """

    def master(self, query: Optional[ReportQuery] = None) -> MasterAnalytics:
        query = self._query(query)
        results = self._gather(
            {
                "overview": lambda: self.overview(query),
                "revenue": lambda: self.revenue_trend(query),
                "orders_overview": lambda: self.order_trend(query),
            }
        )
        return MasterAnalytics(**results)

    def reports(self, query: Optional[ReportQuery] = None) -> AnalyticsReport:
        query = self._query(query)
        results = self._gather(
            {
                "revenue_overview": lambda: self.report_revenue_trend(query),
                "volume_overview": lambda: self.report_volume_trend(query),
                "state_analysis": lambda: self.state_analysis(query),
                "customer_analysis": lambda: self.customer_analysis(query),
            }
        )
        return AnalyticsReport(**results)

    def overview(self, query: Optional[ReportQuery] = None) -> PlatformOverview:
        query = self._query(query)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)

        def compute() -> PlatformOverview:
            orders = self._engine.scalar(window, order_count(exclude=CANCELLED))
            revenue = self._engine.scalar(window, order_revenue(exclude=CANCELLED))
            # Customers are counted cumulatively up to the end of the window.
            customers = self._engine.scalar(
                TimeWindow(start=EPOCH, end=window.end), signup_count()
            )
            return PlatformOverview(
                total_orders=int(orders),
                total_revenue=round(revenue, 2),
                total_customers=int(customers),
            )

        return self._cached(
            FAMILY_OVERVIEW, PLATFORM_SCOPE, token, compute, PlatformOverview
        )

    def revenue_trend(self, query: Optional[ReportQuery] = None) -> AggregateResult:
        query = self._query(query)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)
        return self._cached(
            FAMILY_REVENUE,
            PLATFORM_SCOPE,
            token,
            lambda: self._engine.aggregate(
                window, scheme_for(query.filter), order_revenue(exclude=CANCELLED)
            ),
            AggregateResult,
        )

    def order_trend(self, query: Optional[ReportQuery] = None) -> AggregateResult:
        query = self._query(query)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)
        return self._cached(
            FAMILY_ORDERS,
            PLATFORM_SCOPE,
            token,
            lambda: self._engine.aggregate(
                window, scheme_for(query.filter), order_count(exclude=CANCELLED)
            ),
            AggregateResult,
        )

    def report_revenue_trend(
        self, query: Optional[ReportQuery] = None
    ) -> AggregateResult:
        query = self._query(query)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)
        return self._cached(
            FAMILY_REPORT_REVENUE,
            PLATFORM_SCOPE,
            token,
            lambda: self._engine.aggregate(
                window, report_scheme(query.filter), order_revenue(exclude=CANCELLED)
            ),
            AggregateResult,
        )

    def report_volume_trend(
        self, query: Optional[ReportQuery] = None
    ) -> AggregateResult:
        query = self._query(query)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)
        return self._cached(
            FAMILY_REPORT_VOLUME,
            PLATFORM_SCOPE,
            token,
            lambda: self._engine.aggregate(
                window, report_scheme(query.filter), order_count(exclude=CANCELLED)
            ),
            AggregateResult,
        )

    def top_providers(
        self,
        query: Optional[ReportQuery] = None,
        *,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Page[ProviderRanking]:
        """Providers ranked by revenue, then order count, then id."""

        page, limit = self._validate_page(page, limit)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)

        def compute() -> Page[ProviderRanking]:
            revenue = dict(
                self._engine.breakdown(
                    window, order_revenue(statuses=SETTLED), "tenant_id"
                )
            )
            orders = dict(
                self._engine.breakdown(
                    window, order_count(statuses=SETTLED), "tenant_id"
                )
            )
            ranked = sorted(
                orders,
                key=lambda tenant: (
                    -revenue.get(tenant, 0.0),
                    -orders[tenant],
                    tenant,
                ),
            )
            skip = (page - 1) * limit
            items = []
            for position, tenant in enumerate(ranked[skip : skip + limit]):
                total_orders = int(orders[tenant])
                total_revenue = round(revenue.get(tenant, 0.0), 2)
                items.append(
                    ProviderRanking(
                        rank=skip + position + 1,
                        tenant_id=tenant,
                        total_orders=total_orders,
                        total_revenue=total_revenue,
                        avg_order_value=(
                            round(total_revenue / total_orders, 2)
                            if total_orders
                            else 0.0
                        ),
                    )
                )
            return Page[ProviderRanking](
                items=items,
                pagination=Pagination.for_total(len(ranked), page, limit),
            )

        return self._cached(
            FAMILY_TOP_PROVIDERS,
            PLATFORM_SCOPE,
            f"{token}:page={page}:limit={limit}",
            compute,
            Page[ProviderRanking],
        )

    def rating_distribution(
        self, query: Optional[ReportQuery] = None
    ) -> AggregateResult:
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)
        return self._cached(
            FAMILY_RATINGS,
            PLATFORM_SCOPE,
            token,
            lambda: self._engine.aggregate(window, rating_scheme(), review_count()),
            AggregateResult,
        )

    def state_analysis(
        self, query: Optional[ReportQuery] = None
    ) -> List[StateBreakdown]:
        query = self._query(query)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)

        def compute() -> List[StateBreakdown]:
            orders = dict(
                self._engine.breakdown(window, order_count(exclude=CANCELLED), "state")
            )
            revenue = dict(
                self._engine.breakdown(
                    window, order_revenue(exclude=CANCELLED), "state"
                )
            )
            ranked = sorted(
                orders,
                key=lambda state: (-orders[state], -revenue.get(state, 0.0), state),
            )
            return [
                StateBreakdown(
                    state=state,
                    orders=int(orders[state]),
                    revenue=round(revenue.get(state, 0.0), 2),
                )
                for state in ranked[:TOP_STATES]
            ]

        return self._cached(
            FAMILY_STATES, PLATFORM_SCOPE, token, compute, List[StateBreakdown]
        )

    def customer_analysis(
        self, query: Optional[ReportQuery] = None
    ) -> CustomerAnalysis:
        query = self._query(query)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)
        return self._cached(
            FAMILY_CUSTOMERS,
            PLATFORM_SCOPE,
            token,
            lambda: CustomerAnalysis(
                active_customers=self._engine.distinct_count(
                    window, orders_predicate(exclude=CANCELLED), "customer_id"
                )
            ),
            CustomerAnalysis,
        )

    def trending_items(
        self, query: Optional[ReportQuery] = None, *, limit: int = 3
    ) -> List[TrendingItem]:
        """Most ordered line items, ranked by the number of order lines."""

        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")
        query = self._query(query)
        window, token = self._window(query, self._resolver.all_time, ALL_TIME)

        def compute() -> List[TrendingItem]:
            lines = self._by_item(window, item_lines())
            quantity = self._by_item(window, item_quantity())
            revenue = self._by_item(window, item_sales(statuses=FULFILLED))
            ranked = sorted(lines, key=lambda item: (-lines[item], item))
            return [
                TrendingItem(
                    item_id=item,
                    total_orders=int(lines[item]),
                    total_quantity=quantity.get(item, 0.0),
                    total_revenue=round(revenue.get(item, 0.0), 2),
                )
                for item in ranked[:limit]
            ]

        return self._cached(
            FAMILY_TRENDING,
            PLATFORM_SCOPE,
            f"{token}:limit={limit}",
            compute,
            List[TrendingItem],
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _query(query: Optional[ReportQuery]) -> ReportQuery:
        return query if query is not None else ReportQuery()

    def _by_item(
        self, window: TimeWindow, metric: MetricDefinition
    ) -> Dict[str, float]:
        rows: List[Tuple[str, float]] = self._engine.breakdown(
            window, metric, "item_id"
        )
        return dict(rows)
