"""Domain value objects for time-bucketed order reporting."""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, FrozenSet, Generic, List, Mapping, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .exceptions import ValidationError

T = TypeVar("T")


class Filter(str, Enum):
    """Coarse time filters accepted by every reporting entry point."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, raw: "Filter | str | None") -> "Filter":
        if raw is None:
            return cls.TODAY
        if isinstance(raw, Filter):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError as exc:
            raise ValidationError(
                f"filter must be one of {[item.value for item in cls]}",
                field="filter",
                context={"value": raw},
            ) from exc


class OrderStatus(str, Enum):
    """Order lifecycle states as recorded by the ordering system."""

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    READY_FOR_PICKUP = "ready_for_pickup"
    PICKED_UP = "picked_up"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EventKind(str, Enum):
    """Record families available in the event store."""

    ORDER = "order"
    ORDER_ITEM = "order_item"
    REVIEW = "review"
    CUSTOMER_SIGNUP = "customer_signup"


class GroupKey(str, Enum):
    """Native grouping keys understood by every event store.

    Time keys follow the store convention: ``hour`` is 0-23, ``day_of_week``
    is 1 (Sunday) to 7 (Saturday), ``week_of_month`` is ``ceil(day / 7)``
    (1-5), ``month`` is 1-12 and ``date`` is an ISO ``YYYY-MM-DD`` string.
    ``all`` produces a single group keyed by ``None``. Any other grouping is
    by a ``group_keys`` attribute name, passed as a plain string.
    """

    ALL = "all"
    HOUR = "hour"
    DAY_OF_WEEK = "day_of_week"
    WEEK_OF_MONTH = "week_of_month"
    MONTH = "month"
    DATE = "date"


class Accumulator(str, Enum):
    """Reduction applied to each group."""

    SUM = "sum"
    COUNT = "count"


class ReportQuery(BaseModel):
    """Request-level filter input shared by all entry points."""

    model_config = ConfigDict(frozen=True)

    filter: Filter = Filter.TODAY
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @field_validator("filter", mode="before")
    @classmethod
    def normalize_filter(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def build(
        cls,
        filter: "Filter | str | None" = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> "ReportQuery":
        """Create a query, reporting bad input as a domain ``ValidationError``."""

        parsed = Filter.parse(filter)
        if parsed is Filter.CUSTOM:
            if not start_date:
                raise ValidationError(
                    "start_date is required for the custom filter", field="start_date"
                )
            if not end_date:
                raise ValidationError(
                    "end_date is required for the custom filter", field="end_date"
                )
        return cls(filter=parsed, start_date=start_date, end_date=end_date)


class TimeWindow(BaseModel):
    """Half-open ``[start, end)`` interval of timezone-aware instants."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def validate_bounds(self) -> "TimeWindow":
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("window bounds must be timezone-aware")
        if self.start > self.end:
            raise ValueError("window start must not be after its end")
        return self

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp < self.end

    @property
    def cache_token(self) -> str:
        return f"{self.start:%Y-%m-%d}..{self.end:%Y-%m-%d}"


class MetricEvent(BaseModel):
    """A completed order, line item, review or sign-up fetched from the store."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: EventKind = EventKind.ORDER
    timestamp: datetime
    value: float = 0.0
    tenant_id: Optional[str] = None
    customer_id: Optional[str] = None
    status: Optional[str] = None
    group_keys: Mapping[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("event timestamp must be timezone-aware")
        return value


class EventPredicate(BaseModel):
    """Declarative event filter that every store knows how to translate."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind = EventKind.ORDER
    tenant_id: Optional[str] = None
    statuses: FrozenSet[str] = Field(default_factory=frozenset)
    exclude_statuses: FrozenSet[str] = Field(default_factory=frozenset)

    @field_validator("statuses", "exclude_statuses", mode="before")
    @classmethod
    def normalize_statuses(cls, value: Any) -> FrozenSet[str]:
        if value is None:
            return frozenset()
        return frozenset(
            item.value if isinstance(item, Enum) else str(item) for item in value
        )

    def matches(self, event: MetricEvent) -> bool:
        if event.kind is not self.kind:
            return False
        if self.tenant_id is not None and event.tenant_id != self.tenant_id:
            return False
        if self.statuses and event.status not in self.statuses:
            return False
        if self.exclude_statuses and event.status in self.exclude_statuses:
            return False
        return True


class MetricDefinition(BaseModel):
    """What to reduce (``value_field``), how, and over which events."""

    model_config = ConfigDict(frozen=True)

    name: str
    predicate: EventPredicate = Field(default_factory=EventPredicate)
    accumulator: Accumulator = Accumulator.SUM
    value_field: str = "value"


class AggregateResult(BaseModel):
    """Dense, position-aligned labels and values for one metric."""

    model_config = ConfigDict(frozen=True)

    labels: List[str] = Field(default_factory=list)
    values: List[float] = Field(default_factory=list)
    total: Optional[float] = None

    @model_validator(mode="after")
    def ensure_alignment(self) -> "AggregateResult":
        if len(self.labels) != len(self.values):
            raise ValueError("labels and values must have the same length")
        return self

    def as_mapping(self) -> dict[str, float]:
        return dict(zip(self.labels, self.values))


class MixResult(AggregateResult):
    """Aggregate plus each label's percentage share of the total."""

    shares: List[float] = Field(default_factory=list)

    @model_validator(mode="after")
    def ensure_shares(self) -> "MixResult":
        if self.shares and len(self.shares) != len(self.labels):
            raise ValueError("shares must align with labels")
        return self


class ProviderOverview(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_revenue: float = 0.0
    total_orders: int = 0
    avg_order_value: float = 0.0
    top_performing_state: str = "N/A"


class OrderStatusOverview(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_orders: int = 0
    pending_orders: int = 0
    completed_orders: int = 0
    platform_profit: float = 0.0


class CompositeInsights(BaseModel):
    """Everything a provider dashboard renders in one response."""

    model_config = ConfigDict(frozen=True)

    overview: ProviderOverview
    revenue_performance: AggregateResult
    order_distribution: AggregateResult
    user_distribution_by_city: AggregateResult
    category_mix: MixResult
    hourly_peak_activity: AggregateResult


class PlatformOverview(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_orders: int = 0
    total_revenue: float = 0.0
    total_customers: int = 0


class ProviderRanking(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: int
    tenant_id: str
    total_orders: int
    total_revenue: float
    avg_order_value: float


class StateBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: str
    orders: int
    revenue: float


class TrendingItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: str
    total_orders: int
    total_quantity: float
    total_revenue: float


class CustomerAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    active_customers: int = 0


class MasterAnalytics(BaseModel):
    model_config = ConfigDict(frozen=True)

    overview: PlatformOverview
    revenue: AggregateResult
    orders_overview: AggregateResult


class AnalyticsReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    revenue_overview: AggregateResult
    volume_overview: AggregateResult
    state_analysis: List[StateBreakdown]
    customer_analysis: CustomerAnalysis


class Pagination(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def for_total(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(
            total=total, page=page, limit=limit, pages=math.ceil(total / limit)
        )


class Page(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True)

    items: List[T]
    pagination: Pagination
