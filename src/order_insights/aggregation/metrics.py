"""Catalogue of the metric definitions dashboards are built from."""

from __future__ import annotations

from typing import Iterable, Optional

from order_insights.domain.models import (
    Accumulator,
    EventKind,
    EventPredicate,
    MetricDefinition,
    OrderStatus,
)

COMPLETED = frozenset({OrderStatus.COMPLETED.value})
SETTLED = frozenset({OrderStatus.COMPLETED.value, OrderStatus.PICKED_UP.value})
FULFILLED = frozenset(
    {
        OrderStatus.COMPLETED.value,
        OrderStatus.READY_FOR_PICKUP.value,
        OrderStatus.PICKED_UP.value,
    }
)
CANCELLED = frozenset({OrderStatus.CANCELLED.value})


def orders_predicate(
    tenant_id: Optional[str] = None,
    *,
    statuses: Iterable[str] = (),
    exclude: Iterable[str] = (),
    kind: EventKind = EventKind.ORDER,
) -> EventPredicate:
    return EventPredicate(
        kind=kind,
        tenant_id=tenant_id,
        statuses=frozenset(statuses),
        exclude_statuses=frozenset(exclude),
    )


def order_revenue(
    tenant_id: Optional[str] = None,
    *,
    statuses: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> MetricDefinition:
    return MetricDefinition(
        name="order_revenue",
        predicate=orders_predicate(tenant_id, statuses=statuses, exclude=exclude),
        accumulator=Accumulator.SUM,
    )


def order_count(
    tenant_id: Optional[str] = None,
    *,
    statuses: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> MetricDefinition:
    return MetricDefinition(
        name="order_count",
        predicate=orders_predicate(tenant_id, statuses=statuses, exclude=exclude),
        accumulator=Accumulator.COUNT,
    )


def platform_fees(tenant_id: Optional[str] = None) -> MetricDefinition:
    return MetricDefinition(
        name="platform_fees",
        predicate=orders_predicate(tenant_id),
        accumulator=Accumulator.SUM,
        value_field="platform_fee",
    )


def item_sales(
    tenant_id: Optional[str] = None, *, statuses: Iterable[str] = COMPLETED
) -> MetricDefinition:
    """Line-item revenue (price times quantity, stored as the item value)."""

    return MetricDefinition(
        name="item_sales",
        predicate=orders_predicate(
            tenant_id, statuses=statuses, kind=EventKind.ORDER_ITEM
        ),
        accumulator=Accumulator.SUM,
    )


def item_lines(
    tenant_id: Optional[str] = None, *, statuses: Iterable[str] = FULFILLED
) -> MetricDefinition:
    return MetricDefinition(
        name="item_lines",
        predicate=orders_predicate(
            tenant_id, statuses=statuses, kind=EventKind.ORDER_ITEM
        ),
        accumulator=Accumulator.COUNT,
    )


def item_quantity(
    tenant_id: Optional[str] = None, *, statuses: Iterable[str] = FULFILLED
) -> MetricDefinition:
    return MetricDefinition(
        name="item_quantity",
        predicate=orders_predicate(
            tenant_id, statuses=statuses, kind=EventKind.ORDER_ITEM
        ),
        accumulator=Accumulator.SUM,
        value_field="quantity",
    )


def review_count(tenant_id: Optional[str] = None) -> MetricDefinition:
    return MetricDefinition(
        name="review_count",
        predicate=EventPredicate(kind=EventKind.REVIEW, tenant_id=tenant_id),
        accumulator=Accumulator.COUNT,
    )


def signup_count() -> MetricDefinition:
    return MetricDefinition(
        name="signup_count",
        predicate=EventPredicate(kind=EventKind.CUSTOMER_SIGNUP),
        accumulator=Accumulator.COUNT,
    )
