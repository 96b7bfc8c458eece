"""Provider dashboard example using the built-in DI container."""

from datetime import datetime, timedelta, timezone

from order_insights.core.config import InsightsConfig
from order_insights.core.container import DIContainer
from order_insights.domain.models import EventKind, MetricEvent
from order_insights.stores.memory_store import InMemoryEventStore


def _seed() -> InMemoryEventStore:
    now = datetime.now(timezone.utc)
    store = InMemoryEventStore()
    for idx, city in enumerate(["Austin", "Austin", "Dallas", "Houston"]):
        store.add(
            MetricEvent(
                id=f"order-{idx}",
                kind=EventKind.ORDER,
                timestamp=now - timedelta(hours=idx * 5),
                value=12.5 * (idx + 1),
                tenant_id="kitchen-42",
                customer_id=f"customer-{idx}",
                status="completed",
                group_keys={"city": city, "state": "TX"},
            )
        )
    return store


def main() -> None:
    with DIContainer.create_service(
        config=InsightsConfig(), event_store=_seed()
    ) as service:
        insights = service.provider_insights("kitchen-42", "week")
        print("Revenue:", insights.overview.total_revenue)
        print("By weekday:", insights.revenue_performance.as_mapping())
        print("Cities:", insights.user_distribution_by_city.as_mapping())


if __name__ == "__main__":
    main()
