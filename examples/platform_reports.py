"""Admin reports over a SQLite event store with a Redis cache in front."""

import os

from order_insights.core.container import DIContainer


def main() -> None:
    service = DIContainer.create_service(
        db_path=os.getenv("INSIGHTS_DB_PATH", "events.db"),
        redis_url=os.getenv("INSIGHTS_REDIS_URL"),
    )
    try:
        master = service.master_analytics("month")
        print("Orders this month:", master.overview.total_orders)
        print("Revenue by week:", master.revenue.as_mapping())

        page = service.top_providers(page=1, limit=5)
        for ranking in page.items:
            print(ranking.rank, ranking.tenant_id, ranking.total_revenue)
    finally:
        service.close()


if __name__ == "__main__":
    main()
