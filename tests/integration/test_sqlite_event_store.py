from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from order_insights.aggregation.metrics import orders_predicate
from order_insights.domain.exceptions import DependencyError
from order_insights.domain.models import (
    Accumulator,
    EventKind,
    EventPredicate,
    GroupKey,
    MetricEvent,
    TimeWindow,
)
from order_insights.stores.sqlite_store import SQLiteEventStore

pytestmark = pytest.mark.integration

UTC = timezone.utc
WINDOW = TimeWindow(
    start=datetime(2024, 3, 1, tzinfo=UTC), end=datetime(2024, 3, 31, tzinfo=UTC)
)


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    return tmp_path / "events.db"


@pytest.fixture
def store(temp_db: Path) -> SQLiteEventStore:
    return SQLiteEventStore(temp_db)


def _order(idx: int, when: datetime, value: float, status: str = "completed", **keys) -> MetricEvent:
    return MetricEvent(
        id=f"o{idx}",
        kind=EventKind.ORDER,
        timestamp=when,
        value=value,
        tenant_id="t1" if idx % 2 else "t2",
        customer_id=f"c{idx}",
        status=status,
        group_keys=keys,
    )


def _seed(store: SQLiteEventStore) -> None:
    store.save_many(
        [
            _order(1, datetime(2024, 3, 13, 9, 15, tzinfo=UTC), 10, city="Austin", platform_fee=1.5),
            _order(2, datetime(2024, 3, 13, 9, 40, tzinfo=UTC), 5, city="Austin", platform_fee=0.5),
            _order(3, datetime(2024, 3, 13, 18, 0, tzinfo=UTC), 20, city="Dallas"),
            _order(4, datetime(2024, 3, 14, 8, 0, tzinfo=UTC), 7, status="cancelled"),
            _order(5, datetime(2024, 4, 2, 8, 0, tzinfo=UTC), 99),
        ]
    )


def test_query_raw_round_trips_events_within_window(store: SQLiteEventStore):
    _seed(store)

    events = store.query_raw(orders_predicate(), WINDOW)

    assert [event.id for event in events] == ["o1", "o2", "o3", "o4"]
    assert events[0].timestamp == datetime(2024, 3, 13, 9, 15, tzinfo=UTC)
    assert events[0].group_keys["city"] == "Austin"
    assert events[0].tenant_id == "t1"


def test_window_end_is_exclusive(store: SQLiteEventStore):
    store.save(_order(1, datetime(2024, 3, 31, tzinfo=UTC), 10))
    store.save(_order(3, datetime(2024, 3, 30, 23, 59, 59, tzinfo=UTC), 10))

    assert [event.id for event in store.query_raw(orders_predicate(), WINDOW)] == ["o3"]


def test_save_many_upserts_by_id(store: SQLiteEventStore):
    _seed(store)
    store.save(_order(1, datetime(2024, 3, 13, 9, 15, tzinfo=UTC), 42, city="Austin"))

    total = store.query_grouped(orders_predicate(tenant_id="t1"), WINDOW, GroupKey.ALL, Accumulator.SUM)

    assert total == [(None, 62.0)]


def test_query_grouped_by_hour_in_store_timezone(temp_db: Path):
    store = SQLiteEventStore(temp_db, tz=timezone(timedelta(hours=2)))
    _seed(store)

    rows = dict(
        store.query_grouped(orders_predicate(statuses=["completed"]), WINDOW, GroupKey.HOUR, Accumulator.SUM)
    )

    assert rows == {11: 15.0, 20: 20.0}


def test_query_grouped_by_attribute_and_field(store: SQLiteEventStore):
    _seed(store)

    by_city = dict(
        store.query_grouped(orders_predicate(exclude=["cancelled"]), WINDOW, "city", Accumulator.COUNT)
    )
    by_status = dict(store.query_grouped(orders_predicate(), WINDOW, "status", Accumulator.COUNT))

    assert by_city == {"Austin": 2.0, "Dallas": 1.0}
    assert by_status == {"completed": 3.0, "cancelled": 1.0}


def test_query_grouped_sums_a_value_field(store: SQLiteEventStore):
    _seed(store)

    rows = store.query_grouped(
        orders_predicate(), WINDOW, GroupKey.ALL, Accumulator.SUM, value_field="platform_fee"
    )

    assert rows == [(None, 2.0)]


def test_query_grouped_filters_kind(store: SQLiteEventStore):
    _seed(store)

    rows = store.query_grouped(EventPredicate(kind=EventKind.REVIEW), WINDOW, GroupKey.ALL, Accumulator.COUNT)

    assert rows == []


def test_unopenable_database_is_a_dependency_error(tmp_path: Path):
    # A directory cannot be opened as a database file.
    with pytest.raises(DependencyError):
        SQLiteEventStore(tmp_path)
