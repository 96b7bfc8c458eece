from datetime import datetime, timedelta, timezone

import pytest

from order_insights.domain.exceptions import ValidationError
from order_insights.domain.models import Filter, ReportQuery
from order_insights.windowing.resolver import (
    EPOCH,
    TimeWindowResolver,
    load_timezone,
    parse_date,
    resolve_window,
)

# Wednesday
NOW = datetime(2024, 3, 13, 10, 30, tzinfo=timezone.utc)


def _resolver(now: datetime = NOW, tz="UTC") -> TimeWindowResolver:
    return TimeWindowResolver(tz, clock=lambda: now)


def _midnight(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "filter_name, start",
    [
        ("today", _midnight(2024, 3, 13)),
        ("week", _midnight(2024, 3, 10)),
        ("month", _midnight(2024, 3, 1)),
        ("year", _midnight(2024, 1, 1)),
    ],
)
def test_fixed_filters_end_at_next_midnight(filter_name, start):
    window = _resolver().resolve(filter_name)

    assert window.start == start
    assert window.end == _midnight(2024, 3, 14)


def test_week_starts_today_on_sunday():
    sunday = datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc)
    window = _resolver(sunday).resolve(Filter.WEEK)

    assert window.start == _midnight(2024, 3, 10)
    assert window.end == _midnight(2024, 3, 11)


def test_week_on_saturday_covers_seven_days():
    saturday = datetime(2024, 3, 16, 23, 59, tzinfo=timezone.utc)
    window = _resolver(saturday).resolve(Filter.WEEK)

    assert window.end - window.start == timedelta(days=7)


def test_window_includes_last_instant_of_day_and_excludes_next_midnight():
    window = _resolver().resolve("today")

    assert window.contains(datetime(2024, 3, 13, 23, 59, 59, 999999, tzinfo=timezone.utc))
    assert not window.contains(_midnight(2024, 3, 14))
    assert window.contains(_midnight(2024, 3, 13))


def test_custom_range_uses_whole_days():
    window = _resolver().resolve("custom", "01-03-2024", "03-03-2024")

    assert window.start == _midnight(2024, 3, 1)
    assert window.end == _midnight(2024, 3, 4)


def test_custom_range_accepts_iso_dates():
    window = _resolver().resolve("custom", "2024-03-01", "2024-03-01")

    assert window.start == _midnight(2024, 3, 1)
    assert window.end == _midnight(2024, 3, 2)


def test_custom_range_rejects_end_before_start():
    with pytest.raises(ValidationError) as excinfo:
        _resolver().resolve("custom", "05-03-2024", "01-03-2024")

    assert excinfo.value.field == "end_date"


@pytest.mark.parametrize(
    "start, end, field",
    [
        (None, "01-03-2024", "start_date"),
        ("01-03-2024", None, "end_date"),
        ("2024/03/01", "03-03-2024", "start_date"),
        ("01-03-2024", "31-02-2024", "end_date"),
        ("01-01-2024", "31-12-9999", "end_date"),
    ],
)
def test_custom_range_reports_the_bad_field(start, end, field):
    with pytest.raises(ValidationError) as excinfo:
        _resolver().resolve("custom", start, end)

    assert excinfo.value.field == field
    assert excinfo.value.status_code == 400


def test_custom_start_before_the_utc_minimum_is_rejected():
    east = timezone(timedelta(hours=5))

    with pytest.raises(ValidationError) as excinfo:
        _resolver(NOW, east).resolve("custom", "01-01-0001", "02-01-0001")

    assert excinfo.value.field == "start_date"


def test_unknown_filter_is_a_validation_error():
    with pytest.raises(ValidationError) as excinfo:
        _resolver().resolve("fortnight")

    assert excinfo.value.field == "filter"


def test_resolve_window_requires_aware_now():
    with pytest.raises(ValueError):
        resolve_window("today", now=datetime(2024, 3, 13, 10, 30))


def test_local_timezone_shifts_the_calendar_day():
    eastern = timezone(timedelta(hours=-5))
    # 03:00 UTC is still the previous evening five hours west.
    now = datetime(2024, 3, 13, 3, 0, tzinfo=timezone.utc)
    window = _resolver(now, eastern).resolve("today")

    assert window.start == datetime(2024, 3, 12, tzinfo=eastern)
    assert window.end == datetime(2024, 3, 13, tzinfo=eastern)


def test_naive_clock_is_read_in_resolver_timezone():
    resolver = TimeWindowResolver("UTC", clock=lambda: datetime(2024, 3, 13, 10, 30))

    assert resolver.now() == NOW


def test_resolve_query_uses_query_fields():
    query = ReportQuery.build("custom", "01-03-2024", "02-03-2024")
    window = _resolver().resolve_query(query)

    assert window.start == _midnight(2024, 3, 1)
    assert window.end == _midnight(2024, 3, 3)


def test_trailing_days_is_a_rolling_window():
    window = _resolver().trailing_days(7)

    assert window.end == NOW
    assert window.start == NOW - timedelta(days=7)

    with pytest.raises(ValueError):
        _resolver().trailing_days(0)


def test_all_time_starts_at_epoch():
    window = _resolver().all_time()

    assert window.start == EPOCH
    assert window.end == _midnight(2024, 3, 14)


def test_cache_token_names_both_bounds():
    window = _resolver().resolve("custom", "01-03-2024", "03-03-2024")

    assert window.cache_token == "2024-03-01..2024-03-04"


def test_parse_date_and_load_timezone():
    assert parse_date("29-02-2024", "start_date").isoformat() == "2024-02-29"
    assert load_timezone("utc") is timezone.utc
    with pytest.raises(ValueError):
        load_timezone("Mars/Olympus_Mons")
