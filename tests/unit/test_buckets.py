from datetime import datetime, timezone

import pytest

from order_insights.domain.models import Filter, GroupKey
from order_insights.windowing.buckets import (
    HOUR_LABELS,
    MONTH_LABELS,
    RATING_LABELS,
    SLOT_LABELS,
    WEEKDAY_LABELS,
    native_time_key,
    rating_scheme,
    report_scheme,
    scheme_for,
    to_bucket_index,
)


def _at(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "filter_name, count, first, last",
    [
        ("today", 24, "0:00", "23:00"),
        ("week", 7, "Sun", "Sat"),
        ("month", 5, "Week 1", "Week 5"),
        ("year", 12, "Jan", "Dec"),
    ],
)
def test_fixed_scheme_shapes(filter_name, count, first, last):
    scheme = scheme_for(filter_name)

    assert scheme.count == count
    assert scheme.labels[0] == first
    assert scheme.labels[-1] == last
    assert scheme.empty_values() == [0.0] * count
    assert not scheme.dynamic


def test_custom_scheme_is_dynamic_and_empty_until_materialized():
    scheme = scheme_for(Filter.CUSTOM)

    assert scheme.dynamic
    assert scheme.count == 0

    materialized = scheme.materialize(["2024-03-03", "2024-03-01", "2024-03-03", None])
    assert materialized.labels == ("2024-03-01", "2024-03-03")
    assert materialized.index_of_key("2024-03-03") == 1
    assert materialized.index_of_key("2024-03-02") is None


def test_hour_buckets_cover_midnight_and_last_hour():
    scheme = scheme_for("today")

    assert scheme.index_of(_at(2024, 3, 13, 0, 0)) == 0
    assert scheme.index_of(_at(2024, 3, 13, 23, 59, 59)) == 23
    assert HOUR_LABELS[9] == "9:00"


def test_sunday_and_saturday_map_to_first_and_last_weekday():
    scheme = scheme_for("week")

    assert native_time_key(_at(2024, 3, 10, 12), GroupKey.DAY_OF_WEEK) == 1
    assert native_time_key(_at(2024, 3, 16, 12), GroupKey.DAY_OF_WEEK) == 7
    assert scheme.index_of(_at(2024, 3, 10, 12)) == 0
    assert scheme.index_of(_at(2024, 3, 16, 12)) == 6
    assert WEEKDAY_LABELS[scheme.index_of(_at(2024, 3, 13, 12))] == "Wed"


def test_january_and_december_map_to_first_and_last_month():
    scheme = scheme_for("year")

    assert scheme.index_of(_at(2024, 1, 1)) == 0
    assert scheme.index_of(_at(2024, 12, 31, 23, 59)) == 11
    assert MONTH_LABELS[scheme.index_of(_at(2024, 6, 15))] == "Jun"


@pytest.mark.parametrize(
    "day, index", [(1, 0), (7, 0), (8, 1), (14, 1), (15, 2), (28, 3), (29, 4), (31, 4)]
)
def test_week_of_month_is_ceiling_of_day_over_seven(day, index):
    assert scheme_for("month").index_of(_at(2024, 3, day)) == index


def test_to_bucket_index_shifts_one_based_keys_only():
    assert to_bucket_index(GroupKey.HOUR, 0) == 0
    assert to_bucket_index(GroupKey.DAY_OF_WEEK, 1) == 0
    assert to_bucket_index(GroupKey.MONTH, 12) == 11
    assert to_bucket_index("rating", 5) == 4
    assert to_bucket_index(GroupKey.MONTH, "3") == 2
    assert to_bucket_index(GroupKey.MONTH, 3.0) == 2


@pytest.mark.parametrize("key", [None, "abc", 2.5, True])
def test_to_bucket_index_rejects_non_integer_keys(key):
    assert to_bucket_index(GroupKey.HOUR, key) is None


@pytest.mark.parametrize(
    "filter_name, key",
    [("today", 24), ("today", -1), ("week", 0), ("week", 8), ("month", 6), ("year", 13)],
)
def test_out_of_range_keys_have_no_bucket(filter_name, key):
    assert scheme_for(filter_name).index_of_key(key) is None


def test_rating_scheme_has_five_star_buckets():
    scheme = rating_scheme()

    assert scheme.labels == RATING_LABELS
    assert scheme.labels[0] == "1Stars"
    assert scheme.index_of_key(5) == 4
    assert scheme.index_of_key(6) is None


def test_native_time_key_rejects_attribute_keys():
    with pytest.raises(ValueError):
        native_time_key(_at(2024, 3, 1), "city")
    assert native_time_key(_at(2024, 3, 1), GroupKey.ALL) is None
    assert native_time_key(_at(2024, 3, 1), GroupKey.DATE) == "2024-03-01"


@pytest.mark.parametrize(
    "hour, label",
    [(6, "6AM"), (8, "6AM"), (9, "9AM"), (14, "12PM"), (20, "6PM"), (23, "9PM")],
)
def test_report_today_uses_three_hour_slots(hour, label):
    scheme = report_scheme("today")

    assert scheme.labels == SLOT_LABELS
    assert scheme.labels[scheme.index_of(_at(2024, 3, 13, hour))] == label


@pytest.mark.parametrize("hour", [0, 3, 5])
def test_report_today_drops_hours_before_six(hour):
    assert report_scheme("today").index_of(_at(2024, 3, 13, hour)) is None
    assert report_scheme("today").skips(hour)


def test_only_report_slots_skip_keys():
    assert not report_scheme("today").skips(24)
    assert not scheme_for("today").skips(3)
    assert not report_scheme("week").skips(0)


def test_report_week_starts_on_monday():
    scheme = report_scheme(Filter.WEEK)

    assert scheme.labels == ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
    # 2024-03-10 is a Sunday, 2024-03-11 a Monday.
    assert scheme.index_of(_at(2024, 3, 10)) == 6
    assert scheme.index_of(_at(2024, 3, 11)) == 0
    assert scheme.index_of_key(8) is None


@pytest.mark.parametrize("filter_name", ["month", "year", "custom"])
def test_report_scheme_falls_back_to_standard_schemes(filter_name):
    assert report_scheme(filter_name) == scheme_for(filter_name)
