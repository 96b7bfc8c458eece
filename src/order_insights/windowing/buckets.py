"""Bucketing schemes: how many buckets a filter has and where an event lands."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, model_validator

from order_insights.domain.models import Filter, GroupKey

HOUR_LABELS: Tuple[str, ...] = tuple(f"{hour}:00" for hour in range(24))
WEEKDAY_LABELS: Tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
WEEK_OF_MONTH_LABELS: Tuple[str, ...] = tuple(f"Week {week}" for week in range(1, 6))
MONTH_LABELS: Tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)
SLOT_LABELS: Tuple[str, ...] = ("6AM", "9AM", "12PM", "3PM", "6PM", "9PM")
MONDAY_FIRST_LABELS: Tuple[str, ...] = WEEKDAY_LABELS[1:] + WEEKDAY_LABELS[:1]
RATING_KEY = "rating"
RATING_LABELS: Tuple[str, ...] = tuple(f"{stars}Stars" for stars in range(1, 6))

# Store keys that start counting at 1 and must be shifted onto 0-based buckets.
_ONE_BASED_KEYS = frozenset(
    {
        GroupKey.DAY_OF_WEEK.value,
        GroupKey.WEEK_OF_MONTH.value,
        GroupKey.MONTH.value,
        RATING_KEY,
    }
)


def native_time_key(timestamp: datetime, group_key: Union[GroupKey, str]) -> Any:
    """Compute the store-native key of ``timestamp`` in its own timezone."""

    key = str(getattr(group_key, "value", group_key))
    if key == GroupKey.ALL.value:
        return None
    if key == GroupKey.HOUR.value:
        return timestamp.hour
    if key == GroupKey.DAY_OF_WEEK.value:
        return timestamp.isoweekday() % 7 + 1
    if key == GroupKey.WEEK_OF_MONTH.value:
        return math.ceil(timestamp.day / 7)
    if key == GroupKey.MONTH.value:
        return timestamp.month
    if key == GroupKey.DATE.value:
        return timestamp.date().isoformat()
    raise ValueError(f"'{key}' is not a time grouping key")


def is_time_key(group_key: Union[GroupKey, str]) -> bool:
    key = str(getattr(group_key, "value", group_key))
    return key in {item.value for item in GroupKey}


def to_bucket_index(group_key: Union[GroupKey, str], native_key: Any) -> Optional[int]:
    """Convert a store-native key into a 0-based bucket index.

    Returns ``None`` when the key is not an integer at all. The result is not
    range-checked; callers decide what an out-of-range index means.
    """

    if native_key is None or isinstance(native_key, bool):
        return None
    if isinstance(native_key, float):
        if not native_key.is_integer():
            return None
        native_key = int(native_key)
    try:
        number = int(native_key)
    except (TypeError, ValueError):
        return None
    key = str(getattr(group_key, "value", group_key))
    return number - 1 if key in _ONE_BASED_KEYS else number


class BucketScheme(BaseModel):
    """Ordered labels plus the rule mapping timestamps/keys onto them."""

    model_config = ConfigDict(frozen=True)

    group_key: Union[GroupKey, str]
    labels: Tuple[str, ...] = ()
    filter: Optional[Filter] = None
    dynamic: bool = False
    # Shift applied to the 0-based key before slotting; slots are key_span wide.
    key_offset: int = 0
    key_span: int = 1
    wraps: bool = False

    @model_validator(mode="after")
    def validate_labels(self) -> "BucketScheme":
        if not self.dynamic and not self.labels:
            raise ValueError("fixed bucket schemes need at least one label")
        if self.key_span < 1:
            raise ValueError("key_span must be at least 1")
        return self

    @property
    def count(self) -> int:
        return len(self.labels)

    def empty_values(self) -> List[float]:
        return [0.0] * self.count

    def index_of_key(self, native_key: Any) -> Optional[int]:
        """Bucket position for a grouped-query key, ``None`` when unmatched."""

        if self.dynamic:
            try:
                return self.labels.index(str(native_key))
            except ValueError:
                return None
        index = to_bucket_index(self.group_key, native_key)
        if index is None:
            return None
        if self.wraps:
            if not 0 <= index < self.count:
                return None
            return (index + self.key_offset) % self.count
        index = (index + self.key_offset) // self.key_span
        if not 0 <= index < self.count:
            return None
        return index

    def skips(self, native_key: Any) -> bool:
        """True for well-formed keys that fall before the first slot."""

        if self.dynamic or self.wraps or self.key_offset >= 0:
            return False
        index = to_bucket_index(self.group_key, native_key)
        return index is not None and 0 <= index < -self.key_offset

    def index_of(self, timestamp: datetime) -> Optional[int]:
        """Bucket position for an event timestamp, in the timestamp's timezone."""

        return self.index_of_key(native_time_key(timestamp, self.group_key))

    def materialize(self, observed_keys: Iterable[Any]) -> "BucketScheme":
        """Fix the labels of a dynamic scheme to the sorted distinct keys seen."""

        if not self.dynamic:
            return self
        labels = tuple(sorted({str(key) for key in observed_keys if key is not None}))
        return self.model_copy(update={"labels": labels})


_SCHEMES = {
    Filter.TODAY: BucketScheme(
        filter=Filter.TODAY, group_key=GroupKey.HOUR, labels=HOUR_LABELS
    ),
    Filter.WEEK: BucketScheme(
        filter=Filter.WEEK, group_key=GroupKey.DAY_OF_WEEK, labels=WEEKDAY_LABELS
    ),
    Filter.MONTH: BucketScheme(
        filter=Filter.MONTH,
        group_key=GroupKey.WEEK_OF_MONTH,
        labels=WEEK_OF_MONTH_LABELS,
    ),
    Filter.YEAR: BucketScheme(
        filter=Filter.YEAR, group_key=GroupKey.MONTH, labels=MONTH_LABELS
    ),
    Filter.CUSTOM: BucketScheme(
        filter=Filter.CUSTOM, group_key=GroupKey.DATE, dynamic=True
    ),
}


def scheme_for(filter: Filter | str) -> BucketScheme:
    return _SCHEMES[Filter.parse(filter)]


def rating_scheme() -> BucketScheme:
    """Five star-rating buckets keyed by the review ``rating`` attribute."""

    return BucketScheme(group_key=RATING_KEY, labels=RATING_LABELS)


_REPORT_SCHEMES = {
    # Hours before 6AM fall outside every slot.
    Filter.TODAY: BucketScheme(
        filter=Filter.TODAY,
        group_key=GroupKey.HOUR,
        labels=SLOT_LABELS,
        key_offset=-6,
        key_span=3,
    ),
    Filter.WEEK: BucketScheme(
        filter=Filter.WEEK,
        group_key=GroupKey.DAY_OF_WEEK,
        labels=MONDAY_FIRST_LABELS,
        key_offset=-1,
        wraps=True,
    ),
}


def report_scheme(filter: Filter | str) -> BucketScheme:
    """Scheme for the admin report trends: 3-hour slots and Monday-first weeks."""

    selected = Filter.parse(filter)
    return _REPORT_SCHEMES.get(selected) or _SCHEMES[selected]
