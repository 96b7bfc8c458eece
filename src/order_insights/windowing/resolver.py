"""Translate coarse dashboard filters into concrete half-open time windows."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from order_insights.domain.exceptions import ValidationError
from order_insights.domain.interfaces import Clock
from order_insights.domain.models import Filter, ReportQuery, TimeWindow

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# DD-MM-YYYY is the documented request format; ISO dates are tolerated.
DATE_FORMATS = ("%d-%m-%Y", "%Y-%m-%d")


def load_timezone(name: str) -> tzinfo:
    if name.strip().upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone '{name}'") from exc


def parse_date(raw: Optional[str], field: str) -> date:
    """Parse a caller-supplied calendar date or raise a field-scoped error."""

    if raw is None or not str(raw).strip():
        raise ValidationError(f"{field} is required for the custom filter", field=field)
    value = str(raw).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValidationError(
        f"{field} must be a date in DD-MM-YYYY format",
        field=field,
        context={"value": value},
    )


def _midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _bound(
    day: date, tz: tzinfo, field: str, raw: Optional[str], *, days: int = 0
) -> datetime:
    """Local midnight ``days`` after ``day``, also representable in UTC."""

    try:
        bound = _midnight(day + timedelta(days=days), tz)
        bound.astimezone(timezone.utc)
    except OverflowError as exc:
        raise ValidationError(
            f"{field} is out of range", field=field, context={"value": raw}
        ) from exc
    return bound


def resolve_window(
    filter: Filter | str,
    raw_start: Optional[str] = None,
    raw_end: Optional[str] = None,
    *,
    now: datetime,
) -> TimeWindow:
    """Map ``filter`` onto ``[start, end)`` relative to the aware instant ``now``.

    The window always closes at the next local midnight so that it covers
    every instant of its last day. ``week`` starts on the most recent Sunday,
    which makes it 1 to 7 days long depending on the current weekday.
    """

    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    selected = Filter.parse(filter)
    tz = now.tzinfo
    today = now.date()

    if selected is Filter.CUSTOM:
        start_day = parse_date(raw_start, "start_date")
        end_day = parse_date(raw_end, "end_date")
        if end_day < start_day:
            raise ValidationError(
                "end_date must not be before start_date",
                field="end_date",
                context={"start_date": raw_start, "end_date": raw_end},
            )
        return TimeWindow(
            start=_bound(start_day, tz, "start_date", raw_start),
            end=_bound(end_day, tz, "end_date", raw_end, days=1),
        )

    if selected is Filter.TODAY:
        start_day = today
    elif selected is Filter.WEEK:
        days_since_sunday = (today.weekday() + 1) % 7
        start_day = today - timedelta(days=days_since_sunday)
    elif selected is Filter.MONTH:
        start_day = today.replace(day=1)
    elif selected is Filter.YEAR:
        start_day = date(today.year, 1, 1)
    else:  # pragma: no cover - Filter is closed
        raise ValueError(f"Unhandled filter '{selected}'")

    return TimeWindow(
        start=_midnight(start_day, tz),
        end=_midnight(today + timedelta(days=1), tz),
    )


class TimeWindowResolver:
    """Resolves windows against an injected clock in a fixed local timezone."""

    def __init__(self, tz: tzinfo | str = "UTC", clock: Clock | None = None) -> None:
        self._tz = load_timezone(tz) if isinstance(tz, str) else tz
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        current = self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=self._tz)
        return current.astimezone(self._tz)

    def resolve(
        self,
        filter: Filter | str,
        raw_start: Optional[str] = None,
        raw_end: Optional[str] = None,
    ) -> TimeWindow:
        return resolve_window(filter, raw_start, raw_end, now=self.now())

    def resolve_query(self, query: ReportQuery) -> TimeWindow:
        return self.resolve(query.filter, query.start_date, query.end_date)

    def trailing_days(self, days: int) -> TimeWindow:
        """True rolling window ending now, used by weekly performance."""

        if days <= 0:
            raise ValueError("days must be greater than zero")
        end = self.now()
        return TimeWindow(start=end - timedelta(days=days), end=end)

    def all_time(self) -> TimeWindow:
        tomorrow = self.now().date() + timedelta(days=1)
        return TimeWindow(start=EPOCH, end=_midnight(tomorrow, self._tz))
