"""SQLite-backed event store."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from order_insights.domain.exceptions import DependencyError
from order_insights.domain.interfaces import GroupedRow, IEventStore
from order_insights.domain.models import (
    Accumulator,
    EventPredicate,
    GroupKey,
    MetricEvent,
    TimeWindow,
)
from order_insights.windowing.buckets import is_time_key
from order_insights.windowing.resolver import load_timezone

from .grouping import EVENT_FIELDS, group_events

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    tenant_id TEXT,
    customer_id TEXT,
    status TEXT,
    timestamp REAL NOT NULL,
    value REAL NOT NULL,
    group_keys TEXT NOT NULL
);
"""

_CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_events_kind_timestamp ON events (kind, timestamp);
"""

_INSERT_SQL = """
INSERT INTO events (id, kind, tenant_id, customer_id, status, timestamp, value, group_keys)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    kind=excluded.kind,
    tenant_id=excluded.tenant_id,
    customer_id=excluded.customer_id,
    status=excluded.status,
    timestamp=excluded.timestamp,
    value=excluded.value,
    group_keys=excluded.group_keys;
"""

_SELECT_COLUMNS = "id, kind, tenant_id, customer_id, status, timestamp, value, group_keys"

Row = Tuple[str, str, Optional[str], Optional[str], Optional[str], float, float, str]


class SQLiteEventStore(IEventStore):
    """Events in one table; time groupings are reduced in the store timezone."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        tz: tzinfo | str = "UTC",
        timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._db_path = str(db_path)
        self._tz = load_timezone(tz) if isinstance(tz, str) else tz
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)
        self._ensure_schema()

    def save(self, event: MetricEvent) -> None:
        self.save_many([event])

    def save_many(self, events: Iterable[MetricEvent]) -> None:
        rows = [self._event_to_row(event) for event in events]
        try:
            with self._connect(None, "save") as conn:
                conn.executemany(_INSERT_SQL, rows)
                conn.commit()
        except sqlite3.Error as exc:
            raise self._dependency_error(exc, "save") from exc

    def query_grouped(
        self,
        predicate: EventPredicate,
        window: TimeWindow,
        group_key: Union[GroupKey, str],
        accumulator: Accumulator,
        *,
        value_field: str = "value",
        timeout: Optional[float] = None,
    ) -> List[GroupedRow]:
        if is_time_key(group_key) and group_key != GroupKey.ALL:
            return group_events(
                self.query_raw(predicate, window, timeout=timeout),
                group_key,
                accumulator,
                value_field=value_field,
                tz=self._tz,
            )

        key_sql, key_params = self._key_expression(group_key)
        value_sql, value_params = self._value_expression(accumulator, value_field)
        where_sql, where_params = self._where_clause(predicate, window)
        sql = (
            f"SELECT {key_sql} AS group_value, {value_sql} FROM events "
            f"WHERE {where_sql} GROUP BY group_value"
        )
        params = [*key_params, *value_params, *where_params]
        rows = self._fetch(sql, params, timeout, "query_grouped")
        return [(key, float(value or 0.0)) for key, value in rows]

    def query_raw(
        self,
        predicate: EventPredicate,
        window: TimeWindow,
        *,
        timeout: Optional[float] = None,
    ) -> List[MetricEvent]:
        where_sql, where_params = self._where_clause(predicate, window)
        sql = (
            f"SELECT {_SELECT_COLUMNS} FROM events WHERE {where_sql} "
            "ORDER BY timestamp ASC"
        )
        rows = self._fetch(sql, where_params, timeout, "query_raw")
        return [self._row_to_event(row) for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ensure_schema(self) -> None:
        try:
            with self._connect(None, "ensure_schema") as conn:
                conn.execute(_CREATE_TABLE_SQL)
                conn.execute(_CREATE_INDEX_SQL)
                conn.commit()
        except sqlite3.Error as exc:
            raise self._dependency_error(exc, "ensure_schema") from exc

    def _connect(self, timeout: Optional[float], operation: str) -> sqlite3.Connection:
        try:
            return sqlite3.connect(
                self._db_path,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except sqlite3.Error as exc:
            raise self._dependency_error(exc, operation) from exc

    def _fetch(
        self,
        sql: str,
        params: Sequence[Any],
        timeout: Optional[float],
        operation: str,
    ) -> List[Any]:
        try:
            with self._connect(timeout, operation) as conn:
                return conn.execute(sql, list(params)).fetchall()
        except sqlite3.Error as exc:
            raise self._dependency_error(exc, operation) from exc

    def _dependency_error(self, exc: Exception, operation: str) -> DependencyError:
        self._logger.error(
            "event_store_failure",
            extra={"store": "sqlite", "operation": operation, "error": str(exc)},
        )
        return DependencyError(
            "SQLite event store query failed",
            context={"operation": operation, "db_path": self._db_path},
        )

    @staticmethod
    def _where_clause(
        predicate: EventPredicate, window: TimeWindow
    ) -> Tuple[str, List[Any]]:
        clauses = ["kind = ?", "timestamp >= ?", "timestamp < ?"]
        params: List[Any] = [
            predicate.kind.value,
            window.start.timestamp(),
            window.end.timestamp(),
        ]
        if predicate.tenant_id is not None:
            clauses.append("tenant_id = ?")
            params.append(predicate.tenant_id)
        if predicate.statuses:
            statuses = sorted(predicate.statuses)
            clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(statuses)
        if predicate.exclude_statuses:
            excluded = sorted(predicate.exclude_statuses)
            clauses.append(
                f"(status IS NULL OR status NOT IN ({', '.join('?' for _ in excluded)}))"
            )
            params.extend(excluded)
        return " AND ".join(clauses), params

    @staticmethod
    def _key_expression(group_key: Union[GroupKey, str]) -> Tuple[str, List[Any]]:
        name = str(getattr(group_key, "value", group_key))
        if name == GroupKey.ALL.value:
            return "NULL", []
        if name in EVENT_FIELDS:
            return name, []
        return "json_extract(group_keys, ?)", [_json_path(name)]

    @staticmethod
    def _value_expression(
        accumulator: Accumulator, value_field: str
    ) -> Tuple[str, List[Any]]:
        if accumulator is Accumulator.COUNT:
            return "COUNT(*)", []
        if value_field == "value":
            return "COALESCE(SUM(value), 0)", []
        return "COALESCE(SUM(json_extract(group_keys, ?)), 0)", [_json_path(value_field)]

    @staticmethod
    def _event_to_row(event: MetricEvent) -> Row:
        return (
            event.id,
            event.kind.value,
            event.tenant_id,
            event.customer_id,
            event.status,
            event.timestamp.timestamp(),
            event.value,
            json.dumps(dict(event.group_keys), sort_keys=True, default=str),
        )

    @staticmethod
    def _row_to_event(row: Row) -> MetricEvent:
        id_, kind, tenant_id, customer_id, status, timestamp, value, group_keys = row
        return MetricEvent(
            id=id_,
            kind=kind,
            tenant_id=tenant_id,
            customer_id=customer_id,
            status=status,
            timestamp=datetime.fromtimestamp(float(timestamp), tz=timezone.utc),
            value=value,
            group_keys=json.loads(group_keys or "{}"),
        )


def _json_path(name: str) -> str:
    return '$."' + name.replace('"', '\\"') + '"'
