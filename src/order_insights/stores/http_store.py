"""Event store adapter that talks to a remote event-store service over HTTP."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from order_insights.domain.exceptions import DependencyError
from order_insights.domain.interfaces import GroupedRow, IEventStore
from order_insights.domain.models import (
    Accumulator,
    EventPredicate,
    GroupKey,
    MetricEvent,
    TimeWindow,
)

AGGREGATE_PATH = "/v1/events/aggregate"
QUERY_PATH = "/v1/events/query"


@dataclass(frozen=True)
class HttpEventStoreConfig:
    """Connection settings for the remote event store."""

    base_url: str
    api_key: Optional[str] = None
    timeout: float = 10.0
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be provided")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than zero")


class HttpEventStore(IEventStore):
    """Sends declarative queries as JSON and maps replies onto domain types."""

    def __init__(
        self,
        http_client: httpx.Client,
        config: HttpEventStoreConfig,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._http = http_client
        self.config = config
        self._base = config.base_url.rstrip("/")
        self.logger = logger or logging.getLogger(__name__)

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
        payload = self._base_payload(predicate, window)
        payload.update(
            {
                "group_by": str(getattr(group_key, "value", group_key)),
                "accumulator": accumulator.value,
                "value_field": value_field,
            }
        )
        data = self._post(AGGREGATE_PATH, payload, timeout)
        try:
            return [(group["key"], float(group["value"])) for group in data["groups"]]
        except (KeyError, TypeError, ValueError) as exc:
            raise DependencyError(
                "Malformed aggregate response from event store",
                context={"path": AGGREGATE_PATH},
            ) from exc

    def query_raw(
        self,
        predicate: EventPredicate,
        window: TimeWindow,
        *,
        timeout: Optional[float] = None,
    ) -> List[MetricEvent]:
        data = self._post(QUERY_PATH, self._base_payload(predicate, window), timeout)
        try:
            return [MetricEvent.model_validate(item) for item in data["events"]]
        except (KeyError, TypeError, PydanticValidationError) as exc:
            raise DependencyError(
                "Malformed event list from event store",
                context={"path": QUERY_PATH},
            ) from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _base_payload(
        self, predicate: EventPredicate, window: TimeWindow
    ) -> Dict[str, Any]:
        return {
            "predicate": {
                "kind": predicate.kind.value,
                "tenant_id": predicate.tenant_id,
                "statuses": sorted(predicate.statuses),
                "exclude_statuses": sorted(predicate.exclude_statuses),
            },
            "window": {
                "start": window.start.isoformat(),
                "end": window.end.isoformat(),
            },
            "timezone": self.config.timezone,
        }

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _post(
        self, path: str, payload: Dict[str, Any], timeout: Optional[float]
    ) -> Dict[str, Any]:
        self.logger.debug("event_store_request", extra={"path": path})
        try:
            http_response = self._http.post(
                f"{self._base}{path}",
                json=payload,
                headers=self._headers(),
                timeout=timeout if timeout is not None else self.config.timeout,
            )
        except httpx.TimeoutException as exc:
            self.logger.error("event_store_timeout", extra={"path": path})
            raise DependencyError(
                "Event store timed out", context={"path": path}
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.error(
                "event_store_failure", extra={"path": path, "error": str(exc)}
            )
            raise DependencyError(
                "Event store unreachable", context={"path": path}
            ) from exc
        return self._map_response(http_response, path)

    def _map_response(self, http_response: httpx.Response, path: str) -> Dict[str, Any]:
        status = http_response.status_code
        if status >= 400:
            self.logger.error(
                "event_store_failure", extra={"path": path, "status_code": status}
            )
            raise DependencyError(
                "Event store returned an error",
                context={"path": path, "status_code": status},
            )
        try:
            data = http_response.json()
        except ValueError as exc:
            raise DependencyError(
                "Event store returned invalid JSON", context={"path": path}
            ) from exc
        if not isinstance(data, dict):
            raise DependencyError(
                "Event store returned an unexpected payload", context={"path": path}
            )
        return data
