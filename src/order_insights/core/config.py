"""Reporting engine configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

from order_insights.windowing.resolver import load_timezone

DEFAULT_CACHE_TTLS: Mapping[str, int] = {
    "admin:overview": 7200,
    "admin:revenue": 7200,
    "admin:orders": 7200,
    "admin:top-providers": 7200,
    "admin:ratings": 7200,
    "admin:states": 7200,
    "admin:customers": 7200,
    "admin:trending": 7200,
    "admin:report-revenue": 7200,
    "admin:report-volume": 7200,
}


def _str_to_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _str_to_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


def _str_to_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid number value: {value}") from exc


def _parse_ttls(raw: str | None) -> Dict[str, int]:
    """Parse ``family=seconds`` pairs separated by commas."""

    if not raw:
        return {}
    ttls: Dict[str, int] = {}
    for pair in raw.split(","):
        if not pair.strip():
            continue
        family, sep, seconds = pair.partition("=")
        if not sep:
            raise ValueError(f"Invalid cache TTL entry: {pair!r}")
        ttls[family.strip()] = _str_to_int(seconds.strip(), 0)
    return ttls


@dataclass(frozen=True)
class InsightsConfig:
    """Immutable configuration object loaded from env or files."""

    timezone: str = "UTC"
    cache_enabled: bool = True
    default_cache_ttl: int = 3600
    cache_ttls: Dict[str, int] = field(default_factory=dict)
    store_timeout_seconds: float = 10.0
    cache_timeout_seconds: float = 0.5
    request_timeout_seconds: float = 30.0
    max_workers: int = 8
    default_page_limit: int = 5
    max_page_limit: int = 100
    top_cities: int = 7

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def from_env(cls) -> "InsightsConfig":
        defaults = cls()
        return cls(
            timezone=os.getenv("INSIGHTS_TIMEZONE", defaults.timezone),
            cache_enabled=_str_to_bool(
                os.getenv("INSIGHTS_CACHE_ENABLED"), defaults.cache_enabled
            ),
            default_cache_ttl=_str_to_int(
                os.getenv("INSIGHTS_DEFAULT_CACHE_TTL"), defaults.default_cache_ttl
            ),
            cache_ttls=_parse_ttls(os.getenv("INSIGHTS_CACHE_TTLS")),
            store_timeout_seconds=_str_to_float(
                os.getenv("INSIGHTS_STORE_TIMEOUT_SECONDS"),
                defaults.store_timeout_seconds,
            ),
            cache_timeout_seconds=_str_to_float(
                os.getenv("INSIGHTS_CACHE_TIMEOUT_SECONDS"),
                defaults.cache_timeout_seconds,
            ),
            request_timeout_seconds=_str_to_float(
                os.getenv("INSIGHTS_REQUEST_TIMEOUT_SECONDS"),
                defaults.request_timeout_seconds,
            ),
            max_workers=_str_to_int(
                os.getenv("INSIGHTS_MAX_WORKERS"), defaults.max_workers
            ),
            default_page_limit=_str_to_int(
                os.getenv("INSIGHTS_DEFAULT_PAGE_LIMIT"), defaults.default_page_limit
            ),
            max_page_limit=_str_to_int(
                os.getenv("INSIGHTS_MAX_PAGE_LIMIT"), defaults.max_page_limit
            ),
            top_cities=_str_to_int(os.getenv("INSIGHTS_TOP_CITIES"), defaults.top_cities),
        )

    @classmethod
    def from_file(cls, path: str) -> "InsightsConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ValueError("Unsupported config format. Use JSON or YAML.")
        return cls(**cls._merge_with_defaults(data))

    def ttl_for(self, family: str) -> int:
        """TTL in seconds for a metric family; explicit overrides win."""

        if family in self.cache_ttls:
            return self.cache_ttls[family]
        return DEFAULT_CACHE_TTLS.get(family, self.default_cache_ttl)

    def validate(self) -> None:
        load_timezone(self.timezone)
        if self.default_cache_ttl < 0:
            raise ValueError("default_cache_ttl must be non-negative")
        if not isinstance(self.cache_ttls, dict):
            raise ValueError("cache_ttls must be a mapping of family to seconds")
        if any(int(ttl) < 0 for ttl in self.cache_ttls.values()):
            raise ValueError("cache TTLs must be non-negative")
        for name in (
            "store_timeout_seconds",
            "cache_timeout_seconds",
            "request_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than zero")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be greater than zero")
        if not 1 <= self.default_page_limit <= self.max_page_limit:
            raise ValueError("default_page_limit must be between 1 and max_page_limit")
        if self.top_cities <= 0:
            raise ValueError("top_cities must be greater than zero")

    @classmethod
    def _merge_with_defaults(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        defaults = cls()
        merged = {
            name: data.get(name, getattr(defaults, name))
            for name in cls.__dataclass_fields__
        }
        merged["cache_ttls"] = dict(merged["cache_ttls"] or {})
        return merged

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to parse YAML config files") from exc
        return yaml.safe_load(raw) or {}
