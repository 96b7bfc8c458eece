"""Dependency injection container for building fully-wired reporting services."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import httpx

from order_insights.aggregation.engine import AggregationEngine
from order_insights.cache.cache_aside import CacheAside
from order_insights.cache.memory_cache import InMemoryCacheClient
from order_insights.cache.redis_cache import RedisCacheClient
from order_insights.core.composer import InsightsComposer
from order_insights.core.config import InsightsConfig
from order_insights.core.platform import PlatformReports
from order_insights.core.service import ReportingService
from order_insights.domain.interfaces import Clock, ICacheClient, IEventStore
from order_insights.stores.http_store import HttpEventStore, HttpEventStoreConfig
from order_insights.stores.sqlite_store import SQLiteEventStore
from order_insights.windowing.resolver import TimeWindowResolver

logger = logging.getLogger(__name__)


class DIContainer:
    """Factory helpers that assemble a ReportingService with default wiring."""

    @staticmethod
    def create_service(
        *,
        config: Optional[InsightsConfig] = None,
        event_store: Optional[IEventStore] = None,
        db_path: str | Path | None = None,
        event_store_url: Optional[str] = None,
        event_store_api_key: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        cache_client: Optional[ICacheClient] = None,
        redis_url: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> ReportingService:
        cfg = config or InsightsConfig.from_env()
        store = event_store or DIContainer._build_event_store(
            cfg,
            db_path=db_path,
            url=event_store_url,
            api_key=event_store_api_key,
            http_client=http_client,
        )
        if store is None:
            raise ValueError(
                "An event store, db_path or event_store_url must be supplied"
            )

        if cache_client is None:
            cache_client = DIContainer._build_cache_client(cfg, redis_url)

        executor = ThreadPoolExecutor(
            max_workers=cfg.max_workers, thread_name_prefix="insights"
        )
        logger.info(
            "reporting_service_created",
            extra={
                "store": type(store).__name__,
                "cache": (
                    type(cache_client).__name__ if cache_client is not None else None
                ),
                "timezone": cfg.timezone,
            },
        )
        return DIContainer.create_custom_service(
            config=cfg,
            event_store=store,
            cache_client=cache_client,
            executor=executor,
            resolver=TimeWindowResolver(cfg.timezone, clock),
        )

    @staticmethod
    def create_custom_service(
        *,
        config: InsightsConfig,
        event_store: IEventStore,
        executor: Executor,
        cache_client: Optional[ICacheClient] = None,
        resolver: Optional[TimeWindowResolver] = None,
    ) -> ReportingService:
        resolver = resolver or TimeWindowResolver(config.timezone)
        engine = AggregationEngine(event_store, timeout=config.store_timeout_seconds)
        cache = CacheAside(cache_client, enabled=config.cache_enabled)
        insights = InsightsComposer(
            engine, cache, resolver, config, executor=executor
        )
        platform = PlatformReports(engine, cache, resolver, config, executor=executor)
        return ReportingService(insights, platform, executor=executor)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_event_store(
        config: InsightsConfig,
        *,
        db_path: str | Path | None,
        url: Optional[str],
        api_key: Optional[str],
        http_client: Optional[httpx.Client],
    ) -> Optional[IEventStore]:
        if db_path is not None and url:
            raise ValueError("Supply either db_path or event_store_url, not both")
        if db_path is not None:
            return SQLiteEventStore(
                db_path, tz=config.timezone, timeout=config.store_timeout_seconds
            )
        if url:
            store_config = HttpEventStoreConfig(
                base_url=url,
                api_key=api_key,
                timeout=config.store_timeout_seconds,
                timezone=config.timezone,
            )
            client = http_client or httpx.Client(timeout=store_config.timeout)
            return HttpEventStore(client, store_config)
        return None

    @staticmethod
    def _build_cache_client(
        config: InsightsConfig, redis_url: Optional[str]
    ) -> Optional[ICacheClient]:
        if not config.cache_enabled:
            return None
        if redis_url:
            return RedisCacheClient.from_url(
                redis_url, timeout=config.cache_timeout_seconds
            )
        return InMemoryCacheClient()
