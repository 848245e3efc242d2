"""
Service facade: wires the store, registry, categorizer, cache and scheduler
and exposes the read and trigger operations used by the CLI or a route layer.

Reads check the cache first and fall back to the store. If the store is
unreachable, the last cached snapshot is served even when expired; with nothing
cached the caller gets empty buckets and an explanatory status.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
import logging
import sqlite3
import threading
import time
from typing import Any, Callable

from .cache import RecentResultsCache
from .categorize import Categorizer
from .config import AppConfig
from .core.types import Article, ArticleQueryResult, RunResult
from .errors import InvalidQueryError
from .logging_utils import warn_event
from .orchestrator import RunContext
from .query import apply_source_limit, filter_articles, group_by_source, rank_articles
from .runner import AggregationScheduler, run_aggregation
from .sources.catalog import build_catalog
from .sources.registry import SourceRegistry
from .store import LAST_FETCH_SETTING, ArticleStore, from_db_time


logger = logging.getLogger(__name__)

ORIGIN_CACHE = "cache"
ORIGIN_STORE = "store"
ORIGIN_UNAVAILABLE = "unavailable"


class HealthFeedService:
    """Entry point for running aggregation and querying the corpus.

    Args:
        cfg: Application configuration
        store: Optional pre-built store (tests pass one on a temp path)
        sleep: Sleep function for politeness delays
        now: Clock returning timezone-aware UTC datetimes
    """

    def __init__(
        self,
        cfg: AppConfig,
        store: ArticleStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] | None = None,
    ):
        self.cfg = cfg
        self.store = store if store is not None else ArticleStore(cfg.store.path, cfg.store.retention_days)
        self.registry = SourceRegistry(build_catalog(cfg.sources), store=self.store)
        self.categorizer = Categorizer(seed=self._load_dynamic_categories())
        self.cache = RecentResultsCache(
            ttl_seconds=cfg.cache.ttl_hours * 3600,
            max_entries=cfg.cache.max_entries,
        )
        self.context = RunContext(
            cfg=cfg,
            registry=self.registry,
            categorizer=self.categorizer,
            sleep=sleep,
        )
        if now is not None:
            self.context.now = now
        self.scheduler = AggregationScheduler(self.fetch_all_active_sources_once, cfg.schedule)
        self.last_aggregation: datetime | None = None
        self._run_lock = threading.Lock()

    def _load_dynamic_categories(self) -> list[str]:
        try:
            return self.store.load_dynamic_categories()
        except sqlite3.Error as exc:
            warn_event(logger, "Could not load dynamic categories", event="store_read_failed", error=str(exc))
            return []

    # Aggregation

    def fetch_all_active_sources_once(self) -> RunResult:
        """Run one aggregation pass, waiting for any run already in progress."""
        with self._run_lock:
            result = run_aggregation(self.context, self.store, self.cache)
            self.last_aggregation = result.finished_at
        return result

    def start_scheduler(self) -> None:
        self.scheduler.start()

    def stop_scheduler(self, timeout: float | None = None) -> None:
        self.scheduler.stop(timeout)

    # Reads

    def get_articles(
        self,
        keyword: str = "",
        category: str = "",
        source: str = "",
        limit: int = 0,
    ) -> ArticleQueryResult:
        """Filter, rank and group articles; never raises for unreachable storage."""
        articles, origin, last_updated, status = self._load_articles()
        now = self.context.now()

        matched = filter_articles(articles, keyword, category, source)
        ranked = rank_articles(matched, keyword, now)
        by_source = group_by_source(ranked, self.registry.keys())
        by_source = apply_source_limit(by_source, limit)

        return ArticleQueryResult(
            by_source=by_source,
            total=sum(len(bucket) for bucket in by_source.values()),
            keyword=keyword,
            category=category,
            source=source,
            last_updated=last_updated,
            origin=origin,
            status=status,
        )

    def search(self, query: str, category: str = "", source: str = "", limit: int = 0) -> ArticleQueryResult:
        if not query or not query.strip():
            raise InvalidQueryError("Search query must not be empty")
        return self.get_articles(keyword=query.strip(), category=category, source=source, limit=limit)

    def articles_for_source(
        self,
        key: str,
        keyword: str = "",
        category: str = "",
        limit: int = 0,
    ) -> ArticleQueryResult:
        if key not in self.registry:
            raise InvalidQueryError(f"Unknown source: {key}")
        result = self.get_articles(keyword=keyword, category=category, source=key)
        # A single bucket takes the whole limit, not a per-bucket share
        if limit > 0:
            result.by_source[key] = result.by_source[key][:limit]
            result.total = len(result.by_source[key])
        return result

    def get_article(self, article_id: str) -> Article | None:
        snapshot = self.cache.get()
        if snapshot is not None:
            for article in snapshot.all_articles:
                if article.id == article_id:
                    return article
        try:
            return self.store.get_article(article_id)
        except sqlite3.Error as exc:
            warn_event(logger, "Article lookup failed", event="store_read_failed", error=str(exc))
            return None

    def get_categories(self) -> list[str]:
        return self.categorizer.categories()

    def source_stats(self) -> list[dict[str, Any]]:
        return self.registry.stats()

    def stats(self) -> dict[str, Any]:
        """Corpus totals, per-source breakdown, category distribution and health."""
        articles, origin, last_updated, status = self._load_articles()

        per_source: dict[str, dict[str, Any]] = {}
        for source in self.registry.list_all():
            owned = [article for article in articles if article.source_key == source.key]
            latest = max((article.publish_date for article in owned), default=None)
            per_source[source.key] = {
                "name": source.display_name,
                "count": len(owned),
                "latest": latest.isoformat() if latest else None,
                "categories": sorted({article.category for article in owned}),
            }

        distribution = Counter(article.category for article in articles)
        return {
            "total": len(articles),
            "origin": origin,
            "status": status,
            "sources": per_source,
            "category_distribution": dict(distribution.most_common()),
            "categories": self.get_categories(),
            "last_updated": last_updated.isoformat() if last_updated else None,
            "last_aggregation": self._last_aggregation_time(),
            "health": self.health(),
        }

    def health(self) -> dict[str, Any]:
        store_ok = self.store.ping()
        cache_state = self.cache.state()
        return {
            "status": "ok" if store_ok else "degraded",
            "store": "ok" if store_ok else "unreachable",
            "cache": cache_state,
            "scheduler": "running" if self.scheduler.running else "stopped",
            "next_run_at": self.scheduler.next_run_at.isoformat() if self.scheduler.next_run_at else None,
        }

    # Internals

    def _load_articles(self) -> tuple[list[Article], str, datetime | None, str]:
        """Return (articles, origin, last_updated, status) from cache, store or stale cache."""
        snapshot = self.cache.get()
        if snapshot is not None:
            return list(snapshot.all_articles), ORIGIN_CACHE, snapshot.last_updated, ""

        now = self.context.now()
        try:
            return self.store.query_recent(now), ORIGIN_STORE, now, ""
        except sqlite3.Error as exc:
            warn_event(logger, "Store read failed", event="store_read_failed", error=str(exc))

        stale = self.cache.peek()
        if stale is not None:
            return (
                list(stale.all_articles),
                ORIGIN_CACHE,
                stale.last_updated,
                "Store unreachable; serving the last cached results",
            )
        return [], ORIGIN_UNAVAILABLE, None, "Store unreachable and no cached results available"

    def _last_aggregation_time(self) -> str | None:
        if self.last_aggregation is not None:
            return self.last_aggregation.isoformat()
        try:
            persisted = from_db_time(self.store.get_setting(LAST_FETCH_SETTING))
        except sqlite3.Error as exc:
            warn_event(logger, "Could not read last fetch time", event="store_read_failed", error=str(exc))
            return None
        return persisted.isoformat() if persisted else None
