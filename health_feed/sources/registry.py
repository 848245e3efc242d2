"""
Source registry: the single source of truth for which outlets to crawl.

The catalog is static, but each Source carries learned state (discovered feed
URL, attempt counters, last method). Updates replace the frozen Source object
under a lock so concurrent readers always see a complete record, and are written
through to the store so a restart does not rediscover feeds.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import logging
import threading
from typing import TYPE_CHECKING, Any, Iterable

from ..core.types import FETCH_METHODS, METHOD_NONE, Source
from ..errors import ConfigurationError, UnknownSourceError
from ..logging_utils import log_event

if TYPE_CHECKING:
    from ..store import ArticleStore


logger = logging.getLogger(__name__)


class SourceRegistry:
    """Ordered, owned store of Source records.

    Args:
        sources: Catalog entries in crawl order
        store: Optional store used to load and persist learned state
    """

    def __init__(self, sources: Iterable[Source], store: ArticleStore | None = None):
        self._lock = threading.Lock()
        self._store = store
        self._sources: dict[str, Source] = {}
        for source in sources:
            self._register(source)
        if not self._sources:
            raise ConfigurationError("Source catalog is empty")
        if store is not None:
            self._load_persisted(store)

    def _register(self, source: Source) -> None:
        if not source.key or not source.key.strip():
            raise ConfigurationError("Source key must not be empty")
        if source.key in self._sources:
            raise ConfigurationError(f"Duplicate source key: {source.key}")
        if not source.listing_url:
            raise ConfigurationError(f"Source '{source.key}' has no listing URL")
        if source.last_method not in FETCH_METHODS:
            raise ConfigurationError(f"Source '{source.key}' has invalid method {source.last_method!r}")
        self._sources[source.key] = source
        log_event(
            logger,
            f"Registered source: {source.key} ({source.display_name})",
            event="source_registered",
            source_key=source.key,
        )

    def _load_persisted(self, store: ArticleStore) -> None:
        """Overlay learned state from the store; seed rows for unseen sources."""
        persisted = store.load_sources()
        for key, source in list(self._sources.items()):
            state = persisted.get(key)
            if state is None:
                store.save_source(source)
                continue
            self._sources[key] = replace(
                source,
                feed_url=source.feed_url or state.feed_url,
                fetch_count=state.fetch_count,
                error_count=state.error_count,
                last_fetched_at=state.last_fetched_at,
                last_method=state.last_method,
            )

    def get(self, key: str) -> Source:
        source = self._sources.get(key)
        if source is None:
            raise UnknownSourceError(key)
        return source

    def __contains__(self, key: object) -> bool:
        return key in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def keys(self) -> list[str]:
        return list(self._sources)

    def list_all(self) -> list[Source]:
        return list(self._sources.values())

    def list_active(self) -> list[Source]:
        return [source for source in self._sources.values() if source.is_active]

    def set_feed_url(self, key: str, feed_url: str) -> Source:
        """Record a discovered feed URL; later runs skip discovery."""
        return self._update(key, feed_url=feed_url)

    def mark_attempt(self, key: str, method: str, success: bool, now: datetime | None = None) -> Source:
        """Record the outcome of one orchestration attempt.

        Success bumps fetch_count and records the method; failure bumps
        error_count and resets the method to "none".
        """
        if method not in FETCH_METHODS:
            raise ValueError(f"Unknown fetch method: {method!r}")
        now = now or datetime.now(timezone.utc)
        with self._lock:
            current = self.get(key)
            if success:
                updated = replace(
                    current,
                    fetch_count=current.fetch_count + 1,
                    last_method=method,
                    last_fetched_at=now,
                )
            else:
                updated = replace(
                    current,
                    error_count=current.error_count + 1,
                    last_method=METHOD_NONE,
                    last_fetched_at=now,
                )
            self._sources[key] = updated
        self._persist(updated)
        return updated

    def _update(self, key: str, **changes: Any) -> Source:
        with self._lock:
            updated = replace(self.get(key), **changes)
            self._sources[key] = updated
        self._persist(updated)
        return updated

    def _persist(self, source: Source) -> None:
        if self._store is None:
            return
        self._store.save_source(source)

    def stats(self) -> list[dict[str, Any]]:
        """Per-source diagnostics for health reporting."""
        return [
            {
                "key": source.key,
                "name": source.display_name,
                "active": source.is_active,
                "feed_url": source.feed_url,
                "fetch_count": source.fetch_count,
                "error_count": source.error_count,
                "last_method": source.last_method,
                "last_fetched_at": source.last_fetched_at.isoformat() if source.last_fetched_at else None,
            }
            for source in self._sources.values()
        ]
