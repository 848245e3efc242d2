"""
In-memory recent-results cache.

Holds a single CacheSnapshot built from the latest aggregation run. The slot is
replaced as a whole on every write, so readers either see the previous snapshot
or the new one, never a partially built one. Entries expire after a TTL; the
expired snapshot is still reachable through peek() so reads can fall back to
stale data when the store is unreachable.
"""

from __future__ import annotations

from datetime import datetime, timezone
import threading
import time
from typing import Callable, Mapping, Sequence

from .core.types import Article, CacheSnapshot


class RecentResultsCache:
    """Single-slot TTL cache for the latest CacheSnapshot.

    Args:
        ttl_seconds: Lifetime of a snapshot after it is set
        max_entries: Article bound applied by build_snapshot callers
        clock: Monotonic time source in seconds (injected by tests)
    """

    def __init__(
        self,
        ttl_seconds: float = 86400,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._slot: tuple[CacheSnapshot, float] | None = None

    def set(self, snapshot: CacheSnapshot) -> None:
        with self._lock:
            self._slot = (snapshot, self._clock() + self.ttl_seconds)

    def get(self) -> CacheSnapshot | None:
        """Return the snapshot while it is fresh, otherwise None."""
        with self._lock:
            slot = self._slot
        if slot is None:
            return None
        snapshot, expires_at = slot
        if self._clock() >= expires_at:
            return None
        return snapshot

    def peek(self) -> CacheSnapshot | None:
        """Return the last snapshot regardless of expiry."""
        with self._lock:
            return self._slot[0] if self._slot is not None else None

    def clear(self) -> None:
        with self._lock:
            self._slot = None

    def state(self) -> str:
        with self._lock:
            slot = self._slot
        if slot is None:
            return "empty"
        return "fresh" if self._clock() < slot[1] else "expired"


def build_snapshot(
    by_source: Mapping[str, Sequence[Article]],
    max_entries: int = 500,
    now: datetime | None = None,
) -> CacheSnapshot:
    """Build an immutable snapshot, dropping the oldest-inserted articles past the bound.

    Insertion order is source order, then article order within each source, so
    trimming removes from the front of that sequence and the same articles
    disappear from both views.
    """
    now = now or datetime.now(timezone.utc)
    ordered = [article for articles in by_source.values() for article in articles]

    overflow = max(0, len(ordered) - max_entries) if max_entries > 0 else 0
    dropped = {id(article) for article in ordered[:overflow]}
    kept = tuple(ordered[overflow:])

    grouped = {
        key: tuple(article for article in articles if id(article) not in dropped)
        for key, articles in by_source.items()
    }
    return CacheSnapshot(
        articles_by_source=grouped,
        all_articles=kept,
        last_updated=now,
        total_count=len(kept),
    )
