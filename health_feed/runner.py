"""
Aggregation run and background scheduler.

A run walks every active source in registry order with a politeness pause
between sources, then persists the combined batch, publishes a fresh cache
snapshot and records the run time. The scheduler repeats runs on a background
thread with a jittered 10-16 hour gap so polling never settles into a fixed
rhythm.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import random
import sqlite3
import threading
from typing import Callable

from .cache import RecentResultsCache, build_snapshot
from .config import ScheduleConfig
from .core.types import METHOD_NONE, METHOD_FEED, METHOD_SCRAPE, RunResult, SourceOutcome
from .logging_utils import log_event, warn_event
from .orchestrator import RunContext, fetch_source
from .store import LAST_FETCH_SETTING, ArticleStore, to_db_time


logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    """Per-method tallies for one run.

    Attributes:
        total: Sources attempted
        feed: Sources served by their feed
        scrape: Sources served by the scrape fallback
        empty: Sources that produced nothing
        failed: Sources whose processing raised
    """
    total: int = 0
    feed: int = 0
    scrape: int = 0
    empty: int = 0
    failed: int = 0

    @classmethod
    def from_result(cls, result: RunResult) -> "RunStats":
        stats = cls(total=len(result.outcomes))
        for outcome in result.outcomes.values():
            if outcome.error:
                stats.failed += 1
            elif outcome.method == METHOD_FEED:
                stats.feed += 1
            elif outcome.method == METHOD_SCRAPE:
                stats.scrape += 1
            else:
                stats.empty += 1
        return stats


def run_aggregation(
    ctx: RunContext,
    store: ArticleStore | None,
    cache: RecentResultsCache,
) -> RunResult:
    """Run one full aggregation pass over the active sources.

    A failure inside one source becomes an empty outcome for that source and
    the run carries on. Store failures are logged; the cache is still rebuilt.
    """
    result = RunResult(started_at=ctx.now())
    sources = ctx.registry.list_active()
    log_event(logger, "Aggregation start", event="run_start", sources=len(sources))

    for index, source in enumerate(sources):
        if index > 0 and ctx.cfg.politeness.source_delay_seconds > 0:
            ctx.sleep(ctx.cfg.politeness.source_delay_seconds)
        try:
            outcome = fetch_source(source, ctx)
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Source failed: %s",
                source.key,
                extra={"event": "source_failed", "source_key": source.key},
            )
            ctx.registry.mark_attempt(source.key, METHOD_NONE, success=False, now=ctx.now())
            outcome = SourceOutcome(
                source_key=source.key,
                error=f"{type(exc).__name__}: {exc}",
            )
        result.outcomes[source.key] = outcome

    articles = result.articles
    if store is not None:
        try:
            result.stored = store.upsert_articles(articles, now=ctx.now())
        except sqlite3.Error as exc:
            warn_event(logger, "Store write failed", event="store_write_failed", error=str(exc))

    by_source = {
        key: result.outcomes[key].articles if key in result.outcomes else []
        for key in ctx.registry.keys()
    }
    snapshot = build_snapshot(by_source, cache.max_entries, now=ctx.now())
    cache.set(snapshot)

    result.finished_at = ctx.now()
    if store is not None:
        try:
            store.set_setting(LAST_FETCH_SETTING, to_db_time(result.finished_at))
            store.save_dynamic_categories(ctx.categorizer.dynamic_categories())
        except sqlite3.Error as exc:
            warn_event(logger, "Run bookkeeping write failed", event="store_write_failed", error=str(exc))

    stats = RunStats.from_result(result)
    log_event(
        logger,
        f"Aggregation complete: {result.total} articles",
        event="run_complete",
        count=result.total,
        cached=snapshot.total_count,
        feed=stats.feed,
        scrape=stats.scrape,
        empty=stats.empty,
        failed=stats.failed,
    )
    return result


def next_delay_seconds(rng: random.Random, cfg: ScheduleConfig) -> float:
    """Uniform delay in [min_hours, max_hours), in seconds."""
    low = cfg.min_hours * 3600
    high = cfg.max_hours * 3600
    return low + rng.random() * (high - low)


class AggregationScheduler:
    """Repeats runs on a background thread with jittered gaps.

    Each cycle runs to completion before the next delay is computed, so runs
    never overlap. stop() interrupts the wait between runs but never a run in
    progress.

    Args:
        run: Callable performing one aggregation run
        cfg: Schedule settings
        rng: Random source for the jitter (seeded by tests)
    """

    def __init__(
        self,
        run: Callable[[], RunResult],
        cfg: ScheduleConfig,
        rng: random.Random | None = None,
    ):
        self._run = run
        self.cfg = cfg
        self._rng = rng or random.Random()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._completed_runs = 0
        self.next_run_at: datetime | None = None
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="health-feed-scheduler", daemon=True)
        self._thread.start()
        log_event(logger, "Scheduler started", event="scheduler_start")

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        log_event(logger, "Scheduler stopped", event="scheduler_stop")

    def step(self) -> float:
        """Perform one run and return the delay before the next one."""
        try:
            self._run()
        except Exception as exc:  # noqa: BLE001
            self.last_error = f"{type(exc).__name__}: {exc}"
            logger.exception("Scheduled run failed", extra={"event": "run_failed"})
            if self._completed_runs == 0:
                return self.cfg.startup_retry_minutes * 60
            return next_delay_seconds(self._rng, self.cfg)
        self._completed_runs += 1
        self.last_error = None
        return next_delay_seconds(self._rng, self.cfg)

    def _loop(self) -> None:
        if not self.cfg.run_on_start:
            if self._wait(next_delay_seconds(self._rng, self.cfg)):
                return
        while not self._stop.is_set():
            delay = self.step()
            if self._wait(delay):
                return

    def _wait(self, delay: float) -> bool:
        self.next_run_at = datetime.now(timezone.utc) + timedelta(seconds=delay)
        log_event(
            logger,
            f"Next run in {delay / 3600:.2f} hours",
            event="run_scheduled",
            delay_seconds=round(delay, 1),
        )
        return self._stop.wait(delay)
