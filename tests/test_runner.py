"""Tests for aggregation runs and the jittered scheduler."""

from __future__ import annotations

import random
import threading

from health_feed import orchestrator
from health_feed.cache import RecentResultsCache
from health_feed.categorize import Categorizer
from health_feed.config import ScheduleConfig
from health_feed.core.types import RawArticle, RunResult
from health_feed.orchestrator import RunContext
from health_feed.runner import AggregationScheduler, RunStats, next_delay_seconds, run_aggregation
from health_feed.sources import SEED_SOURCES, SourceRegistry
from health_feed.store import LAST_FETCH_SETTING, ArticleStore

from conftest import NOW


def _ctx(cfg, sleeps=None):
    return RunContext(
        cfg=cfg,
        registry=SourceRegistry(SEED_SOURCES),
        categorizer=Categorizer(),
        sleep=(sleeps.append if sleeps is not None else (lambda seconds: None)),
        now=lambda: NOW,
    )


def test_run_isolates_failing_source_and_pauses_between_sources(monkeypatch, cfg, tmp_path):
    cfg.politeness.source_delay_seconds = 2.0
    sleeps: list[float] = []
    ctx = _ctx(cfg, sleeps)
    store = ArticleStore(tmp_path / "feed.db")
    cache = RecentResultsCache()

    def fake_scrape(source, fetch_cfg):
        if source.key == "guardian":
            raise RuntimeError("markup changed")
        return [RawArticle(title=f"{source.key} clinical news", link=f"https://example.com/{source.key}")]

    monkeypatch.setattr(orchestrator, "discover_feed", lambda url, fetch_cfg: None)
    monkeypatch.setattr(orchestrator, "scrape_page", fake_scrape)

    result = run_aggregation(ctx, store, cache)

    assert sleeps == [2.0, 2.0, 2.0]
    assert list(result.outcomes) == ["healthywomen", "healthcom", "guardian", "bbc"]
    assert result.outcomes["guardian"].articles == []
    assert "markup changed" in result.outcomes["guardian"].error
    assert ctx.registry.get("guardian").error_count == 1
    assert result.total == 3
    assert result.stored.inserted == 3

    snapshot = cache.get()
    assert snapshot.total_count == 3
    assert list(snapshot.articles_by_source) == ["healthywomen", "healthcom", "guardian", "bbc"]
    assert store.get_setting(LAST_FETCH_SETTING) is not None
    assert "Clinical" in store.load_dynamic_categories()

    stats = RunStats.from_result(result)
    assert (stats.scrape, stats.failed) == (3, 1)


def test_next_delay_is_within_jitter_window():
    cfg = ScheduleConfig()
    rng = random.Random(42)

    delays = [next_delay_seconds(rng, cfg) for _ in range(1000)]

    assert all(10 * 3600 <= delay < 16 * 3600 for delay in delays)
    # Spread across the window rather than clustered
    assert min(delays) < 11 * 3600
    assert max(delays) > 15 * 3600


def test_scheduled_runs_never_overlap():
    clock = {"now": 0.0}
    spans: list[tuple[float, float]] = []

    def fake_run() -> RunResult:
        start = clock["now"]
        clock["now"] += 120.0
        spans.append((start, clock["now"]))
        return RunResult(started_at=NOW)

    scheduler = AggregationScheduler(fake_run, ScheduleConfig(), rng=random.Random(7))

    for _ in range(1000):
        delay = scheduler.step()
        assert 10 * 3600 <= delay < 16 * 3600
        clock["now"] += delay

    assert len(spans) == 1000
    for (_, previous_end), (next_start, _) in zip(spans, spans[1:]):
        assert next_start >= previous_end


def test_failed_first_run_retries_after_startup_delay():
    outcomes = iter([RuntimeError("network down"), None, RuntimeError("later failure")])

    def flaky_run():
        outcome = next(outcomes)
        if outcome is not None:
            raise outcome
        return RunResult(started_at=NOW)

    scheduler = AggregationScheduler(flaky_run, ScheduleConfig(), rng=random.Random(1))

    assert scheduler.step() == 30 * 60
    assert scheduler.last_error == "RuntimeError: network down"
    assert 10 * 3600 <= scheduler.step() < 16 * 3600
    assert scheduler.last_error is None
    assert 10 * 3600 <= scheduler.step() < 16 * 3600


def test_stop_interrupts_wait_between_runs():
    ran = threading.Event()

    def fake_run():
        ran.set()
        return RunResult(started_at=NOW)

    scheduler = AggregationScheduler(fake_run, ScheduleConfig())
    scheduler.start()
    assert ran.wait(5)

    scheduler.stop(timeout=5)

    assert not scheduler.running
