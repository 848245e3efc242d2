"""Tests for the recent-results cache and snapshot building."""

from __future__ import annotations

from health_feed.cache import RecentResultsCache, build_snapshot

from conftest import NOW, make_article


class _Clock:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


def test_snapshot_expires_after_ttl():
    clock = _Clock()
    cache = RecentResultsCache(ttl_seconds=60, clock=clock)
    snapshot = build_snapshot({"bbc": [make_article("1")]}, now=NOW)

    cache.set(snapshot)
    assert cache.get() is snapshot
    assert cache.state() == "fresh"

    clock.value += 61
    assert cache.get() is None
    assert cache.peek() is snapshot
    assert cache.state() == "expired"

    cache.clear()
    assert cache.peek() is None
    assert cache.state() == "empty"


def test_snapshot_drops_oldest_inserted_beyond_bound():
    by_source = {
        "healthcom": [make_article(f"h{i}", source_key="healthcom") for i in range(3)],
        "bbc": [make_article(f"b{i}") for i in range(3)],
    }

    snapshot = build_snapshot(by_source, max_entries=4, now=NOW)

    assert snapshot.total_count == 4
    assert [article.id for article in snapshot.all_articles] == ["h2", "b0", "b1", "b2"]
    assert [article.id for article in snapshot.articles_by_source["healthcom"]] == ["h2"]
    assert len(snapshot.articles_by_source["bbc"]) == 3
    assert snapshot.last_updated == NOW


def test_snapshot_within_bound_keeps_everything():
    by_source = {"bbc": [make_article("1")], "guardian": []}

    snapshot = build_snapshot(by_source, max_entries=500, now=NOW)

    assert snapshot.total_count == 1
    assert snapshot.articles_by_source["guardian"] == ()
