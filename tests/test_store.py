"""Tests for the SQLite article store."""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

from health_feed.core.types import Source
from health_feed.store import ArticleStore, from_db_time, to_db_time

from conftest import NOW, make_article


def test_upsert_same_id_keeps_one_row_with_latest_title(tmp_path):
    store = ArticleStore(tmp_path / "feed.db")
    first = make_article("same", title="First title", age_hours=2)
    second = replace(first, title="Second title", link="https://example.com/moved")

    first_stats = store.upsert_articles([first], now=NOW)
    second_stats = store.upsert_articles([second], now=NOW)

    assert first_stats.inserted == 1
    assert second_stats.updated == 1
    assert store.count_articles() == 1
    stored = store.get_article("same")
    assert stored.title == "Second title"
    # link is kept from the first write
    assert stored.link == first.link


def test_retention_sweep_removes_articles_older_than_window(tmp_path):
    store = ArticleStore(tmp_path / "feed.db", retention_days=5)
    old = make_article("old", publish_date=NOW - timedelta(days=6))
    recent = make_article("recent", publish_date=NOW - timedelta(days=4))
    store.upsert_articles([old, recent], now=NOW - timedelta(days=2))

    stats = store.upsert_articles([], now=NOW)

    ids = [article.id for article in store.query_recent(NOW)]
    assert stats.purged == 1
    assert "old" not in ids
    assert "recent" in ids


def test_query_recent_is_newest_first(tmp_path):
    store = ArticleStore(tmp_path / "feed.db")
    store.upsert_articles(
        [make_article("a", age_hours=30), make_article("b", age_hours=1), make_article("c", age_hours=10)],
        now=NOW,
    )

    assert [article.id for article in store.query_recent(NOW)] == ["b", "c", "a"]


def test_source_state_round_trip(tmp_path):
    store = ArticleStore(tmp_path / "feed.db")
    source = Source(
        key="bbc",
        display_name="BBC Health",
        domain="bbc.com",
        listing_url="https://www.bbc.com",
        feed_url="https://feeds.bbci.co.uk/news/health/rss.xml",
        default_categories=("Public Health", "News"),
        fetch_count=3,
        error_count=1,
        last_fetched_at=NOW,
        last_method="feed",
    )

    assert store.save_source(source) is True
    loaded = store.load_sources()["bbc"]

    assert loaded == source


def test_settings_and_dynamic_categories(tmp_path):
    store = ArticleStore(tmp_path / "feed.db")

    store.set_setting("last_fetch", to_db_time(NOW))
    store.save_dynamic_categories(["Treatment", "Clinical"])
    store.save_dynamic_categories(["Treatment"])

    assert from_db_time(store.get_setting("last_fetch")) == NOW
    assert store.get_setting("missing") is None
    assert store.load_dynamic_categories() == ["Clinical", "Treatment"]
    assert store.ping() is True


def test_failing_row_is_skipped_without_losing_the_batch(tmp_path):
    store = ArticleStore(tmp_path / "feed.db")
    first = make_article("first", title="Measles cases fall", age_hours=2)
    broken = replace(make_article("broken", age_hours=2), title=None)
    last = make_article("last", title="New stroke guidance", age_hours=3)

    stats = store.upsert_articles([first, broken, last], now=NOW)

    assert (stats.inserted, stats.updated, stats.failed) == (2, 0, 1)
    assert store.get_article("broken") is None
    assert [article.id for article in store.query_recent(NOW)] == ["first", "last"]
