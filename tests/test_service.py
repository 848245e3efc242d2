"""End-to-end tests for the service facade with network stages stubbed out."""

from __future__ import annotations

import sqlite3

import pytest

from health_feed import orchestrator
from health_feed.core.types import RawArticle
from health_feed.errors import InvalidQueryError
from health_feed.service import HealthFeedService
from health_feed.store import ArticleStore

from conftest import NOW


FEEDS = {
    "healthywomen": [
        ("Menopause and sleep", "Hot flashes disrupt rest"),
        ("Breast cancer screening", "New guidance on mammograms"),
    ],
    "healthcom": [("Diabetes plan", "Managing blood sugar with insulin")],
    "guardian": [],
    "bbc": [
        ("diabetes", "Numbers rising worldwide"),
        ("Malaria vaccine rollout", "Vaccination begins in three countries"),
    ],
}


@pytest.fixture
def service(monkeypatch, cfg, tmp_path):
    def fake_scrape(source, fetch_cfg):
        return [
            RawArticle(title=title, link=f"https://{source.domain}/{i}", summary=summary)
            for i, (title, summary) in enumerate(FEEDS[source.key])
        ]

    monkeypatch.setattr(orchestrator, "discover_feed", lambda url, fetch_cfg: None)
    monkeypatch.setattr(orchestrator, "scrape_page", fake_scrape)
    store = ArticleStore(tmp_path / "feed.db")
    return HealthFeedService(cfg, store=store, sleep=lambda seconds: None, now=lambda: NOW)


def test_get_articles_matches_snapshot_after_run(service):
    service.fetch_all_active_sources_once()

    result = service.get_articles()

    assert result.origin == "cache"
    assert result.total == service.cache.get().total_count == 5
    assert list(result.by_source) == ["healthywomen", "healthcom", "guardian", "bbc"]
    assert result.by_source["guardian"] == []


def test_reads_fall_back_to_store_when_cache_empty(service):
    service.fetch_all_active_sources_once()
    service.cache.clear()

    result = service.get_articles(keyword="diabetes")

    assert result.origin == "store"
    assert result.total == 2
    assert result.all_articles()[0].article.title == "diabetes"


def _broken_query(*args, **kwargs):
    raise sqlite3.OperationalError("unable to open database file")


def test_unreachable_store_without_cache_returns_empty_buckets(service, monkeypatch):
    monkeypatch.setattr(service.store, "query_recent", _broken_query)

    result = service.get_articles()

    assert result.origin == "unavailable"
    assert result.total == 0
    assert result.status
    assert all(bucket == [] for bucket in result.by_source.values())


def test_unreachable_store_serves_stale_cache(service, monkeypatch):
    service.fetch_all_active_sources_once()
    service.cache.ttl_seconds = -1
    service.cache.set(service.cache.peek())
    monkeypatch.setattr(service.store, "query_recent", _broken_query)

    result = service.get_articles()

    assert result.origin == "cache"
    assert result.total == 5
    assert "unreachable" in result.status


def test_search_requires_query_and_source_lookup_validates_key(service):
    with pytest.raises(InvalidQueryError):
        service.search("   ")
    with pytest.raises(ValueError):
        service.articles_for_source("missing")


def test_search_category_and_limit(service):
    service.fetch_all_active_sources_once()

    assert service.search("vaccine").total == 1
    assert service.get_articles(category="diabetes").total == 2
    assert service.articles_for_source("healthywomen").total == 2
    # ceil(4 / 4) == 1 per bucket
    assert service.get_articles(limit=4).total == 3


def test_categories_stats_and_lookup(service):
    service.fetch_all_active_sources_once()

    categories = service.get_categories()
    stats = service.stats()

    assert categories == sorted(categories)
    assert "Diabetes" in categories
    assert stats["total"] == 5
    assert stats["sources"]["bbc"]["count"] == 2
    assert stats["category_distribution"]["Diabetes"] == 2
    assert stats["health"]["store"] == "ok"
    assert stats["last_aggregation"] == NOW.isoformat()
    assert service.get_article("https://bbc.com/0").title == "diabetes"
    assert service.get_article("missing") is None

    bbc = {row["key"]: row for row in service.source_stats()}["bbc"]
    assert bbc["last_method"] == "scrape"
    assert bbc["fetch_count"] == 1
    guardian = {row["key"]: row for row in service.source_stats()}["guardian"]
    assert guardian["error_count"] == 1


def test_source_limit_applies_to_the_single_bucket(service):
    service.fetch_all_active_sources_once()

    result = service.articles_for_source("healthywomen", limit=2)

    assert result.total == 2
    assert len(result.by_source["healthywomen"]) == 2
    assert service.articles_for_source("healthywomen", limit=1).total == 1
