"""Tests for the source catalog and registry."""

from __future__ import annotations

from dataclasses import replace

import pytest

from health_feed.core.types import Source
from health_feed.errors import ConfigurationError, UnknownSourceError
from health_feed.sources import SEED_SOURCES, SourceRegistry, build_catalog
from health_feed.store import ArticleStore


def test_seed_catalog_order():
    registry = SourceRegistry(SEED_SOURCES)

    assert registry.keys() == ["healthywomen", "healthcom", "guardian", "bbc"]
    assert len(registry.list_active()) == 4


def test_duplicate_and_empty_catalogs_fail_fast():
    with pytest.raises(ConfigurationError):
        SourceRegistry([SEED_SOURCES[0], SEED_SOURCES[0]])
    with pytest.raises(ConfigurationError):
        SourceRegistry([])


def test_unknown_key_raises_key_error():
    registry = SourceRegistry(SEED_SOURCES)

    with pytest.raises(KeyError):
        registry.get("nope")
    with pytest.raises(UnknownSourceError):
        registry.mark_attempt("nope", "feed", success=True)


def test_overrides_replace_fields_and_append_sources():
    catalog = build_catalog(
        [
            {"key": "bbc", "is_active": False},
            {
                "key": "whonews",
                "display_name": "WHO News",
                "domain": "who.int",
                "listing_url": "https://www.who.int/news",
            },
        ]
    )

    registry = SourceRegistry(catalog)

    assert registry.keys()[-1] == "whonews"
    assert not registry.get("bbc").is_active
    assert "bbc" not in [source.key for source in registry.list_active()]


def test_bad_override_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        build_catalog([{"key": "bbc", "colour": "red"}])


def test_learned_state_survives_restart(tmp_path):
    store = ArticleStore(tmp_path / "feed.db")
    registry = SourceRegistry(SEED_SOURCES, store=store)
    registry.set_feed_url("bbc", "https://feeds.example.com/health.xml")
    registry.mark_attempt("bbc", "feed", success=True)
    registry.mark_attempt("bbc", "none", success=False)

    restarted = SourceRegistry(SEED_SOURCES, store=store)

    bbc = restarted.get("bbc")
    assert bbc.feed_url == "https://feeds.example.com/health.xml"
    assert (bbc.fetch_count, bbc.error_count, bbc.last_method) == (1, 1, "none")


def test_sources_are_replaced_not_mutated():
    registry = SourceRegistry(SEED_SOURCES)
    before = registry.get("guardian")

    registry.mark_attempt("guardian", "scrape", success=True)

    assert before.fetch_count == 0
    assert registry.get("guardian") == replace(
        before, fetch_count=1, last_method="scrape", last_fetched_at=registry.get("guardian").last_fetched_at
    )


def test_invalid_method_rejected():
    with pytest.raises(ConfigurationError):
        SourceRegistry([Source(key="x", display_name="X", domain="x.org", listing_url="https://x.org", last_method="rss")])
