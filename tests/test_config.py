"""Tests for YAML configuration loading."""

from __future__ import annotations

from health_feed.config import load_config


def test_defaults_without_file(monkeypatch):
    monkeypatch.delenv("HEALTH_FEED_DB_PATH", raising=False)

    cfg = load_config(None)

    assert cfg.schedule.min_hours == 10
    assert cfg.schedule.max_hours == 16
    assert cfg.store.retention_days == 5
    assert cfg.cache.max_entries == 500
    assert cfg.ingest.max_articles_per_source == 30
    assert cfg.sources == []


def test_yaml_overrides_merge_over_defaults(monkeypatch, tmp_path):
    monkeypatch.delenv("HEALTH_FEED_DB_PATH", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "fetch:\n"
        "  timeout_seconds: 5\n"
        "politeness:\n"
        "  source_delay_seconds: 0.5\n"
        "sources:\n"
        "  - key: bbc\n"
        "    is_active: false\n"
        "unknown_section:\n"
        "  foo: bar\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.fetch.timeout_seconds == 5
    assert cfg.fetch.retries == 1
    assert cfg.politeness.source_delay_seconds == 0.5
    assert cfg.sources == [{"key": "bbc", "is_active": False}]


def test_env_overrides_db_path(monkeypatch):
    monkeypatch.setenv("HEALTH_FEED_DB_PATH", "/tmp/other.db")

    assert load_config(None).store.path == "/tmp/other.db"
