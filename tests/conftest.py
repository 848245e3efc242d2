"""Shared fixtures: offline config and article builders."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from health_feed.config import AppConfig
from health_feed.core.types import Article


NOW = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def cfg() -> AppConfig:
    cfg = AppConfig()
    cfg.politeness.source_delay_seconds = 0
    cfg.politeness.enrich_delay_seconds = 0
    cfg.fetch.retries = 0
    cfg.ingest.enrich_images = False
    cfg.logging.console = False
    return cfg


def make_article(
    article_id: str,
    title: str = "Untitled",
    summary: str = "",
    source_key: str = "bbc",
    category: str = "General Health",
    publish_date: datetime | None = None,
    age_hours: float = 48,
) -> Article:
    published = publish_date or NOW - timedelta(hours=age_hours)
    return Article(
        id=article_id,
        title=title,
        summary=summary,
        link=f"https://example.com/{article_id}",
        author=None,
        publish_date=published,
        source_key=source_key,
        source_name=source_key.upper(),
        featured_image=None,
        category=category,
        fetched_at=NOW,
    )
