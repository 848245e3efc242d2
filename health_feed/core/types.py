"""
Core data types for the health feed pipeline.

This module defines the fundamental data structures used throughout the pipeline:
- Source: A registered outlet plus the state learned while crawling it
- RawArticle: An item as read from a feed or scraped from a listing page
- Article: A finalized, categorized article ready for storage
- CacheSnapshot: Immutable view of the latest aggregation run
- ScoredArticle / ArticleQueryResult: Query engine output
- SourceOutcome / RunResult: Orchestrator and run bookkeeping
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


METHOD_NONE = "none"
METHOD_FEED = "feed"
METHOD_SCRAPE = "scrape"
FETCH_METHODS = (METHOD_NONE, METHOD_FEED, METHOD_SCRAPE)


@dataclass(frozen=True)
class Source:
    """A health-news outlet in the registry.

    Frozen: the registry publishes updates by replacing the whole object, so a
    reader holding a Source never sees a half-applied change.

    Attributes:
        key: Stable identifier (e.g., "bbc")
        display_name: Human-readable outlet name
        domain: Outlet domain without scheme
        listing_url: Page scanned for feed links and scraped as fallback
        feed_url: Known or learned RSS/Atom URL, None until discovered
        default_categories: Categories the outlet usually covers
        is_active: Whether runs include this source
        fetch_count: Successful attempts so far
        error_count: Attempts where neither feed nor scrape produced anything
        last_fetched_at: Time of the last attempt
        last_method: "none", "feed" or "scrape"
    """

    key: str
    display_name: str
    domain: str
    listing_url: str
    feed_url: str | None = None
    default_categories: tuple[str, ...] = ("General Health",)
    is_active: bool = True
    fetch_count: int = 0
    error_count: int = 0
    last_fetched_at: datetime | None = None
    last_method: str = METHOD_NONE


@dataclass
class RawArticle:
    """An article as extracted from a feed entry or an HTML block.

    Carries no id, category or fetch timestamp: the orchestrator assigns those
    in one place regardless of how the item was obtained.

    Attributes:
        title: Headline text
        link: Absolute article URL
        summary: Truncated plain-text summary
        author: Optional author or publisher name
        publish_date: Optional publication time from the upstream
        image: Optional image URL supplied by the feed
        guid: Optional stable upstream identifier (feed guid)
    """

    title: str
    link: str
    summary: str = ""
    author: str | None = None
    publish_date: datetime | None = None
    image: str | None = None
    guid: str | None = None


@dataclass
class Article:
    """A normalized, categorized article.

    Attributes:
        id: Stable identifier (feed guid, link, or source+timestamp)
        title: Headline text
        summary: Plain text, at most 300 characters
        link: Absolute article URL
        author: Optional author
        publish_date: Publication time (timezone-aware UTC)
        source_key: Key of the owning Source
        source_name: Display name of the owning Source
        featured_image: Optional image URL
        category: One label from the category taxonomy
        fetched_at: When this run produced the record
    """

    id: str
    title: str
    summary: str
    link: str
    author: str | None
    publish_date: datetime
    source_key: str
    source_name: str
    featured_image: str | None
    category: str
    fetched_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "link": self.link,
            "author": self.author,
            "publish_date": self.publish_date.isoformat(),
            "source": self.source_key,
            "source_name": self.source_name,
            "featured_image": self.featured_image,
            "category": self.category,
            "fetched_at": self.fetched_at.isoformat(),
        }


@dataclass(frozen=True)
class CacheSnapshot:
    """Immutable view of the most recent aggregation run."""

    articles_by_source: dict[str, tuple[Article, ...]]
    all_articles: tuple[Article, ...]
    last_updated: datetime
    total_count: int


@dataclass
class ScoredArticle:
    article: Article
    relevance_score: float

    def to_dict(self) -> dict[str, Any]:
        payload = self.article.to_dict()
        payload["relevance_score"] = self.relevance_score
        return payload


@dataclass
class ArticleQueryResult:
    """Filtered, ranked articles grouped by source.

    Attributes:
        by_source: One bucket per registered source, in registry order
        total: Number of matching articles across all buckets
        keyword: Keyword filter as given
        category: Category filter as given
        source: Source filter as given
        last_updated: Time of the snapshot or query the data came from
        origin: "cache", "store" or "unavailable"
        status: Human-readable note on degraded reads, empty when healthy
    """

    by_source: dict[str, list[ScoredArticle]]
    total: int
    keyword: str = ""
    category: str = ""
    source: str = ""
    last_updated: datetime | None = None
    origin: str = "cache"
    status: str = ""

    def all_articles(self) -> list[ScoredArticle]:
        """Flatten buckets back into one list sorted by relevance."""
        flat = [item for bucket in self.by_source.values() for item in bucket]
        return sorted(flat, key=lambda item: item.relevance_score, reverse=True)


@dataclass
class SourceOutcome:
    """Result of one orchestrator attempt for a single source."""

    source_key: str
    articles: list[Article] = field(default_factory=list)
    method: str = METHOD_NONE
    feed_url: str | None = None
    error: str | None = None


@dataclass
class UpsertStats:
    """Counters returned by a store write batch."""

    inserted: int = 0
    updated: int = 0
    failed: int = 0
    purged: int = 0


@dataclass
class RunResult:
    """Outcome of one full aggregation pass."""

    started_at: datetime
    finished_at: datetime | None = None
    outcomes: dict[str, SourceOutcome] = field(default_factory=dict)
    stored: UpsertStats | None = None

    @property
    def articles(self) -> list[Article]:
        return [article for outcome in self.outcomes.values() for article in outcome.articles]

    @property
    def total(self) -> int:
        return sum(len(outcome.articles) for outcome in self.outcomes.values())
