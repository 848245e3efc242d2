"""
Per-source hybrid ingestion: feed first, scrape as fallback.

fetch_source is the only place where raw items become Articles. Ids, fetch
timestamps, default publish dates, enrichment and categories are assigned here
regardless of whether the items came from a feed or a listing page.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import time
from typing import Callable

from .categorize import Categorizer
from .config import AppConfig
from .core.dedup import dedup_articles
from .core.text import truncate_summary
from .core.types import (
    METHOD_FEED,
    METHOD_NONE,
    METHOD_SCRAPE,
    Article,
    RawArticle,
    Source,
    SourceOutcome,
)
from .fetch.discovery import discover_feed
from .fetch.enricher import extract_open_graph
from .fetch.feed_reader import read_feed
from .logging_utils import log_event, warn_event
from .scrape.page import scrape_page
from .sources.registry import SourceRegistry


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunContext:
    """Collaborators shared by every source in a run.

    Attributes:
        cfg: Application configuration
        registry: Source registry receiving learned feed URLs and attempt stats
        categorizer: Categorizer that also collects dynamic labels
        sleep: Sleep function for politeness delays (injected by tests)
        now: Clock returning timezone-aware UTC datetimes
    """

    cfg: AppConfig
    registry: SourceRegistry
    categorizer: Categorizer
    sleep: Callable[[float], None] = time.sleep
    now: Callable[[], datetime] = _utcnow


def fetch_source(source: Source, ctx: RunContext) -> SourceOutcome:
    """Run the hybrid policy for one source and record the attempt.

    1. Discover a feed URL when none is known and remember it.
    2. Read the feed; any item means method "feed".
    3. Otherwise scrape the listing page; any item means method "scrape".
    4. Neither produced anything: count an error and return nothing.

    A feed that yields nothing keeps its stored URL; discovery is not repeated.
    """
    fetch_cfg = ctx.cfg.fetch
    feed_url = source.feed_url

    if not feed_url:
        feed_url = discover_feed(source.listing_url, fetch_cfg)
        if feed_url:
            ctx.registry.set_feed_url(source.key, feed_url)

    raw: list[RawArticle] = []
    method = METHOD_NONE
    if feed_url:
        raw = read_feed(feed_url, source.key, fetch_cfg)
        if raw:
            method = METHOD_FEED

    if not raw:
        raw = scrape_page(source, fetch_cfg)
        if raw:
            method = METHOD_SCRAPE

    if not raw:
        ctx.registry.mark_attempt(source.key, METHOD_NONE, success=False, now=ctx.now())
        warn_event(
            logger,
            f"No articles from {source.key}",
            event="source_empty",
            source_key=source.key,
            feed_url=feed_url,
        )
        return SourceOutcome(source_key=source.key, method=METHOD_NONE, feed_url=feed_url)

    ctx.registry.mark_attempt(source.key, method, success=True, now=ctx.now())

    ingest = ctx.cfg.ingest
    raw = raw[: ingest.max_articles_per_source]
    raw = dedup_articles(raw, ingest.title_similarity_threshold)
    articles = [finalize_article(item, source, ctx) for item in raw]

    log_event(
        logger,
        f"Fetched {len(articles)} articles from {source.key} via {method}",
        event="source_complete",
        source_key=source.key,
        method=method,
        count=len(articles),
    )
    return SourceOutcome(source_key=source.key, articles=articles, method=method, feed_url=feed_url)


def finalize_article(raw: RawArticle, source: Source, ctx: RunContext) -> Article:
    """Turn a raw item into an Article: id, timestamps, enrichment, category."""
    fetched_at = ctx.now()
    article_id = raw.guid or raw.link or f"{source.key}_{int(fetched_at.timestamp() * 1000)}"

    image = raw.image
    summary = raw.summary
    if not image and ctx.cfg.ingest.enrich_images:
        meta = extract_open_graph(
            raw.link,
            ctx.cfg.fetch,
            delay_seconds=ctx.cfg.politeness.enrich_delay_seconds,
            sleep=ctx.sleep,
        )
        if meta is not None:
            image = meta.image
            if not summary and meta.description:
                summary = truncate_summary(meta.description)

    return Article(
        id=article_id,
        title=raw.title,
        summary=summary,
        link=raw.link,
        author=raw.author,
        publish_date=raw.publish_date or fetched_at,
        source_key=source.key,
        source_name=source.display_name,
        featured_image=image,
        category=ctx.categorizer.categorize(raw.title, summary),
        fetched_at=fetched_at,
    )
