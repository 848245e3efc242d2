"""RSS/Atom feed reading with feedparser."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone
import logging
from typing import Any

import feedparser

from ..config import FetchConfig
from ..core.text import html_to_text, is_usable_link, truncate_summary
from ..core.types import RawArticle
from ..logging_utils import log_event, warn_event
from .fetcher import fetch_with_config


logger = logging.getLogger(__name__)


def read_feed(feed_url: str, source_key: str, cfg: FetchConfig) -> list[RawArticle]:
    """Fetch and parse a feed into raw articles.

    Returns an empty list on any fetch or parse failure; the orchestrator treats
    that as "feed method produced nothing" and falls back to scraping.
    """
    result = fetch_with_config(feed_url, cfg)
    if not result.ok:
        warn_event(
            logger,
            "Feed fetch failed",
            event="feed_fetch_failed",
            source_key=source_key,
            url=feed_url,
            status_code=result.status_code,
            error=result.error,
        )
        return []

    try:
        articles = parse_feed(result.text or "")
    except Exception as exc:  # noqa: BLE001
        warn_event(
            logger,
            "Feed parse failed",
            event="feed_parse_failed",
            source_key=source_key,
            url=feed_url,
            error=f"{type(exc).__name__}: {exc}",
        )
        return []

    log_event(
        logger,
        "Feed parsed",
        event="feed_parsed",
        source_key=source_key,
        url=feed_url,
        count=len(articles),
    )
    return articles


def parse_feed(content: str) -> list[RawArticle]:
    """Convert feed XML into RawArticle objects.

    Rules:
    - title + link required, otherwise the entry is skipped
    - guid from the entry id, falling back to the link
    - summary is plain text, truncated to 300 characters
    - author from dc:creator/author, falling back to the feed title
    - publish date from published/updated, None when absent
    - Preserve order
    """
    parsed = feedparser.parse(content)
    if parsed.bozo and not parsed.entries:
        raise ValueError(f"malformed feed: {parsed.get('bozo_exception')}")

    feed_title = (parsed.feed.get("title") or "").strip() or None
    out: list[RawArticle] = []

    for entry in parsed.entries:
        title = (entry.get("title") or "").strip()
        link = (entry.get("link") or "").strip()
        if not title or not is_usable_link(link):
            continue

        out.append(
            RawArticle(
                title=html_to_text(title),
                link=link,
                summary=truncate_summary(_summary_text(entry)),
                author=(entry.get("author") or "").strip() or feed_title,
                publish_date=_entry_date(entry),
                image=_entry_image(entry),
                guid=(entry.get("id") or "").strip() or link,
            )
        )

    return out


def _summary_text(entry: Any) -> str:
    summary = entry.get("summary")
    if summary:
        return html_to_text(summary)
    for content in entry.get("content") or []:
        value = content.get("value")
        if value:
            return html_to_text(value)
    return ""


def _entry_date(entry: Any) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)


def _entry_image(entry: Any) -> str | None:
    for thumb in entry.get("media_thumbnail") or []:
        if thumb.get("url"):
            return thumb["url"]
    for media in entry.get("media_content") or []:
        medium = media.get("medium") or ""
        mime = media.get("type") or ""
        if media.get("url") and (medium == "image" or mime.startswith("image/")):
            return media["url"]
    for enclosure in entry.get("enclosures") or []:
        if (enclosure.get("type") or "").startswith("image/") and enclosure.get("href"):
            return enclosure["href"]
    return None
