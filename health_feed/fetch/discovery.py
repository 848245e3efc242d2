"""
RSS/Atom feed discovery from an outlet's listing page.

Selectors are tried in priority order and the first match wins: explicit
alternate link tags first, then anchors whose href looks like a feed path.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from ..config import FetchConfig
from ..core.text import absolute_url, is_usable_link
from ..logging_utils import log_event, warn_event
from .fetcher import fetch_with_config


logger = logging.getLogger(__name__)

FEED_SELECTORS = (
    'link[type="application/rss+xml"]',
    'link[type="application/atom+xml"]',
    'link[rel="alternate"][type*="rss"]',
    'link[rel="alternate"][type*="xml"]',
    'a[href*="/rss"]',
    'a[href*="/feed"]',
    'a[href*="rss.xml"]',
)


def discover_feed(listing_url: str, cfg: FetchConfig) -> str | None:
    """Look for a machine-readable feed advertised by a listing page.

    Args:
        listing_url: Page to inspect
        cfg: Fetch settings (timeout, User-Agent, retries)

    Returns:
        Absolute feed URL, or None when the page has none or cannot be fetched.
        None means "proceed to scraping", never a fatal error.
    """
    result = fetch_with_config(listing_url, cfg)
    if not result.ok:
        warn_event(
            logger,
            "Feed discovery fetch failed",
            event="discovery_failed",
            url=listing_url,
            status_code=result.status_code,
            error=result.error,
        )
        return None

    try:
        feed_url = find_feed_link(result.text or "", result.base_url)
    except Exception as exc:  # noqa: BLE001
        warn_event(
            logger,
            "Feed discovery parse failed",
            event="discovery_failed",
            url=listing_url,
            error=f"{type(exc).__name__}: {exc}",
        )
        return None

    if feed_url:
        log_event(logger, "Feed discovered", event="feed_discovered", url=listing_url, feed_url=feed_url)
    else:
        log_event(logger, "No feed advertised", event="feed_not_found", url=listing_url)
    return feed_url


def find_feed_link(html: str, page_url: str) -> str | None:
    """Return the first feed link in html, resolved against page_url."""
    soup = BeautifulSoup(html, "html.parser")
    for selector in FEED_SELECTORS:
        for tag in soup.select(selector):
            href = tag.get("href")
            if is_usable_link(href):
                return absolute_url(href, page_url)
    return None
