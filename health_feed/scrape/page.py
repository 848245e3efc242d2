"""Listing-page scraping: fetch, parse, dispatch to the outlet's scanner."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from ..config import FetchConfig
from ..core.types import RawArticle, Source
from ..fetch.fetcher import fetch_with_config
from ..logging_utils import log_event, warn_event
from .scanners import scan_document


logger = logging.getLogger(__name__)


def scrape_page(source: Source, cfg: FetchConfig) -> list[RawArticle]:
    """Scrape a source's listing page.

    Returns an empty list when the page cannot be fetched or parsed.
    """
    url = source.listing_url
    result = fetch_with_config(url, cfg, timeout=cfg.scrape_timeout_seconds)
    if not result.ok:
        warn_event(
            logger,
            "Listing page fetch failed",
            event="scrape_fetch_failed",
            source_key=source.key,
            url=url,
            status_code=result.status_code,
            error=result.error,
        )
        return []

    try:
        soup = BeautifulSoup(result.text or "", "html.parser")
        articles = scan_document(source.key, soup, result.base_url)
    except Exception as exc:  # noqa: BLE001
        warn_event(
            logger,
            "Listing page parse failed",
            event="scrape_parse_failed",
            source_key=source.key,
            url=url,
            error=f"{type(exc).__name__}: {exc}",
        )
        return []

    log_event(
        logger,
        "Listing page scraped",
        event="scrape_complete",
        source_key=source.key,
        url=url,
        count=len(articles),
    )
    return articles
