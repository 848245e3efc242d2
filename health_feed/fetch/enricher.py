"""
Open Graph metadata extraction for single article pages.

Used only when a feed entry or scraped block carries no image. Strictly
best-effort: every failure yields None and the article is kept without an image.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable

from bs4 import BeautifulSoup

from ..config import FetchConfig
from ..core.text import absolute_url, is_usable_link
from ..logging_utils import warn_event
from .fetcher import fetch_with_config


logger = logging.getLogger(__name__)

IMAGE_SELECTORS = (
    'meta[property="og:image"]',
    'meta[name="twitter:image"]',
    'meta[property="twitter:image"]',
)
CONTENT_IMAGE_SELECTOR = ".featured-image img, article img"


@dataclass
class OpenGraphData:
    image: str | None = None
    title: str | None = None
    description: str | None = None


def extract_open_graph(
    url: str,
    cfg: FetchConfig,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> OpenGraphData | None:
    """Fetch an article page and read its representative image and metadata.

    Args:
        url: Article URL
        cfg: Fetch settings
        delay_seconds: Politeness pause taken before the request
        sleep: Sleep function (injected by tests)

    Returns:
        OpenGraphData, or None when the page cannot be fetched or parsed
    """
    if delay_seconds > 0:
        sleep(delay_seconds)

    result = fetch_with_config(url, cfg, timeout=cfg.enrich_timeout_seconds)
    if not result.ok:
        warn_event(
            logger,
            "Metadata fetch failed",
            event="enrich_failed",
            url=url,
            status_code=result.status_code,
            error=result.error,
        )
        return None

    try:
        return parse_open_graph(result.text or "", result.base_url)
    except Exception as exc:  # noqa: BLE001
        warn_event(
            logger,
            "Metadata parse failed",
            event="enrich_failed",
            url=url,
            error=f"{type(exc).__name__}: {exc}",
        )
        return None


def parse_open_graph(html: str, page_url: str) -> OpenGraphData:
    """Read og:image (then twitter:image, then first in-content image) and og text."""
    soup = BeautifulSoup(html, "html.parser")

    image = None
    for selector in IMAGE_SELECTORS:
        tag = soup.select_one(selector)
        if tag is not None and is_usable_link(tag.get("content")):
            image = tag["content"]
            break
    if image is None:
        tag = soup.select_one(CONTENT_IMAGE_SELECTOR)
        if tag is not None and is_usable_link(tag.get("src")):
            image = tag["src"]

    return OpenGraphData(
        image=absolute_url(image, page_url) if image else None,
        title=_meta_content(soup, 'meta[property="og:title"]'),
        description=_meta_content(soup, 'meta[property="og:description"]'),
    )


def _meta_content(soup: BeautifulSoup, selector: str) -> str | None:
    tag = soup.select_one(selector)
    if tag is None:
        return None
    value = (tag.get("content") or "").strip()
    return value or None
