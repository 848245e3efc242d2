"""
Per-outlet HTML scanners for listing pages.

Each scanner is a pure function `(soup, page_url) -> list[RawArticle]`. Site
scanners are `scan_blocks` bound to the selector preference lists tuned for that
outlet; `generic` is the fallback for any key without a dedicated entry.
Selector order is the contract: within each comma group the first element in
document order wins, which is what live markup drift will most often break.
"""

from __future__ import annotations

from functools import partial
import logging
from typing import Callable

from bs4 import BeautifulSoup, Tag

from ..core.text import absolute_url, is_usable_link, truncate_summary
from ..core.types import RawArticle


logger = logging.getLogger(__name__)

Scanner = Callable[[BeautifulSoup, str], list[RawArticle]]

GENERIC_KEY = "generic"


def scan_blocks(
    soup: BeautifulSoup,
    page_url: str,
    *,
    containers: str,
    titles: str,
    summaries: str,
    base_url: str | None = None,
) -> list[RawArticle]:
    """Extract title/link/summary from every container block on a page.

    Blocks without a title or a usable link are skipped; the rest of the page
    is still returned.

    Args:
        soup: Parsed listing page
        page_url: URL the page was fetched from
        containers: CSS selector group for article blocks
        titles: CSS selector group for the headline inside a block
        summaries: CSS selector group for the teaser text inside a block
        base_url: Site root for relative links (defaults to page_url)

    Returns:
        Raw articles in document order
    """
    base = base_url or page_url
    articles: list[RawArticle] = []

    for block in soup.select(containers):
        try:
            article = _scan_block(block, titles, summaries, base)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Skipping malformed block on %s: %s", page_url, exc)
            continue
        if article is not None:
            articles.append(article)

    return articles


def _scan_block(block: Tag, titles: str, summaries: str, base_url: str) -> RawArticle | None:
    title_tag = block.select_one(titles)
    title = title_tag.get_text(" ", strip=True) if title_tag is not None else ""
    link_tag = block.select_one("a[href]")
    href = link_tag.get("href") if link_tag is not None else None
    if not title or not is_usable_link(href):
        return None

    summary_tag = block.select_one(summaries)
    summary = summary_tag.get_text(" ", strip=True) if summary_tag is not None else ""

    return RawArticle(
        title=" ".join(title.split()),
        link=absolute_url(href, base_url),
        summary=truncate_summary(summary),
    )


scan_healthywomen: Scanner = partial(
    scan_blocks,
    containers=".css-1wy8uaa, .css-article-card, article, .post",
    titles="h2, h3, .title, .headline",
    summaries="p, .summary, .excerpt",
    base_url="https://www.healthywomen.org",
)

scan_healthcom: Scanner = partial(
    scan_blocks,
    containers="article, .post, .blog-post, .entry",
    titles="h2, h3, .entry-title, .post-title",
    summaries="p, .excerpt, .entry-summary",
    base_url="https://www.health.com",
)

scan_guardian: Scanner = partial(
    scan_blocks,
    containers="article, .post, .ng-post, .entry",
    titles="h2, h3, .post-title, .entry-title",
    summaries="p, .excerpt, .post-excerpt",
    base_url="https://guardian.ng",
)

scan_bbc: Scanner = partial(
    scan_blocks,
    containers="article, .media, .story-body, .gs-c-promo",
    titles="h3, h2, .gs-c-promo-heading, .media__title",
    summaries="p, .gs-c-promo-summary, .media__summary",
    base_url="https://www.bbc.com",
)

scan_generic: Scanner = partial(
    scan_blocks,
    containers="article, .post, .entry, .story",
    titles="h1, h2, h3, .title, .headline",
    summaries="p",
)


SCANNERS: dict[str, Scanner] = {
    "healthywomen": scan_healthywomen,
    "healthcom": scan_healthcom,
    "guardian": scan_guardian,
    "bbc": scan_bbc,
    GENERIC_KEY: scan_generic,
}


def get_scanner(key: str) -> Scanner:
    """Return the scanner for key, or the generic scanner when none is registered."""
    scanner = SCANNERS.get(key)
    if scanner is None:
        logger.info("No scanner for '%s', using generic scanner", key)
        return SCANNERS[GENERIC_KEY]
    return scanner


def scan_document(key: str, soup: BeautifulSoup, page_url: str) -> list[RawArticle]:
    return get_scanner(key)(soup, page_url)
