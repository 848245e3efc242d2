"""
In-run article deduplication using link matching and fuzzy title comparison.

Scanners match nested containers (an `article` wrapping a `.post`), so the same
block can be reported twice; feeds occasionally repeat an entry under a new guid
with a slightly edited headline. Both are removed before enrichment so no page is
fetched twice.
"""

from __future__ import annotations

from rapidfuzz import fuzz

from .types import RawArticle


def dedup_articles(articles: list[RawArticle], threshold: int = 92) -> list[RawArticle]:
    """Remove duplicate raw articles from one source's batch.

    Deduplication happens in two passes per item:
    1. Skip exact guid/link duplicates
    2. Skip articles whose title is similar to an already kept one

    Args:
        articles: Raw articles in upstream order
        threshold: Similarity threshold (0-100) for fuzzy title matching

    Returns:
        Deduplicated list, preserving original order
    """
    seen_keys: set[str] = set()
    kept: list[RawArticle] = []
    titles: list[str] = []

    for article in articles:
        key = article.guid or article.link
        if key in seen_keys or article.link in seen_keys:
            continue
        if _is_similar_title(article.title, titles, threshold):
            continue
        seen_keys.add(key)
        seen_keys.add(article.link)
        titles.append(article.title)
        kept.append(article)

    return kept


def _is_similar_title(title: str, titles: list[str], threshold: int) -> bool:
    for existing in titles:
        if fuzz.ratio(title, existing) >= threshold:
            return True
    return False
