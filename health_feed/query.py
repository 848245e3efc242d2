"""
Filtering and relevance ranking over the article corpus.

The engine is pure: it works on whatever article sequence the caller hands it
(a cache snapshot or a store query) and returns scored articles grouped into one
bucket per registered source.
"""

from __future__ import annotations

from datetime import datetime, timezone
import math
from typing import Iterable, Sequence

from .core.types import Article, ScoredArticle


NEUTRAL_SCORE = 1.0

EXACT_TITLE_BONUS = 100
TITLE_SUBSTRING_BONUS = 50
TITLE_TOKEN_BONUS = 30
SUMMARY_OCCURRENCE_BONUS = 10
CATEGORY_BONUS = 20
RECENCY_WINDOW_HOURS = 24
RECENCY_WEIGHT = 0.5


def filter_articles(
    articles: Iterable[Article],
    keyword: str = "",
    category: str = "",
    source: str = "",
) -> list[Article]:
    """Apply the AND-combined keyword, category and source filters.

    Empty filters match everything. Keyword is a case-insensitive substring of
    title, summary or category; category is a case-insensitive exact match;
    source is an exact key match.
    """
    needle = keyword.strip().lower()
    wanted_category = category.strip().lower()
    wanted_source = source.strip()

    matched = []
    for article in articles:
        if wanted_source and article.source_key != wanted_source:
            continue
        if wanted_category and article.category.lower() != wanted_category:
            continue
        if needle and not (
            needle in article.title.lower()
            or needle in (article.summary or "").lower()
            or needle in article.category.lower()
        ):
            continue
        matched.append(article)
    return matched


def relevance_score(article: Article, keyword: str, now: datetime | None = None) -> float:
    """Score one article against a keyword.

    Examples:
        An article titled exactly "diabetes" scores at least 180 for "diabetes":
        exact title, title substring and whole title token all apply.
    """
    needle = keyword.strip().lower()
    if not needle:
        return NEUTRAL_SCORE

    title = article.title.lower()
    score = 0.0
    if title == needle:
        score += EXACT_TITLE_BONUS
    if needle in title:
        score += TITLE_SUBSTRING_BONUS
    if needle in title.split(" "):
        score += TITLE_TOKEN_BONUS
    score += SUMMARY_OCCURRENCE_BONUS * (article.summary or "").lower().count(needle)
    if needle in article.category.lower():
        score += CATEGORY_BONUS

    now = now or datetime.now(timezone.utc)
    age_hours = (now - article.publish_date).total_seconds() / 3600
    score += max(0.0, RECENCY_WINDOW_HOURS - age_hours) * RECENCY_WEIGHT
    return score


def rank_articles(
    articles: Iterable[Article],
    keyword: str = "",
    now: datetime | None = None,
) -> list[ScoredArticle]:
    """Score and sort by relevance, highest first; ties keep input order."""
    now = now or datetime.now(timezone.utc)
    scored = [ScoredArticle(article, relevance_score(article, keyword, now)) for article in articles]
    scored.sort(key=lambda item: item.relevance_score, reverse=True)
    return scored


def group_by_source(
    scored: Iterable[ScoredArticle],
    source_keys: Sequence[str],
) -> dict[str, list[ScoredArticle]]:
    """Partition ranked articles into one bucket per source, empty buckets included."""
    buckets: dict[str, list[ScoredArticle]] = {key: [] for key in source_keys}
    for item in scored:
        bucket = buckets.get(item.article.source_key)
        if bucket is not None:
            bucket.append(item)
    return buckets


def apply_source_limit(
    by_source: dict[str, list[ScoredArticle]],
    limit: int,
) -> dict[str, list[ScoredArticle]]:
    """Spread an overall limit evenly: each bucket keeps ceil(limit / buckets)."""
    if limit <= 0 or not by_source:
        return by_source
    per_bucket = math.ceil(limit / len(by_source))
    return {key: items[:per_bucket] for key, items in by_source.items()}
