"""
Core domain models and helpers.

This package contains data types and text utilities that are
independent of any specific pipeline stage.
"""

from .types import (
    Article,
    ArticleQueryResult,
    CacheSnapshot,
    RawArticle,
    RunResult,
    ScoredArticle,
    Source,
    SourceOutcome,
    UpsertStats,
)
from .dedup import dedup_articles
from .text import absolute_url, html_to_text, truncate_summary

__all__ = [
    "Article",
    "ArticleQueryResult",
    "CacheSnapshot",
    "RawArticle",
    "RunResult",
    "ScoredArticle",
    "Source",
    "SourceOutcome",
    "UpsertStats",
    "dedup_articles",
    "absolute_url",
    "html_to_text",
    "truncate_summary",
]
