"""
Text helpers shared by the feed reader, scanners and enricher.

Summaries are capped at SUMMARY_MAX_CHARS including the ellipsis marker, and
links are always stored absolute.
"""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup


SUMMARY_MAX_CHARS = 300
ELLIPSIS = "..."

_UNUSABLE_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")


def truncate_summary(text: str | None, max_chars: int = SUMMARY_MAX_CHARS) -> str:
    """Collapse whitespace and cap text at max_chars, marking cuts with an ellipsis.

    Examples:
        >>> truncate_summary("short text")
        'short text'
        >>> len(truncate_summary("x" * 500))
        300
    """
    if not text:
        return ""
    cleaned = " ".join(text.split())
    if len(cleaned) <= max_chars:
        return cleaned
    cut = cleaned[: max_chars - len(ELLIPSIS)].rstrip()
    return cut + ELLIPSIS


def html_to_text(html: str | None) -> str:
    """Strip markup from a feed description or content snippet."""
    if not html:
        return ""
    if "<" not in html:
        return " ".join(html.split())
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ").split())


def is_usable_link(href: str | None) -> bool:
    if not href:
        return False
    href = href.strip()
    if not href:
        return False
    return not href.lower().startswith(_UNUSABLE_PREFIXES)


def absolute_url(href: str, base_url: str) -> str:
    """Resolve href against base_url unless it is already absolute."""
    href = href.strip()
    if urlsplit(href).scheme in ("http", "https"):
        return href
    return urljoin(base_url, href)

