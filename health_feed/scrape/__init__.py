"""HTML scraping fallback for outlets without a usable feed."""

from .scanners import GENERIC_KEY, SCANNERS, get_scanner, scan_blocks, scan_document
from .page import scrape_page

__all__ = [
    "GENERIC_KEY",
    "SCANNERS",
    "get_scanner",
    "scan_blocks",
    "scan_document",
    "scrape_page",
]
