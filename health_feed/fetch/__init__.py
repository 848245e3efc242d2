"""
Network-facing stages: HTTP fetching, feed discovery, feed reading
and article metadata enrichment.
"""

from .fetcher import FetchResult, fetch_url, fetch_with_config
from .discovery import discover_feed, find_feed_link
from .feed_reader import parse_feed, read_feed
from .enricher import OpenGraphData, extract_open_graph, parse_open_graph

__all__ = [
    "FetchResult",
    "fetch_url",
    "fetch_with_config",
    "discover_feed",
    "find_feed_link",
    "parse_feed",
    "read_feed",
    "OpenGraphData",
    "extract_open_graph",
    "parse_open_graph",
]
