"""
Health Feed - hybrid ingestion and search for health-news outlets.

This package discovers and reads outlet feeds, falls back to scraping listing
pages when no feed is usable, categorizes what it finds, keeps a five-day
corpus in SQLite plus an in-memory snapshot of the latest run, and ranks the
corpus for keyword searches.

Main entry points are the `health-feed` CLI and `HealthFeedService`.

Example:
    $ health-feed run -c config.yaml
    $ health-feed search diabetes
"""

__all__ = ["__version__", "HealthFeedService", "load_config"]
__version__ = "0.1.0"

from .config import load_config
from .service import HealthFeedService
