"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: HTTP fetching settings
- PolitenessConfig: Pacing between outbound requests
- IngestConfig: Per-source ingestion limits and enrichment switches
- ScheduleConfig: Jittered run window and start-up behaviour
- StoreConfig: SQLite location and retention window
- CacheConfig: Recent-results cache TTL and bound
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class FetchConfig:
    """Configuration for HTTP fetching.

    Attributes:
        timeout_seconds: Timeout for feed discovery and feed reads
        scrape_timeout_seconds: Timeout for listing-page scrapes
        enrich_timeout_seconds: Timeout for single-article metadata fetches
        retries: Number of retry attempts for failed requests
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    timeout_seconds: float = 10.0
    scrape_timeout_seconds: float = 15.0
    enrich_timeout_seconds: float = 8.0
    retries: int = 1
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class PolitenessConfig:
    """Configuration for request pacing.

    Attributes:
        source_delay_seconds: Pause between two sources in one run
        enrich_delay_seconds: Pause before every metadata fetch
    """

    source_delay_seconds: float = 2.0
    enrich_delay_seconds: float = 1.0


@dataclass
class IngestConfig:
    """Configuration for per-source ingestion.

    Attributes:
        max_articles_per_source: Cap on raw items kept per source per run
        enrich_images: Whether to fetch article pages for missing images
        title_similarity_threshold: Fuzzy match threshold (0-100) for in-run dedup
    """

    max_articles_per_source: int = 30
    enrich_images: bool = True
    title_similarity_threshold: int = 92


@dataclass
class ScheduleConfig:
    """Configuration for the aggregation scheduler.

    Attributes:
        min_hours: Lower bound of the jittered delay between runs
        max_hours: Upper bound (exclusive) of the jittered delay
        run_on_start: Whether to run once as soon as the scheduler starts
        startup_retry_minutes: Delay before retrying a failed first run
    """

    min_hours: float = 10.0
    max_hours: float = 16.0
    run_on_start: bool = True
    startup_retry_minutes: float = 30.0


@dataclass
class StoreConfig:
    """Configuration for the SQLite store.

    Attributes:
        path: Database file path (HEALTH_FEED_DB_PATH overrides it)
        retention_days: Articles published longer ago than this are purged
    """

    path: str = "./data/health_feed.db"
    retention_days: int = 5


@dataclass
class CacheConfig:
    """Configuration for the recent-results cache.

    Attributes:
        ttl_hours: Snapshot lifetime
        max_entries: Maximum number of articles kept in the snapshot
    """

    ttl_hours: float = 24.0
    max_entries: int = 500


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        directory: Directory for the log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "health_feed.jsonl"
    directory: str = "./logs"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections.

    `sources` optionally replaces or extends seed catalog entries; each item is a
    mapping with at least `key` (see sources.catalog.build_catalog).
    """

    fetch: FetchConfig = field(default_factory=FetchConfig)
    politeness: PolitenessConfig = field(default_factory=PolitenessConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    sources: list[dict[str, Any]] = field(default_factory=list)


_SECTIONS = {
    "fetch": FetchConfig,
    "politeness": PolitenessConfig,
    "ingest": IngestConfig,
    "schedule": ScheduleConfig,
    "store": StoreConfig,
    "cache": CacheConfig,
    "logging": LoggingConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return _apply_env(AppConfig())

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _apply_env(_merge_config(AppConfig(), raw))


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    sections = {name: cls(**data[name]) for name, cls in _SECTIONS.items()}
    return AppConfig(sources=list(data.get("sources") or []), **sections)


def _apply_env(cfg: AppConfig) -> AppConfig:
    """Apply environment overrides on top of file/default values."""
    db_path = os.getenv("HEALTH_FEED_DB_PATH")
    if db_path:
        cfg.store.path = db_path
    return cfg
