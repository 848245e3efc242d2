"""
SQLite persistence for articles, learned source state and small settings.

Articles are kept for a fixed retention window: every write batch first purges
rows whose publish_date fell out of the window, then upserts by id. A failing
row is logged and skipped so one bad article never loses the rest of a batch.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
import json
import logging
from pathlib import Path
import sqlite3
import threading
from typing import Iterable, Iterator

from .core.types import Article, Source, UpsertStats
from .logging_utils import log_event


logger = logging.getLogger(__name__)

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

LAST_FETCH_SETTING = "last_fetch"


def to_db_time(value: datetime) -> str:
    """Fixed-width UTC text so string comparison matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TS_FORMAT)


def from_db_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, _TS_FORMAT).replace(tzinfo=timezone.utc)


class ArticleStore:
    """Durable store backed by a single SQLite file.

    A fresh connection is opened per operation (sqlite3 connections are not
    shared across threads); the write lock serializes batches from the
    scheduler thread with manual triggers.

    Args:
        path: Database file path; parent directories are created
        retention_days: Articles older than this (by publish_date) are purged
    """

    def __init__(self, path: str | Path, retention_days: int = 5):
        self.path = Path(path)
        self.retention_days = retention_days
        self._write_lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._conn() as conn:
            init_db(conn)

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def ping(self) -> bool:
        try:
            with self._conn() as conn:
                conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True

    # Articles

    def purge_expired(self, conn: sqlite3.Connection, now: datetime) -> int:
        cutoff = to_db_time(now - timedelta(days=self.retention_days))
        cur = conn.execute("DELETE FROM articles WHERE publish_date < ?", (cutoff,))
        conn.commit()
        return cur.rowcount

    def upsert_articles(self, articles: Iterable[Article], now: datetime | None = None) -> UpsertStats:
        """Purge expired rows, then insert or refresh each article by id.

        On conflict only title, summary, featured_image, category and fetched_at
        change; publish_date, link and source keep their first-seen values.
        """
        now = now or datetime.now(timezone.utc)
        stats = UpsertStats()

        with self._write_lock, self._conn() as conn:
            stats.purged = self.purge_expired(conn, now)

            for article in articles:
                try:
                    existed = conn.execute(
                        "SELECT 1 FROM articles WHERE id = ?", (article.id,)
                    ).fetchone() is not None
                    conn.execute(
                        """
                        INSERT INTO articles (
                            id, title, summary, link, author, publish_date, source_key,
                            source_name, featured_image, category, fetched_at, updated_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            title = excluded.title,
                            summary = excluded.summary,
                            featured_image = excluded.featured_image,
                            category = excluded.category,
                            fetched_at = excluded.fetched_at,
                            updated_at = excluded.updated_at
                        """,
                        (
                            article.id,
                            article.title,
                            article.summary,
                            article.link,
                            article.author,
                            to_db_time(article.publish_date),
                            article.source_key,
                            article.source_name,
                            article.featured_image,
                            article.category,
                            to_db_time(article.fetched_at),
                            to_db_time(now),
                        ),
                    )
                    conn.commit()
                except sqlite3.Error as exc:
                    conn.rollback()
                    stats.failed += 1
                    logger.warning(
                        "Failed to store article: %s",
                        article.title,
                        extra={"event": "store_article_failed", "article_id": article.id, "error": str(exc)},
                    )
                    continue

                if existed:
                    stats.updated += 1
                else:
                    stats.inserted += 1

        log_event(
            logger,
            "Store write complete",
            event="store_write",
            inserted=stats.inserted,
            updated=stats.updated,
            failed=stats.failed,
            purged=stats.purged,
        )
        return stats

    def query_recent(self, now: datetime | None = None) -> list[Article]:
        """All articles inside the retention window, newest first."""
        now = now or datetime.now(timezone.utc)
        cutoff = to_db_time(now - timedelta(days=self.retention_days))
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT * FROM articles
                WHERE publish_date >= ?
                ORDER BY publish_date DESC, id ASC
                """,
                (cutoff,),
            ).fetchall()
        return [_row_to_article(row) for row in rows]

    def get_article(self, article_id: str) -> Article | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM articles WHERE id = ?", (article_id,)).fetchone()
        return _row_to_article(row) if row is not None else None

    def count_articles(self) -> int:
        with self._conn() as conn:
            return conn.execute("SELECT COUNT(*) FROM articles").fetchone()[0]

    # Sources

    def save_source(self, source: Source) -> bool:
        try:
            with self._write_lock, self._conn() as conn:
                conn.execute(
                    """
                    INSERT INTO sources (
                        source_key, name, domain, page_url, rss_url, default_categories,
                        is_active, fetch_count, error_count, last_fetched, scraping_method
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(source_key) DO UPDATE SET
                        rss_url = excluded.rss_url,
                        fetch_count = excluded.fetch_count,
                        error_count = excluded.error_count,
                        last_fetched = excluded.last_fetched,
                        scraping_method = excluded.scraping_method
                    """,
                    (
                        source.key,
                        source.display_name,
                        source.domain,
                        source.listing_url,
                        source.feed_url,
                        json.dumps(list(source.default_categories)),
                        1 if source.is_active else 0,
                        source.fetch_count,
                        source.error_count,
                        to_db_time(source.last_fetched_at) if source.last_fetched_at else None,
                        source.last_method,
                    ),
                )
                conn.commit()
        except sqlite3.Error as exc:
            logger.warning(
                "Failed to persist source state: %s",
                source.key,
                extra={"event": "store_source_failed", "source_key": source.key, "error": str(exc)},
            )
            return False
        return True

    def load_sources(self) -> dict[str, Source]:
        try:
            with self._conn() as conn:
                rows = conn.execute("SELECT * FROM sources").fetchall()
        except sqlite3.Error as exc:
            logger.warning("Failed to load source state: %s", exc, extra={"event": "store_source_failed"})
            return {}
        return {row["source_key"]: _row_to_source(row) for row in rows}

    # Settings and categories

    def set_setting(self, key: str, value: str) -> None:
        with self._write_lock, self._conn() as conn:
            conn.execute(
                """
                INSERT INTO system_config (setting_key, setting_value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(setting_key) DO UPDATE SET
                    setting_value = excluded.setting_value,
                    updated_at = excluded.updated_at
                """,
                (key, value, to_db_time(datetime.now(timezone.utc))),
            )
            conn.commit()

    def get_setting(self, key: str) -> str | None:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT setting_value FROM system_config WHERE setting_key = ?", (key,)
            ).fetchone()
        return row[0] if row is not None else None

    def save_dynamic_categories(self, labels: Iterable[str]) -> None:
        with self._write_lock, self._conn() as conn:
            conn.executemany(
                "INSERT OR IGNORE INTO dynamic_categories (label) VALUES (?)",
                [(label,) for label in labels],
            )
            conn.commit()

    def load_dynamic_categories(self) -> list[str]:
        with self._conn() as conn:
            rows = conn.execute("SELECT label FROM dynamic_categories ORDER BY label").fetchall()
        return [row[0] for row in rows]


def init_db(conn: sqlite3.Connection) -> None:
    """
    Create required tables if they don't exist.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS articles (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            summary TEXT NOT NULL DEFAULT '',
            link TEXT NOT NULL,
            author TEXT,
            publish_date TEXT NOT NULL,
            source_key TEXT NOT NULL,
            source_name TEXT NOT NULL,
            featured_image TEXT,
            category TEXT NOT NULL,
            fetched_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_articles_publish_date ON articles(publish_date)"
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS sources (
            source_key TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            domain TEXT NOT NULL,
            page_url TEXT NOT NULL,
            rss_url TEXT,
            default_categories TEXT NOT NULL DEFAULT '[]',
            is_active INTEGER NOT NULL DEFAULT 1,
            fetch_count INTEGER NOT NULL DEFAULT 0,
            error_count INTEGER NOT NULL DEFAULT 0,
            last_fetched TEXT,
            scraping_method TEXT NOT NULL DEFAULT 'none'
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS system_config (
            setting_key TEXT PRIMARY KEY,
            setting_value TEXT,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS dynamic_categories (
            label TEXT PRIMARY KEY
        )
        """
    )
    conn.commit()


def _row_to_article(row: sqlite3.Row) -> Article:
    return Article(
        id=row["id"],
        title=row["title"],
        summary=row["summary"],
        link=row["link"],
        author=row["author"],
        publish_date=from_db_time(row["publish_date"]),
        source_key=row["source_key"],
        source_name=row["source_name"],
        featured_image=row["featured_image"],
        category=row["category"],
        fetched_at=from_db_time(row["fetched_at"]),
    )


def _row_to_source(row: sqlite3.Row) -> Source:
    return Source(
        key=row["source_key"],
        display_name=row["name"],
        domain=row["domain"],
        listing_url=row["page_url"],
        feed_url=row["rss_url"],
        default_categories=tuple(json.loads(row["default_categories"] or "[]")),
        is_active=bool(row["is_active"]),
        fetch_count=row["fetch_count"],
        error_count=row["error_count"],
        last_fetched_at=from_db_time(row["last_fetched"]),
        last_method=row["scraping_method"],
    )
