"""
Command-line interface for the health feed aggregator.

Uses Typer for commands and Rich for console output. Loads a .env file on
start so HEALTH_FEED_DB_PATH and similar settings can live there.
"""

from __future__ import annotations

from pathlib import Path
import json
import time

from dotenv import load_dotenv
import typer
from rich.console import Console
from rich.table import Table

from .config import load_config
from .core.types import ArticleQueryResult, RunResult
from .errors import HealthFeedError
from .logging_utils import setup_logging
from .service import HealthFeedService

app = typer.Typer(add_completion=False, help="Aggregate and query health news.")
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="YAML config file.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")
DbPathOption = typer.Option(None, "--db-path", help="SQLite database path.")


def _build_service(
    config: Path | None,
    log_level: str | None,
    db_path: Path | None,
) -> HealthFeedService:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    if db_path is not None:
        cfg.store.path = str(db_path)
    setup_logging(cfg.logging)
    return HealthFeedService(cfg)


@app.command()
def run(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    db_path: Path | None = DbPathOption,
):
    """Run one aggregation pass over all active sources."""
    service = _build_service(config, log_level, db_path)
    result = service.fetch_all_active_sources_once()
    _render_run(result)


@app.command()
def serve(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    db_path: Path | None = DbPathOption,
):
    """Run the jittered scheduler in the foreground until interrupted."""
    service = _build_service(config, log_level, db_path)
    service.start_scheduler()
    console.print("Scheduler running. Press Ctrl-C to stop.")
    try:
        while service.scheduler.running:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping scheduler...")
    finally:
        service.stop_scheduler(timeout=5)


@app.command()
def articles(
    keyword: str = typer.Option("", "--keyword", "-k", help="Keyword filter."),
    category: str = typer.Option("", "--category", help="Category filter."),
    source: str = typer.Option("", "--source", "-s", help="Source key filter."),
    limit: int = typer.Option(0, "--limit", "-n", help="Overall result limit (0 = no limit)."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    db_path: Path | None = DbPathOption,
):
    """List stored articles, optionally filtered and ranked by keyword."""
    service = _build_service(config, log_level, db_path)
    result = service.get_articles(keyword=keyword, category=category, source=source, limit=limit)
    _render_query(result, as_json)


@app.command()
def search(
    query: str = typer.Argument(..., help="Keyword to search for."),
    category: str = typer.Option("", "--category", help="Category filter."),
    source: str = typer.Option("", "--source", "-s", help="Source key filter."),
    limit: int = typer.Option(0, "--limit", "-n", help="Overall result limit (0 = no limit)."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    db_path: Path | None = DbPathOption,
):
    """Search articles by keyword; an empty query is rejected."""
    service = _build_service(config, log_level, db_path)
    try:
        result = service.search(query, category=category, source=source, limit=limit)
    except HealthFeedError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)
    _render_query(result, as_json)


@app.command()
def categories(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    db_path: Path | None = DbPathOption,
):
    """Print every known category label."""
    service = _build_service(config, log_level, db_path)
    for label in service.get_categories():
        console.print(label)


@app.command()
def stats(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    db_path: Path | None = DbPathOption,
):
    """Print corpus statistics and system health as JSON."""
    service = _build_service(config, log_level, db_path)
    console.print_json(json.dumps(service.stats(), default=str))


@app.command()
def sources(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    db_path: Path | None = DbPathOption,
):
    """Show per-source crawl state."""
    service = _build_service(config, log_level, db_path)
    table = Table(title="Sources")
    table.add_column("Key")
    table.add_column("Name")
    table.add_column("Method")
    table.add_column("Fetches", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Last fetched")
    table.add_column("Feed URL", overflow="fold")
    for row in service.source_stats():
        table.add_row(
            row["key"],
            row["name"],
            row["last_method"],
            str(row["fetch_count"]),
            str(row["error_count"]),
            row["last_fetched_at"] or "-",
            row["feed_url"] or "-",
        )
    console.print(table)


def _render_run(result: RunResult) -> None:
    table = Table(title="Aggregation run")
    table.add_column("Source")
    table.add_column("Method")
    table.add_column("Articles", justify="right")
    table.add_column("Error", overflow="fold")
    for key, outcome in result.outcomes.items():
        table.add_row(key, outcome.method, str(len(outcome.articles)), outcome.error or "")
    console.print(table)

    line = f"Total articles: {result.total}"
    if result.stored is not None:
        stored = result.stored
        line += (
            f" | stored: {stored.inserted} new, {stored.updated} updated,"
            f" {stored.failed} failed, {stored.purged} purged"
        )
    console.print(line)


def _render_query(result: ArticleQueryResult, as_json: bool) -> None:
    if as_json:
        payload = {
            "total": result.total,
            "origin": result.origin,
            "status": result.status,
            "last_updated": result.last_updated.isoformat() if result.last_updated else None,
            "by_source": {
                key: [item.to_dict() for item in bucket] for key, bucket in result.by_source.items()
            },
        }
        console.print_json(json.dumps(payload))
        return

    if result.status:
        console.print(f"[yellow]{result.status}[/yellow]")
    table = Table(title=f"{result.total} articles ({result.origin})")
    table.add_column("Score", justify="right")
    table.add_column("Source")
    table.add_column("Category")
    table.add_column("Published")
    table.add_column("Title", overflow="fold")
    for item in result.all_articles():
        article = item.article
        table.add_row(
            f"{item.relevance_score:.1f}",
            article.source_key,
            article.category,
            article.publish_date.strftime("%Y-%m-%d %H:%M"),
            article.title,
        )
    console.print(table)


if __name__ == "__main__":
    app()
