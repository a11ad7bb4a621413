#!/usr/bin/env python3
"""
Autoblogger - Feed to Article Pipeline
======================================

Command line entry point for managing and running campaigns.

Usage:
    python main.py --help                        # Show all commands
    python main.py check-config                  # Validate configuration
    python main.py init-db                       # Initialize database
    python main.py add-campaign ID campaign.json # Create or update a campaign
    python main.py list-campaigns                # Show configured campaigns
    python main.py fetch URL                     # Fetch and parse a feed
    python main.py extract URL                   # Extract article content from a page
    python main.py run ID [--force]              # Run one campaign tick
    python main.py run-all                       # Run every active campaign once
    python main.py serve                         # Poll and run campaigns until interrupted
"""

import sys
import json
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from autoblogger.config.settings import get_settings
from autoblogger.database.schema import DatabaseSchema
from autoblogger.database.connection import get_db_manager
from autoblogger.database.models import Campaign, ExtractionMethod
from autoblogger.storage.campaign_store import SQLiteCampaignStore
from autoblogger.processing.campaign_runner import CampaignRunner, CampaignRunResult
from autoblogger.processing.feed_fetcher import FeedFetcher
from autoblogger.ingestion.content_extractor import ContentExtractor
from autoblogger.scheduler.campaign_scheduler import CampaignScheduler
from autoblogger.utils.logging import configure_application_logging
from autoblogger.utils.exceptions import AutobloggerError, get_user_friendly_message

console = Console()
logger = logging.getLogger(__name__)


def _load(ctx):
    """Load settings and configure logging once per invocation."""
    try:
        settings = get_settings()
    except AutobloggerError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get("debug") else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    return settings


def _open_store(settings) -> SQLiteCampaignStore:
    try:
        DatabaseSchema(settings.database.path).create_tables()
        return SQLiteCampaignStore(get_db_manager(settings.database.path, settings.database.pool_size))
    except AutobloggerError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)


def _print_run_result(result: CampaignRunResult) -> None:
    if result.skipped:
        console.print(f"[yellow]⏭️  {result.campaign_id}: skipped ({result.skip_reason})[/yellow]")
        return
    if result.feed_error:
        console.print(f"[bold red]❌ {result.campaign_id}: {result.feed_error}[/bold red]")
        return

    table = Table(title=f"Campaign {result.campaign_id}")
    table.add_column("Item", style="cyan", overflow="fold")
    table.add_column("Status", style="green")
    table.add_column("Details")
    for item in result.item_results:
        details = item.post_id or (item.rejection.value if item.rejection else item.error or "")
        table.add_row(escape(item.link), item.status.value, escape(details))
    console.print(table)

    summary = (
        f"{result.items_fetched} fetched, {result.items_new} new, "
        f"{result.published_count} published, {result.rejected_count} rejected, "
        f"{result.failed_count} failed"
    )
    if result.cancelled:
        summary += " (cancelled)"
    console.print(f"[bold]{summary}[/bold]")


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug):
    """Autoblogger - RSS/Atom feed to published article pipeline."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate environment configuration."""
    console.print("[bold blue]🔧 Checking Autoblogger Configuration[/bold blue]")
    settings = _load(ctx)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Details")

    table.add_row("Database", settings.database.path)
    table.add_row("Logging", f"{settings.logging.level.value} -> {settings.logging.file_path or 'console only'}")
    table.add_row("Publishing", f"{settings.publishing.site_url} -> {settings.publishing.output_path}")
    table.add_row("Media", settings.media.asset_dir)
    providers = [name for name in ("openai", "gemini", "groq") if settings.ai.get_api_key(name)]
    table.add_row("Rewrite providers", ", ".join(providers) or "none configured")
    table.add_row(
        "Timeouts",
        f"feed {settings.limits.feed_timeout}s, article {settings.limits.article_timeout}s, "
        f"rewrite {settings.limits.rewrite_timeout}s",
    )
    console.print(table)
    console.print("[bold green]✅ Configuration loaded[/bold green]")


@cli.command()
@click.pass_context
def init_db(ctx):
    """Initialize database with schema."""
    settings = _load(ctx)
    schema = DatabaseSchema(settings.database.path)
    try:
        schema.create_tables()
    except AutobloggerError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    if schema.verify_schema():
        console.print(f"[bold green]✅ Database initialized at {settings.database.path}[/bold green]")
    else:
        console.print("[bold red]❌ Database schema verification failed[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument("campaign_id")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def add_campaign(ctx, campaign_id, config_file):
    """Create or update a campaign from a JSON file of camelCase options."""
    settings = _load(ctx)
    try:
        config = json.loads(config_file.read_text(encoding="utf-8"))
        campaign = Campaign.from_config(campaign_id, config)
    except (ValueError, AutobloggerError) as e:
        console.print(f"[bold red]❌ Invalid campaign configuration: {e}[/bold red]")
        sys.exit(1)

    _open_store(settings).save_campaign(campaign)
    console.print(f"[bold green]✅ Saved {campaign}[/bold green]")


@cli.command()
@click.pass_context
def list_campaigns(ctx):
    """Show configured campaigns."""
    settings = _load(ctx)
    campaigns = _open_store(settings).list_campaigns()

    table = Table(title="Campaigns")
    table.add_column("ID", style="cyan")
    table.add_column("Feed")
    table.add_column("Interval")
    table.add_column("Active")
    table.add_column("Last run")
    table.add_column("Imported", justify="right")
    for c in campaigns:
        table.add_row(
            c.id,
            c.feed_url,
            c.schedule_interval.value,
            "yes" if c.active else "no",
            c.last_run_at.isoformat() if c.last_run_at else "never",
            str(len(c.imported_keys)),
        )
    console.print(table)


@cli.command()
@click.argument("url")
@click.option("--limit", default=10, show_default=True, help="Items to show")
@click.pass_context
def fetch(ctx, url, limit):
    """Fetch and parse a single feed."""
    _load(ctx)
    console.print(f"[bold blue]📡 Fetching feed: {url}[/bold blue]")

    try:
        items = asyncio.run(FeedFetcher().fetch(url, limit))
    except AutobloggerError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)

    table = Table(title=f"{len(items)} items")
    table.add_column("Key", style="cyan", overflow="fold")
    table.add_column("Title")
    table.add_column("Published")
    for item in items:
        table.add_row(escape(item.key), escape(item.title), item.published_at.isoformat() if item.published_at else "-")
    console.print(table)


@cli.command()
@click.argument("url")
@click.option("--method", type=click.Choice([m.value for m in ExtractionMethod]), default="auto", show_default=True)
@click.option("--selector", default="", help="Comma-separated tag, .class or #id selectors")
@click.pass_context
def extract(ctx, url, method, selector):
    """Extract the main content of a page."""
    _load(ctx)
    try:
        markup = asyncio.run(ContentExtractor().extract(url, method, selector))
    except AutobloggerError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        sys.exit(1)

    if markup is None:
        console.print("[yellow]No content found[/yellow]")
        sys.exit(1)
    console.print(markup, markup=False, highlight=False)


@cli.command()
@click.argument("campaign_id")
@click.option("--force", is_flag=True, help="Ignore the schedule interval and the active flag")
@click.pass_context
def run(ctx, campaign_id, force):
    """Run one tick of a campaign."""
    settings = _load(ctx)
    runner = CampaignRunner(_open_store(settings), settings=settings)
    try:
        result = asyncio.run(runner.run(campaign_id, force=force))
    except AutobloggerError as e:
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)
    _print_run_result(result)


@cli.command()
@click.pass_context
def run_all(ctx):
    """Run every active campaign once, honouring schedule intervals."""
    settings = _load(ctx)
    store = _open_store(settings)
    scheduler = CampaignScheduler(store, CampaignRunner(store, settings=settings), settings=settings)
    for result in asyncio.run(scheduler.run_due_campaigns()):
        _print_run_result(result)


@cli.command()
@click.option("--poll", default=None, type=int, help="Seconds between scheduler passes")
@click.pass_context
def serve(ctx, poll):
    """Run the scheduler until interrupted."""
    settings = _load(ctx)
    store = _open_store(settings)
    scheduler = CampaignScheduler(store, CampaignRunner(store, settings=settings), settings=settings)
    console.print("[bold blue]⏰ Scheduler running, press Ctrl+C to stop[/bold blue]")
    asyncio.run(scheduler.run_forever(poll_seconds=poll))


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Autoblogger interrupted by user[/yellow]")
        sys.exit(130)
