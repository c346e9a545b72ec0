"""Command-line interface for the storefront."""

import asyncio
import os
from typing import Any, Awaitable, Callable, Optional, TypeVar

import click
import httpx
from rich import box
from rich.console import Console
from rich.table import Table

from storefront import __version__
from storefront.config import CONFIG_PATH_ENV, ConfigError, StorefrontConfig, load_config, set_config
from storefront.db.session import async_session_factory, close_db, create_all
from storefront.exceptions import StorefrontError
from storefront.http_client import close_clients
from storefront.logging_config import LogContext, configure_logging, get_logger
from storefront.services.catalog_sync import CatalogSync, SyncResult
from storefront.services.seed import seed_database
from storefront.services.sources import get_deals
from storefront.utils import format_currency

console = Console()
logger = get_logger(__name__)

T = TypeVar("T")


def _run_in_session(work: Callable[[Any], Awaitable[T]]) -> T:
    """Run ``work(session)`` in one transaction and tear down pooled resources."""

    async def runner() -> T:
        try:
            async with async_session_factory() as session:
                try:
                    result = await work(session)
                    await session.commit()
                    return result
                except Exception as e:
                    await session.rollback()
                    logger.error(f"Rolled back: {e}")
                    raise
        finally:
            await close_clients()
            await close_db()

    return asyncio.run(runner())


def _print_sync_result(result: SyncResult) -> None:
    table = Table(title=f"Sync: {result.source}", box=box.ROUNDED)
    table.add_column("Created", justify="right", style="green")
    table.add_column("Updated", justify="right", style="cyan")
    table.add_column("Errors", justify="right", style="red")
    table.add_column("Duration", justify="right")
    table.add_row(
        str(result.created),
        str(result.updated),
        str(result.errors),
        f"{result.duration:.2f}s",
    )
    console.print(table)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file (storefront.yaml or .storefront.toml)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Set logging level (overrides config file)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "human"], case_sensitive=False),
    default=None,
    help="Log output format (overrides config file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str], log_format: Optional[str]) -> None:
    """Storefront - catalog, checkout and supplier sync

    Configuration priority (highest to lowest):
    1. Command-line options
    2. Environment variables
    3. Config file (--config, storefront.yaml, .storefront.toml)
    4. Built-in defaults
    """
    config_error: Optional[ConfigError] = None
    try:
        loaded = load_config(config_file=config)
    except ConfigError as e:
        console.print(f"[yellow]Config error: {e}[/yellow]")
        console.print("[dim]Using default configuration[/dim]\n")
        loaded = StorefrontConfig()
        config_error = e
    if log_level:
        loaded.logging.level = log_level.upper()
    if log_format:
        loaded.logging.format = log_format.lower()
    set_config(loaded)

    configure_logging(
        level=loaded.logging.level,
        json_output=loaded.logging.format == "json",
        log_file=loaded.logging.file,
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = loaded
    ctx.obj["config_path"] = config
    ctx.obj["config_error"] = config_error


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", type=int, default=None, help="Port (overrides config)")
@click.option("--reload", is_flag=True, help="Restart on code changes (development)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Run the API server."""
    import uvicorn

    if ctx.obj["config_error"] is not None:
        raise click.ClickException(f"Not serving with an invalid configuration: {ctx.obj['config_error']}")

    config: StorefrontConfig = ctx.obj["config"]
    host = host or config.server.host
    port = port or config.server.port

    # A reloader child imports the app in a fresh process and reloads config
    # from the environment
    if ctx.obj["config_path"]:
        os.environ[CONFIG_PATH_ENV] = os.path.abspath(ctx.obj["config_path"])
    os.environ["LOG_LEVEL"] = config.logging.level
    os.environ["LOG_FORMAT"] = config.logging.format

    console.print(f"[bold green]Serving storefront API on http://{host}:{port}[/bold green]")
    uvicorn.run("storefront.api.app:app", host=host, port=port, reload=reload)


@cli.group()
def db() -> None:
    """Database management."""


@db.command("init")
def db_init() -> None:
    """Create any missing tables (use Alembic for deployed databases)."""

    async def run() -> None:
        try:
            await create_all()
        finally:
            await close_db()

    asyncio.run(run())
    console.print("[green]Database tables created[/green]")


@cli.command()
@click.option("--no-deals", is_flag=True, help="Skip importing the sample deals")
def seed(no_deals: bool) -> None:
    """Load starter categories, products and the admin account."""
    result = _run_in_session(lambda session: seed_database(session, include_deals=not no_deals))

    console.print(
        f"[green]Seeded[/green] {result.categories} categories, {result.products} products"
        + (f", {result.deals} deals" if not no_deals else "")
    )
    if result.admin_created:
        console.print("[yellow]Created admin user 'admin' with the default password; change it.[/yellow]")


@cli.group()
def sync() -> None:
    """Import products from supplier catalogs."""


@sync.command("rakuten")
@click.option("--keyword", default=None, help="Search keyword (default from config)")
@click.option("--hits", type=click.IntRange(1, 30), default=None, help="Results to import (max 30)")
def sync_rakuten(keyword: Optional[str], hits: Optional[int]) -> None:
    """Import products from the Rakuten Ichiba search API."""
    try:
        with LogContext(operation="sync", source="rakuten"):
            result = _run_in_session(
                lambda session: CatalogSync(session).sync_rakuten(keyword=keyword, hits=hits)
            )
    except (StorefrontError, httpx.HTTPError) as e:
        raise click.ClickException(str(e))
    _print_sync_result(result)
    if result.errors:
        raise SystemExit(1)


@sync.command("wholesale2b")
@click.option("--limit", type=click.IntRange(1, 500), default=None, help="Products to import")
def sync_wholesale2b(limit: Optional[int]) -> None:
    """Import products from the Wholesale2B feed."""
    try:
        with LogContext(operation="sync", source="wholesale2b"):
            result = _run_in_session(
                lambda session: CatalogSync(session).sync_wholesale2b(limit=limit)
            )
    except (StorefrontError, httpx.HTTPError) as e:
        raise click.ClickException(str(e))
    _print_sync_result(result)
    if result.errors:
        raise SystemExit(1)


@cli.command()
def deals() -> None:
    """Show the current deals."""
    table = Table(title="Current Deals", box=box.ROUNDED)
    table.add_column("Product", style="bold")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Was", justify="right", style="dim")
    table.add_column("Off", justify="right", style="yellow")
    table.add_column("Source")

    for deal in get_deals():
        table.add_row(
            deal.name,
            format_currency(deal.price),
            format_currency(deal.original_price) if deal.original_price else "-",
            f"{deal.discount_percent}%",
            deal.source,
        )
    console.print(table)


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
