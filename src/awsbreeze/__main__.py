"""Main entry point for awsbreeze - just wiring, no logic."""

import json
import logging
import sys
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from . import observability
from .config import Config
from .defaults import ensure_config
from .errors import FetchError
from .fetchers.rss import RSSFetcher
from .filters import filter_by_days
from .normalizer import normalize_entries
from .paths import app_cache_dir, config_dir, config_file_path, log_file_path
from .storage import SeenStateStore
from .sync import synchronize
from .tui import App, format_date, truncate

# Load environment variables from ~/.config/awsbreeze/.env
dotenv_path = config_dir() / ".env"
if dotenv_path.exists():
    load_dotenv(dotenv_path)

console = Console()

app = typer.Typer(
    name="awsbreeze",
    help="awsbreeze - browse AWS What's New announcements in the terminal",
    add_completion=False,
)


def setup_logging(config: Config, debug: bool = False) -> None:
    """Send log records to the cache-dir log file, away from the list view."""
    app_cache_dir(create=True)
    logging.basicConfig(
        filename=log_file_path(),
        level=logging.DEBUG if debug else config.log_level_number,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=True,
    )
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def load_config(debug: bool = False) -> Config:
    """Load config, set up logging and the event log, or exit with an error."""
    try:
        config = Config.from_file()
        setup_logging(config, debug)
    except (ValueError, OSError, RuntimeError) as e:
        console.print(f"[bold red]❌ Fatal error: {escape(str(e))}[/bold red]")
        raise typer.Exit(1)

    events = observability.configure(enabled=config.observability_enabled)
    if config.observability_enabled:
        events.cleanup_old_files(config.retention_days)
    return config


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Write DEBUG logs"),
) -> None:
    """Browse the feed interactively (default when no command is given)."""
    ctx.obj = {"debug": debug}
    if ctx.invoked_subcommand is not None:
        return

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        console.print("[red]✗ Error: the interactive view needs a terminal[/red]")
        raise typer.Exit(1)

    config = load_config(debug)
    fetcher = RSSFetcher(config.feed_url)
    try:
        App(fetcher, SeenStateStore(), console=console).run()
    finally:
        fetcher.close()


@app.command(name="list", help="Print the feed once, without saving seen-state")
def list_items(
    ctx: typer.Context,
    days: int = typer.Option(
        0, "--days", "-d", min=0, help="Only items from the last N days (0 = all)"
    ),
    new_only: bool = typer.Option(False, "--new", "-n", help="Show only new items"),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", min=1, help="Maximum number of items"
    ),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List announcements in a table.

    Args:
        days: Recency window in days (0 = no filtering)
        new_only: If True, show only items that are new since the last session
        limit: Maximum number of items to display
        output_json: If True, write items as a JSON array instead of a table
    """
    config = load_config(ctx.obj.get("debug", False) if ctx.obj else False)
    fetcher = RSSFetcher(config.feed_url)

    try:
        items = normalize_entries(fetcher.fetch())
    except FetchError as e:
        console.print(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    finally:
        fetcher.close()

    seen = SeenStateStore().load()
    items = filter_by_days(synchronize(items, seen), days)
    if new_only:
        items = [item for item in items if item.is_new]
    if limit:
        items = items[:limit]

    if output_json:
        sys.stdout.write(
            json.dumps([item.to_dict() for item in items], indent=2) + "\n"
        )
        return

    if not items:
        console.print("[yellow]No entries found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("", width=1)
    table.add_column("Title", style="bold", width=60)
    table.add_column("Published", style="dim", width=12)
    table.add_column("Summary", style="dim")

    for item in items:
        marker = "[bold green]●[/bold green]" if item.is_new else ""
        table.add_row(
            marker, Text(item.title), format_date(item), Text(truncate(item.summary))
        )

    console.print("\n")
    console.print(table)
    console.print(f"\n[dim]Showing {len(items)} entries[/dim]\n")


@app.command(name="init-config", help="Write the default configuration file")
def init_config() -> None:
    """Create ~/.config/awsbreeze/config.toml if it doesn't exist."""
    path = config_file_path()
    if ensure_config(path):
        console.print(f"Created {path}")
    else:
        console.print(f"Config already exists: {path}")


if __name__ == "__main__":
    app()
