"""
CLI for fscache.

Commands:
    fscache set KEY VALUE - Store a JSON value
    fscache get KEY - Print a stored value
    fscache invalidate KEY - Mark an entry expired
    fscache gc - Run one garbage-collection sweep
    fscache stats - Summarize a cache directory
    fscache clear - Remove every entry
    fscache config - Show current configuration
    fscache version - Print version
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import orjson
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from fscache import __version__
from fscache.cache.file_cache import FileCache
from fscache.config import Settings, clear_settings_cache, get_settings
from fscache.exceptions import CacheError, ConfigurationError, GarbageCollectionError
from fscache.logging import setup_logging
from fscache.types import SweepReport

app = typer.Typer(
    name="fscache",
    help="fscache - durable filesystem key-value cache",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

DirOption = Annotated[
    Optional[Path],
    typer.Option("--dir", "-d", help="Cache directory (defaults to FSCACHE_CACHE_DIR)"),
]


def _load_settings() -> Settings:
    """Load settings, raising ConfigurationError on invalid values."""
    clear_settings_cache()
    try:
        return get_settings()
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid fscache configuration", context={"errors": e.error_count()}
        ) from e


def _open_cache(cache_dir: Path | None) -> tuple[FileCache, Settings]:
    try:
        settings = _load_settings()
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        error_console.print("Run 'fscache config' to inspect the settings.")
        raise typer.Exit(2)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE, console_output=True)

    try:
        cache = FileCache(cache_dir if cache_dir is not None else settings.CACHE_DIR)
    except CacheError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    return cache, settings


def _print_report(report: SweepReport, title: str, style: str) -> None:
    body = (
        f"[bold]Scanned:[/bold] {report.scanned}\n"
        f"[bold]Removed:[/bold] {report.removed}\n"
        f"[bold]Kept:[/bold] {report.kept}\n"
        f"[bold]Failed:[/bold] {len(report.failures)}"
    )
    for failure in report.failures:
        body += f"\n  [red]{failure.path.name}[/red]: {escape(failure.error)}"
    console.print(Panel(body, title=title, border_style=style))


@app.command("set")
def set_value(
    key: Annotated[str, typer.Argument(help="Cache key")],
    value: Annotated[str, typer.Argument(help="JSON value to store")],
    ttl: Annotated[
        Optional[int],
        typer.Option("--ttl", "-t", min=0, help="TTL in seconds (defaults to FSCACHE_DEFAULT_TTL_SECONDS)"),
    ] = None,
    cache_dir: DirOption = None,
) -> None:
    """Store a JSON value under KEY."""
    try:
        parsed = orjson.loads(value)
    except orjson.JSONDecodeError as e:
        raise typer.BadParameter(f"VALUE is not valid JSON: {e}") from e

    cache, settings = _open_cache(cache_dir)
    effective_ttl = ttl if ttl is not None else settings.DEFAULT_TTL_SECONDS

    try:
        asyncio.run(cache.set(key, parsed, ttl=effective_ttl))
    except CacheError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    suffix = f" (ttl {effective_ttl}s)" if effective_ttl is not None else ""
    console.print(f"[green]Stored[/green] {escape(key)}{suffix}")


@app.command("get")
def get_value(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: DirOption = None,
) -> None:
    """Print the value stored under KEY. Exits 1 on a miss."""
    cache, _ = _open_cache(cache_dir)

    try:
        result = asyncio.run(cache.get(key))
    except CacheError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if result is None:
        error_console.print(f"[yellow]Miss:[/yellow] {escape(key)}")
        raise typer.Exit(1)

    console.print_json(orjson.dumps(result).decode("utf-8"))


@app.command()
def invalidate(
    key: Annotated[str, typer.Argument(help="Cache key")],
    cache_dir: DirOption = None,
) -> None:
    """Mark KEY as expired. The data is reclaimed by the next sweep."""
    cache, _ = _open_cache(cache_dir)

    try:
        asyncio.run(cache.invalidate(key))
    except CacheError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(f"[green]Invalidated[/green] {escape(key)}")


@app.command()
def gc(cache_dir: DirOption = None) -> None:
    """Run one garbage-collection sweep.

    Exits 1 if any expired entry could not be reclaimed.
    """
    cache, _ = _open_cache(cache_dir)

    try:
        report = asyncio.run(cache.collect_garbage())
    except GarbageCollectionError as e:
        _print_report(e.report, "[bold red]Sweep finished with failures[/bold red]", "red")
        raise typer.Exit(1)
    except CacheError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    _print_report(report, "[bold green]Sweep complete[/bold green]", "green")


@app.command()
def stats(cache_dir: DirOption = None) -> None:
    """Show entry counts and disk usage for a cache directory."""
    cache, _ = _open_cache(cache_dir)

    try:
        cache_stats = asyncio.run(cache.stats())
    except CacheError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    table = Table(title=f"Cache: {cache.cache_dir}", show_header=True)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", justify="right")
    for name, value in cache_stats.to_dict().items():
        table.add_row(name, str(value))
    console.print(table)


@app.command()
def clear(
    cache_dir: DirOption = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Remove every entry from a cache directory."""
    cache, _ = _open_cache(cache_dir)

    if not yes:
        typer.confirm(f"Remove all entries from {cache.cache_dir}?", abort=True)

    try:
        removed = asyncio.run(cache.clear())
    except CacheError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(f"[green]Removed {removed} entries[/green]")


@app.command()
def config() -> None:
    """Show current configuration."""
    console.print()

    try:
        settings = _load_settings()
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration is invalid:[/red] {escape(str(e))}")
        error_console.print("Check the FSCACHE_* environment variables and .env file.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    for key, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(f"FSCACHE_{key}", display_value)

    console.print(table)
    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"fscache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
