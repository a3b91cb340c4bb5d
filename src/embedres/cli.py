"""Click CLI for embedres: resolve Joplin resource references in note bodies."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from embedres.config.schema import ServiceSettings
from embedres.errors.exceptions import ConfigurationError, InvalidOptionsError
from embedres.types import PipelineResult, ResolutionMode

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _load_settings(
    server_url: str | None, token: str | None, workers: int | None = None
) -> ServiceSettings:
    try:
        return ServiceSettings.load(server_url=server_url, token=token, max_concurrency=workers)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@click.group()
@click.version_option(package_name="embedres")
def cli() -> None:
    """embedres: resolve embedded Joplin resources in note bodies."""


@cli.command()
@click.argument("note_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ResolutionMode]),
    default=ResolutionMode.INLINE.value,
    show_default=True,
    help="inline: base64 data URIs. local_file: write attachments and link them.",
)
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output file path.")
@click.option(
    "--attachments-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Where local_file mode writes images (default: next to the output).",
)
@click.option("--workers", type=click.IntRange(1, 32), default=None, help="Concurrent fetches.")
@click.option("--server-url", type=str, default=None, help="Joplin Web Clipper URL.")
@click.option("--token", type=str, default=None, help="Joplin API token.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def resolve(
    note_file: str,
    mode: str,
    output: str | None,
    attachments_dir: str | None,
    workers: int | None,
    server_url: str | None,
    token: str | None,
    verbose: int,
) -> None:
    """Resolve resource references in a note file."""
    _setup_logging(verbose)
    settings = _load_settings(server_url, token, workers)

    from embedres.core import ResourceService

    note_path = Path(note_file)
    body = note_path.read_text(encoding="utf-8")

    if attachments_dir:
        target_dir = Path(attachments_dir)
    elif output:
        target_dir = Path(output).parent
    else:
        target_dir = note_path.parent

    async def _run() -> tuple[PipelineResult, dict]:
        async with ResourceService(settings) as service:
            result = await service.resolve(
                body,
                mode=mode,
                filename_exists=lambda name: (target_dir / name).exists(),
            )
            return result, service.cache_stats().model_dump()

    try:
        result, cache_stats = asyncio.run(_run())
    except InvalidOptionsError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if result.attachments:
        target_dir.mkdir(parents=True, exist_ok=True)
        for attachment in result.attachments:
            (target_dir / attachment.filename).write_bytes(attachment.content)
        error_console.print(
            f"[green]Wrote {len(result.attachments)} attachment(s) to {target_dir}[/green]"
        )

    if output:
        Path(output).write_text(result.processed_body, encoding="utf-8")
        console.print(f"[green]Written to {output}[/green]")
    else:
        click.echo(result.processed_body, nl=False)

    if result.stats.failed:
        error_console.print(
            f"[yellow]{result.stats.failed} reference(s) could not be resolved.[/yellow]"
        )

    if verbose >= 1:
        _print_summary(result, cache_stats, verbose)


def _print_summary(result: PipelineResult, cache_stats: dict, verbose: int) -> None:
    """Print a resolution summary."""
    error_console.print()
    table = Table(title="Resolution Summary", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    stats = result.stats
    table.add_row("References", str(stats.total))
    table.add_row("Distinct resources", str(stats.distinct))
    table.add_row("Resolved", str(stats.succeeded))
    table.add_row("Skipped", str(stats.skipped))
    table.add_row("Failed", f"[red]{stats.failed}[/red]" if stats.failed else "0")
    table.add_row("Cache hits", str(stats.cache_hits))
    table.add_row("Cache entries", str(cache_stats.get("size", 0)))
    error_console.print(table)

    # Per-reference details at -vv
    if verbose >= 2 and result.results:
        detail = Table(title="References", show_header=True)
        detail.add_column("Resource")
        detail.add_column("Syntax")
        detail.add_column("State")
        detail.add_column("Detail")
        for item in result.results:
            detail.add_row(
                item.reference.resource_id,
                item.reference.syntax.value,
                item.state.value,
                item.reason or item.mime_type or "-",
            )
        error_console.print(detail)


@cli.command()
@click.option("--server-url", type=str, default=None, help="Joplin Web Clipper URL.")
@click.option("--token", type=str, default=None, help="Joplin API token.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def ping(server_url: str | None, token: str | None, verbose: int) -> None:
    """Check that the Joplin Web Clipper service is reachable."""
    _setup_logging(verbose)
    settings = _load_settings(server_url, token)

    from embedres.core import ResourceService

    async def _run() -> bool:
        async with ResourceService(settings) as service:
            return await service.ping()

    if asyncio.run(_run()):
        console.print(f"[green]Connected to {settings.server_url}[/green]")
    else:
        error_console.print(f"[red]Could not reach Joplin at {settings.server_url}[/red]")
        sys.exit(1)


@cli.command("validate-url")
@click.argument("url")
def validate_url(url: str) -> None:
    """Validate a Joplin server URL and suggest fixes."""
    from embedres.config.schema import validate_server_url

    result = validate_server_url(url)
    style = "green" if result.is_valid else "red"
    console.print(f"[{style}]{result.message}[/{style}]")
    for suggestion in result.suggestions:
        console.print(f"  - {suggestion}")
    if not result.is_valid:
        sys.exit(1)


@cli.command("show-config")
def show_config() -> None:
    """Show the merged configuration (token masked)."""
    settings = _load_settings(None, None)

    table = Table(title="Configuration", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    for key, value in settings.model_dump().items():
        if key == "token":
            value = "****" if value else "(not set)"
        table.add_row(key, str(value))

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    cli()
