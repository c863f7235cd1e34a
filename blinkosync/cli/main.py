"""Command-line interface for blinkosync."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from blinkosync import __version__
from blinkosync.core.config import AppConfig, load_config
from blinkosync.core.errors import BlinkoSyncError
from blinkosync.core.scheduler import SchedulerManager
from blinkosync.core.service import BlinkoSyncService
from blinkosync.utils.logging import setup_logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

app = typer.Typer(
    name="blinkosync",
    help="Mirror Blinko notes into a local Markdown vault",
    add_completion=False,
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
        dir_okay=False,
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose diagnostics and tracebacks"),
) -> None:
    """blinkosync - Sync Blinko notes to Markdown."""
    ctx.ensure_object(dict)
    cfg = load_config(config_file)
    if debug:
        cfg.general.debug = True
    ctx.obj["config"] = cfg

    setup_logging(cfg, level_name=log_level)


def run_service(ctx: typer.Context, action: Callable[[BlinkoSyncService], Awaitable[T]], what: str) -> T:
    """Run an async action against a fresh service and turn failures into exit code 1."""
    cfg: AppConfig = ctx.obj["config"]

    async def runner() -> T:
        service = BlinkoSyncService(cfg)
        try:
            await service.initialize()
            return await action(service)
        finally:
            await service.close()

    try:
        return asyncio.run(runner())
    except BlinkoSyncError as e:
        console.print(f"[red]{what} failed: {e}[/red]")
        if cfg.general.debug:
            logger.exception(f"{what} failed")
        raise typer.Exit(1) from e
    except Exception as e:
        console.print(f"[red]{what} failed: {e}[/red]")
        logger.exception(f"{what} failed")
        raise typer.Exit(1) from e


@app.command()
def version() -> None:
    """Show version information."""
    import platform

    table = Table(title="blinkosync Version Information")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Python", platform.python_version())
    table.add_row("Platform", platform.platform())

    console.print(table)


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(False, "--show", "-s", help="Show current configuration"),
    init: bool = typer.Option(False, "--init", "-i", help="Create a default configuration file"),
) -> None:
    """Manage configuration."""
    cfg: AppConfig = ctx.obj["config"]

    if init:
        config_path = cfg.general.config_file or cfg.default_config_path
        if config_path.exists():
            console.print(f"[yellow]Config file already exists:[/yellow] {config_path}")
            if not typer.confirm("Overwrite existing config?"):
                console.print("[dim]Config creation cancelled[/dim]")
                raise typer.Exit(0)

        cfg.save_to_file(config_path)
        console.print(f"[green]✓ Config file created:[/green] {config_path}")
        console.print("[yellow]Set server.url and server.access_token before syncing.[/yellow]")
        return

    if show:
        table = Table(title="blinkosync Configuration")
        table.add_column("Setting", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")

        table.add_row("Config File", str(cfg.general.config_file or "None (using defaults)"))
        table.add_row("Data Directory", str(cfg.general.data_dir))
        table.add_row("Log Level", cfg.general.log_level)
        table.add_row("Server URL", cfg.server.url or "[dim]not set[/dim]")
        table.add_row("Access Token", "********" if cfg.server.access_token else "[dim]not set[/dim]")
        table.add_row("Vault", str(cfg.vault.root))
        table.add_row("Note Folder", cfg.vault.note_folder or "/")
        table.add_row("Path Template", cfg.vault.note_path_template)
        table.add_row("Attachment Folder", cfg.vault.attachment_folder or "/")
        table.add_row("Auto Sync (min)", str(cfg.sync.auto_sync_interval))
        table.add_row("Deletion Check", "✓" if cfg.sync.delete_check_enabled else "✗")
        table.add_row("Delete Recycled", "✓" if cfg.sync.delete_recycled else "✗")
        table.add_row("AI Titles", "✓" if cfg.titles.enabled else "✗")
        table.add_row("Daily Notes", "✓" if cfg.journal.enabled else "✗")

        console.print(table)
        return

    console.print("[dim]Use --show or --init[/dim]")


@app.command()
def sync(ctx: typer.Context) -> None:
    """Pull new and updated notes from Blinko."""
    report = run_service(ctx, lambda service: service.sync_now(), "Sync")

    table = Table(title="Sync Results")
    table.add_column("Operation", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Notes materialized", str(report.new_count))
    table.add_row("New flash notes", str(len(report.journal_entries)))
    table.add_row("Daily notes updated", str(report.daily_notes_updated))
    table.add_row("Notes removed", str(report.removed_count))
    console.print(table)


@app.command()
def reconcile(ctx: typer.Context) -> None:
    """Remove local notes that were deleted in Blinko."""
    removed = run_service(ctx, lambda service: service.check_deleted(), "Deletion check")
    console.print(f"[green]✓ Deletion check complete:[/green] {removed} notes removed")


@app.command()
def status(ctx: typer.Context) -> None:
    """Show synchronization status."""
    info = run_service(ctx, lambda service: service.status(), "Status")
    cfg: AppConfig = ctx.obj["config"]

    table = Table(title="Blinko Sync Status")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    table.add_row("Configured", "✓" if info["configured"] else "✗")
    table.add_row("Server", info["server"] or "[dim]not set[/dim]")
    table.add_row("Vault", info["vault"])
    table.add_row("Cursor", str(info["cursor"]) if info["cursor"] else "[dim]never synced[/dim]")
    table.add_row("Notes With Manifest", str(info["tracked_notes"]))
    table.add_row("Database", str(cfg.state_db_path))
    console.print(table)

    if not info["cursor"]:
        console.print("\n[dim]Run 'blinkosync sync' to start syncing[/dim]")


@app.command()
def reset(
    ctx: typer.Context,
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
) -> None:
    """Reset the sync cursor and attachment manifests."""
    if not confirm:
        console.print("[yellow]⚠ Warning: This will clear the sync cursor and attachment manifests![/yellow]")
        console.print("[dim]Your notes will NOT be deleted, but the next sync will")
        console.print("re-materialize every note.[/dim]\n")
        if not typer.confirm("Are you sure you want to reset the sync state?"):
            console.print("[dim]Reset cancelled[/dim]")
            raise typer.Exit(0)

    run_service(ctx, lambda service: service.reset_cursor(), "Reset")
    console.print("[green]✓ Sync state reset successfully[/green]")


@app.command()
def watch(ctx: typer.Context) -> None:
    """Sync once, then keep syncing on the configured intervals."""

    async def run_watch(service: BlinkoSyncService) -> None:
        report = await service.sync_now()
        console.print(f"[green]✓ Initial sync:[/green] {report.new_count} notes")

        scheduler = SchedulerManager(service)
        scheduler.start()
        if not scheduler.job_ids():
            console.print("[yellow]No intervals configured, nothing to watch[/yellow]")
            scheduler.stop()
            return

        console.print("[cyan]Watching for changes. Press Ctrl+C to stop.[/cyan]")
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.stop()

    try:
        run_service(ctx, run_watch, "Watch")
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")


if __name__ == "__main__":
    app()
