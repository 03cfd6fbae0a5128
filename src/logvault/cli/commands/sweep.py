"""Sweep command: run one retention pass now."""

from __future__ import annotations

import asyncio

import typer

from logvault.cli.commands.common import CONFIG_HELP, console, load_or_exit
from logvault.retention.driver import RetentionDriver


def sweep(
    config_path: str = typer.Option("", "--config", "-c", help=CONFIG_HELP),
    dry_run: bool = typer.Option(False, help="List expired directories without removing them"),
) -> None:
    """Remove partition subtrees older than the retention window."""
    config = load_or_exit(config_path)
    if not config.log_root.is_dir():
        console.print(f"[red]Log root not found: {config.log_root}[/red]")
        raise typer.Exit(1)

    driver = RetentionDriver(config.log_root, config.retention_days, config.cleanup_time)

    if dry_run:
        expired = asyncio.run(driver.expired_children())
        if not expired:
            console.print("Nothing to remove.")
        for path in expired:
            console.print(f"[yellow]Would remove[/yellow] {path}")
        return

    result = asyncio.run(driver.sweep())
    for path in result.removed:
        console.print(f"[green]Removed[/green] {path}")
    for path in result.failed:
        console.print(f"[red]Failed to remove[/red] {path}")
    console.print(
        f"Cutoff {result.cutoff:%Y-%m-%d %H:%M:%S}: "
        f"{len(result.removed)} removed, {len(result.failed)} failed"
    )
    if result.failed:
        raise typer.Exit(1)
