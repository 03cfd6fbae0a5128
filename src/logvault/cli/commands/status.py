"""Status command: show the partition tree and retention state."""

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path

import typer
from rich.table import Table

from logvault.cli.commands.common import CONFIG_HELP, console, load_or_exit
from logvault.retention.driver import SECONDS_PER_DAY
from logvault.retention.schedule import next_cleanup, now_local


def status(
    config_path: str = typer.Option("", "--config", "-c", help=CONFIG_HELP),
) -> None:
    """Show partition directories, their age, and the next cleanup."""
    config = load_or_exit(config_path)
    root = config.log_root
    if not root.is_dir():
        console.print(f"[yellow]Log root {root} does not exist yet.[/yellow]")
        raise typer.Exit(0)

    now = time.time()
    cutoff = now - config.retention_days * SECONDS_PER_DAY

    table = Table(title=f"Partitions under {root}")
    table.add_column("Directory", style="cyan")
    table.add_column("Modified")
    table.add_column("Age (days)", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Expired")

    total_files = 0
    total_bytes = 0
    for child in sorted(root.iterdir()):
        if not child.is_dir():
            continue
        try:
            mtime = child.stat().st_mtime
        except OSError:
            continue
        files, size = _partition_stats(child)
        total_files += files
        total_bytes += size
        expired = mtime <= cutoff
        table.add_row(
            child.name,
            datetime.fromtimestamp(mtime).strftime("%Y-%m-%d %H:%M:%S"),
            f"{(now - mtime) / SECONDS_PER_DAY:.1f}",
            f"{files:,}",
            f"{size:,}",
            "[red]yes[/red]" if expired else "no",
        )

    console.print(table)
    console.print(f"Total: {total_files:,} partition files, {total_bytes:,} bytes")
    console.print(f"Retention: {config.retention_days} days")

    trigger = next_cleanup(now_local(), config.cleanup_time)
    console.print(f"Next cleanup: {trigger:%Y-%m-%d %H:%M:%S %Z}")


def _partition_stats(directory: Path) -> tuple[int, int]:
    """Count *.log partition files and their total size below ``directory``."""
    files = 0
    size = 0
    for path in directory.rglob("*.log"):
        try:
            size += path.stat().st_size
        except OSError:
            continue
        files += 1
    return files, size
