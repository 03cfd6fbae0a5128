"""Check-config command: validate and show the effective settings."""

from __future__ import annotations

import typer
from rich.table import Table

from logvault.cli.commands.common import CONFIG_HELP, console, load_or_exit
from logvault.retention.schedule import next_cleanup, now_local


def check_config(
    config_path: str = typer.Option("", "--config", "-c", help=CONFIG_HELP),
) -> None:
    """Validate the config file and print the effective settings."""
    config = load_or_exit(config_path)

    table = Table(title=f"Configuration ({config.source})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    log = config.logging
    table.add_row("logging.path", str(config.log_root))
    table.add_row("logging.retention_days", str(log.retention_days))
    table.add_row("logging.cleanup_time", log.cleanup_time or "01:00:00 (default)")
    table.add_row("logging.level", log.level)
    table.add_row("logging.diagnostic_file", log.diagnostic_file or "(stderr only)")
    table.add_row("logging.mirror_records", str(log.mirror_records))

    bus = config.bus
    table.add_row("bus.enabled", str(bus.enabled))
    if bus.enabled:
        table.add_row("bus.brokers", "\n".join(bus.brokers))
        table.add_row("bus.group_id", bus.group_id)
        table.add_row("bus.topics", ", ".join(bus.topics))
        table.add_row("bus.reconnect_interval_ms", str(bus.reconnect_interval_ms))
        table.add_row("bus.heartbeat_interval_ms", str(bus.heartbeat_interval_ms))

    console.print(table)

    trigger = next_cleanup(now_local(), config.cleanup_time)
    console.print(f"[green]Config OK[/green]. Next cleanup: {trigger:%Y-%m-%d %H:%M:%S %Z}")
