"""Run command: start the daemon in the foreground."""

from __future__ import annotations

import asyncio

import typer

from logvault.cli.commands.common import CONFIG_HELP, load_or_exit
from logvault.daemon.service import LogDaemon
from logvault.diagnostics import setup_logging


def run(
    config_path: str = typer.Option("", "--config", "-c", help=CONFIG_HELP),
) -> None:
    """Ingest from the bus and prune old partitions until interrupted."""
    config = load_or_exit(config_path)
    setup_logging(config.logging.level, config.logging.diagnostic_file)
    asyncio.run(LogDaemon(config).run())
