"""Helpers shared by CLI commands."""

from __future__ import annotations

import typer
from rich.console import Console

from logvault.config.settings import DaemonConfig, load_config
from logvault.errors import ConfigError

console = Console()

CONFIG_HELP = "Config file path. Env: LOGVAULT_CONFIG (default: ./config.yaml)"


def load_or_exit(config_path: str) -> DaemonConfig:
    """Load the config, printing every validation error and exiting 1 on failure."""
    try:
        return load_config(config_path or None)
    except ConfigError as e:
        for err in e.errors:
            console.print(f"[red]Config error: {err}[/red]")
        raise typer.Exit(1)
