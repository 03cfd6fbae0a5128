"""Typer CLI application."""

import typer

from logvault.cli.commands.check import check_config
from logvault.cli.commands.run import run
from logvault.cli.commands.status import status
from logvault.cli.commands.sweep import sweep

app = typer.Typer(
    name="logvault",
    help="Log ingest daemon: bus records to hourly partition files",
    no_args_is_help=True,
)

app.command()(run)
app.command("check-config")(check_config)
app.command()(sweep)
app.command()(status)
