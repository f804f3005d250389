"""Smart Router CLI main entry point.

This module defines the main Typer application, registers the command groups
and the top-level routing commands.
"""

from pathlib import Path
from typing import Annotated

import typer

from smart_router import __version__
from smart_router.cli.commands import config, decisions, patterns, quota, stats
from smart_router.cli.formatters import console
from smart_router.cli.runtime import CliState
from smart_router.observability.logging import set_console_logging

app = typer.Typer(
    name="smart-router",
    help="Smart Router - cost-aware model routing for AI completion requests",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Top-level routing commands
app.command("route")(decisions.route)
app.command("outcome")(decisions.outcome)
app.command("decision")(decisions.decision)
app.command("stats")(stats.stats)

# Command groups
app.add_typer(quota.app, name="quota")
app.add_typer(patterns.app, name="patterns")
app.add_typer(config.app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]Smart Router[/] version [green]{__version__}[/]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            help="Configuration file (defaults to ~/.smart-router/config.yaml).",
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Print structured log lines to stderr."),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Smart Router - cost-aware model routing.

    Use [bold cyan]smart-router COMMAND --help[/] for command-specific help.
    """
    set_console_logging(verbose)
    ctx.obj = CliState(config_path=config_path, verbose=verbose)


__all__ = ["app", "main"]
