"""Config command group for Smart Router.

Create the default configuration file and display the active configuration.
"""

from typing import Annotated

import typer
import yaml

from smart_router.cli.formatters import console
from smart_router.cli.formatters.panels import print_error, print_info, print_success
from smart_router.cli.formatters.tables import (
    create_key_value_table,
    create_table,
    print_table,
)
from smart_router.cli.runtime import get_state, load_cli_config
from smart_router.config.loader import create_default_config, resolve_database_url
from smart_router.config.models import get_config_dir
from smart_router.core.errors import ConfigError
from smart_router.core.security import redact_url_password, sanitize_for_logging

app = typer.Typer(
    name="config",
    help="Manage Smart Router configuration.",
    no_args_is_help=True,
)


@app.command()
def init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite an existing config.yaml.")
    ] = False,
) -> None:
    """Write the default configuration to the Smart Router home directory."""
    try:
        path = create_default_config(overwrite=force)
    except ConfigError as e:
        print_info(f"{e.message}\nUse --force to overwrite it.")
        raise typer.Exit(1) from e
    print_success(f"Configuration written to {path}")


@app.command()
def show(
    ctx: typer.Context,
    section: Annotated[
        str | None,
        typer.Argument(help="Configuration section to display (e.g., 'scoring')."),
    ] = None,
) -> None:
    """Display the active configuration.

    Shows a summary plus the candidate table if no section is specified.
    """
    try:
        config, source = load_cli_config(get_state(ctx))
    except ConfigError as e:
        print_error(e.message)
        raise typer.Exit(1) from e

    if section:
        dumped = config.model_dump(mode="json")
        if section not in dumped:
            print_error(f"Unknown section '{section}'. Available: {', '.join(dumped)}")
            raise typer.Exit(1)
        shown = sanitize_for_logging({section: dumped[section]})
        console.print(yaml.safe_dump(shown, sort_keys=False), end="")
        return

    weights = config.scoring.weights
    summary = {
        "config_path": str(source or get_config_dir() / "config.yaml"),
        "database": redact_url_password(resolve_database_url(config)),
        "weights": (
            f"complexity {weights.complexity_match}, budget {weights.budget_constraint}, "
            f"pattern {weights.pattern_match}, performance {weights.performance}"
        ),
        "free_daily_limit": config.quota.free_daily_limit,
        "pattern_threshold": config.learning.pattern_threshold,
        "log_level": config.logging.log_level,
    }
    print_table(create_key_value_table(summary, "Current Configuration"))

    prices = {(p.provider, p.model): p for p in config.pricing}
    table = create_table("Candidates")
    table.add_column("Provider")
    table.add_column("Model", style="cyan")
    table.add_column("Band")
    table.add_column("Prompt $/1k", justify="right")
    table.add_column("Completion $/1k", justify="right")
    for candidate in config.candidates:
        band = config.bands[candidate.band]
        entry = prices.get((candidate.provider, candidate.model))
        table.add_row(
            candidate.provider,
            candidate.model,
            f"{candidate.band} ({band.min:.2f}-{band.max:.2f})",
            f"{entry.cost_per_1k_prompt:g}" if entry else "unpriced",
            f"{entry.cost_per_1k_completion:g}" if entry else "unpriced",
        )
    print_table(table)


__all__ = ["app"]
