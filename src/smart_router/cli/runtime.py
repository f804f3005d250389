"""Shared CLI state and router lifecycle.

The main callback stores the global options on ``ctx.obj``; commands open a
SmartRouter for the duration of one invocation with ``open_router``.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer

from smart_router.cli.formatters.panels import print_error
from smart_router.config.loader import config_exists, load_config
from smart_router.config.models import RouterConfig, get_default_config
from smart_router.config.registry import ConfigRegistry
from smart_router.core.errors import SmartRouterError
from smart_router.routing.engine import SmartRouter


@dataclass
class CliState:
    """Global options of one CLI invocation."""

    config_path: Path | None = None
    verbose: bool = False


def get_state(ctx: typer.Context) -> CliState:
    if isinstance(ctx.obj, CliState):
        return ctx.obj
    return CliState()


def load_cli_config(state: CliState) -> tuple[RouterConfig, Path | None]:
    """Load the configuration the CLI should use.

    An explicit --config path must exist; otherwise the home config is used
    when present and the built-in defaults when not.
    """
    if state.config_path is not None:
        return load_config(state.config_path), state.config_path
    if config_exists():
        return load_config(), None
    return get_default_config(), None


@contextmanager
def open_router(ctx: typer.Context) -> Iterator[SmartRouter]:
    """Open a SmartRouter for one command, exiting with code 1 on setup errors."""
    state = get_state(ctx)
    try:
        config, source = load_cli_config(state)
        router = SmartRouter.open(ConfigRegistry(config, source=source))
    except SmartRouterError as e:
        print_error(e.message)
        raise typer.Exit(1) from e

    try:
        yield router
    finally:
        router.close()


__all__ = ["CliState", "get_state", "load_cli_config", "open_router"]
