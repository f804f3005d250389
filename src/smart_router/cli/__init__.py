"""Smart Router CLI module.

Command-line access to the routing engine, built with Typer and Rich.
"""

from smart_router.cli.main import app

__all__ = ["app"]
