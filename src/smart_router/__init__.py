"""Smart Router - cost-aware model routing for AI completion requests.

Picks, per request, the most cost-effective model among configured candidates
from the request's complexity, the wallet's quota, learned patterns and
observed model performance, and learns from the outcomes it is told about.

Example:
    # Using CLI
    smart-router config init
    smart-router route "Fix this error: TypeError ..." --wallet 0xabc

    # Using Python
    from smart_router.config import ConfigRegistry
    from smart_router.routing import SmartRouter
"""

__version__ = "0.4.0"

__all__ = ["__version__", "main"]


def main() -> None:
    """Main entry point for the Smart Router CLI.

    This function invokes the Typer app from smart_router.cli.main.
    """
    from smart_router.cli.main import app

    app()
