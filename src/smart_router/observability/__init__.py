"""Observability module for Smart Router.

Structured logging built on structlog: configure_logging, get_logger and
the contextvars helpers that carry wallet and decision ids through a request.
"""

from smart_router.observability.logging import (
    LoggingConfig,
    LogMode,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    set_console_logging,
    unbind_context,
)

__all__ = [
    "LogMode",
    "LoggingConfig",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "set_console_logging",
    "unbind_context",
]
