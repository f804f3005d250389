"""Structured logging for Smart Router.

structlog is configured once per process. ``dev`` mode renders readable
console lines and ``prod`` mode renders one JSON object per line. Rendered
lines go to stderr (unless silenced, as the CLI does without ``--verbose``)
and, optionally, to a log file rotated at UTC midnight.

Events are named ``domain.entity.verb_past_tense``, e.g.
``selector.model.selected`` or ``quota.decision.incremented``. Request-scoped
keys (``wallet``, ``decision_id``) are bound with ``bind_context`` and merged
into every entry logged while they are bound.

Usage:
    from smart_router.observability import configure_logging, get_logger

    configure_logging(LoggingConfig(mode=LogMode.PROD))
    log = get_logger(__name__)
    log.info("decision.outcome.recorded", decision_id=decision.id)
"""

from __future__ import annotations

from enum import Enum
from functools import partialmethod
import logging
from logging.handlers import TimedRotatingFileHandler
import os
from pathlib import Path
import sys
from typing import Any

from pydantic import BaseModel, Field
import structlog

from smart_router.core.security import sanitize_for_logging

LOG_FILE_NAME = "smart-router.log"

# Keys added by structlog itself, never masked
_RESERVED_KEYS = frozenset({"event", "level", "timestamp", "logger"})


class LogMode(str, Enum):
    """Rendering of log lines."""

    DEV = "dev"
    PROD = "prod"


class LoggingConfig(BaseModel, frozen=True):
    """Logging section of the router configuration.

    Attributes:
        mode: ``dev`` for console lines, ``prod`` for JSON lines.
        log_level: Lowest level emitted.
        log_to_file: Also write lines to ``log_dir``.
        log_dir: Directory of the rotated log file.
        retention_days: Rotated files kept.
    """

    mode: LogMode = LogMode.DEV
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".smart-router" / "logs")
    retention_days: int = Field(default=7, ge=1, le=365)


_state: dict[str, Any] = {"config": None, "console": True}


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _mode_from_env() -> LogMode:
    if os.environ.get("SMART_ROUTER_LOG_MODE", "").strip().lower() == LogMode.PROD.value:
        return LogMode.PROD
    return LogMode.DEV


def _redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask secret-looking keys and values, including nested dicts."""
    reserved = {k: v for k, v in event_dict.items() if k in _RESERVED_KEYS}
    payload = {k: v for k, v in event_dict.items() if k not in _RESERVED_KEYS}
    return {**sanitize_for_logging(payload), **reserved}


class _LineSink:
    """structlog logger that writes rendered lines to stderr and a file."""

    def __init__(self, file_handler: logging.Handler | None) -> None:
        self._file_handler = file_handler

    def _write(self, level: int, message: str) -> None:
        if _state["console"]:
            print(message, file=sys.stderr)
        if self._file_handler is not None:
            self._file_handler.emit(
                logging.makeLogRecord({"name": "smart_router", "levelno": level, "msg": message})
            )

    debug = partialmethod(_write, logging.DEBUG)
    info = msg = partialmethod(_write, logging.INFO)
    warning = warn = partialmethod(_write, logging.WARNING)
    error = exception = partialmethod(_write, logging.ERROR)
    critical = fatal = partialmethod(_write, logging.CRITICAL)


def _file_handler(config: LoggingConfig) -> logging.Handler | None:
    if not config.log_to_file:
        return None
    config.log_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        config.log_dir / LOG_FILE_NAME,
        when="midnight",
        backupCount=config.retention_days,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog for the process; a later call replaces the setup.

    Without a config the defaults are used, with the mode read from
    ``SMART_ROUTER_LOG_MODE``.
    """
    if config is None:
        config = LoggingConfig(mode=_mode_from_env())

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if config.mode is LogMode.PROD
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    handler = _file_handler(config)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _redact_secrets,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level(config.log_level)),
        context_class=dict,
        logger_factory=lambda *_: _LineSink(handler),
        cache_logger_on_first_use=True,
    )
    _state["config"] = config


def set_console_logging(enabled: bool) -> None:
    """Turn stderr output on or off without reconfiguring."""
    _state["console"] = enabled


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, configuring defaults on first use."""
    if _state["config"] is None:
        configure_logging()
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind request-scoped keys such as ``wallet``. Never bind secrets."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_current_config() -> LoggingConfig | None:
    return _state["config"]


def is_configured() -> bool:
    return _state["config"] is not None


def reset_logging() -> None:
    """Forget the configuration and restore structlog defaults (tests)."""
    _state["config"] = None
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
