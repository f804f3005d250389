"""Smart Router core module - shared types, errors, and security helpers."""

from smart_router.core.errors import (
    ConfigError,
    NotFoundError,
    PersistenceError,
    QuotaExceededError,
    SmartRouterError,
    ValidationError,
)
from smart_router.core.security import (
    mask_secret,
    redact_url_password,
    sanitize_for_logging,
    truncate_input,
)
from smart_router.core.types import Result, TaskType, UnitScore, UsdCost, WalletId, clamp_unit

__all__ = [
    # Types
    "Result",
    "TaskType",
    "WalletId",
    "UsdCost",
    "UnitScore",
    "clamp_unit",
    # Errors
    "SmartRouterError",
    "ConfigError",
    "PersistenceError",
    "ValidationError",
    "NotFoundError",
    "QuotaExceededError",
    # Security utilities
    "mask_secret",
    "redact_url_password",
    "sanitize_for_logging",
    "truncate_input",
]
