"""Error hierarchy for Smart Router.

Expected failures (unknown ids, exhausted quotas, unusable configuration,
invalid pattern input) travel as the error side of a ``Result``. Storage
failures are raised as PersistenceError and chained to the driver error.

    SmartRouterError
    ├── ConfigError         configuration, candidates, pricing
    ├── PersistenceError    database reads and writes
    ├── ValidationError     rejected input
    ├── NotFoundError       unknown decision or pattern, or no matching pattern
    └── QuotaExceededError  daily decision allowance used up
"""

from typing import Any

from smart_router.core.security import REDACTED, is_sensitive_field


class SmartRouterError(Exception):
    """Base of every Smart Router error.

    Attributes:
        message: Human-readable description.
        details: Extra structured context, safe to log.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} (details: {self.details})"


class ConfigError(SmartRouterError):
    """Configuration could not be loaded or is unusable for selection.

    Attributes:
        config_key: Offending key, e.g. "candidates" or "pricing".
        config_file: File the configuration came from.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        config_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


class PersistenceError(SmartRouterError):
    """A database operation failed.

    Attributes:
        operation: What was attempted ("insert", "update", "aggregate", ...).
        table: Table involved, when there is one.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.operation = operation
        self.table = table


class ValidationError(SmartRouterError):
    """Input was rejected.

    ``value`` is kept for callers; ``str()`` only ever shows ``safe_value``.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value

    @property
    def safe_value(self) -> str:
        """Loggable form of ``value``: redacted, shortened or reduced to its type."""
        value = self.value
        if value is None:
            return "<None>"
        if self.field and is_sensitive_field(self.field):
            return REDACTED
        if isinstance(value, str):
            return repr(value) if len(value) <= 50 else f"{value[:20]}...({len(value)} chars)"
        if isinstance(value, (bool, int, float)):
            return repr(value)
        return f"<{type(value).__name__}>"

    def __str__(self) -> str:
        text = self.message
        if self.field:
            text += f" (field: {self.field}, value: {self.safe_value})"
        if self.details:
            text += f" (details: {self.details})"
        return text


class NotFoundError(SmartRouterError):
    """No record for an identifier, or no pattern for a query.

    Attributes:
        resource: "decision" or "pattern".
        identifier: The id or query looked up.
    """

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        identifier: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.resource = resource
        self.identifier = identifier


class QuotaExceededError(SmartRouterError):
    """The wallet has no decisions left today.

    The quota gate only reports availability; this error is produced by
    callers that deny service on it, such as ``SmartRouter.route``.
    """

    def __init__(
        self,
        message: str,
        *,
        wallet: str,
        limit: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.wallet = wallet
        self.limit = limit
