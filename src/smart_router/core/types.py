"""Core types for Smart Router - Result type and domain aliases.

This module provides:
- Result[T, E]: Carries either a value or an expected failure
- TaskType: the fixed task categories, shared by routing and persistence
- Type aliases shared by the routing and persistence packages
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import cast


@dataclass(frozen=True, slots=True)
class Result[T, E]:
    """Either a success value (Ok) or an expected failure (Err).

    Expected failures (unknown ids, unusable configuration, quota denial) are
    returned as Err. Exceptions are reserved for bugs and storage failures.

    Usage:
        result = store.get_decision(decision_id)
        if result.is_ok:
            decision = result.value
        else:
            log.warning("decision.lookup.failed", error=str(result.error))

        model = selector.select_model(analysis, wallet).map(lambda s: s.model)
    """

    _value: T | None
    _error: E | None
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        """Wrap a success value."""
        return cls(_value=value, _error=None, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        """Wrap an expected failure."""
        return cls(_value=None, _error=error, _is_ok=False)

    @property
    def is_ok(self) -> bool:
        """True when this Result holds a value."""
        return self._is_ok

    @property
    def is_err(self) -> bool:
        """True when this Result holds an error."""
        return not self._is_ok

    def __repr__(self) -> str:
        if self._is_ok:
            return f"Ok({self._value!r})"
        return f"Err({self._error!r})"

    @property
    def value(self) -> T:
        """The success value.

        Raises:
            ValueError: If this Result is Err.
        """
        if not self._is_ok:
            msg = "Cannot access value on Err result"
            raise ValueError(msg)
        return cast(T, self._value)

    @property
    def error(self) -> E:
        """The failure value.

        Raises:
            ValueError: If this Result is Ok.
        """
        if self._is_ok:
            msg = "Cannot access error on Ok result"
            raise ValueError(msg)
        return cast(E, self._error)

    def unwrap(self) -> T:
        """Return the value, raising ValueError with the error text if Err."""
        if self._is_ok:
            return cast(T, self._value)
        raise ValueError(str(self._error))

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` if Err."""
        if self._is_ok:
            return cast(T, self._value)
        return default

    def map[U](self, fn: Callable[[T], U]) -> "Result[U, E]":
        """Apply ``fn`` to the value, passing an Err through unchanged."""
        if self._is_ok:
            return Result.ok(fn(cast(T, self._value)))
        return Result.err(cast(E, self._error))


class TaskType(str, Enum):
    """Fixed enumeration of task categories, highest priority first."""

    DEBUGGING = "debugging"
    CODE = "code"
    REASONING = "reasoning"
    WRITING = "writing"
    QUERY = "query"


WalletId = str
"""Type alias for an agent wallet identifier (opaque to the core)."""

UsdCost = float
"""Type alias for a cost in US dollars."""

UnitScore = float
"""Type alias for a score clamped to the 0.0-1.0 range."""


def clamp_unit(value: float) -> UnitScore:
    """Clamp a float into the 0.0-1.0 range."""
    if value < 0.0:
        return 0.0
    if value > 1.0:
        return 1.0
    return value
