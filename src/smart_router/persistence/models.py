"""Typed records stored by the persistence layer.

Rows are converted to frozen pydantic models on the way out, and the JSON
columns (alternatives, keywords) are validated through TypeAdapters both on
write and on read, so a malformed blob surfaces as an error at the storage
boundary instead of deep inside the selector.
"""

from collections.abc import Mapping
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from smart_router.core.types import TaskType

UNLIMITED = -1
"""Sentinel stored in decisions_limit (and reported as remaining) for pro wallets."""


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class Tier(str, Enum):
    """Subscription tier controlling the daily decision quota."""

    FREE = "free"
    PRO = "pro"


class PatternType(str, Enum):
    """How a pattern came to exist."""

    MANUAL = "manual"
    SEEDED = "seeded"
    LEARNED = "learned"


class Alternative(BaseModel, frozen=True):
    """A candidate that was scored but not selected."""

    model: str
    provider: str
    score: float = Field(ge=0.0, le=1.0)
    estimated_cost: float = Field(ge=0.0)
    reason: str


AlternativeList = TypeAdapter(list[Alternative])
KeywordList = TypeAdapter(list[str])
ScoreBreakdown = TypeAdapter(dict[str, float])


class DecisionOutcome(BaseModel, frozen=True):
    """Real-world result of a routed request.

    Attributes:
        was_successful: Whether the downstream call met the caller's bar.
        actual_tokens: Tokens actually consumed.
        actual_cost: Cost actually charged, in USD.
        response_quality: Caller-assigned quality, 0.0-1.0.
        response_time_ms: Latency of the downstream call.
    """

    was_successful: bool
    actual_tokens: int | None = Field(default=None, ge=0)
    actual_cost: float | None = Field(default=None, ge=0.0)
    response_quality: float | None = Field(default=None, ge=0.0, le=1.0)
    response_time_ms: int | None = Field(default=None, ge=0)


class RoutingDecision(BaseModel, frozen=True):
    """One persisted routing choice and, once known, its outcome."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    wallet: str = Field(min_length=1)
    task_type: str
    complexity_score: float = Field(ge=0.0, le=1.0)
    estimated_tokens: int = Field(ge=0)
    context_length: int = Field(ge=0)
    has_code: bool = False
    has_errors: bool = False
    has_data: bool = False
    selected_model: str
    selected_provider: str
    selection_reason: str
    confidence_score: float = Field(ge=0.0, le=1.0)
    estimated_cost: float = Field(default=0.0, ge=0.0)
    alternatives: list[Alternative] = Field(default_factory=list)
    score_breakdown: dict[str, float] = Field(default_factory=dict)
    pattern_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    outcome: DecisionOutcome | None = None
    outcome_revision: int = 0
    outcome_recorded_at: datetime | None = None

    def to_db_dict(self) -> dict[str, Any]:
        """Columns for inserting a new decision (outcome columns left empty)."""
        return {
            "id": self.id,
            "wallet": self.wallet,
            "task_type": self.task_type,
            "complexity_score": self.complexity_score,
            "estimated_tokens": self.estimated_tokens,
            "context_length": self.context_length,
            "has_code": self.has_code,
            "has_errors": self.has_errors,
            "has_data": self.has_data,
            "selected_model": self.selected_model,
            "selected_provider": self.selected_provider,
            "selection_reason": self.selection_reason,
            "confidence_score": self.confidence_score,
            "estimated_cost": self.estimated_cost,
            "alternatives": AlternativeList.dump_python(self.alternatives, mode="json"),
            "score_breakdown": dict(self.score_breakdown),
            "pattern_id": self.pattern_id,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RoutingDecision":
        outcome = None
        if row["was_successful"] is not None:
            outcome = DecisionOutcome(
                was_successful=row["was_successful"],
                actual_tokens=row["actual_tokens"],
                actual_cost=row["actual_cost"],
                response_quality=row["response_quality"],
                response_time_ms=row["response_time_ms"],
            )
        return cls(
            id=row["id"],
            wallet=row["wallet"],
            task_type=row["task_type"],
            complexity_score=row["complexity_score"],
            estimated_tokens=row["estimated_tokens"],
            context_length=row["context_length"],
            has_code=row["has_code"],
            has_errors=row["has_errors"],
            has_data=row["has_data"],
            selected_model=row["selected_model"],
            selected_provider=row["selected_provider"],
            selection_reason=row["selection_reason"],
            confidence_score=row["confidence_score"],
            estimated_cost=row["estimated_cost"],
            alternatives=AlternativeList.validate_python(row["alternatives"]),
            score_breakdown=ScoreBreakdown.validate_python(row["score_breakdown"]),
            pattern_id=row["pattern_id"],
            created_at=as_utc(row["created_at"]),
            outcome=outcome,
            outcome_revision=row["outcome_revision"],
            outcome_recorded_at=as_utc(row["outcome_recorded_at"]),
        )


class PatternSpec(BaseModel, frozen=True):
    """Everything needed to create a pattern.

    Context bounds are optional; a pattern without them matches any context
    length. Counts may be seeded when a pattern is inferred from history.
    """

    wallet: str = Field(min_length=1)
    task_type: str = Field(min_length=1)
    complexity_min: float = Field(ge=0.0, le=1.0)
    complexity_max: float = Field(ge=0.0, le=1.0)
    context_min: int | None = Field(default=None, ge=0)
    context_max: int | None = Field(default=None, ge=0)
    recommended_model: str = Field(min_length=1)
    recommended_provider: str = Field(min_length=1)
    pattern_type: PatternType = PatternType.MANUAL
    description: str = Field(default="", max_length=500)
    keywords: list[str] = Field(default_factory=list)
    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)

    @field_validator("task_type")
    @classmethod
    def validate_task_type(cls, v: str) -> str:
        if v not in {t.value for t in TaskType}:
            msg = f"task_type must be one of: {', '.join(t.value for t in TaskType)}"
            raise ValueError(msg)
        return v

    @field_validator("keywords")
    @classmethod
    def normalize_keywords(cls, v: list[str]) -> list[str]:
        """Lowercase, strip and de-duplicate keywords, keeping order."""
        seen: dict[str, None] = {}
        for keyword in v:
            cleaned = keyword.strip().lower()
            if cleaned:
                seen.setdefault(cleaned, None)
        return list(seen)

    @model_validator(mode="after")
    def validate_ranges(self) -> "PatternSpec":
        if self.complexity_min > self.complexity_max:
            msg = "complexity_min must be <= complexity_max"
            raise ValueError(msg)
        if (self.context_min is None) != (self.context_max is None):
            msg = "context_min and context_max must be given together"
            raise ValueError(msg)
        if self.context_min is not None and self.context_min > self.context_max:
            msg = "context_min must be <= context_max"
            raise ValueError(msg)
        return self


class Pattern(PatternSpec, frozen=True):
    """A stored pattern with its observed statistics."""

    id: str
    confidence: float = Field(ge=0.0, le=1.0)
    avg_cost: float = 0.0
    avg_quality: float = 0.0
    created_at: datetime
    updated_at: datetime

    @property
    def observations(self) -> int:
        return self.success_count + self.failure_count

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Pattern":
        return cls(
            id=row["id"],
            wallet=row["wallet"],
            pattern_type=row["pattern_type"],
            description=row["description"],
            task_type=row["task_type"],
            complexity_min=row["complexity_min"],
            complexity_max=row["complexity_max"],
            context_min=row["context_min"],
            context_max=row["context_max"],
            keywords=KeywordList.validate_python(row["keywords"]),
            recommended_model=row["recommended_model"],
            recommended_provider=row["recommended_provider"],
            success_count=row["success_count"],
            failure_count=row["failure_count"],
            confidence=row["confidence"],
            avg_cost=row["avg_cost"],
            avg_quality=row["avg_quality"],
            created_at=as_utc(row["created_at"]),
            updated_at=as_utc(row["updated_at"]),
        )


class PatternQuery(BaseModel, frozen=True):
    """Lookup key for the best pattern covering a request."""

    wallet: str = Field(min_length=1)
    task_type: str = Field(min_length=1)
    complexity_min: float = Field(ge=0.0, le=1.0)
    complexity_max: float = Field(ge=0.0, le=1.0)
    context_min: int | None = Field(default=None, ge=0)
    context_max: int | None = Field(default=None, ge=0)

    @classmethod
    def point(
        cls, wallet: str, task_type: str, complexity: float, context_length: int | None = None
    ) -> "PatternQuery":
        """Query for a single complexity value (and context length)."""
        return cls(
            wallet=wallet,
            task_type=task_type,
            complexity_min=complexity,
            complexity_max=complexity,
            context_min=context_length,
            context_max=context_length,
        )

    @model_validator(mode="after")
    def validate_ranges(self) -> "PatternQuery":
        if self.complexity_min > self.complexity_max:
            msg = "complexity_min must be <= complexity_max"
            raise ValueError(msg)
        if (self.context_min is None) != (self.context_max is None):
            msg = "context_min and context_max must be given together"
            raise ValueError(msg)
        if self.context_min is not None and self.context_min > self.context_max:
            msg = "context_min must be <= context_max"
            raise ValueError(msg)
        return self

    @property
    def complexity_midpoint(self) -> float:
        return (self.complexity_min + self.complexity_max) / 2


class ModelPerformance(BaseModel, frozen=True):
    """Rolling aggregate for one (wallet, model, task_type) key."""

    wallet: str
    model: str
    task_type: str
    provider: str = ""
    total_requests: int = 0
    success_count: int = 0
    success_rate: float = Field(default=0.5, ge=0.0, le=1.0)
    avg_cost: float = 0.0
    cost_samples: int = 0
    avg_quality: float = 0.0
    quality_samples: int = 0
    avg_latency_ms: float = 0.0
    latency_samples: int = 0

    @property
    def has_history(self) -> bool:
        return self.total_requests > 0

    @classmethod
    def neutral(cls, wallet: str, model: str, task_type: str) -> "ModelPerformance":
        """Default returned for a key that has never been observed."""
        return cls(wallet=wallet, model=model, task_type=task_type)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ModelPerformance":
        return cls.model_validate(
            {key: row[key] for key in cls.model_fields if key in row}
        )


class Quota(BaseModel, frozen=True):
    """Stored quota row for one wallet (tier as stored, not effective)."""

    wallet: str
    tier: Tier = Tier.FREE
    decisions_today: int = Field(default=0, ge=0)
    decisions_limit: int
    last_reset: date
    paid_until: datetime | None = None

    @property
    def is_unlimited(self) -> bool:
        return self.decisions_limit == UNLIMITED

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Quota":
        return cls(
            wallet=row["wallet"],
            tier=row["tier"],
            decisions_today=row["decisions_today"],
            decisions_limit=row["decisions_limit"],
            last_reset=date.fromisoformat(row["last_reset"]),
            paid_until=as_utc(row["paid_until"]),
        )


class RoutingStats(BaseModel, frozen=True):
    """Aggregate view over a wallet's decisions."""

    total_decisions: int = 0
    decisions_with_outcome: int = 0
    successful_decisions: int = 0
    success_rate: float | None = None
    avg_confidence: float | None = None
    total_estimated_cost: float = 0.0
    total_actual_cost: float = 0.0
    avg_actual_cost: float | None = None


class DecisionGroupStats(BaseModel, frozen=True):
    """Per-model or per-task-type slice of RoutingStats."""

    key: str
    decisions: int
    decisions_with_outcome: int
    success_rate: float | None = None
    avg_confidence: float | None = None
    total_actual_cost: float = 0.0
