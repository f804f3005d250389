"""Pydantic models for Smart Router configuration.

This module defines the configuration schema using Pydantic v2.
All configuration validation happens through these models, and every model
is frozen: a loaded RouterConfig is treated as immutable for the lifetime of
the process (see ConfigRegistry for the controlled reload path).

Classes:
    ScoringWeights: Weights of the four selector sub-scores (sum to 1.0)
    ScoringConfig: Weights plus the tunables of the selector's sub-scores
    ComplexityBand: Named complexity range a candidate model targets
    CandidateModel: A model the selector may choose
    PricingEntry: Per-1k-token prices for one provider/model pair
    AnalyzerConfig: Constants of the task analyzer's complexity signals
    QuotaConfig: Free-tier daily allowance
    LearningConfig: Pattern confidence threshold and inference settings
    PersistenceConfig: Storage configuration
    RouterConfig: Top-level configuration combining all sections
"""

import math
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from smart_router.observability.logging import LoggingConfig


class ScoringWeights(BaseModel, frozen=True):
    """Weights of the selector's sub-scores.

    Attributes:
        complexity_match: Weight of the complexity/band similarity.
        budget_constraint: Weight of the cost efficiency score.
        pattern_match: Weight of the learned-pattern score.
        performance: Weight of the historical performance score.
    """

    complexity_match: float = Field(default=0.4, ge=0.0, le=1.0)
    budget_constraint: float = Field(default=0.3, ge=0.0, le=1.0)
    pattern_match: float = Field(default=0.2, ge=0.0, le=1.0)
    performance: float = Field(default=0.1, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_sum(self) -> "ScoringWeights":
        """Validate that the weights sum to 1.0."""
        total = self.complexity_match + self.budget_constraint + self.pattern_match + self.performance
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            msg = f"Scoring weights must sum to 1.0, got {total:.4f}"
            raise ValueError(msg)
        return self

    def as_dict(self) -> dict[str, float]:
        """Return the weights keyed by sub-score name."""
        return {
            "complexity_match": self.complexity_match,
            "budget_constraint": self.budget_constraint,
            "pattern_match": self.pattern_match,
            "performance": self.performance,
        }


class ScoringConfig(BaseModel, frozen=True):
    """Model selector scoring configuration.

    Attributes:
        weights: Sub-score weights.
        non_recommended_pattern_factor: Share of a matched pattern's
            confidence given to candidates other than its recommended model.
        budget_relief: How much quota headroom lifts the cost score of
            expensive candidates (0 disables the effect).
        neutral_performance: Performance score used without history.
        completion_token_ratio: Expected completion tokens per prompt token,
            used to estimate a request's cost.
    """

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    non_recommended_pattern_factor: float = Field(default=0.5, ge=0.0, le=1.0)
    budget_relief: float = Field(default=0.5, ge=0.0, le=1.0)
    neutral_performance: float = Field(default=0.5, ge=0.0, le=1.0)
    completion_token_ratio: float = Field(default=0.5, ge=0.0)


class ComplexityBand(BaseModel, frozen=True):
    """A named range of complexity scores.

    Attributes:
        min: Lower bound (inclusive).
        max: Upper bound (inclusive).
    """

    min: float = Field(ge=0.0, le=1.0)
    max: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_range(self) -> "ComplexityBand":
        """Validate that min <= max."""
        if self.min > self.max:
            msg = f"Band min ({self.min}) must be <= max ({self.max})"
            raise ValueError(msg)
        return self

    @property
    def center(self) -> float:
        return (self.min + self.max) / 2

    @property
    def half_width(self) -> float:
        return (self.max - self.min) / 2


class CandidateModel(BaseModel, frozen=True):
    """A model the selector may route to.

    Attributes:
        provider: Provider name (anthropic, openai, google, ...)
        model: Model identifier string
        band: Name of the complexity band this model targets
    """

    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    band: str = Field(min_length=1)


class PricingEntry(BaseModel, frozen=True):
    """Prices for one provider/model pair, in USD per 1k tokens."""

    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    cost_per_1k_prompt: float = Field(ge=0.0)
    cost_per_1k_completion: float = Field(ge=0.0)


class AnalyzerConfig(BaseModel, frozen=True):
    """Constants of the task analyzer.

    The complexity score is the clamped sum of the length contribution and
    the three increments below.

    Attributes:
        chars_per_token: Characters per estimated token.
        length_token_cap: Token count at which the length signal saturates.
        length_weight: Maximum length contribution.
        code_increment: Added when code or code-like syntax is present.
        error_increment: Added when error or stack-trace markers are present.
        reasoning_increment: Maximum contribution of analytical language.
        reasoning_saturation: Number of analytical markers giving the full
            reasoning increment.
    """

    chars_per_token: int = Field(default=4, ge=1)
    length_token_cap: int = Field(default=2000, ge=1)
    length_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    code_increment: float = Field(default=0.3, ge=0.0, le=1.0)
    error_increment: float = Field(default=0.3, ge=0.0, le=1.0)
    reasoning_increment: float = Field(default=0.3, ge=0.0, le=1.0)
    reasoning_saturation: int = Field(default=4, ge=1)


class QuotaConfig(BaseModel, frozen=True):
    """Subscription quota configuration.

    Attributes:
        free_daily_limit: Decisions per day for free-tier wallets.
    """

    free_daily_limit: int = Field(default=100, ge=0)


class LearningConfig(BaseModel, frozen=True):
    """Pattern learning configuration.

    Attributes:
        pattern_threshold: Observations before a pattern's confidence is
            no longer dampened, and outcomes needed to infer a new pattern.
        similarity_radius: Complexity distance within which past decisions
            count as similar when inferring patterns.
        infer_patterns: Whether outcomes may create learned patterns.
    """

    pattern_threshold: int = Field(default=5, ge=1)
    similarity_radius: float = Field(default=0.1, ge=0.0, le=1.0)
    infer_patterns: bool = True


class PersistenceConfig(BaseModel, frozen=True):
    """Persistence configuration.

    Attributes:
        database_path: Path to the SQLite database (relative to config dir)
        database_url: Full SQLAlchemy URL; overrides database_path when set
    """

    database_path: str = "data/smart-router.db"
    database_url: str | None = None


class RouterConfig(BaseModel, frozen=True):
    """Top-level Smart Router configuration.

    Validates against config.yaml in the Smart Router home directory.

    Attributes:
        scoring: Selector weights and tunables
        bands: Named complexity bands
        candidates: Models the selector may choose, in preference order
        pricing: Price table used to estimate request cost
        analyzer: Task analyzer constants
        quota: Subscription quota settings
        learning: Pattern learning settings
        persistence: Storage configuration
        logging: Logging configuration
    """

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    bands: dict[str, ComplexityBand] = Field(default_factory=dict)
    candidates: list[CandidateModel] = Field(default_factory=list)
    pricing: list[PricingEntry] = Field(default_factory=list)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    learning: LearningConfig = Field(default_factory=LearningConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("pricing")
    @classmethod
    def validate_unique_pricing(cls, v: list[PricingEntry]) -> list[PricingEntry]:
        """Validate that each provider/model pair is priced once."""
        seen: set[tuple[str, str]] = set()
        for entry in v:
            pair = (entry.provider, entry.model)
            if pair in seen:
                msg = f"Duplicate pricing entry for {entry.provider}/{entry.model}"
                raise ValueError(msg)
            seen.add(pair)
        return v

    @model_validator(mode="after")
    def validate_candidate_bands(self) -> "RouterConfig":
        """Validate that every candidate refers to a configured band."""
        for candidate in self.candidates:
            if candidate.band not in self.bands:
                msg = (
                    f"Candidate {candidate.provider}/{candidate.model} refers to "
                    f"unknown band '{candidate.band}'"
                )
                raise ValueError(msg)
        return self


def get_config_dir() -> Path:
    """Get the Smart Router home directory.

    Honors SMART_ROUTER_HOME, otherwise ~/.smart-router.
    """
    env_home = os.environ.get("SMART_ROUTER_HOME", "").strip()
    if env_home:
        return Path(env_home).expanduser()
    return Path.home() / ".smart-router"


def get_default_config() -> RouterConfig:
    """Get the default Smart Router configuration.

    Returns:
        RouterConfig with the stock bands, candidates and pricing.
    """
    return RouterConfig(
        bands={
            "simple": ComplexityBand(min=0.0, max=0.4),
            "moderate": ComplexityBand(min=0.3, max=0.7),
            "complex": ComplexityBand(min=0.6, max=1.0),
        },
        candidates=[
            CandidateModel(provider="openai", model="gpt-4o-mini", band="simple"),
            CandidateModel(provider="anthropic", model="claude-haiku-4-5", band="simple"),
            CandidateModel(provider="openai", model="gpt-4o", band="moderate"),
            CandidateModel(provider="anthropic", model="claude-sonnet-4-5", band="moderate"),
            CandidateModel(provider="anthropic", model="claude-opus-4-5", band="complex"),
        ],
        pricing=[
            PricingEntry(
                provider="openai",
                model="gpt-4o-mini",
                cost_per_1k_prompt=0.00015,
                cost_per_1k_completion=0.0006,
            ),
            PricingEntry(
                provider="anthropic",
                model="claude-haiku-4-5",
                cost_per_1k_prompt=0.001,
                cost_per_1k_completion=0.005,
            ),
            PricingEntry(
                provider="openai",
                model="gpt-4o",
                cost_per_1k_prompt=0.0025,
                cost_per_1k_completion=0.01,
            ),
            PricingEntry(
                provider="anthropic",
                model="claude-sonnet-4-5",
                cost_per_1k_prompt=0.003,
                cost_per_1k_completion=0.015,
            ),
            PricingEntry(
                provider="anthropic",
                model="claude-opus-4-5",
                cost_per_1k_prompt=0.005,
                cost_per_1k_completion=0.025,
            ),
        ],
    )
