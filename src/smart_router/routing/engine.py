"""SmartRouter: the decision engine facade.

Wires the analyzer, selector, quota gate, stores and learner from one
RouterConfig (or a ConfigRegistry) and one Database, and closes the feedback
loop: the first outcome recorded for a decision updates the model's
performance aggregate and the covering pattern (or infers a new one).
Corrections (later outcomes for the same decision) only overwrite the stored
outcome.

Usage:
    router = SmartRouter.open(ConfigRegistry.from_file())

    result = router.route("Fix this error: ...", context=logs, wallet="0xabc")
    if result.is_ok:
        routed = result.value
        ...  # call routed.selection.model
        router.record_outcome(routed.decision.id, DecisionOutcome(was_successful=True))
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from smart_router.config.loader import resolve_database_url
from smart_router.config.models import RouterConfig
from smart_router.config.registry import ConfigRegistry
from smart_router.core.errors import (
    ConfigError,
    NotFoundError,
    QuotaExceededError,
    SmartRouterError,
    ValidationError,
)
from smart_router.core.types import Result
from smart_router.observability.logging import bind_context, get_logger, unbind_context
from smart_router.persistence.database import Database
from smart_router.persistence.decisions import DecisionLog
from smart_router.persistence.models import (
    DecisionGroupStats,
    DecisionOutcome,
    ModelPerformance,
    Pattern,
    PatternQuery,
    PatternSpec,
    RoutingDecision,
    RoutingStats,
    Tier,
    utcnow,
)
from smart_router.persistence.patterns import PatternStore
from smart_router.persistence.performance import PerformanceTracker
from smart_router.persistence.quotas import QuotaStore
from smart_router.routing.analyzer import TaskAnalysis, TaskAnalyzer
from smart_router.routing.learning import PatternLearner
from smart_router.routing.quota import Clock, QuotaAvailability, QuotaGate, QuotaStatus
from smart_router.routing.selector import ModelSelector, Selection

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RoutedRequest:
    """Everything ``route`` produced for one request."""

    analysis: TaskAnalysis
    selection: Selection
    decision: RoutingDecision
    quota: QuotaStatus


@dataclass(frozen=True, slots=True)
class _Components:
    generation: int
    config: RouterConfig
    analyzer: TaskAnalyzer
    selector: ModelSelector
    gate: QuotaGate
    patterns: PatternStore
    learner: PatternLearner


class SmartRouter:
    """Entry point for callers of the routing core."""

    def __init__(
        self,
        config: RouterConfig | ConfigRegistry,
        db: Database,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._registry = config if isinstance(config, ConfigRegistry) else ConfigRegistry(config)
        self._db = db
        self._clock = clock
        self._decisions = DecisionLog(db)
        self._performance = PerformanceTracker(db)
        self._components = self._build(self._registry.generation, self._registry.current)

    @classmethod
    def open(
        cls,
        config: RouterConfig | ConfigRegistry,
        *,
        database_url: str | None = None,
        clock: Clock = utcnow,
    ) -> "SmartRouter":
        """Create the database for ``config`` and return a ready router.

        Raises:
            PersistenceError: If the database cannot be initialized.
        """
        snapshot = config.current if isinstance(config, ConfigRegistry) else config
        db = Database(database_url or resolve_database_url(snapshot))
        db.initialize()
        return cls(config, db, clock=clock)

    def _build(self, generation: int, config: RouterConfig) -> _Components:
        patterns = PatternStore(self._db, threshold=config.learning.pattern_threshold)
        return _Components(
            generation=generation,
            config=config,
            analyzer=TaskAnalyzer(config.analyzer),
            selector=ModelSelector(config, patterns=patterns, performance=self._performance),
            gate=QuotaGate(
                QuotaStore(self._db, free_daily_limit=config.quota.free_daily_limit),
                free_daily_limit=config.quota.free_daily_limit,
                clock=self._clock,
            ),
            patterns=patterns,
            learner=PatternLearner(self._decisions, patterns, config.learning),
        )

    def _current(self) -> _Components:
        # A reload swaps the snapshot; calls already running keep the old one
        components = self._components
        if components.generation != self._registry.generation:
            components = self._build(self._registry.generation, self._registry.current)
            self._components = components
            log.info("router.config.applied", generation=components.generation)
        return components

    @property
    def config(self) -> RouterConfig:
        return self._current().config

    @property
    def registry(self) -> ConfigRegistry:
        return self._registry

    @property
    def database(self) -> Database:
        return self._db

    # Analysis and selection

    def analyze_task(self, prompt: str | None, context: str | None = None) -> TaskAnalysis:
        return self._current().analyzer.analyze(prompt, context)

    def select_model(self, analysis: TaskAnalysis, wallet: str) -> Result[Selection, ConfigError]:
        """Select a model; the wallet's quota headroom feeds the budget score."""
        components = self._current()
        headroom = components.gate.check_quota_available(wallet).headroom
        return components.selector.select_model(analysis, wallet, quota_headroom=headroom)

    # Decision log

    def build_decision(
        self, analysis: TaskAnalysis, selection: Selection, wallet: str
    ) -> RoutingDecision:
        """Combine an analysis and a selection into an unsaved decision."""
        return RoutingDecision(
            wallet=wallet,
            task_type=analysis.task_type.value,
            complexity_score=analysis.complexity_score,
            estimated_tokens=analysis.estimated_tokens,
            context_length=analysis.context_length,
            has_code=analysis.has_code,
            has_errors=analysis.has_errors,
            has_data=analysis.has_data,
            selected_model=selection.model,
            selected_provider=selection.provider,
            selection_reason=selection.reason,
            confidence_score=selection.confidence,
            estimated_cost=selection.estimated_cost,
            alternatives=selection.alternatives,
            score_breakdown=selection.score_breakdown,
            pattern_id=selection.pattern_id,
            created_at=self._clock(),
        )

    def record_decision(self, decision: RoutingDecision) -> RoutingDecision:
        return self._decisions.record_decision(decision)

    def get_decision(self, decision_id: str) -> Result[RoutingDecision, NotFoundError]:
        return self._decisions.get_decision(decision_id)

    def record_outcome(
        self, decision_id: str, outcome: DecisionOutcome
    ) -> Result[RoutingDecision, NotFoundError]:
        """Overwrite a decision's outcome and, the first time, learn from it.

        The outcome write and its performance and pattern feedback share one
        transaction. If feedback fails, the outcome is rolled back with it and
        a retried call is again the first outcome.
        """
        with self._db.begin():
            result = self._decisions.record_outcome(decision_id, outcome)
            if result.is_err:
                return result

            decision = result.value
            if decision.outcome_revision == 1:
                self._performance.update_model_performance(
                    decision.wallet,
                    decision.selected_model,
                    decision.selected_provider,
                    decision.task_type,
                    outcome,
                )
                self._current().learner.observe(decision)
            else:
                log.info(
                    "decision.outcome.corrected",
                    decision_id=decision_id,
                    revision=decision.outcome_revision,
                )
        return result

    def recent_decisions(self, wallet: str | None = None, limit: int = 20) -> list[RoutingDecision]:
        return self._decisions.recent_decisions(wallet, limit)

    def routing_stats(self, wallet: str | None = None, since: datetime | None = None) -> RoutingStats:
        return self._decisions.routing_stats(wallet, since)

    def decisions_by_model(
        self, wallet: str | None = None, since: datetime | None = None
    ) -> list[DecisionGroupStats]:
        return self._decisions.decisions_by_model(wallet, since)

    def decisions_by_task_type(
        self, wallet: str | None = None, since: datetime | None = None
    ) -> list[DecisionGroupStats]:
        return self._decisions.decisions_by_task_type(wallet, since)

    # Quota gate

    def get_quota(self, wallet: str) -> QuotaStatus:
        return self._current().gate.get_quota(wallet)

    def check_quota_available(self, wallet: str) -> QuotaAvailability:
        return self._current().gate.check_quota_available(wallet)

    def increment_decision_count(self, wallet: str) -> QuotaStatus:
        return self._current().gate.increment_decision_count(wallet)

    def update_agent_tier(
        self, wallet: str, tier: Tier | str, paid_until: datetime | None = None
    ) -> QuotaStatus:
        return self._current().gate.update_agent_tier(wallet, tier, paid_until)

    # Patterns

    def create_pattern(
        self, spec: PatternSpec | dict[str, Any]
    ) -> Result[Pattern, ValidationError]:
        return self._current().patterns.create_pattern(spec)

    def get_pattern(self, query: PatternQuery) -> Result[Pattern, NotFoundError]:
        return self._current().patterns.get_pattern(query)

    def update_pattern_stats(
        self,
        pattern_id: str,
        success: bool,
        cost: float | None = None,
        quality: float | None = None,
    ) -> Result[Pattern, NotFoundError]:
        return self._current().patterns.update_pattern_stats(pattern_id, success, cost, quality)

    def list_patterns(self, wallet: str | None = None, task_type: str | None = None) -> list[Pattern]:
        return self._current().patterns.list_patterns(wallet, task_type)

    # Performance

    def update_model_performance(
        self,
        wallet: str,
        model: str,
        provider: str,
        task_type: str,
        outcome: DecisionOutcome,
    ) -> ModelPerformance:
        return self._performance.update_model_performance(wallet, model, provider, task_type, outcome)

    def get_model_performance(self, wallet: str, model: str, task_type: str) -> ModelPerformance:
        return self._performance.get_model_performance(wallet, model, task_type)

    def list_model_performance(self, wallet: str) -> list[ModelPerformance]:
        return self._performance.list_model_performance(wallet)

    # Convenience

    def route(
        self, prompt: str | None, context: str | None = None, *, wallet: str
    ) -> Result[RoutedRequest, SmartRouterError]:
        """Analyze, gate, select, record and count one request.

        Returns:
            Result with the RoutedRequest, QuotaExceededError when the wallet
            has no decisions left today, or ConfigError from the selector.

        Raises:
            PersistenceError: If any storage operation fails.
        """
        components = self._current()
        bind_context(wallet=wallet)
        try:
            analysis = components.analyzer.analyze(prompt, context)
            availability = components.gate.check_quota_available(wallet)
            if not availability.available:
                log.warning(
                    "router.quota.exhausted",
                    tier=availability.tier.value,
                    decisions_limit=availability.decisions_limit,
                )
                return Result.err(
                    QuotaExceededError(
                        f"Daily decision limit reached for wallet {wallet}",
                        wallet=wallet,
                        limit=availability.decisions_limit,
                    )
                )

            selected = components.selector.select_model(
                analysis, wallet, quota_headroom=availability.headroom
            )
            if selected.is_err:
                return Result.err(selected.error)

            decision = self.record_decision(
                self.build_decision(analysis, selected.value, wallet)
            )
            quota = components.gate.increment_decision_count(wallet)
            log.info(
                "router.request.routed",
                decision_id=decision.id,
                model=decision.selected_model,
                task_type=decision.task_type,
            )
            return Result.ok(
                RoutedRequest(
                    analysis=analysis,
                    selection=selected.value,
                    decision=decision,
                    quota=quota,
                )
            )
        finally:
            unbind_context("wallet")

    def close(self) -> None:
        self._db.close()
