"""Pattern learning from decision outcomes.

When an outcome arrives for a decision, the learner credits the pattern that
covers it (only if the decision used that pattern's recommended model).
When no pattern covers it, the learner looks at the wallet's past decisions of
the same task type with similar complexity; once one model has at least
``pattern_threshold`` outcomes there and more successes than failures, it
becomes a learned pattern spanning what was observed. Later nearby decisions
widen that pattern rather than starting another one.
"""

from collections import defaultdict
from dataclasses import dataclass, field

from smart_router.config.models import LearningConfig
from smart_router.observability.logging import get_logger
from smart_router.persistence.decisions import DecisionLog
from smart_router.persistence.models import (
    Pattern,
    PatternQuery,
    PatternSpec,
    PatternType,
    RoutingDecision,
)
from smart_router.persistence.patterns import PatternStore

log = get_logger(__name__)


@dataclass
class _ModelTally:
    successes: int = 0
    failures: int = 0
    complexities: list[float] = field(default_factory=list)
    context_lengths: list[int] = field(default_factory=list)

    @property
    def observations(self) -> int:
        return self.successes + self.failures

    @property
    def success_rate(self) -> float:
        return self.successes / self.observations if self.observations else 0.0


class PatternLearner:
    """Feeds decision outcomes back into the Pattern Store."""

    def __init__(
        self,
        decisions: DecisionLog,
        patterns: PatternStore,
        config: LearningConfig | None = None,
    ) -> None:
        self._decisions = decisions
        self._patterns = patterns
        self._config = config or LearningConfig()

    def _covering_pattern(self, decision: RoutingDecision) -> Pattern | None:
        if decision.pattern_id is not None:
            by_id = self._patterns.get_pattern_by_id(decision.pattern_id)
            if by_id.is_ok:
                return by_id.value
        found = self._patterns.get_pattern(
            PatternQuery.point(
                decision.wallet,
                decision.task_type,
                decision.complexity_score,
                decision.context_length,
            )
        )
        return found.value if found.is_ok else None

    def observe(self, decision: RoutingDecision) -> Pattern | None:
        """Apply a decision's outcome to the patterns.

        Returns:
            The updated or newly learned pattern, or None if nothing changed.
        """
        if decision.outcome is None:
            return None
        outcome = decision.outcome

        pattern = self._covering_pattern(decision)
        if pattern is not None:
            if (pattern.recommended_provider, pattern.recommended_model) != (
                decision.selected_provider,
                decision.selected_model,
            ):
                return None
            result = self._patterns.update_pattern_stats(
                pattern.id,
                outcome.was_successful,
                cost=outcome.actual_cost,
                quality=outcome.response_quality,
            )
            return result.value if result.is_ok else None

        if not self._config.infer_patterns:
            return None
        return self.infer_pattern(decision)

    def infer_pattern(self, decision: RoutingDecision) -> Pattern | None:
        """Learn a pattern from decisions similar to ``decision``.

        When the winning model already has a learned pattern within the
        similarity radius, that pattern is widened over the decision instead
        of learning an overlapping one.

        Returns:
            The new or widened pattern, or None while no model has enough
            evidence.
        """
        similar = self._decisions.similar_outcomes(
            decision.wallet,
            decision.task_type,
            decision.complexity_score,
            self._config.similarity_radius,
        )

        tallies: dict[tuple[str, str], _ModelTally] = defaultdict(_ModelTally)
        for past in similar:
            if past.outcome is None:
                continue
            tally = tallies[(past.selected_provider, past.selected_model)]
            if past.outcome.was_successful:
                tally.successes += 1
            else:
                tally.failures += 1
            tally.complexities.append(past.complexity_score)
            tally.context_lengths.append(past.context_length)

        eligible = [
            (key, tally)
            for key, tally in tallies.items()
            if tally.observations >= self._config.pattern_threshold
            and tally.successes > tally.failures
        ]
        if not eligible:
            return None

        (provider, model), tally = max(
            eligible, key=lambda item: (item[1].success_rate, item[1].observations)
        )

        nearby = self._patterns.find_learned_pattern(
            decision.wallet,
            decision.task_type,
            provider,
            model,
            decision.complexity_score,
            self._config.similarity_radius,
        )
        if nearby.is_ok:
            return self._extend(nearby.value, decision)

        complexities = [*tally.complexities, decision.complexity_score]
        contexts = [*tally.context_lengths, decision.context_length]

        created = self._patterns.create_pattern(
            PatternSpec(
                wallet=decision.wallet,
                task_type=decision.task_type,
                complexity_min=min(complexities),
                complexity_max=max(complexities),
                context_min=min(contexts),
                context_max=max(contexts),
                recommended_model=model,
                recommended_provider=provider,
                pattern_type=PatternType.LEARNED,
                description=(
                    f"Learned from {tally.observations} {decision.task_type} decisions "
                    f"({tally.successes} successful)"
                ),
                success_count=tally.successes,
                failure_count=tally.failures,
            )
        )
        if created.is_err:
            log.warning("pattern.learner.rejected", error=str(created.error))
            return None

        log.info(
            "pattern.learner.inferred",
            pattern_id=created.value.id,
            wallet=decision.wallet,
            task_type=decision.task_type,
            model=model,
            observations=tally.observations,
        )
        return created.value

    def _extend(self, pattern: Pattern, decision: RoutingDecision) -> Pattern | None:
        """Grow a learned pattern over ``decision`` and credit its outcome only.

        The outcomes the pattern was seeded with are already counted, so
        only the new decision is added.
        """
        outcome = decision.outcome
        if outcome is None:
            return None
        widened = self._patterns.widen_pattern(
            pattern.id, decision.complexity_score, decision.context_length
        )
        if widened.is_err:
            return None
        if (pattern.recommended_provider, pattern.recommended_model) != (
            decision.selected_provider,
            decision.selected_model,
        ):
            return widened.value

        updated = self._patterns.update_pattern_stats(
            pattern.id,
            outcome.was_successful,
            cost=outcome.actual_cost,
            quality=outcome.response_quality,
        )
        if updated.is_err:
            return None
        log.info(
            "pattern.learner.extended",
            pattern_id=pattern.id,
            wallet=decision.wallet,
            task_type=decision.task_type,
            observations=updated.value.observations,
        )
        return updated.value
