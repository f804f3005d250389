"""Model Selector: weighted multi-factor choice among candidate models.

Each configured candidate with known pricing gets four sub-scores in 0.0-1.0:

- complexity_match: 1.0 at the centre of the candidate's band, decaying
  linearly to 0.0 one band-width away from the centre
- budget_constraint: cost efficiency (cheapest unit price / own unit price),
  lifted towards 1.0 in proportion to the wallet's quota headroom
- pattern_match: confidence of the best matching learned pattern, full for
  its recommended model and scaled down for the others; 0.0 without a match
- performance: historical success rate (averaged with quality when reported)
  for this wallet and task type; a neutral 0.5 without history

The weighted sum is the candidate's total. The highest total wins; ties go to
the lower estimated cost for this request, then to configuration order.

Usage:
    selector = ModelSelector(config, patterns=pattern_store, performance=tracker)
    result = selector.select_model(analysis, wallet="0xabc")
    if result.is_ok:
        print(result.value.model, result.value.reason)
"""

from dataclasses import dataclass, field

from smart_router.config.models import CandidateModel, ComplexityBand, PricingEntry, RouterConfig
from smart_router.core.errors import ConfigError
from smart_router.core.types import Result, clamp_unit
from smart_router.observability.logging import get_logger
from smart_router.persistence.models import Alternative, Pattern, PatternQuery
from smart_router.persistence.patterns import PatternStore
from smart_router.persistence.performance import PerformanceTracker
from smart_router.routing.analyzer import TaskAnalysis
from smart_router.routing.pricing import PricingTable

log = get_logger(__name__)

SUB_SCORES = ("complexity_match", "budget_constraint", "pattern_match", "performance")


@dataclass(frozen=True, slots=True)
class CandidateScore:
    """Sub-scores and total of one candidate for one request."""

    candidate: CandidateModel
    estimated_cost: float
    unit_cost: float
    complexity_match: float
    budget_constraint: float
    pattern_match: float
    performance: float
    total: float
    contributions: dict[str, float] = field(default_factory=dict)

    @property
    def model(self) -> str:
        return self.candidate.model

    @property
    def provider(self) -> str:
        return self.candidate.provider

    @property
    def reason(self) -> str:
        """Name of the sub-score with the largest weighted contribution."""
        return max(SUB_SCORES, key=lambda name: self.contributions.get(name, 0.0))

    def breakdown(self) -> dict[str, float]:
        return {
            "complexity_match": self.complexity_match,
            "budget_constraint": self.budget_constraint,
            "pattern_match": self.pattern_match,
            "performance": self.performance,
            "total": self.total,
        }


@dataclass(frozen=True, slots=True)
class Selection:
    """The selector's answer for one request.

    Attributes:
        model: Selected model identifier.
        provider: Provider of the selected model.
        reason: Sub-score with the largest weighted contribution.
        confidence: Total score of the winner, 0.0-1.0.
        estimated_cost: Estimated USD cost of the request on the winner.
        score_breakdown: Raw sub-scores and total of the winner.
        alternatives: Every other candidate, best first.
        pattern_id: The matched pattern, if one contributed.
    """

    model: str
    provider: str
    reason: str
    confidence: float
    estimated_cost: float
    score_breakdown: dict[str, float]
    alternatives: list[Alternative]
    pattern_id: str | None = None


def complexity_match(complexity: float, band: ComplexityBand) -> float:
    """Similarity of ``complexity`` to the centre of ``band``."""
    distance = abs(complexity - band.center)
    width = band.max - band.min
    if width <= 0:
        return 1.0 if distance == 0 else 0.0
    return max(0.0, 1.0 - distance / width)


class ModelSelector:
    """Scores every priced candidate and picks the best one.

    The pattern store and performance tracker are optional; without them the
    pattern score is 0.0 and the performance score is neutral.
    """

    def __init__(
        self,
        config: RouterConfig,
        *,
        patterns: PatternStore | None = None,
        performance: PerformanceTracker | None = None,
    ) -> None:
        self._config = config
        self._pricing = PricingTable(config.pricing)
        self._patterns = patterns
        self._performance = performance

    @property
    def pricing(self) -> PricingTable:
        return self._pricing

    def _find_pattern(self, analysis: TaskAnalysis, wallet: str) -> Pattern | None:
        if self._patterns is None:
            return None
        result = self._patterns.get_pattern(
            PatternQuery.point(
                wallet,
                analysis.task_type.value,
                analysis.complexity_score,
                analysis.context_length,
            )
        )
        return result.value if result.is_ok else None

    def _pattern_score(self, candidate: CandidateModel, pattern: Pattern | None) -> float:
        if pattern is None:
            return 0.0
        if (candidate.provider, candidate.model) == (
            pattern.recommended_provider,
            pattern.recommended_model,
        ):
            return pattern.confidence
        return pattern.confidence * self._config.scoring.non_recommended_pattern_factor

    def _performance_score(self, candidate: CandidateModel, analysis: TaskAnalysis, wallet: str) -> float:
        neutral = self._config.scoring.neutral_performance
        if self._performance is None:
            return neutral
        perf = self._performance.get_model_performance(
            wallet, candidate.model, analysis.task_type.value
        )
        if not perf.has_history:
            return neutral
        if perf.quality_samples:
            return clamp_unit((perf.success_rate + perf.avg_quality) / 2)
        return clamp_unit(perf.success_rate)

    def _priced_candidates(self) -> list[tuple[CandidateModel, PricingEntry]]:
        priced = []
        for candidate in self._config.candidates:
            entry = self._pricing.lookup(candidate.provider, candidate.model)
            if entry is None:
                log.warning(
                    "selector.candidate.skipped",
                    provider=candidate.provider,
                    model=candidate.model,
                    reason="no_pricing",
                )
                continue
            priced.append((candidate, entry))
        return priced

    def score_candidates(
        self,
        analysis: TaskAnalysis,
        wallet: str,
        *,
        quota_headroom: float = 0.0,
    ) -> Result[tuple[list[CandidateScore], Pattern | None], ConfigError]:
        """Score every priced candidate, best first.

        Args:
            analysis: Output of the task analyzer.
            wallet: Wallet the request belongs to.
            quota_headroom: Share of the wallet's allowance still unused
                (1.0 for unlimited wallets).

        Returns:
            Result with the ranked scores and the matched pattern, or
            ConfigError when no candidate is configured or priced.
        """
        if not self._config.candidates:
            return Result.err(
                ConfigError("No candidate models configured", config_key="candidates")
            )
        priced = self._priced_candidates()
        if not priced:
            return Result.err(
                ConfigError(
                    "Pricing is unavailable for every configured candidate",
                    config_key="pricing",
                    details={"candidates": [c.model for c in self._config.candidates]},
                )
            )

        scoring = self._config.scoring
        weights = scoring.weights.as_dict()
        ratio = scoring.completion_token_ratio
        headroom = clamp_unit(quota_headroom)
        tokens = analysis.estimated_tokens
        pattern = self._find_pattern(analysis, wallet)

        unit_costs = [
            PricingTable.estimate_cost(entry, 1000, round(1000 * ratio)) for _, entry in priced
        ]
        cheapest = min(unit_costs)

        scores: list[tuple[CandidateScore, int]] = []
        for index, ((candidate, entry), unit_cost) in enumerate(zip(priced, unit_costs, strict=True)):
            efficiency = 1.0 if unit_cost <= 0 else cheapest / unit_cost
            sub_scores = {
                "complexity_match": complexity_match(
                    analysis.complexity_score, self._config.bands[candidate.band]
                ),
                "budget_constraint": clamp_unit(
                    efficiency + (1.0 - efficiency) * headroom * scoring.budget_relief
                ),
                "pattern_match": clamp_unit(self._pattern_score(candidate, pattern)),
                "performance": self._performance_score(candidate, analysis, wallet),
            }
            contributions = {name: weights[name] * sub_scores[name] for name in SUB_SCORES}
            scores.append(
                (
                    CandidateScore(
                        candidate=candidate,
                        estimated_cost=PricingTable.estimate_cost(
                            entry, tokens, round(tokens * ratio)
                        ),
                        unit_cost=unit_cost,
                        total=clamp_unit(sum(contributions.values())),
                        contributions=contributions,
                        **sub_scores,
                    ),
                    index,
                )
            )

        # Totals are compared at 1e-9 so float noise does not hide a tie
        scores.sort(
            key=lambda pair: (
                -round(pair[0].total, 9),
                pair[0].estimated_cost,
                pair[0].unit_cost,
                pair[1],
            )
        )
        return Result.ok(([score for score, _ in scores], pattern))

    def select_model(
        self,
        analysis: TaskAnalysis,
        wallet: str,
        *,
        quota_headroom: float = 0.0,
    ) -> Result[Selection, ConfigError]:
        """Pick the best candidate for a request.

        Returns:
            Result with the Selection, or ConfigError when no candidate is
            configured or none has pricing.
        """
        scored = self.score_candidates(analysis, wallet, quota_headroom=quota_headroom)
        if scored.is_err:
            log.error("selector.config.invalid", error=str(scored.error))
            return Result.err(scored.error)

        ranked, pattern = scored.value
        winner = ranked[0]
        selection = Selection(
            model=winner.model,
            provider=winner.provider,
            reason=winner.reason,
            confidence=winner.total,
            estimated_cost=winner.estimated_cost,
            score_breakdown=winner.breakdown(),
            alternatives=[
                Alternative(
                    model=other.model,
                    provider=other.provider,
                    score=other.total,
                    estimated_cost=other.estimated_cost,
                    reason=other.reason,
                )
                for other in ranked[1:]
            ],
            pattern_id=pattern.id if pattern is not None else None,
        )

        log.info(
            "selector.model.selected",
            wallet=wallet,
            model=selection.model,
            provider=selection.provider,
            reason=selection.reason,
            confidence=selection.confidence,
            task_type=analysis.task_type.value,
            complexity_score=analysis.complexity_score,
            candidate_count=len(ranked),
        )
        return Result.ok(selection)
