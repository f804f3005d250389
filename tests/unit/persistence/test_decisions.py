"""Unit tests for smart_router.persistence.decisions."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from smart_router.core.errors import NotFoundError, PersistenceError
from smart_router.persistence.database import Database
from smart_router.persistence.decisions import DecisionLog
from smart_router.persistence.models import Alternative, DecisionOutcome, RoutingDecision


@pytest.fixture
def log_(db: Database) -> DecisionLog:
    return DecisionLog(db)


def _decision(**overrides: Any) -> RoutingDecision:
    values: dict[str, Any] = {
        "wallet": "0xabc",
        "task_type": "code",
        "complexity_score": 0.45,
        "estimated_tokens": 120,
        "context_length": 300,
        "has_code": True,
        "selected_model": "gpt-4o",
        "selected_provider": "openai",
        "selection_reason": "complexity_match",
        "confidence_score": 0.71,
        "estimated_cost": 0.0009,
        "alternatives": [
            Alternative(
                model="claude-sonnet-4-5",
                provider="anthropic",
                score=0.66,
                estimated_cost=0.0013,
                reason="complexity_match",
            )
        ],
        "score_breakdown": {"complexity_match": 0.9, "total": 0.71},
    }
    values.update(overrides)
    return RoutingDecision(**values)


class TestRecordAndGet:
    def test_round_trip(self, log_: DecisionLog) -> None:
        decision = log_.record_decision(_decision())
        stored = log_.get_decision(decision.id).value
        assert stored.selected_model == "gpt-4o"
        assert stored.alternatives == decision.alternatives
        assert stored.score_breakdown == decision.score_breakdown
        assert stored.outcome is None
        assert stored.outcome_revision == 0

    def test_unknown_id_is_not_found(self, log_: DecisionLog) -> None:
        result = log_.get_decision("missing")
        assert result.is_err
        assert isinstance(result.error, NotFoundError)

    def test_duplicate_id_raises(self, log_: DecisionLog) -> None:
        decision = log_.record_decision(_decision())
        with pytest.raises(PersistenceError):
            log_.record_decision(decision)

    def test_ids_are_unique(self) -> None:
        assert _decision().id != _decision().id


class TestRecordOutcome:
    def test_second_outcome_overwrites_first(self, log_: DecisionLog) -> None:
        decision = log_.record_decision(_decision())
        log_.record_outcome(
            decision.id,
            DecisionOutcome(
                was_successful=False,
                actual_tokens=500,
                actual_cost=0.004,
                response_quality=0.2,
                response_time_ms=900,
            ),
        )
        log_.record_outcome(decision.id, DecisionOutcome(was_successful=True, actual_tokens=450))

        stored = log_.get_decision(decision.id).value
        assert stored.outcome == DecisionOutcome(was_successful=True, actual_tokens=450)
        assert stored.outcome_revision == 2

    def test_first_outcome_has_revision_one(self, log_: DecisionLog) -> None:
        decision = log_.record_decision(_decision())
        updated = log_.record_outcome(decision.id, DecisionOutcome(was_successful=True)).value
        assert updated.outcome_revision == 1
        assert updated.outcome_recorded_at is not None

    def test_unknown_id_is_not_found(self, log_: DecisionLog) -> None:
        result = log_.record_outcome("missing", DecisionOutcome(was_successful=True))
        assert result.is_err
        assert isinstance(result.error, NotFoundError)


class TestSimilarOutcomes:
    def test_filters_by_radius_and_outcome(self, log_: DecisionLog) -> None:
        near = log_.record_decision(_decision(complexity_score=0.5))
        far = log_.record_decision(_decision(complexity_score=0.8))
        pending = log_.record_decision(_decision(complexity_score=0.47))
        other_type = log_.record_decision(_decision(task_type="writing"))
        for d in (near, far, other_type):
            log_.record_outcome(d.id, DecisionOutcome(was_successful=True))

        similar = log_.similar_outcomes("0xabc", "code", 0.45, 0.1)
        assert [d.id for d in similar] == [near.id]
        assert pending.id not in {d.id for d in similar}


class TestStats:
    @pytest.fixture
    def populated(self, log_: DecisionLog) -> DecisionLog:
        a = log_.record_decision(_decision(confidence_score=0.6))
        b = log_.record_decision(_decision(confidence_score=0.8, selected_model="gpt-4o-mini"))
        log_.record_decision(
            _decision(confidence_score=0.7, task_type="writing", selected_model="gpt-4o-mini")
        )
        log_.record_decision(_decision(wallet="0xother"))
        log_.record_outcome(a.id, DecisionOutcome(was_successful=True, actual_cost=0.01))
        log_.record_outcome(b.id, DecisionOutcome(was_successful=False, actual_cost=0.03))
        return log_

    def test_routing_stats(self, populated: DecisionLog) -> None:
        stats = populated.routing_stats("0xabc")
        assert stats.total_decisions == 3
        assert stats.decisions_with_outcome == 2
        assert stats.successful_decisions == 1
        assert stats.success_rate == pytest.approx(0.5)
        assert stats.avg_confidence == pytest.approx(0.7)
        assert stats.total_actual_cost == pytest.approx(0.04)
        assert stats.avg_actual_cost == pytest.approx(0.02)

    def test_routing_stats_all_wallets(self, populated: DecisionLog) -> None:
        assert populated.routing_stats().total_decisions == 4

    def test_empty_stats(self, log_: DecisionLog) -> None:
        stats = log_.routing_stats("0xnobody")
        assert stats.total_decisions == 0
        assert stats.success_rate is None

    def test_since_filter(self, populated: DecisionLog) -> None:
        future = datetime.now(UTC) + timedelta(days=1)
        assert populated.routing_stats("0xabc", since=future).total_decisions == 0

    def test_decisions_by_model(self, populated: DecisionLog) -> None:
        groups = {g.key: g for g in populated.decisions_by_model("0xabc")}
        assert groups["gpt-4o-mini"].decisions == 2
        assert groups["gpt-4o"].decisions == 1
        assert groups["gpt-4o"].success_rate == pytest.approx(1.0)
        assert groups["gpt-4o-mini"].success_rate == pytest.approx(0.0)

    def test_decisions_by_task_type(self, populated: DecisionLog) -> None:
        groups = {g.key: g for g in populated.decisions_by_task_type("0xabc")}
        assert groups["code"].decisions == 2
        assert groups["writing"].decisions == 1
        assert groups["writing"].success_rate is None
