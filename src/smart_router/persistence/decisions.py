"""Decision Log: persisted routing choices and their outcomes.

A decision is written once at selection time. Its outcome arrives later and
is written with last-write-wins semantics: every record_outcome overwrites
the outcome columns and bumps ``outcome_revision`` in the same UPDATE, which
lets callers tell a first outcome from a correction.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Select, case, func, select

from smart_router.core.errors import NotFoundError, PersistenceError
from smart_router.core.types import Result
from smart_router.observability.logging import get_logger
from smart_router.persistence.database import Database
from smart_router.persistence.models import (
    DecisionGroupStats,
    DecisionOutcome,
    RoutingDecision,
    RoutingStats,
    utcnow,
)
from smart_router.persistence.schema import routing_decisions_table

log = get_logger(__name__)

_t = routing_decisions_table
_success_flag = case((_t.c.was_successful.is_(True), 1), else_=0)


def _scoped(stmt: Select[Any], wallet: str | None, since: datetime | None) -> Select[Any]:
    if wallet is not None:
        stmt = stmt.where(_t.c.wallet == wallet)
    if since is not None:
        stmt = stmt.where(_t.c.created_at >= since)
    return stmt


def _ratio(numerator: int | None, denominator: int | None) -> float | None:
    if not denominator:
        return None
    return (numerator or 0) / denominator


class DecisionLog:
    """Persisted RoutingDecision records."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def record_decision(self, decision: RoutingDecision) -> RoutingDecision:
        """Insert a new decision.

        Raises:
            PersistenceError: If the insert fails (including a reused id).
        """
        try:
            with self._db.begin() as conn:
                conn.execute(_t.insert().values(**decision.to_db_dict()))
        except Exception as e:
            raise PersistenceError(
                f"Failed to record decision: {e}",
                operation="insert",
                table="routing_decisions",
                details={"decision_id": decision.id, "wallet": decision.wallet},
            ) from e

        log.info(
            "decision.log.recorded",
            decision_id=decision.id,
            wallet=decision.wallet,
            model=decision.selected_model,
            task_type=decision.task_type,
        )
        return decision

    def get_decision(self, decision_id: str) -> Result[RoutingDecision, NotFoundError]:
        """Look up a decision by id.

        Raises:
            PersistenceError: If the query fails.
        """
        try:
            with self._db.begin() as conn:
                row = conn.execute(select(_t).where(_t.c.id == decision_id)).mappings().first()
        except Exception as e:
            raise PersistenceError(
                f"Failed to read decision: {e}",
                operation="select",
                table="routing_decisions",
                details={"decision_id": decision_id},
            ) from e

        if row is None:
            return Result.err(
                NotFoundError(
                    f"Decision not found: {decision_id}",
                    resource="decision",
                    identifier=decision_id,
                )
            )
        return Result.ok(RoutingDecision.from_row(row))

    def record_outcome(
        self, decision_id: str, outcome: DecisionOutcome
    ) -> Result[RoutingDecision, NotFoundError]:
        """Overwrite the decision's outcome.

        Returns:
            Result with the updated decision (``outcome_revision`` is 1 after
            the first outcome), or NotFoundError for an unknown id.

        Raises:
            PersistenceError: If the update fails.
        """
        try:
            with self._db.begin() as conn:
                result = conn.execute(
                    _t.update()
                    .where(_t.c.id == decision_id)
                    .values(
                        was_successful=outcome.was_successful,
                        actual_tokens=outcome.actual_tokens,
                        actual_cost=outcome.actual_cost,
                        response_quality=outcome.response_quality,
                        response_time_ms=outcome.response_time_ms,
                        outcome_recorded_at=utcnow(),
                        outcome_revision=_t.c.outcome_revision + 1,
                    )
                )
                row = None
                if result.rowcount:
                    row = conn.execute(
                        select(_t).where(_t.c.id == decision_id)
                    ).mappings().one()
        except Exception as e:
            raise PersistenceError(
                f"Failed to record outcome: {e}",
                operation="update",
                table="routing_decisions",
                details={"decision_id": decision_id},
            ) from e

        if row is None:
            return Result.err(
                NotFoundError(
                    f"Decision not found: {decision_id}",
                    resource="decision",
                    identifier=decision_id,
                )
            )

        decision = RoutingDecision.from_row(row)
        log.info(
            "decision.outcome.recorded",
            decision_id=decision_id,
            was_successful=outcome.was_successful,
            revision=decision.outcome_revision,
        )
        return Result.ok(decision)

    def similar_outcomes(
        self, wallet: str, task_type: str, complexity: float, radius: float
    ) -> list[RoutingDecision]:
        """Decisions with an outcome whose complexity is within ``radius``.

        Raises:
            PersistenceError: If the query fails.
        """
        stmt = (
            select(_t)
            .where(_t.c.wallet == wallet)
            .where(_t.c.task_type == task_type)
            .where(_t.c.was_successful.is_not(None))
            .where(_t.c.complexity_score >= complexity - radius)
            .where(_t.c.complexity_score <= complexity + radius)
            .order_by(_t.c.created_at)
        )
        try:
            with self._db.begin() as conn:
                rows = conn.execute(stmt).mappings().all()
        except Exception as e:
            raise PersistenceError(
                f"Failed to query similar decisions: {e}",
                operation="select",
                table="routing_decisions",
                details={"wallet": wallet, "task_type": task_type},
            ) from e
        return [RoutingDecision.from_row(row) for row in rows]

    def recent_decisions(self, wallet: str | None = None, limit: int = 20) -> list[RoutingDecision]:
        """Newest decisions first."""
        stmt = _scoped(select(_t), wallet, None).order_by(_t.c.created_at.desc()).limit(limit)
        try:
            with self._db.begin() as conn:
                rows = conn.execute(stmt).mappings().all()
        except Exception as e:
            raise PersistenceError(
                f"Failed to list decisions: {e}",
                operation="select",
                table="routing_decisions",
                details={"wallet": wallet},
            ) from e
        return [RoutingDecision.from_row(row) for row in rows]

    def routing_stats(
        self, wallet: str | None = None, since: datetime | None = None
    ) -> RoutingStats:
        """Totals over the decisions of one wallet (or all wallets).

        Raises:
            PersistenceError: If the query fails.
        """
        stmt = _scoped(
            select(
                func.count().label("total"),
                func.count(_t.c.was_successful).label("with_outcome"),
                func.sum(_success_flag).label("successful"),
                func.avg(_t.c.confidence_score).label("avg_confidence"),
                func.sum(_t.c.estimated_cost).label("total_estimated_cost"),
                func.sum(_t.c.actual_cost).label("total_actual_cost"),
                func.avg(_t.c.actual_cost).label("avg_actual_cost"),
            ),
            wallet,
            since,
        )
        try:
            with self._db.begin() as conn:
                row = conn.execute(stmt).mappings().one()
        except Exception as e:
            raise PersistenceError(
                f"Failed to compute routing stats: {e}",
                operation="aggregate",
                table="routing_decisions",
                details={"wallet": wallet},
            ) from e

        return RoutingStats(
            total_decisions=row["total"],
            decisions_with_outcome=row["with_outcome"],
            successful_decisions=row["successful"] or 0,
            success_rate=_ratio(row["successful"], row["with_outcome"]),
            avg_confidence=row["avg_confidence"],
            total_estimated_cost=row["total_estimated_cost"] or 0.0,
            total_actual_cost=row["total_actual_cost"] or 0.0,
            avg_actual_cost=row["avg_actual_cost"],
        )

    def _grouped(
        self, column: Any, wallet: str | None, since: datetime | None
    ) -> list[DecisionGroupStats]:
        stmt = _scoped(
            select(
                column.label("key"),
                func.count().label("decisions"),
                func.count(_t.c.was_successful).label("with_outcome"),
                func.sum(_success_flag).label("successful"),
                func.avg(_t.c.confidence_score).label("avg_confidence"),
                func.sum(_t.c.actual_cost).label("total_actual_cost"),
            ),
            wallet,
            since,
        ).group_by(column).order_by(func.count().desc(), column)
        try:
            with self._db.begin() as conn:
                rows = conn.execute(stmt).mappings().all()
        except Exception as e:
            raise PersistenceError(
                f"Failed to group decisions: {e}",
                operation="aggregate",
                table="routing_decisions",
                details={"wallet": wallet, "group_by": column.name},
            ) from e

        return [
            DecisionGroupStats(
                key=row["key"],
                decisions=row["decisions"],
                decisions_with_outcome=row["with_outcome"],
                success_rate=_ratio(row["successful"], row["with_outcome"]),
                avg_confidence=row["avg_confidence"],
                total_actual_cost=row["total_actual_cost"] or 0.0,
            )
            for row in rows
        ]

    def decisions_by_model(
        self, wallet: str | None = None, since: datetime | None = None
    ) -> list[DecisionGroupStats]:
        """Decision counts and success rates per selected model."""
        return self._grouped(_t.c.selected_model, wallet, since)

    def decisions_by_task_type(
        self, wallet: str | None = None, since: datetime | None = None
    ) -> list[DecisionGroupStats]:
        """Decision counts and success rates per task type."""
        return self._grouped(_t.c.task_type, wallet, since)
