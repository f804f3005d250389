"""Performance Tracker: rolling outcome aggregates per wallet, model and task type.

Each outcome is folded in with the incremental mean

    new_average = old_average + (value - old_average) / new_count

evaluated inside a single UPDATE, so the SET clause reads the pre-update
column values and two racing outcomes both land.
"""

from typing import Any

from sqlalchemy import ColumnElement, Float, cast, literal, select

from smart_router.core.errors import PersistenceError
from smart_router.core.types import clamp_unit
from smart_router.observability.logging import get_logger
from smart_router.persistence.database import Database
from smart_router.persistence.models import DecisionOutcome, ModelPerformance, utcnow
from smart_router.persistence.schema import model_performance_table

log = get_logger(__name__)


def _running_mean(
    avg_col: ColumnElement[Any], samples_col: ColumnElement[Any], value: float
) -> ColumnElement[Any]:
    return avg_col + (literal(value) - avg_col) / cast(samples_col + 1, Float)


class PerformanceTracker:
    """Persisted ModelPerformance aggregates."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def update_model_performance(
        self,
        wallet: str,
        model: str,
        provider: str,
        task_type: str,
        outcome: DecisionOutcome,
    ) -> ModelPerformance:
        """Fold one outcome into the aggregate for (wallet, model, task_type).

        The row is created on first use. success_rate is the running mean of
        success as 1/0; cost, quality and latency means only count outcomes
        that reported them.

        Raises:
            PersistenceError: If the upsert fails.
        """
        t = model_performance_table
        key = (t.c.wallet == wallet) & (t.c.model == model) & (t.c.task_type == task_type)
        success_value = 1.0 if outcome.was_successful else 0.0

        values: dict[str, Any] = {
            "provider": provider,
            "total_requests": t.c.total_requests + 1,
            "success_count": t.c.success_count + (1 if outcome.was_successful else 0),
            "success_rate": _running_mean(t.c.success_rate, t.c.total_requests, success_value),
            "updated_at": utcnow(),
        }
        if outcome.actual_cost is not None:
            values["avg_cost"] = _running_mean(t.c.avg_cost, t.c.cost_samples, outcome.actual_cost)
            values["cost_samples"] = t.c.cost_samples + 1
        if outcome.response_quality is not None:
            values["avg_quality"] = _running_mean(
                t.c.avg_quality, t.c.quality_samples, clamp_unit(outcome.response_quality)
            )
            values["quality_samples"] = t.c.quality_samples + 1
        if outcome.response_time_ms is not None:
            values["avg_latency_ms"] = _running_mean(
                t.c.avg_latency_ms, t.c.latency_samples, float(outcome.response_time_ms)
            )
            values["latency_samples"] = t.c.latency_samples + 1

        try:
            with self._db.begin() as conn:
                conn.execute(
                    self._db.insert_ignore(t).values(
                        wallet=wallet,
                        model=model,
                        task_type=task_type,
                        provider=provider,
                        updated_at=utcnow(),
                    )
                )
                conn.execute(t.update().where(key).values(**values))
                row = conn.execute(select(t).where(key)).mappings().one()
        except Exception as e:
            raise PersistenceError(
                f"Failed to update model performance: {e}",
                operation="upsert",
                table="model_performance",
                details={"wallet": wallet, "model": model, "task_type": task_type},
            ) from e

        performance = ModelPerformance.from_row(row)
        log.debug(
            "performance.aggregate.updated",
            wallet=wallet,
            model=model,
            task_type=task_type,
            total_requests=performance.total_requests,
            success_rate=performance.success_rate,
        )
        return performance

    def get_model_performance(self, wallet: str, model: str, task_type: str) -> ModelPerformance:
        """Return the aggregate, or a neutral default for an unseen key.

        Raises:
            PersistenceError: If the query fails.
        """
        t = model_performance_table
        try:
            with self._db.begin() as conn:
                row = conn.execute(
                    select(t)
                    .where(t.c.wallet == wallet)
                    .where(t.c.model == model)
                    .where(t.c.task_type == task_type)
                ).mappings().first()
        except Exception as e:
            raise PersistenceError(
                f"Failed to read model performance: {e}",
                operation="select",
                table="model_performance",
                details={"wallet": wallet, "model": model, "task_type": task_type},
            ) from e

        if row is None:
            return ModelPerformance.neutral(wallet, model, task_type)
        return ModelPerformance.from_row(row)

    def list_model_performance(self, wallet: str) -> list[ModelPerformance]:
        """All aggregates for a wallet, most used first."""
        t = model_performance_table
        try:
            with self._db.begin() as conn:
                rows = conn.execute(
                    select(t)
                    .where(t.c.wallet == wallet)
                    .order_by(t.c.total_requests.desc(), t.c.model)
                ).mappings().all()
        except Exception as e:
            raise PersistenceError(
                f"Failed to list model performance: {e}",
                operation="select",
                table="model_performance",
                details={"wallet": wallet},
            ) from e
        return [ModelPerformance.from_row(row) for row in rows]
