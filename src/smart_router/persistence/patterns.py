"""Pattern Store: wallet-scoped, range-scoped model recommendations.

A pattern says "for this wallet's tasks of this type, within this complexity
(and optionally context-length) range, model X has worked". Its confidence is
the success ratio dampened for small samples:

    n = success_count + failure_count
    confidence = success_count / max(n, threshold)

which equals the raw ratio once n >= threshold and raw * (n / threshold)
below it. Statistics are updated with one UPDATE that recomputes the
confidence from the stored counts, so racing outcomes never lose a count.
"""

from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import ColumnElement, Float, and_, case, cast, literal, or_, select

from smart_router.core.errors import NotFoundError, PersistenceError, ValidationError
from smart_router.core.types import Result, clamp_unit
from smart_router.observability.logging import get_logger
from smart_router.persistence.database import Database
from smart_router.persistence.models import (
    KeywordList,
    Pattern,
    PatternQuery,
    PatternSpec,
    PatternType,
    utcnow,
)
from smart_router.persistence.schema import patterns_table

log = get_logger(__name__)


def pattern_confidence(success_count: int, failure_count: int, threshold: int) -> float:
    """Success ratio dampened linearly below ``threshold`` observations."""
    n = success_count + failure_count
    if n == 0:
        return 0.0
    return clamp_unit(success_count / max(n, threshold))


def _confidence_expr(
    success_expr: ColumnElement[Any], total_expr: ColumnElement[Any], threshold: int
) -> ColumnElement[Any]:
    return case(
        (total_expr >= threshold, cast(success_expr, Float) / cast(total_expr, Float)),
        else_=cast(success_expr, Float) / float(threshold),
    )


class PatternStore:
    """Persisted patterns with atomic statistics updates."""

    def __init__(self, db: Database, *, threshold: int = 5) -> None:
        self._db = db
        self._threshold = threshold

    @property
    def threshold(self) -> int:
        return self._threshold

    def create_pattern(
        self, spec: PatternSpec | Mapping[str, Any]
    ) -> Result[Pattern, ValidationError]:
        """Insert a new pattern.

        Args:
            spec: A PatternSpec, or a mapping validated into one.

        Returns:
            Result with the stored Pattern, or ValidationError when the
            wallet, task type or ranges are missing or inconsistent.

        Raises:
            PersistenceError: If the insert fails.
        """
        if not isinstance(spec, PatternSpec):
            try:
                spec = PatternSpec.model_validate(dict(spec))
            except PydanticValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(x) for x in first["loc"]) or None
                return Result.err(
                    ValidationError(
                        f"Invalid pattern: {first['msg']}",
                        field=field,
                        details={"error_count": e.error_count()},
                    )
                )

        now = utcnow()
        pattern_id = str(uuid4())
        row = {
            "id": pattern_id,
            "wallet": spec.wallet,
            "pattern_type": spec.pattern_type.value,
            "description": spec.description,
            "task_type": spec.task_type,
            "complexity_min": spec.complexity_min,
            "complexity_max": spec.complexity_max,
            "context_min": spec.context_min,
            "context_max": spec.context_max,
            "keywords": KeywordList.dump_python(spec.keywords, mode="json"),
            "recommended_model": spec.recommended_model,
            "recommended_provider": spec.recommended_provider,
            "success_count": spec.success_count,
            "failure_count": spec.failure_count,
            "confidence": pattern_confidence(
                spec.success_count, spec.failure_count, self._threshold
            ),
            "created_at": now,
            "updated_at": now,
        }
        try:
            with self._db.begin() as conn:
                conn.execute(patterns_table.insert().values(**row))
                stored = conn.execute(
                    select(patterns_table).where(patterns_table.c.id == pattern_id)
                ).mappings().one()
        except Exception as e:
            raise PersistenceError(
                f"Failed to create pattern: {e}",
                operation="insert",
                table="patterns",
                details={"wallet": spec.wallet, "task_type": spec.task_type},
            ) from e

        log.info(
            "pattern.store.created",
            pattern_id=pattern_id,
            wallet=spec.wallet,
            task_type=spec.task_type,
            pattern_type=spec.pattern_type.value,
            recommended_model=spec.recommended_model,
        )
        return Result.ok(Pattern.from_row(stored))

    def get_pattern(self, query: PatternQuery) -> Result[Pattern, NotFoundError]:
        """Return the best pattern covering ``query``.

        A pattern matches when its complexity range contains the query's
        complexity midpoint and, if the query carries a context range, its
        context range overlaps it (patterns without context bounds match any
        context). Ties go to more observations, then the newest pattern.

        Raises:
            PersistenceError: If the query fails.
        """
        t = patterns_table
        midpoint = query.complexity_midpoint
        stmt = (
            select(t)
            .where(t.c.wallet == query.wallet)
            .where(t.c.task_type == query.task_type)
            .where(t.c.complexity_min <= midpoint)
            .where(t.c.complexity_max >= midpoint)
        )
        if query.context_min is not None:
            stmt = stmt.where(
                or_(
                    t.c.context_min.is_(None),
                    and_(t.c.context_min <= query.context_max, t.c.context_max >= query.context_min),
                )
            )
        stmt = stmt.order_by(
            t.c.confidence.desc(),
            (t.c.success_count + t.c.failure_count).desc(),
            t.c.created_at.desc(),
        ).limit(1)

        try:
            with self._db.begin() as conn:
                row = conn.execute(stmt).mappings().first()
        except Exception as e:
            raise PersistenceError(
                f"Failed to query patterns: {e}",
                operation="select",
                table="patterns",
                details={"wallet": query.wallet, "task_type": query.task_type},
            ) from e

        if row is None:
            return Result.err(
                NotFoundError(
                    "No pattern matches the query",
                    resource="pattern",
                    identifier=f"{query.wallet}/{query.task_type}@{midpoint:.3f}",
                )
            )
        return Result.ok(Pattern.from_row(row))

    def get_pattern_by_id(self, pattern_id: str) -> Result[Pattern, NotFoundError]:
        """Look up a pattern by id.

        Raises:
            PersistenceError: If the query fails.
        """
        try:
            with self._db.begin() as conn:
                row = conn.execute(
                    select(patterns_table).where(patterns_table.c.id == pattern_id)
                ).mappings().first()
        except Exception as e:
            raise PersistenceError(
                f"Failed to read pattern: {e}",
                operation="select",
                table="patterns",
                details={"pattern_id": pattern_id},
            ) from e

        if row is None:
            return Result.err(
                NotFoundError(
                    f"Pattern not found: {pattern_id}",
                    resource="pattern",
                    identifier=pattern_id,
                )
            )
        return Result.ok(Pattern.from_row(row))

    def find_learned_pattern(
        self,
        wallet: str,
        task_type: str,
        provider: str,
        model: str,
        complexity: float,
        radius: float,
    ) -> Result[Pattern, NotFoundError]:
        """Return the learned pattern for a model whose range is within ``radius``.

        Used to grow an existing learned pattern instead of learning an
        overlapping one. The pattern with the nearest range wins.

        Raises:
            PersistenceError: If the query fails.
        """
        t = patterns_table
        distance = case(
            (t.c.complexity_min > complexity, t.c.complexity_min - complexity),
            (t.c.complexity_max < complexity, complexity - t.c.complexity_max),
            else_=0.0,
        )
        stmt = (
            select(t)
            .where(t.c.wallet == wallet)
            .where(t.c.task_type == task_type)
            .where(t.c.pattern_type == PatternType.LEARNED.value)
            .where(t.c.recommended_provider == provider)
            .where(t.c.recommended_model == model)
            .where(t.c.complexity_min <= complexity + radius)
            .where(t.c.complexity_max >= complexity - radius)
            .order_by(distance, t.c.created_at)
            .limit(1)
        )
        try:
            with self._db.begin() as conn:
                row = conn.execute(stmt).mappings().first()
        except Exception as e:
            raise PersistenceError(
                f"Failed to query learned patterns: {e}",
                operation="select",
                table="patterns",
                details={"wallet": wallet, "task_type": task_type},
            ) from e

        if row is None:
            return Result.err(
                NotFoundError(
                    "No learned pattern near the decision",
                    resource="pattern",
                    identifier=f"{wallet}/{task_type}/{provider}/{model}@{complexity:.3f}",
                )
            )
        return Result.ok(Pattern.from_row(row))

    def widen_pattern(
        self, pattern_id: str, complexity: float, context_length: int | None = None
    ) -> Result[Pattern, NotFoundError]:
        """Stretch a pattern's ranges to include one more observation.

        Bounds only ever grow. A pattern without context bounds keeps
        matching any context.

        Raises:
            PersistenceError: If the update fails.
        """
        t = patterns_table
        values: dict[str, Any] = {
            "complexity_min": case(
                (t.c.complexity_min > complexity, complexity), else_=t.c.complexity_min
            ),
            "complexity_max": case(
                (t.c.complexity_max < complexity, complexity), else_=t.c.complexity_max
            ),
            "updated_at": utcnow(),
        }
        if context_length is not None:
            values["context_min"] = case(
                (t.c.context_min > context_length, context_length), else_=t.c.context_min
            )
            values["context_max"] = case(
                (t.c.context_max < context_length, context_length), else_=t.c.context_max
            )

        try:
            with self._db.begin() as conn:
                result = conn.execute(t.update().where(t.c.id == pattern_id).values(**values))
                if result.rowcount == 0:
                    row = None
                else:
                    row = conn.execute(select(t).where(t.c.id == pattern_id)).mappings().one()
        except Exception as e:
            raise PersistenceError(
                f"Failed to widen pattern: {e}",
                operation="update",
                table="patterns",
                details={"pattern_id": pattern_id},
            ) from e

        if row is None:
            return Result.err(
                NotFoundError(
                    f"Pattern not found: {pattern_id}",
                    resource="pattern",
                    identifier=pattern_id,
                )
            )

        pattern = Pattern.from_row(row)
        log.debug(
            "pattern.range.widened",
            pattern_id=pattern_id,
            complexity_min=pattern.complexity_min,
            complexity_max=pattern.complexity_max,
            context_min=pattern.context_min,
            context_max=pattern.context_max,
        )
        return Result.ok(pattern)

    def update_pattern_stats(
        self,
        pattern_id: str,
        success: bool,
        cost: float | None = None,
        quality: float | None = None,
    ) -> Result[Pattern, NotFoundError]:
        """Count one outcome against a pattern and recompute its confidence.

        Args:
            pattern_id: Pattern to update.
            success: Whether the outcome was successful.
            cost: Actual cost of the request, folded into the running mean.
            quality: Response quality (0.0-1.0), folded into the running mean.

        Returns:
            Result with the updated Pattern, or NotFoundError for an unknown id.

        Raises:
            PersistenceError: If the update fails.
        """
        t = patterns_table
        success_expr = t.c.success_count + (1 if success else 0)
        failure_expr = t.c.failure_count + (0 if success else 1)
        total_expr = t.c.success_count + t.c.failure_count + 1

        values: dict[str, Any] = {
            "success_count": success_expr,
            "failure_count": failure_expr,
            "confidence": _confidence_expr(success_expr, total_expr, self._threshold),
            "updated_at": utcnow(),
        }
        if cost is not None:
            values["avg_cost"] = t.c.avg_cost + (literal(float(cost)) - t.c.avg_cost) / (
                t.c.cost_samples + 1
            )
            values["cost_samples"] = t.c.cost_samples + 1
        if quality is not None:
            q = clamp_unit(float(quality))
            values["avg_quality"] = t.c.avg_quality + (literal(q) - t.c.avg_quality) / (
                t.c.quality_samples + 1
            )
            values["quality_samples"] = t.c.quality_samples + 1

        try:
            with self._db.begin() as conn:
                result = conn.execute(t.update().where(t.c.id == pattern_id).values(**values))
                if result.rowcount == 0:
                    row = None
                else:
                    row = conn.execute(select(t).where(t.c.id == pattern_id)).mappings().one()
        except Exception as e:
            raise PersistenceError(
                f"Failed to update pattern stats: {e}",
                operation="update",
                table="patterns",
                details={"pattern_id": pattern_id},
            ) from e

        if row is None:
            return Result.err(
                NotFoundError(
                    f"Pattern not found: {pattern_id}",
                    resource="pattern",
                    identifier=pattern_id,
                )
            )

        pattern = Pattern.from_row(row)
        log.info(
            "pattern.stats.updated",
            pattern_id=pattern_id,
            success=success,
            observations=pattern.observations,
            confidence=pattern.confidence,
        )
        return Result.ok(pattern)

    def list_patterns(
        self, wallet: str | None = None, task_type: str | None = None
    ) -> list[Pattern]:
        """List patterns, most confident first.

        Raises:
            PersistenceError: If the query fails.
        """
        t = patterns_table
        stmt = select(t)
        if wallet is not None:
            stmt = stmt.where(t.c.wallet == wallet)
        if task_type is not None:
            stmt = stmt.where(t.c.task_type == task_type)
        stmt = stmt.order_by(t.c.confidence.desc(), t.c.created_at.desc())

        try:
            with self._db.begin() as conn:
                rows = conn.execute(stmt).mappings().all()
        except Exception as e:
            raise PersistenceError(
                f"Failed to list patterns: {e}",
                operation="select",
                table="patterns",
                details={"wallet": wallet, "task_type": task_type},
            ) from e
        return [Pattern.from_row(row) for row in rows]
