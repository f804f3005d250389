"""Database schema definitions using SQLAlchemy Core.

SQLAlchemy Core is used (not ORM) so every counter and aggregate mutation can
be written as one explicit UPDATE over column expressions.

Tables:
    quotas: Per-wallet tier and daily decision counter
    routing_decisions: One row per routing choice, outcome columns filled later
    patterns: Wallet-scoped, range-scoped model recommendations
    model_performance: Rolling aggregates per wallet + model + task type
"""

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    text,
)

metadata = MetaData()


def _utcnow() -> datetime:
    return datetime.now(UTC)


quotas_table = Table(
    "quotas",
    metadata,
    Column("wallet", String(128), primary_key=True),
    # "free" or "pro"; the effective tier also depends on paid_until
    Column("tier", String(16), nullable=False, server_default=text("'free'")),
    Column("decisions_today", Integer, nullable=False, server_default=text("0")),
    # -1 means unlimited
    Column("decisions_limit", Integer, nullable=False),
    # ISO date (YYYY-MM-DD) of the day decisions_today counts
    Column("last_reset", String(10), nullable=False),
    Column("paid_until", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
)

routing_decisions_table = Table(
    "routing_decisions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("wallet", String(128), nullable=False),
    # Embedded TaskAnalysis
    Column("task_type", String(32), nullable=False),
    Column("complexity_score", Float, nullable=False),
    Column("estimated_tokens", Integer, nullable=False),
    Column("context_length", Integer, nullable=False),
    Column("has_code", Boolean, nullable=False),
    Column("has_errors", Boolean, nullable=False),
    Column("has_data", Boolean, nullable=False),
    # Selection
    Column("selected_model", String(128), nullable=False),
    Column("selected_provider", String(64), nullable=False),
    Column("selection_reason", String(64), nullable=False),
    Column("confidence_score", Float, nullable=False),
    Column("estimated_cost", Float, nullable=False),
    Column("alternatives", JSON, nullable=False),
    Column("score_breakdown", JSON, nullable=False),
    Column("pattern_id", String(36), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    # Outcome, overwritten by each record_outcome call
    Column("was_successful", Boolean, nullable=True),
    Column("actual_tokens", Integer, nullable=True),
    Column("actual_cost", Float, nullable=True),
    Column("response_quality", Float, nullable=True),
    Column("response_time_ms", Integer, nullable=True),
    Column("outcome_recorded_at", DateTime(timezone=True), nullable=True),
    Column("outcome_revision", Integer, nullable=False, server_default=text("0")),
    Index("ix_routing_decisions_wallet", "wallet"),
    Index("ix_routing_decisions_wallet_task", "wallet", "task_type"),
    Index("ix_routing_decisions_selected_model", "selected_model"),
    Index("ix_routing_decisions_created_at", "created_at"),
)

patterns_table = Table(
    "patterns",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("wallet", String(128), nullable=False),
    # "manual", "seeded" or "learned"
    Column("pattern_type", String(32), nullable=False),
    Column("description", String(500), nullable=False, server_default=text("''")),
    Column("task_type", String(32), nullable=False),
    Column("complexity_min", Float, nullable=False),
    Column("complexity_max", Float, nullable=False),
    # NULL context bounds match any context length
    Column("context_min", Integer, nullable=True),
    Column("context_max", Integer, nullable=True),
    Column("keywords", JSON, nullable=False),
    Column("recommended_model", String(128), nullable=False),
    Column("recommended_provider", String(64), nullable=False),
    Column("success_count", Integer, nullable=False, server_default=text("0")),
    Column("failure_count", Integer, nullable=False, server_default=text("0")),
    Column("confidence", Float, nullable=False, server_default=text("0")),
    Column("avg_cost", Float, nullable=False, server_default=text("0")),
    Column("cost_samples", Integer, nullable=False, server_default=text("0")),
    Column("avg_quality", Float, nullable=False, server_default=text("0")),
    Column("quality_samples", Integer, nullable=False, server_default=text("0")),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
    Index("ix_patterns_wallet_task", "wallet", "task_type"),
)

model_performance_table = Table(
    "model_performance",
    metadata,
    Column("wallet", String(128), primary_key=True),
    Column("model", String(128), primary_key=True),
    Column("task_type", String(32), primary_key=True),
    Column("provider", String(64), nullable=False),
    Column("total_requests", Integer, nullable=False, server_default=text("0")),
    Column("success_count", Integer, nullable=False, server_default=text("0")),
    Column("success_rate", Float, nullable=False, server_default=text("0")),
    # Each running mean counts only the outcomes that reported its value
    Column("avg_cost", Float, nullable=False, server_default=text("0")),
    Column("cost_samples", Integer, nullable=False, server_default=text("0")),
    Column("avg_quality", Float, nullable=False, server_default=text("0")),
    Column("quality_samples", Integer, nullable=False, server_default=text("0")),
    Column("avg_latency_ms", Float, nullable=False, server_default=text("0")),
    Column("latency_samples", Integer, nullable=False, server_default=text("0")),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
)
