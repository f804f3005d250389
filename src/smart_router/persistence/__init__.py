"""Persistence module for Smart Router.

This module provides the storage collaborators of the routing core:
- database: Engine lifecycle and dialect-aware insert-ignore
- quotas: Per-wallet tier and daily counter
- decisions: Routing decisions and their outcomes
- patterns: Learned, range-scoped model recommendations
- performance: Rolling per-model outcome aggregates
"""

from smart_router.persistence.database import Database
from smart_router.persistence.decisions import DecisionLog
from smart_router.persistence.models import (
    UNLIMITED,
    Alternative,
    DecisionGroupStats,
    DecisionOutcome,
    ModelPerformance,
    Pattern,
    PatternQuery,
    PatternSpec,
    PatternType,
    Quota,
    RoutingDecision,
    RoutingStats,
    Tier,
)
from smart_router.persistence.patterns import PatternStore, pattern_confidence
from smart_router.persistence.performance import PerformanceTracker
from smart_router.persistence.quotas import QuotaStore

__all__ = [
    "Database",
    "DecisionLog",
    "PatternStore",
    "PerformanceTracker",
    "QuotaStore",
    "pattern_confidence",
    # Records
    "UNLIMITED",
    "Alternative",
    "DecisionGroupStats",
    "DecisionOutcome",
    "ModelPerformance",
    "Pattern",
    "PatternQuery",
    "PatternSpec",
    "PatternType",
    "Quota",
    "RoutingDecision",
    "RoutingStats",
    "Tier",
]
